import logging
import threading
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

# Layer 4: Data Access
from customer_directory.data_access.customer_store import CustomerStore

# Layer 3: Domain Entities
from customer_directory.domain.customer import CustomerListParams, CustomerView

from customer_directory.core.errors import InternalError, QueryCancelledError
from customer_directory.services.customer_projector import CustomerProjector
from customer_directory.services.pagination import PaginationEnvelope, envelope
from customer_directory.services.query_planner import build_plan


logger = logging.getLogger(__name__)

class CustomerService:
    """
    Service layer for the read-only customer listing.

    Runs the request pipeline: plan the query, execute it against the user
    store, project every record to its public view and compute the
    pagination totals. The store call is the only blocking step.
    """

    def __init__(self, session: Session, projector: CustomerProjector) -> None:
        """
        Initializes the CustomerService with a database session.

        Args:
            session (Session): The active SQLModel/SQLAlchemy session.
            projector (CustomerProjector): Maps records to public views.
        """
        self.store = CustomerStore(session)
        self.projector = projector

    def list_customers(
        self,
        params: CustomerListParams,
        cancel: threading.Event | None = None,
    ) -> tuple[List[CustomerView], PaginationEnvelope]:
        """
        Lists one page of customers matching the request parameters.

        Args:
            params (CustomerListParams): Validated request parameters.
            cancel (threading.Event | None): Cooperative cancellation token
                handed to the store.

        Returns:
            tuple[List[CustomerView], PaginationEnvelope]: The page of views and
                the totals of the unpaginated result.

        Raises:
            InternalError: 500 status if the user store fails.
            QueryCancelledError: If ``cancel`` was set before the query finished.
        """
        plan = build_plan(params)

        try:
            records, total = self.store.execute(plan, cancel=cancel)
        except QueryCancelledError:
            logger.warning(f"Customer query abandoned on page {plan.page}; caller cancelled")
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error listing customers: {e}")
            raise InternalError()

        views = [self.projector.project(record, params.context) for record in records]
        return views, envelope(total, plan.per_page)
