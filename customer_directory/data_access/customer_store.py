import logging
import threading
from collections import defaultdict
from typing import Any

from sqlalchemy import ColumnElement
from sqlmodel import Session, and_, col, func, or_, select

from customer_directory.core.errors import QueryCancelledError
from customer_directory.data_access.models import UserMeta, UserRecord, UserRole
from customer_directory.domain.customer import CustomerRecord
from customer_directory.domain.query import (
    AllOf,
    AnyOf,
    AttributeMatch,
    ColumnMatch,
    OrderBy,
    QueryPlan,
    RoleIn,
    SortOrder,
    StoreColumn,
)


logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"

COLUMNS = {
    StoreColumn.USER_EMAIL: UserRecord.user_email,
    StoreColumn.USER_LOGIN: UserRecord.user_login,
    StoreColumn.USER_NICENAME: UserRecord.user_nicename,
}

# "include" has no include-list to follow, so it sorts by login like the store default
ORDER_COLUMNS = {
    OrderBy.ID: UserRecord.id,
    OrderBy.INCLUDE: UserRecord.user_login,
    OrderBy.NAME: UserRecord.display_name,
    OrderBy.REGISTERED: UserRecord.user_registered,
    OrderBy.EMAIL: UserRecord.user_email,
}


def escape_like(term: str) -> str:
    """Escapes LIKE wildcards so the term is matched literally."""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )


def compile_predicate(node: Any) -> ColumnElement[bool]:
    """Compiles a predicate tree node into a SQLAlchemy boolean expression.

    Column matches run against the user table. Attribute matches and role
    membership become correlated EXISTS subqueries, so an ``AnyOf`` mixing
    both kinds yields one OR inside a single WHERE clause.
    """
    if isinstance(node, AllOf):
        return and_(*[compile_predicate(child) for child in node.children])

    if isinstance(node, AnyOf):
        return or_(*[compile_predicate(child) for child in node.children])

    if isinstance(node, RoleIn):
        return (
            select(UserRole.umrole_id)
            .where(
                col(UserRole.user_id) == col(UserRecord.id),
                col(UserRole.role).in_(node.roles),
            )
            .exists()
        )

    if isinstance(node, AttributeMatch):
        pattern = f"%{escape_like(node.value)}%"
        return (
            select(UserMeta.umeta_id)
            .where(
                col(UserMeta.user_id) == col(UserRecord.id),
                col(UserMeta.meta_key) == node.key,
                col(UserMeta.meta_value).ilike(pattern, escape=LIKE_ESCAPE),
            )
            .exists()
        )

    if isinstance(node, ColumnMatch):
        column = col(COLUMNS[node.column])
        if node.exact:
            return func.lower(column) == node.value.lower()
        return column.ilike(f"%{escape_like(node.value)}%", escape=LIKE_ESCAPE)

    raise TypeError(f"Unsupported predicate node: {type(node).__name__}")


class CustomerStore:
    """Executes QueryPlans against the relational user store.

    Returns one page of records plus the total number of matching users,
    both computed from the same compiled WHERE clause.
    """

    def __init__(self, session: Session) -> None:
        """Initializes the store with a database session.

        Args:
            session (Session): The active SQLModel/SQLAlchemy session.
        """
        self.session = session

    @staticmethod
    def _check_cancelled(cancel: threading.Event | None) -> None:
        if cancel is not None and cancel.is_set():
            raise QueryCancelledError("Customer query cancelled by caller")

    def _order_by(self, plan: QueryPlan) -> list[Any]:
        primary = col(ORDER_COLUMNS[plan.orderby])
        tiebreak = col(UserRecord.id)
        if plan.order == SortOrder.ASC:
            return [primary.asc(), tiebreak.asc()]
        return [primary.desc(), tiebreak.desc()]

    def count(self, plan: QueryPlan) -> int:
        """Counts matching users, ignoring the pagination window."""
        statement = select(func.count()).select_from(UserRecord).where(compile_predicate(plan.where()))
        return int(self.session.exec(statement).one())

    def _load_attributes(self, ids: list[int]) -> dict[int, dict[str, str]]:
        attributes: dict[int, dict[str, str]] = defaultdict(dict)
        statement = (
            select(UserMeta)
            .where(col(UserMeta.user_id).in_(ids))
            .order_by(col(UserMeta.umeta_id))
        )
        for meta in self.session.exec(statement).all():
            # First stored value wins for repeated keys
            attributes[meta.user_id].setdefault(meta.meta_key, meta.meta_value or "")
        return attributes

    def _load_roles(self, ids: list[int]) -> dict[int, list[str]]:
        roles: dict[int, list[str]] = defaultdict(list)
        statement = (
            select(UserRole)
            .where(col(UserRole.user_id).in_(ids))
            .order_by(col(UserRole.umrole_id))
        )
        for membership in self.session.exec(statement).all():
            roles[membership.user_id].append(membership.role)
        return roles

    def execute(
        self,
        plan: QueryPlan,
        cancel: threading.Event | None = None,
    ) -> tuple[list[CustomerRecord], int]:
        """Runs the plan and returns ``(records, total)``.

        Args:
            plan (QueryPlan): The plan built by the query planner.
            cancel (threading.Event | None): Checked before every statement;
                when set, the query is abandoned.

        Returns:
            tuple[list[CustomerRecord], int]: The requested page, in the
                requested order, and the unpaginated match count.

        Raises:
            QueryCancelledError: If ``cancel`` was set before completion.
        """
        self._check_cancelled(cancel)
        total = self.count(plan)

        self._check_cancelled(cancel)
        statement = (
            select(UserRecord)
            .where(compile_predicate(plan.where()))
            .order_by(*self._order_by(plan))
            .offset(plan.offset)
            .limit(plan.limit)
        )
        users = self.session.exec(statement).all()
        if not users:
            return [], total

        self._check_cancelled(cancel)
        ids = [user.id for user in users if user.id is not None]
        attributes = self._load_attributes(ids)
        roles = self._load_roles(ids)

        records = [
            CustomerRecord(
                id=user.id,
                email=user.user_email,
                username=user.user_login,
                nicename=user.user_nicename,
                display_name=user.display_name,
                registered=user.user_registered,
                roles=tuple(roles.get(user.id, ())),
                attributes=attributes.get(user.id, {}),
            )
            for user in users
        ]
        logger.debug(f"Fetched {len(records)} of {total} matching customers")
        return records, total
