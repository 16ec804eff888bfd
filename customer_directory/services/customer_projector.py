from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any
from zoneinfo import ZoneInfo

from customer_directory.domain.customer import (
    BillingAddress,
    CustomerRecord,
    CustomerView,
    ShippingAddress,
)
from customer_directory.domain.query import RequestContext
from customer_directory.services.field_registry import (
    BILLING_ATTRIBUTE_KEYS,
    DEFAULT_DISPLAY_ROLE,
    PAYING_CUSTOMER_KEY,
    SHIPPING_ATTRIBUTE_KEYS,
    filter_by_context,
)


AvatarResolver = Callable[[CustomerRecord], str]

RESOURCE_NAME = "customers"

def is_truthy_flag(value: str) -> bool:
    """Stored flags are strings; empty and "0" are false, anything else true."""
    return value not in ("", "0")


class CustomerProjector:
    """Maps CustomerRecords onto the public CustomerView.

    Deterministic and free of side effects, so one instance can be shared by
    concurrent requests.
    """

    def __init__(
        self,
        namespace: str,
        base_url: str,
        avatar_url: AvatarResolver,
        timezone: str = "UTC",
    ) -> None:
        """
        Args:
            namespace (str): Route namespace, e.g. ``customer-directory/v1``.
            base_url (str): Scheme and host the links are built on.
            avatar_url (AvatarResolver): Avatar resolution collaborator.
            timezone (str): IANA name of the site timezone for local dates.
        """
        self.namespace = namespace.strip("/")
        self.base_url = base_url.rstrip("/")
        self.avatar_url = avatar_url
        self.timezone = ZoneInfo(timezone)

    def collection_url(self) -> str:
        return f"{self.base_url}/{self.namespace}/{RESOURCE_NAME}"

    def item_url(self, customer_id: int) -> str:
        return f"{self.collection_url()}/{customer_id}"

    def _local_time(self, registered_utc: datetime) -> datetime:
        aware = registered_utc.replace(tzinfo=UTC)
        return aware.astimezone(self.timezone).replace(tzinfo=None, microsecond=0)

    def _links(self, record: CustomerRecord) -> dict[str, list[dict[str, str]]]:
        return {
            "self": [{"href": self.item_url(record.id)}],
            "collection": [{"href": self.collection_url()}],
        }

    def project(
        self,
        record: CustomerRecord,
        context: RequestContext = RequestContext.VIEW,
    ) -> CustomerView:
        """Builds the public view of one record for the given context."""
        data: dict[str, Any] = {
            "id": record.id,
            "date_created": self._local_time(record.registered),
            "date_created_gmt": record.registered.replace(microsecond=0),
            "date_modified": None,
            "date_modified_gmt": None,
            "email": record.email,
            "first_name": record.attribute("first_name"),
            "last_name": record.attribute("last_name"),
            "role": record.roles[0] if record.roles else DEFAULT_DISPLAY_ROLE,
            "username": record.username,
            "billing": BillingAddress(
                **{key: record.attribute(stored) for key, stored in BILLING_ATTRIBUTE_KEYS.items()}
            ),
            "shipping": ShippingAddress(
                **{key: record.attribute(stored) for key, stored in SHIPPING_ATTRIBUTE_KEYS.items()}
            ),
            "is_paying_customer": is_truthy_flag(record.attribute(PAYING_CUSTOMER_KEY)),
            "avatar_url": self.avatar_url(record),
            "meta_data": [],
        }

        data = filter_by_context(data, context)
        data["_links"] = self._links(record)
        return CustomerView.model_validate(data)
