from datetime import UTC, datetime
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    ValidationInfo,
    field_validator,
)

from customer_directory.domain.query import OrderBy, RequestContext, SortOrder


ALL_ROLES = "all"

class CustomerRecord(BaseModel):
    """A user row as read from the store, attributes included.

    Attributes:
        id (int): Store identifier.
        email (str): Account email address.
        username (str): Login name.
        nicename (str): URL-friendly login name.
        display_name (str): Public display name.
        registered (datetime): Registration time, naive UTC.
        roles (tuple[str, ...]): Role names in membership order.
        attributes (dict[str, str]): One-level key/value attributes.
    """
    id: int
    email: str
    username: str = ""
    nicename: str = ""
    display_name: str = ""
    registered: datetime
    roles: tuple[str, ...] = ()
    attributes: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def attribute(self, key: str) -> str:
        """Returns the attribute value, or an empty string when unset."""
        return self.attributes.get(key) or ""

    @field_validator('registered')
    @classmethod
    def registered_as_naive_utc(cls, v: datetime) -> datetime:
        """Aware timestamps are converted to UTC and stripped of their tzinfo."""
        if v.tzinfo is not None:
            return v.astimezone(UTC).replace(tzinfo=None)
        return v


class CustomerListParams(BaseModel):
    """Validated query parameters of ``GET /customers``.

    ``role`` is checked against the roles passed in the validation context
    under ``known_roles``; without a context any role name is accepted.
    """
    page: int = Field(default=1, ge=1, description="Current page of the collection.")
    per_page: int = Field(default=10, ge=1, le=100, description="Maximum number of items to be returned in result set.")
    search: Optional[str] = Field(default=None, description="Limit results to those matching a string.")
    search_fields: Optional[str | list[str]] = Field(
        default=None,
        alias="_searchFields",
        description="Comma-separated list of fields to search in.",
    )
    email: Optional[EmailStr] = Field(default=None, description="Limit results to those matching a specific email.")
    role: Optional[str] = Field(default=None, description="Limit results to those matching a specific role.")
    orderby: OrderBy = OrderBy.REGISTERED
    order: SortOrder = SortOrder.DESC
    context: RequestContext = RequestContext.VIEW

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    @field_validator('search', 'role', mode='before')
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """Trims text input; whitespace-only values count as absent."""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator('role')
    @classmethod
    def role_must_be_known(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        known_roles = (info.context or {}).get("known_roles")
        if v is None or known_roles is None:
            return v
        if v != ALL_ROLES and v not in known_roles:
            allowed = ", ".join([ALL_ROLES, *known_roles])
            raise ValueError(f"role is not one of {allowed}")
        return v

    @property
    def requested_role(self) -> Optional[str]:
        """The specific role asked for, or None for the default filter.

        ``all`` is passed through like any other role name.
        """
        return self.role


# --- Public Representation ---

class BillingAddress(BaseModel):
    first_name: str = ""
    last_name: str = ""
    company: str = ""
    address_1: str = ""
    address_2: str = ""
    city: str = ""
    state: str = ""
    postcode: str = ""
    country: str = ""
    email: str = ""
    phone: str = ""

    model_config = ConfigDict(frozen=True)

class ShippingAddress(BaseModel):
    first_name: str = ""
    last_name: str = ""
    company: str = ""
    address_1: str = ""
    address_2: str = ""
    city: str = ""
    state: str = ""
    postcode: str = ""
    country: str = ""
    phone: str = ""

    model_config = ConfigDict(frozen=True)

class Link(BaseModel):
    href: str

    model_config = ConfigDict(frozen=True)

class CustomerLinks(BaseModel):
    self_: list[Link] = Field(alias="self")
    collection: list[Link]

    model_config = ConfigDict(frozen=True, populate_by_name=True)

class CustomerView(BaseModel):
    """The public representation of a customer returned by the API."""
    id: int = Field(..., description="Unique identifier for the resource.")
    date_created: datetime = Field(..., description="The date the customer was created, in the site's timezone.")
    date_created_gmt: datetime = Field(..., description="The date the customer was created, as GMT.")
    date_modified: Optional[datetime] = Field(None, description="Not tracked by the store; always null.")
    date_modified_gmt: Optional[datetime] = Field(None, description="Not tracked by the store; always null.")
    email: str = Field(..., description="The email address for the customer.")
    first_name: str = Field("", description="Customer first name.")
    last_name: str = Field("", description="Customer last name.")
    role: str = Field(..., description="Customer role.")
    username: str = Field(..., description="Customer login name.")
    billing: BillingAddress = Field(default_factory=BillingAddress, description="List of billing address data.")
    shipping: ShippingAddress = Field(default_factory=ShippingAddress, description="List of shipping address data.")
    is_paying_customer: bool = Field(False, description="Is the customer a paying customer?")
    avatar_url: str = Field("", description="Avatar URL.")
    meta_data: list[dict[str, Any]] = Field(default_factory=list, description="Meta data.")
    links: CustomerLinks = Field(..., alias="_links")

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": 42,
                "date_created": "2024-03-01T09:30:00",
                "date_created_gmt": "2024-03-01T09:30:00",
                "date_modified": None,
                "date_modified_gmt": None,
                "email": "jane.doe@example.com",
                "first_name": "Jane",
                "last_name": "Doe",
                "role": "customer",
                "username": "janedoe",
                "billing": {"company": "Acme Ltd", "city": "Leeds", "country": "GB"},
                "shipping": {"city": "Leeds", "country": "GB"},
                "is_paying_customer": True,
                "avatar_url": "https://secure.gravatar.com/avatar/0f1e...?s=96&d=mm&r=g",
                "meta_data": [],
                "_links": {
                    "self": [{"href": "http://localhost:8000/customer-directory/v1/customers/42"}],
                    "collection": [{"href": "http://localhost:8000/customer-directory/v1/customers"}],
                },
            }
        },
    )
