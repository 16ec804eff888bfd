# customer_directory/domain/__init__.py

# 1. Store-facing Record
from .customer import CustomerListParams, CustomerRecord

# 2. Public Representation
from .customer import (
    BillingAddress,
    CustomerLinks,
    CustomerView,
    Link,
    ShippingAddress,
)

# 3. Query Plan & Predicate Tree
from .query import (
    AllOf,
    AnyOf,
    AttributeMatch,
    ColumnMatch,
    OrderBy,
    QueryPlan,
    RequestContext,
    RoleIn,
    SearchClause,
    SearchField,
    SortOrder,
    StoreColumn,
)


__all__ = [
    "AllOf",
    "AnyOf",
    "AttributeMatch",
    "BillingAddress",
    "ColumnMatch",
    "CustomerLinks",
    "CustomerListParams",
    "CustomerRecord",
    "CustomerView",
    "Link",
    "OrderBy",
    "QueryPlan",
    "RequestContext",
    "RoleIn",
    "SearchClause",
    "SearchField",
    "ShippingAddress",
    "SortOrder",
    "StoreColumn"
]
