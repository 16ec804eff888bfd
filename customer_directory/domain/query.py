from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class SearchField(str, Enum):
    """Logical customer fields a free-text search may target."""
    EMAIL = "email"
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    COMPANY = "company"
    USERNAME = "username"

class StoreColumn(str, Enum):
    """Indexed columns of the primary user table that support text search."""
    USER_EMAIL = "user_email"
    USER_LOGIN = "user_login"
    USER_NICENAME = "user_nicename"

class OrderBy(str, Enum):
    ID = "id"
    INCLUDE = "include"
    NAME = "name"
    REGISTERED = "registered"
    EMAIL = "email"

class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

class RequestContext(str, Enum):
    VIEW = "view"
    EDIT = "edit"


# --- Predicate Tree ---

class PredicateNode(BaseModel):
    """Base config for predicate nodes. Nodes are immutable values."""
    model_config = ConfigDict(frozen=True)

class ColumnMatch(PredicateNode):
    """Matches a primary-table column, as a substring or exactly."""
    kind: Literal["column"] = "column"
    column: StoreColumn
    value: str
    exact: bool = False

class AttributeMatch(PredicateNode):
    """Case-insensitive substring match on a named user attribute."""
    kind: Literal["attribute"] = "attribute"
    key: str
    value: str

class RoleIn(PredicateNode):
    """Membership in at least one of the listed roles."""
    kind: Literal["role"] = "role"
    roles: tuple[str, ...] = Field(min_length=1)

class AnyOf(PredicateNode):
    """Logical OR over its children."""
    kind: Literal["any"] = "any"
    children: tuple["Predicate", ...] = Field(min_length=1)

class AllOf(PredicateNode):
    """Logical AND over its children."""
    kind: Literal["all"] = "all"
    children: tuple["Predicate", ...] = Field(min_length=1)

Predicate = Annotated[
    Union[ColumnMatch, AttributeMatch, RoleIn, AnyOf, AllOf],
    Field(discriminator="kind"),
]

AnyOf.model_rebuild()
AllOf.model_rebuild()


# --- Query Plan ---

class SearchClause(BaseModel):
    """Free-text search spanning both storage representations.

    ``columns`` are searched on the primary table, ``attributes`` through the
    attribute table. A record matches when any branch matches, whichever
    storage backs it.

    Attributes:
        term (str): The raw search term, without wildcards.
        fields (frozenset[SearchField]): The resolved fields that produced
            the branches below.
        columns (tuple[StoreColumn, ...]): Column-backed branch.
        attributes (tuple[AttributeMatch, ...]): Attribute-backed branch.
    """
    term: str = Field(min_length=1)
    fields: frozenset[SearchField]
    columns: tuple[StoreColumn, ...] = ()
    attributes: tuple[AttributeMatch, ...] = ()

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def must_have_a_branch(self) -> "SearchClause":
        """A search clause always resolves to at least one sub-predicate."""
        if not self.columns and not self.attributes:
            raise ValueError("SearchClause requires at least one column or attribute branch")
        return self

    def column_predicates(self) -> list[ColumnMatch]:
        return [ColumnMatch(column=column, value=self.term) for column in self.columns]

    def predicate(self) -> AnyOf:
        """Single OR across the column branch and the attribute branch."""
        return AnyOf(children=(*self.column_predicates(), *self.attributes))

class QueryPlan(BaseModel):
    """Abstract description of one customer listing query.

    Built by the query planner from validated request parameters and compiled
    by the store adapter. Holds no reference to the store itself.
    """
    roles: frozenset[str] = Field(min_length=1)
    orderby: OrderBy = OrderBy.REGISTERED
    order: SortOrder = SortOrder.DESC
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=10, ge=1, le=100)
    search: SearchClause | None = None
    email: str | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page

    @property
    def limit(self) -> int:
        return self.per_page

    def where(self) -> AllOf:
        """Full filter: role membership AND search clause AND exact email."""
        children: list[Predicate] = [RoleIn(roles=tuple(sorted(self.roles)))]
        if self.search is not None:
            children.append(self.search.predicate())
        if self.email:
            children.append(ColumnMatch(column=StoreColumn.USER_EMAIL, value=self.email, exact=True))
        return AllOf(children=tuple(children))
