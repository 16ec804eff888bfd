import logging

from customer_directory.domain.customer import CustomerListParams
from customer_directory.domain.query import AttributeMatch, QueryPlan, SearchClause
from customer_directory.services.field_registry import (
    DEFAULT_FILTER_ROLES,
    partition_search_fields,
    resolve_search_fields,
)


logger = logging.getLogger(__name__)

def build_search_clause(term: str, requested_fields: str | list[str] | None) -> SearchClause:
    """Builds the cross-storage search clause for a non-empty term.

    Column-backed fields (email, username) become substring matches on the
    user table; attribute-backed fields (first_name, last_name, company)
    become case-insensitive substring matches on the attribute table. The
    clause ORs both branches together.

    Args:
        term (str): The free-text search term.
        requested_fields: The raw ``_searchFields`` value.

    Returns:
        SearchClause: A clause with at least one branch.
    """
    fields = resolve_search_fields(requested_fields)
    columns, attribute_keys = partition_search_fields(fields)
    return SearchClause(
        term=term,
        fields=fields,
        columns=columns,
        attributes=tuple(AttributeMatch(key=key, value=term) for key in attribute_keys),
    )


def build_plan(params: CustomerListParams) -> QueryPlan:
    """Turns validated request parameters into a QueryPlan. Pure.

    Args:
        params (CustomerListParams): Already validated request parameters.

    Returns:
        QueryPlan: Role filter, ordering, window, search clause and email filter.
    """
    # 1. Role filter
    role = params.requested_role
    roles = frozenset({role}) if role else DEFAULT_FILTER_ROLES

    # 2. Free-text search
    search = None
    if params.search:
        search = build_search_clause(params.search, params.search_fields)

    # An exact email replaces the column search, and any attribute branch
    # OR-ed onto it goes too. Attribute-only searches stay AND-ed.
    if params.email and search is not None and search.columns:
        search = None

    # 3. Ordering and the pagination window pass straight through
    plan = QueryPlan(
        roles=roles,
        orderby=params.orderby,
        order=params.order,
        page=params.page,
        per_page=params.per_page,
        search=search,
        email=str(params.email) if params.email else None,
    )
    logger.debug(
        f"Built customer plan: roles={sorted(plan.roles)} page={plan.page} "
        f"per_page={plan.per_page} search={bool(search)} email={bool(plan.email)}"
    )
    return plan
