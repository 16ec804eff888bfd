import pytest
from pydantic import ValidationError

from customer_directory.domain.customer import CustomerListParams
from customer_directory.domain.query import (
    AllOf,
    AnyOf,
    AttributeMatch,
    ColumnMatch,
    OrderBy,
    RoleIn,
    SearchClause,
    SearchField,
    SortOrder,
    StoreColumn,
)
from customer_directory.services.query_planner import build_plan


def make_params(**kwargs) -> CustomerListParams:
    return CustomerListParams.model_validate(kwargs)


# --- 1. Defaults and pass-through ---

def test_defaults() -> None:
    plan = build_plan(make_params())

    assert plan.roles == {"customer", "subscriber"}
    assert plan.orderby == OrderBy.REGISTERED
    assert plan.order == SortOrder.DESC
    assert plan.offset == 0
    assert plan.limit == 10
    assert plan.search is None
    assert plan.email is None


@pytest.mark.parametrize(
    ("page", "per_page", "offset"),
    [(1, 10, 0), (2, 10, 10), (3, 25, 50), (7, 1, 6), (2, 100, 100)],
)
def test_pagination_window(page: int, per_page: int, offset: int) -> None:
    plan = build_plan(make_params(page=page, per_page=per_page))
    assert plan.offset == offset
    assert plan.limit == per_page


def test_ordering_passes_through() -> None:
    plan = build_plan(make_params(orderby="email", order="asc"))
    assert plan.orderby == OrderBy.EMAIL
    assert plan.order == SortOrder.ASC


def test_requested_role_replaces_default_filter() -> None:
    assert build_plan(make_params(role="administrator")).roles == {"administrator"}


def test_role_all_is_passed_through_literally() -> None:
    assert build_plan(make_params(role="all")).roles == {"all"}


# --- 2. Search clause construction ---

@pytest.mark.parametrize("term", [None, "", "   "])
def test_blank_search_adds_no_clause(term) -> None:
    plan = build_plan(make_params(search=term, _searchFields="company"))
    assert plan.search is None
    assert plan.where() == AllOf(children=(RoleIn(roles=("customer", "subscriber")),))


def test_column_only_search() -> None:
    plan = build_plan(make_params(search="jo", _searchFields="email,username"))

    assert plan.search is not None
    assert plan.search.attributes == ()
    assert plan.search.columns == (
        StoreColumn.USER_EMAIL,
        StoreColumn.USER_LOGIN,
        StoreColumn.USER_NICENAME,
    )


def test_attribute_only_search() -> None:
    plan = build_plan(make_params(search="Acme", _searchFields="company"))

    assert plan.search is not None
    assert plan.search.columns == ()
    assert plan.search.attributes == (AttributeMatch(key="billing_company", value="Acme"),)


def test_mixed_search_is_a_single_or_across_storages() -> None:
    plan = build_plan(make_params(search="acme", _searchFields="email,company"))

    assert plan.where() == AllOf(
        children=(
            RoleIn(roles=("customer", "subscriber")),
            AnyOf(
                children=(
                    ColumnMatch(column=StoreColumn.USER_EMAIL, value="acme"),
                    AttributeMatch(key="billing_company", value="acme"),
                )
            ),
        )
    )


def test_bogus_fields_search_everything() -> None:
    plan = build_plan(make_params(search="x", _searchFields="bogus,garbage"))

    assert plan.search is not None
    assert plan.search.fields == set(SearchField)
    assert len(plan.search.columns) == 3
    assert [a.key for a in plan.search.attributes] == ["first_name", "last_name", "billing_company"]


def test_email_filter_is_anded_with_attribute_only_search() -> None:
    plan = build_plan(make_params(search="acme", _searchFields="company", email="jane@example.com"))

    where = plan.where()
    assert len(where.children) == 3
    assert isinstance(where.children[1], AnyOf)
    assert where.children[2] == ColumnMatch(
        column=StoreColumn.USER_EMAIL, value="jane@example.com", exact=True
    )


@pytest.mark.parametrize("fields", ["email", "username", "email,company", "bogus"])
def test_email_filter_replaces_column_search(fields: str) -> None:
    plan = build_plan(make_params(search="zzz", _searchFields=fields, email="jane@example.com"))

    assert plan.search is None
    assert plan.where() == AllOf(
        children=(
            RoleIn(roles=("customer", "subscriber")),
            ColumnMatch(column=StoreColumn.USER_EMAIL, value="jane@example.com", exact=True),
        )
    )


def test_empty_search_clause_is_rejected() -> None:
    with pytest.raises(ValidationError):
        SearchClause(term="x", fields=frozenset())


# --- 3. Parameter validation ---

@pytest.mark.parametrize(
    "bad",
    [{"page": 0}, {"per_page": 0}, {"per_page": 101}, {"orderby": "price"}, {"order": "up"}, {"context": "embed"}, {"email": "nope"}],
)
def test_invalid_params_are_rejected(bad) -> None:
    with pytest.raises(ValidationError):
        make_params(**bad)


def test_unknown_role_rejected_against_known_roles() -> None:
    with pytest.raises(ValidationError):
        CustomerListParams.model_validate({"role": "ghost"}, context={"known_roles": ["customer"]})

    params = CustomerListParams.model_validate({"role": "all"}, context={"known_roles": ["customer"]})
    assert params.requested_role == "all"
