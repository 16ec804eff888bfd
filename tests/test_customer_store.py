import threading
from datetime import datetime

import pytest
from sqlmodel import Session

from customer_directory.core.errors import QueryCancelledError
from customer_directory.data_access.customer_store import (
    CustomerStore,
    compile_predicate,
    escape_like,
)
from customer_directory.data_access.models import UserRecord, UserRole
from customer_directory.domain.customer import CustomerListParams
from customer_directory.services.query_planner import build_plan


def run(session: Session, **kwargs):
    plan = build_plan(CustomerListParams.model_validate(kwargs))
    return CustomerStore(session).execute(plan)


def logins(records) -> set[str]:
    return {r.username for r in records}


@pytest.fixture(name="directory")
def directory_fixture(make_user) -> None:
    """Seeds a small directory mixing column and attribute matches."""
    make_user("alice", "sales@acme.io", billing_company="Northwind", first_name="Alice",
              registered=datetime(2024, 1, 1))
    make_user("bob", "bob@mail.test", billing_company="ACME Industries", first_name="Bob",
              registered=datetime(2024, 1, 2))
    make_user("carol", "carol@mail.test", billing_company="Globex", first_name="Carol",
              registered=datetime(2024, 1, 3))
    make_user("dave", "dave@mail.test", roles=("subscriber",), last_name="Acmeson",
              registered=datetime(2024, 1, 4))
    make_user("root", "root@acme.io", roles=("administrator",), billing_company="Acme",
              registered=datetime(2024, 1, 5))


# --- 1. Cross-storage search ---

def test_attribute_only_search_is_case_insensitive_substring(session: Session, directory) -> None:
    records, total = run(session, search="Acme", _searchFields="company")

    assert logins(records) == {"bob"}
    assert total == 1


def test_mixed_fields_match_either_storage(session: Session, directory) -> None:
    """alice matches only by email, bob only by company; carol matches neither."""
    records, total = run(session, search="acme", _searchFields="email,company")

    assert logins(records) == {"alice", "bob"}
    assert total == 2


def test_column_only_search_matches_login_and_nicename(session: Session, make_user) -> None:
    make_user("jdoe", "x@mail.test", nicename="john-doe")
    make_user("someone", "y@mail.test")

    records, _ = run(session, search="john", _searchFields="username")
    assert logins(records) == {"jdoe"}


def test_default_fields_search_all_storages(session: Session, directory) -> None:
    records, total = run(session, search="acme", _searchFields="bogus")

    # dave matches through last_name, root is excluded by the role filter
    assert logins(records) == {"alice", "bob", "dave"}
    assert total == 3


def test_like_wildcards_in_term_match_literally(session: Session, make_user) -> None:
    make_user("pct", "pct@mail.test", billing_company="100% Cotton")
    make_user("plain", "plain@mail.test", billing_company="Cotton Co")

    records, _ = run(session, search="%", _searchFields="company")
    assert logins(records) == {"pct"}

    records, _ = run(session, search="_", _searchFields="email")
    assert records == []


def test_email_filter_is_exact(session: Session, make_user) -> None:
    make_user("jane", "jane@example.com")
    make_user("janet", "janet@example.com")

    records, total = run(session, email="jane@example.com")
    assert logins(records) == {"jane"}
    assert total == 1


@pytest.mark.parametrize("fields", ["email", "username", "email,company"])
def test_email_filter_overrides_column_search(session: Session, make_user, fields: str) -> None:
    """The search term matches nobody, the exact email still finds jane."""
    make_user("jane", "jane@example.com", billing_company="Initech")
    make_user("janet", "janet@example.com")

    records, total = run(session, search="zzz", _searchFields=fields, email="jane@example.com")
    assert logins(records) == {"jane"}
    assert total == 1


def test_email_filter_narrows_attribute_only_search(session: Session, make_user) -> None:
    make_user("jane", "jane@example.com", billing_company="Initech")
    make_user("janet", "janet@example.com", billing_company="Initech")

    records, total = run(session, search="initech", _searchFields="company", email="jane@example.com")
    assert logins(records) == {"jane"}
    assert total == 1

    records, total = run(session, search="zzz", _searchFields="company", email="jane@example.com")
    assert records == []
    assert total == 0


# --- 2. Roles, paging, ordering ---

def test_role_filter(session: Session, directory) -> None:
    records, _ = run(session)
    assert logins(records) == {"alice", "bob", "carol", "dave"}

    records, _ = run(session, role="administrator")
    assert logins(records) == {"root"}

    # "all" is a role name like any other; nobody holds it
    records, total = run(session, role="all")
    assert records == []
    assert total == 0


def test_total_ignores_the_page_window(session: Session, make_user) -> None:
    for i in range(5):
        make_user(f"user{i}", f"user{i}@mail.test")

    records, total = run(session, page=2, per_page=2, orderby="id", order="asc")
    assert total == 5
    assert [r.username for r in records] == ["user2", "user3"]

    records, total = run(session, page=4, per_page=2)
    assert records == []
    assert total == 5


def test_default_ordering_is_newest_registration_first(session: Session, directory) -> None:
    records, _ = run(session)
    assert [r.username for r in records] == ["dave", "carol", "bob", "alice"]


def test_order_by_email_ascending(session: Session, directory) -> None:
    records, _ = run(session, orderby="email", order="asc")
    assert [r.email for r in records] == [
        "bob@mail.test",
        "carol@mail.test",
        "dave@mail.test",
        "sales@acme.io",
    ]


# --- 3. Record loading ---

def test_records_carry_roles_and_attributes(session: Session, make_user) -> None:
    make_user("multi", "multi@mail.test", roles=("subscriber", "customer"), billing_city="Leeds")

    records, _ = run(session)
    assert len(records) == 1
    assert records[0].roles == ("subscriber", "customer")
    assert records[0].attribute("billing_city") == "Leeds"
    assert records[0].attribute("billing_company") == ""


def test_registration_time_round_trips_as_naive_utc(session: Session, make_user) -> None:
    make_user("stamped", "stamped@mail.test", registered=datetime(2024, 1, 15, 14, 30, 45))
    # Left to the column default
    defaulted = UserRecord(user_login="defaulted", user_email="defaulted@mail.test")
    session.add(defaulted)
    session.commit()
    session.refresh(defaulted)
    session.add(UserRole(user_id=defaulted.id, role="customer"))
    session.commit()

    records, _ = run(session, orderby="id", order="asc")
    assert len(records) == 2
    assert records[0].registered == datetime(2024, 1, 15, 14, 30, 45)
    assert all(r.registered.tzinfo is None for r in records)


def test_cancelled_query_returns_nothing(session: Session, directory) -> None:
    cancel = threading.Event()
    cancel.set()
    plan = build_plan(CustomerListParams())

    with pytest.raises(QueryCancelledError):
        CustomerStore(session).execute(plan, cancel=cancel)


def test_escape_like() -> None:
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"


def test_unknown_predicate_node_is_rejected() -> None:
    with pytest.raises(TypeError):
        compile_predicate(object())
