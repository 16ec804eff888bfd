"""Declares the customer fields: where each lives in the store, which are
searchable, which request contexts expose them, and the public parameter and
item schemas of the customers collection."""

from collections.abc import Iterable, Sequence
from typing import Any

from customer_directory.domain.query import (
    OrderBy,
    RequestContext,
    SearchField,
    SortOrder,
    StoreColumn,
)


DEFAULT_SEARCH_FIELDS: frozenset[SearchField] = frozenset(SearchField)

# Column-backed fields search the primary user table directly
SEARCH_FIELD_COLUMNS: dict[SearchField, tuple[StoreColumn, ...]] = {
    SearchField.EMAIL: (StoreColumn.USER_EMAIL,),
    SearchField.USERNAME: (StoreColumn.USER_LOGIN, StoreColumn.USER_NICENAME),
}

# Attribute-backed fields search the key/value attribute table
SEARCH_FIELD_ATTRIBUTES: dict[SearchField, str] = {
    SearchField.FIRST_NAME: "first_name",
    SearchField.LAST_NAME: "last_name",
    SearchField.COMPANY: "billing_company",
}

# Public address key -> stored attribute key
BILLING_ATTRIBUTE_KEYS: dict[str, str] = {
    key: f"billing_{key}"
    for key in (
        "first_name", "last_name", "company", "address_1", "address_2",
        "city", "state", "postcode", "country", "email", "phone",
    )
}
SHIPPING_ATTRIBUTE_KEYS: dict[str, str] = {
    key: f"shipping_{key}"
    for key in (
        "first_name", "last_name", "company", "address_1", "address_2",
        "city", "state", "postcode", "country", "phone",
    )
}

PAYING_CUSTOMER_KEY = "paying_customer"
DEFAULT_FILTER_ROLES: frozenset[str] = frozenset({"customer", "subscriber"})
DEFAULT_DISPLAY_ROLE = "customer"

_ALL_CONTEXTS = frozenset(RequestContext)

# Output field -> contexts it is returned in. No field is edit-only today.
FIELD_CONTEXTS: dict[str, frozenset[RequestContext]] = {
    name: _ALL_CONTEXTS
    for name in (
        "id", "date_created", "date_created_gmt", "date_modified", "date_modified_gmt",
        "email", "first_name", "last_name", "role", "username", "billing", "shipping",
        "is_paying_customer", "avatar_url", "meta_data",
    )
}


def resolve_search_fields(requested: str | Sequence[str] | None) -> frozenset[SearchField]:
    """Turns the raw ``_searchFields`` value into a non-empty set of fields.

    A string is split on commas and each token trimmed. Tokens outside the
    closed SearchField set are dropped silently. When nothing valid remains,
    including when nothing was requested, every field is searched.

    Args:
        requested: Comma-separated string, list of names, or None.

    Returns:
        frozenset[SearchField]: The fields to search, never empty.
    """
    if not requested:
        return DEFAULT_SEARCH_FIELDS

    if isinstance(requested, str):
        tokens: Iterable[str] = (token.strip() for token in requested.split(","))
    else:
        tokens = (str(token).strip() for token in requested)

    valid_names = {field.value for field in SearchField}
    resolved = frozenset(SearchField(token) for token in tokens if token in valid_names)
    return resolved or DEFAULT_SEARCH_FIELDS


def partition_search_fields(
    fields: Iterable[SearchField],
) -> tuple[tuple[StoreColumn, ...], tuple[str, ...]]:
    """Splits fields into (columns, attribute keys), in SearchField order."""
    selected = set(fields)
    columns: list[StoreColumn] = []
    attribute_keys: list[str] = []
    for field in SearchField:
        if field not in selected:
            continue
        for column in SEARCH_FIELD_COLUMNS.get(field, ()):
            if column not in columns:
                columns.append(column)
        if field in SEARCH_FIELD_ATTRIBUTES:
            attribute_keys.append(SEARCH_FIELD_ATTRIBUTES[field])
    return tuple(columns), tuple(attribute_keys)


def filter_by_context(data: dict[str, Any], context: RequestContext) -> dict[str, Any]:
    """Drops the fields that are not declared for ``context``.

    Keys without a declaration (links, for instance) are always kept.
    """
    return {
        key: value
        for key, value in data.items()
        if key not in FIELD_CONTEXTS or context in FIELD_CONTEXTS[key]
    }


def collection_params(known_roles: Sequence[str]) -> dict[str, dict[str, Any]]:
    """Public description of every ``GET /customers`` query parameter."""
    return {
        "context": {
            "description": "Scope under which the request is made.",
            "type": "string",
            "default": RequestContext.VIEW.value,
            "enum": [c.value for c in RequestContext],
        },
        "page": {
            "description": "Current page of the collection.",
            "type": "integer",
            "default": 1,
            "minimum": 1,
        },
        "per_page": {
            "description": "Maximum number of items to be returned in result set.",
            "type": "integer",
            "default": 10,
            "minimum": 1,
            "maximum": 100,
        },
        "search": {
            "description": "Limit results to those matching a string.",
            "type": "string",
        },
        "_searchFields": {
            "description": (
                "Comma-separated list of fields to search in. Valid values: "
                + ", ".join(f.value for f in SearchField) + "."
            ),
            "type": "string",
        },
        "email": {
            "description": "Limit results to those matching a specific email.",
            "type": "string",
            "format": "email",
        },
        "role": {
            "description": "Limit results to those matching a specific role.",
            "type": "string",
            "enum": ["all", *known_roles],
        },
        "orderby": {
            "description": "Sort collection by attribute.",
            "type": "string",
            "default": OrderBy.REGISTERED.value,
            "enum": [o.value for o in OrderBy],
        },
        "order": {
            "description": "Order sort attribute ascending or descending.",
            "type": "string",
            "default": SortOrder.DESC.value,
            "enum": [o.value for o in SortOrder],
        },
    }


def _address_schema(description: str, keys: Iterable[str]) -> dict[str, Any]:
    return {
        "description": description,
        "type": "object",
        "context": sorted(c.value for c in _ALL_CONTEXTS),
        "properties": {key: {"type": "string"} for key in keys},
    }


def item_schema() -> dict[str, Any]:
    """JSON schema of a customer, annotated with contexts and read-only flags."""
    def prop(name: str, description: str, type_: Any, readonly: bool = False, **extra: Any) -> dict[str, Any]:
        entry = {
            "description": description,
            "type": type_,
            "context": sorted(c.value for c in FIELD_CONTEXTS[name]),
            **extra,
        }
        if readonly:
            entry["readonly"] = True
        return entry

    properties = {
        "id": prop("id", "Unique identifier for the resource.", "integer", readonly=True),
        "date_created": prop("date_created", "The date the customer was created, in the site's timezone.", "string", readonly=True, format="date-time"),
        "date_created_gmt": prop("date_created_gmt", "The date the customer was created, as GMT.", "string", readonly=True, format="date-time"),
        "date_modified": prop("date_modified", "The date the customer was last modified, in the site's timezone.", ["string", "null"], readonly=True, format="date-time"),
        "date_modified_gmt": prop("date_modified_gmt", "The date the customer was last modified, as GMT.", ["string", "null"], readonly=True, format="date-time"),
        "email": prop("email", "The email address for the customer.", "string", format="email"),
        "first_name": prop("first_name", "Customer first name.", "string"),
        "last_name": prop("last_name", "Customer last name.", "string"),
        "role": prop("role", "Customer role.", "string", readonly=True),
        "username": prop("username", "Customer login name.", "string", readonly=True),
        "billing": _address_schema("List of billing address data.", BILLING_ATTRIBUTE_KEYS),
        "shipping": _address_schema("List of shipping address data.", SHIPPING_ATTRIBUTE_KEYS),
        "is_paying_customer": prop("is_paying_customer", "Is the customer a paying customer?", "boolean", readonly=True),
        "avatar_url": prop("avatar_url", "Avatar URL.", "string", readonly=True),
        "meta_data": prop("meta_data", "Meta data.", "array", items={"type": "object"}),
    }
    return {
        "$schema": "http://json-schema.org/draft-04/schema#",
        "title": "customer",
        "type": "object",
        "properties": properties,
    }
