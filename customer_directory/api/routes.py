from collections.abc import Callable
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from pydantic import BaseModel, ConfigDict, ValidationError
from sqlmodel import Session

# Security
from customer_directory.api.auth import LIST_USERS, require_capability
from customer_directory.core.config import settings
from customer_directory.core.errors import invalid_params

# Layer 4: Data Access (Session)
from customer_directory.data_access.database import get_session

# Layer 3: Domain Entities
from customer_directory.domain.customer import CustomerListParams, CustomerView
from customer_directory.domain.query import OrderBy, RequestContext, SortOrder

# Layer 2: Services
from customer_directory.services.avatar_service import GravatarService
from customer_directory.services.customer_projector import RESOURCE_NAME, CustomerProjector
from customer_directory.services.customer_service import CustomerService
from customer_directory.services.field_registry import collection_params, item_schema


avatar_service = GravatarService()

def get_projector(request: Request) -> CustomerProjector:
    """Builds the projector for the host the request was addressed to."""
    base_url = settings.PUBLIC_BASE_URL or str(request.base_url)
    return CustomerProjector(
        namespace=settings.API_NAMESPACE,
        base_url=base_url,
        avatar_url=avatar_service,
        timezone=settings.SITE_TIMEZONE,
    )


# --- 1. CUSTOMERS ---
def list_customers(
    response: Response,
    session: Annotated[Session, Depends(get_session)],
    projector: Annotated[CustomerProjector, Depends(get_projector)],
    page: Annotated[int, Query(ge=1, description="Current page of the collection.")] = 1,
    per_page: Annotated[
        int, Query(ge=1, le=100, description="Maximum number of items to be returned in result set.")
    ] = 10,
    search: Annotated[Optional[str], Query(description="Limit results to those matching a string.")] = None,
    search_fields: Annotated[
        Optional[str],
        Query(
            alias="_searchFields",
            description="Comma-separated list of fields to search in. Valid values: email, first_name, last_name, company, username.",
        ),
    ] = None,
    email: Annotated[Optional[str], Query(description="Limit results to those matching a specific email.")] = None,
    role: Annotated[Optional[str], Query(description="Limit results to those matching a specific role.")] = None,
    orderby: Annotated[OrderBy, Query(description="Sort collection by attribute.")] = OrderBy.REGISTERED,
    order: Annotated[SortOrder, Query(description="Order sort attribute ascending or descending.")] = SortOrder.DESC,
    context: Annotated[RequestContext, Query(description="Scope under which the request is made.")] = RequestContext.VIEW,
) -> list[CustomerView]:
    """Lists customer accounts, filtered, searched, sorted and paginated.
    Totals of the unpaginated result are returned in the X-WP-Total and
    X-WP-TotalPages headers.

    The route is synchronous and runs without a cancel token: a client that
    disconnects does not stop the store queries. Callers needing that pass
    ``cancel`` to ``CustomerService.list_customers`` directly.
    """
    try:
        params = CustomerListParams.model_validate(
            {
                "page": page,
                "per_page": per_page,
                "search": search,
                "_searchFields": search_fields,
                "email": email,
                "role": role,
                "orderby": orderby,
                "order": order,
                "context": context,
            },
            context={"known_roles": settings.KNOWN_ROLES},
        )
    except ValidationError as e:
        raise invalid_params(list(e.errors()))

    service = CustomerService(session, projector)
    views, totals = service.list_customers(params)
    response.headers.update(totals.headers())
    return views


def describe_customers() -> dict[str, Any]:
    """Describes the customers collection: accepted parameters and item schema."""
    path = f"/{RESOURCE_NAME}"
    endpoints = [
        {"methods": [route.method], "args": route.args()}
        for route in ROUTES
        if route.path == path and route.args is not None
    ]
    return {
        "namespace": settings.API_NAMESPACE,
        "methods": [endpoint["methods"][0] for endpoint in endpoints],
        "endpoints": endpoints,
        "schema": item_schema(),
    }


# --- 2. HEALTH ---
def get_health() -> dict[str, str]:
    """Liveness check. No authentication."""
    return {"status": "ok"}


# --- Route Registration Table ---
class RouteSpec(BaseModel):
    """One (method, path) entry: handler, permission dependency, parameter schema."""
    method: str
    path: str
    handler: Callable[..., Any]
    permission: Optional[Callable[..., Any]] = None
    args: Optional[Callable[[], dict[str, Any]]] = None
    summary: str = ""
    tags: list[str] = []

    model_config = ConfigDict(frozen=True)


ROUTES: tuple[RouteSpec, ...] = (
    RouteSpec(
        method="GET",
        path=f"/{RESOURCE_NAME}",
        handler=list_customers,
        permission=require_capability(LIST_USERS),
        args=lambda: collection_params(settings.KNOWN_ROLES),
        summary="List customers",
        tags=["Customers"],
    ),
    RouteSpec(
        method="OPTIONS",
        path=f"/{RESOURCE_NAME}",
        handler=describe_customers,
        summary="Describe the customers collection",
        tags=["Customers"],
    ),
    RouteSpec(
        method="GET",
        path="/health",
        handler=get_health,
        summary="Health check",
        tags=["Health"],
    ),
)


def build_router(routes: tuple[RouteSpec, ...] = ROUTES) -> APIRouter:
    """Registers every RouteSpec under the configured namespace."""
    router = APIRouter(prefix=f"/{settings.API_NAMESPACE.strip('/')}")
    for route in routes:
        dependencies = [Depends(route.permission)] if route.permission else []
        router.add_api_route(
            route.path,
            route.handler,
            methods=[route.method],
            dependencies=dependencies,
            summary=route.summary or None,
            tags=list(route.tags),
        )
    return router


router = build_router()
