from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status

from quickbite.menu.schemas import HealthStatus, MenuItem, MenuItemPayload, parse_update_payload
from quickbite.menu.store import MenuItemStore

router = APIRouter(prefix="/items", tags=["Menu Items"])


def get_store(request: Request) -> MenuItemStore:
    return request.app.state.store


StoreDep = Annotated[MenuItemStore, Depends(get_store)]


@router.get("", response_model=list[MenuItem])
def list_menu_items(store: StoreDep) -> list[MenuItem]:
    return store.list_items()


@router.get("/health", response_model=HealthStatus, tags=["Health"])
def menu_health(request: Request) -> HealthStatus:
    settings = request.app.state.settings
    return HealthStatus(
        status="Healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        service=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get("/search/{name}", response_model=list[MenuItem])
def search_menu_items(name: str, store: StoreDep) -> list[MenuItem]:
    return store.search_by_name(name)


@router.get("/category/{category}", response_model=list[MenuItem])
def filter_by_category(category: str, store: StoreDep) -> list[MenuItem]:
    return store.filter_by_category(category)


@router.get("/dietary/{dietary_tag}", response_model=list[MenuItem])
def filter_by_dietary_tag(dietary_tag: str, store: StoreDep) -> list[MenuItem]:
    return store.filter_by_dietary_tag(dietary_tag)


@router.get("/price-range", response_model=list[MenuItem])
def filter_by_price_range(
    store: StoreDep,
    min_price: Annotated[Decimal, Query(alias="minPrice")],
    max_price: Annotated[Decimal, Query(alias="maxPrice")],
) -> list[MenuItem]:
    return store.filter_by_price_range(min_price, max_price)


@router.get("/{item_id}", response_model=MenuItem)
def get_menu_item(item_id: int, store: StoreDep) -> MenuItem:
    return store.get_item(item_id)


@router.post("", response_model=MenuItem, status_code=status.HTTP_201_CREATED)
def create_menu_item(
    payload: MenuItemPayload,
    request: Request,
    response: Response,
    store: StoreDep,
) -> MenuItem:
    item = store.create_item(payload)
    response.headers["Location"] = str(request.url_for("get_menu_item", item_id=item.id))
    return item


_UPDATE_BODY_DOCS = {
    "requestBody": {
        "required": True,
        "content": {"application/json": {"schema": MenuItemPayload.model_json_schema(by_alias=True)}},
    }
}


@router.put("/{item_id}", status_code=status.HTTP_204_NO_CONTENT, openapi_extra=_UPDATE_BODY_DOCS)
def update_menu_item(
    item_id: int,
    body: Annotated[dict[str, Any], Body()],
    store: StoreDep,
) -> Response:
    """Replace every field of an item. The body must repeat the item id."""
    payload = parse_update_payload(item_id, body)
    store.update_item(item_id, payload)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_menu_item(item_id: int, store: StoreDep) -> Response:
    store.delete_item(item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
