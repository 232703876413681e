"""Generic CRUD routers over the stored collections, plus bulk sync."""

from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response, status

from maintup_ledger.models import generate_id
from maintup_ledger.storage import JsonDocumentStore

logger = structlog.get_logger(__name__)

# Fields a PUT body can never overwrite
_IMMUTABLE_FIELDS: dict[str, tuple[str, ...]] = {
    "clients": ("id", "createdAt"),
    "invoices": ("id",),
    "costs": ("id",),
    "costGrids": ("id",),
}


def _store(request: Request) -> JsonDocumentStore:
    return request.app.state.store


def _client_defaults() -> dict[str, Any]:
    return {
        "createdAt": datetime.now().isoformat(),
        "totalInvoices": 0,
        "totalCosts": 0,
        "totalProfit": 0,
    }


def derive_invoice_total(item: dict[str, Any]) -> dict[str, Any]:
    """Recompute amountTTC from amountHT and tva when both are numbers."""
    amount_ht = item.get("amountHT")
    tva = item.get("tva")
    if isinstance(amount_ht, int | float) and isinstance(tva, int | float):
        item["amountTTC"] = amount_ht + tva
    return item


def collection_router(collection: str, guard: Callable[..., None]) -> APIRouter:
    """Build list/create/update/delete routes for one collection."""
    router = APIRouter(prefix=f"/{collection}", tags=[collection])
    derive = derive_invoice_total if collection == "invoices" else None

    @router.get("")
    def list_items(store: JsonDocumentStore = Depends(_store)) -> list[dict[str, Any]]:
        return store.list_items(collection)

    @router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(guard)])
    def create_item(
        payload: dict[str, Any] = Body(...),
        store: JsonDocumentStore = Depends(_store),
    ) -> dict[str, Any]:
        item: dict[str, Any] = {"id": generate_id(), **payload}
        if collection == "clients":
            item = {**_client_defaults(), **item}
        if derive is not None:
            item = derive(item)
        store.insert(collection, item)
        logger.info("item_created", collection=collection, id=item["id"])
        return item

    @router.put("/{item_id}", dependencies=[Depends(guard)])
    def update_item(
        item_id: str,
        payload: dict[str, Any] = Body(...),
        store: JsonDocumentStore = Depends(_store),
    ) -> dict[str, Any]:
        changes = {
            key: value
            for key, value in payload.items()
            if key not in _IMMUTABLE_FIELDS[collection]
        }
        updated = store.update(collection, item_id, changes, derive=derive)
        if updated is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
        logger.info("item_updated", collection=collection, id=item_id)
        return updated

    @router.delete(
        "/{item_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        dependencies=[Depends(guard)],
    )
    def delete_item(item_id: str, store: JsonDocumentStore = Depends(_store)) -> Response:
        removed = store.delete(collection, item_id)
        logger.info("item_deleted", collection=collection, id=item_id, removed=removed)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router


def sync_router(guard: Callable[..., None]) -> APIRouter:
    """Bulk overwrite of the whole document (last writer wins)."""
    router = APIRouter(tags=["sync"])

    @router.post(
        "/sync",
        status_code=status.HTTP_204_NO_CONTENT,
        dependencies=[Depends(guard)],
    )
    def sync(
        payload: dict[str, Any] = Body(...),
        store: JsonDocumentStore = Depends(_store),
    ) -> Response:
        store.replace_all(payload)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router
