"""Client-side data context: the working copy of the ledger and its sync state.

The context mirrors the four collections held by the API. Every mutation is
tried against the API first. When that fails the change is applied locally
only and the whole document is flagged ``unsynced``; there is no per-operation
queue. A later bulk sync pushes the full local copy to the server, which
replaces whatever the server held (last writer wins).

Usage:
    async with LedgerContext(current_user=admin) as ctx:
        await ctx.add_client({"name": "Acme"})
        report = ctx.annual_report(2025)
"""

import asyncio
import contextlib
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog
from pydantic import ValidationError

from maintup_ledger import aggregation, auth
from maintup_ledger.auth import require_admin
from maintup_ledger.client import LedgerAPIClient, LedgerAPIError
from maintup_ledger.config import get_settings
from maintup_ledger.local_store import LocalSnapshotStore
from maintup_ledger.models import (
    AnnualReport,
    Client,
    Cost,
    CostGrid,
    Invoice,
    LedgerDocument,
    LedgerModel,
    LocalSnapshot,
    MonthlyClientData,
    MonthlyData,
    MonthlyReport,
    OfficeMonthBreakdown,
    User,
    default_user,
    generate_id,
)

logger = structlog.get_logger(__name__)

Listener = Callable[["LedgerContext"], None]


def _client_local_defaults() -> dict[str, Any]:
    return {
        "createdAt": datetime.now().isoformat(),
        "totalInvoices": 0,
        "totalCosts": 0,
        "totalProfit": 0,
    }


@dataclass(frozen=True)
class _Collection:
    """How one collection maps onto the API and onto context state."""

    path: str
    attr: str
    model: type[LedgerModel]
    local_defaults: Callable[[], dict[str, Any]] = dict


_COLLECTIONS: dict[str, _Collection] = {
    "client": _Collection("clients", "clients", Client, _client_local_defaults),
    "invoice": _Collection("invoices", "invoices", Invoice),
    "cost": _Collection("costs", "costs", Cost),
    "cost_grid": _Collection("costGrids", "cost_grids", CostGrid),
}


class LedgerContext:
    """Working copy of the ledger with optimistic writes and bulk re-sync."""

    def __init__(
        self,
        api: LedgerAPIClient | None = None,
        local_store: LocalSnapshotStore | None = None,
        *,
        current_user: User | None = None,
        sync_retry_interval: float | None = None,
        admin_password: str | None = None,
    ):
        settings = get_settings()
        self._api = api or LedgerAPIClient()
        self._local_store = local_store or LocalSnapshotStore(settings.local_store_file)
        self._retry_interval = (
            sync_retry_interval
            if sync_retry_interval is not None
            else settings.sync_retry_interval
        )
        if admin_password is None and settings.admin_password is not None:
            admin_password = settings.admin_password.get_secret_value()
        self._admin_password = admin_password

        self.current_user: User = current_user or default_user()
        self.clients: list[Client] = []
        self.invoices: list[Invoice] = []
        self.costs: list[Cost] = []
        self.cost_grids: list[CostGrid] = []
        self.unsynced = False
        self.api_available = True

        self._retry_task: asyncio.Task[None] | None = None
        self._sync_lock = asyncio.Lock()
        # Bumped on every change left unsynced, so a sync can tell it was overtaken
        self._dirty_revision = 0
        self._listeners: list[Listener] = []
        self._logger = logger.bind(component="ledger_context")

    async def __aenter__(self) -> "LedgerContext":
        await self.load()
        self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop the retry loop and release the HTTP client."""
        await self.stop()
        await self._api.close()

    # === State ===

    def document(self) -> LedgerDocument:
        return LedgerDocument(
            clients=list(self.clients),
            invoices=list(self.invoices),
            costs=list(self.costs),
            cost_grids=list(self.cost_grids),
        )

    def snapshot(self) -> LocalSnapshot:
        return LocalSnapshot(
            clients=list(self.clients),
            invoices=list(self.invoices),
            costs=list(self.costs),
            cost_grids=list(self.cost_grids),
            unsynced=self.unsynced,
        )

    def _apply_document(self, document: LedgerDocument) -> None:
        self.clients = list(document.clients)
        self.invoices = list(document.invoices)
        self.costs = list(document.costs)
        self.cost_grids = list(document.cost_grids)

    def _persist(self, dirty: bool | None = None) -> None:
        """Save the snapshot; ``dirty`` overrides the unsynced flag when given."""
        if dirty is not None:
            self.unsynced = dirty
        if dirty:
            self._dirty_revision += 1
        self._local_store.save(self.snapshot())
        self._notify()

    def add_listener(self, listener: Listener) -> None:
        """Register a callback run after every state change."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                self._logger.error("listener_error", error=str(e))

    # === Session role ===

    def elevate(self, password: str | None) -> User:
        """Switch the session to admin when ``password`` matches ADMIN_PASSWORD.

        Raises:
            InvalidPasswordError: the password is wrong or none is configured.
        """
        self.current_user = auth.elevate(self.current_user, password, self._admin_password)
        self._notify()
        return self.current_user

    def demote(self) -> User:
        self.current_user = auth.demote(self.current_user)
        self._notify()
        return self.current_user

    def toggle_role(self, password: str | None = None) -> User:
        """Admins drop to viewer; viewers need the admin password to go up."""
        if self.current_user.is_admin:
            return self.demote()
        return self.elevate(password)

    # === Startup ===

    async def load(self) -> None:
        """Load state from the API, falling back to (or preferring) the local snapshot.

        - API unreachable: the local snapshot becomes the working copy.
        - API reachable, snapshot flagged unsynced: the local copy wins and is
          pushed to the server right away.
        - Otherwise the server copy wins and overwrites the snapshot.
        """
        stored = self._local_store.load()
        if stored is not None:
            self.unsynced = stored.unsynced

        try:
            remote = await self._api.fetch_all()
        except LedgerAPIError as e:
            self.api_available = False
            self._logger.warning("api_unavailable", error=str(e), has_snapshot=stored is not None)
            if stored is not None:
                self._apply_document(stored)
            self._notify()
            return

        self.api_available = True
        if stored is not None and stored.unsynced:
            self._logger.info("local_snapshot_wins", reason="unsynced")
            self._apply_document(stored)
            await self.sync()
            return

        self._apply_document(LedgerDocument.from_rows(remote))
        self._persist(dirty=False)
        self._logger.info(
            "loaded_from_api",
            clients=len(self.clients),
            invoices=len(self.invoices),
            costs=len(self.costs),
            cost_grids=len(self.cost_grids),
        )

    # === Sync & recovery ===

    async def sync(self) -> bool:
        """Push the whole local document to the server.

        Returns True on success. Failure never raises: the document stays
        flagged unsynced and the API is marked unavailable. A push overtaken
        by an offline change also returns False and keeps the flag set.
        """
        async with self._sync_lock:
            revision = self._dirty_revision
            document = self.document()
            try:
                await self._api.sync(document.to_wire())
            except LedgerAPIError as e:
                self._logger.warning("sync_failed", error=str(e))
                self.api_available = False
                self._persist(dirty=True)
                return False

            if revision != self._dirty_revision:
                # A change made while the push was in flight is not on the server
                self._logger.info("sync_superseded")
                self._persist()
                return False

            self.api_available = True
            self._persist(dirty=False)
            self._logger.info("sync_completed")
            return True

    async def notify_online(self) -> bool:
        """Connectivity came back: attempt a bulk sync immediately."""
        self._logger.info("connectivity_restored")
        return await self.sync()

    def start(self) -> None:
        """Start the background loop retrying sync while the API is unavailable."""
        if self._retry_task is None or self._retry_task.done():
            self._retry_task = asyncio.create_task(self._retry_loop())

    async def stop(self) -> None:
        if self._retry_task is not None:
            self._retry_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._retry_task
            self._retry_task = None

    @property
    def is_running(self) -> bool:
        return self._retry_task is not None and not self._retry_task.done()

    async def _retry_loop(self) -> None:
        while True:
            await asyncio.sleep(self._retry_interval)
            if not self.api_available:
                self._logger.debug("sync_retry")
                await self.sync()

    # === Generic mutations ===

    def _items(self, collection: _Collection) -> list[Any]:
        return getattr(self, collection.attr)

    def _set_items(self, collection: _Collection, items: list[Any]) -> None:
        setattr(self, collection.attr, items)

    def _confirmed(
        self, collection: _Collection, raw: dict[str, Any], fallback: LedgerModel | None
    ) -> LedgerModel | None:
        """Model the server's answer, keeping ``fallback`` when the stored row is incomplete."""
        try:
            return collection.model.model_validate(raw)
        except ValidationError as e:
            self._logger.warning(
                "server_row_invalid",
                path=collection.path,
                id=raw.get("id"),
                errors=e.error_count(),
            )
            return fallback

    async def _add(self, kind: str, data: Mapping[str, Any]) -> Any:
        require_admin(self.current_user, f"add a {kind.replace('_', ' ')}")
        collection = _COLLECTIONS[kind]
        payload = collection.model.to_wire_changes(data)
        payload.pop("id", None)
        # Invalid input raises here, before anything reaches the server
        draft = collection.model.model_validate(
            {**collection.local_defaults(), "id": generate_id(), **payload}
        )

        dirty: bool | None = None
        try:
            raw = await self._api.create(collection.path, payload)
            fallback = draft.model_copy(update={"id": str(raw.get("id", draft.id))})
            entity = self._confirmed(collection, raw, fallback)
        except LedgerAPIError as e:
            self._logger.warning("offline_add", kind=kind, error=str(e))
            entity = draft
            self.api_available = False
            dirty = True

        self._set_items(collection, [*self._items(collection), entity])
        self._persist(dirty=dirty)
        return entity

    async def _update(self, kind: str, entity_id: str, changes: Mapping[str, Any]) -> Any:
        require_admin(self.current_user, f"update a {kind.replace('_', ' ')}")
        collection = _COLLECTIONS[kind]
        payload = collection.model.to_wire_changes(changes)
        payload.pop("id", None)
        current = next(
            (item for item in self._items(collection) if item.id == entity_id), None
        )
        # Invalid changes raise here, before anything reaches the server
        local = current.merged(payload) if current is not None else None

        dirty: bool | None = None
        try:
            raw = await self._api.update(collection.path, entity_id, payload)
            updated = self._confirmed(collection, raw, local)
        except LedgerAPIError as e:
            self._logger.warning("offline_update", kind=kind, id=entity_id, error=str(e))
            updated = local
            self.api_available = False
            dirty = True

        if current is None:
            self._persist(dirty=dirty)
            return None
        self._set_items(
            collection,
            [updated if item.id == entity_id else item for item in self._items(collection)],
        )
        self._persist(dirty=dirty)
        return updated

    async def _delete_remote(self, collection: _Collection, entity_id: str) -> bool:
        try:
            await self._api.delete(collection.path, entity_id)
        except LedgerAPIError as e:
            self._logger.warning("offline_delete", path=collection.path, id=entity_id, error=str(e))
            self.api_available = False
            return False
        return True

    async def _delete(
        self, kind: str, entity_id: str, cascade: Callable[[], list[tuple[str, str]]] | None = None
    ) -> None:
        require_admin(self.current_user, f"delete a {kind.replace('_', ' ')}")
        collection = _COLLECTIONS[kind]
        # Children are collected before the parent disappears locally
        children = cascade() if cascade is not None else []

        confirmed = await self._delete_remote(collection, entity_id)
        # The server does not cascade, so children are deleted one by one
        if confirmed:
            for child_kind, child_id in children:
                if not await self._delete_remote(_COLLECTIONS[child_kind], child_id):
                    confirmed = False
                    break

        self._set_items(collection, [item for item in self._items(collection) if item.id != entity_id])
        removed = {(child_kind, child_id) for child_kind, child_id in children}
        for child_kind in {child_kind for child_kind, _ in children}:
            child_collection = _COLLECTIONS[child_kind]
            self._set_items(
                child_collection,
                [
                    item
                    for item in self._items(child_collection)
                    if (child_kind, item.id) not in removed
                ],
            )
        self._persist(dirty=None if confirmed else True)

    # === Clients ===

    async def add_client(self, data: Mapping[str, Any]) -> Client:
        return await self._add("client", data)

    async def update_client(self, client_id: str, changes: Mapping[str, Any]) -> Client | None:
        changes = {k: v for k, v in changes.items() if k not in ("createdAt", "created_at")}
        return await self._update("client", client_id, changes)

    async def delete_client(self, client_id: str) -> None:
        """Delete a client together with its invoices and costs."""

        def children() -> list[tuple[str, str]]:
            return [
                ("invoice", inv.id) for inv in self.invoices if inv.client_id == client_id
            ] + [("cost", cost.id) for cost in self.costs if cost.client_id == client_id]

        await self._delete("client", client_id, cascade=children)

    # === Invoices ===

    async def add_invoice(self, data: Mapping[str, Any]) -> Invoice:
        return await self._add("invoice", data)

    async def update_invoice(
        self, invoice_id: str, changes: Mapping[str, Any]
    ) -> Invoice | None:
        return await self._update("invoice", invoice_id, changes)

    async def delete_invoice(self, invoice_id: str) -> None:
        """Delete an invoice together with the costs linked to it."""

        def children() -> list[tuple[str, str]]:
            return [("cost", cost.id) for cost in self.costs if cost.invoice_id == invoice_id]

        await self._delete("invoice", invoice_id, cascade=children)

    # === Costs ===

    async def add_cost(self, data: Mapping[str, Any]) -> Cost:
        return await self._add("cost", data)

    async def update_cost(self, cost_id: str, changes: Mapping[str, Any]) -> Cost | None:
        return await self._update("cost", cost_id, changes)

    async def delete_cost(self, cost_id: str) -> None:
        await self._delete("cost", cost_id)

    # === Cost grids ===

    async def add_cost_grid(self, data: Mapping[str, Any]) -> CostGrid:
        return await self._add("cost_grid", data)

    async def update_cost_grid(
        self, grid_id: str, changes: Mapping[str, Any]
    ) -> CostGrid | None:
        return await self._update("cost_grid", grid_id, changes)

    async def delete_cost_grid(self, grid_id: str) -> None:
        await self._delete("cost_grid", grid_id)

    # === Analytics ===

    def monthly_data(self, year: int | None = None) -> list[MonthlyData]:
        return aggregation.monthly_data(self.invoices, self.costs, year)

    def total_revenue(self) -> float:
        return aggregation.total_revenue(self.invoices)

    def total_costs(self) -> float:
        return aggregation.total_costs(self.costs)

    def total_profit(self) -> float:
        return aggregation.total_profit(self.invoices, self.costs)

    def client_revenue(self, client_id: str) -> float:
        return aggregation.client_revenue(self.invoices, client_id)

    def client_profit(self, client_id: str) -> float:
        return aggregation.client_profit(self.invoices, self.costs, client_id)

    def client_monthly_data(
        self, client_id: str, year: int | None = None
    ) -> list[MonthlyClientData]:
        return aggregation.client_monthly_data(self.invoices, self.costs, client_id, year)

    def annual_report(self, year: int) -> AnnualReport:
        return aggregation.annual_report(self.clients, self.invoices, self.costs, year)

    def monthly_report(self, month: int, year: int) -> MonthlyReport:
        return aggregation.monthly_report(self.invoices, self.costs, month, year)

    def invoice_status_counts(self) -> dict[str, int]:
        return aggregation.invoice_status_counts(self.invoices)

    def pending_amount(self) -> float:
        return aggregation.pending_amount(self.invoices)

    def office_costs_by_type(self, year: int | None = None) -> list[OfficeMonthBreakdown]:
        return aggregation.office_costs_by_type(self.costs, year)

    def client_analytics_summary(
        self, client_id: str, year: int | None = None
    ) -> dict[str, Any]:
        """Totals over a client's monthly series for the analytics header."""
        return aggregation.client_analytics_summary(
            self.client_monthly_data(client_id, year)
        )
