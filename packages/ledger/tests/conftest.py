"""Pytest configuration and fixtures."""

import os
from datetime import datetime
from unittest.mock import AsyncMock

import httpx
import pytest

# Set test environment variables before importing settings
os.environ.pop("API_TOKEN", None)
os.environ.setdefault("API_URL", "http://testserver")
os.environ.setdefault("ADMIN_PASSWORD", "letmein")
os.environ.setdefault("SYNC_RETRY_INTERVAL", "30")

from fastapi.testclient import TestClient  # noqa: E402

from maintup_ledger.api import create_app  # noqa: E402
from maintup_ledger.client import LedgerAPIClient  # noqa: E402
from maintup_ledger.config import get_settings  # noqa: E402
from maintup_ledger.context import LedgerContext  # noqa: E402
from maintup_ledger.local_store import LocalSnapshotStore  # noqa: E402
from maintup_ledger.models import (  # noqa: E402
    Client,
    Cost,
    Invoice,
    User,
    UserRole,
)
from maintup_ledger.storage import JsonDocumentStore  # noqa: E402


class SwitchableTransport(httpx.AsyncBaseTransport):
    """Routes requests to the in-process app, or fails them while offline."""

    def __init__(self, app):
        self._inner = httpx.ASGITransport(app=app)
        self.online = True
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.online:
            raise httpx.ConnectError("network is down", request=request)
        return await self._inner.handle_async_request(request)


@pytest.fixture
def document_store(tmp_path):
    """Server-side document store in a temporary directory."""
    return JsonDocumentStore(tmp_path / "data.json")


@pytest.fixture
def app(document_store):
    return create_app(get_settings(), document_store)


@pytest.fixture
def http_client(app):
    """Synchronous test client for the API."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def transport(app):
    return SwitchableTransport(app)


@pytest.fixture
def api(transport):
    """LedgerAPIClient talking to the in-process app."""
    return LedgerAPIClient(base_url="http://testserver", token="", transport=transport)


@pytest.fixture
def local_store(tmp_path):
    return LocalSnapshotStore(tmp_path / "local.json")


@pytest.fixture
def admin_user():
    return User(id="1", name="Admin User", email="admin@maintup.fr", role=UserRole.ADMIN)


@pytest.fixture
def context(api, local_store, admin_user):
    """Context wired to the in-process API with a fast retry loop."""
    return LedgerContext(api, local_store, current_user=admin_user, sync_retry_interval=0.01)


@pytest.fixture
def mock_httpx_client():
    """Create a mock httpx AsyncClient."""
    client = AsyncMock()
    client.request = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def mock_client_response():
    """Mock created client response."""
    return {
        "id": "1741000000000",
        "name": "Acme",
        "email": "a@x.com",
        "phone": "0102030405",
        "address": "1 Rue X",
        "createdAt": "2025-03-01T09:30:00",
        "totalInvoices": 0,
        "totalCosts": 0,
        "totalProfit": 0,
    }


@pytest.fixture
def clients():
    return [
        Client(id="c1", name="Acme", created_at=datetime(2025, 1, 2)),
        Client(id="c2", name="Globex", created_at=datetime(2025, 1, 5)),
    ]


@pytest.fixture
def invoices():
    """Invoices across statuses, months and years."""
    return [
        Invoice(
            id="i1", client_id="c1", client_name="Acme", number="F-001",
            amount_ht=100, tva=20, status="paid",
            issue_date=datetime(2025, 3, 3), due_date=datetime(2025, 4, 3),
        ),
        Invoice(
            id="i2", client_id="c2", client_name="Globex", number="F-002",
            amount_ht=200, tva=40, status="pending",
            issue_date=datetime(2025, 3, 20), due_date=datetime(2025, 4, 20),
        ),
        Invoice(
            id="i3", client_id="c1", client_name="Acme", number="F-003",
            amount_ht=500, tva=100, status="overdue",
            issue_date=datetime(2025, 3, 25), due_date=datetime(2025, 4, 25),
        ),
        Invoice(
            id="i4", client_id="c1", client_name="Acme", number="F-004",
            amount_ht=300, tva=60, status="paid",
            issue_date=datetime(2024, 3, 10), due_date=datetime(2024, 4, 10),
        ),
    ]


@pytest.fixture
def costs():
    return [
        Cost(
            id="k1", client_id="c1", client_name="Acme", invoice_id="i1",
            description="Cables", amount=50, category="materials",
            date=datetime(2025, 3, 12),
        ),
        Cost(
            id="k2", client_id="office", client_name="Charges Bureau",
            description="Google Workspace", amount=30, category="office",
            office_type="fixed", office_category="Google",
            date=datetime(2025, 5, 1),
        ),
        Cost(
            id="k3", client_id="c2", client_name="Globex",
            description="Fuel", amount=40, category="transport",
            date=datetime(2024, 3, 2),
        ),
    ]
