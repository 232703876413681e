"""Maintup Ledger - small business accounting API, offline-first client and reports."""

__version__ = "0.1.0"

from maintup_ledger.auth import (
    InvalidPasswordError,
    PermissionDeniedError,
    can_mutate,
    demote,
    elevate,
)
from maintup_ledger.client import LedgerAPIClient, LedgerAPIError
from maintup_ledger.config import configure_logging, get_settings
from maintup_ledger.context import LedgerContext
from maintup_ledger.local_store import LocalSnapshotStore
from maintup_ledger.models import (
    OFFICE_CLIENT_ID,
    Client,
    Cost,
    CostGrid,
    Invoice,
    LedgerDocument,
    User,
)
from maintup_ledger.storage import JsonDocumentStore

__all__ = [
    # Version
    "__version__",
    # Models
    "Client",
    "Invoice",
    "Cost",
    "CostGrid",
    "User",
    "LedgerDocument",
    "OFFICE_CLIENT_ID",
    # Client side
    "LedgerContext",
    "LedgerAPIClient",
    "LedgerAPIError",
    "LocalSnapshotStore",
    # Server side
    "JsonDocumentStore",
    # Authorization
    "can_mutate",
    "elevate",
    "demote",
    "PermissionDeniedError",
    "InvalidPasswordError",
    # Config
    "get_settings",
    "configure_logging",
]
