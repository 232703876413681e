"""Client-side access to the ledger API."""

from maintup_ledger.client.api_client import (
    AuthenticationError,
    ConnectionFailedError,
    LedgerAPIClient,
    LedgerAPIError,
    NotFoundError,
)

__all__ = [
    "LedgerAPIClient",
    "LedgerAPIError",
    "ConnectionFailedError",
    "AuthenticationError",
    "NotFoundError",
]
