"""HTTP API serving the ledger document."""

from maintup_ledger.api.app import create_app

__all__ = ["create_app"]
