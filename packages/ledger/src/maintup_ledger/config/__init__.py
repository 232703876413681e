"""Configuration module for Maintup Ledger."""

from maintup_ledger.config.logging import configure_logging
from maintup_ledger.config.office_catalogue import (
    OFFICE_TYPES,
    load_office_catalogue,
    office_categories_for,
)
from maintup_ledger.config.settings import FlatSettings, get_settings

__all__ = [
    "FlatSettings",
    "get_settings",
    "configure_logging",
    "OFFICE_TYPES",
    "load_office_catalogue",
    "office_categories_for",
]
