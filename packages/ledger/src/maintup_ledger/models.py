"""Domain models for clients, invoices, costs, cost grids and reports.

Wire names are camelCase (``clientId``, ``amountHT``...) to match the JSON
document persisted by the API; Python attributes are snake_case. Entity
models keep unknown fields because the API stores request bodies as-is.
"""

import threading
import time
from collections.abc import Mapping
from datetime import date, datetime
from enum import Enum
from typing import Annotated, Any

import structlog
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    computed_field,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import to_jsonable_python

from maintup_ledger.config.office_catalogue import (
    default_office_category,
    office_categories_for,
)

logger = structlog.get_logger(__name__)

# Pseudo-client id under which office (overhead) costs are recorded
OFFICE_CLIENT_ID = "office"
OFFICE_CLIENT_NAME = "Charges Bureau"

COLLECTIONS = ("clients", "invoices", "costs", "costGrids")

_id_lock = threading.Lock()
_last_id = 0


def generate_id() -> str:
    """Return a time-based id (milliseconds since the epoch).

    Ids are strictly increasing within a process so that two entities created
    in the same millisecond do not collide.
    """
    global _last_id
    with _id_lock:
        candidate = int(time.time() * 1000)
        if candidate <= _last_id:
            candidate = _last_id + 1
        _last_id = candidate
    return str(candidate)


def _parse_timestamp(value: Any) -> Any:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str) and len(value) == 10:
        return datetime.fromisoformat(value)
    return value


Timestamp = Annotated[datetime, BeforeValidator(_parse_timestamp)]


class InvoiceStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class CostCategory(str, Enum):
    OFFICE = "office"
    SALARIES = "salaries"
    CHARGES = "charges"
    SUBCONTRACTING = "subcontracting"
    MATERIALS = "materials"
    TRANSPORT = "transport"
    HOUSING = "housing"
    OTHER = "other"


class OfficeType(str, Enum):
    FIXED = "fixed"
    VARIABLE = "variable"
    PAYROLL = "payroll"


class UserRole(str, Enum):
    ADMIN = "admin"
    VIEWER = "viewer"


class WireModel(BaseModel):
    """Base for everything serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict using wire (camelCase) names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class LedgerModel(WireModel):
    """Base for stored entities."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    id: str

    @classmethod
    def to_wire_changes(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        """Convert a partial mapping (Python or wire names) to a JSON payload."""
        aliases = {
            name: field.alias or name for name, field in cls.model_fields.items()
        }
        changes = {aliases.get(key, key): value for key, value in data.items()}
        return to_jsonable_python(changes, by_alias=True, exclude_none=True)

    def merged(self, changes: Mapping[str, Any]) -> "LedgerModel":
        """Return a copy with ``changes`` shallow-merged over this entity."""
        payload = {**self.to_wire(), **self.to_wire_changes(changes)}
        payload["id"] = self.id
        return type(self).model_validate(payload)


class Client(LedgerModel):
    name: str
    email: str = ""
    phone: str = ""
    address: str = ""
    created_at: Timestamp = Field(default_factory=datetime.now)
    # Informational rollups set at creation; aggregation recomputes real values
    total_invoices: float = 0
    total_costs: float = 0
    total_profit: float = 0

    def merged(self, changes: Mapping[str, Any]) -> "Client":
        # The creation timestamp never changes once set
        kept = {k: v for k, v in changes.items() if k not in ("createdAt", "created_at")}
        return super().merged(kept)  # type: ignore[return-value]


class Invoice(LedgerModel):
    client_id: str
    client_name: str = ""
    number: str = ""
    amount_ht: float = Field(default=0.0, alias="amountHT")
    tva: float = 0.0
    amount_ttc: float = Field(default=0.0, alias="amountTTC")
    status: InvoiceStatus = InvoiceStatus.PENDING
    issue_date: Timestamp
    due_date: Timestamp
    description: str = ""
    pdf_url: str | None = None

    @model_validator(mode="after")
    def _derive_ttc(self) -> "Invoice":
        self.amount_ttc = self.amount_ht + self.tva
        return self


class Cost(LedgerModel):
    client_id: str
    client_name: str = ""
    invoice_id: str | None = None
    description: str = ""
    amount: float
    category: CostCategory
    office_type: OfficeType | None = None
    office_category: str | None = None
    date: Timestamp

    @model_validator(mode="after")
    def _office_fields_only_for_office(self) -> "Cost":
        if self.category != CostCategory.OFFICE:
            self.office_type = None
            self.office_category = None
        elif self.office_type is not None:
            if not self.office_category:
                self.office_category = default_office_category(self.office_type.value)
            elif self.office_category not in office_categories_for(self.office_type.value):
                # Free labels are kept; the catalogue only drives form choices
                logger.warning(
                    "unknown_office_category",
                    cost_id=self.id,
                    office_type=self.office_type.value,
                    office_category=self.office_category,
                )
        return self

    @property
    def is_office(self) -> bool:
        return self.category == CostCategory.OFFICE


class CostGridClient(WireModel):
    client_id: str
    client_name: str = ""
    rate: float
    notes: str | None = None


class CostGrid(LedgerModel):
    name: str
    category: str | None = None
    clients: list[CostGridClient] = Field(default_factory=list)


class User(WireModel):
    id: str
    name: str
    email: str
    role: UserRole = UserRole.VIEWER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def default_user() -> User:
    """The local session actor the dashboard starts with."""
    return User(id="1", name="Admin User", email="admin@maintup.fr", role=UserRole.VIEWER)


class LedgerDocument(WireModel):
    """The four collections persisted as one JSON document."""

    clients: list[Client] = Field(default_factory=list)
    invoices: list[Invoice] = Field(default_factory=list)
    costs: list[Cost] = Field(default_factory=list)
    cost_grids: list[CostGrid] = Field(default_factory=list)

    @classmethod
    def from_rows(cls, data: Mapping[str, Any], **fields: Any) -> "LedgerDocument":
        """Build a document validating each stored row on its own.

        The API keeps bodies as received, so a collection may hold rows the
        models reject. Those rows are skipped with a warning instead of
        failing the whole document.
        """
        collections: dict[str, list[LedgerModel]] = {}
        for collection, model in ENTITY_MODELS.items():
            rows = data.get(collection)
            valid: list[LedgerModel] = []
            for row in rows if isinstance(rows, list) else []:
                try:
                    valid.append(model.model_validate(row))
                except ValidationError as e:
                    logger.warning(
                        "invalid_row_skipped",
                        collection=collection,
                        id=row.get("id") if isinstance(row, dict) else None,
                        errors=e.error_count(),
                    )
            collections[collection] = valid
        return cls.model_validate({**fields, **collections})


class LocalSnapshot(LedgerDocument):
    """Client-side copy of the document plus the unsynced marker."""

    unsynced: bool = False


ENTITY_MODELS: dict[str, type[LedgerModel]] = {
    "clients": Client,
    "invoices": Invoice,
    "costs": Cost,
    "costGrids": CostGrid,
}


# === Report structures ===


class MonthlyData(WireModel):
    month: str
    revenue: float = 0.0
    costs: float = 0.0
    profit: float = 0.0
    margin: float = 0.0


class MonthlyClientData(MonthlyData):
    year: int
    invoices_count: int = 0


class ClientAnnualData(WireModel):
    client_id: str
    client_name: str
    revenue: float = 0.0
    costs: float = 0.0
    profit: float = 0.0
    margin: float = 0.0
    revenue_share: float = 0.0
    invoices_count: int = 0


class AnnualReport(WireModel):
    year: int
    total_revenue: float
    total_costs: float
    total_profit: float
    average_margin: float
    clients_data: list[ClientAnnualData]
    monthly_breakdown: list[MonthlyData]


class MonthlyReport(WireModel):
    month: str
    revenue: float
    costs: float
    profit: float
    margin: float
    invoices: list[Invoice]
    costs_list: list[Cost]


class OfficeMonthBreakdown(WireModel):
    month: str
    fixed: float = 0.0
    variable: float = 0.0
    payroll: float = 0.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> float:
        return self.fixed + self.variable + self.payroll
