"""Pure reporting transforms over clients, invoices and costs.

Revenue is the sum of ``amount_ht`` over invoices whose status is paid or
pending; overdue invoices never count. Records are grouped by their
"Mon YYYY" label (see :func:`month_label`), and every series is dense: a
month without records reports zeros.
"""

from collections.abc import Iterable, Sequence
from datetime import date, datetime
from typing import Any

from maintup_ledger.models import (
    OFFICE_CLIENT_ID,
    OFFICE_CLIENT_NAME,
    AnnualReport,
    Client,
    ClientAnnualData,
    Cost,
    CostCategory,
    Invoice,
    InvoiceStatus,
    MonthlyClientData,
    MonthlyData,
    MonthlyReport,
    OfficeMonthBreakdown,
    OfficeType,
)

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

RECOGNIZED_STATUSES = frozenset({InvoiceStatus.PAID, InvoiceStatus.PENDING})


def month_label(moment: date | datetime) -> str:
    """Format a date as its grouping key, e.g. ``"Mar 2025"``."""
    return f"{MONTH_ABBREVIATIONS[moment.month - 1]} {moment.year}"


def year_month_labels(year: int) -> list[str]:
    return [month_label(date(year, month, 1)) for month in range(1, 13)]


def _resolve_year(year: int | None) -> int:
    return year if year is not None else date.today().year


def margin(profit: float, revenue: float) -> float:
    """Profit as a percentage of revenue; 0 when there is no revenue."""
    return (profit / revenue) * 100 if revenue > 0 else 0.0


def share(part: float, total: float) -> float:
    return (part / total) * 100 if total > 0 else 0.0


def is_recognized_revenue(invoice: Invoice) -> bool:
    return invoice.status in RECOGNIZED_STATUSES


def recognized_invoices(invoices: Iterable[Invoice]) -> list[Invoice]:
    return [invoice for invoice in invoices if is_recognized_revenue(invoice)]


def _revenue(invoices: Iterable[Invoice]) -> float:
    return sum((invoice.amount_ht for invoice in invoices), 0.0)


def _spent(costs: Iterable[Cost]) -> float:
    return sum((cost.amount for cost in costs), 0.0)


def _monthly_entry(label: str, invoices: Sequence[Invoice], costs: Sequence[Cost]) -> MonthlyData:
    revenue = _revenue(inv for inv in invoices if month_label(inv.issue_date) == label)
    spent = _spent(cost for cost in costs if month_label(cost.date) == label)
    profit = revenue - spent
    return MonthlyData(
        month=label,
        revenue=revenue,
        costs=spent,
        profit=profit,
        margin=margin(profit, revenue),
    )


# === Dashboard totals ===


def total_revenue(invoices: Iterable[Invoice]) -> float:
    return _revenue(recognized_invoices(invoices))


def total_costs(costs: Iterable[Cost]) -> float:
    return _spent(costs)


def total_profit(invoices: Iterable[Invoice], costs: Iterable[Cost]) -> float:
    return total_revenue(invoices) - total_costs(costs)


def client_revenue(invoices: Iterable[Invoice], client_id: str) -> float:
    return total_revenue(inv for inv in invoices if inv.client_id == client_id)


def client_profit(
    invoices: Iterable[Invoice], costs: Iterable[Cost], client_id: str
) -> float:
    revenue = client_revenue(invoices, client_id)
    spent = _spent(cost for cost in costs if cost.client_id == client_id)
    return revenue - spent


def invoice_status_counts(invoices: Iterable[Invoice]) -> dict[str, int]:
    """Number of invoices per status, every status present."""
    counts = {status.value: 0 for status in InvoiceStatus}
    for invoice in invoices:
        counts[invoice.status.value] += 1
    return counts


def pending_amount(invoices: Iterable[Invoice]) -> float:
    """Tax-inclusive total still awaiting payment."""
    return sum(
        (inv.amount_ttc for inv in invoices if inv.status == InvoiceStatus.PENDING),
        0.0,
    )


# === Monthly series ===


def monthly_data(
    invoices: Sequence[Invoice], costs: Sequence[Cost], year: int | None = None
) -> list[MonthlyData]:
    """Twelve months of revenue, costs, profit and margin for a calendar year.

    Args:
        invoices: All invoices; only paid and pending ones count.
        costs: All costs, office costs included.
        year: Calendar year; defaults to the current year.
    """
    qualifying = recognized_invoices(invoices)
    return [
        _monthly_entry(label, qualifying, costs)
        for label in year_month_labels(_resolve_year(year))
    ]


def client_monthly_data(
    invoices: Sequence[Invoice],
    costs: Sequence[Cost],
    client_id: str,
    year: int | None = None,
) -> list[MonthlyClientData]:
    """Same series as :func:`monthly_data`, restricted to one client."""
    resolved = _resolve_year(year)
    client_invoices = [
        inv for inv in recognized_invoices(invoices) if inv.client_id == client_id
    ]
    client_costs = [cost for cost in costs if cost.client_id == client_id]

    results = []
    for label in year_month_labels(resolved):
        month_invoices = [inv for inv in client_invoices if month_label(inv.issue_date) == label]
        entry = _monthly_entry(label, month_invoices, client_costs)
        results.append(
            MonthlyClientData(
                **entry.model_dump(),
                year=resolved,
                invoices_count=len(month_invoices),
            )
        )
    return results


def client_analytics_summary(series: Sequence[MonthlyData]) -> dict[str, Any]:
    """Collapse a monthly series into totals for the analytics header."""
    revenue = sum((entry.revenue for entry in series), 0.0)
    spent = sum((entry.costs for entry in series), 0.0)
    profit = revenue - spent
    summary: dict[str, Any] = {
        "revenue": revenue,
        "costs": spent,
        "profit": profit,
        "margin": margin(profit, revenue),
    }
    if series and all(isinstance(entry, MonthlyClientData) for entry in series):
        summary["invoicesCount"] = sum(
            entry.invoices_count for entry in series  # type: ignore[attr-defined]
        )
    return summary


def office_costs_by_type(
    costs: Iterable[Cost], year: int | None = None
) -> list[OfficeMonthBreakdown]:
    """Office costs per month split into fixed, variable and payroll."""
    office = [cost for cost in costs if cost.category == CostCategory.OFFICE]
    results = []
    for label in year_month_labels(_resolve_year(year)):
        month_costs = [cost for cost in office if month_label(cost.date) == label]
        results.append(
            OfficeMonthBreakdown(
                month=label,
                fixed=_spent(c for c in month_costs if c.office_type == OfficeType.FIXED),
                variable=_spent(
                    c for c in month_costs if c.office_type == OfficeType.VARIABLE
                ),
                payroll=_spent(c for c in month_costs if c.office_type == OfficeType.PAYROLL),
            )
        )
    return results


# === Reports ===


def annual_report(
    clients: Sequence[Client],
    invoices: Sequence[Invoice],
    costs: Sequence[Cost],
    year: int,
) -> AnnualReport:
    """Year totals, a row per client with its revenue share, and a monthly breakdown.

    When the year has office costs, a synthetic "office" row is appended
    with no revenue and a negative profit equal to their total.
    """
    year_invoices = [
        inv for inv in recognized_invoices(invoices) if inv.issue_date.year == year
    ]
    year_costs = [cost for cost in costs if cost.date.year == year]

    revenue = _revenue(year_invoices)
    spent = _spent(year_costs)
    profit = revenue - spent

    clients_data: list[ClientAnnualData] = []
    for client in clients:
        client_invoices = [inv for inv in year_invoices if inv.client_id == client.id]
        row_revenue = _revenue(client_invoices)
        row_costs = _spent(cost for cost in year_costs if cost.client_id == client.id)
        row_profit = row_revenue - row_costs
        clients_data.append(
            ClientAnnualData(
                client_id=client.id,
                client_name=client.name,
                revenue=row_revenue,
                costs=row_costs,
                profit=row_profit,
                margin=margin(row_profit, row_revenue),
                revenue_share=share(row_revenue, revenue),
                invoices_count=len(client_invoices),
            )
        )

    office_costs = [cost for cost in year_costs if cost.category == CostCategory.OFFICE]
    if office_costs:
        office_total = _spent(office_costs)
        clients_data.append(
            ClientAnnualData(
                client_id=OFFICE_CLIENT_ID,
                client_name=OFFICE_CLIENT_NAME,
                revenue=0.0,
                costs=office_total,
                profit=-office_total,
                margin=0.0,
                revenue_share=0.0,
                invoices_count=0,
            )
        )

    return AnnualReport(
        year=year,
        total_revenue=revenue,
        total_costs=spent,
        total_profit=profit,
        average_margin=margin(profit, revenue),
        clients_data=clients_data,
        monthly_breakdown=[
            _monthly_entry(label, year_invoices, year_costs)
            for label in year_month_labels(year)
        ],
    )


def monthly_report(
    invoices: Sequence[Invoice], costs: Sequence[Cost], month: int, year: int
) -> MonthlyReport:
    """Totals for one month (1-12) plus the invoices and costs behind them."""
    label = month_label(date(year, month, 1))
    month_invoices = [
        inv for inv in recognized_invoices(invoices) if month_label(inv.issue_date) == label
    ]
    month_costs = [cost for cost in costs if month_label(cost.date) == label]

    revenue = _revenue(month_invoices)
    spent = _spent(month_costs)
    profit = revenue - spent
    return MonthlyReport(
        month=label,
        revenue=revenue,
        costs=spent,
        profit=profit,
        margin=margin(profit, revenue),
        invoices=month_invoices,
        costs_list=month_costs,
    )
