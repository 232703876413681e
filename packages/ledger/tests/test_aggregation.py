"""Tests for the reporting aggregation functions."""

from datetime import date, datetime

import pytest

from maintup_ledger import aggregation
from maintup_ledger.models import Cost, Invoice, OFFICE_CLIENT_ID


def _invoice(invoice_id, amount_ht, issue, status="paid", client_id="c1"):
    return Invoice(
        id=invoice_id,
        client_id=client_id,
        amount_ht=amount_ht,
        tva=amount_ht * 0.2,
        status=status,
        issue_date=issue,
        due_date=issue,
    )


def _cost(cost_id, amount, when, client_id="c1", category="materials", **extra):
    return Cost(
        id=cost_id, client_id=client_id, amount=amount, category=category, date=when, **extra
    )


class TestMonthLabels:
    """Tests for month grouping keys."""

    def test_month_label_format(self):
        assert aggregation.month_label(date(2025, 3, 14)) == "Mar 2025"
        assert aggregation.month_label(datetime(2024, 12, 31, 23, 59)) == "Dec 2024"

    def test_year_month_labels_dense(self):
        labels = aggregation.year_month_labels(2025)

        assert len(labels) == 12
        assert labels[0] == "Jan 2025"
        assert labels[-1] == "Dec 2025"

    def test_margin_zero_revenue(self):
        assert aggregation.margin(-50, 0) == 0.0
        assert aggregation.margin(50, 200) == 25.0


class TestMonthlyData:
    """Tests for the twelve-month series."""

    def test_march_scenario(self):
        """Two March invoices and one March cost."""
        invoices = [
            _invoice("a", 100, datetime(2025, 3, 1)),
            _invoice("b", 200, datetime(2025, 3, 28), status="pending"),
        ]
        costs = [_cost("k", 50, datetime(2025, 3, 15))]

        series = aggregation.monthly_data(invoices, costs, year=2025)
        march = next(entry for entry in series if entry.month == "Mar 2025")

        assert march.revenue == 300
        assert march.costs == 50
        assert march.profit == 250
        assert march.margin == pytest.approx(83.3333, rel=1e-4)

    def test_empty_months_report_zero(self):
        series = aggregation.monthly_data([], [], year=2025)

        assert len(series) == 12
        for entry in series:
            assert entry.revenue == 0
            assert entry.costs == 0
            assert entry.profit == 0
            assert entry.margin == 0

    def test_overdue_excluded(self, invoices, costs):
        series = aggregation.monthly_data(invoices, costs, year=2025)
        march = series[2]

        # i1 (paid 100) + i2 (pending 200); i3 overdue 500 excluded
        assert march.revenue == 300

    def test_other_year_same_month_not_mixed(self, invoices, costs):
        series_2024 = aggregation.monthly_data(invoices, costs, year=2024)

        assert series_2024[2].month == "Mar 2024"
        assert series_2024[2].revenue == 300
        assert series_2024[2].costs == 40

    def test_defaults_to_current_year(self):
        series = aggregation.monthly_data([], [])

        assert series[0].month == f"Jan {date.today().year}"

    def test_costs_without_revenue_negative_profit(self):
        series = aggregation.monthly_data([], [_cost("k", 80, datetime(2025, 7, 4))], year=2025)

        assert series[6].profit == -80
        assert series[6].margin == 0


class TestTotals:
    """Tests for dashboard totals."""

    def test_total_revenue_excludes_overdue(self, invoices):
        assert aggregation.total_revenue(invoices) == 600

    def test_total_costs_includes_office(self, costs):
        assert aggregation.total_costs(costs) == 120

    def test_total_profit(self, invoices, costs):
        assert aggregation.total_profit(invoices, costs) == 480

    def test_client_revenue_and_profit(self, invoices, costs):
        assert aggregation.client_revenue(invoices, "c1") == 400
        assert aggregation.client_profit(invoices, costs, "c1") == 350
        assert aggregation.client_profit(invoices, costs, "c2") == 160

    def test_invoice_status_counts(self, invoices):
        assert aggregation.invoice_status_counts(invoices) == {
            "pending": 1,
            "paid": 2,
            "overdue": 1,
        }

    def test_status_counts_always_complete(self):
        assert aggregation.invoice_status_counts([]) == {"pending": 0, "paid": 0, "overdue": 0}

    def test_pending_amount_uses_ttc(self, invoices):
        assert aggregation.pending_amount(invoices) == 240


class TestClientMonthlyData:
    """Tests for per-client series."""

    def test_scoped_to_client(self, invoices, costs):
        series = aggregation.client_monthly_data(invoices, costs, "c1", year=2025)

        assert len(series) == 12
        march = series[2]
        assert march.revenue == 100
        assert march.costs == 50
        assert march.invoices_count == 1
        assert march.year == 2025
        assert march.margin == pytest.approx(50.0)

    def test_analytics_summary(self, invoices, costs):
        series = aggregation.client_monthly_data(invoices, costs, "c1", year=2025)
        summary = aggregation.client_analytics_summary(series)

        assert summary["revenue"] == 100
        assert summary["costs"] == 50
        assert summary["profit"] == 50
        assert summary["invoicesCount"] == 1


class TestAnnualReport:
    """Tests for the annual report."""

    def test_totals(self, clients, invoices, costs):
        report = aggregation.annual_report(clients, invoices, costs, 2025)

        assert report.year == 2025
        assert report.total_revenue == 300
        assert report.total_costs == 80
        assert report.total_profit == 220
        assert report.average_margin == pytest.approx(220 / 300 * 100)
        assert len(report.monthly_breakdown) == 12

    def test_revenue_shares_sum_to_100(self, clients, invoices, costs):
        report = aggregation.annual_report(clients, invoices, costs, 2025)
        real_rows = [row for row in report.clients_data if row.client_id != OFFICE_CLIENT_ID]

        assert sum(row.revenue_share for row in real_rows) == pytest.approx(100.0)
        acme = next(row for row in real_rows if row.client_id == "c1")
        assert acme.revenue_share == pytest.approx(100 / 300 * 100)
        assert acme.invoices_count == 1

    def test_office_row_appended(self, clients, invoices, costs):
        report = aggregation.annual_report(clients, invoices, costs, 2025)
        office = report.clients_data[-1]

        assert office.client_id == OFFICE_CLIENT_ID
        assert office.client_name == "Charges Bureau"
        assert office.revenue == 0
        assert office.costs == 30
        assert office.profit == -30
        assert office.revenue_share == 0

    def test_no_office_row_without_office_costs(self, clients, invoices, costs):
        report = aggregation.annual_report(clients, invoices, costs, 2024)

        assert all(row.client_id != OFFICE_CLIENT_ID for row in report.clients_data)
        assert len(report.clients_data) == 2

    def test_zero_revenue_shares_are_zero(self, clients):
        report = aggregation.annual_report(clients, [], [], 2025)

        assert report.total_revenue == 0
        assert report.average_margin == 0
        assert all(row.revenue_share == 0 for row in report.clients_data)

    def test_wire_format(self, clients, invoices, costs):
        data = aggregation.annual_report(clients, invoices, costs, 2025).to_wire()

        assert "totalRevenue" in data
        assert "revenueShare" in data["clientsData"][0]
        assert data["monthlyBreakdown"][2]["month"] == "Mar 2025"


class TestMonthlyReport:
    """Tests for the single-month report."""

    def test_drill_down_lists(self, invoices, costs):
        report = aggregation.monthly_report(invoices, costs, 3, 2025)

        assert report.month == "Mar 2025"
        assert report.revenue == 300
        assert report.costs == 50
        assert [inv.id for inv in report.invoices] == ["i1", "i2"]
        assert [cost.id for cost in report.costs_list] == ["k1"]

    def test_empty_month(self, invoices, costs):
        report = aggregation.monthly_report(invoices, costs, 8, 2025)

        assert report.revenue == 0
        assert report.margin == 0
        assert report.invoices == []
        assert report.costs_list == []


class TestOfficeCosts:
    """Tests for the office cost breakdown."""

    def test_split_by_office_type(self):
        costs = [
            _cost("a", 30, datetime(2025, 1, 5), client_id="office", category="office",
                  office_type="fixed", office_category="Google"),
            _cost("b", 70, datetime(2025, 1, 9), client_id="office", category="office",
                  office_type="variable", office_category="Essence"),
            _cost("c", 2000, datetime(2025, 1, 31), client_id="office", category="office",
                  office_type="payroll", office_category="Salaire"),
            _cost("d", 999, datetime(2025, 1, 10)),
        ]

        breakdown = aggregation.office_costs_by_type(costs, year=2025)
        january = breakdown[0]

        assert january.month == "Jan 2025"
        assert january.fixed == 30
        assert january.variable == 70
        assert january.payroll == 2000
        assert january.total == 2100
        assert breakdown[1].total == 0
