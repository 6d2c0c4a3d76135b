from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import text

from app.models.dues import ObligationKind
from app.services import aggregation, ledger, reconciliation
from app.services import dues as store
from app.services.status import PaymentStatus


class TestDueMonths:

    def test_due_month_count(self):
        today = date(2025, 4, 15)
        assert aggregation.due_month_count(2024, today) == 12
        assert aggregation.due_month_count(2025, today) == 4
        assert aggregation.due_month_count(2026, today) == 0


class TestMemberOutstanding:

    def test_future_months_are_not_due(self, db, member):
        result = aggregation.member_outstanding(db, member.id, 2025, today=date(2025, 4, 15))
        assert result.outstanding == Decimal("20.00")
        assert result.due_months == [1, 2, 3, 4]
        assert result.not_yet_due_months == list(range(5, 13))
        assert result.not_yet_due_amount == Decimal("40.00")

    def test_future_year(self, db, member):
        result = aggregation.member_outstanding(db, member.id, 2026, today=date(2025, 4, 15))
        assert result.outstanding == Decimal("0.00")
        assert result.due_months == []

    def test_past_year_counts_every_month(self, db, member, admin_id):
        reconciliation.manual_backfill(db, member.id, 1, 2024, "5.00", None, admin_id)
        reconciliation.submit_claim(db, member.id, 2, 2024, "5.00", "TT")
        result = aggregation.member_outstanding(db, member.id, 2024, today=date(2025, 4, 15))
        assert result.outstanding == Decimal("55.00")
        assert result.pending_months == [2]
        assert result.paid_months == [1]

    def test_prepaid_future_month(self, db, member, admin_id):
        reconciliation.manual_backfill(db, member.id, 12, 2025, "5.00", None, admin_id)
        result = aggregation.member_outstanding(db, member.id, 2025, today=date(2025, 4, 15))
        assert 12 in result.paid_months
        assert result.not_yet_due_amount == Decimal("35.00")


class TestYearGrid:

    def test_twelve_months_with_defaults(self, db, member, admin_id):
        reconciliation.manual_backfill(db, member.id, 3, 2025, "6.00", None, admin_id)
        grid = aggregation.member_year_status(db, member.id, 2025)
        assert [m.month for m in grid.months] == list(range(1, 13))
        assert grid.months[2].status == PaymentStatus.PAID
        assert grid.months[2].amount == Decimal("6.00")
        assert grid.months[0].status == PaymentStatus.UNPAID
        assert grid.months[0].amount == Decimal("5.00")
        assert grid.paid_count == 1
        assert grid.total_paid == Decimal("6.00")


class TestTotals:

    @pytest.fixture
    def books(self, db, member, other_member, admin_id):
        reconciliation.manual_backfill(db, member.id, 1, 2024, "5.00", None, admin_id)
        reconciliation.manual_backfill(db, member.id, 1, 2025, "5.00", None, admin_id)
        reconciliation.manual_backfill(db, other_member.id, 2, 2025, "5.00", None, admin_id)
        reconciliation.submit_claim(db, other_member.id, 3, 2025, "5.00", "TT-pending")
        reconciliation.manual_entrance_backfill(db, member.id, "20.00", None, admin_id)
        ledger.record_income(db, "Donation", "100.00")
        ledger.record_expense(db, "Repair", "30.00", "maintenance")
        ledger.record_expense(db, "Food", "12.50", "welfare")

    def test_year_collected(self, db, books):
        entrance_year = datetime.utcnow().year
        collected_2025 = aggregation.year_collected(db, 2025)
        expected = Decimal("10.00") + (Decimal("20.00") if entrance_year == 2025 else Decimal("0"))
        assert collected_2025 == expected
        assert aggregation.year_collected(db) == Decimal("35.00")

    def test_balance_identity(self, db, books):
        balance = aggregation.organization_balance(db)
        assert balance == aggregation.year_collected(db) + Decimal("100.00") - Decimal("42.50")
        assert balance == Decimal("92.50")

    def test_category_breakdown_is_complete(self, db, books):
        rows = aggregation.category_breakdown(db)
        assert [r["category"] for r in rows] == ["maintenance", "activities", "welfare", "other"]
        by_category = {r["category"]: r for r in rows}
        assert by_category["maintenance"]["total"] == Decimal("30.00")
        assert by_category["activities"] == {"category": "activities", "total": Decimal("0.00"), "count": 0}
        assert by_category["welfare"]["count"] == 1

    def test_finance_summary(self, db, books):
        summary = aggregation.finance_summary(db)
        assert summary["dues_collected"] == Decimal("35.00")
        assert summary["total_income"] == Decimal("135.00")
        assert summary["total_expense"] == Decimal("42.50")
        assert summary["balance"] == Decimal("92.50")
        assert summary["pending_claims"] == 1
        assert summary["pending_amount"] == Decimal("5.00")

    def test_monthly_trend(self, db, books):
        today = datetime.utcnow().date()
        trend = aggregation.monthly_trend(db, months=6, today=today)
        assert len(trend) == 6
        assert (trend[-1]["year"], trend[-1]["month"]) == (today.year, today.month)
        assert trend[-1]["income"] == Decimal("135.00")
        assert trend[-1]["expense"] == Decimal("42.50")
        assert all(t["income"] == Decimal("0.00") for t in trend[:-1])

    def test_member_overview(self, db, books):
        today = date(2025, 2, 10)
        overview = aggregation.member_overview(db, 2025, today=today)
        assert {o["member_name"] for o in overview} == {"Siti Rahmah", "Ahmad Fauzi"}
        by_house = {o["house_no"]: o for o in overview}
        assert by_house["A-01"]["entrance_paid"] is True
        assert by_house["A-01"]["paid_months"] == 1
        assert by_house["A-01"]["outstanding"] == Decimal("5.00")
        assert by_house["B-07"]["current_month_paid"] is True
        assert by_house["B-07"]["entrance_paid"] is False


class TestLegacySpellings:

    @pytest.mark.parametrize("stored", ["Sudah Bayar", " PAID ", "sudah-bayar", "Confirmed"])
    def test_paid_spellings_count_as_collected(self, db, member, admin_id, stored):
        row = reconciliation.manual_backfill(db, member.id, 1, 2025, "5.00", None, admin_id)
        db.execute(text("UPDATE monthly_dues SET status = :status WHERE id = :id"),
                   {"status": stored, "id": row.id.hex})
        db.commit()

        assert aggregation.year_collected(db, 2025) == Decimal("5.00")
        assert aggregation.organization_balance(db) == Decimal("5.00")
        paid = store.list_by_status(db, ObligationKind.MONTHLY, [PaymentStatus.PAID])
        assert [o.id for o in paid] == [row.id]
        assert store.list_by_status(db, ObligationKind.MONTHLY, [PaymentStatus.UNPAID]) == []

    @pytest.mark.parametrize("stored", ["Awaiting Confirmation", " Menunggu"])
    def test_pending_spellings_count_as_pending(self, db, member, stored):
        row = reconciliation.submit_claim(db, member.id, 2, 2025, "5.00", "TT-2")
        db.execute(text("UPDATE monthly_dues SET status = :status WHERE id = :id"),
                   {"status": stored, "id": row.id.hex})
        db.commit()

        assert aggregation.pending_claims_total(db) == {"count": 1, "amount": Decimal("5.00")}
        assert aggregation.year_collected(db, 2025) == Decimal("0.00")
