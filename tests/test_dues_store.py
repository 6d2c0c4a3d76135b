from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import text

from app.core.exceptions import InvalidAmount, InvalidPeriod, InvalidTransition, NotFound
from app.models.dues import MonthlyDues, ObligationKind
from app.services import dues as store
from app.services.status import PaymentStatus


def _count(db, member_id, month, year):
    return db.query(MonthlyDues).filter_by(member_id=member_id, month=month, year=year).count()


class TestValidation:

    @pytest.mark.parametrize("month", [0, 13, -1, True, "3"])
    def test_invalid_month(self, month):
        with pytest.raises(InvalidPeriod):
            store.validate_period(month, 2025)

    @pytest.mark.parametrize("year", [1999, 2101, None])
    def test_invalid_year(self, year):
        with pytest.raises(InvalidPeriod):
            store.validate_period(1, year)

    def test_parse_amount_rounds_to_cents(self):
        assert store.parse_amount("5") == Decimal("5.00")
        assert str(store.parse_amount(7.5)) == "7.50"

    @pytest.mark.parametrize("amount", ["0", "-5", "abc", None, "NaN", True])
    def test_parse_amount_rejects(self, amount):
        with pytest.raises(InvalidAmount):
            store.parse_amount(amount)


class TestUpsertMonthly:

    def test_insert_then_update_keeps_one_row(self, db, member):
        first = store.upsert_monthly(db, member.id, 3, 2025, "5.00", "TT-1", PaymentStatus.PENDING)
        db.commit()
        assert first.applied
        assert first.obligation.status == PaymentStatus.PENDING

        second = store.upsert_monthly(db, member.id, 3, 2025, "6.00", "TT-2", PaymentStatus.PAID,
                                      paid_at=datetime(2025, 3, 5))
        db.commit()
        assert second.applied
        assert second.obligation.id == first.obligation.id
        assert second.obligation.amount == Decimal("6.00")
        assert second.obligation.reference == "TT-2"
        assert _count(db, member.id, 3, 2025) == 1

    def test_guard_refuses_and_leaves_row(self, db, member):
        store.upsert_monthly(db, member.id, 4, 2025, "5.00", "CASH", PaymentStatus.PAID, paid_at=datetime(2025, 4, 1))
        db.commit()

        result = store.upsert_monthly(db, member.id, 4, 2025, "5.00", "TT-late", PaymentStatus.PENDING,
                                      only_from=(PaymentStatus.UNPAID, PaymentStatus.FAILED))
        db.commit()
        assert not result.applied
        assert result.obligation.status == PaymentStatus.PAID
        assert result.obligation.reference == "CASH"

    def test_missing_reference_keeps_existing(self, db, member):
        store.upsert_monthly(db, member.id, 5, 2025, "5.00", "TT-5", PaymentStatus.PENDING)
        result = store.upsert_monthly(db, member.id, 5, 2025, "5.00", None, PaymentStatus.PAID,
                                      fallback_reference="MANUAL-1")
        db.commit()
        assert result.obligation.reference == "TT-5"

    def test_missing_reference_uses_fallback_on_insert(self, db, member):
        result = store.upsert_monthly(db, member.id, 6, 2025, "5.00", None, PaymentStatus.PAID,
                                      fallback_reference="MANUAL-1")
        db.commit()
        assert result.obligation.reference == "MANUAL-1"

    def test_invalid_period_rejected_before_write(self, db, member):
        with pytest.raises(InvalidPeriod):
            store.upsert_monthly(db, member.id, 13, 2025, "5.00", None, PaymentStatus.PENDING)
        assert db.query(MonthlyDues).count() == 0

    def test_get_year_is_ordered_and_sparse(self, db, member):
        for month in (9, 2, 5):
            store.upsert_monthly(db, member.id, month, 2025, "5.00", None, PaymentStatus.PENDING)
        store.upsert_monthly(db, member.id, 1, 2024, "5.00", None, PaymentStatus.PENDING)
        db.commit()
        assert [row.month for row in store.get_year(db, member.id, 2025)] == [2, 5, 9]


class TestEntrance:

    def test_one_row_per_member(self, db, member):
        first = store.upsert_entrance(db, member.id, "20.00", "ENT-1", PaymentStatus.PENDING)
        second = store.upsert_entrance(db, member.id, "20.00", "ENT-2", PaymentStatus.PENDING)
        db.commit()
        assert first.obligation.id == second.obligation.id
        assert store.get_entrance_for_member(db, member.id).reference == "ENT-2"


class TestSetStatus:

    def test_compare_and_swap(self, db, member):
        row = store.upsert_monthly(db, member.id, 7, 2025, "5.00", None, PaymentStatus.PENDING).obligation
        db.commit()

        obligation, changed = store.set_status(db, ObligationKind.MONTHLY, row.id, PaymentStatus.PAID,
                                               only_from=(PaymentStatus.PENDING,))
        db.commit()
        assert changed
        assert obligation.status == PaymentStatus.PAID
        assert obligation.paid_at is not None

    def test_same_status_is_noop(self, db, member):
        row = store.upsert_monthly(db, member.id, 7, 2025, "5.00", None, PaymentStatus.PAID,
                                   paid_at=datetime(2025, 7, 2)).obligation
        db.commit()
        obligation, changed = store.set_status(db, ObligationKind.MONTHLY, row.id, PaymentStatus.PAID)
        assert not changed
        assert obligation.paid_at == datetime(2025, 7, 2)

    def test_guard_violation_raises(self, db, member):
        row = store.upsert_monthly(db, member.id, 8, 2025, "5.00", None, PaymentStatus.PAID).obligation
        db.commit()
        with pytest.raises(InvalidTransition):
            store.set_status(db, ObligationKind.MONTHLY, row.id, PaymentStatus.FAILED,
                             only_from=(PaymentStatus.PENDING,))

    def test_unknown_id(self, db):
        import uuid
        with pytest.raises(NotFound):
            store.set_status(db, ObligationKind.MONTHLY, uuid.uuid4(), PaymentStatus.PAID)


class TestLegacyStatuses:

    def test_legacy_spelling_reads_canonical_and_matches_predicates(self, db, member):
        row = store.upsert_monthly(db, member.id, 1, 2024, "5.00", None, PaymentStatus.PENDING).obligation
        db.commit()
        db.execute(text("UPDATE monthly_dues SET status = 'Sudah_Bayar' WHERE id = :id"), {"id": row.id.hex})
        db.commit()

        reloaded = store.get_monthly(db, row.id)
        assert reloaded.status == PaymentStatus.PAID
        paid = store.list_by_status(db, ObligationKind.MONTHLY, [PaymentStatus.PAID])
        assert [o.id for o in paid] == [row.id]
        assert store.list_by_status(db, ObligationKind.MONTHLY, [PaymentStatus.PENDING]) == []

    def test_unknown_spelling_counts_as_unpaid(self, db, member):
        row = store.upsert_monthly(db, member.id, 2, 2024, "5.00", None, PaymentStatus.PENDING).obligation
        db.commit()
        db.execute(text("UPDATE monthly_dues SET status = 'lunas?' WHERE id = :id"), {"id": row.id.hex})
        db.commit()

        unpaid = store.list_by_status(db, ObligationKind.MONTHLY, [PaymentStatus.UNPAID])
        assert [o.id for o in unpaid] == [row.id]
        assert store.get_monthly(db, row.id).status == PaymentStatus.UNPAID

    def test_delete(self, db, member):
        row = store.upsert_monthly(db, member.id, 2, 2025, "5.00", None, PaymentStatus.PENDING).obligation
        db.commit()
        store.delete_obligation(db, ObligationKind.MONTHLY, row.id)
        db.commit()
        assert store.get_monthly(db, row.id) is None
