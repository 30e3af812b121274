# BIZDESK/backend/tests/test_shifts.py : tests des sessions de caisse et de la clôture

import pytest
from datetime import date, datetime
from decimal import Decimal
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from app.models import models
from app.exceptions import ValidationError, NotFoundError, InvalidOperationError
from app.services.shift_service import ShiftService
from app.services.totals_service import TotalsAggregator, ShiftTotals
from conftest import make_business

SHIFT_FIELDS = [
    "status", "opening_cash", "expected_cash", "actual_cash", "cash_at_hand", "cash_discrepancy",
    "discrepancy_notes", "notes", "total_sales", "cash_sales", "card_sales", "mobile_money_sales",
    "bank_transfer_sales", "other_sales", "total_transactions", "total_receipts", "total_discounts",
    "shift_end_time", "closed_by", "updated_at"
]

def snapshot(shift):
    return {field: getattr(shift, field) for field in SHIFT_FIELDS}

def add_receipt(db, business, day, total, method="cash", discount="0", status="paid", created_at=None):
    receipt = models.Receipt(
        business_id=business.id,
        receipt_date=day,
        payment_method=method,
        total=Decimal(total),
        discount_amount=Decimal(discount),
        status=status
    )
    if created_at is not None:
        receipt.created_at = created_at
    db.add(receipt)
    db.commit()

class FailingAggregator(TotalsAggregator):
    def recompute(self, shift):
        raise ConnectionError("agrégateur injoignable")

class RacingAggregator(TotalsAggregator):
    """Simule une clôture concurrente qui passe pendant le recalcul"""

    def __init__(self, db):
        self.db = db

    def recompute(self, shift):
        self.db.execute(text("UPDATE pos_shifts SET status = 'closed' WHERE id = :id"), {"id": shift.id})
        return ShiftTotals()

@pytest.fixture
def business(db_session, account):
    return make_business(db_session, account)

@pytest.fixture
def ledger(db_session, account, clock):
    return ShiftService(db_session, account.id, clock=clock)

class TestOpenShift:

    def test_first_shift_opens_with_zero(self, ledger, business, clock):
        shift = ledger.get_or_create_today_shift(business.id)
        assert shift.id
        assert shift.status == "open"
        assert shift.shift_date == date(2026, 3, 2)
        assert shift.opening_cash == Decimal("0")
        assert shift.expected_cash == Decimal("0")
        assert shift.total_sales == Decimal("0")
        assert shift.actual_cash is None
        assert shift.cash_discrepancy is None
        assert shift.cash_status is None
        assert shift.shift_end_time is None
        assert shift.currency == "USD"
        assert shift.opened_by == ledger.user_id

    def test_get_or_create_twice_returns_same_shift(self, db_session, ledger, business, clock):
        """Pas de doublon le même jour"""
        first = ledger.get_or_create_today_shift(business.id)
        clock.advance(hours=3)
        second = ledger.get_or_create_today_shift(business.id)

        assert first.id == second.id
        assert db_session.query(models.Shift).filter(models.Shift.status == "open").count() == 1

    def test_find_open_shift_does_not_create(self, db_session, ledger, business):
        assert ledger.find_open_shift(business.id) is None
        assert db_session.query(models.Shift).count() == 0

    def test_create_shift_refuses_second_open_shift(self, ledger, business):
        ledger.create_shift(business.id)
        with pytest.raises(InvalidOperationError):
            ledger.create_shift(business.id)

    def test_storage_rejects_two_open_shifts(self, db_session, account, business):
        """L'index unique partiel est le garde-fou entre plusieurs clients"""
        day = date(2026, 3, 2)
        db_session.add(models.Shift(business_id=business.id, user_id=account.id, shift_date=day, status="open"))
        db_session.commit()
        db_session.add(models.Shift(business_id=business.id, user_id=account.id, shift_date=day, status="open"))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_storage_allows_several_closed_shifts_per_day(self, db_session, account, business):
        day = date(2026, 3, 2)
        for _ in range(2):
            db_session.add(models.Shift(business_id=business.id, user_id=account.id, shift_date=day, status="closed"))
        db_session.commit()
        assert db_session.query(models.Shift).count() == 2

    def test_shift_currency_follows_business(self, db_session, account, clock):
        zwl = make_business(db_session, account, name="Boutique ZWL", currency="ZWL")
        shift = ShiftService(db_session, account.id, clock=clock).get_or_create_today_shift(zwl.id)
        assert shift.currency == "ZWL"

    def test_unknown_business(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.get_or_create_today_shift(12345)

    def test_other_account_business(self, db_session, other_account, ledger):
        foreign = make_business(db_session, other_account)
        with pytest.raises(NotFoundError):
            ledger.get_or_create_today_shift(foreign.id)

    def test_other_account_shift(self, db_session, other_account, ledger, clock):
        foreign = make_business(db_session, other_account)
        shift = ShiftService(db_session, other_account.id, clock=clock).get_or_create_today_shift(foreign.id)
        with pytest.raises(NotFoundError):
            ledger.get_shift(shift.id)

class TestRefreshTotals:

    def test_refresh_totals_from_receipts(self, db_session, ledger, business, clock):
        day = clock().date()
        shift = ledger.get_or_create_today_shift(business.id)

        add_receipt(db_session, business, day, "60.00")
        add_receipt(db_session, business, day, "40.00", discount="5.00")
        add_receipt(db_session, business, day, "25.00", method="card")
        add_receipt(db_session, business, day, "10.00", method="mobile_money", discount="1.50")
        add_receipt(db_session, business, day, "5.00", method="bank_transfer")
        add_receipt(db_session, business, day, "3.00", method="voucher")
        # Ignorés : brouillon, autre jour
        add_receipt(db_session, business, day, "999.00", status="draft")
        add_receipt(db_session, business, date(2026, 3, 1), "777.00")

        db_session.add(models.Transaction(
            business_id=business.id, amount=Decimal("60"), payment_method="cash",
            category="pos_sale", created_at=datetime(2026, 3, 2, 10, 15)
        ))
        db_session.add(models.Transaction(
            business_id=business.id, amount=Decimal("40"), payment_method="cash",
            category="pos_sale", created_at=datetime(2026, 3, 2, 11, 0)
        ))
        db_session.add(models.Transaction(
            business_id=business.id, amount=Decimal("500"), payment_method="cash",
            category="loyer", created_at=datetime(2026, 3, 2, 12, 0)
        ))
        db_session.commit()

        shift = ledger.refresh_totals(shift.id)

        assert shift.cash_sales == Decimal("100.00")
        assert shift.card_sales == Decimal("25.00")
        assert shift.mobile_money_sales == Decimal("10.00")
        assert shift.bank_transfer_sales == Decimal("5.00")
        assert shift.other_sales == Decimal("3.00")
        assert shift.total_sales == Decimal("143.00")
        assert shift.total_receipts == 6
        assert shift.total_transactions == 2
        assert shift.total_discounts == Decimal("6.50")
        assert shift.expected_cash == Decimal("100.00")

    def test_expected_cash_includes_opening_cash(self, db_session, account, business, clock):
        ledger = ShiftService(db_session, account.id, clock=clock)
        first = ledger.get_or_create_today_shift(business.id)
        ledger.close_shift(first.id, "80")

        clock.advance(days=1)
        add_receipt(db_session, business, clock().date(), "20.00")
        shift = ledger.refresh_totals(ledger.get_or_create_today_shift(business.id).id)
        assert shift.opening_cash == Decimal("80.00")
        assert shift.expected_cash == Decimal("100.00")

    def test_refresh_on_closed_shift_changes_nothing(self, db_session, ledger, business, clock):
        shift = ledger.get_or_create_today_shift(business.id)
        add_receipt(db_session, business, clock().date(), "30.00")
        shift = ledger.close_shift(shift.id, "30")
        before = snapshot(shift)

        add_receipt(db_session, business, clock().date(), "70.00")
        clock.advance(minutes=5)
        after = ledger.refresh_totals(shift.id)

        assert snapshot(after) == before

    def test_transactions_counted_on_calendar_day(self, db_session, ledger, business):
        """Bornes du jour : minuit inclus, minuit du lendemain exclu"""
        shift = ledger.get_or_create_today_shift(business.id)
        for moment in [datetime(2026, 3, 2, 0, 0), datetime(2026, 3, 2, 23, 59, 59), datetime(2026, 3, 3, 0, 0)]:
            db_session.add(models.Transaction(
                business_id=business.id, amount=Decimal("1"), payment_method="cash",
                category="pos_sale", created_at=moment
            ))
        db_session.commit()
        assert ledger.refresh_totals(shift.id).total_transactions == 2

    def test_custom_aggregator(self, db_session, account, business, clock):
        class FixedAggregator(TotalsAggregator):
            def recompute(self, shift):
                return ShiftTotals(cash=Decimal("12.50"), card=Decimal("7.50"), receipt_count=3)

        ledger = ShiftService(db_session, account.id, aggregator=FixedAggregator(), clock=clock)
        shift = ledger.refresh_totals(ledger.get_or_create_today_shift(business.id).id)
        assert shift.total_sales == Decimal("20.00")
        assert shift.expected_cash == Decimal("12.50")
        assert shift.total_receipts == 3

    def test_base_aggregator_must_be_overridden(self, ledger, business):
        shift = ledger.get_or_create_today_shift(business.id)
        with pytest.raises(NotImplementedError):
            TotalsAggregator().recompute(shift)

class TestCloseShift:

    def test_close_scenario_and_next_day_seed(self, db_session, ledger, business, clock):
        """Fond 50 + ventes espèces 100, compté 150 : caisse juste ; le lendemain s'ouvre à 150"""
        day_one = ledger.get_or_create_today_shift(business.id)
        ledger.close_shift(day_one.id, "50", discrepancy_notes="Fond de caisse initial")

        clock.advance(days=1)
        shift = ledger.get_or_create_today_shift(business.id)
        assert shift.opening_cash == Decimal("50.00")
        add_receipt(db_session, business, clock().date(), "100.00")

        closed = ledger.close_shift(shift.id, "150", notes="RAS")

        assert closed.status == "closed"
        assert closed.expected_cash == Decimal("150.00")
        assert closed.actual_cash == Decimal("150.00")
        assert closed.cash_at_hand == Decimal("150.00")
        assert closed.cash_discrepancy == Decimal("0.00")
        assert closed.cash_status == "balanced"
        assert closed.notes == "RAS"
        assert closed.shift_end_time == clock()
        assert closed.closed_by == ledger.user_id

        clock.advance(days=1)
        next_shift = ledger.get_or_create_today_shift(business.id)
        assert next_shift.id != closed.id
        assert next_shift.opening_cash == Decimal("150.00")
        assert next_shift.expected_cash == Decimal("150.00")

    def test_close_short(self, db_session, ledger, business, clock):
        shift = ledger.get_or_create_today_shift(business.id)
        add_receipt(db_session, business, clock().date(), "100.00")
        closed = ledger.close_shift(shift.id, "85", discrepancy_notes="Erreur de monnaie")
        assert closed.cash_discrepancy == Decimal("-15.00")
        assert closed.cash_status == "short"
        assert closed.discrepancy_notes == "Erreur de monnaie"

    def test_close_over(self, db_session, ledger, business, clock):
        shift = ledger.get_or_create_today_shift(business.id)
        add_receipt(db_session, business, clock().date(), "100.00")
        closed = ledger.close_shift(shift.id, "120")
        assert closed.cash_discrepancy == Decimal("20.00")
        assert closed.cash_status == "over"

    def test_close_uses_final_totals(self, db_session, ledger, business, clock):
        """Les ventes enregistrées après le dernier rafraîchissement sont prises en compte"""
        shift = ledger.get_or_create_today_shift(business.id)
        ledger.refresh_totals(shift.id)
        add_receipt(db_session, business, clock().date(), "42.00")
        closed = ledger.close_shift(shift.id, "42")
        assert closed.cash_sales == Decimal("42.00")
        assert closed.cash_status == "balanced"

    def test_second_close_is_rejected(self, ledger, business):
        shift = ledger.get_or_create_today_shift(business.id)
        closed = ledger.close_shift(shift.id, "10")
        before = snapshot(closed)

        with pytest.raises(InvalidOperationError):
            ledger.close_shift(shift.id, "999")

        assert snapshot(ledger.get_shift(shift.id)) == before

    def test_concurrent_close_is_rejected(self, db_session, account, business, clock):
        ledger = ShiftService(db_session, account.id, aggregator=RacingAggregator(db_session), clock=clock)
        shift = ledger.get_or_create_today_shift(business.id)
        with pytest.raises(InvalidOperationError):
            ledger.close_shift(shift.id, "10")

    @pytest.mark.parametrize("counted", [None, "", "abc", "-1"])
    def test_invalid_count(self, ledger, business, counted):
        shift = ledger.get_or_create_today_shift(business.id)
        with pytest.raises(ValidationError) as exc:
            ledger.close_shift(shift.id, counted)
        assert exc.value.field == "counted_cash"
        assert ledger.get_shift(shift.id).status == "open"

    def test_close_unknown_shift(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.close_shift(777, "10")

    def test_aggregator_failure_aborts_close(self, db_session, account, business, clock):
        """Si le recalcul échoue, la session reste ouverte et l'erreur remonte telle quelle"""
        shift = ShiftService(db_session, account.id, clock=clock).get_or_create_today_shift(business.id)
        ledger = ShiftService(db_session, account.id, aggregator=FailingAggregator(), clock=clock)

        with pytest.raises(ConnectionError):
            ledger.close_shift(shift.id, "10")

        shift = ledger.get_shift(shift.id)
        assert shift.status == "open"
        assert shift.actual_cash is None
        assert shift.cash_discrepancy is None

    def test_discrepancy_notes_are_advisory_by_default(self, ledger, business):
        shift = ledger.get_or_create_today_shift(business.id)
        closed = ledger.close_shift(shift.id, "5")
        assert closed.cash_status == "over"
        assert closed.discrepancy_notes is None

    def test_discrepancy_notes_can_be_enforced(self, db_session, account, business, clock):
        ledger = ShiftService(db_session, account.id, clock=clock, require_discrepancy_notes=True)
        shift = ledger.get_or_create_today_shift(business.id)

        with pytest.raises(ValidationError) as exc:
            ledger.close_shift(shift.id, "5")
        assert exc.value.field == "discrepancy_notes"
        assert ledger.get_shift(shift.id).status == "open"

        closed = ledger.close_shift(shift.id, "5", discrepancy_notes="Pourboire laissé en caisse")
        assert closed.status == "closed"

    def test_balanced_close_needs_no_notes_even_when_enforced(self, db_session, account, business, clock):
        ledger = ShiftService(db_session, account.id, clock=clock, require_discrepancy_notes=True)
        shift = ledger.get_or_create_today_shift(business.id)
        assert ledger.close_shift(shift.id, "0").cash_status == "balanced"

    def test_same_day_reopen_after_close(self, db_session, ledger, business, clock):
        """Les ventes déjà comptées à la première clôture ne sont pas recomptées"""
        day = clock().date()
        shift = ledger.get_or_create_today_shift(business.id)
        add_receipt(db_session, business, day, "100.00", created_at=datetime(2026, 3, 2, 9, 30))
        clock.advance(hours=1)
        first = ledger.close_shift(shift.id, "100")
        assert first.cash_status == "balanced"

        clock.advance(hours=1)
        reopened = ledger.get_or_create_today_shift(business.id)
        assert reopened.id != shift.id
        assert reopened.status == "open"
        assert reopened.opening_cash == Decimal("100.00")

        reopened = ledger.refresh_totals(reopened.id)
        assert reopened.cash_sales == Decimal("0.00")
        assert reopened.total_receipts == 0
        assert reopened.expected_cash == Decimal("100.00")

        add_receipt(db_session, business, day, "20.00", created_at=datetime(2026, 3, 2, 11, 30))
        clock.advance(hours=1)
        closed = ledger.close_shift(reopened.id, "120")
        assert closed.cash_sales == Decimal("20.00")
        assert closed.expected_cash == Decimal("120.00")
        assert closed.cash_discrepancy == Decimal("0.00")
        assert closed.cash_status == "balanced"

    def test_reopen_counts_only_transactions_after_close(self, db_session, ledger, business, clock):
        def pos_sale(hour):
            db_session.add(models.Transaction(
                business_id=business.id, amount=Decimal("5"), payment_method="cash",
                category="pos_sale", created_at=datetime(2026, 3, 2, hour, 15)
            ))
            db_session.commit()

        shift = ledger.get_or_create_today_shift(business.id)
        pos_sale(9)
        clock.advance(hours=1)
        assert ledger.close_shift(shift.id, "0").total_transactions == 1

        pos_sale(12)
        reopened = ledger.refresh_totals(ledger.get_or_create_today_shift(business.id).id)
        assert reopened.total_transactions == 1

    def test_preview_does_not_write(self, db_session, ledger, business, clock):
        shift = ledger.get_or_create_today_shift(business.id)
        add_receipt(db_session, business, clock().date(), "40.00")
        shift = ledger.refresh_totals(shift.id)

        result = ledger.preview_reconciliation(shift.id, "35")
        assert result.discrepancy == Decimal("-5.00")
        assert result.classification.value == "short"
        shift = ledger.get_shift(shift.id)
        assert shift.status == "open"
        assert shift.actual_cash is None

class TestHandoverAndHistory:

    def test_hand_over(self, ledger, business):
        shift = ledger.get_or_create_today_shift(business.id)
        shift = ledger.hand_over(shift.id, "  Nyasha ")
        assert shift.current_operator == "Nyasha"

    def test_hand_over_requires_operator(self, ledger, business):
        shift = ledger.get_or_create_today_shift(business.id)
        with pytest.raises(ValidationError):
            ledger.hand_over(shift.id, " ")

    def test_hand_over_closed_shift(self, ledger, business):
        shift = ledger.get_or_create_today_shift(business.id)
        ledger.close_shift(shift.id, "0")
        with pytest.raises(InvalidOperationError):
            ledger.hand_over(shift.id, "Nyasha")

    def test_list_shifts_most_recent_first(self, ledger, business, clock):
        ids = []
        for _ in range(3):
            shift = ledger.get_or_create_today_shift(business.id)
            ledger.close_shift(shift.id, "0")
            ids.append(shift.id)
            clock.advance(days=1)
        today = ledger.get_or_create_today_shift(business.id)

        assert [s.id for s in ledger.list_shifts(business.id)] == [today.id] + ids[::-1]
        assert [s.id for s in ledger.list_shifts(business.id, status="closed")] == ids[::-1]
        assert [s.id for s in ledger.list_shifts(business.id, status="open")] == [today.id]

    def test_list_shifts_rejects_unknown_status(self, ledger, business):
        with pytest.raises(ValidationError):
            ledger.list_shifts(business.id, status="paused")

class TestShiftApi:

    def test_day_flow(self, client, db_session, account, business):
        headers = {"X-User-Id": str(account.id)}

        response = client.post(f"/shifts/today?business_id={business.id}", headers=headers)
        assert response.status_code == 200
        shift = response.json()
        assert shift["status"] == "open"
        assert Decimal(shift["opening_cash"]) == Decimal("0")

        again = client.post(f"/shifts/today?business_id={business.id}", headers=headers)
        assert again.json()["id"] == shift["id"]

        for total, method in [("60", "cash"), ("40", "cash"), ("25", "card")]:
            response = client.post(
                "/receipts/",
                json={"business_id": business.id, "total": total, "payment_method": method},
                headers=headers
            )
            assert response.status_code == 200

        response = client.post(f"/shifts/{shift['id']}/refresh", headers=headers)
        assert Decimal(response.json()["expected_cash"]) == Decimal("100")
        assert Decimal(response.json()["total_sales"]) == Decimal("125")

        preview = client.get(f"/shifts/{shift['id']}/reconcile?counted_cash=90", headers=headers)
        assert preview.status_code == 200
        assert preview.json()["classification"] == "short"

        response = client.post(
            f"/shifts/{shift['id']}/close",
            json={"counted_cash": "90", "discrepancy_notes": "Monnaie rendue en trop"},
            headers=headers
        )
        assert response.status_code == 200
        closed = response.json()
        assert closed["status"] == "closed"
        assert Decimal(closed["cash_discrepancy"]) == Decimal("-10")
        assert closed["cash_status"] == "short"

        response = client.post(f"/shifts/{shift['id']}/close", json={"counted_cash": "100"}, headers=headers)
        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "invalid_operation"

        response = client.get(f"/shifts/open?business_id={business.id}", headers=headers)
        assert response.status_code == 404

        history = client.get(f"/shifts/?business_id={business.id}", headers=headers).json()
        assert [s["id"] for s in history] == [shift["id"]]

    def test_close_without_count(self, client, account, business):
        headers = {"X-User-Id": str(account.id)}
        shift = client.post(f"/shifts/today?business_id={business.id}", headers=headers).json()
        response = client.post(f"/shifts/{shift['id']}/close", json={}, headers=headers)
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "counted_cash"

    def test_foreign_business_is_hidden(self, client, db_session, other_account, account):
        foreign = make_business(db_session, other_account)
        response = client.post(
            f"/shifts/today?business_id={foreign.id}",
            headers={"X-User-Id": str(account.id)}
        )
        assert response.status_code == 404

    def test_handover_endpoint(self, client, account, business):
        headers = {"X-User-Id": str(account.id)}
        shift = client.post(f"/shifts/today?business_id={business.id}", headers=headers).json()
        response = client.post(f"/shifts/{shift['id']}/handover", json={"operator": "Rudo"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["current_operator"] == "Rudo"

class TestSalesApi:

    def test_receipt_validation(self, client, account, business):
        headers = {"X-User-Id": str(account.id)}
        response = client.post(
            "/receipts/",
            json={"business_id": business.id, "total": "-3", "payment_method": "cash"},
            headers=headers
        )
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "total"

        response = client.post(
            "/receipts/",
            json={"business_id": business.id, "total": "3", "payment_method": "cash", "status": "refunded"},
            headers=headers
        )
        assert response.status_code == 422
        assert response.json()["detail"]["field"] == "status"

    def test_receipt_for_foreign_business(self, client, db_session, account, other_account):
        foreign = make_business(db_session, other_account)
        response = client.post(
            "/receipts/",
            json={"business_id": foreign.id, "total": "3", "payment_method": "cash"},
            headers={"X-User-Id": str(account.id)}
        )
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "not_found"

    def test_foreign_business_is_hidden_from_sales_lists(self, client, db_session, account, other_account):
        """Reçus et transactions partagent le même contrôle d'appartenance"""
        foreign = make_business(db_session, other_account)
        headers = {"X-User-Id": str(account.id)}
        for path in ["/receipts/", "/transactions/"]:
            response = client.get(f"{path}?business_id={foreign.id}", headers=headers)
            assert response.status_code == 404
            assert response.json()["detail"]["error"] == "not_found"

        response = client.post(
            "/transactions/",
            json={"business_id": foreign.id, "amount": "3", "payment_method": "cash", "category": "pos_sale"},
            headers=headers
        )
        assert response.status_code == 404

    def test_pos_transactions_are_counted(self, client, account, business):
        headers = {"X-User-Id": str(account.id)}
        shift = client.post(f"/shifts/today?business_id={business.id}", headers=headers).json()
        for category in ["pos_sale", "pos_sale", "loyer"]:
            response = client.post(
                "/transactions/",
                json={"business_id": business.id, "amount": "10", "payment_method": "cash", "category": category},
                headers=headers
            )
            assert response.status_code == 200

        listed = client.get(f"/transactions/?business_id={business.id}", headers=headers).json()
        assert len(listed) == 3

        refreshed = client.post(f"/shifts/{shift['id']}/refresh", headers=headers).json()
        assert refreshed["total_transactions"] == 2
