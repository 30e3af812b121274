# BIZDESK/backend/app/services/totals_service.py : recalcul des totaux d'une session

from sqlalchemy.orm import Session
from sqlalchemy import func, case
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Optional
from app.models import models
from app.constants import PAYMENT_METHODS, RECEIPT_PAID, POS_SALE_CATEGORY, SHIFT_CLOSED
from app.services.money import quantize, ZERO

# Moyens ventilés dans leur propre colonne ; tout le reste va dans other_sales
TENDERS = tuple(PAYMENT_METHODS)

@dataclass
class ShiftTotals:
    cash: Decimal = ZERO
    card: Decimal = ZERO
    mobile_money: Decimal = ZERO
    bank_transfer: Decimal = ZERO
    other: Decimal = ZERO
    transaction_count: int = 0
    receipt_count: int = 0
    total_discounts: Decimal = field(default=ZERO)

    @property
    def total_sales(self) -> Decimal:
        return self.cash + self.card + self.mobile_money + self.bank_transfer + self.other

class TotalsAggregator:
    """Interface : recalcule les totaux de ventes d'une session à partir des données sous-jacentes"""

    def recompute(self, shift: models.Shift) -> ShiftTotals:
        """À redéfinir dans les sous-classes ; toute exception remonte telle quelle à l'appelant"""
        raise NotImplementedError

class SqlTotalsAggregator(TotalsAggregator):
    """
    Totaux calculés depuis la base :
    - ventes par moyen de paiement, nombre de reçus et remises : reçus payés du jour
    - nombre de transactions : transactions POS créées le jour de la session

    Si une session a déjà été clôturée le même jour, seules les ventes
    enregistrées après cette clôture comptent : elles sont déjà dans le
    fond de caisse reporté.
    """

    def __init__(self, db: Session):
        self.db = db

    def _previous_close(self, shift: models.Shift) -> Optional[datetime]:
        """Heure de la dernière clôture du même jour, avant l'ouverture de cette session"""
        return self.db.query(func.max(models.Shift.shift_end_time)).filter(
            models.Shift.business_id == shift.business_id,
            models.Shift.shift_date == shift.shift_date,
            models.Shift.status == SHIFT_CLOSED,
            models.Shift.id != shift.id,
            models.Shift.shift_end_time <= shift.shift_start_time
        ).scalar()

    def _sum_for(self, method):
        return func.coalesce(func.sum(
            case((models.Receipt.payment_method == method, models.Receipt.total), else_=0)
        ), 0)

    def recompute(self, shift: models.Shift) -> ShiftTotals:
        previous_close = self._previous_close(shift)

        receipts = self.db.query(
            self._sum_for("cash"),
            self._sum_for("card"),
            self._sum_for("mobile_money"),
            self._sum_for("bank_transfer"),
            func.coalesce(func.sum(
                case((models.Receipt.payment_method.notin_(TENDERS), models.Receipt.total), else_=0)
            ), 0),
            func.count(models.Receipt.id),
            func.coalesce(func.sum(models.Receipt.discount_amount), 0)
        ).filter(
            models.Receipt.business_id == shift.business_id,
            models.Receipt.receipt_date == shift.shift_date,
            models.Receipt.status == RECEIPT_PAID
        )

        day_start = datetime.combine(shift.shift_date, time.min)
        transactions = self.db.query(func.count(models.Transaction.id)).filter(
            models.Transaction.business_id == shift.business_id,
            models.Transaction.category == POS_SALE_CATEGORY,
            models.Transaction.created_at >= day_start,
            models.Transaction.created_at < day_start + timedelta(days=1)
        )

        if previous_close is not None:
            receipts = receipts.filter(models.Receipt.created_at > previous_close)
            transactions = transactions.filter(models.Transaction.created_at > previous_close)
        if shift.shift_end_time is not None:
            receipts = receipts.filter(models.Receipt.created_at <= shift.shift_end_time)
            transactions = transactions.filter(models.Transaction.created_at <= shift.shift_end_time)

        cash, card, mobile_money, bank_transfer, other, receipt_count, discounts = receipts.one()
        transaction_count = transactions.scalar() or 0
        return ShiftTotals(
            cash=quantize(cash),
            card=quantize(card),
            mobile_money=quantize(mobile_money),
            bank_transfer=quantize(bank_transfer),
            other=quantize(other),
            transaction_count=int(transaction_count),
            receipt_count=int(receipt_count or 0),
            total_discounts=quantize(discounts)
        )
