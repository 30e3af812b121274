# BIZDESK/backend/app/services/shift_service.py : sessions de caisse et clôture de journée

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from datetime import datetime, date
from decimal import Decimal
from typing import Callable, List, Optional
from app.models import models
from app.constants import SHIFT_OPEN, SHIFT_CLOSED, MAX_SHIFTS_PER_PAGE
from app.exceptions import ValidationError, NotFoundError, InvalidOperationError
from app.services.money import parse_money, quantize, ZERO
from app.services.reconciliation import reconcile, ReconciliationResult
from app.services.totals_service import TotalsAggregator, SqlTotalsAggregator
from app import config
import logging

logger = logging.getLogger(__name__)

class ShiftService:
    """
    Cycle de vie d'une session de caisse : open -> closed (terminal).

    Chaque opération reçoit explicitement l'identifiant de l'entreprise ;
    il n'y a pas d'entreprise « courante » implicite.
    """

    def __init__(
        self,
        db: Session,
        user_id: int,
        aggregator: Optional[TotalsAggregator] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
        require_discrepancy_notes: Optional[bool] = None
    ):
        self.db = db
        self.user_id = user_id
        self.aggregator = aggregator or SqlTotalsAggregator(db)
        self.clock = clock
        if require_discrepancy_notes is None:
            require_discrepancy_notes = config.REQUIRE_DISCREPANCY_NOTES
        self.require_discrepancy_notes = require_discrepancy_notes

    def _today(self) -> date:
        return self.clock().date()

    def _verify_access(self, business_id: int) -> models.Business:
        """Vérifie que l'entreprise appartient au compte"""
        business = self.db.query(models.Business).filter(
            models.Business.id == business_id,
            models.Business.owner_id == self.user_id
        ).first()
        if not business:
            raise NotFoundError("Entreprise non trouvée")
        return business

    # ========== Lecture ==========

    def get_shift(self, shift_id: int) -> models.Shift:
        shift = self.db.query(models.Shift).join(models.Business).filter(
            models.Shift.id == shift_id,
            models.Business.owner_id == self.user_id
        ).first()
        if not shift:
            raise NotFoundError("Session de caisse non trouvée")
        return shift

    def find_open_shift(self, business_id: int, shift_date: Optional[date] = None) -> Optional[models.Shift]:
        """Recherche pure : la session ouverte de l'entreprise pour la date (aujourd'hui par défaut)"""
        self._verify_access(business_id)
        return self.db.query(models.Shift).filter(
            models.Shift.business_id == business_id,
            models.Shift.shift_date == (shift_date or self._today()),
            models.Shift.status == SHIFT_OPEN
        ).first()

    def list_shifts(self, business_id: int, status: Optional[str] = None,
                    limit: int = MAX_SHIFTS_PER_PAGE) -> List[models.Shift]:
        """Historique des sessions, la plus récente d'abord"""
        self._verify_access(business_id)
        if status is not None and status not in (SHIFT_OPEN, SHIFT_CLOSED):
            raise ValidationError(f"Statut inconnu: {status}", field="status")

        query = self.db.query(models.Shift).filter(models.Shift.business_id == business_id)
        if status:
            query = query.filter(models.Shift.status == status)
        return query.order_by(
            models.Shift.shift_date.desc(), models.Shift.id.desc()
        ).limit(min(limit, MAX_SHIFTS_PER_PAGE)).all()

    def _carry_over_cash(self, business_id: int) -> Decimal:
        """Fond de caisse : espèces comptées à la dernière clôture, sinon zéro"""
        last_closed = self.db.query(models.Shift).filter(
            models.Shift.business_id == business_id,
            models.Shift.status == SHIFT_CLOSED
        ).order_by(
            models.Shift.shift_date.desc(),
            models.Shift.shift_end_time.desc(),
            models.Shift.id.desc()
        ).first()

        if last_closed is None:
            return ZERO
        if last_closed.actual_cash is not None:
            return quantize(last_closed.actual_cash)
        if last_closed.cash_at_hand is not None:
            return quantize(last_closed.cash_at_hand)
        return ZERO

    # ========== Ouverture ==========

    def create_shift(self, business_id: int, shift_date: Optional[date] = None,
                     operator: Optional[str] = None) -> models.Shift:
        """
        Ouvre une nouvelle session. L'index unique partiel (business_id, shift_date)
        WHERE status = 'open' garantit l'unicité même entre plusieurs clients.
        """
        business = self._verify_access(business_id)
        shift_date = shift_date or self._today()

        if self.find_open_shift(business_id, shift_date):
            raise InvalidOperationError("Une session est déjà ouverte pour cette date")

        opening_cash = self._carry_over_cash(business_id)
        now = self.clock()
        shift = models.Shift(
            business_id=business.id,
            user_id=self.user_id,
            shift_date=shift_date,
            shift_start_time=now,
            opened_by=self.user_id,
            current_operator=operator,
            status=SHIFT_OPEN,
            opening_cash=opening_cash,
            expected_cash=opening_cash,
            total_sales=ZERO,
            cash_sales=ZERO,
            card_sales=ZERO,
            mobile_money_sales=ZERO,
            bank_transfer_sales=ZERO,
            other_sales=ZERO,
            total_transactions=0,
            total_receipts=0,
            total_discounts=ZERO,
            currency=business.currency or config.DEFAULT_CURRENCY,
            created_at=now,
            updated_at=now
        )
        self.db.add(shift)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise InvalidOperationError("Une session est déjà ouverte pour cette date")

        self.db.refresh(shift)
        logger.info(
            f"🟢 Session {shift.id} ouverte pour l'entreprise {business_id} "
            f"({shift_date.isoformat()}, fond de caisse {opening_cash})"
        )
        return shift

    def get_or_create_today_shift(self, business_id: int) -> models.Shift:
        """Session ouverte du jour ; créée si absente. Sans doublon si appelée plusieurs fois."""
        today = self._today()
        shift = self.find_open_shift(business_id, today)
        if shift:
            return shift
        try:
            return self.create_shift(business_id, today)
        except InvalidOperationError:
            # Un autre appel a créé la session entre la recherche et l'insertion
            shift = self.find_open_shift(business_id, today)
            if shift is None:
                raise
            return shift

    # ========== Totaux ==========

    def _totals_values(self, shift: models.Shift) -> dict:
        totals = self.aggregator.recompute(shift)
        return {
            "cash_sales": totals.cash,
            "card_sales": totals.card,
            "mobile_money_sales": totals.mobile_money,
            "bank_transfer_sales": totals.bank_transfer,
            "other_sales": totals.other,
            "total_sales": totals.total_sales,
            "total_transactions": totals.transaction_count,
            "total_receipts": totals.receipt_count,
            "total_discounts": totals.total_discounts,
            "expected_cash": quantize(Decimal(shift.opening_cash) + totals.cash),
        }

    def _update_if_open(self, shift_id: int, values: dict) -> int:
        """UPDATE conditionnel : n'affecte la ligne que si la session est encore ouverte"""
        return self.db.query(models.Shift).filter(
            models.Shift.id == shift_id,
            models.Shift.status == SHIFT_OPEN
        ).update(values, synchronize_session=False)

    def refresh_totals(self, shift_id: int) -> models.Shift:
        """
        Recalcule les totaux d'une session ouverte. Sur une session clôturée,
        ne fait rien et retourne l'enregistrement tel quel (historique immuable).
        """
        shift = self.get_shift(shift_id)
        if shift.is_closed:
            return shift

        values = self._totals_values(shift)
        values["updated_at"] = self.clock()
        self._update_if_open(shift.id, values)
        self.db.commit()
        self.db.refresh(shift)
        logger.info(f"🔄 Totaux de la session {shift.id} recalculés: ventes {shift.total_sales}")
        return shift

    # ========== Rapprochement et clôture ==========

    def preview_reconciliation(self, shift_id: int, counted_cash) -> ReconciliationResult:
        """Écart entre les espèces comptées et l'attendu actuel, sans rien écrire"""
        counted = parse_money(counted_cash, "counted_cash")
        shift = self.get_shift(shift_id)
        return reconcile(shift.expected_cash, counted)

    def close_shift(self, shift_id: int, counted_cash, discrepancy_notes: Optional[str] = None,
                    notes: Optional[str] = None) -> models.Shift:
        """
        Seule transition open -> closed. Recalcule une dernière fois les totaux,
        calcule l'écart et enregistre la clôture. Une seconde clôture est refusée.
        Si le recalcul échoue, la clôture est annulée et l'erreur remonte telle quelle.
        """
        counted = parse_money(counted_cash, "counted_cash")
        discrepancy_notes = (discrepancy_notes or "").strip() or None
        notes = (notes or "").strip() or None

        shift = self.get_shift(shift_id)
        if shift.is_closed:
            logger.warning(f"⛔ Tentative de clôture de la session {shift.id} déjà clôturée")
            raise InvalidOperationError("Cette session de caisse est déjà clôturée")

        try:
            values = self._totals_values(shift)
        except Exception as e:
            logger.error(f"❌ Recalcul des totaux impossible, clôture de la session {shift.id} annulée: {e}")
            self.db.rollback()
            raise

        result = reconcile(values["expected_cash"], counted)
        if not result.is_balanced and not discrepancy_notes:
            if self.require_discrepancy_notes:
                raise ValidationError(
                    "Une explication est requise lorsque la caisse présente un écart",
                    field="discrepancy_notes"
                )
            logger.warning(f"⚠️ Session {shift.id} clôturée avec un écart de {result.discrepancy} sans explication")

        now = self.clock()
        values.update({
            "actual_cash": result.counted_cash,
            "cash_at_hand": result.counted_cash,
            "cash_discrepancy": result.discrepancy,
            "discrepancy_notes": discrepancy_notes,
            "notes": notes,
            "shift_end_time": now,
            "closed_by": self.user_id,
            "status": SHIFT_CLOSED,
            "updated_at": now,
        })
        if self._update_if_open(shift.id, values) == 0:
            # Une clôture concurrente est passée entre la lecture et l'écriture
            self.db.rollback()
            raise InvalidOperationError("Cette session de caisse est déjà clôturée")

        self.db.commit()
        self.db.refresh(shift)
        logger.info(
            f"🔒 Session {shift.id} clôturée: attendu {result.expected_cash}, "
            f"compté {result.counted_cash}, écart {result.discrepancy} ({result.classification.value})"
        )
        return shift

    def hand_over(self, shift_id: int, operator: str) -> models.Shift:
        """Passation : un autre employé reprend la session ouverte"""
        operator = (operator or "").strip()
        if not operator:
            raise ValidationError("Le nom de l'employé est obligatoire", field="operator")

        shift = self.get_shift(shift_id)
        if shift.is_closed:
            raise InvalidOperationError("Impossible de reprendre une session clôturée")

        if self._update_if_open(shift.id, {"current_operator": operator, "updated_at": self.clock()}) == 0:
            self.db.rollback()
            raise InvalidOperationError("Impossible de reprendre une session clôturée")
        self.db.commit()
        self.db.refresh(shift)
        logger.info(f"🤝 Session {shift.id} reprise par {operator}")
        return shift
