# BIZDESK/backend/app/services/business_service.py : gestion multi-entreprises

from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from datetime import datetime
from typing import List, Dict, Any, Optional
from app.models import models
from app.constants import (
    BUSINESS_TYPES, BUSINESS_STAGES, CURRENCIES, GUIDE_BOOKS, UNLIMITED_BUSINESSES
)
from app.exceptions import ValidationError, LimitExceededError, NotFoundError, InvalidOperationError
from app.services.money import parse_money
from app.services.plan_service import PlanService
import logging

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = {
    "name": "nom de l'entreprise",
    "owner_name": "nom du propriétaire",
    "location": "localisation",
}

def _clean_text(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None

def _choice(draft: Dict[str, Any], field: str, allowed: List[str], default: str) -> str:
    value = _clean_text(draft.get(field)) or default
    if value not in allowed:
        raise ValidationError(
            f"Valeur invalide pour '{field}': {value} (attendu: {', '.join(allowed)})",
            field=field
        )
    return value

def validate_draft(draft: Dict[str, Any]) -> Dict[str, Any]:
    """Valide le formulaire d'onboarding et retourne les champs convertis"""
    cleaned = {}
    for field, label in REQUIRED_FIELDS.items():
        value = _clean_text(draft.get(field))
        if value is None:
            raise ValidationError(f"Le champ {label} est obligatoire", field=field)
        cleaned[field] = value

    cleaned["capital"] = parse_money(draft.get("capital"), "capital")
    cleaned["business_type"] = _choice(draft, "business_type", BUSINESS_TYPES, "retail")
    cleaned["stage"] = _choice(draft, "stage", BUSINESS_STAGES, "running")
    cleaned["currency"] = _choice(draft, "currency", CURRENCIES, "USD")
    cleaned["guide_book"] = _choice(draft, "guide_book", GUIDE_BOOKS, "none")
    cleaned["phone"] = _clean_text(draft.get("phone"))
    return cleaned

class BusinessService:
    """Entreprises d'un compte, pointeur d'entreprise active et limites du plan"""

    def __init__(self, db: Session, user_id: int, plans: Optional[PlanService] = None):
        self.db = db
        self.user_id = user_id
        self.plans = plans or PlanService(db, user_id)

    def _get_account(self) -> models.User:
        user = self.db.query(models.User).filter(models.User.id == self.user_id).first()
        if not user:
            raise NotFoundError("Compte non trouvé")
        return user

    def _query(self):
        return self.db.query(models.Business).filter(models.Business.owner_id == self.user_id)

    def list_businesses(self) -> List[models.Business]:
        """Toutes les entreprises du compte, dans l'ordre de création"""
        return self._query().order_by(models.Business.id).all()

    def get_business(self, business_id: int) -> models.Business:
        """Une entreprise du compte ; celle d'un autre compte est traitée comme inexistante"""
        business = self._query().filter(models.Business.id == business_id).first()
        if not business:
            raise NotFoundError("Entreprise non trouvée")
        return business

    def check_limit(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Recalcule la limite à chaque appel (jamais mise en cache)"""
        plan_name, max_businesses = self.plans.get_plan(now)
        current_count = self._query().count()
        can_create = max_businesses == UNLIMITED_BUSINESSES or current_count < max_businesses
        return {
            "can_create": can_create,
            "current_count": current_count,
            "max_businesses": max_businesses,
            "plan_name": plan_name
        }

    def create_business(self, draft: Dict[str, Any]) -> models.Business:
        """
        Crée une entreprise à partir du formulaire d'onboarding.
        Ne la rend PAS active : l'appelant doit appeler switch_active.
        """
        fields = validate_draft(draft)

        # Revérifié ici : la limite peut avoir changé depuis l'affichage du formulaire
        limit = self.check_limit()
        if not limit["can_create"]:
            logger.warning(
                f"⛔ Limite atteinte pour le compte {self.user_id}: "
                f"{limit['current_count']}/{limit['max_businesses']} ({limit['plan_name']})"
            )
            raise LimitExceededError(
                f"Limite d'entreprises atteinte. Votre plan {limit['plan_name']} "
                f"autorise {limit['max_businesses']} entreprise(s).",
                limit_info=limit
            )

        business = models.Business(owner_id=self.user_id, **fields)
        self.db.add(business)
        self.db.commit()
        self.db.refresh(business)
        logger.info(f"🏪 Entreprise {business.id} créée pour le compte {self.user_id}")
        return business

    def get_active_business(self) -> Optional[models.Business]:
        account = self._get_account()
        if account.active_business_id is None:
            return None
        return self._query().filter(models.Business.id == account.active_business_id).first()

    def _lock_account(self) -> models.User:
        """Relit le compte en base en verrouillant sa ligne : bascule et suppression passent l'une après l'autre"""
        account = self.db.query(models.User).filter(
            models.User.id == self.user_id
        ).populate_existing().with_for_update().first()
        if not account:
            raise NotFoundError("Compte non trouvé")
        return account

    def switch_active(self, business_id: int) -> models.Business:
        """Change l'entreprise active ; idempotent si elle l'est déjà"""
        account = self._lock_account()
        business = self.get_business(business_id)
        if account.active_business_id == business.id:
            self.db.commit()
            return business

        account.active_business_id = business.id
        try:
            self.db.commit()
        except IntegrityError:
            # L'entreprise a été supprimée entre la lecture et l'écriture
            self.db.rollback()
            raise NotFoundError("Entreprise non trouvée")
        logger.info(f"🔀 Compte {self.user_id}: entreprise active -> {business.id}")
        return business

    def delete_business(self, business_id: int) -> None:
        """Supprime une entreprise et ses données (sessions, reçus, transactions)"""
        account = self._lock_account()
        business = self.get_business(business_id)

        # L'entreprise active est relue en base au moment de la vérification
        if account.active_business_id == business.id:
            self.db.rollback()
            raise InvalidOperationError(
                "Impossible de supprimer l'entreprise active. Activez d'abord une autre entreprise."
            )

        self.db.delete(business)
        self.db.commit()
        logger.info(f"🗑️ Entreprise {business_id} supprimée du compte {self.user_id}")
