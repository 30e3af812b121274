# BIZDESK/backend/app/services/plan_service.py : plan d'abonnement et limites

from sqlalchemy import or_
from sqlalchemy.orm import Session
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple
from app.models import models
from app.config import DEFAULT_PLAN_NAME, DEFAULT_MAX_BUSINESSES
from app.constants import DEFAULT_PLANS
import logging

logger = logging.getLogger(__name__)

class PlanService:
    """Lecture seule : nom du plan du compte et nombre maximal d'entreprises"""

    def __init__(self, db: Session, user_id: int):
        self.db = db
        self.user_id = user_id

    def _active_subscription(self, now: datetime):
        return self.db.query(models.UserSubscription).filter(
            models.UserSubscription.user_id == self.user_id,
            models.UserSubscription.status == "active",
            or_(
                models.UserSubscription.end_date.is_(None),
                models.UserSubscription.end_date > now
            )
        ).order_by(models.UserSubscription.start_date.desc()).first()

    def _active_trial(self, now: datetime):
        return self.db.query(models.PremiumTrial).filter(
            models.PremiumTrial.user_id == self.user_id,
            models.PremiumTrial.status == "active",
            models.PremiumTrial.end_date > now
        ).order_by(models.PremiumTrial.start_date.desc()).first()

    def get_plan(self, now: Optional[datetime] = None) -> Tuple[str, int]:
        """
        Retourne (nom du plan, max d'entreprises).
        Un essai actif plus récent que l'abonnement l'emporte ; sans abonnement
        ni essai, le plan par défaut s'applique.
        """
        now = now or datetime.utcnow()
        subscription = self._active_subscription(now)
        trial = self._active_trial(now)

        chosen = subscription
        if trial and (subscription is None or trial.start_date > subscription.start_date):
            chosen = trial

        if chosen is None:
            return DEFAULT_PLAN_NAME, DEFAULT_MAX_BUSINESSES
        return chosen.plan.name, chosen.plan.max_businesses

def ensure_default_plans(db: Session) -> int:
    """Insère les plans du catalogue par défaut absents ; retourne le nombre ajouté"""
    existing = {name for (name,) in db.query(models.SubscriptionPlan.name).all()}
    added = 0
    for plan in DEFAULT_PLANS:
        if plan["name"] in existing:
            continue
        db.add(models.SubscriptionPlan(
            name=plan["name"],
            description=plan["description"],
            price=Decimal(plan["price"]),
            max_businesses=plan["max_businesses"],
            display_order=plan["display_order"]
        ))
        added += 1
    if added:
        db.commit()
        logger.info(f"✅ {added} plan(s) d'abonnement ajouté(s)")
    return added
