# BIZDESK/backend/scripts/seed_data.py : script pour générer des données de démo

#!/usr/bin/env python
"""Script pour générer des données de démo : plans, compte, entreprises, ventes et sessions de caisse"""

import random
import sys
import os
from datetime import datetime, timedelta
from decimal import Decimal
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.database import SessionLocal, create_tables
from app.models import models
from app.services.plan_service import ensure_default_plans
from app.services.business_service import BusinessService
from app.services.shift_service import ShiftService

DAYS = 14

def generate_test_data():
    """Génère des données de démo sur les deux dernières semaines"""
    create_tables()
    db = SessionLocal()
    try:
        ensure_default_plans(db)

        demo_user = models.User(email="demo@bizdesk.app")
        db.add(demo_user)
        db.commit()
        db.refresh(demo_user)

        # Abonnement Starter : 3 entreprises
        starter = db.query(models.SubscriptionPlan).filter(models.SubscriptionPlan.name == "Starter").one()
        db.add(models.UserSubscription(user_id=demo_user.id, plan_id=starter.id, status="active"))
        db.commit()

        businesses = BusinessService(db, demo_user.id)
        shop = businesses.create_business({
            "name": "Tuck Shop Mbare",
            "owner_name": "Demo Owner",
            "business_type": "retail",
            "stage": "running",
            "location": "Harare",
            "capital": "500",
            "currency": "USD"
        })
        businesses.create_business({
            "name": "Salon Avondale",
            "owner_name": "Demo Owner",
            "business_type": "salon",
            "location": "Harare",
            "capital": "1200"
        })
        businesses.switch_active(shop.id)

        methods = ["cash", "cash", "mobile_money", "card", "bank_transfer"]
        start = datetime.utcnow() - timedelta(days=DAYS)

        for offset in range(DAYS):
            day = start + timedelta(days=offset)
            for _ in range(random.randint(3, 8)):
                total = Decimal(random.randint(100, 5000)) / 100
                method = random.choice(methods)
                db.add(models.Receipt(
                    business_id=shop.id, receipt_date=day.date(), payment_method=method,
                    total=total, discount_amount=Decimal("0"), status="paid"
                ))
                db.add(models.Transaction(
                    business_id=shop.id, amount=total, payment_method=method,
                    category="pos_sale", description="POS Sale", created_at=day
                ))
            db.commit()

            # Session du jour, clôturée avec un comptage légèrement bruité
            shifts = ShiftService(db, demo_user.id, clock=lambda day=day: day)
            shift = shifts.get_or_create_today_shift(shop.id)
            shift = shifts.refresh_totals(shift.id)
            counted = Decimal(shift.expected_cash) + Decimal(random.choice([0, 0, 0, 1, -2]))
            shifts.close_shift(
                shift.id, str(counted),
                discrepancy_notes=None if counted == shift.expected_cash else "Écart de démo"
            )

        print("✅ Données de démo générées avec succès!")
        print(f"👤 Compte de démo: demo@bizdesk.app (X-User-Id: {demo_user.id})")
    finally:
        db.close()

if __name__ == "__main__":
    generate_test_data()
