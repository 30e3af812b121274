# BIZDESK/backend/tests/conftest.py : configuration pour les tests

import sys
from pathlib import Path

# Ajoute le dossier parent au PYTHONPATH
BASE_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(BASE_DIR))

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from app.main import app
from app.database import Base, get_db, enable_sqlite_foreign_keys
from app.models import models

VALID_DRAFT = {
    "name": "Tuck Shop Mbare",
    "owner_name": "Tendai Moyo",
    "business_type": "retail",
    "stage": "running",
    "location": "Harare",
    "capital": "1500.50",
    "currency": "USD",
    "phone": "+263 77 123 4567",
    "guide_book": "start-your-business"
}

class FakeClock:
    """Horloge pilotable pour changer de jour dans les tests"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)

@pytest.fixture
def db_engine():
    """Base SQLite en mémoire, neuve pour chaque test"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture
def db_session(db_engine):
    """Créer une session de base de données pour chaque test"""
    session = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)()
    yield session
    session.close()

@pytest.fixture
def client(db_session):
    """Client de test avec la base de données de test"""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest.fixture
def account(db_session):
    user = models.User(email="owner@bizdesk.app")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user

@pytest.fixture
def other_account(db_session):
    user = models.User(email="other@bizdesk.app")
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user

@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 0, 0))

def subscribe(db, user, plan_name="Professional", max_businesses=10, start=None, end=None, trial=False):
    """Abonne un compte à un plan (créé s'il n'existe pas)"""
    plan = db.query(models.SubscriptionPlan).filter(models.SubscriptionPlan.name == plan_name).first()
    if not plan:
        plan = models.SubscriptionPlan(name=plan_name, max_businesses=max_businesses)
        db.add(plan)
        db.commit()
    model = models.PremiumTrial if trial else models.UserSubscription
    if trial and end is None:
        end = datetime.utcnow() + timedelta(days=14)
    db.add(model(
        user_id=user.id,
        plan_id=plan.id,
        status="active",
        start_date=start or datetime.utcnow() - timedelta(days=1),
        end_date=end
    ))
    db.commit()
    return plan

def make_business(db, user, **overrides):
    """Insère directement une entreprise, sans passer par les limites du plan"""
    fields = dict(VALID_DRAFT)
    fields["capital"] = Decimal("1500.50")
    fields.update(overrides)
    business = models.Business(owner_id=user.id, **fields)
    db.add(business)
    db.commit()
    db.refresh(business)
    return business
