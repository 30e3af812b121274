# BIZDESK/backend/app/models/models.py

from sqlalchemy import (
    Column, Integer, String, Numeric, ForeignKey, DateTime, Date, Text, Index, text
)
from sqlalchemy.orm import relationship
from datetime import datetime
from decimal import Decimal
from app.database import Base
from app.constants import SHIFT_OPEN, SHIFT_CLOSED, RECEIPT_PAID

# Montants : DECIMAL(15, 2), jamais de float pour l'argent
Money = Numeric(15, 2, asdecimal=True)

class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Pointeur vers l'entreprise active (jamais une copie) ; remis à NULL si l'entreprise disparaît
    active_business_id = Column(
        Integer,
        ForeignKey("businesses.id", ondelete="SET NULL", use_alter=True, name="fk_users_active_business"),
        nullable=True
    )

    businesses = relationship(
        "Business",
        back_populates="owner",
        foreign_keys="Business.owner_id",
        cascade="all, delete-orphan",
        order_by="Business.id"
    )
    subscriptions = relationship("UserSubscription", back_populates="user", cascade="all, delete-orphan")
    trials = relationship("PremiumTrial", back_populates="user", cascade="all, delete-orphan")

class Business(Base):
    __tablename__ = "businesses"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    owner_name = Column(String, nullable=False)
    business_type = Column(String, nullable=False, default="retail")
    stage = Column(String, nullable=False, default="running")
    location = Column(String, nullable=False)
    capital = Column(Money, nullable=False, default=Decimal("0"))
    currency = Column(String, nullable=False, default="USD")
    phone = Column(String, nullable=True)
    guide_book = Column(String, nullable=False, default="none")
    created_at = Column(DateTime, default=datetime.utcnow)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    owner = relationship("User", back_populates="businesses", foreign_keys=[owner_id])
    shifts = relationship("Shift", back_populates="business", cascade="all, delete-orphan")
    receipts = relationship("Receipt", back_populates="business", cascade="all, delete-orphan")
    transactions = relationship("Transaction", back_populates="business", cascade="all, delete-orphan")

class SubscriptionPlan(Base):
    __tablename__ = "subscription_plans"
    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    description = Column(String)
    price = Column(Money, nullable=False, default=Decimal("0"))
    # -1 = illimité
    max_businesses = Column(Integer, nullable=False, default=1)
    display_order = Column(Integer, nullable=False, default=0)

class UserSubscription(Base):
    __tablename__ = "user_subscriptions"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False)
    status = Column(String, nullable=False, default="active")
    start_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    end_date = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="subscriptions")
    plan = relationship("SubscriptionPlan")

class PremiumTrial(Base):
    __tablename__ = "premium_trials"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    plan_id = Column(Integer, ForeignKey("subscription_plans.id"), nullable=False)
    status = Column(String, nullable=False, default="active")
    start_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    end_date = Column(DateTime, nullable=False)

    user = relationship("User", back_populates="trials")
    plan = relationship("SubscriptionPlan")

class Shift(Base):
    """Session de caisse (POS) d'une entreprise pour une journée"""
    __tablename__ = "pos_shifts"
    __table_args__ = (
        # Une seule session ouverte par entreprise et par jour
        Index(
            "uq_pos_shifts_open_per_day",
            "business_id", "shift_date",
            unique=True,
            sqlite_where=text("status = 'open'"),
            postgresql_where=text("status = 'open'")
        ),
        Index("idx_pos_shifts_business_date", "business_id", "shift_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    # Informations de session
    shift_date = Column(Date, nullable=False)
    shift_start_time = Column(DateTime, nullable=False, default=datetime.utcnow)
    shift_end_time = Column(DateTime, nullable=True)
    opened_by = Column(Integer, nullable=True)
    closed_by = Column(Integer, nullable=True)
    current_operator = Column(String, nullable=True)
    status = Column(String, nullable=False, default=SHIFT_OPEN)

    # Gestion de la caisse
    opening_cash = Column(Money, nullable=False, default=Decimal("0"))
    expected_cash = Column(Money, nullable=False, default=Decimal("0"))  # fond de caisse + ventes espèces
    actual_cash = Column(Money, nullable=True)  # compté à la clôture
    cash_at_hand = Column(Money, nullable=True)
    cash_discrepancy = Column(Money, nullable=True)  # actual_cash - expected_cash
    discrepancy_notes = Column(Text, nullable=True)

    # Ventes par moyen de paiement
    total_sales = Column(Money, nullable=False, default=Decimal("0"))
    cash_sales = Column(Money, nullable=False, default=Decimal("0"))
    card_sales = Column(Money, nullable=False, default=Decimal("0"))
    mobile_money_sales = Column(Money, nullable=False, default=Decimal("0"))
    bank_transfer_sales = Column(Money, nullable=False, default=Decimal("0"))
    other_sales = Column(Money, nullable=False, default=Decimal("0"))

    total_transactions = Column(Integer, nullable=False, default=0)
    total_receipts = Column(Integer, nullable=False, default=0)
    total_discounts = Column(Money, nullable=False, default=Decimal("0"))

    currency = Column(String, nullable=False, default="USD")
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    business = relationship("Business", back_populates="shifts")

    @property
    def is_open(self):
        return self.status == SHIFT_OPEN

    @property
    def is_closed(self):
        return self.status == SHIFT_CLOSED

    @property
    def cash_status(self):
        """balanced / over / short une fois l'écart calculé, sinon None"""
        if self.cash_discrepancy is None:
            return None
        from app.services.reconciliation import classify
        return classify(Decimal(self.cash_discrepancy)).value

class Receipt(Base):
    __tablename__ = "receipts"
    id = Column(Integer, primary_key=True)
    receipt_date = Column(Date, nullable=False, index=True)
    payment_method = Column(String, nullable=False)
    total = Column(Money, nullable=False)
    discount_amount = Column(Money, nullable=False, default=Decimal("0"))
    status = Column(String, nullable=False, default=RECEIPT_PAID)
    created_at = Column(DateTime, default=datetime.utcnow)

    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    business = relationship("Business", back_populates="receipts")

class Transaction(Base):
    __tablename__ = "transactions"
    id = Column(Integer, primary_key=True)
    amount = Column(Money, nullable=False)
    payment_method = Column(String, nullable=False)
    category = Column(String, nullable=False)
    description = Column(String)
    created_at = Column(DateTime, default=datetime.utcnow)

    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    business = relationship("Business", back_populates="transactions")
