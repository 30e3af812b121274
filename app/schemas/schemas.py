# BIZDESK/backend/app/schemas/schemas.py

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from typing import Optional, Union
from datetime import datetime, date
from decimal import Decimal

# Les montants saisis arrivent en chaînes numériques ; le cœur les valide et les convertit
MoneyInput = Optional[Union[str, int, float, Decimal]]

# ---------- USER SCHEMAS ----------
class UserCreate(BaseModel):
    email: str

class UserOut(BaseModel):
    id: int
    email: str
    active_business_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

# ---------- BUSINESS SCHEMAS ----------
class BusinessCreate(BaseModel):
    """Formulaire d'onboarding ; la validation métier est faite par BusinessService"""
    name: Optional[str] = None
    owner_name: Optional[str] = Field(None, alias="owner")
    business_type: Optional[str] = Field(None, alias="type")
    stage: Optional[str] = None
    location: Optional[str] = None
    capital: MoneyInput = None
    currency: Optional[str] = None
    phone: Optional[str] = None
    guide_book: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

class BusinessOut(BaseModel):
    id: int
    name: str
    owner_name: str
    business_type: str
    stage: str
    location: str
    capital: Decimal
    currency: str
    phone: Optional[str] = None
    guide_book: str
    created_at: datetime
    owner_id: int

    model_config = ConfigDict(from_attributes=True)

    @field_serializer('created_at')
    def serialize_datetime(self, value: datetime) -> str:
        """Sérialise un datetime en chaîne ISO 8601 pour JSON."""
        return value.isoformat()

class BusinessLimitOut(BaseModel):
    can_create: bool
    current_count: int
    max_businesses: int  # -1 = illimité
    plan_name: Optional[str] = None

# ---------- SHIFT SCHEMAS ----------
class ShiftOut(BaseModel):
    id: int
    business_id: int
    shift_date: date
    shift_start_time: datetime
    shift_end_time: Optional[datetime] = None
    status: str
    opened_by: Optional[int] = None
    closed_by: Optional[int] = None
    current_operator: Optional[str] = None

    opening_cash: Decimal
    expected_cash: Decimal
    actual_cash: Optional[Decimal] = None
    cash_discrepancy: Optional[Decimal] = None
    cash_status: Optional[str] = None
    discrepancy_notes: Optional[str] = None

    total_sales: Decimal
    cash_sales: Decimal
    card_sales: Decimal
    mobile_money_sales: Decimal
    bank_transfer_sales: Decimal
    other_sales: Decimal
    total_transactions: int
    total_receipts: int
    total_discounts: Decimal

    currency: str
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class ShiftClose(BaseModel):
    counted_cash: MoneyInput = None
    discrepancy_notes: Optional[str] = None
    notes: Optional[str] = None

class ShiftHandover(BaseModel):
    operator: str

# ---------- RECONCILIATION SCHEMAS ----------
class ReconcileRequest(BaseModel):
    expected_cash: MoneyInput = None
    counted_cash: MoneyInput = None

class ReconciliationOut(BaseModel):
    expected_cash: Decimal
    counted_cash: Decimal
    discrepancy: Decimal
    classification: str

# ---------- RECEIPT SCHEMAS ----------
class ReceiptCreate(BaseModel):
    business_id: int
    total: MoneyInput = None
    payment_method: str
    discount_amount: MoneyInput = None
    receipt_date: Optional[date] = None
    status: Optional[str] = "paid"

class ReceiptOut(BaseModel):
    id: int
    business_id: int
    receipt_date: date
    payment_method: str
    total: Decimal
    discount_amount: Decimal
    status: str

    model_config = ConfigDict(from_attributes=True)

# ---------- TRANSACTION SCHEMAS ----------
class TransactionCreate(BaseModel):
    amount: MoneyInput = None
    payment_method: str
    category: str
    description: Optional[str] = ""
    business_id: int

class TransactionOut(BaseModel):
    id: int
    amount: Decimal
    payment_method: str
    category: str
    description: Optional[str] = ""
    created_at: datetime
    business_id: int

    model_config = ConfigDict(from_attributes=True)

    @field_serializer('created_at')
    def serialize_datetime(self, value: datetime) -> str:
        """Sérialise un datetime en chaîne ISO 8601 pour JSON."""
        return value.isoformat()

