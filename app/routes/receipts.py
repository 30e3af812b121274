# BIZDESK/backend/app/routes/receipts.py

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime, date
from app.models import models as db_models
from app.schemas import schemas
from app.database import get_db
from app.auth import get_current_user, get_owned_business
from app.constants import RECEIPT_STATUSES
from app.exceptions import BizdeskError, ValidationError
from app.routes.errors import http_error
from app.services.money import parse_money

router = APIRouter(prefix="/receipts", tags=["receipts"])

@router.post("/", response_model=schemas.ReceiptOut)
def create_receipt(
    receipt: schemas.ReceiptCreate,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(get_current_user)
):
    """Enregistrer un reçu de vente (seuls les reçus 'paid' comptent dans la caisse)"""
    get_owned_business(db, receipt.business_id, current_user.id)
    try:
        total = parse_money(receipt.total, "total")
        discount = parse_money(receipt.discount_amount, "discount_amount", required=False)
        status = receipt.status or "paid"
        if status not in RECEIPT_STATUSES:
            raise ValidationError(f"Statut de reçu inconnu: {status}", field="status")
        if not receipt.payment_method.strip():
            raise ValidationError("Le moyen de paiement est obligatoire", field="payment_method")
    except BizdeskError as e:
        raise http_error(e)

    new_receipt = db_models.Receipt(
        business_id=receipt.business_id,
        receipt_date=receipt.receipt_date or datetime.utcnow().date(),
        payment_method=receipt.payment_method.strip(),
        total=total,
        discount_amount=discount if discount is not None else 0,
        status=status
    )
    db.add(new_receipt)
    db.commit()
    db.refresh(new_receipt)
    return new_receipt

@router.get("/", response_model=List[schemas.ReceiptOut])
def get_receipts(
    business_id: int = Query(..., description="Entreprise concernée"),
    receipt_date: Optional[date] = Query(None, description="Filtrer sur une journée"),
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(get_current_user)
):
    get_owned_business(db, business_id, current_user.id)
    query = db.query(db_models.Receipt).filter(db_models.Receipt.business_id == business_id)
    if receipt_date:
        query = query.filter(db_models.Receipt.receipt_date == receipt_date)
    return query.order_by(db_models.Receipt.id).all()
