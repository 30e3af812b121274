# BIZDESK/backend/app/routes/transactions.py

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from app.models import models as db_models
from app.schemas import schemas
from app.database import get_db
from app.auth import get_current_user, get_owned_business
from app.exceptions import BizdeskError
from app.routes.errors import http_error
from app.services.money import parse_money

router = APIRouter(prefix="/transactions", tags=["transactions"])

@router.post("/", response_model=schemas.TransactionOut)
def create_transaction(
    transaction: schemas.TransactionCreate,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(get_current_user)
):
    """Enregistrer une transaction (les ventes POS ont la catégorie 'pos_sale')"""
    get_owned_business(db, transaction.business_id, current_user.id)
    try:
        amount = parse_money(transaction.amount, "amount")
    except BizdeskError as e:
        raise http_error(e)

    new_tx = db_models.Transaction(
        **transaction.model_dump(exclude={"amount"}),
        amount=amount
    )
    db.add(new_tx)
    db.commit()
    db.refresh(new_tx)
    return new_tx

@router.get("/", response_model=List[schemas.TransactionOut])
def get_transactions(
    business_id: Optional[int] = None,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(get_current_user)
):
    """Récupérer les transactions (filtrées par business si spécifié)"""
    query = db.query(db_models.Transaction).join(
        db_models.Business
    ).filter(
        db_models.Business.owner_id == current_user.id
    )

    if business_id:
        get_owned_business(db, business_id, current_user.id)
        query = query.filter(db_models.Transaction.business_id == business_id)

    return query.order_by(db_models.Transaction.id).all()
