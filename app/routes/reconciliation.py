# BIZDESK/backend/app/routes/reconciliation.py

from fastapi import APIRouter, Depends
from app.auth import get_current_user
from app.models import models
from app.schemas import schemas
from app.exceptions import BizdeskError, ValidationError
from app.routes.errors import http_error
from app.services.reconciliation import reconcile

router = APIRouter(prefix="/reconciliation", tags=["reconciliation"])

@router.post("/", response_model=schemas.ReconciliationOut)
def reconcile_cash(
    payload: schemas.ReconcileRequest,
    current_user: models.User = Depends(get_current_user)
):
    """Calcul pur : écart et classification (balanced / over / short)"""
    try:
        if payload.expected_cash is None:
            raise ValidationError("Le champ 'expected_cash' est obligatoire", field="expected_cash")
        if payload.counted_cash is None:
            raise ValidationError("Le champ 'counted_cash' est obligatoire", field="counted_cash")
        return reconcile(payload.expected_cash, payload.counted_cash).to_dict()
    except BizdeskError as e:
        raise http_error(e)
