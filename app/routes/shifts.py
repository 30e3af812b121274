# BIZDESK/backend/app/routes/shifts.py

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from app.database import get_db
from app.auth import get_current_user
from app.models import models
from app.schemas import schemas
from app.exceptions import BizdeskError
from app.routes.errors import http_error
from app.services.shift_service import ShiftService

router = APIRouter(prefix="/shifts", tags=["shifts"])

@router.post("/today", response_model=schemas.ShiftOut)
def get_or_create_today_shift(
    business_id: int = Query(..., description="Entreprise concernée"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user)
):
    """Session ouverte du jour ; créée si elle n'existe pas encore"""
    try:
        return ShiftService(db, current_user.id).get_or_create_today_shift(business_id)
    except BizdeskError as e:
        raise http_error(e)

@router.get("/open", response_model=schemas.ShiftOut)
def find_open_shift(
    business_id: int = Query(..., description="Entreprise concernée"),
    shift_date: Optional[date] = Query(None, description="Date (aujourd'hui par défaut)"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user)
):
    """Recherche sans création ; 404 s'il n'y a pas de session ouverte"""
    try:
        shift = ShiftService(db, current_user.id).find_open_shift(business_id, shift_date)
    except BizdeskError as e:
        raise http_error(e)
    if not shift:
        raise HTTPException(status_code=404, detail={"error": "not_found", "message": "Aucune session ouverte"})
    return shift

@router.get("/", response_model=List[schemas.ShiftOut])
def list_shifts(
    business_id: int = Query(..., description="Entreprise concernée"),
    status: Optional[str] = Query(None, description="open ou closed"),
    limit: int = Query(30, ge=1, le=100, description="Nombre de sessions à retourner"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user)
):
    """Historique des sessions de caisse"""
    try:
        return ShiftService(db, current_user.id).list_shifts(business_id, status, limit)
    except BizdeskError as e:
        raise http_error(e)

@router.get("/{shift_id}", response_model=schemas.ShiftOut)
def get_shift(
    shift_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user)
):
    try:
        return ShiftService(db, current_user.id).get_shift(shift_id)
    except BizdeskError as e:
        raise http_error(e)

@router.post("/{shift_id}/refresh", response_model=schemas.ShiftOut)
def refresh_shift_totals(
    shift_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user)
):
    """Recalcule les ventes de la session (sans effet sur une session clôturée)"""
    try:
        return ShiftService(db, current_user.id).refresh_totals(shift_id)
    except BizdeskError as e:
        raise http_error(e)

@router.get("/{shift_id}/reconcile", response_model=schemas.ReconciliationOut)
def preview_reconciliation(
    shift_id: int,
    counted_cash: Optional[str] = Query(None, description="Espèces comptées"),
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user)
):
    """Aperçu de l'écart avant clôture, sans rien enregistrer"""
    try:
        result = ShiftService(db, current_user.id).preview_reconciliation(shift_id, counted_cash)
    except BizdeskError as e:
        raise http_error(e)
    return result.to_dict()

@router.post("/{shift_id}/close", response_model=schemas.ShiftOut)
def close_shift(
    shift_id: int,
    payload: schemas.ShiftClose,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user)
):
    """Clôture de journée : comptage des espèces et rapprochement"""
    try:
        return ShiftService(db, current_user.id).close_shift(
            shift_id,
            payload.counted_cash,
            discrepancy_notes=payload.discrepancy_notes,
            notes=payload.notes
        )
    except BizdeskError as e:
        raise http_error(e)

@router.post("/{shift_id}/handover", response_model=schemas.ShiftOut)
def hand_over_shift(
    shift_id: int,
    payload: schemas.ShiftHandover,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user)
):
    """Passation de la session ouverte à un autre employé"""
    try:
        return ShiftService(db, current_user.id).hand_over(shift_id, payload.operator)
    except BizdeskError as e:
        raise http_error(e)
