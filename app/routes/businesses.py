# BIZDESK/backend/app/routes/businesses.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from app.models import models as db_models
from app.schemas import schemas
from app.database import get_db
from app.auth import get_current_user
from app.exceptions import BizdeskError
from app.routes.errors import http_error
from app.services.business_service import BusinessService

router = APIRouter(prefix="/businesses", tags=["businesses"])

@router.get("/", response_model=List[schemas.BusinessOut])
def get_user_businesses(
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(get_current_user)
):
    """Récupérer toutes les entreprises du compte (ordre de création)"""
    return BusinessService(db, current_user.id).list_businesses()

@router.post("/", response_model=schemas.BusinessOut)
def create_business(
    business: schemas.BusinessCreate,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(get_current_user)
):
    """Créer une nouvelle entreprise (non activée automatiquement)"""
    try:
        return BusinessService(db, current_user.id).create_business(business.model_dump())
    except BizdeskError as e:
        raise http_error(e)

@router.get("/limit", response_model=schemas.BusinessLimitOut)
def check_business_limit(
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(get_current_user)
):
    """À appeler avant de proposer le formulaire de création"""
    return BusinessService(db, current_user.id).check_limit()

@router.get("/active", response_model=Optional[schemas.BusinessOut])
def get_active_business(
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(get_current_user)
):
    """Entreprise active du compte (null si aucune)"""
    return BusinessService(db, current_user.id).get_active_business()

@router.get("/{business_id}", response_model=schemas.BusinessOut)
def get_business_details(
    business_id: int,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(get_current_user)
):
    try:
        return BusinessService(db, current_user.id).get_business(business_id)
    except BizdeskError as e:
        raise http_error(e)

@router.post("/{business_id}/activate", response_model=schemas.BusinessOut)
def switch_active_business(
    business_id: int,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(get_current_user)
):
    """Changer d'entreprise active (sans effet si elle l'est déjà)"""
    try:
        return BusinessService(db, current_user.id).switch_active(business_id)
    except BizdeskError as e:
        raise http_error(e)

@router.delete("/{business_id}")
def delete_business(
    business_id: int,
    db: Session = Depends(get_db),
    current_user: db_models.User = Depends(get_current_user)
):
    """Supprimer une entreprise (jamais l'entreprise active)"""
    try:
        BusinessService(db, current_user.id).delete_business(business_id)
    except BizdeskError as e:
        raise http_error(e)
    return {"message": "Entreprise supprimée avec succès"}
