# BIZDESK/backend/app/routes/users.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from app.auth import get_current_user
from app.models import models as db_models
from app.schemas.schemas import UserOut, UserCreate
from app.database import get_db

router = APIRouter(prefix="/users", tags=["users"])

@router.post("/", response_model=UserOut)
def create_account(user: UserCreate, db: Session = Depends(get_db)):
    """Enregistre un compte (l'identité est vérifiée par la passerelle en amont)"""
    email = user.email.strip().lower()
    if not email:
        raise HTTPException(status_code=422, detail="Email obligatoire")
    db_user = db.query(db_models.User).filter(db_models.User.email == email).first()
    if db_user:
        raise HTTPException(status_code=400, detail="Email déjà utilisé")
    new_user = db_models.User(email=email)
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    return new_user

@router.get("/me", response_model=UserOut)
def get_me(current_user: db_models.User = Depends(get_current_user)):
    return current_user
