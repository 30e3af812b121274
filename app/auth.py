# BIZDESK/backend/app/auth.py

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
from app.database import get_db
from app.models import models as db_models
from app.exceptions import NotFoundError
from app.routes.errors import http_error
from app.services.business_service import BusinessService

# L'authentification est faite en amont (passerelle) ; elle transmet l'identifiant
# du compte appelant dans l'en-tête X-User-Id.
def get_current_user(
    x_user_id: Optional[str] = Header(None),
    db: Session = Depends(get_db)
) -> db_models.User:
    """Dépendance FastAPI : le compte appelant, ou 401"""
    if not x_user_id or not x_user_id.strip().isdigit():
        raise HTTPException(status_code=401, detail="Compte non identifié")

    user = db.query(db_models.User).filter(db_models.User.id == int(x_user_id)).first()
    if not user:
        raise HTTPException(status_code=401, detail="Compte non identifié")
    return user

def get_owned_business(db: Session, business_id: int, user_id: int) -> db_models.Business:
    """Entreprise du compte appelant ; 404 si elle n'existe pas ou appartient à un autre compte"""
    try:
        return BusinessService(db, user_id).get_business(business_id)
    except NotFoundError as e:
        raise http_error(e)
