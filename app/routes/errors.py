# BIZDESK/backend/app/routes/errors.py

from fastapi import HTTPException
from app.exceptions import (
    BizdeskError, ValidationError, LimitExceededError, NotFoundError, InvalidOperationError
)

# Chaque type d'erreur garde son propre code pour que l'app affiche la bonne remédiation
STATUS_CODES = {
    ValidationError: 422,
    LimitExceededError: 403,
    NotFoundError: 404,
    InvalidOperationError: 409,
}

def http_error(error: BizdeskError) -> HTTPException:
    """Traduit une erreur métier en HTTPException"""
    status_code = STATUS_CODES.get(type(error), 400)
    return HTTPException(status_code=status_code, detail=error.to_dict())
