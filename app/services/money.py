# BIZDESK/backend/app/services/money.py : conversion et validation des montants

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional
from app.exceptions import ValidationError

# USD et ZWL ont tous deux 2 décimales
MINOR_UNIT = Decimal("0.01")
ZERO = Decimal("0.00")

def quantize(amount) -> Decimal:
    """Arrondit un montant à l'unité mineure de la devise"""
    if isinstance(amount, float):
        amount = str(amount)
    return Decimal(amount).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)

def to_decimal(value: Any, field: str) -> Decimal:
    """Convertit une valeur (str, int, float, Decimal) en Decimal fini"""
    if isinstance(value, bool):
        raise ValidationError(f"Montant invalide pour '{field}'", field=field)
    try:
        if isinstance(value, float):
            # Passe par str() pour éviter les artefacts binaires (0.1 -> 0.1000000000000000055...)
            amount = Decimal(str(value))
        else:
            amount = Decimal(str(value).strip().replace(",", "")) if isinstance(value, str) else Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"Montant invalide pour '{field}': {value!r}", field=field)
    if not amount.is_finite():
        raise ValidationError(f"Montant non fini pour '{field}'", field=field)
    return amount

def parse_money(value: Any, field: str, required: bool = True, allow_negative: bool = False) -> Optional[Decimal]:
    """
    Valide un montant saisi par l'utilisateur (souvent une chaîne numérique).
    - absent ou vide : ValidationError si requis, sinon None
    - non numérique ou négatif : ValidationError
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"Le champ '{field}' est obligatoire", field=field)
        return None

    amount = to_decimal(value, field)
    if amount < 0 and not allow_negative:
        raise ValidationError(f"Le champ '{field}' ne peut pas être négatif", field=field)
    return quantize(amount)
