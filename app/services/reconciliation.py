# BIZDESK/backend/app/services/reconciliation.py : rapprochement de caisse

"""
Calcul pur de l'écart de caisse : aucune dépendance à la base, aux devises
affichées ou à l'interface. Déterministe pour toute paire de montants finis.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from app.services.money import quantize, to_decimal

class CashClassification(str, Enum):
    BALANCED = "balanced"
    OVER = "over"
    SHORT = "short"

@dataclass(frozen=True)
class ReconciliationResult:
    expected_cash: Decimal
    counted_cash: Decimal
    discrepancy: Decimal
    classification: CashClassification

    @property
    def is_balanced(self) -> bool:
        return self.classification is CashClassification.BALANCED

    def to_dict(self):
        return {
            "expected_cash": self.expected_cash,
            "counted_cash": self.counted_cash,
            "discrepancy": self.discrepancy,
            "classification": self.classification.value
        }

def classify(discrepancy: Decimal) -> CashClassification:
    """balanced si l'écart est nul, over si excédent, short si manque"""
    if discrepancy > 0:
        return CashClassification.OVER
    if discrepancy < 0:
        return CashClassification.SHORT
    return CashClassification.BALANCED

def reconcile(expected_cash, counted_cash) -> ReconciliationResult:
    """
    Écart signé = compté - attendu (positif = excédent, négatif = manque),
    arrondi à l'unité mineure de la devise.
    """
    expected = quantize(to_decimal(expected_cash, "expected_cash"))
    counted = quantize(to_decimal(counted_cash, "counted_cash"))
    discrepancy = counted - expected

    return ReconciliationResult(
        expected_cash=expected,
        counted_cash=counted,
        discrepancy=discrepancy,
        classification=classify(discrepancy)
    )
