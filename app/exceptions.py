# BIZDESK/backend/app/exceptions.py : les erreurs métier du cœur

class BizdeskError(Exception):
    """Erreur métier de base ; chaque sous-classe correspond à une remédiation distincte"""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"error": self.code, "message": self.message}


class ValidationError(BizdeskError):
    """Champ requis manquant ou mal formé ; aucun changement d'état"""

    code = "validation_error"

    def __init__(self, message: str, field: str = None):
        super().__init__(message)
        self.field = field

    def to_dict(self):
        data = super().to_dict()
        data["field"] = self.field
        return data


class LimitExceededError(BizdeskError):
    """Limite d'entreprises du plan atteinte ; porte les infos de limite pour proposer une mise à niveau"""

    code = "limit_exceeded"

    def __init__(self, message: str, limit_info: dict):
        super().__init__(message)
        self.limit_info = limit_info

    def to_dict(self):
        data = super().to_dict()
        data["limit"] = self.limit_info
        return data


class NotFoundError(BizdeskError):
    code = "not_found"


class InvalidOperationError(BizdeskError):
    """Opération qui viole le cycle de vie (supprimer l'entreprise active, clôturer deux fois...)"""

    code = "invalid_operation"
