# BIZDESK/backend/app/constants.py

# Constantes pour l'application

PAYMENT_METHODS = {
    "cash": "Espèces",
    "mobile_money": "Mobile Money",
    "card": "Carte bancaire",
    "bank_transfer": "Virement"
}

CURRENCIES = ["USD", "ZWL"]

BUSINESS_TYPES = [
    "retail", "services", "restaurant", "salon", "agriculture",
    "construction", "transport", "manufacturing", "other"
]

BUSINESS_STAGES = ["idea", "running", "growing"]

# Livres d'accompagnement proposés à l'onboarding
GUIDE_BOOKS = [
    "none",
    "start-your-business",
    "grow-your-business",
    "manage-your-money",
    "hire-and-lead",
    "marketing-mastery",
    "scale-up"
]

# Statuts d'une session de caisse
SHIFT_OPEN = "open"
SHIFT_CLOSED = "closed"

# Statuts des reçus ; seuls les reçus payés entrent dans les totaux
RECEIPT_STATUSES = ["paid", "draft", "void"]
RECEIPT_PAID = "paid"

# Catégorie des transactions générées par le point de vente
POS_SALE_CATEGORY = "pos_sale"

# Seuils et limites
UNLIMITED_BUSINESSES = -1
MAX_SHIFTS_PER_PAGE = 100

# Catalogue par défaut des abonnements (-1 = illimité)
DEFAULT_PLANS = [
    {"name": "Free", "description": "Fonctions de base", "price": "0.00", "max_businesses": 1, "display_order": 1},
    {"name": "Starter", "description": "Pour les entreprises en croissance", "price": "9.99", "max_businesses": 3, "display_order": 2},
    {"name": "Professional", "description": "Pour les entreprises établies", "price": "29.99", "max_businesses": 10, "display_order": 3},
    {"name": "Enterprise", "description": "Accès complet", "price": "99.99", "max_businesses": -1, "display_order": 4},
]
