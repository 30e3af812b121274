# BIZDESK/backend/app/config.py

import os
from dotenv import load_dotenv
from pathlib import Path

# Trouve le chemin absolu du dossier contenant ce fichier (app/)
BASE_DIR = Path(__file__).parent.absolute()
env_path = BASE_DIR / '.env'

# Charge les variables depuis le fichier .env (s'il existe)
if env_path.exists():
    load_dotenv(dotenv_path=env_path)

# ============================================
# CONFIGURATION ENVIRONNEMENT
# ============================================
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
DEBUG = os.getenv("DEBUG", "false").lower() == "true"

# ============================================
# CONFIGURATION BASE DE DONNÉES
# ============================================
DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    # En production, on veut lever une erreur
    if ENVIRONMENT == "production":
        raise ValueError("DATABASE_URL must be set in production")
    DATABASE_URL = "sqlite:///./bizdesk.db"

# ============================================
# CONFIGURATION CORS (Frontend mobile)
# ============================================
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

# ============================================
# CONFIGURATION ABONNEMENTS / LIMITES
# ============================================
# Plan appliqué quand le compte n'a ni abonnement ni essai actif
DEFAULT_PLAN_NAME = os.getenv("DEFAULT_PLAN_NAME", "Free")
DEFAULT_MAX_BUSINESSES = int(os.getenv("DEFAULT_MAX_BUSINESSES", "1"))

# ============================================
# CONFIGURATION CAISSE (POS)
# ============================================
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")
# Si activé, une clôture avec écart exige une explication
REQUIRE_DISCREPANCY_NOTES = os.getenv("REQUIRE_DISCREPANCY_NOTES", "false").lower() == "true"

# ============================================
# LOGGING
# ============================================
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ============================================
# FONCTIONS UTILITAIRES
# ============================================
def is_production():
    """Vérifie si on est en production"""
    return ENVIRONMENT == "production"

def is_development():
    """Vérifie si on est en développement"""
    return ENVIRONMENT == "development"
