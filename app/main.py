# BIZDESK/backend/app/main.py

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.routes import users, businesses, shifts, reconciliation, receipts, transactions
from app.database import SessionLocal, check_connection, create_tables
from app.services.plan_service import ensure_default_plans
from app.config import ALLOWED_ORIGINS, ENVIRONMENT, LOG_LEVEL
import logging
import datetime
import sys
import fastapi
import sqlalchemy

# Configuration du logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- STARTUP ---
    logger.info("🚀 Démarrage de l'API Bizdesk...")

    # Vérification de la connexion à la base de données
    if check_connection():
        logger.info("✅ Connexion à la base de données établie")

        # Création des tables si elles n'existent pas (développement seulement)
        create_tables()
        db = SessionLocal()
        try:
            ensure_default_plans(db)
        finally:
            db.close()
    else:
        logger.error("❌ Impossible de se connecter à la base de données")

    yield  # L'application tourne ici

    # --- SHUTDOWN ---
    logger.info("👋 Arrêt de l'API Bizdesk")

app = FastAPI(
    title="Bizdesk API",
    description="API de gestion pour petites entreprises : multi-entreprises, caisse et clôture de journée",
    version="1.0.0",
    docs_url="/docs",  # Swagger UI
    redoc_url="/redoc",  # ReDoc
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "users",
            "description": "Comptes utilisateurs"
        },
        {
            "name": "businesses",
            "description": "Gestion des entreprises (multi-entreprises, limites du plan)"
        },
        {
            "name": "shifts",
            "description": "Sessions de caisse et clôture de journée"
        },
        {
            "name": "reconciliation",
            "description": "Rapprochement des espèces comptées"
        },
        {
            "name": "receipts",
            "description": "Reçus de vente du point de vente"
        },
        {
            "name": "transactions",
            "description": "Gestion des transactions"
        }
    ]
)

# Configuration CORS pour permettre à l'application mobile d'accéder à l'API
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Inclusion des routeurs
app.include_router(users.router)
app.include_router(businesses.router)
app.include_router(shifts.router)
app.include_router(reconciliation.router)
app.include_router(receipts.router)
app.include_router(transactions.router)

@app.get("/")
def root():
    """
    Racine de l'API - Informations générales
    """
    return {
        "success": True,
        "message": "Bizdesk backend opérationnel 🚀",
        "version": app.version,
        "environment": ENVIRONMENT,
        "documentation": {
            "swagger": "/docs",
            "redoc": "/redoc"
        },
        "endpoints": {
            "users": "/users",
            "businesses": "/businesses",
            "shifts": "/shifts",
            "reconciliation": "/reconciliation",
            "receipts": "/receipts",
            "transactions": "/transactions",
            "docs": "/docs"
        },
        "health_check": "/health"
    }

@app.get("/health")
def health_check():
    """
    Endpoint de santé pour le monitoring
    """
    db_status = check_connection()

    return {
        "status": "healthy" if db_status else "unhealthy",
        "database": "connected" if db_status else "disconnected",
        "version": app.version,
        "timestamp": datetime.datetime.now().isoformat()
    }

@app.get("/info")
def info():
    """
    Informations détaillées sur l'API
    """
    return {
        "name": app.title,
        "description": app.description,
        "version": app.version,
        "python_version": sys.version,
        "fastapi_version": fastapi.__version__,
        "sqlalchemy_version": sqlalchemy.__version__,
        "environment": ENVIRONMENT
    }
