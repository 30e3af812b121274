# BIZDESK/backend/app/database.py

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import declarative_base, sessionmaker
from app.config import DATABASE_URL, LOG_LEVEL
import logging

# Configuration du logging
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)

# Options du pool : SQLite (dev/tests) n'accepte pas les réglages de pool de PostgreSQL
if DATABASE_URL.startswith("sqlite"):
    engine_options = {"connect_args": {"check_same_thread": False}}
else:
    engine_options = {
        "pool_size": 5,  # Nombre de connexions permanentes
        "max_overflow": 10,  # Connexions supplémentaires temporaires
        "pool_pre_ping": True,  # Vérifie que la connexion est vivante avant utilisation
    }

# Création de la connexion à la base de données
try:
    engine = create_engine(
        DATABASE_URL,
        echo=False,  # Met à True pour voir les requêtes SQL dans la console
        **engine_options
    )
except Exception as e:
    logger.error(f"❌ Erreur de connexion à la base de données: {e}")
    raise

# SQLite n'applique les clés étrangères (ON DELETE CASCADE / SET NULL) que si on le demande
def enable_sqlite_foreign_keys(target_engine):
    @event.listens_for(target_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

if DATABASE_URL.startswith("sqlite"):
    enable_sqlite_foreign_keys(engine)

# Session pour interagir avec la base
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Base pour créer les modèles (tables)
Base = declarative_base()

# Dependency pour FastAPI
def get_db():
    """
    Dépendance FastAPI pour obtenir une session de base de données.
    À utiliser dans les routes avec: db: Session = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

# Fonction utilitaire pour créer les tables
def create_tables(bind=None):
    """Crée toutes les tables définies dans les modèles"""
    # Import nécessaire pour enregistrer les modèles sur Base.metadata
    from app.models import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("✅ Tables créées/vérifiées avec succès")

# Fonction pour vérifier la connexion
def check_connection():
    """Vérifie que la connexion à la base fonctionne"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"❌ Erreur de connexion: {e}")
        return False
