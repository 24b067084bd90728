import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base, Session

# SQLite local par défaut, MySQL (PyMySQL) en production
SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./ouverture.db")

_connect_args = {"check_same_thread": False} if SQLALCHEMY_DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args=_connect_args,
    pool_pre_ping=True,
    pool_recycle=3600,
)

# Factory de sessions
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base pour les modèles ORM
Base = declarative_base()


# Dépendance FastAPI : ouverture/fermeture automatique de la session
def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind=None):
    """Crée les tables manquantes (demandes, admins, analytics)."""
    # Import pour enregistrer les modèles sur Base.metadata
    from ouverture.models import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
