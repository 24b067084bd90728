import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Pas de création de tables ni d'admin par défaut au démarrage
os.environ["OUVERTURE_SKIP_INIT"] = "1"
os.environ.setdefault("DATABASE_URL", "sqlite://")

from ouverture.api.main import app
from ouverture import database
from ouverture.database import Base, init_db
from ouverture.schemas.admin import AdminCreateSchema
from ouverture.services.admins import create_admin

SIGNATURE = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="


@pytest.fixture(autouse=True)
def _no_integrations_env(monkeypatch):
    # Aucun test ne doit joindre un vrai serveur SMTP ou Dadhri
    for var in ("SMTP_HOST", "SMTP_FROM", "SMTP_USERNAME", "SMTP_PASSWORD", "DADHRI_API_KEY"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def db():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def client(db):
    app.dependency_overrides[database.get_db] = lambda: db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin(db):
    return create_admin(db, AdminCreateSchema(username="admin", password="admin12345", nom="Administrateur", email="admin@example.com"))


@pytest.fixture
def auth_client(client, admin):
    r = client.post("/api/auth/login", json={"username": "admin", "password": "admin12345"})
    assert r.status_code == 200
    return client


@pytest.fixture
def demande_payload():
    return {
        "company_name": "Resto Chez Ginette",
        "owner_name": "Ginette Tremblay",
        "contact_name": "Marc Bouchard",
        "address": "123 rue Racine Est",
        "city": "Chicoutimi",
        "postal_code": "g7h 1r9",
        "sector": "restaurant",
        "annual_purchase": "50 000",
        "promo_accepted": "yes",
        "email_responsable": "ginette@chezginette.ca",
        "email_facturation": "compta@chezginette.ca",
        "phone": "(418) 555-1234",
        "signature": SIGNATURE,
    }
