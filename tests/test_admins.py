from ouverture.models.admin import Admin
from ouverture.schemas.admin import AdminCreateSchema
from ouverture.security.auth import decode_token, encode_token, verify_password
from ouverture.services.admins import authenticate, create_admin, ensure_default_admin


def test_login_sets_cookie_and_me(client, admin):
    r = client.post("/api/auth/login", json={"username": "admin", "password": "admin12345"})
    assert r.status_code == 200
    assert r.json()["admin"]["username"] == "admin"
    assert "auth_token" in r.cookies

    me = client.get("/api/auth/me").json()
    assert me["authenticated"] is True
    assert me["admin"]["id"] == admin.id


def test_login_is_case_insensitive_on_username(client, admin):
    r = client.post("/api/auth/login", json={"username": "ADMIN", "password": "admin12345"})
    assert r.status_code == 200


def test_bad_credentials(client, admin):
    r = client.post("/api/auth/login", json={"username": "admin", "password": "mauvais"})
    assert r.status_code == 401
    assert client.get("/api/auth/me").json() == {"authenticated": False}

    r = client.post("/api/auth/login", json={"username": "inconnu", "password": "admin12345"})
    assert r.status_code == 401


def test_logout_clears_session(auth_client):
    assert auth_client.post("/api/auth/logout").status_code == 200
    assert auth_client.get("/api/auth/me").json() == {"authenticated": False}
    assert auth_client.get("/api/admins").status_code == 401


def test_session_token_signature_and_expiry():
    token = encode_token(5)
    assert decode_token(token) == {"aid": 5}
    assert decode_token(token + "x") is None
    assert decode_token("pas-un-jeton") is None
    assert decode_token(token, max_age=-1) is None


def test_list_admins_hides_password_hash(auth_client):
    r = auth_client.get("/api/admins")
    assert r.status_code == 200
    body = r.json()
    assert [a["username"] for a in body] == ["admin"]
    assert "password_hash" not in body[0]


def test_create_admin(auth_client, db):
    r = auth_client.post("/api/admins", json={"username": "julie", "password": "motdepasse1", "nom": "Julie Roy"})
    assert r.status_code == 200
    created = db.query(Admin).filter(Admin.username == "julie").one()
    assert created.password_hash != "motdepasse1"
    assert verify_password("motdepasse1", created.password_hash)


def test_create_admin_duplicate_username(auth_client):
    r = auth_client.post("/api/admins", json={"username": "Admin", "password": "motdepasse1", "nom": "Double"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Ce nom d'utilisateur existe déjà"


def test_create_admin_short_password(auth_client):
    r = auth_client.post("/api/admins", json={"username": "court", "password": "abc", "nom": "Court"})
    assert r.status_code == 422


def test_cannot_delete_own_account(auth_client, db, admin):
    r = auth_client.delete(f"/api/admins/{admin.id}")
    assert r.status_code == 400
    assert r.json()["detail"] == "Vous ne pouvez pas supprimer votre propre compte"
    db.expire_all()
    assert db.query(Admin).filter(Admin.id == admin.id).count() == 1
    assert auth_client.get("/api/auth/me").json()["authenticated"] is True


def test_delete_other_admin(auth_client, db):
    other = create_admin(db, AdminCreateSchema(username="temp", password="temporaire1", nom="Temporaire"))
    r = auth_client.delete(f"/api/admins/{other.id}")
    assert r.status_code == 200
    assert db.query(Admin).filter(Admin.username == "temp").count() == 0


def test_delete_unknown_admin(auth_client):
    assert auth_client.delete("/api/admins/999").status_code == 404


def test_admin_routes_require_auth(client):
    assert client.get("/api/admins").status_code == 401
    assert client.post("/api/admins", json={"username": "x", "password": "12345678", "nom": "X"}).status_code == 401


def test_ensure_default_admin_only_when_empty(db, monkeypatch):
    monkeypatch.setenv("ADMIN_DEFAULT_PASSWORD", "premier-demarrage")
    created = ensure_default_admin(db)
    assert created is not None
    assert authenticate(db, created.username, "premier-demarrage") is not None
    assert ensure_default_admin(db) is None


def test_startup_initialises_database_unless_skipped(monkeypatch):
    from ouverture.api import main

    calls = []

    class FakeSession:
        def close(self):
            calls.append("close")

    monkeypatch.setattr(main, "init_db", lambda: calls.append("init_db"))
    monkeypatch.setattr(main, "SessionLocal", FakeSession)
    monkeypatch.setattr(main, "ensure_default_admin", lambda db: calls.append("admin"))

    main._on_startup()
    assert calls == []

    monkeypatch.delenv("OUVERTURE_SKIP_INIT")
    main._on_startup()
    assert calls == ["init_db", "admin", "close"]
