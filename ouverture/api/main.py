# ---------------- Imports principaux ----------------
import logging
import os

from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ouverture.database import get_db, init_db, SessionLocal
from ouverture.models.admin import Admin
from ouverture.schemas.admin import AdminSchema, LoginSchema
from ouverture.security.access import extract_admin_id
from ouverture.security.auth import COOKIE_NAME, encode_token, decode_token, session_max_age
from ouverture.services.admins import authenticate, ensure_default_admin, get_admin


# ---------------- Définition app FastAPI ----------------
app = FastAPI(title="Ouverture de compte - Les Jardins du Saguenay")
from ouverture.api import demandes
from ouverture.api import admins
from ouverture.api import analytics
app.include_router(demandes.router)
app.include_router(admins.router)
app.include_router(analytics.router)

logger = logging.getLogger("uvicorn.error")


@app.on_event("startup")
def _on_startup():
    if os.getenv("OUVERTURE_SKIP_INIT"):
        return
    init_db()
    db = SessionLocal()
    try:
        ensure_default_admin(db)
    finally:
        db.close()


# ---------------- Middleware session cookie -> state ----------------
@app.middleware("http")
async def auth_cookie_middleware(request: Request, call_next):
    request.state.admin_id = None
    token = request.cookies.get(COOKIE_NAME)
    if token:
        data = decode_token(token)
        if data:
            request.state.admin_id = data.get("aid")
    return await call_next(request)


# ---------------- Middleware CORS ----------------
_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------- Auth (login/logout) ----------------
@app.post("/api/auth/login")
def login(payload: LoginSchema, db: Session = Depends(get_db)):
    admin = authenticate(db, payload.username, payload.password)
    if admin is None:
        logger.warning("Échec de connexion pour %s", payload.username)
        raise HTTPException(status_code=401, detail="Identifiants invalides")
    response = JSONResponse(
        {"success": True, "admin": {"id": admin.id, "nom": admin.nom, "username": admin.username}}
    )
    response.set_cookie(
        COOKIE_NAME,
        encode_token(admin.id),
        httponly=True,
        samesite="lax",
        max_age=session_max_age(),
        path="/",
    )
    return response


@app.post("/api/auth/logout")
def logout():
    response = JSONResponse({"success": True})
    response.delete_cookie(COOKIE_NAME, path="/")
    return response


@app.get("/api/auth/me")
def me(request: Request, db: Session = Depends(get_db)):
    admin_id = extract_admin_id(request)
    admin: Admin | None = get_admin(db, admin_id) if admin_id is not None else None
    if admin is None:
        return {"authenticated": False}
    return {"authenticated": True, "admin": AdminSchema.model_validate(admin).model_dump(mode="json")}
