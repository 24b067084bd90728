import logging
import os

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ouverture.models.admin import Admin
from ouverture.schemas.admin import AdminCreateSchema
from ouverture.security.auth import hash_password, verify_password

logger = logging.getLogger("uvicorn.error")


def list_admins(db: Session):
    return db.query(Admin).order_by(Admin.username.asc()).all()


def get_admin(db: Session, admin_id: int):
    return db.query(Admin).filter(Admin.id == admin_id).first()


def get_admin_by_username(db: Session, username: str):
    return db.query(Admin).filter(func.lower(Admin.username) == username.strip().lower()).first()


def create_admin(db: Session, payload: AdminCreateSchema) -> Admin | str:
    if get_admin_by_username(db, payload.username):
        return "username_exists"
    admin = Admin(
        username=payload.username,
        password_hash=hash_password(payload.password),
        nom=payload.nom,
        email=payload.email,
    )
    db.add(admin)
    try:
        db.commit()
    except IntegrityError:
        # Contrainte d'unicité : création concurrente du même identifiant
        db.rollback()
        return "username_exists"
    db.refresh(admin)
    logger.info("Administrateur %s créé", admin.username)
    return admin


def delete_admin(db: Session, admin_id: int, current_admin_id: int) -> Admin | str:
    if admin_id == current_admin_id:
        return "self_delete_forbidden"
    admin = get_admin(db, admin_id)
    if not admin:
        return "admin_not_found"
    db.delete(admin)
    db.commit()
    logger.info("Administrateur %s supprimé par %s", admin.username, current_admin_id)
    return admin


def set_password(db: Session, admin: Admin, password: str) -> Admin:
    admin.password_hash = hash_password(password)
    db.commit()
    db.refresh(admin)
    return admin


def authenticate(db: Session, username: str, password: str) -> Admin | None:
    admin = get_admin_by_username(db, username or "")
    if admin is None or not verify_password(password or "", admin.password_hash):
        return None
    return admin


def ensure_default_admin(db: Session) -> Admin | None:
    """Crée le compte par défaut si la table est vide (premier démarrage)."""
    if db.query(func.count(Admin.id)).scalar():
        return None
    username = os.getenv("ADMIN_DEFAULT_USERNAME", "admin")
    password = os.getenv("ADMIN_DEFAULT_PASSWORD", "admin123")
    admin = Admin(
        username=username,
        password_hash=hash_password(password),
        nom="Administrateur",
        email=os.getenv("ADMIN_DEFAULT_EMAIL", "admin@lesjardinsdusaguenay.com"),
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.warning("Admin par défaut créé: %s (changer le mot de passe)", username)
    return admin
