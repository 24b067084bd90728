"""Contrôle d'accès du tableau de bord : seul un administrateur authentifié passe."""
from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ouverture.database import get_db
from ouverture.models.admin import Admin


def extract_admin_id(request: Request) -> Optional[int]:
    """Identifiant posé par le middleware de session (cookie signé)."""
    return getattr(request.state, "admin_id", None)


def require_admin(request: Request, db: Session = Depends(get_db)) -> Admin:
    """Lève une exception HTTP 401 si aucune session administrateur valide."""
    admin_id = extract_admin_id(request)
    if admin_id is None:
        raise HTTPException(status_code=401, detail="Non autorisé")
    admin = db.query(Admin).filter(Admin.id == admin_id).first()
    if admin is None:
        # Compte supprimé depuis l'ouverture de session
        raise HTTPException(status_code=401, detail="Non autorisé")
    return admin
