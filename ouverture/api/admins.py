from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ouverture.database import get_db
from ouverture.models.admin import Admin
from ouverture.schemas.admin import AdminSchema, AdminCreateSchema
from ouverture.security.access import require_admin
from ouverture.services.admins import list_admins, create_admin, delete_admin


router = APIRouter(prefix="/api/admins", tags=["Administrateurs"])


@router.get("", response_model=list[AdminSchema])
def api_list_admins(db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    return list_admins(db)


@router.post("", summary="Créer un administrateur")
def api_create_admin(payload: AdminCreateSchema, db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    res = create_admin(db, payload)
    if isinstance(res, str):
        raise HTTPException(status_code=400, detail="Ce nom d'utilisateur existe déjà")
    return {"success": True, "id": res.id}


@router.delete("/{admin_id}")
def api_delete_admin(admin_id: int, db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    res = delete_admin(db, admin_id, current_admin_id=admin.id)
    if isinstance(res, str):
        if res == "self_delete_forbidden":
            raise HTTPException(status_code=400, detail="Vous ne pouvez pas supprimer votre propre compte")
        if res == "admin_not_found":
            raise HTTPException(status_code=404, detail="Administrateur introuvable")
        raise HTTPException(status_code=400, detail=res)
    return {"success": True}
