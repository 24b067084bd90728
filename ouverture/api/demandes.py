import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ouverture.database import get_db
from ouverture.models.admin import Admin
from ouverture.models.enums import StatutDemande
from ouverture.schemas.demande import (
    DemandeSchema,
    DemandeDetailSchema,
    DemandeCreateSchema,
    StatutUpdateSchema,
    StatutUpdateResponseSchema,
    StatsSchema,
)
from ouverture.security.access import require_admin
from ouverture.services import dadhri, mailer, pdf
from ouverture.services.approbation import update_statut
from ouverture.services.demandes import get_demandes, get_demande, create_demande, delete_demande, get_stats

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api", tags=["Demandes"])


# -------- Soumission publique --------
@router.post("/demandes", summary="Soumettre une demande d'ouverture de compte")
def api_create_demande(payload: DemandeCreateSchema, db: Session = Depends(get_db)):
    try:
        demande = create_demande(db, payload)
    except Exception:
        raise HTTPException(status_code=500, detail="Erreur lors de la soumission")
    return {"success": True, "message": "Demande soumise avec succès", "id": demande.id}


# -------- Tableau de bord --------
@router.get("/demandes", response_model=list[DemandeSchema])
def api_list_demandes(
    db: Session = Depends(get_db),
    admin: Admin = Depends(require_admin),
    status: StatutDemande | None = Query(None),
):
    return get_demandes(db, status=status)


@router.get("/demandes/{demande_id}", response_model=DemandeDetailSchema)
def api_get_demande(demande_id: int, db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    demande = get_demande(db, demande_id)
    if not demande:
        raise HTTPException(status_code=404, detail="Demande non trouvée")
    return demande


@router.patch("/demandes/{demande_id}", response_model=StatutUpdateResponseSchema, summary="Changer le statut (approbation → courriel + Dadhri)")
def api_update_statut(
    demande_id: int,
    payload: StatutUpdateSchema,
    db: Session = Depends(get_db),
    admin: Admin = Depends(require_admin),
):
    try:
        res = update_statut(db, demande_id, payload.status, payload.notes)
    except Exception:
        raise HTTPException(status_code=500, detail="Erreur serveur")
    if isinstance(res, str):
        if res == "demande_not_found":
            raise HTTPException(status_code=404, detail="Demande non trouvée")
        if res == "transition_interdite":
            raise HTTPException(status_code=400, detail="Transition de statut interdite")
        raise HTTPException(status_code=400, detail=res)
    logger.info("Statut de la demande %s modifié par %s", demande_id, admin.username)
    return res


@router.delete("/demandes/{demande_id}")
def api_delete_demande(demande_id: int, db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    if not delete_demande(db, demande_id):
        raise HTTPException(status_code=404, detail="Demande non trouvée")
    return {"success": True}


@router.get("/demandes/{demande_id}/pdf", summary="Fiche client + conditions signées (PDF)")
def api_demande_pdf(demande_id: int, db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    demande = get_demande(db, demande_id)
    if not demande:
        raise HTTPException(status_code=404, detail="Demande non trouvée")
    try:
        pdf_bytes = pdf.generate_fiche_pdf(demande)
    except (ImportError, OSError) as exc:
        logger.exception("Génération PDF impossible pour la demande %s", demande_id)
        raise HTTPException(status_code=500, detail=f"WeasyPrint indisponible: {exc}")
    return StreamingResponse(
        iter([pdf_bytes]),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{pdf.fiche_filename(demande)}"'},
    )


@router.get("/stats", response_model=StatsSchema)
def api_stats(db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    return get_stats(db)


@router.get("/integrations/status", summary="Vérifier SMTP et Dadhri")
def api_integrations_status(admin: Admin = Depends(require_admin)):
    return {
        "smtp": mailer.verify_smtp_connection().as_dict(),
        "dadhri": dadhri.verify_connection().as_dict(),
    }
