"""Changement de statut d'une demande et effets de bord de l'approbation.

Le passage à ``approuvee`` déclenche deux effets indépendants : le courriel de
bienvenue et la création du client dans Dadhri. Aucun des deux ne bloque
l'autre ni n'annule le changement de statut ; aucun n'est relancé
automatiquement. Le déclenchement se fait sur la transition : une demande déjà
approuvée qui reçoit de nouveau ``approuvee`` ne provoque aucun appel.
"""
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from ouverture.models.demande import Demande
from ouverture.models.enums import StatutDemande, transition_autorisee
from ouverture.services import dadhri, mailer
from ouverture.services.demandes import get_demande
from ouverture.services.integration import IntegrationResult, INTERNAL

logger = logging.getLogger("uvicorn.error")


def _persist(db: Session, demande: Demande, **values) -> None:
    for key, value in values.items():
        setattr(demande, key, value)
    db.commit()
    db.refresh(demande)


def send_approval_email(db: Session, demande: Demande) -> IntegrationResult:
    try:
        result = mailer.send_approval_email(demande)
    except Exception as exc:
        logger.exception("Courriel d'approbation impossible pour la demande %s", demande.id)
        return IntegrationResult.failure(str(exc), INTERNAL, retryable=True)
    if not result.success:
        logger.warning("Courriel non envoyé pour la demande %s: %s", demande.id, result.error)
        return result
    try:
        _persist(db, demande, email_sent_at=datetime.utcnow())
    except Exception as exc:
        db.rollback()
        logger.exception("email_sent_at non enregistré pour la demande %s", demande.id)
        return IntegrationResult.failure(f"Courriel envoyé mais non enregistré: {exc}", INTERNAL, **result.data)
    return result


def sync_crm(db: Session, demande: Demande) -> IntegrationResult:
    if demande.dadhri_code:
        # Déjà synchronisée lors d'une approbation précédente
        return IntegrationResult.ok(client_code=demande.dadhri_code, already_synced=True)
    try:
        result = dadhri.create_client(demande)
    except Exception as exc:
        logger.exception("Synchronisation Dadhri impossible pour la demande %s", demande.id)
        return IntegrationResult.failure(str(exc), INTERNAL, retryable=True)
    if not result.success:
        logger.warning("Client Dadhri non créé pour la demande %s: %s", demande.id, result.error)
        return result
    try:
        _persist(db, demande, dadhri_code=result.data["client_code"], dadhri_synced_at=datetime.utcnow())
    except Exception as exc:
        db.rollback()
        logger.exception("Code Dadhri non enregistré pour la demande %s", demande.id)
        return IntegrationResult.failure(f"Client créé mais code non enregistré: {exc}", INTERNAL, **result.data)
    return result


def update_statut(db: Session, demande_id: int, statut: StatutDemande, notes: str | None = None) -> dict | str:
    demande = get_demande(db, demande_id)
    if not demande:
        return "demande_not_found"

    actuel = StatutDemande(demande.status)
    if not transition_autorisee(actuel, statut):
        return "transition_interdite"

    values = {Demande.status: statut.value, Demande.updated_at: datetime.utcnow()}
    if notes is not None:
        values[Demande.notes] = notes

    q = db.query(Demande).filter(Demande.id == demande_id)
    edge = statut == StatutDemande.approuvee and actuel != StatutDemande.approuvee
    if edge:
        # Mise à jour conditionnelle sur le statut lu : seule la requête qui fait basculer la ligne déclenche les effets
        q = q.filter(Demande.status == actuel.value)
    try:
        rows = q.update(values, synchronize_session=False)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("update_statut failed demande_id=%s", demande_id)
        raise
    db.refresh(demande)

    triggered = edge and rows == 1
    logger.info(
        "Demande %s: %s -> %s (approbation déclenchée=%s)", demande_id, actuel.value, demande.status, triggered
    )
    result = {
        "success": True,
        "status": demande.status,
        "changed": actuel != statut and rows == 1,
        "approval_triggered": triggered,
        "email": None,
        "crm": None,
    }
    if not triggered:
        return result

    result["email"] = send_approval_email(db, demande).as_dict()
    result["crm"] = sync_crm(db, demande).as_dict()
    return result
