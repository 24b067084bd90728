import logging
import re

from sqlalchemy import func
from sqlalchemy.orm import Session

from ouverture.models.demande import Demande
from ouverture.models.enums import StatutDemande
from ouverture.schemas.demande import DemandeCreateSchema

logger = logging.getLogger("uvicorn.error")


def parse_montant(value: str | None) -> int:
    """'50 000' / '50,000 $' -> 50000 ; la partie décimale est ignorée, 0 si aucun chiffre en tête."""
    compact = re.sub(r"[\s,]", "", value or "")
    m = re.match(r"\d+", compact)
    return int(m.group()) if m else 0


def compute_promo_min_order(annual_purchase: str | None) -> int | None:
    """Commande minimum Carte Promo : moitié des achats annuels, arrondie (demi vers le haut)."""
    amount = parse_montant(annual_purchase)
    if amount <= 0:
        return None
    return (amount + 1) // 2


# Lister les demandes, plus récentes d'abord
def get_demandes(db: Session, status: StatutDemande | None = None):
    q = db.query(Demande)
    if status is not None:
        q = q.filter(Demande.status == status.value)
    return q.order_by(Demande.created_at.desc(), Demande.id.desc()).all()


# Récupérer une demande par ID
def get_demande(db: Session, demande_id: int):
    return db.query(Demande).filter(Demande.id == demande_id).first()


# Créer une demande (soumission publique du formulaire)
def create_demande(db: Session, payload: DemandeCreateSchema) -> Demande:
    promo_min_order = compute_promo_min_order(payload.annual_purchase) if payload.promo_accepted else None
    db_demande = Demande(
        company_name=payload.company_name,
        owner_name=payload.owner_name,
        contact_name=payload.contact_name or payload.owner_name,
        address=payload.address,
        city=payload.city,
        postal_code=payload.postal_code,
        sector=payload.sector.value,
        annual_purchase=payload.annual_purchase,
        promo_accepted=payload.promo_accepted,
        promo_min_order=promo_min_order,
        email_responsable=payload.email_responsable,
        email_facturation=payload.email_facturation,
        phone=payload.phone,
        signature=payload.signature,
        status=StatutDemande.nouvelle.value,
    )
    try:
        db.add(db_demande)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("create_demande failed", exc_info=True)
        raise
    db.refresh(db_demande)
    logger.info("Demande %s soumise par %s", db_demande.id, db_demande.company_name)
    return db_demande


# Supprimer une demande
def delete_demande(db: Session, demande_id: int):
    db_demande = get_demande(db, demande_id)
    if not db_demande:
        return None
    db.delete(db_demande)
    db.commit()
    return db_demande


def get_stats(db: Session) -> dict:
    rows = db.query(Demande.status, func.count(Demande.id)).group_by(Demande.status).all()
    par_statut = {status: count for status, count in rows}
    promo = db.query(func.count(Demande.id)).filter(Demande.promo_accepted.is_(True)).scalar() or 0
    return {
        "total": sum(par_statut.values()),
        "nouvelles": par_statut.get(StatutDemande.nouvelle.value, 0),
        "en_cours": par_statut.get(StatutDemande.en_cours.value, 0),
        "approuvees": par_statut.get(StatutDemande.approuvee.value, 0),
        "refusees": par_statut.get(StatutDemande.refusee.value, 0),
        "promo_acceptees": promo,
    }
