import logging

from ouverture.models.enums import StatutDemande, libelle_secteur
from ouverture.services.templating import render

logger = logging.getLogger("uvicorn.error")

STATUT_LIBELLES = {
    StatutDemande.nouvelle.value: "Nouvelle",
    StatutDemande.en_cours.value: "En cours",
    StatutDemande.approuvee.value: "Approuvée",
    StatutDemande.refusee.value: "Refusée",
}


def render_fiche_html(demande) -> str:
    """Fiche client (page 1) + conditions et signature (page 2)."""
    return render(
        "fiche_client.html",
        demande=demande,
        secteur=libelle_secteur(demande.sector),
        statut=STATUT_LIBELLES.get(demande.status, demande.status),
        title=f"Fiche client - {demande.company_name}",
    )


def generate_fiche_pdf(demande) -> bytes:
    # Import tardif : WeasyPrint dépend de bibliothèques système (Pango)
    from weasyprint import HTML

    html = render_fiche_html(demande)
    pdf_bytes = HTML(string=html).write_pdf()
    logger.info("PDF généré pour la demande %s (%s octets)", demande.id, len(pdf_bytes))
    return pdf_bytes


def fiche_filename(demande) -> str:
    return f"demande_{demande.id}_{demande.created_at.strftime('%Y%m%d')}.pdf"
