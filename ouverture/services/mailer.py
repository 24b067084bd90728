from __future__ import annotations

import logging
import os
import smtplib
import ssl
from datetime import datetime
from email.message import EmailMessage
from email.utils import formataddr

from ouverture.models.enums import libelle_secteur
from ouverture.services.integration import IntegrationResult, CONFIGURATION, TRANSPORT
from ouverture.services.templating import render

logger = logging.getLogger(__name__)

EXPEDITEUR_NOM = "Les Jardins du Saguenay"


def _str_to_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _smtp_settings() -> dict | None:
    host = os.getenv("SMTP_HOST")
    if not host:
        logger.warning("SMTP désactivé : variable SMTP_HOST absente.")
        return None

    sender = os.getenv("SMTP_FROM", os.getenv("SMTP_USERNAME"))
    if not sender:
        logger.warning("SMTP désactivé : aucun expéditeur défini (SMTP_FROM ou SMTP_USERNAME).")
        return None

    use_ssl = _str_to_bool(os.getenv("SMTP_USE_SSL"), default=False)
    return {
        "host": host,
        "port": int(os.getenv("SMTP_PORT", "465" if use_ssl else "587")),
        "sender": sender,
        "sender_name": os.getenv("SMTP_FROM_NAME", EXPEDITEUR_NOM),
        "username": os.getenv("SMTP_USERNAME"),
        "password": os.getenv("SMTP_PASSWORD"),
        "use_ssl": use_ssl,
        "use_tls": _str_to_bool(os.getenv("SMTP_USE_TLS"), default=not use_ssl),
    }


def _open_smtp(settings: dict) -> smtplib.SMTP:
    if settings["use_ssl"]:
        server = smtplib.SMTP_SSL(settings["host"], settings["port"], timeout=15)
    else:
        server = smtplib.SMTP(settings["host"], settings["port"], timeout=15)
    try:
        if not settings["use_ssl"] and settings["use_tls"]:
            server.starttls(context=ssl.create_default_context())
        if settings["username"] and settings["password"]:
            server.login(settings["username"], settings["password"])
    except Exception:
        server.close()
        raise
    return server


def send_email(to_email: str, subject: str, html: str, cc: str | None = None, text: str | None = None) -> IntegrationResult:
    """Envoi SMTP HTML basé sur variables d'environnement. Ne lève jamais d'exception."""
    settings = _smtp_settings()
    if settings is None:
        return IntegrationResult.failure("Configuration SMTP manquante", CONFIGURATION)

    message = EmailMessage()
    message["From"] = formataddr((settings["sender_name"], settings["sender"]))
    message["To"] = to_email
    if cc:
        message["Cc"] = cc
    message["Subject"] = subject
    message.set_content(text or "Ce message nécessite un client courriel compatible HTML.")
    message.add_alternative(html, subtype="html")

    try:
        with _open_smtp(settings) as server:
            server.send_message(message)
    except (smtplib.SMTPException, OSError) as exc:
        logger.exception("Échec de l'envoi de l'email à %s", to_email)
        return IntegrationResult.failure(str(exc) or exc.__class__.__name__, TRANSPORT, retryable=True)

    logger.info("Email envoyé à %s (cc=%s)", to_email, cc)
    return IntegrationResult.ok(to=to_email, cc=cc)


def render_approval_email(demande) -> str:
    return render(
        "email_approbation.html",
        demande=demande,
        contact=demande.contact_name or demande.owner_name,
        secteur=libelle_secteur(demande.sector),
        annee=datetime.utcnow().year,
    )


def send_approval_email(demande) -> IntegrationResult:
    cc = None
    if demande.email_facturation and demande.email_facturation.strip().lower() != demande.email_responsable.strip().lower():
        cc = demande.email_facturation
    return send_email(
        to_email=demande.email_responsable,
        subject=f"Bienvenue {demande.company_name} - Votre compte est approuvé!",
        html=render_approval_email(demande),
        cc=cc,
        text=(
            f"Bonjour {demande.contact_name or demande.owner_name},\n\n"
            f"Votre demande d'ouverture de compte pour {demande.company_name} a été approuvée.\n"
        ),
    )


def verify_smtp_connection() -> IntegrationResult:
    settings = _smtp_settings()
    if settings is None:
        return IntegrationResult.failure("Configuration SMTP manquante", CONFIGURATION)
    try:
        with _open_smtp(settings) as server:
            server.noop()
    except (smtplib.SMTPException, OSError) as exc:
        logger.exception("Vérification SMTP impossible")
        return IntegrationResult.failure(str(exc) or exc.__class__.__name__, TRANSPORT, retryable=True)
    return IntegrationResult.ok(host=settings["host"])
