"""Client de l'API Dadhri.NET : création du client lors de l'approbation d'une demande."""
from __future__ import annotations

import logging
import os
import re
import time
from typing import Any

import requests

from ouverture.services.integration import (
    IntegrationResult,
    AUTHENTICATION,
    CONFIGURATION,
    CONFLICT,
    REMOTE,
    TRANSPORT,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://jds-demo.dadhri.net:1443/dadhri.web/rest"

# Longueurs maximales des champs côté Dadhri
CODE_MAX = 10
CODE_LEN = 7
NAME_MAX = 40
ADDRESS_MAX = 40
CITY_MAX = 40
POSTAL_MAX = 10
PHONE_MAX = 20
EMAIL_MAX = 210


def _base_url() -> str:
    return os.getenv("DADHRI_API_URL", DEFAULT_BASE_URL).rstrip("/")


def _timeout() -> float:
    return float(os.getenv("DADHRI_TIMEOUT", "15"))


def _truncate(value: str | None, size: int) -> str:
    return (value or "").strip()[:size]


def generate_client_code(demande) -> str:
    """Les 7 derniers chiffres du téléphone, sinon l'id de la demande complété à 7 caractères."""
    digits = re.sub(r"\D", "", demande.phone or "")
    code = digits[-CODE_LEN:]
    if len(code) < CODE_LEN:
        code = str(demande.id).zfill(CODE_LEN)
    return code[-CODE_MAX:]


def generate_retry_code() -> str:
    """Code de repli horodaté, utilisé quand le code calculé existe déjà."""
    return f"JDS{int(time.time() * 1000) % 10 ** CODE_LEN:0{CODE_LEN}d}"


def map_demande_to_client(demande, client_code: str) -> dict[str, Any]:
    line2 = ""
    if demande.contact_name and demande.contact_name != demande.owner_name:
        line2 = _truncate(f"Contact: {demande.contact_name}", ADDRESS_MAX)

    return {
        "id": client_code[:CODE_MAX],
        "name": _truncate(demande.company_name, NAME_MAX),
        "phone": re.sub(r"[^\d+]", "", demande.phone or "")[:PHONE_MAX],
        "email": _truncate(demande.email_responsable, EMAIL_MAX),
        "language": "F",
        "address": {
            "line1": _truncate(demande.address, ADDRESS_MAX),
            "line2": line2,
            "city": _truncate(demande.city, CITY_MAX),
            "province": "QC",
            "postal_code": _truncate(demande.postal_code, POSTAL_MAX),
            "country": "CA",
        },
    }


def _post_client(api_key: str, payload: dict) -> tuple[int, dict | None]:
    resp = requests.post(
        f"{_base_url()}/client",
        json=payload,
        headers={"Content-Type": "application/json", "api_key": api_key},
        timeout=_timeout(),
    )
    try:
        data = resp.json()
    except ValueError:
        data = None
    if not isinstance(data, dict):
        data = None
    logger.info("Réponse Dadhri (%s) pour le code %s: %s", resp.status_code, payload.get("id"), data)
    return resp.status_code, data


def _is_success(status: int, data: dict | None) -> bool:
    return 200 <= status < 300 and bool((data or {}).get("success"))


def _is_conflict(status: int, data: dict | None) -> bool:
    return status == 409 or (data or {}).get("errorcode") == "exists"


def _is_auth_error(status: int, data: dict | None) -> bool:
    return status in (401, 403) or (data or {}).get("errorcode") == "invalidapikey"


def _error_message(status: int, data: dict | None) -> str:
    return (data or {}).get("message") or f"Erreur {status}"


def create_client(demande) -> IntegrationResult:
    """Crée le client dans Dadhri. Un conflit de code déclenche exactement une nouvelle tentative."""
    api_key = os.getenv("DADHRI_API_KEY")
    if not api_key:
        logger.warning("DADHRI_API_KEY non configurée - client non créé dans Dadhri")
        return IntegrationResult.failure("API Key Dadhri non configurée", CONFIGURATION)

    client_code = generate_client_code(demande)
    payload = map_demande_to_client(demande, client_code)

    try:
        status, data = _post_client(api_key, payload)

        if _is_conflict(status, data):
            new_code = generate_retry_code()
            logger.info("Code %s existe déjà dans Dadhri, réessai avec %s", client_code, new_code)
            client_code = new_code
            status, data = _post_client(api_key, {**payload, "id": new_code})
            if _is_conflict(status, data):
                return IntegrationResult.failure(
                    f"Code client {new_code} déjà utilisé dans Dadhri", CONFLICT, retryable=True
                )
    except requests.RequestException as exc:
        logger.exception("Erreur de connexion à l'API Dadhri")
        return IntegrationResult.failure(f"Erreur de connexion: {exc}", TRANSPORT, retryable=True)

    if _is_success(status, data):
        logger.info("Client créé dans Dadhri: %s - %s", client_code, demande.company_name)
        return IntegrationResult.ok(client_code=client_code, response=data)

    if _is_auth_error(status, data):
        logger.error("API Key Dadhri invalide")
        return IntegrationResult.failure("API Key Dadhri invalide ou expirée", AUTHENTICATION)

    logger.error("Erreur création client Dadhri (%s): %s", status, data)
    return IntegrationResult.failure(_error_message(status, data), REMOTE, retryable=True)


def verify_connection() -> IntegrationResult:
    api_key = os.getenv("DADHRI_API_KEY")
    if not api_key:
        return IntegrationResult.failure("API Key non configurée", CONFIGURATION)
    try:
        resp = requests.get(f"{_base_url()}/ping", headers={"api_key": api_key}, timeout=_timeout())
    except requests.RequestException as exc:
        logger.exception("Vérification Dadhri impossible")
        return IntegrationResult.failure(str(exc), TRANSPORT, retryable=True)
    if resp.ok:
        return IntegrationResult.ok(url=_base_url())
    if resp.status_code in (401, 403):
        return IntegrationResult.failure("API Key invalide", AUTHENTICATION)
    return IntegrationResult.failure(f"Erreur {resp.status_code}", REMOTE, retryable=True)
