import json
import logging
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ouverture.database import get_db
from ouverture.models.admin import Admin
from ouverture.schemas.analytics import (
    SuiviSchema,
    SessionStartSchema,
    EventSchema,
    StepTimeSchema,
    FieldInteractionSchema,
    SessionEndSchema,
)
from ouverture.security.access import require_admin
from ouverture.services import analytics

logger = logging.getLogger("uvicorn.error")

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


def _write(db: Session, label: str, fn: Callable, *args, **kwargs) -> dict:
    """Écriture de télémétrie : succès sauf si l'écriture elle-même échoue."""
    try:
        fn(db, *args, **kwargs)
    except Exception:
        db.rollback()
        logger.exception("Analytics %s error", label)
        raise HTTPException(status_code=500, detail="Erreur serveur")
    return {"success": True}


def beacon_body(schema: type[SuiviSchema]) -> Callable:
    """Lit le JSON quel que soit le Content-Type : sendBeacon poste en text/plain."""

    async def dependency(request: Request) -> SuiviSchema:
        raw = await request.body()
        try:
            data = json.loads(raw)
        except ValueError:
            raise RequestValidationError([{"type": "json_invalid", "loc": ("body",), "msg": "JSON invalide", "input": None}])
        try:
            return schema.model_validate(data)
        except ValidationError as exc:
            raise RequestValidationError(exc.errors(include_url=False))

    return dependency


# -------- Ingestion (public) --------
@router.post("/session")
def api_start_session(
    request: Request,
    payload: SessionStartSchema = Depends(beacon_body(SessionStartSchema)),
    db: Session = Depends(get_db),
):
    return _write(db, "session", analytics.start_session, payload, ua=request.headers.get("user-agent"))


@router.post("/event")
def api_event(payload: EventSchema = Depends(beacon_body(EventSchema)), db: Session = Depends(get_db)):
    return _write(db, "event", analytics.record_event, payload)


@router.post("/step-time")
def api_step_time(payload: StepTimeSchema = Depends(beacon_body(StepTimeSchema)), db: Session = Depends(get_db)):
    return _write(db, "step-time", analytics.record_step_time, payload)


@router.post("/field")
def api_field(payload: FieldInteractionSchema = Depends(beacon_body(FieldInteractionSchema)), db: Session = Depends(get_db)):
    return _write(db, "field", analytics.record_field_interaction, payload)


@router.post("/session/end")
def api_end_session(payload: SessionEndSchema = Depends(beacon_body(SessionEndSchema)), db: Session = Depends(get_db)):
    return _write(db, "session end", analytics.end_session, payload)


# -------- Vues agrégées (admin) --------
@router.get("/overview")
def api_overview(days: int = Query(30, ge=1, le=365), db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    return analytics.overview(db, days)


@router.get("/devices")
def api_devices(days: int = Query(30, ge=1, le=365), db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    return analytics.devices(db, days)


@router.get("/funnel")
def api_funnel(days: int = Query(30, ge=1, le=365), db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    return analytics.funnel(db, days)


@router.get("/promo")
def api_promo(days: int = Query(30, ge=1, le=365), db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    return analytics.promo(db, days)


@router.get("/abandons")
def api_abandons(days: int = Query(30, ge=1, le=365), db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    return analytics.abandons(db, days)


@router.get("/sources")
def api_sources(days: int = Query(30, ge=1, le=365), db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    return analytics.sources(db, days)


@router.get("/realtime")
def api_realtime(db: Session = Depends(get_db), admin: Admin = Depends(require_admin)):
    return analytics.realtime(db)
