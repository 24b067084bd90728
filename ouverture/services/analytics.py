"""Télémétrie du formulaire : écritures « fire-and-forget » et vues agrégées calculées à la demande."""
import logging
from collections import Counter
from datetime import datetime, timedelta

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ouverture.models.analytics import SessionSuivi, EvenementSuivi, TempsEtape, InteractionChamp
from ouverture.schemas.analytics import (
    SessionStartSchema,
    EventSchema,
    StepTimeSchema,
    FieldInteractionSchema,
    SessionEndSchema,
)
from ouverture.services import user_agent

logger = logging.getLogger("uvicorn.error")

FUNNEL_STEPS = ["1", "2", "3", "success"]
REALTIME_WINDOW = timedelta(minutes=5)


def _since(days: int) -> datetime:
    return datetime.utcnow() - timedelta(days=max(days, 1))


def _rate(part: int, total: int) -> float:
    return round(part * 100.0 / total, 1) if total else 0.0


# -------------------- Ingestion --------------------
def start_session(db: Session, payload: SessionStartSchema, ua: str | None = None) -> SessionSuivi:
    detected = user_agent.classify(ua)
    values = payload.dict(exclude={"session_id"})
    for key in ("device_type", "browser", "os"):
        if not values.get(key):
            values[key] = detected[key]

    row = db.query(SessionSuivi).filter(SessionSuivi.session_id == payload.session_id).first()
    if row is None:
        row = SessionSuivi(session_id=payload.session_id, started_at=datetime.utcnow(), **values)
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            # Même identifiant inséré en parallèle : on retombe sur la mise à jour
            db.rollback()
            row = db.query(SessionSuivi).filter(SessionSuivi.session_id == payload.session_id).one()
            return _update_session(db, row, values)
        db.refresh(row)
        return row
    return _update_session(db, row, values)


def _update_session(db: Session, row: SessionSuivi, values: dict) -> SessionSuivi:
    for key, value in values.items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return row


def record_event(db: Session, payload: EventSchema) -> EvenementSuivi:
    ev = EvenementSuivi(
        session_id=payload.session_id,
        event_type=payload.event_type,
        event_data=payload.event_data or {},
        step=payload.step,
        timestamp=datetime.utcnow(),
    )
    db.add(ev)
    db.commit()
    return ev


def record_step_time(db: Session, payload: StepTimeSchema) -> TempsEtape:
    st = TempsEtape(**payload.dict())
    db.add(st)
    db.commit()
    return st


def record_field_interaction(db: Session, payload: FieldInteractionSchema) -> InteractionChamp:
    fi = InteractionChamp(
        session_id=payload.session_id,
        field_name=payload.field_name,
        interaction_type=payload.interaction_type.value if payload.interaction_type else None,
        time_spent=payload.time_spent,
        timestamp=datetime.utcnow(),
    )
    db.add(fi)
    db.commit()
    return fi


def end_session(db: Session, payload: SessionEndSchema) -> bool:
    rows = (
        db.query(SessionSuivi)
        .filter(SessionSuivi.session_id == payload.session_id)
        .update(
            {SessionSuivi.ended_at: datetime.utcnow(), SessionSuivi.completed: payload.completed},
            synchronize_session=False,
        )
    )
    db.commit()
    return rows > 0


# -------------------- Vues agrégées --------------------
def _sessions_since(since: datetime):
    return select(SessionSuivi.session_id).where(SessionSuivi.started_at >= since)


def _breakdown(db: Session, column, since: datetime, label: str) -> list[dict]:
    rows = (
        db.query(column, func.count(SessionSuivi.id))
        .filter(SessionSuivi.started_at >= since)
        .group_by(column)
        .order_by(func.count(SessionSuivi.id).desc())
        .all()
    )
    return [{label: value or "Unknown", "count": count} for value, count in rows]


def overview(db: Session, days: int = 30) -> dict:
    since = _since(days)
    sessions = db.query(SessionSuivi).filter(SessionSuivi.started_at >= since).all()
    total = len(sessions)
    completed = [s for s in sessions if s.completed]

    durations = [
        (s.ended_at - s.started_at).total_seconds()
        for s in completed
        if s.ended_at is not None and s.started_at is not None
    ]
    by_day: dict[str, dict] = {}
    by_hour: Counter = Counter()
    for s in sessions:
        day = s.started_at.date().isoformat()
        entry = by_day.setdefault(day, {"date": day, "total": 0, "completed": 0})
        entry["total"] += 1
        entry["completed"] += 1 if s.completed else 0
        by_hour[s.started_at.hour] += 1

    return {
        "total_sessions": total,
        "completed_sessions": len(completed),
        "conversion_rate": _rate(len(completed), total),
        "avg_time_on_form": round(sum(durations) / len(durations)) if durations else 0,
        "devices": _breakdown(db, SessionSuivi.device_type, since, "device_type"),
        "sessions_by_day": [by_day[d] for d in sorted(by_day)],
        "sessions_by_hour": [{"hour": h, "count": by_hour[h]} for h in sorted(by_hour)],
    }


def devices(db: Session, days: int = 30) -> dict:
    since = _since(days)
    return {
        "devices": _breakdown(db, SessionSuivi.device_type, since, "device_type"),
        "browsers": _breakdown(db, SessionSuivi.browser, since, "browser"),
        "systems": _breakdown(db, SessionSuivi.os, since, "os"),
    }


def funnel(db: Session, days: int = 30) -> dict:
    sub = _sessions_since(_since(days))
    steps = []
    for step in FUNNEL_STEPS:
        count = (
            db.query(func.count(func.distinct(TempsEtape.session_id)))
            .filter(TempsEtape.step == step, TempsEtape.session_id.in_(sub))
            .scalar()
        )
        steps.append({"step": step, "count": count or 0})

    times = (
        db.query(TempsEtape.step, func.avg(TempsEtape.time_spent))
        .filter(TempsEtape.session_id.in_(sub))
        .group_by(TempsEtape.step)
        .all()
    )
    return {
        "funnel": steps,
        "step_times": [{"step": step, "avg_time": round(float(avg or 0))} for step, avg in times],
    }


def promo(db: Session, days: int = 30) -> dict:
    since = _since(days)
    events = (
        db.query(EvenementSuivi)
        .filter(
            EvenementSuivi.timestamp >= since,
            EvenementSuivi.event_type.in_(["promo_shown", "promo_accepted", "promo_refused"]),
        )
        .all()
    )
    counts = Counter(e.event_type for e in events)
    view_times = []
    for e in events:
        if e.event_type == "promo_shown":
            continue
        try:
            view_times.append(int((e.event_data or {}).get("viewTime")))
        except (TypeError, ValueError):
            continue
    shown = counts["promo_shown"]
    return {
        "promo_shown": shown,
        "promo_accepted": counts["promo_accepted"],
        "promo_refused": counts["promo_refused"],
        "avg_promo_view_time": round(sum(view_times) / len(view_times)) if view_times else 0,
        "acceptance_rate": _rate(counts["promo_accepted"], shown),
    }


def abandons(db: Session, days: int = 30) -> dict:
    since = _since(days)
    incomplete = _sessions_since(since).where(SessionSuivi.completed.is_(False))

    last_step: dict[str, TempsEtape] = {}
    for st in db.query(TempsEtape).filter(TempsEtape.session_id.in_(incomplete)).all():
        current = last_step.get(st.session_id)
        if current is None or (st.left_at or datetime.min) >= (current.left_at or datetime.min):
            last_step[st.session_id] = st
    by_step = Counter(st.step for st in last_step.values())

    fields = (
        db.query(
            InteractionChamp.field_name,
            func.count(InteractionChamp.id).label("abandon_count"),
            func.avg(InteractionChamp.time_spent).label("avg_time"),
        )
        .filter(InteractionChamp.session_id.in_(incomplete))
        .group_by(InteractionChamp.field_name)
        .order_by(func.count(InteractionChamp.id).desc())
        .limit(10)
        .all()
    )
    return {
        "abandons_by_step": [{"step": step, "count": count} for step, count in sorted(by_step.items())],
        "field_abandon_data": [
            {"field_name": f.field_name, "abandon_count": f.abandon_count, "avg_time": round(float(f.avg_time or 0))}
            for f in fields
        ],
    }


def sources(db: Session, days: int = 30) -> dict:
    since = _since(days)
    source = func.coalesce(SessionSuivi.utm_source, "direct")
    rows = (
        db.query(
            source.label("source"),
            func.count(SessionSuivi.id).label("total"),
            func.sum(case((SessionSuivi.completed.is_(True), 1), else_=0)).label("completed"),
        )
        .filter(SessionSuivi.started_at >= since)
        .group_by(source)
        .order_by(func.count(SessionSuivi.id).desc())
        .all()
    )
    referrers: Counter = Counter()
    for (ref,) in db.query(SessionSuivi.referrer).filter(SessionSuivi.started_at >= since).all():
        referrers[ref or "Direct"] += 1
    return {
        "sources": [{"source": r.source, "total": r.total, "completed": int(r.completed or 0)} for r in rows],
        "referrers": [{"referrer": ref, "count": count} for ref, count in referrers.most_common(10)],
    }


def realtime(db: Session) -> dict:
    since = datetime.utcnow() - REALTIME_WINDOW
    last_seen = dict(
        db.query(EvenementSuivi.session_id, func.max(EvenementSuivi.timestamp))
        .filter(EvenementSuivi.timestamp >= since)
        .group_by(EvenementSuivi.session_id)
        .all()
    )
    active = []
    if last_seen:
        current_step: dict[str, TempsEtape] = {}
        for st in db.query(TempsEtape).filter(TempsEtape.session_id.in_(list(last_seen))).all():
            cur = current_step.get(st.session_id)
            if cur is None or (st.entered_at or datetime.min) >= (cur.entered_at or datetime.min):
                current_step[st.session_id] = st
        sessions = db.query(SessionSuivi).filter(SessionSuivi.session_id.in_(list(last_seen))).all()
        for s in sorted(sessions, key=lambda s: last_seen[s.session_id], reverse=True):
            step = current_step.get(s.session_id)
            active.append({
                "session_id": s.session_id,
                "device_type": s.device_type,
                "started_at": s.started_at,
                "current_step": step.step if step else None,
            })

    completions = (
        db.query(SessionSuivi.session_id, SessionSuivi.ended_at)
        .filter(SessionSuivi.completed.is_(True), SessionSuivi.ended_at >= since)
        .order_by(SessionSuivi.ended_at.desc())
        .limit(10)
        .all()
    )
    return {
        "active_count": len(active),
        "active_sessions": active,
        "recent_completions": [{"session_id": c.session_id, "ended_at": c.ended_at} for c in completions],
    }
