from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, JSON
from ouverture.database import Base

# Télémétrie du formulaire : session_id référencé par valeur, sans FK


class SessionSuivi(Base):
    __tablename__ = "analytics_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, unique=True, index=True)
    device_type = Column(String(20), nullable=True)
    browser = Column(String(40), nullable=True)
    os = Column(String(40), nullable=True)
    screen_width = Column(Integer, nullable=True)
    screen_height = Column(Integer, nullable=True)
    referrer = Column(Text, nullable=True)
    utm_source = Column(String(120), nullable=True)
    utm_medium = Column(String(120), nullable=True)
    utm_campaign = Column(String(120), nullable=True)
    started_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    ended_at = Column(DateTime, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)


class EvenementSuivi(Base):
    __tablename__ = "analytics_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, index=True)
    event_type = Column(String(80), nullable=False, index=True)
    event_data = Column(JSON, nullable=True)
    step = Column(String(20), nullable=True)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)


class TempsEtape(Base):
    __tablename__ = "analytics_step_times"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, index=True)
    step = Column(String(20), nullable=False)
    time_spent = Column(Integer, nullable=True)
    entered_at = Column(DateTime, nullable=True)
    left_at = Column(DateTime, nullable=True)


class InteractionChamp(Base):
    __tablename__ = "analytics_field_interactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, index=True)
    field_name = Column(String(80), nullable=False)
    interaction_type = Column(String(20), nullable=True)
    time_spent = Column(Integer, nullable=True)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow)
