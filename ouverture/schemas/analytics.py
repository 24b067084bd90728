from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel

from ouverture.models.enums import TypeInteraction


class SuiviSchema(BaseModel):
    """Charge utile du script de suivi du formulaire : clés en camelCase (sessionId, timeSpent...)."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class SessionStartSchema(SuiviSchema):
    session_id: str
    device_type: str | None = None
    browser: str | None = None
    os: str | None = None
    screen_width: int | None = None
    screen_height: int | None = None
    referrer: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None


class EventSchema(SuiviSchema):
    session_id: str
    event_type: str
    event_data: dict[str, Any] | None = None
    step: str | None = None


class StepTimeSchema(SuiviSchema):
    session_id: str
    step: str
    time_spent: int | None = None
    entered_at: datetime | None = None
    left_at: datetime | None = None

    @field_validator("entered_at", "left_at")
    @classmethod
    def naive_utc(cls, v):
        # Le navigateur envoie de l'ISO 8601 en UTC ("...Z") ; la base stocke du naïf UTC
        if v is not None and v.tzinfo is not None:
            return v.astimezone(timezone.utc).replace(tzinfo=None)
        return v


class FieldInteractionSchema(SuiviSchema):
    session_id: str
    field_name: str
    interaction_type: TypeInteraction | None = None
    time_spent: int | None = None


class SessionEndSchema(SuiviSchema):
    session_id: str
    completed: bool = False
