from datetime import datetime

from pydantic import BaseModel, field_validator

from .validators import clean_email, clean_required


class AdminSchema(BaseModel):
    id: int
    username: str
    nom: str
    email: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class AdminCreateSchema(BaseModel):
    username: str
    password: str
    nom: str
    email: str | None = None

    @field_validator("username", "nom", mode="before")
    @classmethod
    def champ_requis(cls, v, info):
        return clean_required(v, info.field_name)

    @field_validator("password")
    @classmethod
    def mot_de_passe(cls, v):
        if not v or len(v) < 8:
            raise ValueError("Le mot de passe doit contenir au moins 8 caractères")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def courriel(cls, v):
        if v in (None, ""):
            return None
        return clean_email(v)


class LoginSchema(BaseModel):
    username: str
    password: str
