from datetime import datetime

from pydantic import BaseModel, field_validator
from pydantic.alias_generators import to_camel

from ouverture.models.enums import Secteur, StatutDemande
from .validators import clean_email, clean_required, parse_oui_non


# Schéma pour la lecture (DB → API → JSON), sans la signature
class DemandeSchema(BaseModel):
    id: int
    company_name: str
    owner_name: str
    contact_name: str | None = None
    address: str
    city: str
    postal_code: str
    sector: str
    annual_purchase: str
    promo_accepted: bool
    promo_min_order: int | None = None
    email_responsable: str
    email_facturation: str
    phone: str
    status: str
    notes: str | None = None
    dadhri_code: str | None = None
    dadhri_synced_at: datetime | None = None
    email_sent_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class DemandeDetailSchema(DemandeSchema):
    signature: str


# Schéma pour la soumission publique (formulaire → DB)
class DemandeCreateSchema(BaseModel):
    company_name: str
    owner_name: str
    contact_name: str | None = None
    address: str
    city: str
    postal_code: str
    sector: Secteur
    annual_purchase: str
    promo_accepted: bool = False
    email_responsable: str
    email_facturation: str
    phone: str
    signature: str

    # Le formulaire envoie companyName, postalCode, emailResponsable...
    class Config:
        alias_generator = to_camel
        populate_by_name = True

    @field_validator("company_name", "owner_name", "address", "city", "postal_code", "annual_purchase", "phone", mode="before")
    @classmethod
    def champ_requis(cls, v, info):
        return clean_required(v, info.field_name)

    @field_validator("contact_name", mode="before")
    @classmethod
    def contact_optionnel(cls, v):
        if v is None:
            return None
        return str(v).strip() or None

    @field_validator("email_responsable", "email_facturation", mode="before")
    @classmethod
    def courriel_valide(cls, v, info):
        return clean_email(v, info.field_name)

    @field_validator("promo_accepted", mode="before")
    @classmethod
    def promo_oui_non(cls, v):
        return parse_oui_non(v)

    @field_validator("signature", mode="before")
    @classmethod
    def signature_image(cls, v):
        v = clean_required(v, "signature")
        if not v.startswith("data:image/"):
            raise ValueError("signature doit être une image encodée (data:image/...)")
        return v

    @field_validator("postal_code")
    @classmethod
    def code_postal_majuscules(cls, v):
        return v.upper()


class StatutUpdateSchema(BaseModel):
    status: StatutDemande
    notes: str | None = None


class IntegrationResultSchema(BaseModel):
    success: bool
    error: str | None = None
    error_kind: str | None = None
    retryable: bool = False
    data: dict | None = None


class StatutUpdateResponseSchema(BaseModel):
    success: bool = True
    status: str
    changed: bool
    approval_triggered: bool = False
    email: IntegrationResultSchema | None = None
    crm: IntegrationResultSchema | None = None


class StatsSchema(BaseModel):
    total: int
    nouvelles: int
    en_cours: int
    approuvees: int
    refusees: int
    promo_acceptees: int
