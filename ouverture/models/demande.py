from datetime import datetime

from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime
from ouverture.database import Base
from ouverture.models.enums import StatutDemande


class Demande(Base):
    __tablename__ = "demandes"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    company_name = Column(String(255), nullable=False)
    owner_name = Column(String(255), nullable=False)
    contact_name = Column(String(255), nullable=True)
    address = Column(String(255), nullable=False)
    city = Column(String(120), nullable=False)
    postal_code = Column(String(20), nullable=False)
    sector = Column(String(40), nullable=False)
    # Montant tel que saisi dans le formulaire ("50 000")
    annual_purchase = Column(String(40), nullable=False)
    promo_accepted = Column(Boolean, nullable=False, default=False)
    promo_min_order = Column(Integer, nullable=True)
    email_responsable = Column(String(255), nullable=False)
    email_facturation = Column(String(255), nullable=False)
    phone = Column(String(40), nullable=False)
    # Image encodée en data URL (data:image/png;base64,...)
    signature = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default=StatutDemande.nouvelle.value, index=True)
    notes = Column(Text, nullable=True)
    dadhri_code = Column(String(10), nullable=True)
    dadhri_synced_at = Column(DateTime, nullable=True)
    email_sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
