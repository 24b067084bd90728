from ouverture.database import Base
from .demande import Demande
from .admin import Admin
from .analytics import SessionSuivi, EvenementSuivi, TempsEtape, InteractionChamp


__all__ = [
    "Base",
    "Demande",
    "Admin",
    "SessionSuivi",
    "EvenementSuivi",
    "TempsEtape",
    "InteractionChamp",
]
