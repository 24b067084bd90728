"""Résultat structuré d'un appel à une intégration externe (SMTP, Dadhri)."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

# Catégories d'échec remontées à l'administrateur
CONFIGURATION = "configuration"
AUTHENTICATION = "authentication"
CONFLICT = "conflict"
TRANSPORT = "transport"
REMOTE = "remote"
INTERNAL = "internal"


@dataclass(frozen=True)
class IntegrationResult:
    success: bool
    error: Optional[str] = None
    error_kind: Optional[str] = None
    # True => une nouvelle tentative manuelle a du sens
    retryable: bool = False
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, **data: Any) -> "IntegrationResult":
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, error: str, kind: str, retryable: bool = False, **data: Any) -> "IntegrationResult":
        return cls(success=False, error=error, error_kind=kind, retryable=retryable, data=data)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
