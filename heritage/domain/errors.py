"""Taxonomie fermée des erreurs métier.

Les services lèvent exclusivement `ServiceError`, dont le `kind` appartient à l'énumération
`ErrorKind`. La couche HTTP (voir `heritage.apigw.errors`) traduit le `kind` en statut HTTP et en
enveloppe `{success: false, error: {code, message, details?}}` sans inspecter de chaîne.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from heritage.core.http_constants import (
    HTTP_BAD_REQUEST,
    HTTP_CONFLICT,
    HTTP_FORBIDDEN,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_NOT_FOUND,
    HTTP_UNAUTHORIZED,
)


class ErrorKind(StrEnum):
    """Codes d'erreur exposés aux consommateurs du cœur."""

    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFLICT = "CONFLICT"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @property
    def status_code(self) -> int:
        return _STATUS_BY_KIND[self]


_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: HTTP_NOT_FOUND,
    ErrorKind.VALIDATION_ERROR: HTTP_BAD_REQUEST,
    ErrorKind.CONFLICT: HTTP_CONFLICT,
    ErrorKind.UNAUTHORIZED: HTTP_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: HTTP_FORBIDDEN,
    ErrorKind.INTERNAL_ERROR: HTTP_INTERNAL_SERVER_ERROR,
}


@dataclass(frozen=True)
class FieldError:
    """Erreur rattachée à un champ d'entrée."""

    field: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


@dataclass(eq=False)
class ServiceError(Exception):
    """Erreur métier typée (kind + message + détails structurés)."""

    kind: ErrorKind
    message: str
    details: list[FieldError] = field(default_factory=list)

    def __post_init__(self) -> None:
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def to_dict(self) -> dict[str, Any]:
        """Corps `error` de l'enveloppe de réponse."""
        body: dict[str, Any] = {"code": self.kind.value, "message": self.message}
        if self.details:
            body["details"] = [d.to_dict() for d in self.details]
        return body


# Constructeurs de commodité
def not_found(resource: str, ident: Any) -> ServiceError:
    """Crée une erreur 404 pour une ressource absente."""
    return ServiceError(ErrorKind.NOT_FOUND, f"{resource} {ident} not found")


def validation_error(message: str, details: list[FieldError] | None = None) -> ServiceError:
    """Crée une erreur 400 avec détails par champ."""
    return ServiceError(ErrorKind.VALIDATION_ERROR, message, list(details or []))


def conflict(message: str, details: list[FieldError] | None = None) -> ServiceError:
    """Crée une erreur 409 (unicité ou transition d'état interdite)."""
    return ServiceError(ErrorKind.CONFLICT, message, list(details or []))


def unauthorized(message: str = "Missing or invalid actor identity") -> ServiceError:
    """Crée une erreur 401."""
    return ServiceError(ErrorKind.UNAUTHORIZED, message)


def forbidden(message: str = "Forbidden") -> ServiceError:
    """Crée une erreur 403."""
    return ServiceError(ErrorKind.FORBIDDEN, message)


def internal_error(message: str = "An unexpected error occurred") -> ServiceError:
    """Crée une erreur 500."""
    return ServiceError(ErrorKind.INTERNAL_ERROR, message)
