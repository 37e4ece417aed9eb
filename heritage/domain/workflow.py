"""
Machines à états de modération (œuvres et utilisateurs).

Ce module ne fait aucune écriture: il décrit les statuts, les transitions autorisées et les gardes
que les services vérifient avant de déléguer la mutation au dépôt.
"""

from __future__ import annotations

from enum import StrEnum

from heritage.domain.errors import FieldError, conflict, validation_error


class OeuvreStatus(StrEnum):
    """Statut de publication d'une œuvre."""

    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    REJECTED = "rejected"
    ARCHIVED = "archived"
    DELETED = "deleted"


class ValidationStatus(StrEnum):
    """Statut de validation d'un compte utilisateur."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class UserType(StrEnum):
    """Catégorie d'utilisateur: visiteur, administrateur ou professionnel de la culture."""

    VISITOR = "visitor"
    ADMIN = "admin"
    WRITER = "writer"
    JOURNALIST = "journalist"
    SCIENTIST = "scientist"
    ACTOR = "actor"
    ARTIST = "artist"
    ARTISAN = "artisan"
    DIRECTOR = "director"
    MUSICIAN = "musician"
    PHOTOGRAPHER = "photographer"
    DANCER = "dancer"
    SCULPTOR = "sculptor"


PROFESSIONAL_TYPES: frozenset[UserType] = frozenset(UserType) - {UserType.VISITOR, UserType.ADMIN}

# statut courant -> statuts atteignables
OEUVRE_TRANSITIONS: dict[OeuvreStatus, frozenset[OeuvreStatus]] = {
    OeuvreStatus.DRAFT: frozenset({OeuvreStatus.PENDING, OeuvreStatus.DELETED}),
    OeuvreStatus.PENDING: frozenset(
        {OeuvreStatus.PUBLISHED, OeuvreStatus.REJECTED, OeuvreStatus.DELETED}
    ),
    OeuvreStatus.PUBLISHED: frozenset({OeuvreStatus.ARCHIVED, OeuvreStatus.DELETED}),
    OeuvreStatus.REJECTED: frozenset({OeuvreStatus.DELETED}),
    OeuvreStatus.ARCHIVED: frozenset({OeuvreStatus.DELETED}),
    OeuvreStatus.DELETED: frozenset(),
}


def can_transition(current: str | OeuvreStatus, target: OeuvreStatus) -> bool:
    """Vrai si `target` est atteignable depuis `current`."""
    try:
        status = OeuvreStatus(current)
    except ValueError:
        return False
    return target in OEUVRE_TRANSITIONS[status]


def ensure_transition(current: str | OeuvreStatus, target: OeuvreStatus) -> None:
    """Lève CONFLICT si la transition `current -> target` est interdite."""
    if not can_transition(current, target):
        raise conflict(
            f"Illegal transition from '{current}' to '{target.value}'",
            [FieldError("status", f"current status is '{current}'")],
        )


def require_reason(reason: str | None, field: str = "reason") -> str:
    """Un motif non vide est exigé (refus, suspension)."""
    cleaned = (reason or "").strip()
    if not cleaned:
        raise validation_error("A reason is required", [FieldError(field, "must not be empty")])
    return cleaned


def is_professional(user_type: str | None) -> bool:
    try:
        return UserType(user_type) in PROFESSIONAL_TYPES
    except ValueError:
        return False


def initial_validation_status(user_type: str | None) -> ValidationStatus:
    """Les visiteurs sont approuvés d'office; les professionnels attendent une validation."""
    return ValidationStatus.PENDING if is_professional(user_type) else ValidationStatus.APPROVED


__all__ = [
    "OEUVRE_TRANSITIONS",
    "PROFESSIONAL_TYPES",
    "OeuvreStatus",
    "UserType",
    "ValidationStatus",
    "can_transition",
    "ensure_transition",
    "initial_validation_status",
    "is_professional",
    "require_reason",
]
