"""Erreurs de la couche de stockage.

Les dépôts ne laissent jamais remonter une exception SQLAlchemy brute liée aux données: ils la
classent une seule fois ici (validation, unicité, clé étrangère) afin que les services puissent la
traduire sans inspecter de message.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from sqlalchemy.exc import DataError, IntegrityError


class StorageErrorKind(StrEnum):
    """Nature d'un échec de stockage."""

    VALIDATION = "validation"
    UNIQUE = "unique"
    FOREIGN_KEY = "foreign_key"


@dataclass(eq=False)
class StorageError(Exception):
    """Échec de stockage typé (kind + champ concerné si connu)."""

    kind: StorageErrorKind
    message: str
    field: str | None = None

    def __post_init__(self) -> None:
        super().__init__(self.message)


# SQLSTATE (PostgreSQL / ANSI)
_SQLSTATE_UNIQUE = "23505"
_SQLSTATE_FOREIGN_KEY = "23503"
_SQLSTATE_NOT_NULL = "23502"

_UNIQUE_FIELD_RE = re.compile(r"UNIQUE constraint failed: \w+\.(\w+)")
_NOT_NULL_FIELD_RE = re.compile(r"NOT NULL constraint failed: \w+\.(\w+)")
_PG_KEY_RE = re.compile(r"Key \((\w+)\)")


def _sqlstate(exc: Exception) -> str | None:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def classify(exc: Exception) -> StorageError:
    """Convertit une exception SQLAlchemy en `StorageError` typée."""
    text = str(getattr(exc, "orig", exc))
    state = _sqlstate(exc)
    if isinstance(exc, IntegrityError):
        lowered = text.lower()
        if state == _SQLSTATE_UNIQUE or "unique" in lowered or "duplicate" in lowered:
            match = _UNIQUE_FIELD_RE.search(text) or _PG_KEY_RE.search(text)
            return StorageError(StorageErrorKind.UNIQUE, text, match.group(1) if match else None)
        if state == _SQLSTATE_FOREIGN_KEY or "foreign key" in lowered:
            match = _PG_KEY_RE.search(text)
            return StorageError(
                StorageErrorKind.FOREIGN_KEY, text, match.group(1) if match else None
            )
        if state == _SQLSTATE_NOT_NULL or "not null" in lowered:
            match = _NOT_NULL_FIELD_RE.search(text)
            return StorageError(
                StorageErrorKind.VALIDATION, text, match.group(1) if match else None
            )
        return StorageError(StorageErrorKind.VALIDATION, text)
    if isinstance(exc, DataError):
        return StorageError(StorageErrorKind.VALIDATION, text)
    raise TypeError(f"unclassifiable storage exception: {type(exc).__name__}")


def invalid_field(field: str, message: str) -> StorageError:
    """Filtre, tri ou inclusion référençant un champ inconnu."""
    return StorageError(StorageErrorKind.VALIDATION, message, field)
