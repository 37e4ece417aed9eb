"""
Socle commun des services métier.

Responsabilités partagées:
- résolution de l'acteur (`actor_id` -> utilisateur actif) et gardes de rôle;
- traduction des `StorageError` du dépôt vers la taxonomie `ServiceError`;
- journalisation structurée des écritures (structlog, un évènement par transition).
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from heritage.core.logging import get_logger
from heritage.core.settings import Settings
from heritage.domain.dto.common import ValidationResult, to_int
from heritage.domain.errors import (
    FieldError,
    ServiceError,
    conflict,
    forbidden,
    internal_error,
    not_found,
    unauthorized,
    validation_error,
)
from heritage.domain.translatable import resolve_language
from heritage.infra.repo.errors import StorageError, StorageErrorKind
from heritage.infra.repo.models import User
from heritage.infra.repo.user_repository import UserRepository

E = TypeVar("E")


class BaseService:
    """Services orchestrant DTOs, dépôts et machines à états."""

    resource = "Resource"

    def __init__(self, settings: Settings, users: UserRepository) -> None:
        self.settings = settings
        self.users = users
        self.log = get_logger(__name__, service=type(self).__name__)

    # --- acteurs

    def _actor(self, actor_id: Any) -> User:
        """Utilisateur actif correspondant à `actor_id`, sinon UNAUTHORIZED / FORBIDDEN."""
        ident = to_int(actor_id)
        if ident is None or ident <= 0:
            raise unauthorized()
        actor = self.users.find_by_id(ident)
        if actor is None or not actor.is_active:
            raise unauthorized()
        if actor.is_suspended:
            raise forbidden("Account is suspended")
        return actor

    def _admin(self, actor_id: Any) -> User:
        actor = self._actor(actor_id)
        if not actor.is_admin:
            raise forbidden("Administrator role required")
        return actor

    def _optional_actor(self, actor_id: Any) -> User | None:
        """Acteur facultatif (lecture publique): absent -> None, invalide -> UNAUTHORIZED."""
        return None if actor_id is None else self._actor(actor_id)

    # --- entrées

    def _lang(self, lang: str | None) -> str:
        return resolve_language(lang, self.settings.DEFAULT_LANGUAGE)

    @staticmethod
    def _order(order: Any) -> tuple[Any, ...] | None:
        """`"-created_at,title"` -> `("-created_at", "title")`; None garde le tri par défaut."""
        if not order:
            return None
        if isinstance(order, str):
            return tuple(part.strip() for part in order.split(",") if part.strip()) or None
        return tuple(order)

    @staticmethod
    def _ensure_valid(result: ValidationResult) -> None:
        if not result.valid:
            raise validation_error("Invalid input", result.errors)

    def _require(self, entity: E | None, ident: Any) -> E:
        if entity is None:
            raise not_found(self.resource, ident)
        return entity

    # --- erreurs de stockage

    def _translate(self, exc: StorageError) -> ServiceError:
        field = exc.field or "unknown"
        if exc.kind is StorageErrorKind.UNIQUE:
            return conflict(
                f"{self.resource} already exists", [FieldError(field, "value already in use")]
            )
        if exc.kind is StorageErrorKind.FOREIGN_KEY:
            return validation_error(
                "Referenced resource does not exist", [FieldError(field, "unknown reference")]
            )
        return validation_error("Invalid data", [FieldError(field, exc.message)])

    @contextmanager
    def _storage(self, operation: str) -> Iterator[None]:
        """Traduit les erreurs du dépôt; toute autre erreur SQLAlchemy devient INTERNAL_ERROR."""
        try:
            yield
        except StorageError as exc:
            self.log.info("storage_error", operation=operation, kind=exc.kind.value, field=exc.field)
            raise self._translate(exc) from exc
        except SQLAlchemyError as exc:
            self.log.error("storage_failure", operation=operation, error=type(exc).__name__)
            raise internal_error() from exc
