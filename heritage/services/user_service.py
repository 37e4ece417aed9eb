"""
Service des utilisateurs: inscription, profil, validation des professionnels, suspension.

Deux axes d'état indépendants:
- validation: pending -> approved | rejected (professionnels; les visiteurs sont approuvés d'office);
- activité: suspendu / réactivé, avec motif, durée et auteur.
Un compte peut donc être approuvé et suspendu à la fois.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from heritage.domain.auth import hash_password, verify_and_update, verify_password
from heritage.domain.dto.common import ValidationResult, to_int
from heritage.domain.dto.user import (
    UserCreate,
    UserUpdate,
    check_password,
    user_admin,
    user_create_from_request,
    user_list_item,
    user_private,
    user_public,
    user_update_from_request,
)
from heritage.domain.errors import (
    FieldError,
    conflict,
    forbidden,
    not_found,
    unauthorized,
    validation_error,
)
from heritage.domain.workflow import ValidationStatus, require_reason
from heritage.infra.repo.errors import StorageError, StorageErrorKind
from heritage.infra.repo.models import User

from .base import BaseService


class UserService(BaseService):
    """Orchestration des comptes utilisateurs."""

    resource = "User"

    def _load(self, user_id: Any) -> User:
        ident = to_int(user_id)
        user = self.users.find_by_id(ident) if ident is not None else None
        return self._require(user, user_id)

    def _email_taken(self, email: str, except_id: int | None = None) -> None:
        existing = self.users.find_by_email(email)
        if existing is not None and existing.id != except_id:
            raise conflict("Email already registered", [FieldError("email", "already in use")])

    def _self_or_admin(self, actor: User, user_id: int) -> None:
        if not (actor.is_admin or actor.id == user_id):
            raise forbidden("Only the account holder or an administrator may do this")

    @staticmethod
    def _publicly_visible(user: User) -> bool:
        return (
            user.validation_status == ValidationStatus.APPROVED.value
            and user.is_active
            and not user.is_suspended
        )

    # ------------------------------------------------------------------ inscription / lecture

    def register(self, body: Mapping[str, Any], lang: str | None = None) -> dict[str, Any]:
        """Inscription: mot de passe haché, visiteurs approuvés, professionnels en attente."""
        code = self._lang(lang)
        dto: UserCreate = user_create_from_request(body, lang=code)
        self._ensure_valid(dto.validate(self.settings.PASSWORD_MIN_LENGTH))
        self._email_taken(dto.email)
        with self._storage("register"):
            user = self.users.create(dto.to_entity(hash_password(dto.password)))
        self.log.info(
            "user_registered",
            user_id=user.id,
            user_type=user.user_type,
            validation_status=user.validation_status,
        )
        return user_private(user, code)

    def verify_credentials(self, email: str, password: str, lang: str | None = None) -> dict:
        """Contrôle identifiants / mot de passe et horodate la connexion.

        L'émission du jeton de session reste du ressort de la couche d'authentification.
        """
        user = self.users.find_by_email(email)
        matches, new_hash = verify_and_update(password, user.password_hash if user else None)
        if not matches:
            raise unauthorized("Invalid credentials")
        if not user.is_active:
            raise unauthorized("Account is inactive")
        if user.is_suspended:
            raise forbidden("Account is suspended")
        with self._storage("verify_credentials"):
            if new_hash:
                self.users.update(user.id, {"password_hash": new_hash})
            user = self.users.update_last_login(user.id)
        self.log.info("user_logged_in", user_id=user.id)
        return user_private(user, self._lang(lang))

    def get(
        self, user_id: Any, actor_id: Any = None, lang: str | None = None, full: bool = False
    ) -> dict[str, Any]:
        """Profil selon l'acteur: administration, titulaire, ou public (comptes approuvés)."""
        actor = self._optional_actor(actor_id)
        user = self._load(user_id)
        code = self._lang(lang)
        if actor is not None and actor.is_admin:
            return user_admin(user, code, full)
        if actor is not None and actor.id == user.id:
            return user_private(user, code, full)
        if not self._publicly_visible(user):
            raise not_found(self.resource, user_id)
        return user_public(user, code, full)

    def list(
        self,
        actor_id: Any,
        where: Mapping[str, Any] | None = None,
        page: Any = None,
        limit: Any = None,
        order: Any = None,
        lang: str | None = None,
    ) -> dict[str, Any]:
        self._admin(actor_id)
        code = self._lang(lang)
        with self._storage("list"):
            result = self.users.find_all(where, order=self._order(order), page=page, limit=limit)
        return result.map(lambda u: user_admin(u, code)).to_dict()

    def search(
        self,
        query: Any,
        actor_id: Any = None,
        page: Any = None,
        limit: Any = None,
        lang: str | None = None,
    ) -> dict[str, Any]:
        """Recherche plein texte; hors administration, limitée aux comptes approuvés et actifs."""
        actor = self._optional_actor(actor_id)
        code = self._lang(lang)
        where = None
        if actor is None or not actor.is_admin:
            where = {
                "validation_status": ValidationStatus.APPROVED.value,
                "is_active": True,
                "is_suspended": False,
            }
        with self._storage("search"):
            result = self.users.search_users(query, page, limit, where=where)
        return result.map(lambda u: user_list_item(u, code)).to_dict()

    def find_by_type(
        self, user_type: str, page: Any = None, limit: Any = None, lang: str | None = None
    ) -> dict[str, Any]:
        code = self._lang(lang)
        with self._storage("find_by_type"):
            result = self.users.find_by_type(
                user_type,
                page,
                limit,
                where={"validation_status": ValidationStatus.APPROVED.value, "is_active": True},
            )
        return result.map(lambda u: user_public(u, code)).to_dict()

    def find_validated_professionals(
        self,
        user_type: str | None = None,
        page: Any = None,
        limit: Any = None,
        lang: str | None = None,
    ) -> dict[str, Any]:
        code = self._lang(lang)
        with self._storage("find_validated_professionals"):
            result = self.users.find_validated_professionals(user_type, page, limit)
        return result.map(lambda u: user_public(u, code)).to_dict()

    def find_pending_validation(
        self, actor_id: Any, page: Any = None, limit: Any = None, lang: str | None = None
    ) -> dict[str, Any]:
        self._admin(actor_id)
        code = self._lang(lang)
        with self._storage("find_pending_validation"):
            result = self.users.find_pending_validation(page, limit)
        return result.map(lambda u: user_admin(u, code)).to_dict()

    def get_stats(self, actor_id: Any) -> dict[str, Any]:
        self._admin(actor_id)
        with self._storage("get_stats"):
            return self.users.get_stats()

    # ------------------------------------------------------------------ profil

    def update(
        self, user_id: Any, body: Mapping[str, Any], actor_id: Any, lang: str | None = None
    ) -> dict[str, Any]:
        """Mise à jour partielle du profil (titulaire ou administrateur)."""
        actor = self._actor(actor_id)
        user = self._load(user_id)
        self._self_or_admin(actor, user.id)
        code = self._lang(lang)
        dto: UserUpdate = user_update_from_request(body, lang=code)
        self._ensure_valid(dto.validate())
        if not dto.has_changes():
            raise validation_error("No changes provided")
        if dto.has_field("user_type") and not actor.is_admin:
            raise forbidden("Only an administrator may change the user type")
        if dto.has_field("email"):
            self._email_taken(dto.changes.get("email"), except_id=user.id)
        with self._storage("update"):
            updated = self.users.update(user.id, dto.merge_with_existing(user))
        self.log.info(
            "user_updated", user_id=user.id, actor_id=actor.id, fields=dto.changes.names()
        )
        return user_admin(updated, code) if actor.is_admin else user_private(updated, code)

    def change_password(
        self, user_id: Any, actor_id: Any, current_password: str, new_password: str
    ) -> bool:
        """Changement par le titulaire: l'ancien mot de passe doit être fourni et correct."""
        actor = self._actor(actor_id)
        user = self._load(user_id)
        if actor.id != user.id:
            raise forbidden("Only the account holder may change the password")
        if not current_password or not verify_password(current_password, user.password_hash):
            raise validation_error(
                "Current password is incorrect",
                [FieldError("current_password", "does not match")],
            )
        result = ValidationResult()
        check_password(new_password, result, self.settings.PASSWORD_MIN_LENGTH)
        self._ensure_valid(result)
        with self._storage("change_password"):
            self.users.update(user.id, {"password_hash": hash_password(new_password)})
        self.log.info("user_password_changed", user_id=user.id)
        return True

    def delete(self, user_id: Any, actor_id: Any) -> bool:
        """Suppression physique (administration). Un compte propriétaire d'œuvres est conservé."""
        admin = self._admin(actor_id)
        user = self._load(user_id)
        if user.id == admin.id:
            raise conflict("Administrators cannot delete their own account")
        with self._storage("delete"):
            try:
                removed = self.users.delete(user.id)
            except StorageError as exc:
                if exc.kind is not StorageErrorKind.FOREIGN_KEY:
                    raise
                raise conflict(
                    "User still owns works", [FieldError("id", "referenced by works")]
                ) from exc
        self.log.info("user_deleted", user_id=user.id, actor_id=admin.id)
        return removed

    # ------------------------------------------------------------------ modération

    def validate(self, user_id: Any, validator_id: Any, lang: str | None = None) -> dict[str, Any]:
        """Approuve un compte en attente."""
        validator = self._admin(validator_id)
        user = self._load(user_id)
        if user.validation_status != ValidationStatus.PENDING.value:
            raise conflict(
                "Only pending accounts can be validated",
                [FieldError("validation_status", f"current status is '{user.validation_status}'")],
            )
        with self._storage("validate"):
            updated = self.users.mark_validated(user.id, validator.id)
        self.log.info("user_validated", user_id=user.id, actor_id=validator.id)
        return user_admin(updated, self._lang(lang))

    def reject(
        self, user_id: Any, validator_id: Any, reason: str | None, lang: str | None = None
    ) -> dict[str, Any]:
        validator = self._admin(validator_id)
        user = self._load(user_id)
        if user.validation_status != ValidationStatus.PENDING.value:
            raise conflict(
                "Only pending accounts can be rejected",
                [FieldError("validation_status", f"current status is '{user.validation_status}'")],
            )
        cleaned = require_reason(reason)
        with self._storage("reject"):
            updated = self.users.mark_rejected(user.id, validator.id, cleaned)
        self.log.info("user_rejected", user_id=user.id, actor_id=validator.id)
        return user_admin(updated, self._lang(lang))

    def suspend(
        self,
        user_id: Any,
        admin_id: Any,
        duration_days: Any,
        reason: str | None,
        lang: str | None = None,
    ) -> dict[str, Any]:
        """Suspend un compte pour `duration_days` jours (motif obligatoire)."""
        admin = self._admin(admin_id)
        user = self._load(user_id)
        if user.id == admin.id:
            raise conflict("Administrators cannot suspend their own account")
        if user.is_suspended:
            raise conflict(
                "User is already suspended", [FieldError("is_suspended", "already suspended")]
            )
        cleaned = require_reason(reason)
        days = to_int(duration_days)
        if days is None or not 1 <= days <= self.settings.SUSPENSION_MAX_DAYS:
            raise validation_error(
                "Invalid suspension duration",
                [
                    FieldError(
                        "duration_days",
                        f"must be between 1 and {self.settings.SUSPENSION_MAX_DAYS}",
                    )
                ],
            )
        with self._storage("suspend"):
            updated = self.users.mark_suspended(user.id, admin.id, days, cleaned)
        self.log.info("user_suspended", user_id=user.id, actor_id=admin.id, days=days)
        return user_admin(updated, self._lang(lang))

    def reactivate(self, user_id: Any, admin_id: Any, lang: str | None = None) -> dict[str, Any]:
        """Lève la suspension et l'inactivité du compte."""
        admin = self._admin(admin_id)
        user = self._load(user_id)
        if user.is_active and not user.is_suspended:
            raise conflict(
                "User is neither suspended nor inactive",
                [FieldError("is_suspended", "account is already active")],
            )
        with self._storage("reactivate"):
            updated = self.users.mark_reactivated(user.id, admin.id)
        self.log.info(
            "user_reactivated",
            user_id=user.id,
            actor_id=admin.id,
            was_suspended=bool(user.is_suspended),
            was_active=bool(user.is_active),
        )
        return user_admin(updated, self._lang(lang))
