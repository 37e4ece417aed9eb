"""Dépôt des utilisateurs: requêtes par statut de validation, activité, type et mutations de champs.

Les mutateurs `mark_*` n'appliquent aucune garde: le service vérifie l'état courant et l'identité de
l'acteur avant de les appeler.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from heritage.domain.pagination import Page
from heritage.domain.workflow import PROFESSIONAL_TYPES, ValidationStatus

from .base_repository import BaseRepository, Where
from .models import User, utcnow


class UserRepository(BaseRepository[User]):
    """Accès aux comptes utilisateurs."""

    model = User
    searchable_fields = ("email", "first_name", "last_name", "organization")

    def find_by_email(self, email: str, *, session: Session | None = None) -> User | None:
        """Recherche exacte, insensible à la casse et aux espaces."""
        normalized = (email or "").strip().lower()
        if not normalized:
            return None
        return self.find_one({"email": normalized}, session=session)

    def find_pending_validation(self, page: Any = None, limit: Any = None) -> Page[User]:
        """Comptes en attente de validation, les plus anciens d'abord."""
        return self.find_all(
            {"validation_status": ValidationStatus.PENDING.value},
            order=("created_at",),
            page=page,
            limit=limit,
        )

    def find_active(self, page: Any = None, limit: Any = None) -> Page[User]:
        return self.find_all(
            {"is_active": True, "is_suspended": False}, page=page, limit=limit
        )

    def find_by_type(
        self, user_type: str, page: Any = None, limit: Any = None, where: Where = None
    ) -> Page[User]:
        criteria: list[Any] = [{"user_type": user_type}]
        if where is not None:
            criteria.append(where)
        return self.find_all(criteria, page=page, limit=limit)

    def find_validated_professionals(
        self, user_type: str | None = None, page: Any = None, limit: Any = None
    ) -> Page[User]:
        """Professionnels approuvés, actifs et non suspendus (optionnellement d'un seul type)."""
        types = [user_type] if user_type else sorted(t.value for t in PROFESSIONAL_TYPES)
        return self.find_all(
            {
                "validation_status": ValidationStatus.APPROVED.value,
                "user_type": types,
                "is_active": True,
                "is_suspended": False,
            },
            page=page,
            limit=limit,
        )

    def search_users(
        self, query: Any, page: Any = None, limit: Any = None, where: Where = None
    ) -> Page[User]:
        return self.search(query, page=page, limit=limit, where=where)

    def update_last_login(self, user_id: int, *, session: Session | None = None) -> User | None:
        return self.update(user_id, {"last_login_at": utcnow()}, session=session)

    # --- mutateurs de modération

    def mark_validated(
        self, user_id: int, validator_id: int, *, session: Session | None = None
    ) -> User | None:
        return self.update(
            user_id,
            {
                "validation_status": ValidationStatus.APPROVED.value,
                "validated_by": validator_id,
                "validated_at": utcnow(),
                "rejection_reason": None,
            },
            session=session,
        )

    def mark_rejected(
        self, user_id: int, validator_id: int, reason: str, *, session: Session | None = None
    ) -> User | None:
        return self.update(
            user_id,
            {
                "validation_status": ValidationStatus.REJECTED.value,
                "validated_by": validator_id,
                "validated_at": utcnow(),
                "rejection_reason": reason,
            },
            session=session,
        )

    def mark_suspended(
        self,
        user_id: int,
        admin_id: int,
        days: int,
        reason: str,
        *,
        session: Session | None = None,
    ) -> User | None:
        return self.update(
            user_id,
            {
                "is_suspended": True,
                "suspended_at": utcnow(),
                "suspension_days": days,
                "suspension_reason": reason,
                "suspended_by": admin_id,
            },
            session=session,
        )

    def mark_reactivated(
        self, user_id: int, admin_id: int, *, session: Session | None = None
    ) -> User | None:
        """Lève suspension et inactivité; l'historique de la suspension est effacé."""
        return self.update(
            user_id,
            {
                "is_suspended": False,
                "is_active": True,
                "suspended_at": None,
                "suspension_days": None,
                "suspension_reason": None,
                "suspended_by": None,
                "reactivated_at": utcnow(),
                "reactivated_by": admin_id,
            },
            session=session,
        )

    def get_stats(self, date_field: str = "created_at", *args: Any, **kwargs: Any) -> dict[str, Any]:
        """Statistiques temporelles complétées des compteurs de modération et de la répartition
        par type."""
        stats: dict[str, Any] = super().get_stats(date_field, *args, **kwargs)
        stats["pending"] = self.count({"validation_status": ValidationStatus.PENDING.value})
        stats["active"] = self.count({"is_active": True, "is_suspended": False})
        stats["suspended"] = self.count({"is_suspended": True})
        stmt = select(User.user_type, func.count()).group_by(User.user_type)
        with self._use(None) as s:
            stats["byType"] = {user_type: n for user_type, n in s.execute(stmt).all()}
        return stats
