"""
Service des œuvres: création, lecture, listes, recherche et cycle de modération.

Cycle de publication
--------------------
draft -> pending -> {published | rejected}; published -> archived; tout état non supprimé ->
deleted (suppression logique par statut). La suppression physique (`purge`) est une opération
d'administration distincte.

Chaque méthode d'écriture: recherche l'entité (NOT_FOUND), vérifie l'acteur (UNAUTHORIZED /
FORBIDDEN), applique la garde de transition (CONFLICT) puis délègue la mutation au dépôt. Aucune
écriture n'a lieu si une garde échoue.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy.orm import Session

from heritage.core.settings import Settings
from heritage.domain.dto.common import clean_string, to_float, to_id_list, to_int
from heritage.domain.dto.oeuvre import (
    OeuvreCreate,
    OeuvreUpdate,
    oeuvre_admin,
    oeuvre_create_from_request,
    oeuvre_list_item,
    oeuvre_public,
    oeuvre_update_from_request,
)
from heritage.domain.errors import FieldError, conflict, forbidden, not_found, validation_error
from heritage.domain.workflow import (
    OeuvreStatus,
    ValidationStatus,
    ensure_transition,
    is_professional,
    require_reason,
)
from heritage.infra.repo.base_repository import BaseRepository
from heritage.infra.repo.errors import StorageError
from heritage.infra.repo.models import Oeuvre, User, WorkType, utcnow
from heritage.infra.repo.oeuvre_repository import DEFAULT_HIGHLIGHT_LIMIT, OeuvreRepository
from heritage.infra.repo.user_repository import UserRepository

from .base import BaseService

_INT_FILTERS = ("work_type_id", "owner_id", "year_min", "year_max")
_FLOAT_FILTERS = ("price_min", "price_max")
_ID_LIST_FILTERS = ("category_ids", "tag_ids")


def advanced_filters(filters: Mapping[str, Any]) -> dict[str, Any]:
    """Coerce les critères de recherche avancée reçus en texte; les critères vides sont omis."""
    criteria: dict[str, Any] = {}
    for key, raw in filters.items():
        if key in _INT_FILTERS:
            value = to_int(raw)
        elif key in _FLOAT_FILTERS:
            value = to_float(raw)
        elif key in _ID_LIST_FILTERS:
            value = to_id_list(raw)
        else:
            value = clean_string(raw)
        if value is not None and value != []:
            criteria[key] = value
    return criteria


class OeuvreService(BaseService):
    """Orchestration des œuvres (DTO -> dépôt -> transitions)."""

    resource = "Oeuvre"

    def __init__(
        self,
        settings: Settings,
        oeuvres: OeuvreRepository,
        users: UserRepository,
        work_types: BaseRepository[WorkType],
    ) -> None:
        super().__init__(settings, users)
        self.oeuvres = oeuvres
        self.work_types = work_types

    # ------------------------------------------------------------------ helpers

    def _load(self, oeuvre_id: Any) -> Oeuvre:
        ident = to_int(oeuvre_id)
        oeuvre = self.oeuvres.find_with_full_details(ident) if ident is not None else None
        return self._require(oeuvre, oeuvre_id)

    @staticmethod
    def _is_owner(actor: User, oeuvre: Oeuvre) -> bool:
        return oeuvre.owner_id == actor.id

    def _owner_or_admin(self, actor: User, oeuvre: Oeuvre) -> None:
        if not (actor.is_admin or self._is_owner(actor, oeuvre)):
            raise forbidden("Only the owner or an administrator may modify this work")

    def _check_work_type(self, work_type_id: int | None) -> None:
        if work_type_id and not self.work_types.exists({"id": work_type_id}):
            raise validation_error(
                "Unknown work type", [FieldError("work_type_id", "work type does not exist")]
            )

    def _can_see(self, actor: User | None, oeuvre: Oeuvre) -> bool:
        if actor is not None and actor.is_admin:
            return True
        if oeuvre.status == OeuvreStatus.DELETED.value:
            return False
        if oeuvre.status == OeuvreStatus.PUBLISHED.value:
            return True
        return actor is not None and self._is_owner(actor, oeuvre)

    def _shape(self, actor: User | None, oeuvre: Oeuvre, lang: str, full: bool) -> dict[str, Any]:
        if actor is not None and (actor.is_admin or self._is_owner(actor, oeuvre)):
            return oeuvre_admin(oeuvre, lang, full)
        return oeuvre_public(oeuvre, lang, full)

    def _sync_associations(
        self,
        session: Session,
        oeuvre_id: int,
        category_ids: list[int] | None,
        tag_ids: list[int] | None,
    ) -> None:
        """Remplacement intégral des associations fournies (None = inchangé)."""
        for name, ids, sync in (
            ("categories", category_ids, self.oeuvres.sync_categories),
            ("tags", tag_ids, self.oeuvres.sync_tags),
        ):
            if ids is None:
                continue
            try:
                sync(oeuvre_id, ids, session=session)
            except StorageError as exc:
                raise StorageError(exc.kind, exc.message, exc.field or name) from exc

    def _transition(
        self,
        oeuvre: Oeuvre,
        target: OeuvreStatus,
        values: Mapping[str, Any],
        event: str,
        actor: User,
        lang: str,
    ) -> dict[str, Any]:
        ensure_transition(oeuvre.status, target)
        with self._storage(event):
            self.oeuvres.update(oeuvre.id, {"status": target.value, **values})
        self.log.info(
            event,
            oeuvre_id=oeuvre.id,
            actor_id=actor.id,
            from_status=oeuvre.status,
            to_status=target.value,
        )
        return oeuvre_admin(self._load(oeuvre.id), lang)

    # ------------------------------------------------------------------ création / lecture

    def create(
        self, body: Mapping[str, Any], actor_id: Any, lang: str | None = None
    ) -> dict[str, Any]:
        """Crée une œuvre en brouillon avec ses associations, en une seule transaction."""
        actor = self._actor(actor_id)
        if not actor.is_admin and not (
            is_professional(actor.user_type)
            and actor.validation_status == ValidationStatus.APPROVED.value
        ):
            raise forbidden("Only validated professionals may create works")
        code = self._lang(lang)
        dto: OeuvreCreate = oeuvre_create_from_request(body, owner_id=actor.id, lang=code)
        self._ensure_valid(dto.validate())
        self._check_work_type(dto.work_type_id)

        def _create(session: Session) -> int:
            oeuvre = self.oeuvres.create(dto.to_entity(), session=session)
            self._sync_associations(session, oeuvre.id, dto.category_ids, dto.tag_ids)
            return oeuvre.id

        with self._storage("create"):
            oeuvre_id = self.oeuvres.with_transaction(_create)
        self.log.info(
            "oeuvre_created",
            oeuvre_id=oeuvre_id,
            owner_id=actor.id,
            categories=len(dto.category_ids),
            tags=len(dto.tag_ids),
        )
        return oeuvre_admin(self._load(oeuvre_id), code)

    def get(
        self,
        oeuvre_id: Any,
        actor_id: Any = None,
        lang: str | None = None,
        full: bool = False,
    ) -> dict[str, Any]:
        """Lecture d'une œuvre; une œuvre non visible pour l'acteur est signalée absente."""
        actor = self._optional_actor(actor_id)
        oeuvre = self._load(oeuvre_id)
        if not self._can_see(actor, oeuvre):
            raise not_found(self.resource, oeuvre_id)
        return self._shape(actor, oeuvre, self._lang(lang), full)

    def get_details(
        self,
        oeuvre_id: Any,
        actor_id: Any = None,
        lang: str | None = None,
        full: bool = False,
    ) -> dict[str, Any]:
        """Comme `get`, et comptabilise une vue pour les œuvres publiées."""
        actor = self._optional_actor(actor_id)
        oeuvre = self._load(oeuvre_id)
        if not self._can_see(actor, oeuvre):
            raise not_found(self.resource, oeuvre_id)
        if oeuvre.status == OeuvreStatus.PUBLISHED.value:
            with self._storage("increment_views"):
                self.oeuvres.increment_views(oeuvre.id)
            oeuvre = self._load(oeuvre.id)
        return self._shape(actor, oeuvre, self._lang(lang), full)

    # ------------------------------------------------------------------ listes

    def list_published(
        self,
        page: Any = None,
        limit: Any = None,
        lang: str | None = None,
        full: bool = False,
        order: Any = None,
    ) -> dict[str, Any]:
        code = self._lang(lang)
        with self._storage("list_published"):
            result = self.oeuvres.find_published(page, limit, order=self._order(order))
        return result.map(lambda o: oeuvre_list_item(o, code, full)).to_dict()

    def list_all(
        self,
        actor_id: Any,
        where: Mapping[str, Any] | None = None,
        page: Any = None,
        limit: Any = None,
        include_deleted: bool = False,
        order: Any = None,
        lang: str | None = None,
    ) -> dict[str, Any]:
        """Vue d'administration: filtres libres, œuvres supprimées visibles sur demande."""
        self._admin(actor_id)
        code = self._lang(lang)
        with self._storage("list_all"):
            result = self.oeuvres.find_visible(
                where, self._order(order), page, limit, include_deleted
            )
        return result.map(lambda o: oeuvre_admin(o, code)).to_dict()

    def list_pending(
        self, actor_id: Any, page: Any = None, limit: Any = None, lang: str | None = None
    ) -> dict[str, Any]:
        self._admin(actor_id)
        code = self._lang(lang)
        with self._storage("list_pending"):
            result = self.oeuvres.find_pending(page, limit)
        return result.map(lambda o: oeuvre_admin(o, code)).to_dict()

    def list_by_owner(
        self,
        owner_id: Any,
        actor_id: Any = None,
        page: Any = None,
        limit: Any = None,
        status: str | None = None,
        lang: str | None = None,
    ) -> dict[str, Any]:
        """Œuvres d'un propriétaire: tous statuts pour lui-même ou un administrateur, publiées
        seulement pour les autres."""
        actor = self._optional_actor(actor_id)
        code = self._lang(lang)
        owner = to_int(owner_id)
        privileged = actor is not None and (actor.is_admin or actor.id == owner)
        if not privileged:
            status = OeuvreStatus.PUBLISHED.value
        include_deleted = actor is not None and actor.is_admin
        with self._storage("list_by_owner"):
            result = self.oeuvres.find_by_owner(
                owner, page, limit, status=status, include_deleted=include_deleted
            )
        return result.map(lambda o: oeuvre_list_item(o, code)).to_dict()

    def list_by_type(
        self, work_type_id: Any, page: Any = None, limit: Any = None, lang: str | None = None
    ) -> dict[str, Any]:
        code = self._lang(lang)
        with self._storage("list_by_type"):
            result = self.oeuvres.find_by_type(to_int(work_type_id), page, limit)
        return result.map(lambda o: oeuvre_list_item(o, code)).to_dict()

    def list_by_category(
        self, category_id: Any, page: Any = None, limit: Any = None, lang: str | None = None
    ) -> dict[str, Any]:
        code = self._lang(lang)
        with self._storage("list_by_category"):
            result = self.oeuvres.find_by_category(to_int(category_id), page, limit)
        return result.map(lambda o: oeuvre_list_item(o, code)).to_dict()

    def search(
        self,
        query: Any,
        page: Any = None,
        limit: Any = None,
        lang: str | None = None,
        full: bool = False,
    ) -> dict[str, Any]:
        """Recherche publique (œuvres publiées) dans toutes les langues des champs traduisibles."""
        code = self._lang(lang)
        with self._storage("search"):
            result = self.oeuvres.search_oeuvres(
                query, page, limit, where={"status": OeuvreStatus.PUBLISHED.value}
            )
        return result.map(lambda o: oeuvre_list_item(o, code, full)).to_dict()

    def search_advanced(
        self,
        filters: Mapping[str, Any],
        actor_id: Any = None,
        page: Any = None,
        limit: Any = None,
        lang: str | None = None,
    ) -> dict[str, Any]:
        """Recherche multicritère; seuls les administrateurs peuvent filtrer sur un autre statut
        que `published`."""
        actor = self._optional_actor(actor_id)
        code = self._lang(lang)
        criteria = advanced_filters(filters)
        if actor is None or not actor.is_admin:
            criteria["status"] = OeuvreStatus.PUBLISHED.value
        criteria.setdefault("lang", code)
        with self._storage("search_advanced"):
            result = self.oeuvres.search_advanced(criteria, page, limit)
        return result.map(lambda o: oeuvre_list_item(o, code)).to_dict()

    def popular(self, limit: int = DEFAULT_HIGHLIGHT_LIMIT, lang: str | None = None) -> list[dict]:
        code = self._lang(lang)
        with self._storage("popular"):
            rows = self.oeuvres.find_popular(limit)
        return [oeuvre_list_item(o, code) for o in rows]

    def recent(self, limit: int = DEFAULT_HIGHLIGHT_LIMIT, lang: str | None = None) -> list[dict]:
        code = self._lang(lang)
        with self._storage("recent"):
            rows = self.oeuvres.find_recent(limit)
        return [oeuvre_list_item(o, code) for o in rows]

    def similar(
        self, oeuvre_id: Any, limit: int = DEFAULT_HIGHLIGHT_LIMIT, lang: str | None = None
    ) -> list[dict]:
        code = self._lang(lang)
        oeuvre = self._load(oeuvre_id)
        with self._storage("similar"):
            rows = self.oeuvres.find_similar(oeuvre, limit)
        return [oeuvre_list_item(o, code) for o in rows]

    def get_stats(self, actor_id: Any) -> dict[str, Any]:
        self._admin(actor_id)
        with self._storage("get_stats"):
            return self.oeuvres.get_stats()

    # ------------------------------------------------------------------ écritures

    def update(
        self,
        oeuvre_id: Any,
        body: Mapping[str, Any],
        actor_id: Any,
        lang: str | None = None,
    ) -> dict[str, Any]:
        """Mise à jour partielle; champs et associations sont écrits dans une même transaction.

        Les associations fournies remplacent intégralement les existantes. Si la synchronisation
        échoue, la mise à jour des champs est annulée.
        """
        actor = self._actor(actor_id)
        oeuvre = self._load(oeuvre_id)
        self._owner_or_admin(actor, oeuvre)
        if oeuvre.status == OeuvreStatus.DELETED.value:
            raise conflict(
                "A deleted work cannot be modified", [FieldError("status", "work is deleted")]
            )
        code = self._lang(lang)
        dto: OeuvreUpdate = oeuvre_update_from_request(body, lang=code)
        self._ensure_valid(dto.validate())
        if not dto.has_changes():
            raise validation_error("No changes provided")
        if dto.touches_moderation() and not actor.is_admin:
            raise forbidden("Only an administrator may change featuring")
        if dto.has_field("work_type_id"):
            self._check_work_type(dto.get("work_type_id"))
        values = dto.merge_with_existing(oeuvre)

        def _update(session: Session) -> None:
            if values:
                self.oeuvres.update(oeuvre.id, values, session=session)
            self._sync_associations(session, oeuvre.id, dto.category_ids(), dto.tag_ids())

        with self._storage("update"):
            self.oeuvres.with_transaction(_update)
        self.log.info(
            "oeuvre_updated", oeuvre_id=oeuvre.id, actor_id=actor.id, fields=dto.changes.names()
        )
        return oeuvre_admin(self._load(oeuvre.id), code)

    def submit(self, oeuvre_id: Any, actor_id: Any, lang: str | None = None) -> dict[str, Any]:
        """Soumet un brouillon à la modération (propriétaire uniquement)."""
        actor = self._actor(actor_id)
        oeuvre = self._load(oeuvre_id)
        if not self._is_owner(actor, oeuvre):
            raise forbidden("Only the owner may submit this work")
        return self._transition(
            oeuvre,
            OeuvreStatus.PENDING,
            {"submitted_at": utcnow()},
            "oeuvre_submitted",
            actor,
            self._lang(lang),
        )

    def approve(self, oeuvre_id: Any, validator_id: Any, lang: str | None = None) -> dict[str, Any]:
        validator = self._admin(validator_id)
        oeuvre = self._load(oeuvre_id)
        return self._transition(
            oeuvre,
            OeuvreStatus.PUBLISHED,
            {"validator_id": validator.id, "validated_at": utcnow(), "rejection_reason": None},
            "oeuvre_approved",
            validator,
            self._lang(lang),
        )

    def reject(
        self, oeuvre_id: Any, validator_id: Any, reason: str | None, lang: str | None = None
    ) -> dict[str, Any]:
        """Refus motivé d'une œuvre en attente (motif obligatoire)."""
        validator = self._admin(validator_id)
        oeuvre = self._load(oeuvre_id)
        cleaned = require_reason(reason)
        return self._transition(
            oeuvre,
            OeuvreStatus.REJECTED,
            {"validator_id": validator.id, "validated_at": utcnow(), "rejection_reason": cleaned},
            "oeuvre_rejected",
            validator,
            self._lang(lang),
        )

    def archive(self, oeuvre_id: Any, actor_id: Any, lang: str | None = None) -> dict[str, Any]:
        actor = self._actor(actor_id)
        oeuvre = self._load(oeuvre_id)
        self._owner_or_admin(actor, oeuvre)
        return self._transition(
            oeuvre, OeuvreStatus.ARCHIVED, {}, "oeuvre_archived", actor, self._lang(lang)
        )

    def delete(self, oeuvre_id: Any, actor_id: Any) -> bool:
        """Suppression logique (statut `deleted`); les associations sont conservées."""
        actor = self._actor(actor_id)
        oeuvre = self._load(oeuvre_id)
        self._owner_or_admin(actor, oeuvre)
        self._transition(
            oeuvre,
            OeuvreStatus.DELETED,
            {"deleted_at": utcnow(), "is_featured": False},
            "oeuvre_deleted",
            actor,
            self.settings.DEFAULT_LANGUAGE,
        )
        return True

    def set_featured(
        self, oeuvre_id: Any, actor_id: Any, featured: bool = True, lang: str | None = None
    ) -> dict[str, Any]:
        """Mise en avant (administrateur, œuvres publiées uniquement)."""
        admin = self._admin(actor_id)
        oeuvre = self._load(oeuvre_id)
        if featured and oeuvre.status != OeuvreStatus.PUBLISHED.value:
            raise conflict(
                "Only published works can be featured",
                [FieldError("status", f"current status is '{oeuvre.status}'")],
            )
        with self._storage("set_featured"):
            self.oeuvres.update(oeuvre.id, {"is_featured": bool(featured)})
        self.log.info("oeuvre_featured", oeuvre_id=oeuvre.id, actor_id=admin.id, featured=featured)
        return oeuvre_admin(self._load(oeuvre.id), self._lang(lang))

    def purge(self, oeuvre_id: Any, actor_id: Any) -> bool:
        """Suppression physique (administrateur); les jointures partent en cascade."""
        admin = self._admin(actor_id)
        oeuvre = self._load(oeuvre_id)
        with self._storage("purge"):
            removed = self.oeuvres.delete(oeuvre.id)
        self.log.info("oeuvre_purged", oeuvre_id=oeuvre.id, actor_id=admin.id)
        return removed
