"""Dépôt des œuvres: requêtes par statut, propriétaire, type et catégorie; synchronisation des
associations catégories/tags.

Les œuvres au statut `deleted` (suppression logique) sont exclues des listes et recherches sauf
demande explicite (`include_deleted=True`, réservé aux vues d'administration).
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import delete, func, insert, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from heritage.domain.pagination import Page
from heritage.domain.workflow import OeuvreStatus

from .base_repository import BaseRepository, Where
from .errors import invalid_field
from .models import Category, Oeuvre, Tag, oeuvre_categories, oeuvre_tags

FULL_DETAILS = ("work_type", "owner", "validator", "categories", "tags")

# clé de tri publique -> colonne
SORT_FIELDS: dict[str, str] = {
    "recent": "created_at",
    "popular": "view_count",
    "title": "title",
    "year": "creation_year",
    "price": "price",
}

DEFAULT_HIGHLIGHT_LIMIT = 10


def _unique_ids(ids: Iterable[Any]) -> list[int]:
    seen: dict[int, None] = {}
    for raw in ids:
        seen.setdefault(int(raw), None)
    return list(seen)


def _range(filters: Mapping[str, Any], low: str, high: str) -> dict[str, Any]:
    bounds = {"gte": filters.get(low), "lte": filters.get(high)}
    return {op: value for op, value in bounds.items() if value is not None}


class OeuvreRepository(BaseRepository[Oeuvre]):
    """Accès aux œuvres et à leurs associations."""

    model = Oeuvre
    searchable_fields = ("title", "description", "summary", "publisher", "isbn")

    # --- visibilité

    @staticmethod
    def visible(include_deleted: bool = False) -> ColumnElement | None:
        """Critère excluant les œuvres supprimées logiquement (None si tout est visible)."""
        return None if include_deleted else Oeuvre.status != OeuvreStatus.DELETED.value

    def _scoped(self, where: Where, include_deleted: bool) -> list[Any]:
        criteria: list[Any] = []
        if where is not None:
            criteria.append(where)
        clause = self.visible(include_deleted)
        if clause is not None:
            criteria.append(clause)
        return criteria

    def find_visible(
        self,
        where: Where = None,
        order: Iterable[Any] | None = None,
        page: Any = None,
        limit: Any = None,
        include_deleted: bool = False,
    ) -> Page[Oeuvre]:
        return self.find_all(self._scoped(where, include_deleted), order=order, page=page, limit=limit)

    # --- requêtes de domaine

    def find_published(
        self, page: Any = None, limit: Any = None, order: Iterable[Any] | None = None
    ) -> Page[Oeuvre]:
        return self.find_all(
            {"status": OeuvreStatus.PUBLISHED.value}, order=order, page=page, limit=limit
        )

    def find_pending(self, page: Any = None, limit: Any = None) -> Page[Oeuvre]:
        """File de modération: les plus anciennes soumissions d'abord."""
        return self.find_all(
            {"status": OeuvreStatus.PENDING.value},
            order=("submitted_at", "created_at"),
            page=page,
            limit=limit,
        )

    def find_by_type(
        self,
        work_type_id: int,
        page: Any = None,
        limit: Any = None,
        published_only: bool = True,
    ) -> Page[Oeuvre]:
        where: dict[str, Any] = {"work_type_id": work_type_id}
        if published_only:
            where["status"] = OeuvreStatus.PUBLISHED.value
        return self.find_visible(where, page=page, limit=limit)

    def find_by_owner(
        self,
        owner_id: int,
        page: Any = None,
        limit: Any = None,
        status: str | None = None,
        include_deleted: bool = False,
    ) -> Page[Oeuvre]:
        where: dict[str, Any] = {"owner_id": owner_id}
        if status:
            where["status"] = status
        return self.find_visible(where, page=page, limit=limit, include_deleted=include_deleted)

    def find_by_category(
        self,
        category_id: int,
        page: Any = None,
        limit: Any = None,
        published_only: bool = True,
    ) -> Page[Oeuvre]:
        criteria: list[Any] = [Oeuvre.categories.any(Category.id == category_id)]
        if published_only:
            criteria.append({"status": OeuvreStatus.PUBLISHED.value})
        return self.find_visible(criteria, page=page, limit=limit)

    def search_oeuvres(
        self,
        query: Any,
        page: Any = None,
        limit: Any = None,
        where: Where = None,
        include_deleted: bool = False,
    ) -> Page[Oeuvre]:
        return self.search(
            query, page=page, limit=limit, where=self._scoped(where, include_deleted)
        )

    def search_advanced(
        self,
        filters: Mapping[str, Any],
        page: Any = None,
        limit: Any = None,
        include_deleted: bool = False,
    ) -> Page[Oeuvre]:
        """Recherche multicritère.

        Clés reconnues: `q`, `work_type_id`, `category_ids`, `tag_ids`, `owner_id`, `status`,
        `year_min`, `year_max`, `price_min`, `price_max`, `sort` (voir `SORT_FIELDS`), `direction`
        (`asc`/`desc`) et `lang` (langue de tri des champs traduisibles).
        """
        criteria: list[Any] = []
        where: dict[str, Any] = {}
        for key in ("work_type_id", "owner_id", "status"):
            if filters.get(key) is not None:
                where[key] = filters[key]
        year = _range(filters, "year_min", "year_max")
        if year:
            where["creation_year"] = year
        price = _range(filters, "price_min", "price_max")
        if price:
            where["price"] = price
        if where:
            criteria.append(where)
        if filters.get("category_ids"):
            criteria.append(Oeuvre.categories.any(Category.id.in_(filters["category_ids"])))
        if filters.get("tag_ids"):
            criteria.append(Oeuvre.tags.any(Tag.id.in_(filters["tag_ids"])))
        clause = self.search_clause(filters.get("q"))
        if clause is not None:
            criteria.append(clause)

        sort = filters.get("sort") or "recent"
        if sort not in SORT_FIELDS:
            raise invalid_field("sort", f"Unsupported sort '{sort}'")
        direction = filters.get("direction") or ("asc" if sort == "title" else "desc")
        order = [(SORT_FIELDS[sort], direction, filters.get("lang"))]
        return self.find_all(
            self._scoped(criteria, include_deleted), order=order, page=page, limit=limit
        )

    def find_with_full_details(
        self, oeuvre_id: int, *, session: Session | None = None
    ) -> Oeuvre | None:
        return self.find_by_id(oeuvre_id, include=FULL_DETAILS, session=session)

    def increment_views(self, oeuvre_id: int, *, session: Session | None = None) -> bool:
        """Incrément atomique côté base (pas de lecture-modification-écriture)."""
        touched = self.update_many(
            {"id": oeuvre_id},
            {"view_count": Oeuvre.view_count + 1, "updated_at": Oeuvre.updated_at},
            session=session,
        )
        return touched > 0

    def find_popular(self, limit: int = DEFAULT_HIGHLIGHT_LIMIT) -> list[Oeuvre]:
        return self.find_published(limit=limit, order=("-view_count",)).data

    def find_recent(self, limit: int = DEFAULT_HIGHLIGHT_LIMIT) -> list[Oeuvre]:
        return self.find_published(limit=limit, order=("-created_at",)).data

    def find_similar(self, oeuvre: Oeuvre, limit: int = DEFAULT_HIGHLIGHT_LIMIT) -> list[Oeuvre]:
        """Œuvres publiées du même type ou partageant une catégorie."""
        affinity: list[ColumnElement] = [Oeuvre.work_type_id == oeuvre.work_type_id]
        category_ids = [c.id for c in oeuvre.categories]
        if category_ids:
            affinity.append(Oeuvre.categories.any(Category.id.in_(category_ids)))
        page = self.find_all(
            [
                {"status": OeuvreStatus.PUBLISHED.value, "id": {"ne": oeuvre.id}},
                or_(*affinity),
            ],
            order=("-view_count",),
            limit=limit,
        )
        return page.data

    # --- associations (remplacement intégral)

    def _sync(
        self, table: Any, column: str, oeuvre_id: int, ids: Iterable[Any], session: Session | None
    ) -> list[int]:
        wanted = _unique_ids(ids)

        def _replace(s: Session) -> list[int]:
            s.execute(delete(table).where(table.c.oeuvre_id == oeuvre_id))
            if wanted:
                s.execute(insert(table), [{"oeuvre_id": oeuvre_id, column: i} for i in wanted])
            entity = s.identity_map.get(s.identity_key(Oeuvre, oeuvre_id))
            if entity is not None:
                s.expire(entity, ["categories", "tags"])
            return wanted

        return self._write(session, _replace)

    def sync_categories(
        self, oeuvre_id: int, category_ids: Iterable[Any], *, session: Session | None = None
    ) -> list[int]:
        """Remplace l'ensemble des catégories de l'œuvre par `category_ids`."""
        return self._sync(oeuvre_categories, "category_id", oeuvre_id, category_ids, session)

    def sync_tags(
        self, oeuvre_id: int, tag_ids: Iterable[Any], *, session: Session | None = None
    ) -> list[int]:
        """Remplace l'ensemble des tags de l'œuvre par `tag_ids`."""
        return self._sync(oeuvre_tags, "tag_id", oeuvre_id, tag_ids, session)

    def category_ids(self, oeuvre_id: int) -> list[int]:
        stmt = (
            select(oeuvre_categories.c.category_id)
            .where(oeuvre_categories.c.oeuvre_id == oeuvre_id)
            .order_by(oeuvre_categories.c.category_id)
        )
        with self._use(None) as s:
            return list(s.execute(stmt).scalars())

    def get_stats(self, date_field: str = "created_at", *args: Any, **kwargs: Any) -> dict[str, Any]:
        """Statistiques temporelles, répartition par statut et par type d'œuvre."""
        stats: dict[str, Any] = super().get_stats(date_field, *args, **kwargs)
        with self._use(None) as s:
            by_status = dict(
                s.execute(select(Oeuvre.status, func.count()).group_by(Oeuvre.status)).all()
            )
            by_type = dict(
                s.execute(
                    select(Oeuvre.work_type_id, func.count()).group_by(Oeuvre.work_type_id)
                ).all()
            )
        stats["byStatus"] = {status.value: by_status.get(status.value, 0) for status in OeuvreStatus}
        stats["byType"] = by_type
        return stats
