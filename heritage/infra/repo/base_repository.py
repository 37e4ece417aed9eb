"""Dépôt générique SQLAlchemy: CRUD, pagination, recherche multilingue, statistiques, transactions.

Conventions
-----------
- Chaque méthode accepte un argument nommé `session`. Absent, la méthode ouvre sa propre
  transaction via `session_scope` (commit/rollback). Présent, elle s'exécute dans la transaction de
  l'appelant (voir `with_transaction`) et se contente d'un `flush`.
- Les filtres sont des descripteurs déclaratifs:
  `{"status": "published", "price": {"gte": 10}, "owner_id": [1, 2], "deleted_at": None}`.
  Des expressions SQLAlchemy peuvent être mêlées aux descripteurs dans une liste.
- Le tri accepte `"-created_at"`, `("price", "asc")` ou `("title", "asc", "ar")` (champ traduisible).
- Un champ, un opérateur ou une relation inconnus lèvent `StorageError(VALIDATION)`; les violations
  de contraintes lèvent `StorageError(UNIQUE | FOREIGN_KEY | VALIDATION)`.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Generic, TypeVar

from sqlalchemy import JSON, and_, delete, false, func, or_, select, update
from sqlalchemy.exc import DataError, IntegrityError
from sqlalchemy.orm import Session, selectinload, sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from heritage.core.logging import get_logger
from heritage.core.settings import Settings
from heritage.domain.pagination import Page, Pagination, clamp_limit, clamp_page
from heritage.domain.translatable import SUPPORTED_LANGUAGES, Translatable, resolve_language

from .db import session_scope
from .errors import classify, invalid_field
from .models import Base, utcnow
from .search import ESCAPE_CHAR, like_pattern, sanitize_search_query

ModelT = TypeVar("ModelT", bound=Base)
T = TypeVar("T")

Where = Mapping[str, Any] | ColumnElement | Sequence[Any] | None

_COMPARATORS: dict[str, Callable[[Any, Any], ColumnElement]] = {
    "eq": lambda col, v: col.is_(None) if v is None else col == v,
    "ne": lambda col, v: col.is_not(None) if v is None else col != v,
    "gt": lambda col, v: col > v,
    "gte": lambda col, v: col >= v,
    "lt": lambda col, v: col < v,
    "lte": lambda col, v: col <= v,
    "in": lambda col, v: col.in_(list(v)),
    "not_in": lambda col, v: col.not_in(list(v)),
    "is_null": lambda col, v: col.is_(None) if v else col.is_not(None),
}

log = get_logger(__name__)


class BaseRepository(Generic[ModelT]):
    """Accès générique à une table mappée.

    Les sous-classes fixent `model`, `searchable_fields` (champs sondés par défaut par `search`) et
    `default_order`.
    """

    model: type[ModelT]
    searchable_fields: tuple[str, ...] = ()
    default_order: tuple[Any, ...] | None = None

    def __init__(
        self,
        session_factory: sessionmaker,
        settings: Settings,
        model: type[ModelT] | None = None,
    ) -> None:
        self._factory = session_factory
        self._settings = settings
        if model is not None:
            self.model = model
        if not hasattr(self, "model"):
            raise TypeError(f"{type(self).__name__} requires a mapped model")

    # ------------------------------------------------------------------ transactions

    @contextmanager
    def _use(self, session: Session | None) -> Iterator[Session]:
        if session is not None:
            yield session
            return
        with session_scope(self._factory) as own:
            yield own

    def with_transaction(self, fn: Callable[[Session], T]) -> T:
        """Exécute `fn(session)` dans une transaction unique: tout ou rien."""
        try:
            with session_scope(self._factory) as session:
                return fn(session)
        except Exception as exc:
            log.warning(
                "transaction_rolled_back",
                model=self.model.__tablename__,
                error=type(exc).__name__,
            )
            raise

    def _write(self, session: Session | None, fn: Callable[[Session], T]) -> T:
        try:
            with self._use(session) as s:
                result = fn(s)
                s.flush()
                return result
        except (IntegrityError, DataError) as exc:
            raise classify(exc) from exc

    # ------------------------------------------------------------------ descripteurs

    def _column(self, name: str) -> Any:
        columns = self.model.__table__.columns
        if name not in columns:
            raise invalid_field(name, f"Unknown field '{name}' on {self.model.__tablename__}")
        return getattr(self.model, name)

    def _is_translatable(self, name: str) -> bool:
        return isinstance(self.model.__table__.columns[name].type, JSON)

    def _conditions(self, where: Where) -> list[ColumnElement]:
        if where is None:
            return []
        if isinstance(where, ColumnElement):
            return [where]
        if isinstance(where, Mapping):
            return [self._condition(name, value) for name, value in where.items()]
        conditions: list[ColumnElement] = []
        for item in where:
            conditions.extend(self._conditions(item))
        return conditions

    def _condition(self, name: str, value: Any) -> ColumnElement:
        column = self._column(name)
        if isinstance(value, Mapping):
            parts = []
            for op, operand in value.items():
                if op == "like":
                    pattern = like_pattern(
                        sanitize_search_query(operand, self._settings.SEARCH_MAX_LENGTH)
                    )
                    parts.append(column.like(pattern, escape=ESCAPE_CHAR))
                    continue
                comparator = _COMPARATORS.get(op)
                if comparator is None:
                    raise invalid_field(name, f"Unknown operator '{op}' for field '{name}'")
                parts.append(comparator(column, operand))
            return parts[0] if len(parts) == 1 else and_(*parts)
        if isinstance(value, list | tuple | set | frozenset):
            return column.in_(list(value)) if value else false()
        return _COMPARATORS["eq"](column, value)

    def _order(self, order: Iterable[Any] | None) -> list[Any]:
        if order is None:
            order = self.default_order or (
                ("-created_at",) if "created_at" in self.model.__table__.columns else ()
            )
        clauses: list[Any] = []
        for item in order:
            if isinstance(item, ColumnElement):
                clauses.append(item)
                continue
            lang = None
            if isinstance(item, str):
                name, direction = (item[1:], "desc") if item.startswith("-") else (item, "asc")
            else:
                name, direction, *rest = item
                lang = rest[0] if rest else None
            if direction not in ("asc", "desc"):
                raise invalid_field(name, f"Invalid sort direction '{direction}'")
            column = self._column(name)
            if self._is_translatable(name):
                column = column[resolve_language(lang, self._settings.DEFAULT_LANGUAGE)].as_string()
            clauses.append(column.desc() if direction == "desc" else column.asc())
        # départage stable pour une pagination déterministe
        clauses.append(self.model.__mapper__.primary_key[0].asc())
        return clauses

    def _loaders(self, include: Iterable[str] | None) -> list[Any]:
        loaders = []
        relationships = self.model.__mapper__.relationships
        for name in include or ():
            if name not in relationships:
                raise invalid_field(name, f"Unknown relation '{name}' on {self.model.__tablename__}")
            loaders.append(selectinload(getattr(self.model, name)))
        return loaders

    def _values(self, data: Mapping[str, Any]) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for name, value in data.items():
            self._column(name)
            values[name] = value.to_dict() if isinstance(value, Translatable) else value
        return values

    # ------------------------------------------------------------------ lecture

    def paginate(
        self,
        page: Any = None,
        limit: Any = None,
    ) -> tuple[int, int]:
        """Borne `page`/`limit` selon la configuration (défaut 1 / défaut configuré / plafond)."""
        return clamp_page(page), clamp_limit(
            limit,
            self._settings.PAGINATION_DEFAULT_LIMIT,
            self._settings.PAGINATION_MAX_LIMIT,
        )

    def find_all(
        self,
        where: Where = None,
        include: Iterable[str] | None = None,
        order: Iterable[Any] | None = None,
        page: Any = None,
        limit: Any = None,
        *,
        session: Session | None = None,
    ) -> Page[ModelT]:
        """Liste paginée; offset = (page - 1) * limit."""
        page_no, size = self.paginate(page, limit)
        conditions = self._conditions(where)
        stmt = (
            select(self.model)
            .where(*conditions)
            .order_by(*self._order(order))
            .options(*self._loaders(include))
        )
        with self._use(session) as s:
            total = s.execute(
                select(func.count()).select_from(self.model).where(*conditions)
            ).scalar_one()
            pagination = Pagination(page=page_no, limit=size, total=total)
            rows = s.execute(stmt.offset(pagination.offset).limit(size)).scalars().all()
        return Page(list(rows), pagination)

    def find_by_id(
        self,
        ident: Any,
        include: Iterable[str] | None = None,
        *,
        session: Session | None = None,
    ) -> ModelT | None:
        """Entité ou None (l'absence n'est pas une erreur à ce niveau)."""
        loaders = self._loaders(include)
        with self._use(session) as s:
            return s.get(self.model, ident, options=loaders)

    def find_one(
        self,
        where: Where,
        include: Iterable[str] | None = None,
        order: Iterable[Any] | None = None,
        *,
        session: Session | None = None,
    ) -> ModelT | None:
        stmt = (
            select(self.model)
            .where(*self._conditions(where))
            .order_by(*self._order(order))
            .options(*self._loaders(include))
            .limit(1)
        )
        with self._use(session) as s:
            return s.execute(stmt).scalars().first()

    def count(self, where: Where = None, *, session: Session | None = None) -> int:
        stmt = select(func.count()).select_from(self.model).where(*self._conditions(where))
        with self._use(session) as s:
            return int(s.execute(stmt).scalar_one())

    def exists(self, where: Where, *, session: Session | None = None) -> bool:
        stmt = select(self.model.__mapper__.primary_key[0]).where(*self._conditions(where)).limit(1)
        with self._use(session) as s:
            return s.execute(stmt).first() is not None

    # ------------------------------------------------------------------ écriture

    def create(self, data: Mapping[str, Any], *, session: Session | None = None) -> ModelT:
        """Insère une ligne; lève `StorageError` sur violation de contrainte."""
        values = self._values(data)

        def _create(s: Session) -> ModelT:
            entity = self.model(**values)
            s.add(entity)
            return entity

        return self._write(session, _create)

    def bulk_create(
        self, rows: Iterable[Mapping[str, Any]], *, session: Session | None = None
    ) -> list[ModelT]:
        """Insère un lot entier dans une même transaction (tout ou rien)."""
        entities = [self.model(**self._values(row)) for row in rows]

        def _create(s: Session) -> list[ModelT]:
            s.add_all(entities)
            return entities

        return self._write(session, _create)

    def update(
        self, ident: Any, data: Mapping[str, Any], *, session: Session | None = None
    ) -> ModelT | None:
        """Met à jour les champs fournis; None si l'entité n'existe pas."""
        values = self._values(data)

        def _update(s: Session) -> ModelT | None:
            entity = s.get(self.model, ident)
            if entity is None:
                return None
            for name, value in values.items():
                setattr(entity, name, value)
            return entity

        return self._write(session, _update)

    def update_many(
        self, where: Where, data: Mapping[str, Any], *, session: Session | None = None
    ) -> int:
        """Mise à jour ensembliste; retourne le nombre de lignes touchées."""
        values = self._values(data)
        stmt = (
            update(self.model)
            .where(*self._conditions(where))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return self._write(session, lambda s: s.execute(stmt).rowcount)

    def delete(self, ident: Any, *, session: Session | None = None) -> bool:
        """Supprime la ligne; True si elle existait (les jointures suivent par cascade)."""

        def _delete(s: Session) -> bool:
            entity = s.get(self.model, ident)
            if entity is None:
                return False
            s.delete(entity)
            return True

        return self._write(session, _delete)

    def delete_many(self, where: Where, *, session: Session | None = None) -> int:
        stmt = (
            delete(self.model)
            .where(*self._conditions(where))
            .execution_options(synchronize_session=False)
        )
        return self._write(session, lambda s: s.execute(stmt).rowcount)

    # ------------------------------------------------------------------ recherche

    def search_clause(self, query: Any, fields: Iterable[str] | None = None) -> ColumnElement | None:
        """Disjonction LIKE sur `fields`; les champs traduisibles sont sondés dans chaque langue.

        Retourne None si la requête assainie est vide.
        """
        sanitized = sanitize_search_query(query, self._settings.SEARCH_MAX_LENGTH)
        if not sanitized:
            return None
        pattern = like_pattern(sanitized)
        probes: list[ColumnElement] = []
        for name in fields or self.searchable_fields:
            column = self._column(name)
            if self._is_translatable(name):
                probes.extend(
                    column[lang].as_string().like(pattern, escape=ESCAPE_CHAR)
                    for lang in SUPPORTED_LANGUAGES
                )
            else:
                probes.append(column.like(pattern, escape=ESCAPE_CHAR))
        if not probes:
            raise invalid_field("fields", "No searchable field given")
        return or_(*probes)

    def search(
        self,
        query: Any,
        fields: Iterable[str] | None = None,
        page: Any = None,
        limit: Any = None,
        where: Where = None,
        include: Iterable[str] | None = None,
        order: Iterable[Any] | None = None,
        *,
        session: Session | None = None,
    ) -> Page[ModelT]:
        """Recherche de sous-chaîne littérale (requête échappée et plafonnée)."""
        clause = self.search_clause(query, fields)
        criteria = [where] if where is not None else []
        if clause is not None:
            criteria.append(clause)
        return self.find_all(criteria, include, order, page, limit, session=session)

    # ------------------------------------------------------------------ statistiques

    def get_stats(
        self,
        date_field: str = "created_at",
        where: Where = None,
        now: datetime | None = None,
        *,
        session: Session | None = None,
    ) -> dict[str, int]:
        """`{total, today, thisWeek, thisMonth}` par comptages bornés [début, maintenant]."""
        column = self._column(date_field)
        current = now or utcnow()
        day = current.replace(hour=0, minute=0, second=0, microsecond=0)
        week = day - timedelta(days=day.weekday())
        month = day.replace(day=1)
        base = self._conditions(where)
        with self._use(session) as s:

            def _count(*extra: ColumnElement) -> int:
                stmt = select(func.count()).select_from(self.model).where(*base, *extra)
                return int(s.execute(stmt).scalar_one())

            return {
                "total": _count(),
                "today": _count(column >= day, column <= current),
                "thisWeek": _count(column >= week, column <= current),
                "thisMonth": _count(column >= month, column <= current),
            }
