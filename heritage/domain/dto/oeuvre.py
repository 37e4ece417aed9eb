"""
DTOs des œuvres.

Entrée
------
- `OeuvreCreate` / `oeuvre_create_from_request`: création (tous les champs connus sont coercés).
- `OeuvreUpdate` / `oeuvre_update_from_request`: mise à jour partielle; seuls les champs présents
  dans la charge utile sont suivis (absent et None sont distingués).

Sortie
------
- `oeuvre_public`: forme publique (aucun champ d'audit);
- `oeuvre_admin`: forme d'administration (statut, modération, audit);
- `oeuvre_list_item`: forme minimale pour les listes.

Les champs traduisibles sont résolus dans la langue demandée, sauf en mode `full` où la carte
complète `{langue: texte}` est conservée.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from urllib.parse import urlparse

from heritage.domain import translatable
from heritage.domain.translatable import LANG_AR, LANG_FR, PRIMARY_LANGUAGE, Translatable
from heritage.domain.workflow import OeuvreStatus

from .common import (
    MISSING,
    AliasTable,
    FieldSet,
    ValidationResult,
    clean_string,
    iso,
    resolve_aliases,
    to_bool,
    to_float,
    to_id_list,
    to_int,
)

MIN_CREATION_YEAR = 1800
LIST_DESCRIPTION_LENGTH = 200
DEFAULT_CURRENCY = "DZD"
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")
UPLOADS_PREFIX = "/uploads/"

# nom canonique -> alias acceptés (la forme camelCase est toujours acceptée)
OEUVRE_ALIASES: AliasTable = {
    "title": ("titre",),
    "description": (),
    "summary": ("resume",),
    "work_type_id": ("id_type_oeuvre", "idTypeOeuvre", "type_id"),
    "owner_id": ("id_createur", "idCreateur"),
    "creation_year": ("annee_creation", "anneeCreation", "year"),
    "isbn": (),
    "publisher": ("editeur",),
    "pages": (),
    "duration": ("duree",),
    "price": ("prix",),
    "currency": ("devise",),
    "image_url": (),
    "cover_url": (),
    "status": ("statut",),
    "is_featured": ("est_mis_en_avant", "estMisEnAvant", "featured"),
    "categories": ("category_ids", "categoryIds"),
    "tags": ("tag_ids", "tagIds"),
}

TRANSLATABLE_FIELDS = ("title", "description", "summary")
ASSOCIATION_FIELDS = ("categories", "tags")


def _coerce(name: str, raw: Any, lang: str) -> Any:
    if name in TRANSLATABLE_FIELDS:
        return translatable.normalize(raw, lang)
    if name in ("work_type_id", "owner_id", "creation_year", "pages", "duration"):
        return to_int(raw)
    if name == "price":
        return to_float(raw)
    if name == "is_featured":
        return to_bool(raw)
    if name in ASSOCIATION_FIELDS:
        return to_id_list(raw)
    if name == "currency":
        return (clean_string(raw) or DEFAULT_CURRENCY).upper()
    return clean_string(raw)


# --- règles de validation partagées création / mise à jour


def _has_title(title: Translatable) -> bool:
    return bool(title.get(LANG_FR) or title.get(LANG_AR))


def _valid_isbn(isbn: str) -> bool:
    digits = isbn.replace("-", "").replace(" ", "")
    return digits.isdigit() and len(digits) in (10, 13)


def _valid_image_url(url: str) -> bool:
    if url.startswith(UPLOADS_PREFIX):
        return url.lower().endswith(IMAGE_EXTENSIONS)
    parsed = urlparse(url)
    return parsed.scheme == "https" and bool(parsed.netloc)


def _check_details(values: Mapping[str, Any], result: ValidationResult) -> None:
    """Règles des champs optionnels, appliquées seulement s'ils sont renseignés."""
    max_year = datetime.now().year + 1
    year = values.get("creation_year")
    if year is not None and not MIN_CREATION_YEAR <= year <= max_year:
        result.add("creation_year", f"Year must be between {MIN_CREATION_YEAR} and {max_year}")
    isbn = values.get("isbn")
    if isbn and not _valid_isbn(isbn):
        result.add("isbn", "ISBN must contain 10 or 13 digits")
    price = values.get("price")
    if price is not None and price < 0:
        result.add("price", "Price cannot be negative")
    for name in ("pages", "duration"):
        number = values.get(name)
        if number is not None and number < 0:
            result.add(name, "Must be a positive number")
    for name in ("image_url", "cover_url"):
        url = values.get(name)
        if url and not _valid_image_url(url):
            result.add(name, "Invalid image URL (https or /uploads/ image expected)")


@dataclass
class OeuvreCreate:
    """Charge utile de création d'une œuvre."""

    title: Translatable
    description: Translatable
    summary: Translatable
    work_type_id: int | None
    owner_id: int | None
    creation_year: int | None = None
    isbn: str | None = None
    publisher: str | None = None
    pages: int | None = None
    duration: int | None = None
    price: float | None = None
    currency: str = DEFAULT_CURRENCY
    image_url: str | None = None
    cover_url: str | None = None
    category_ids: list[int] = field(default_factory=list)
    tag_ids: list[int] = field(default_factory=list)

    def validate(self) -> ValidationResult:
        result = ValidationResult()
        if not _has_title(self.title):
            result.add("title", "Title is required (at least in French or Arabic)")
        if not (self.description.get(LANG_FR) or self.description.get(LANG_AR)):
            result.add("description", "Description is required (at least in French or Arabic)")
        if not self.work_type_id or self.work_type_id <= 0:
            result.add("work_type_id", "Work type is required")
        if not self.owner_id or self.owner_id <= 0:
            result.add("owner_id", "Owner is required")
        _check_details(self.__dict__, result)
        return result

    def to_entity(self) -> dict[str, Any]:
        """Colonnes à insérer; une nouvelle œuvre commence toujours en brouillon."""
        return {
            "title": self.title,
            "description": self.description,
            "summary": self.summary,
            "work_type_id": self.work_type_id,
            "owner_id": self.owner_id,
            "creation_year": self.creation_year,
            "isbn": self.isbn,
            "publisher": self.publisher,
            "pages": self.pages,
            "duration": self.duration,
            "price": self.price,
            "currency": self.currency,
            "image_url": self.image_url,
            "cover_url": self.cover_url,
            "status": OeuvreStatus.DRAFT.value,
        }


def oeuvre_create_from_request(
    body: Mapping[str, Any] | None,
    owner_id: int | None = None,
    lang: str = PRIMARY_LANGUAGE,
) -> OeuvreCreate:
    """Construit le DTO de création; `owner_id` (acteur authentifié) prime sur le corps."""
    raw = resolve_aliases(body, OEUVRE_ALIASES)
    values = {name: _coerce(name, value, lang) for name, value in raw.items()}
    return OeuvreCreate(
        title=values.get("title", translatable.EMPTY),
        description=values.get("description", translatable.EMPTY),
        summary=values.get("summary", translatable.EMPTY),
        work_type_id=values.get("work_type_id"),
        owner_id=owner_id if owner_id is not None else values.get("owner_id"),
        creation_year=values.get("creation_year"),
        isbn=values.get("isbn"),
        publisher=values.get("publisher"),
        pages=values.get("pages"),
        duration=values.get("duration"),
        price=values.get("price"),
        currency=values.get("currency") or DEFAULT_CURRENCY,
        image_url=values.get("image_url"),
        cover_url=values.get("cover_url"),
        category_ids=values.get("categories", []),
        tag_ids=values.get("tags", []),
    )


@dataclass
class OeuvreUpdate:
    """Mise à jour partielle: seuls les champs de `changes` seront écrits."""

    changes: FieldSet

    def has_changes(self) -> bool:
        return bool(self.changes)

    def has_field(self, name: str) -> bool:
        return name in self.changes

    def get(self, name: str, default: Any = None) -> Any:
        value = self.changes.get(name)
        return default if value is MISSING else value

    def category_ids(self) -> list[int] | None:
        """Nouvel ensemble de catégories, ou None si la charge utile n'en parle pas."""
        return self.changes.get("categories") if "categories" in self.changes else None

    def tag_ids(self) -> list[int] | None:
        return self.changes.get("tags") if "tags" in self.changes else None

    def touches_moderation(self) -> bool:
        """Vrai si la charge utile modifie un champ réservé à l'administration."""
        return "is_featured" in self.changes

    def validate(self) -> ValidationResult:
        result = ValidationResult()
        if "title" in self.changes and not _has_title(self.changes.get("title")):
            result.add("title", "Title cannot be empty")
        if "work_type_id" in self.changes:
            type_id = self.changes.get("work_type_id")
            if not type_id or type_id <= 0:
                result.add("work_type_id", "Invalid work type")
        if "status" in self.changes:
            # le statut ne change que par submit, approve, reject, archive ou delete
            result.add("status", "Status is changed through the moderation workflow only")
        _check_details(self.changes.values, result)
        return result

    def to_entity(self) -> dict[str, Any]:
        """Colonnes à écrire, associations exclues."""
        values = self.changes.without(*ASSOCIATION_FIELDS)
        if "currency" in values and not values["currency"]:
            values["currency"] = DEFAULT_CURRENCY
        return values

    def merge_with_existing(self, existing: Any) -> dict[str, Any]:
        """Comme `to_entity`, mais les champs traduisibles sont fusionnés langue par langue avec
        les valeurs actuelles de l'entité (les langues non fournies restent intactes)."""
        values = self.to_entity()
        for name in TRANSLATABLE_FIELDS:
            if name in values:
                values[name] = translatable.merge(getattr(existing, name, None), values[name])
        return values


def oeuvre_update_from_request(
    body: Mapping[str, Any] | None, lang: str = PRIMARY_LANGUAGE
) -> OeuvreUpdate:
    raw = resolve_aliases(body, OEUVRE_ALIASES)
    raw.pop("owner_id", None)
    return OeuvreUpdate(FieldSet({name: _coerce(name, value, lang) for name, value in raw.items()}))


# --- sortie


def _text(value: Any, lang: str, full: bool) -> Any:
    return translatable.normalize(value).to_dict() if full else translatable.extract(value, lang)


def _work_type(entity: Any, lang: str, full: bool) -> dict[str, Any] | None:
    work_type = entity.work_type
    if work_type is None:
        return None
    return {"id": work_type.id, "code": work_type.code, "name": _text(work_type.name, lang, full)}


def _owner(entity: Any, lang: str, full: bool) -> dict[str, Any] | None:
    owner = entity.owner
    if owner is None:
        return None
    return {
        "id": owner.id,
        "firstName": _text(owner.first_name, lang, full),
        "lastName": _text(owner.last_name, lang, full),
        "photoUrl": owner.photo_url,
    }


def oeuvre_public(entity: Any, lang: str = PRIMARY_LANGUAGE, full: bool = False) -> dict[str, Any]:
    """Forme publique détaillée."""
    return {
        "id": entity.id,
        "title": _text(entity.title, lang, full),
        "description": _text(entity.description, lang, full),
        "summary": _text(entity.summary, lang, full),
        "workType": _work_type(entity, lang, full),
        "owner": _owner(entity, lang, full),
        "creationYear": entity.creation_year,
        "isbn": entity.isbn,
        "publisher": entity.publisher,
        "pages": entity.pages,
        "duration": entity.duration,
        "price": entity.price,
        "currency": entity.currency,
        "imageUrl": entity.image_url,
        "coverUrl": entity.cover_url,
        "status": entity.status,
        "isFeatured": bool(entity.is_featured),
        "viewCount": entity.view_count or 0,
        "categories": [
            {"id": c.id, "code": c.code, "name": _text(c.name, lang, full)}
            for c in entity.categories
        ],
        "tags": [{"id": t.id, "name": _text(t.name, lang, full)} for t in entity.tags],
        "createdAt": iso(entity.created_at),
        "updatedAt": iso(entity.updated_at),
    }


def oeuvre_admin(entity: Any, lang: str = PRIMARY_LANGUAGE, full: bool = False) -> dict[str, Any]:
    """Forme publique enrichie des champs de modération et d'audit."""
    data = oeuvre_public(entity, lang, full)
    data.update(
        {
            "workTypeId": entity.work_type_id,
            "ownerId": entity.owner_id,
            "validatorId": entity.validator_id,
            "submittedAt": iso(entity.submitted_at),
            "validatedAt": iso(entity.validated_at),
            "rejectionReason": entity.rejection_reason,
            "deletedAt": iso(entity.deleted_at),
            "translationStatus": {
                name: translatable.translation_status(getattr(entity, name))
                for name in TRANSLATABLE_FIELDS
            },
        }
    )
    return data


def oeuvre_list_item(
    entity: Any, lang: str = PRIMARY_LANGUAGE, full: bool = False
) -> dict[str, Any]:
    """Forme minimale des collections (description tronquée)."""
    description = _text(entity.description, lang, full)
    if isinstance(description, str):
        description = description[:LIST_DESCRIPTION_LENGTH]
    work_type = _work_type(entity, lang, full)
    owner = _owner(entity, lang, full)
    return {
        "id": entity.id,
        "title": _text(entity.title, lang, full),
        "description": description,
        "imageUrl": entity.image_url or entity.cover_url,
        "workType": work_type["name"] if work_type else None,
        "owner": {k: owner[k] for k in ("id", "firstName", "lastName")} if owner else None,
        "status": entity.status,
        "viewCount": entity.view_count or 0,
        "createdAt": iso(entity.created_at),
    }
