"""
Briques partagées par les DTOs: résolution des alias, coercitions tolérantes, résultat de validation.

Les DTOs ne dérivent d'aucune classe commune: chacun est une dataclass simple assortie de fonctions
de construction qui composent les helpers de ce module et ceux de `heritage.domain.translatable`.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from heritage.domain.errors import FieldError

# Table d'alias: nom canonique -> noms alternatifs acceptés en entrée
AliasTable = Mapping[str, tuple[str, ...]]


class _Missing:
    """Marqueur d'un champ absent de la charge utile (distinct de None)."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()

_CAMEL_RE = re.compile(r"_([a-z])")


def camel(name: str) -> str:
    """`work_type_id` -> `workTypeId`."""
    return _CAMEL_RE.sub(lambda m: m.group(1).upper(), name)


def resolve_aliases(data: Mapping[str, Any] | None, table: AliasTable) -> dict[str, Any]:
    """Ramène les clés d'entrée à leur nom canonique.

    Pour chaque champ de `table`, le nom canonique puis sa forme camelCase puis les alias déclarés
    sont consultés dans cet ordre; seuls les champs effectivement présents figurent dans le
    résultat (une valeur None explicite est conservée).
    """
    if not isinstance(data, Mapping):
        return {}
    resolved: dict[str, Any] = {}
    for canonical, aliases in table.items():
        for key in (canonical, camel(canonical), *aliases):
            if key in data:
                resolved[canonical] = data[key]
                break
    return resolved


def clean_string(value: Any) -> str | None:
    """Trim; chaîne vide ou None -> None."""
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def to_int(value: Any, default: int | None = None) -> int | None:
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    try:
        return int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return default


def to_float(value: Any, default: float | None = None) -> float | None:
    if value is None or isinstance(value, bool):
        return default
    try:
        return float(str(value).strip())
    except ValueError:
        return default


def to_bool(value: Any, default: bool = False) -> bool:
    """Booléen tolérant: `true`/`1`/`yes`/`on` (insensible à la casse) sont vrais."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes", "on"}
    return bool(value)


def to_date(value: Any) -> datetime | None:
    """Date ISO-8601 ou objet date; None si illisible."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    text = clean_string(value)
    if text is None:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None


def to_id_list(value: Any) -> list[int]:
    """Liste d'identifiants positifs, dédupliqués dans l'ordre d'apparition.

    Accepte une liste, une chaîne JSON (`"[1, 2]"`) ou une liste séparée par des virgules.
    """
    items: Iterable[Any]
    if value is None:
        return []
    if isinstance(value, str):
        text = value.strip()
        try:
            decoded = json.loads(text)
        except ValueError:
            decoded = text.split(",")
        items = decoded if isinstance(decoded, list) else [decoded]
    elif isinstance(value, Iterable) and not isinstance(value, Mapping):
        items = value
    else:
        items = [value]
    ids: dict[int, None] = {}
    for item in items:
        if isinstance(item, Mapping):
            item = item.get("id")
        parsed = to_int(item)
        if parsed is not None and parsed > 0:
            ids.setdefault(parsed, None)
    return list(ids)


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


@dataclass
class ValidationResult:
    """Résultat de `validate()`: jamais d'exception, l'appelant inspecte `valid` et `errors`."""

    errors: list[FieldError] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def add(self, field_name: str, message: str) -> None:
        self.errors.append(FieldError(field_name, message))

    def to_dict(self) -> dict[str, Any]:
        return {"valid": self.valid, "errors": [e.to_dict() for e in self.errors]}


@dataclass(frozen=True)
class FieldSet:
    """Champs explicitement présents dans une charge utile de mise à jour (valeurs coercées).

    Un champ absent n'y figure pas; un champ présent avec la valeur None y figure (remise à zéro
    volontaire).
    """

    values: Mapping[str, Any] = field(default_factory=dict)

    def __contains__(self, name: object) -> bool:
        return name in self.values

    def __bool__(self) -> bool:
        return bool(self.values)

    def get(self, name: str, default: Any = MISSING) -> Any:
        return self.values.get(name, default)

    def names(self) -> list[str]:
        return list(self.values)

    def without(self, *names: str) -> dict[str, Any]:
        return {k: v for k, v in self.values.items() if k not in names}
