"""
Valeurs multilingues (champs traduisibles).

Un champ traduisible porte jusqu'à cinq variantes de langue: français (langue principale), arabe,
anglais et deux écritures du tamazight (latin `tz-ltn`, tifinagh `tz-tfng`).

Le module expose:
- `Translatable`: enregistrement à forme fixe (un attribut par langue supportée);
- des fonctions libres partagées par les DTOs et les dépôts: `normalize`, `extract`, `merge`,
  `has_translation`, `translation_status`, `translate_deep`.

Règle de repli de `extract`: langue demandée → chaîne de repli (langue principale par défaut)
→ première variante renseignée → chaîne vide. L'extraction ne lève jamais et ne renvoie jamais None.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

LANG_FR = "fr"
LANG_AR = "ar"
LANG_EN = "en"
LANG_TZ_LATIN = "tz-ltn"
LANG_TZ_TIFINAGH = "tz-tfng"

SUPPORTED_LANGUAGES: tuple[str, ...] = (
    LANG_FR,
    LANG_AR,
    LANG_EN,
    LANG_TZ_LATIN,
    LANG_TZ_TIFINAGH,
)
PRIMARY_LANGUAGE = LANG_FR

# code de langue -> nom d'attribut Python
_ATTRS: dict[str, str] = {lang: lang.replace("-", "_") for lang in SUPPORTED_LANGUAGES}


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    return text if text.strip() else None


@dataclass(frozen=True)
class Translatable:
    """Texte parallèle dans les langues supportées (une variante optionnelle par langue)."""

    fr: str | None = None
    ar: str | None = None
    en: str | None = None
    tz_ltn: str | None = None
    tz_tfng: str | None = None

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> Translatable:
        """Construit l'enregistrement depuis un dict `{code_langue: texte}`.

        Les clés inconnues sont ignorées; `tz_ltn` est accepté comme `tz-ltn`.
        """
        values: dict[str, str | None] = {}
        for key, raw in mapping.items():
            code = str(key).strip().lower().replace("_", "-")
            if code in _ATTRS:
                values[_ATTRS[code]] = _clean(raw)
        return cls(**values)

    def get(self, lang: str) -> str | None:
        """Retourne la variante de `lang` (None si absente ou langue inconnue)."""
        attr = _ATTRS.get(lang)
        return getattr(self, attr) if attr else None

    def populated(self) -> list[tuple[str, str]]:
        """Liste ordonnée des couples (langue, texte) renseignés."""
        return [(lang, text) for lang in SUPPORTED_LANGUAGES if (text := self.get(lang))]

    def is_empty(self) -> bool:
        return not self.populated()

    def to_dict(self) -> dict[str, str]:
        """Forme canonique persistée: toutes les langues présentes, chaînes vides si absentes."""
        return {lang: self.get(lang) or "" for lang in SUPPORTED_LANGUAGES}


EMPTY = Translatable()


def is_translation_map(value: Any) -> bool:
    """Vrai si `value` est un dict dont au moins une clé est un code de langue supporté."""
    if not isinstance(value, Mapping):
        return False
    return any(str(k).replace("_", "-") in _ATTRS for k in value)


def resolve_language(lang: str | None, default: str = PRIMARY_LANGUAGE) -> str:
    """Normalise un code de langue reçu de l'extérieur (repli sur `default`)."""
    if not lang:
        return default
    code = lang.strip().lower().replace("_", "-")
    return code if code in _ATTRS else default


def normalize(value: Any, lang: str = PRIMARY_LANGUAGE) -> Translatable:
    """Convertit une entrée quelconque en `Translatable`.

    - None → enregistrement vide (jamais d'erreur);
    - dict / `Translatable` → variantes conservées, langues manquantes vides;
    - chaîne contenant un dict JSON sérialisé → décodée;
    - chaîne JSON illisible → texte brut dans la langue principale;
    - autre chaîne → texte brut dans `lang`.
    """
    if value is None:
        return EMPTY
    if isinstance(value, Translatable):
        return value
    if isinstance(value, Mapping):
        return Translatable.from_mapping(value)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.startswith("{"):
            try:
                decoded = json.loads(stripped)
            except ValueError:
                return Translatable.from_mapping({PRIMARY_LANGUAGE: value})
            if isinstance(decoded, Mapping):
                return Translatable.from_mapping(decoded)
        return Translatable.from_mapping({resolve_language(lang): value})
    return Translatable.from_mapping({resolve_language(lang): str(value)})


def extract(
    value: Any,
    lang: str = PRIMARY_LANGUAGE,
    fallback_chain: Iterable[str] = (PRIMARY_LANGUAGE,),
) -> str:
    """Résout un champ traduisible en une seule chaîne (jamais None)."""
    record = normalize(value, lang)
    for code in (lang, *fallback_chain):
        text = record.get(code)
        if text:
            return text
    populated = record.populated()
    return populated[0][1] if populated else ""


def merge(existing: Any, updates: Any) -> Translatable:
    """Applique des éditions partielles par langue.

    Seules les variantes non vides de `updates` écrasent `existing`; les autres langues restent
    intactes.
    """
    base = normalize(existing)
    patch = normalize(updates)
    values = {_ATTRS[lang]: base.get(lang) for lang in SUPPORTED_LANGUAGES}
    for lang, text in patch.populated():
        values[_ATTRS[lang]] = text
    return Translatable(**values)


def has_translation(value: Any, lang: str) -> bool:
    """Vrai si la variante `lang` est renseignée."""
    return bool(normalize(value).get(lang))


def translation_status(value: Any) -> dict[str, Any]:
    """Taux de complétude d'un champ traduisible.

    Retour: `{"percentage": int, "missing": [...], "complete": [...]}`.
    """
    record = normalize(value)
    complete = [lang for lang in SUPPORTED_LANGUAGES if record.get(lang)]
    missing = [lang for lang in SUPPORTED_LANGUAGES if not record.get(lang)]
    percentage = round(len(complete) * 100 / len(SUPPORTED_LANGUAGES))
    return {"percentage": percentage, "missing": missing, "complete": complete}


def translate_deep(data: Any, lang: str = PRIMARY_LANGUAGE, only: Iterable[str] | None = None) -> Any:
    """Résout récursivement les dicts de traductions contenus dans `data`.

    `only` restreint la résolution à certaines clés; les autres dicts de traductions sont
    laissés tels quels.
    """
    keys = set(only) if only is not None else None
    if isinstance(data, list):
        return [translate_deep(item, lang, keys) for item in data]
    if isinstance(data, Translatable):
        return extract(data, lang)
    if not isinstance(data, Mapping):
        return data
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, Translatable) or is_translation_map(value):
            result[key] = extract(value, lang) if keys is None or key in keys else value
        elif isinstance(value, Mapping | list):
            result[key] = translate_deep(value, lang, keys)
        else:
            result[key] = value
    return result


__all__ = [
    "EMPTY",
    "PRIMARY_LANGUAGE",
    "SUPPORTED_LANGUAGES",
    "Translatable",
    "extract",
    "has_translation",
    "is_translation_map",
    "merge",
    "normalize",
    "resolve_language",
    "translate_deep",
    "translation_status",
]

