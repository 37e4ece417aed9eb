"""
DTOs des utilisateurs: inscription, mise à jour de profil, projections publique / privée /
administration / liste.

Le mot de passe n'est jamais projeté en sortie; il est haché par le service avant insertion.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from heritage.domain import translatable
from heritage.domain.translatable import PRIMARY_LANGUAGE, Translatable
from heritage.domain.workflow import UserType, initial_validation_status, is_professional

from .common import (
    AliasTable,
    FieldSet,
    ValidationResult,
    clean_string,
    iso,
    resolve_aliases,
    to_bool,
)

DEFAULT_PASSWORD_MIN_LENGTH = 8

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# format algérien: 0 ou +213 puis 5/6/7 et 8 chiffres
PHONE_RE = re.compile(r"^(0|\+213)[567][0-9]{8}$")

USER_ALIASES: AliasTable = {
    "email": (),
    "password": ("mot_de_passe",),
    "first_name": ("prenom",),
    "last_name": ("nom",),
    "biography": ("biographie", "bio"),
    "user_type": ("type_user", "typeUser", "type"),
    "phone": ("telephone",),
    "organization": ("entreprise",),
    "website": ("site_web", "siteWeb"),
    "photo_url": (),
    "accepts_terms": ("accepte_conditions", "accepteConditions"),
    "accepts_newsletter": ("accepte_newsletter", "accepteNewsletter"),
}

TRANSLATABLE_FIELDS = ("first_name", "last_name", "biography")
# champs modifiables par le titulaire du compte
PROFILE_FIELDS = (
    "email",
    "first_name",
    "last_name",
    "biography",
    "phone",
    "organization",
    "website",
    "photo_url",
    "accepts_newsletter",
)


def _coerce(name: str, raw: Any, lang: str) -> Any:
    if name in TRANSLATABLE_FIELDS:
        return translatable.normalize(raw, lang)
    if name in ("accepts_terms", "accepts_newsletter"):
        return to_bool(raw)
    if name == "password":
        return raw if isinstance(raw, str) else None
    if name == "email":
        cleaned = clean_string(raw)
        return cleaned.lower() if cleaned else None
    if name == "user_type":
        cleaned = clean_string(raw)
        return cleaned.lower() if cleaned else None
    return clean_string(raw)


def valid_email(email: str | None) -> bool:
    return bool(email) and EMAIL_RE.match(email) is not None


def valid_phone(phone: str) -> bool:
    return PHONE_RE.match(re.sub(r"\s", "", phone)) is not None


def check_password(
    password: str | None, result: ValidationResult, min_length: int = DEFAULT_PASSWORD_MIN_LENGTH
) -> None:
    """Longueur minimale, au moins une majuscule, une minuscule et un chiffre."""
    if not password:
        result.add("password", "Password is required")
    elif len(password) < min_length:
        result.add("password", f"Password must contain at least {min_length} characters")
    elif not (
        any(c.isupper() for c in password)
        and any(c.islower() for c in password)
        and any(c.isdigit() for c in password)
    ):
        result.add("password", "Password must mix upper case, lower case and digits")


def _check_profile(values: Mapping[str, Any], result: ValidationResult) -> None:
    phone = values.get("phone")
    if phone and not valid_phone(phone):
        result.add("phone", "Invalid phone number format")
    website = values.get("website")
    if website and not website.startswith(("http://", "https://")):
        result.add("website", "Website must be an http(s) URL")


@dataclass
class UserCreate:
    """Charge utile d'inscription."""

    email: str | None
    password: str | None
    first_name: Translatable
    last_name: Translatable
    biography: Translatable
    user_type: str = UserType.VISITOR.value
    phone: str | None = None
    organization: str | None = None
    website: str | None = None
    photo_url: str | None = None
    accepts_terms: bool = False
    accepts_newsletter: bool = False

    def validate(self, password_min_length: int = DEFAULT_PASSWORD_MIN_LENGTH) -> ValidationResult:
        result = ValidationResult()
        if not self.email:
            result.add("email", "Email is required")
        elif not valid_email(self.email):
            result.add("email", "Invalid email format")
        check_password(self.password, result, password_min_length)
        if not translatable.extract(self.last_name):
            result.add("last_name", "Last name is required")
        if not translatable.extract(self.first_name):
            result.add("first_name", "First name is required")
        if not self.accepts_terms:
            result.add("accepts_terms", "Terms and conditions must be accepted")
        if self.user_type not in {t.value for t in UserType}:
            result.add("user_type", f"Unknown user type '{self.user_type}'")
        elif self.user_type == UserType.ADMIN.value:
            result.add("user_type", "Administrator accounts cannot be self-registered")
        _check_profile(self.__dict__, result)
        return result

    def to_entity(self, password_hash: str) -> dict[str, Any]:
        """Colonnes à insérer; les visiteurs sont approuvés d'office."""
        return {
            "email": self.email,
            "password_hash": password_hash,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "biography": self.biography,
            "user_type": self.user_type,
            "phone": self.phone,
            "organization": self.organization,
            "website": self.website,
            "photo_url": self.photo_url,
            "accepts_terms": self.accepts_terms,
            "accepts_newsletter": self.accepts_newsletter,
            "validation_status": initial_validation_status(self.user_type).value,
            "is_active": True,
            "is_suspended": False,
        }


def user_create_from_request(
    body: Mapping[str, Any] | None, lang: str = PRIMARY_LANGUAGE
) -> UserCreate:
    raw = resolve_aliases(body, USER_ALIASES)
    values = {name: _coerce(name, value, lang) for name, value in raw.items()}
    return UserCreate(
        email=values.get("email"),
        password=values.get("password"),
        first_name=values.get("first_name", translatable.EMPTY),
        last_name=values.get("last_name", translatable.EMPTY),
        biography=values.get("biography", translatable.EMPTY),
        user_type=values.get("user_type") or UserType.VISITOR.value,
        phone=values.get("phone"),
        organization=values.get("organization"),
        website=values.get("website"),
        photo_url=values.get("photo_url"),
        accepts_terms=values.get("accepts_terms", False),
        accepts_newsletter=values.get("accepts_newsletter", False),
    )


@dataclass
class UserUpdate:
    """Mise à jour partielle du profil (mot de passe exclu: voir `change_password`)."""

    changes: FieldSet

    def has_changes(self) -> bool:
        return bool(self.changes)

    def has_field(self, name: str) -> bool:
        return name in self.changes

    def validate(self) -> ValidationResult:
        result = ValidationResult()
        if "email" in self.changes and not valid_email(self.changes.get("email")):
            result.add("email", "Invalid email format")
        for name in ("first_name", "last_name"):
            if name in self.changes and not translatable.extract(self.changes.get(name)):
                result.add(name, "Cannot be empty")
        if "user_type" in self.changes and self.changes.get("user_type") not in {
            t.value for t in UserType
        }:
            result.add("user_type", "Unknown user type")
        _check_profile(self.changes.values, result)
        return result

    def merge_with_existing(self, existing: Any) -> dict[str, Any]:
        values = dict(self.changes.values)
        for name in TRANSLATABLE_FIELDS:
            if name in values:
                values[name] = translatable.merge(getattr(existing, name, None), values[name])
        return values


def user_update_from_request(
    body: Mapping[str, Any] | None, lang: str = PRIMARY_LANGUAGE
) -> UserUpdate:
    raw = resolve_aliases(body, USER_ALIASES)
    allowed = (*PROFILE_FIELDS, "user_type")
    return UserUpdate(
        FieldSet({name: _coerce(name, value, lang) for name, value in raw.items() if name in allowed})
    )


# --- sortie


def _text(value: Any, lang: str, full: bool) -> Any:
    return translatable.normalize(value).to_dict() if full else translatable.extract(value, lang)


def user_public(entity: Any, lang: str = PRIMARY_LANGUAGE, full: bool = False) -> dict[str, Any]:
    """Profil visible de tous (aucune donnée de contact ni d'audit)."""
    return {
        "id": entity.id,
        "firstName": _text(entity.first_name, lang, full),
        "lastName": _text(entity.last_name, lang, full),
        "biography": _text(entity.biography, lang, full),
        "userType": entity.user_type,
        "isProfessional": is_professional(entity.user_type),
        "organization": entity.organization,
        "website": entity.website,
        "photoUrl": entity.photo_url,
    }


def user_private(entity: Any, lang: str = PRIMARY_LANGUAGE, full: bool = False) -> dict[str, Any]:
    """Profil vu par son titulaire."""
    data = user_public(entity, lang, full)
    data.update(
        {
            "email": entity.email,
            "phone": entity.phone,
            "validationStatus": entity.validation_status,
            "acceptsNewsletter": bool(entity.accepts_newsletter),
            "lastLoginAt": iso(entity.last_login_at),
            "createdAt": iso(entity.created_at),
        }
    )
    return data


def user_admin(entity: Any, lang: str = PRIMARY_LANGUAGE, full: bool = False) -> dict[str, Any]:
    data = user_private(entity, lang, full)
    data.update(
        {
            "validatedBy": entity.validated_by,
            "validatedAt": iso(entity.validated_at),
            "rejectionReason": entity.rejection_reason,
            "isActive": bool(entity.is_active),
            "isSuspended": bool(entity.is_suspended),
            "suspendedAt": iso(entity.suspended_at),
            "suspensionDays": entity.suspension_days,
            "suspensionReason": entity.suspension_reason,
            "suspendedBy": entity.suspended_by,
            "reactivatedAt": iso(entity.reactivated_at),
            "reactivatedBy": entity.reactivated_by,
            "updatedAt": iso(entity.updated_at),
        }
    )
    return data


def user_list_item(
    entity: Any, lang: str = PRIMARY_LANGUAGE, full: bool = False
) -> dict[str, Any]:
    return {
        "id": entity.id,
        "firstName": _text(entity.first_name, lang, full),
        "lastName": _text(entity.last_name, lang, full),
        "userType": entity.user_type,
        "photoUrl": entity.photo_url,
        "validationStatus": entity.validation_status,
    }
