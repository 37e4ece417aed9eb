"""
Tests des objets de transfert: coercitions tolérantes, alias, validation sans exception, suivi des
champs présents et projections sortantes.
"""

from __future__ import annotations

from datetime import datetime
from types import SimpleNamespace

from heritage.domain.dto.common import (
    MISSING,
    resolve_aliases,
    to_bool,
    to_id_list,
    to_int,
)
from heritage.domain.dto.oeuvre import (
    LIST_DESCRIPTION_LENGTH,
    oeuvre_admin,
    oeuvre_create_from_request,
    oeuvre_list_item,
    oeuvre_public,
    oeuvre_update_from_request,
)
from heritage.domain.dto.user import (
    user_create_from_request,
    user_public,
    user_update_from_request,
)
from heritage.domain.translatable import Translatable

VALID_PASSWORD = "Secret123"


def _fields(result) -> set[str]:
    return {e.field for e in result.errors}


def test_lenient_coercions() -> None:
    assert to_int(" 12 ") == 12
    assert to_int("12.7") == 12
    assert to_int("abc", 5) == 5
    assert to_int(True) is None
    assert to_bool("YES") is True
    assert to_bool("off") is False
    assert to_bool(None, True) is True
    assert to_id_list("[3, 1, 3]") == [3, 1]
    assert to_id_list("4, 5, x, -1") == [4, 5]
    assert to_id_list([{"id": 2}, "7"]) == [2, 7]
    assert to_id_list(None) == []


def test_resolve_aliases_prefers_canonical_then_camel_then_alias() -> None:
    table = {"work_type_id": ("id_type_oeuvre",)}
    assert resolve_aliases({"id_type_oeuvre": 1}, table) == {"work_type_id": 1}
    assert resolve_aliases({"workTypeId": 2, "id_type_oeuvre": 1}, table) == {"work_type_id": 2}
    assert resolve_aliases({"work_type_id": None}, table) == {"work_type_id": None}
    assert resolve_aliases("not a mapping", table) == {}


def test_oeuvre_create_accepts_aliases_and_validates() -> None:
    dto = oeuvre_create_from_request(
        {
            "titre": {"fr": "Nedjma", "ar": "نجمة"},
            "description": "Roman",
            "idTypeOeuvre": "3",
            "annee_creation": "1956",
            "prix": "1200.50",
            "categoryIds": "[1, 2]",
            "tags": "4,5",
        },
        owner_id=7,
    )
    assert dto.title.fr == "Nedjma"
    assert dto.description.fr == "Roman"
    assert dto.work_type_id == 3
    assert dto.creation_year == 1956
    assert dto.price == 1200.5
    assert dto.category_ids == [1, 2]
    assert dto.tag_ids == [4, 5]
    assert dto.owner_id == 7
    assert dto.validate().valid
    assert dto.to_entity()["status"] == "draft"


def test_oeuvre_create_validation_errors_never_raise() -> None:
    next_year = datetime.now().year + 1
    dto = oeuvre_create_from_request(
        {
            "title": {"en": "Only English"},
            "creation_year": next_year + 1,
            "isbn": "12-34",
            "price": -1,
            "image_url": "http://insecure.example/img.png",
            "cover_url": "/uploads/cover.exe",
        }
    )
    result = dto.validate()
    assert not result.valid
    assert _fields(result) >= {
        "title",
        "description",
        "work_type_id",
        "owner_id",
        "creation_year",
        "isbn",
        "price",
        "image_url",
        "cover_url",
    }
    assert result.to_dict()["valid"] is False


def test_oeuvre_create_accepts_valid_images_and_isbn() -> None:
    dto = oeuvre_create_from_request(
        {
            "title": "Titre",
            "description": "Desc",
            "work_type_id": 1,
            "isbn": "978-3-16-148410-0",
            "image_url": "https://cdn.example.org/a.jpg",
            "cover_url": "/uploads/covers/b.webp",
        },
        owner_id=1,
    )
    assert dto.validate().valid


def test_oeuvre_update_tracks_only_present_fields() -> None:
    empty = oeuvre_update_from_request({})
    assert not empty.has_changes()
    assert empty.category_ids() is None

    dto = oeuvre_update_from_request({"prix": None, "categories": [2, 3], "owner_id": 99})
    assert dto.has_changes()
    assert dto.has_field("price")
    assert dto.get("price") is None
    assert not dto.has_field("title")
    assert dto.changes.get("title") is MISSING
    assert dto.category_ids() == [2, 3]
    assert dto.tag_ids() is None
    # owner_id ne peut pas être changé par une mise à jour
    assert not dto.has_field("owner_id")
    assert dto.to_entity() == {"price": None}


def test_oeuvre_update_merges_translations_per_language() -> None:
    existing = SimpleNamespace(title={"fr": "Titre", "ar": "عنوان", "en": ""})
    dto = oeuvre_update_from_request({"title": {"en": "Title"}})
    values = dto.merge_with_existing(existing)
    assert values["title"] == Translatable(fr="Titre", ar="عنوان", en="Title")


def test_oeuvre_update_validation() -> None:
    dto = oeuvre_update_from_request({"title": {"en": "x"}, "status": "bogus", "work_type_id": 0})
    assert _fields(dto.validate()) == {"title", "status", "work_type_id"}
    # le statut ne passe jamais par une mise à jour, même valide
    assert _fields(oeuvre_update_from_request({"statut": "archived"}).validate()) == {"status"}
    assert oeuvre_update_from_request({"featured": True}).touches_moderation()
    assert not oeuvre_update_from_request({"publisher": "Seuil"}).touches_moderation()


def _entity(**overrides):
    owner = SimpleNamespace(
        id=7,
        first_name={"fr": "Kateb", "ar": "كاتب"},
        last_name={"fr": "Yacine"},
        photo_url=None,
    )
    data = {
        "id": 1,
        "title": {"fr": "Nedjma", "ar": "نجمة"},
        "description": {"fr": "x" * 300},
        "summary": {},
        "work_type": SimpleNamespace(id=3, code="book", name={"fr": "Livre", "en": "Book"}),
        "owner": owner,
        "work_type_id": 3,
        "owner_id": 7,
        "validator_id": None,
        "creation_year": 1956,
        "isbn": None,
        "publisher": None,
        "pages": None,
        "duration": None,
        "price": None,
        "currency": "DZD",
        "image_url": None,
        "cover_url": "/uploads/c.png",
        "status": "published",
        "is_featured": False,
        "view_count": 4,
        "categories": [SimpleNamespace(id=1, code="roman", name={"fr": "Roman"})],
        "tags": [],
        "submitted_at": None,
        "validated_at": datetime(2026, 1, 2, 3, 4, 5),
        "rejection_reason": None,
        "deleted_at": None,
        "created_at": datetime(2026, 1, 1),
        "updated_at": datetime(2026, 1, 2),
    }
    data.update(overrides)
    return SimpleNamespace(**data)


def test_oeuvre_outbound_shapes() -> None:
    entity = _entity()
    public = oeuvre_public(entity, "ar")
    assert public["title"] == "نجمة"
    assert public["workType"]["name"] == "Livre"
    assert "validatorId" not in public and "rejectionReason" not in public

    admin = oeuvre_admin(entity, "en")
    assert admin["title"] == "Nedjma"
    assert admin["workType"]["name"] == "Book"
    assert admin["validatedAt"] == "2026-01-02T03:04:05"
    assert admin["translationStatus"]["title"]["complete"] == ["fr", "ar"]

    item = oeuvre_list_item(entity, "fr")
    assert len(item["description"]) == LIST_DESCRIPTION_LENGTH
    assert item["imageUrl"] == "/uploads/c.png"
    assert set(item["owner"]) == {"id", "firstName", "lastName"}


def test_oeuvre_full_mode_keeps_language_map() -> None:
    public = oeuvre_public(_entity(), "en", full=True)
    assert public["title"] == {"fr": "Nedjma", "ar": "نجمة", "en": "", "tz-ltn": "", "tz-tfng": ""}
    assert public["categories"][0]["name"]["fr"] == "Roman"


def test_user_create_validation() -> None:
    dto = user_create_from_request(
        {
            "email": "Amel@Heritage.DZ",
            "mot_de_passe": VALID_PASSWORD,
            "prenom": "Amel",
            "nom": {"fr": "Ait", "ar": "آيت"},
            "type_user": "Writer",
            "telephone": "0550 12 34 56",
            "accepteConditions": "true",
        }
    )
    assert dto.email == "amel@heritage.dz"
    assert dto.user_type == "writer"
    assert dto.accepts_terms is True
    assert dto.validate().valid
    assert dto.to_entity("hash")["validation_status"] == "pending"


def test_user_create_rejects_weak_input() -> None:
    dto = user_create_from_request(
        {"email": "bad", "password": "short", "type": "admin", "phone": "123", "website": "ftp://x"}
    )
    assert _fields(dto.validate()) == {
        "email",
        "password",
        "first_name",
        "last_name",
        "accepts_terms",
        "user_type",
        "phone",
        "website",
    }


def test_visitors_are_approved_on_creation() -> None:
    dto = user_create_from_request({"email": "v@heritage.dz"})
    assert dto.to_entity("hash")["validation_status"] == "approved"


def test_user_update_ignores_non_profile_fields() -> None:
    dto = user_update_from_request({"password": "x", "bio": {"ar": "سيرة"}, "is_admin": True})
    assert dto.changes.names() == ["biography"]
    merged = dto.merge_with_existing(SimpleNamespace(biography={"fr": "Bio"}))
    assert merged["biography"] == Translatable(fr="Bio", ar="سيرة")


def test_user_public_hides_contact_fields() -> None:
    user = SimpleNamespace(
        id=1,
        first_name={"fr": "Amel"},
        last_name={"fr": "Ait"},
        biography={},
        user_type="writer",
        organization=None,
        website=None,
        photo_url=None,
    )
    data = user_public(user, "ar")
    assert data["firstName"] == "Amel"
    assert data["isProfessional"] is True
    assert "email" not in data and "phone" not in data
