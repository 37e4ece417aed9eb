"""
Tests du service des œuvres: cycle de modération, gardes, synchronisation atomique des
associations et traduction des erreurs de stockage.
"""

from __future__ import annotations

import pytest

from heritage.domain.errors import ErrorKind, ServiceError
from heritage.domain.workflow import OeuvreStatus
from heritage.infra.repo.errors import StorageError, StorageErrorKind

OWNER_ID = 7


def _body(work_type_id: int, **extra):
    body = {
        "title": {"fr": "Nedjma", "ar": "نجمة"},
        "description": {"fr": "Roman algérien"},
        "work_type_id": work_type_id,
    }
    body.update(extra)
    return body


def _status(container, oeuvre_id: int) -> str:
    return container.oeuvre_repo.find_by_id(oeuvre_id).status


@pytest.fixture()
def svc(container):
    return container.oeuvre_service


@pytest.fixture()
def owner(seed):
    """Propriétaire d'identifiant 7 (six comptes le précèdent)."""
    for i in range(OWNER_ID - 1):
        seed.user(f"filler{i}@heritage.dz")
    user = seed.user("owner@heritage.dz", user_type="writer")
    assert user.id == OWNER_ID
    return user


def test_create_starts_as_draft_with_associations(svc, seed, writer, work_type) -> None:
    c1 = seed.category("roman", "Roman")
    tag = seed.tag("classique")
    created = svc.create(_body(work_type.id, categories=[c1.id], tags=[tag.id]), writer.id)
    assert created["status"] == "draft"
    assert created["ownerId"] == writer.id
    assert [c["id"] for c in created["categories"]] == [c1.id]
    assert [t["id"] for t in created["tags"]] == [tag.id]


def test_create_is_atomic_when_association_fails(svc, container, writer, work_type) -> None:
    with pytest.raises(ServiceError) as exc:
        svc.create(_body(work_type.id, categories=[4242]), writer.id)
    assert exc.value.kind is ErrorKind.VALIDATION_ERROR
    assert exc.value.details[0].field == "categories"
    assert container.oeuvre_repo.count() == 0


def test_create_requires_validated_professional(svc, seed, work_type) -> None:
    visitor = seed.user("visitor@heritage.dz")
    pending = seed.user("pending@heritage.dz", "writer", validation_status="pending")
    for actor in (visitor, pending):
        with pytest.raises(ServiceError) as exc:
            svc.create(_body(work_type.id), actor.id)
        assert exc.value.kind is ErrorKind.FORBIDDEN
    with pytest.raises(ServiceError) as exc:
        svc.create(_body(work_type.id), None)
    assert exc.value.kind is ErrorKind.UNAUTHORIZED


def test_create_validation_and_unknown_type(svc, writer) -> None:
    with pytest.raises(ServiceError) as exc:
        svc.create({"title": {"en": "x"}}, writer.id)
    assert exc.value.kind is ErrorKind.VALIDATION_ERROR
    assert {d.field for d in exc.value.details} >= {"title", "work_type_id"}
    with pytest.raises(ServiceError) as exc:
        svc.create(_body(999), writer.id)
    assert exc.value.details[0].field == "work_type_id"


def test_scenario_submit_then_resubmit_conflicts(svc, container, seed, owner, work_type) -> None:
    """draft + owner 7: submit -> pending; second submit -> CONFLICT."""
    oeuvre = seed.oeuvre(OWNER_ID, work_type.id)
    result = svc.submit(oeuvre.id, OWNER_ID)
    assert result["status"] == "pending"
    assert result["submittedAt"] is not None
    with pytest.raises(ServiceError) as exc:
        svc.submit(oeuvre.id, OWNER_ID)
    assert exc.value.kind is ErrorKind.CONFLICT
    assert _status(container, oeuvre.id) == "pending"


def test_submit_only_by_owner(svc, seed, owner, writer, work_type) -> None:
    oeuvre = seed.oeuvre(owner.id, work_type.id)
    with pytest.raises(ServiceError) as exc:
        svc.submit(oeuvre.id, writer.id)
    assert exc.value.kind is ErrorKind.FORBIDDEN


def test_scenario_reject_with_empty_reason(svc, container, seed, admin, writer, work_type) -> None:
    """Motif vide -> VALIDATION_ERROR, le statut reste pending."""
    oeuvre = seed.oeuvre(writer.id, work_type.id, status=OeuvreStatus.PENDING)
    for reason in ("", "   ", None):
        with pytest.raises(ServiceError) as exc:
            svc.reject(oeuvre.id, admin.id, reason)
        assert exc.value.kind is ErrorKind.VALIDATION_ERROR
    assert _status(container, oeuvre.id) == "pending"
    rejected = svc.reject(oeuvre.id, admin.id, "  Hors sujet ")
    assert rejected["status"] == "rejected"
    assert rejected["rejectionReason"] == "Hors sujet"
    assert rejected["validatorId"] == admin.id



def test_reject_checks_reason_before_status(svc, container, seed, admin, writer, work_type):
    draft = seed.oeuvre(writer.id, work_type.id)
    with pytest.raises(ServiceError) as exc:
        svc.reject(draft.id, admin.id, "")
    assert exc.value.kind is ErrorKind.VALIDATION_ERROR
    with pytest.raises(ServiceError) as exc:
        svc.reject(draft.id, admin.id, "Hors sujet")
    assert exc.value.kind is ErrorKind.CONFLICT
    assert _status(container, draft.id) == "draft"

@pytest.mark.parametrize("status", [OeuvreStatus.DRAFT, OeuvreStatus.PUBLISHED])
def test_approve_guard(svc, container, seed, admin, writer, work_type, status) -> None:
    oeuvre = seed.oeuvre(writer.id, work_type.id, status=status)
    with pytest.raises(ServiceError) as exc:
        svc.approve(oeuvre.id, admin.id)
    assert exc.value.kind is ErrorKind.CONFLICT
    assert _status(container, oeuvre.id) == status.value


def test_approve_pending_publishes(svc, seed, admin, writer, work_type) -> None:
    oeuvre = seed.oeuvre(writer.id, work_type.id, status=OeuvreStatus.PENDING)
    approved = svc.approve(oeuvre.id, admin.id)
    assert approved["status"] == "published"
    assert approved["validatorId"] == admin.id
    assert approved["validatedAt"] is not None


def test_approve_requires_admin(svc, seed, writer, work_type) -> None:
    oeuvre = seed.oeuvre(writer.id, work_type.id, status=OeuvreStatus.PENDING)
    with pytest.raises(ServiceError) as exc:
        svc.approve(oeuvre.id, writer.id)
    assert exc.value.kind is ErrorKind.FORBIDDEN


def test_missing_work_is_not_found(svc, admin) -> None:
    with pytest.raises(ServiceError) as exc:
        svc.approve(12345, admin.id)
    assert exc.value.kind is ErrorKind.NOT_FOUND
    assert exc.value.status_code == 404


def test_update_replaces_categories(svc, container, seed, writer, work_type) -> None:
    """{1,2} -> {2,3} donne exactement {2,3}."""
    c1, c2, c3 = (seed.category(f"c{i}", f"Cat {i}") for i in (1, 2, 3))
    created = svc.create(_body(work_type.id, categories=[c1.id, c2.id]), writer.id)
    updated = svc.update(created["id"], {"categoryIds": [c2.id, c3.id]}, writer.id)
    assert [c["id"] for c in updated["categories"]] == [c2.id, c3.id]
    assert container.oeuvre_repo.category_ids(created["id"]) == [c2.id, c3.id]


def test_update_merges_translations_and_keeps_untouched_fields(svc, writer, work_type) -> None:
    created = svc.create(_body(work_type.id, creation_year=1956), writer.id)
    updated = svc.update(created["id"], {"title": {"en": "Nedjma (EN)"}}, writer.id, lang="en")
    assert updated["title"] == "Nedjma (EN)"
    full = svc.get(created["id"], writer.id, lang="fr", full=True)
    assert full["title"]["fr"] == "Nedjma"
    assert full["title"]["ar"] == "نجمة"
    assert full["creationYear"] == 1956


def test_update_rolls_back_fields_when_sync_fails(svc, container, seed, writer, work_type) -> None:
    """Échec de la synchronisation après la mise à jour des champs: rien n'est conservé."""
    category = seed.category("c1", "Cat")
    created = svc.create(_body(work_type.id, categories=[category.id]), writer.id)
    with pytest.raises(ServiceError) as exc:
        svc.update(
            created["id"],
            {"title": {"fr": "Nouveau titre"}, "prix": 10, "tags": [9999]},
            writer.id,
        )
    assert exc.value.kind is ErrorKind.VALIDATION_ERROR
    reloaded = container.oeuvre_repo.find_by_id(created["id"])
    assert reloaded.title["fr"] == "Nedjma"
    assert reloaded.price is None
    assert container.oeuvre_repo.category_ids(created["id"]) == [category.id]


def test_update_rolls_back_when_sync_raises_after_field_write(
    svc, container, writer, work_type, monkeypatch
) -> None:
    created = svc.create(_body(work_type.id), writer.id)

    def _boom(*args, **kwargs):
        raise StorageError(StorageErrorKind.VALIDATION, "sync failed")

    monkeypatch.setattr(container.oeuvre_repo, "sync_categories", _boom)
    with pytest.raises(ServiceError):
        svc.update(created["id"], {"title": {"fr": "Changé"}, "categories": [1]}, writer.id)
    assert container.oeuvre_repo.find_by_id(created["id"]).title["fr"] == "Nedjma"


def test_update_guards(svc, seed, admin, writer, work_type) -> None:
    other = seed.user("other@heritage.dz", "artist")
    oeuvre = seed.oeuvre(writer.id, work_type.id)
    with pytest.raises(ServiceError) as exc:
        svc.update(oeuvre.id, {"title": {"fr": "x"}}, other.id)
    assert exc.value.kind is ErrorKind.FORBIDDEN
    with pytest.raises(ServiceError) as exc:
        svc.update(oeuvre.id, {"featured": True}, writer.id)
    assert exc.value.kind is ErrorKind.FORBIDDEN
    assert svc.update(oeuvre.id, {"publisher": "Seuil"}, admin.id)["publisher"] == "Seuil"


@pytest.mark.parametrize("target", ["rejected", "published", "deleted"])
def test_update_never_changes_status(svc, container, seed, admin, writer, work_type, target):
    """Le statut ne bouge que par le cycle de modération, même pour un administrateur."""
    oeuvre = seed.oeuvre(writer.id, work_type.id, status=OeuvreStatus.PENDING)
    with pytest.raises(ServiceError) as exc:
        svc.update(oeuvre.id, {"status": target}, admin.id)
    assert exc.value.kind is ErrorKind.VALIDATION_ERROR
    assert [d.field for d in exc.value.details] == ["status"]
    stored = container.oeuvre_repo.find_by_id(oeuvre.id)
    assert stored.status == "pending"
    assert stored.validator_id is None
    assert stored.rejection_reason is None


def test_update_without_changes_is_rejected(svc, container, seed, writer, work_type) -> None:
    oeuvre = seed.oeuvre(writer.id, work_type.id)
    with pytest.raises(ServiceError) as exc:
        svc.update(oeuvre.id, {}, writer.id)
    assert exc.value.kind is ErrorKind.VALIDATION_ERROR
    assert _status(container, oeuvre.id) == "draft"


def test_delete_is_soft_and_hidden_from_public(svc, container, seed, admin, writer, work_type):
    oeuvre = seed.oeuvre(writer.id, work_type.id, status=OeuvreStatus.PUBLISHED)
    assert svc.delete(oeuvre.id, writer.id) is True
    assert _status(container, oeuvre.id) == "deleted"
    with pytest.raises(ServiceError) as exc:
        svc.get(oeuvre.id)
    assert exc.value.kind is ErrorKind.NOT_FOUND
    assert svc.get(oeuvre.id, admin.id)["status"] == "deleted"
    assert svc.list_published()["pagination"]["total"] == 0
    with pytest.raises(ServiceError) as exc:
        svc.delete(oeuvre.id, writer.id)
    assert exc.value.kind is ErrorKind.CONFLICT


def test_archive_and_purge(svc, container, seed, admin, writer, work_type) -> None:
    oeuvre = seed.oeuvre(writer.id, work_type.id, status=OeuvreStatus.PUBLISHED)
    assert svc.archive(oeuvre.id, writer.id)["status"] == "archived"
    with pytest.raises(ServiceError) as exc:
        svc.purge(oeuvre.id, writer.id)
    assert exc.value.kind is ErrorKind.FORBIDDEN
    assert svc.purge(oeuvre.id, admin.id) is True
    assert container.oeuvre_repo.find_by_id(oeuvre.id) is None


def test_set_featured_only_published(svc, seed, admin, writer, work_type) -> None:
    draft = seed.oeuvre(writer.id, work_type.id)
    with pytest.raises(ServiceError) as exc:
        svc.set_featured(draft.id, admin.id)
    assert exc.value.kind is ErrorKind.CONFLICT
    published = seed.oeuvre(writer.id, work_type.id, status=OeuvreStatus.PUBLISHED)
    assert svc.set_featured(published.id, admin.id)["isFeatured"] is True


def test_get_visibility_rules(svc, seed, writer, work_type) -> None:
    stranger = seed.user("stranger@heritage.dz")
    draft = seed.oeuvre(writer.id, work_type.id)
    with pytest.raises(ServiceError) as exc:
        svc.get(draft.id, stranger.id)
    assert exc.value.kind is ErrorKind.NOT_FOUND
    own = svc.get(draft.id, writer.id)
    assert own["status"] == "draft"
    assert "validatorId" in own


def test_get_details_counts_views_on_published(svc, seed, writer, work_type) -> None:
    oeuvre = seed.oeuvre(writer.id, work_type.id, status=OeuvreStatus.PUBLISHED)
    svc.get_details(oeuvre.id)
    second = svc.get_details(oeuvre.id)
    assert second["viewCount"] == 2


def test_public_search_only_returns_published(svc, seed, writer, work_type) -> None:
    seed.oeuvre(writer.id, work_type.id, title="Patrimoine oral", status=OeuvreStatus.PUBLISHED)
    seed.oeuvre(writer.id, work_type.id, title="Patrimoine caché")
    result = svc.search("patrimoine", lang="fr")
    assert result["pagination"]["total"] == 1
    assert result["data"][0]["title"] == "Patrimoine oral"


def test_search_advanced_coerces_text_filters(svc, seed, writer, work_type) -> None:
    seed.oeuvre(
        writer.id, work_type.id, title="Ancien", status=OeuvreStatus.PUBLISHED, creation_year=1900
    )
    seed.oeuvre(
        writer.id, work_type.id, title="Récent", status=OeuvreStatus.PUBLISHED, creation_year=2010
    )
    result = svc.search_advanced({"year_min": "2000", "status": "draft", "work_type_id": "x"})
    assert [o["title"] for o in result["data"]] == ["Récent"]
    with pytest.raises(ServiceError) as exc:
        svc.search_advanced({"sort": "chaos"})
    assert exc.value.kind is ErrorKind.VALIDATION_ERROR


def test_list_published_accepts_order_string(svc, seed, writer, work_type) -> None:
    for title in ("B", "A", "C"):
        seed.oeuvre(writer.id, work_type.id, title=title, status=OeuvreStatus.PUBLISHED)
    listed = svc.list_published(order="title")
    assert [o["title"] for o in listed["data"]] == ["A", "B", "C"]
    with pytest.raises(ServiceError) as exc:
        svc.list_published(order="-password")
    assert exc.value.kind is ErrorKind.VALIDATION_ERROR


def test_list_by_owner_scopes_statuses(svc, seed, admin, writer, work_type) -> None:
    seed.oeuvre(writer.id, work_type.id)
    seed.oeuvre(writer.id, work_type.id, status=OeuvreStatus.PUBLISHED)
    seed.oeuvre(writer.id, work_type.id, status=OeuvreStatus.DELETED)
    assert svc.list_by_owner(writer.id)["pagination"]["total"] == 1
    assert svc.list_by_owner(writer.id, writer.id)["pagination"]["total"] == 2
    assert svc.list_by_owner(writer.id, admin.id)["pagination"]["total"] == 3


def test_admin_listing_and_stats(svc, seed, admin, writer, work_type) -> None:
    seed.oeuvre(writer.id, work_type.id, status=OeuvreStatus.PENDING)
    seed.oeuvre(writer.id, work_type.id, status=OeuvreStatus.DELETED)
    assert svc.list_pending(admin.id)["pagination"]["total"] == 1
    assert svc.list_all(admin.id)["pagination"]["total"] == 1
    assert svc.list_all(admin.id, include_deleted=True)["pagination"]["total"] == 2
    assert svc.get_stats(admin.id)["byStatus"]["pending"] == 1
    with pytest.raises(ServiceError) as exc:
        svc.list_pending(writer.id)
    assert exc.value.kind is ErrorKind.FORBIDDEN
