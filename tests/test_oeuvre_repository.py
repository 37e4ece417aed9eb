"""Tests du dépôt des œuvres: associations, visibilité, recherche avancée et statistiques."""

from __future__ import annotations

import pytest

from heritage.domain.translatable import Translatable
from heritage.domain.workflow import OeuvreStatus
from heritage.infra.repo.errors import StorageError, StorageErrorKind


@pytest.fixture()
def owner(seed):
    return seed.user("owner@heritage.dz", user_type="writer")


def test_sync_categories_replaces_the_whole_set(container, seed, owner, work_type) -> None:
    """{1,2} -> {2,3} donne exactement {2,3}."""
    c1, c2, c3 = (seed.category(f"c{i}", f"Catégorie {i}") for i in (1, 2, 3))
    oeuvre = seed.oeuvre(owner.id, work_type.id)
    repo = container.oeuvre_repo
    repo.sync_categories(oeuvre.id, [c1.id, c2.id])
    assert repo.category_ids(oeuvre.id) == [c1.id, c2.id]
    repo.sync_categories(oeuvre.id, [c2.id, c3.id, c3.id])
    assert repo.category_ids(oeuvre.id) == [c2.id, c3.id]
    repo.sync_categories(oeuvre.id, [])
    assert repo.category_ids(oeuvre.id) == []


def test_sync_tags_unknown_tag_is_foreign_key_error(container, seed, owner, work_type) -> None:
    oeuvre = seed.oeuvre(owner.id, work_type.id)
    with pytest.raises(StorageError) as exc:
        container.oeuvre_repo.sync_tags(oeuvre.id, [9999])
    assert exc.value.kind is StorageErrorKind.FOREIGN_KEY


def test_delete_cascades_join_rows(container, seed, owner, work_type) -> None:
    category = seed.category("roman", "Roman")
    oeuvre = seed.oeuvre(owner.id, work_type.id)
    container.oeuvre_repo.sync_categories(oeuvre.id, [category.id])
    assert container.oeuvre_repo.delete(oeuvre.id) is True
    assert container.oeuvre_repo.category_ids(oeuvre.id) == []
    assert container.category_repo.find_by_id(category.id) is not None


def test_full_details_loads_associations(container, seed, owner, work_type) -> None:
    category = seed.category("poesie", "Poésie")
    tag = seed.tag("classique")
    oeuvre = seed.oeuvre(owner.id, work_type.id)
    container.oeuvre_repo.sync_categories(oeuvre.id, [category.id])
    container.oeuvre_repo.sync_tags(oeuvre.id, [tag.id])
    loaded = container.oeuvre_repo.find_with_full_details(oeuvre.id)
    assert [c.id for c in loaded.categories] == [category.id]
    assert [t.id for t in loaded.tags] == [tag.id]
    assert loaded.work_type.code == "book"
    assert loaded.owner.email == "owner@heritage.dz"


def test_deleted_works_hidden_unless_requested(container, seed, owner, work_type) -> None:
    seed.oeuvre(owner.id, work_type.id, status=OeuvreStatus.PUBLISHED)
    seed.oeuvre(owner.id, work_type.id, status=OeuvreStatus.DELETED)
    repo = container.oeuvre_repo
    assert repo.find_by_owner(owner.id).pagination.total == 1
    assert repo.find_by_owner(owner.id, include_deleted=True).pagination.total == 2
    assert repo.find_visible().pagination.total == 1


def test_find_by_category_and_type_published_only(container, seed, owner, work_type) -> None:
    film = seed.work_type("film", "Film")
    category = seed.category("histoire", "Histoire")
    published = seed.oeuvre(owner.id, work_type.id, status=OeuvreStatus.PUBLISHED)
    draft = seed.oeuvre(owner.id, work_type.id)
    seed.oeuvre(owner.id, film.id, status=OeuvreStatus.PUBLISHED)
    for oeuvre in (published, draft):
        container.oeuvre_repo.sync_categories(oeuvre.id, [category.id])
    by_category = container.oeuvre_repo.find_by_category(category.id)
    assert [o.id for o in by_category.data] == [published.id]
    assert container.oeuvre_repo.find_by_type(work_type.id).pagination.total == 1
    assert container.oeuvre_repo.find_by_type(film.id).pagination.total == 1


def test_search_advanced_combines_criteria(container, seed, owner, work_type) -> None:
    category = seed.category("conte", "Conte")
    match = seed.oeuvre(
        owner.id,
        work_type.id,
        title=Translatable(fr="Contes de Kabylie", ar="حكايات"),
        status=OeuvreStatus.PUBLISHED,
        creation_year=1990,
        price=1500.0,
    )
    seed.oeuvre(
        owner.id,
        work_type.id,
        title="Contes modernes",
        status=OeuvreStatus.PUBLISHED,
        creation_year=2020,
    )
    container.oeuvre_repo.sync_categories(match.id, [category.id])
    page = container.oeuvre_repo.search_advanced(
        {
            "q": "Contes",
            "status": "published",
            "year_min": 1980,
            "year_max": 2000,
            "price_max": 2000,
            "category_ids": [category.id],
            "sort": "title",
        }
    )
    assert [o.id for o in page.data] == [match.id]
    arabic = container.oeuvre_repo.search_advanced({"q": "حكايات"})
    assert arabic.pagination.total == 1


def test_search_advanced_rejects_unknown_sort(container) -> None:
    with pytest.raises(StorageError) as exc:
        container.oeuvre_repo.search_advanced({"sort": "random"})
    assert exc.value.field == "sort"


def test_increment_views_and_popular(container, seed, owner, work_type) -> None:
    quiet = seed.oeuvre(owner.id, work_type.id, title="Calme", status=OeuvreStatus.PUBLISHED)
    loud = seed.oeuvre(owner.id, work_type.id, title="Bruyant", status=OeuvreStatus.PUBLISHED)
    for _ in range(3):
        assert container.oeuvre_repo.increment_views(loud.id)
    assert not container.oeuvre_repo.increment_views(999)
    popular = container.oeuvre_repo.find_popular(limit=2)
    assert [o.id for o in popular] == [loud.id, quiet.id]
    assert popular[0].view_count == 3


def test_find_similar_shares_type_or_category(container, seed, owner, work_type) -> None:
    film = seed.work_type("film", "Film")
    base = seed.oeuvre(owner.id, work_type.id, status=OeuvreStatus.PUBLISHED)
    same_type = seed.oeuvre(owner.id, work_type.id, status=OeuvreStatus.PUBLISHED)
    other = seed.oeuvre(owner.id, film.id, status=OeuvreStatus.PUBLISHED)
    loaded = container.oeuvre_repo.find_with_full_details(base.id)
    similar = container.oeuvre_repo.find_similar(loaded)
    assert [o.id for o in similar] == [same_type.id]
    assert other.id not in [o.id for o in similar]


def test_get_stats_by_status(container, seed, owner, work_type) -> None:
    seed.oeuvre(owner.id, work_type.id)
    seed.oeuvre(owner.id, work_type.id, status=OeuvreStatus.PUBLISHED)
    seed.oeuvre(owner.id, work_type.id, status=OeuvreStatus.PUBLISHED)
    stats = container.oeuvre_repo.get_stats()
    assert stats["total"] == 3
    assert stats["byStatus"]["published"] == 2
    assert stats["byStatus"]["draft"] == 1
    assert stats["byStatus"]["archived"] == 0
    assert stats["byType"] == {work_type.id: 3}
