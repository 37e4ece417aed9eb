"""
Tests du dépôt générique sur SQLite mémoire.

Couvre la pagination, les filtres déclaratifs, la recherche multilingue échappée, les statistiques,
la classification des erreurs de stockage et la primitive transactionnelle.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from heritage.domain.translatable import Translatable
from heritage.infra.repo.errors import StorageError, StorageErrorKind

SCENARIO_ROWS = 15
SCENARIO_LIMIT = 10
SCENARIO_LAST_PAGE_SIZE = 5


def _tags(container, names):
    return container.tag_repo.bulk_create([{"name": Translatable(fr=name)} for name in names])


def test_find_all_second_page(container) -> None:
    """15 lignes, page 2 par 10: 5 résultats, pas de page suivante, page précédente."""
    _tags(container, [f"tag-{i}" for i in range(SCENARIO_ROWS)])
    page = container.tag_repo.find_all(page=2, limit=SCENARIO_LIMIT)
    assert len(page.data) == SCENARIO_LAST_PAGE_SIZE
    pagination = page.to_dict()["pagination"]
    assert pagination["total"] == SCENARIO_ROWS
    assert pagination["hasNext"] is False
    assert pagination["hasPrev"] is True
    assert pagination["totalPages"] == 2


def test_find_all_clamps_limit(container, settings) -> None:
    _tags(container, ["a", "b", "c"])
    page = container.tag_repo.find_all(limit=10_000)
    assert page.pagination.limit == settings.PAGINATION_MAX_LIMIT
    default = container.tag_repo.find_all(limit="junk")
    assert default.pagination.limit == settings.PAGINATION_DEFAULT_LIMIT


def test_find_by_id_absent_returns_none(container) -> None:
    assert container.tag_repo.find_by_id(999) is None


def test_filters_operators_and_lists(container, seed, work_type) -> None:
    owner = seed.user("owner@heritage.dz", user_type="writer")
    for year in (1950, 1980, 2001):
        seed.oeuvre(owner.id, work_type.id, title=f"Œuvre {year}", creation_year=year)
    repo = container.oeuvre_repo
    assert repo.count({"creation_year": {"gte": 1980}}) == 2
    assert repo.count({"creation_year": [1950, 2001]}) == 2
    assert repo.count({"creation_year": []}) == 0
    assert repo.exists({"creation_year": 1980})
    assert not repo.exists({"creation_year": 1700})
    found = repo.find_one({"creation_year": {"lt": 1960}})
    assert found is not None and found.creation_year == 1950


def test_unknown_field_is_a_validation_storage_error(container) -> None:
    with pytest.raises(StorageError) as exc:
        container.tag_repo.find_all({"nope": 1})
    assert exc.value.kind is StorageErrorKind.VALIDATION
    assert exc.value.field == "nope"
    with pytest.raises(StorageError):
        container.tag_repo.find_all(order=("-nope",))
    with pytest.raises(StorageError):
        container.tag_repo.find_all({"id": {"between": 1}})
    with pytest.raises(StorageError):
        container.tag_repo.find_all(include=("owner",))


def test_unique_violation_is_classified(container) -> None:
    container.work_type_repo.create({"code": "film", "name": Translatable(fr="Film")})
    with pytest.raises(StorageError) as exc:
        container.work_type_repo.create({"code": "film", "name": Translatable(fr="Autre")})
    assert exc.value.kind is StorageErrorKind.UNIQUE
    assert exc.value.field == "code"


def test_foreign_key_violation_is_classified(container, seed) -> None:
    owner = seed.user("fk@heritage.dz", user_type="writer")
    with pytest.raises(StorageError) as exc:
        seed.oeuvre(owner.id, work_type_id=424242)
    assert exc.value.kind is StorageErrorKind.FOREIGN_KEY


def test_update_and_delete(container) -> None:
    tag = _tags(container, ["ancien"])[0]
    updated = container.tag_repo.update(tag.id, {"name": Translatable(fr="nouveau")})
    assert updated is not None and updated.name["fr"] == "nouveau"
    assert container.tag_repo.update(999, {"name": Translatable(fr="x")}) is None
    assert container.tag_repo.delete(tag.id) is True
    assert container.tag_repo.delete(tag.id) is False


def test_update_many_and_delete_many(container) -> None:
    _tags(container, ["a", "b", "c"])
    assert container.tag_repo.update_many({"id": {"lte": 2}}, {"name": {"fr": "z"}}) == 2
    assert container.tag_repo.delete_many({"id": {"gte": 2}}) == 2
    assert container.tag_repo.count() == 1


def test_search_probes_every_language(container) -> None:
    container.tag_repo.bulk_create(
        [
            {"name": Translatable(fr="Patrimoine", ar="تراث")},
            {"name": Translatable(fr="Musique", tz_ltn="Aẓawan")},
            {"name": Translatable(fr="Cinéma")},
        ]
    )
    assert container.tag_repo.search("تراث", fields=("name",)).pagination.total == 1
    assert container.tag_repo.search("Aẓawan", fields=("name",)).pagination.total == 1
    assert container.tag_repo.search("", fields=("name",)).pagination.total == 3


def test_search_matches_literal_wildcards(container) -> None:
    """Rechercher `50%` ne trouve que le littéral, pas `500`."""
    container.tag_repo.bulk_create(
        [
            {"name": Translatable(fr="Remise 50%")},
            {"name": Translatable(fr="Remise 500")},
            {"name": Translatable(fr="snake_case")},
            {"name": Translatable(fr="snakeXcase")},
            {"name": Translatable(fr="l'été")},
        ]
    )
    percent = container.tag_repo.search("50%", fields=("name",))
    assert [t.name["fr"] for t in percent.data] == ["Remise 50%"]
    underscore = container.tag_repo.search("e_c", fields=("name",))
    assert [t.name["fr"] for t in underscore.data] == ["snake_case"]
    quote = container.tag_repo.search("l'été", fields=("name",))
    assert quote.pagination.total == 1


def test_get_stats_counts_bounded_ranges(container) -> None:
    now = datetime(2026, 10, 14, 15, 0, 0)  # un mercredi
    rows = [
        now - timedelta(hours=1),  # aujourd'hui
        now - timedelta(days=1),  # cette semaine
        now - timedelta(days=10),  # ce mois
        now - timedelta(days=60),  # plus ancien
        now + timedelta(days=1),  # futur: exclu des fenêtres bornées à maintenant
    ]
    container.tag_repo.bulk_create(
        [{"name": Translatable(fr=f"t{i}"), "created_at": at} for i, at in enumerate(rows)]
    )
    stats = container.tag_repo.get_stats("created_at", now=now)
    assert stats == {"total": 5, "today": 1, "thisWeek": 2, "thisMonth": 3}


def test_with_transaction_commits(container) -> None:
    def _work(session):
        container.tag_repo.create({"name": Translatable(fr="un")}, session=session)
        container.tag_repo.create({"name": Translatable(fr="deux")}, session=session)
        return "ok"

    assert container.tag_repo.with_transaction(_work) == "ok"
    assert container.tag_repo.count() == 2


def test_with_transaction_rolls_back_everything(container) -> None:
    container.work_type_repo.create({"code": "album", "name": Translatable(fr="Album")})

    def _work(session):
        container.tag_repo.create({"name": Translatable(fr="perdu")}, session=session)
        container.work_type_repo.create(
            {"code": "album", "name": Translatable(fr="Doublon")}, session=session
        )

    with pytest.raises(StorageError):
        container.tag_repo.with_transaction(_work)
    assert container.tag_repo.count() == 0
    assert container.work_type_repo.count() == 1


def test_bulk_create_is_all_or_nothing(container) -> None:
    with pytest.raises(StorageError):
        container.work_type_repo.bulk_create(
            [
                {"code": "dup", "name": Translatable(fr="A")},
                {"code": "dup", "name": Translatable(fr="B")},
            ]
        )
    assert container.work_type_repo.count() == 0


def test_order_by_translatable_field_in_language(container) -> None:
    container.tag_repo.bulk_create(
        [
            {"name": Translatable(fr="B", en="z")},
            {"name": Translatable(fr="A", en="y")},
            {"name": Translatable(fr="C", en="x")},
        ]
    )
    by_fr = container.tag_repo.find_all(order=[("name", "asc", "fr")])
    assert [t.name["fr"] for t in by_fr.data] == ["A", "B", "C"]
    by_en = container.tag_repo.find_all(order=[("name", "asc", "en")])
    assert [t.name["fr"] for t in by_en.data] == ["C", "A", "B"]
