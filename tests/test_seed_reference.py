"""Tests de l'amorçage des données de référence."""

from heritage.scripts.seed_reference import CATEGORIES, WORK_TYPES, seed_reference


def test_seed_is_idempotent(container) -> None:
    """Un second passage n'insère rien et ne lève pas d'erreur d'unicité."""
    first = seed_reference(container)
    assert first == {"work_types": len(WORK_TYPES), "categories": len(CATEGORIES)}
    assert seed_reference(container) == {"work_types": 0, "categories": 0}
    assert container.work_type_repo.count() == len(WORK_TYPES)


def test_seed_keeps_existing_rows(container, work_type) -> None:
    counts = seed_reference(container)
    assert counts["work_types"] == len(WORK_TYPES) - 1
    book = container.work_type_repo.find_one({"code": "book"})
    assert book.id == work_type.id
    assert book.name["fr"] == "Livre"
