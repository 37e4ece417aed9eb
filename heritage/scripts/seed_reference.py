"""
Script d'amorçage des données de référence du catalogue.

Insère les types d'œuvre et les catégories thématiques de base s'ils sont absents (repérés par leur
`code`). Relancer le script est sans effet sur les lignes déjà présentes.

Usage:
  python -m heritage.scripts.seed_reference
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Permet l'exécution du script en direct (python heritage/scripts/seed_reference.py)
SYS_ROOT = Path(__file__).resolve().parents[2]
if str(SYS_ROOT) not in sys.path:
    sys.path.append(str(SYS_ROOT))

from heritage.core.container import Container  # noqa: E402
from heritage.core.logging import get_logger, setup_logging  # noqa: E402
from heritage.domain.translatable import Translatable  # noqa: E402
from heritage.infra.repo.base_repository import BaseRepository  # noqa: E402

log = get_logger(__name__)

WORK_TYPES: dict[str, Translatable] = {
    "book": Translatable(fr="Livre", ar="كتاب", en="Book"),
    "film": Translatable(fr="Film", ar="فيلم", en="Film"),
    "album": Translatable(fr="Album musical", ar="ألبوم موسيقي", en="Music album"),
    "article": Translatable(fr="Article", ar="مقال", en="Article"),
    "craft": Translatable(fr="Artisanat", ar="حرف تقليدية", en="Craft"),
    "art": Translatable(fr="Art", ar="فن", en="Visual art"),
}

CATEGORIES: dict[str, Translatable] = {
    "heritage": Translatable(fr="Patrimoine culturel", ar="التراث الثقافي", en="Cultural heritage"),
    "contemporary-art": Translatable(fr="Art contemporain", ar="الفن المعاصر", en="Contemporary art"),
    "literature": Translatable(fr="Littérature", ar="الأدب", en="Literature"),
    "cinema": Translatable(fr="Cinéma", ar="السينما", en="Cinema"),
    "music": Translatable(fr="Musique", ar="الموسيقى", en="Music"),
    "traditional-craft": Translatable(
        fr="Artisanat traditionnel", ar="الصناعة التقليدية", en="Traditional craft"
    ),
}


def _seed(repo: BaseRepository, rows: dict[str, Translatable]) -> int:
    missing = [
        {"code": code, "name": name}
        for code, name in rows.items()
        if not repo.exists({"code": code})
    ]
    if missing:
        repo.bulk_create(missing)
    return len(missing)


def seed_reference(container: Container) -> dict[str, int]:
    """Insère les lignes de référence manquantes; retourne le nombre d'insertions par table."""
    counts = {
        "work_types": _seed(container.work_type_repo, WORK_TYPES),
        "categories": _seed(container.category_repo, CATEGORIES),
    }
    log.info("reference_seeded", **counts)
    return counts


def main() -> None:
    """Point d'entrée: amorce la base désignée par `DATABASE_URL`."""
    parser = argparse.ArgumentParser(description="Amorçage des types d'œuvre et catégories")
    parser.parse_args()
    container = Container()
    setup_logging(debug=container.settings.APP_DEBUG)
    try:
        counts = seed_reference(container)
    finally:
        container.dispose()
    print(f"[seed] types: {counts['work_types']}, catégories: {counts['categories']}")


if __name__ == "__main__":  # pragma: no cover - script entry
    main()
