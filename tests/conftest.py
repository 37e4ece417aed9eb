"""Configuration de test pour pytest avec gestion des chemins.

Ce module configure pytest pour résoudre les imports `heritage` en ajoutant la racine du projet au
sys.path, et fournit un conteneur neuf (base SQLite en mémoire) pour chaque test.
"""

import os
import sys

import pytest

# Ensure project root is on sys.path so that
# imports like `from heritage...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from heritage.core.container import Container  # noqa: E402
from heritage.core.settings import Settings  # noqa: E402
from tests.fakes import CatalogSeeder  # noqa: E402


@pytest.fixture()
def settings() -> Settings:
    """Configuration de test: base mémoire, pas de fichier .env, mode non debug."""
    return Settings(
        _env_file=None,
        APP_ENV="test",
        APP_DEBUG=False,
        DATABASE_URL="sqlite+pysqlite:///:memory:",
        DATABASE_AUTO_CREATE=True,
    )


@pytest.fixture()
def container(settings: Settings):
    """Conteneur complet sur une base SQLite mémoire isolée."""
    c = Container(settings)
    yield c
    c.dispose()


@pytest.fixture()
def seed(container: Container) -> CatalogSeeder:
    return CatalogSeeder(container)


@pytest.fixture()
def admin(seed: CatalogSeeder):
    return seed.user("admin@heritage.dz", user_type="admin")


@pytest.fixture()
def writer(seed: CatalogSeeder):
    """Professionnel validé, autorisé à créer des œuvres."""
    return seed.user("writer@heritage.dz", user_type="writer")


@pytest.fixture()
def work_type(seed: CatalogSeeder):
    return seed.work_type("book", "Livre")
