"""
Conteneur d'injection de dépendances.

Construit une seule fois les composants centraux (settings, moteur, fabrique de sessions, dépôts,
services) et les relie par référence. La configuration est lue ici et nulle part ailleurs.
"""

from __future__ import annotations

from heritage.core.logging import get_logger
from heritage.core.settings import Settings, get_settings
from heritage.infra.repo.base_repository import BaseRepository
from heritage.infra.repo.db import get_engine, get_session_factory
from heritage.infra.repo.models import Base, Category, Tag, WorkType
from heritage.infra.repo.oeuvre_repository import OeuvreRepository
from heritage.infra.repo.user_repository import UserRepository
from heritage.services.oeuvre_service import OeuvreService
from heritage.services.user_service import UserService

log = get_logger(__name__)


class Container:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.engine = get_engine(self.settings.DATABASE_URL, echo=self.settings.DATABASE_ECHO)
        self.session_factory = get_session_factory(self.engine)
        if self.settings.DATABASE_AUTO_CREATE:
            Base.metadata.create_all(self.engine)
        self.storage_backend = self.engine.dialect.name

        # dépôts
        self.user_repo = UserRepository(self.session_factory, self.settings)
        self.oeuvre_repo = OeuvreRepository(self.session_factory, self.settings)
        self.work_type_repo = BaseRepository(self.session_factory, self.settings, WorkType)
        self.category_repo = BaseRepository(self.session_factory, self.settings, Category)
        self.tag_repo = BaseRepository(self.session_factory, self.settings, Tag)

        # services
        self.user_service = UserService(self.settings, self.user_repo)
        self.oeuvre_service = OeuvreService(
            self.settings, self.oeuvre_repo, self.user_repo, self.work_type_repo
        )
        log.info(
            "container_ready",
            storage=self.storage_backend,
            default_language=self.settings.DEFAULT_LANGUAGE,
        )

    def dispose(self) -> None:
        """Libère les connexions du moteur."""
        self.engine.dispose()
