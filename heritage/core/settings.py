"""Définition et chargement des paramètres de configuration applicative.

Objectif du module
------------------
- Centraliser les paramètres (env/.env) via Pydantic Settings
- Résoudre le fichier `.env` à utiliser selon la stratégie: ENV_FILE > .env.{APP_ENV} > .env
- Valider une seule fois au démarrage les bornes de pagination, de recherche et de langue

Aucun autre module ne lit l'environnement: l'objet `Settings` est construit au démarrage
puis transmis par référence aux dépôts et services (voir `heritage.core.container`).
"""

import os
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from heritage.domain.translatable import SUPPORTED_LANGUAGES

# Détermination du fichier .env à utiliser avec priorité:
# 1) ENV_FILE (chemin explicite)
# 2) .env.{APP_ENV} si présent
# 3) .env (défaut)
_cwd = Path.cwd()
_env_file_from_env = os.getenv("ENV_FILE")
if _env_file_from_env:
    _ENV_FILE_PATH = _env_file_from_env
else:
    _app_env = os.getenv("APP_ENV", "dev")
    _candidate_specific = _cwd / f".env.{_app_env}"
    _candidate_default = _cwd / ".env"
    if _candidate_specific.exists():
        _ENV_FILE_PATH = _candidate_specific
    else:
        _ENV_FILE_PATH = _candidate_default


class Settings(BaseSettings):
    """Modèle de configuration chargé depuis l'environnement et .env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
    )
    APP_NAME: str = "heritage-catalog"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = True

    DATABASE_URL: str = "sqlite+pysqlite:///:memory:"
    DATABASE_ECHO: bool = False
    # crée le schéma au démarrage (dev/tests); en production le schéma vient d'Alembic
    DATABASE_AUTO_CREATE: bool = True

    # Langue principale des champs multilingues
    DEFAULT_LANGUAGE: str = "fr"

    # Pagination & recherche
    PAGINATION_DEFAULT_LIMIT: int = 20
    PAGINATION_MAX_LIMIT: int = 100
    SEARCH_MAX_LENGTH: int = 200

    # Règles métier
    PASSWORD_MIN_LENGTH: int = 8
    SUSPENSION_MAX_DAYS: int = 365

    @field_validator("DEFAULT_LANGUAGE")
    @classmethod
    def _check_language(cls, value: str) -> str:
        """Refuse une langue principale hors de la liste supportée."""
        lang = value.strip().lower()
        if lang not in SUPPORTED_LANGUAGES:
            raise ValueError(f"unsupported language: {value}")
        return lang

    @field_validator(
        "PAGINATION_DEFAULT_LIMIT",
        "PAGINATION_MAX_LIMIT",
        "SEARCH_MAX_LENGTH",
        "PASSWORD_MIN_LENGTH",
        "SUSPENSION_MAX_DAYS",
    )
    @classmethod
    def _check_positive(cls, value: int) -> int:
        """Les bornes numériques doivent être strictement positives."""
        if value < 1:
            raise ValueError("must be >= 1")
        return value

    @model_validator(mode="after")
    def _check_pagination_bounds(self) -> "Settings":
        """La limite par défaut ne peut excéder la limite maximale."""
        if self.PAGINATION_DEFAULT_LIMIT > self.PAGINATION_MAX_LIMIT:
            raise ValueError("PAGINATION_DEFAULT_LIMIT must not exceed PAGINATION_MAX_LIMIT")
        return self


def get_settings() -> Settings:
    """Construit et retourne la configuration de l'application."""
    return Settings()
