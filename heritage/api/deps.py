"""Dépendances partagées pour les routes de l'API.

But du module
-------------
- Récupérer le conteneur attaché à l'application (`app.state.container`) et ses services.
- Lire l'identité de l'acteur transmise par la couche d'authentification amont (`X-User-Id`).
- Mutualiser les paramètres de requête communs (pagination, langue, niveau de détail).

Les valeurs sont transmises brutes aux services, qui se chargent de les valider.
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, Query, Request

from heritage.core.container import Container
from heritage.services.oeuvre_service import OeuvreService
from heritage.services.user_service import UserService


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_oeuvre_service(request: Request) -> OeuvreService:
    return get_container(request).oeuvre_service


def get_user_service(request: Request) -> UserService:
    return get_container(request).user_service


def get_actor_id(x_user_id: str | None = Header(default=None)) -> str | None:
    """Identifiant de l'acteur courant, ou None pour un visiteur anonyme."""
    return x_user_id


@dataclass(frozen=True)
class ListParams:
    """Paramètres communs aux listes paginées."""

    page: str | None
    limit: str | None
    lang: str | None
    full: bool


def list_params(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    lang: str | None = Query(default=None),
    full: bool = Query(default=False),
) -> ListParams:
    """Pagination lue en texte: les valeurs aberrantes sont bornées par le dépôt, pas rejetées."""
    return ListParams(page=page, limit=limit, lang=lang, full=full)
