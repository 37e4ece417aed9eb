"""
Application principale FastAPI.

Ce module assemble les composants exposés par HTTP : middlewares, gestionnaires d'erreurs et
routes du catalogue.

Responsabilités du module:
- Initialiser le logging structuré
- Construire (ou recevoir) le conteneur de dépendances et l'attacher à `app.state`
- Ajouter les middlewares (request id, journal d'accès)
- Brancher les gestionnaires d'erreurs (enveloppe `{success, error}`)
- Monter les routers (santé, œuvres, utilisateurs)
"""

from __future__ import annotations

from fastapi import FastAPI

from heritage.api.routes_health import router as health_router
from heritage.api.routes_oeuvres import router as oeuvres_router
from heritage.api.routes_users import router as users_router
from heritage.apigw.errors import register_error_handlers
from heritage.core.container import Container
from heritage.core.logging import setup_logging
from heritage.middlewares.request_id import RequestIDMiddleware
from heritage.middlewares.timing import AccessLogMiddleware


def create_app(container: Container | None = None) -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Étapes:
    - Construit le conteneur si aucun n'est fourni (la configuration est lue à ce moment)
    - Configure le logging structuré (structlog)
    - Ajoute les middlewares utiles au debug/traçabilité
    - Publie les routes de santé, des œuvres et des utilisateurs
    """
    container = container or Container()
    settings = container.settings
    setup_logging(debug=settings.APP_DEBUG)
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG)
    app.state.container = container
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app)
    app.include_router(health_router)
    app.include_router(oeuvres_router)
    app.include_router(users_router)
    return app
