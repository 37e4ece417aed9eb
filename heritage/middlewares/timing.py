"""Middleware Starlette de journal d'accès.

Chaque requête produit un évènement structlog `request_completed` (méthode, chemin, statut, durée)
et la durée de traitement est renvoyée dans l'en-tête `X-Process-Time-ms`.
"""

import time
from collections.abc import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from heritage.core.logging import get_logger

log = get_logger(__name__)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Mesure et journalise la durée de traitement des requêtes."""

    def __init__(self, app: ASGIApp, header_name: str = "X-Process-Time-ms") -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next: Callable):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = int((time.perf_counter() - start) * 1000)
        response.headers[self.header_name] = str(duration_ms)
        log.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=duration_ms,
        )
        return response
