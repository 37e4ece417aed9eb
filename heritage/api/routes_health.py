"""
Endpoint de santé pour vérifier la disponibilité de l'API et du stockage.

Expose `/health` pour signaler l'état général de l'application et le moteur de base utilisé.
"""

from fastapi import APIRouter, Depends

from heritage.api.deps import get_container
from heritage.core.container import Container

router = APIRouter(tags=["health"])


@router.get("/health")
def health(container: Container = Depends(get_container)):
    """Vérifie la disponibilité de l'API et le backend de stockage."""
    return {
        "status": "ok",
        "storage": getattr(container, "storage_backend", "unknown"),
        "default_language": container.settings.DEFAULT_LANGUAGE,
    }
