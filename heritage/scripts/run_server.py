"""
Script de serveur de développement.

Construit le conteneur à partir de la configuration courante, amorce éventuellement les données de
référence puis sert l'application avec uvicorn.
"""

import argparse
import os

import uvicorn

from heritage.app.main import create_app
from heritage.core.container import Container
from heritage.scripts.seed_reference import seed_reference


def main():
    """
    Point d'entrée principal du serveur de développement.

    Avec `--seed`, les types d'œuvre et catégories de base sont insérés avant le démarrage.
    """
    parser = argparse.ArgumentParser(description="Serveur de développement du catalogue")
    parser.add_argument("--seed", action="store_true", help="Amorcer les données de référence")
    parser.add_argument("--host", default="0.0.0.0")
    args = parser.parse_args()

    container = Container()
    if args.seed:
        seed_reference(container)
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(create_app(container), host=args.host, port=port, reload=False)


if __name__ == "__main__":
    main()
