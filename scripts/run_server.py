"""
Script de serveur de développement.

Lance l'API d'extensions avec la configuration courante (stockage en mémoire si `REDIS_URL`
n'est pas défini).
"""

import uvicorn

from authoring.app.main import app
from authoring.core.container import container


def main():
    """Point d'entrée principal: démarre uvicorn sur `APP_HOST:APP_PORT`."""
    settings = container.settings
    uvicorn.run(app, host=settings.APP_HOST, port=settings.APP_PORT, reload=False)


if __name__ == "__main__":
    main()
