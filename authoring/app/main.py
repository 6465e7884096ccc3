"""
Application principale FastAPI.

Ce module assemble les composants du service d'extensions : middlewares, gestion des erreurs,
routes et métriques.

Responsabilités du module:
- Initialiser le logging structuré
- Construire l'application FastAPI avec son titre/debug
- Ajouter les middlewares (request id, métriques)
- Monter les routers (santé, extensions, métriques)
"""

from __future__ import annotations

from fastapi import FastAPI

from authoring.api.routes_extension import router as extension_router
from authoring.api.routes_health import router as health_router
from authoring.apigw.errors import register_error_handlers
from authoring.app.metrics import PrometheusMiddleware, metrics_router
from authoring.core.container import container
from authoring.core.logging import setup_logging
from authoring.middlewares.request_id import RequestIDMiddleware


def create_app() -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Étapes:
    - Configure le logging structuré (structlog)
    - Lit les paramètres d'exécution
    - Ajoute les middlewares utiles au debug/traçabilité
    - Publie les routes de santé et d'extensions
    """
    settings = container.settings
    setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG)
    register_error_handlers(app)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(PrometheusMiddleware)
    app.include_router(health_router)
    app.include_router(extension_router)
    app.include_router(metrics_router)
    return app


app = create_app()
