"""
Métriques Prometheus pour l'application.

Ce module définit les métriques Prometheus utilisées pour suivre la propagation des extensions
(activation/désactivation, documents mis à jour, hook de création) ainsi que les requêtes HTTP.
"""

import time

from fastapi import APIRouter, Request
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

metrics_router = APIRouter()

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "route", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Latency of HTTP requests", ["route"]
)

# Extension propagation
EXTENSION_TOGGLES_TOTAL = Counter(
    "extension_toggles_total",
    "Total enable/disable operations per course",
    ["action", "result"],
)
EXTENSION_DOCUMENTS_UPDATED_TOTAL = Counter(
    "extension_documents_updated_total",
    "Content documents updated by extension propagation",
    ["action", "location"],
)
EXTENSION_APPLY_LATENCY = Histogram(
    "extension_apply_latency_seconds",
    "Latency of a full enable/disable operation",
    ["action"],
)
CONTENT_HOOK_FAILURES_TOTAL = Counter(
    "content_hook_failures_total",
    "Creation hooks that could not inject extension defaults",
    ["content_type"],
)
SYNTHESIS_CACHE_TOTAL = Counter(
    "extension_synthesis_cache_total",
    "Schema synthesis cache lookups",
    ["result"],
)


def route_label(request: Request) -> str:
    """Retourne le gabarit de route (ex: `/extension/enable/{course_id}`) pour limiter la
    cardinalité des labels."""
    route = request.scope.get("route")
    path = getattr(route, "path", None)
    return path or "unmatched"


@metrics_router.get("/metrics")
def metrics():
    """
    Expose les métriques Prometheus au format texte.

    Returns:
        Response: Réponse HTTP contenant les métriques au format Prometheus.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware Prometheus pour mesurer les métriques HTTP.

    Collecte les métriques de comptage des requêtes et de latence par route pour l'exposition
    Prometheus.
    """

    async def dispatch(self, request: Request, call_next):
        """
        Traite une requête HTTP et collecte les métriques.

        Args:
            request: Requête HTTP entrante.
            call_next: Fonction pour appeler le middleware suivant.

        Returns:
            Response: Réponse HTTP avec métriques collectées.
        """
        start = time.perf_counter()
        response: Response = await call_next(request)
        route = route_label(request)
        REQUEST_COUNT.labels(request.method, route, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(route).observe(time.perf_counter() - start)
        return response
