"""Gestion standardisée des erreurs API avec enveloppes `{success, message}`.

Ce module traduit les erreurs du domaine des extensions en réponses HTTP:
- erreurs métier (`ExtensionError`, cours ou configuration introuvable compris) → 400;
- erreurs d'infrastructure et imprévues → 500;
- corps de requête invalide → 400.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from authoring.core.http_constants import HTTP_BAD_REQUEST, HTTP_INTERNAL_SERVER_ERROR
from authoring.domain.errors import ExtensionError, StoreFailureError

log = structlog.get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


def create_error_response(status_code: int, message: str) -> JSONResponse:
    """Create a standardized error response."""
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def status_for(exc: Exception) -> int:
    """Statut HTTP associé à une exception levée par le moteur d'extensions."""
    if isinstance(exc, ExtensionError):
        return HTTP_BAD_REQUEST
    return HTTP_INTERNAL_SERVER_ERROR


def error_response(exc: Exception) -> JSONResponse:
    """Construit la réponse d'erreur de `exc` et la journalise."""
    status_code = status_for(exc)
    if isinstance(exc, ExtensionError | StoreFailureError):
        message = str(exc)
    else:
        message = GENERIC_ERROR_MESSAGE
    log.error(
        "api_error",
        status_code=status_code,
        error_message=str(exc),
        exception_type=type(exc).__name__,
    )
    return create_error_response(status_code, message)


def handle_extension_error(request: Request, exc: ExtensionError) -> JSONResponse:
    """Handle ExtensionError exceptions with standard envelope."""
    return error_response(exc)


def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Corps de requête illisible ou mal typé: 400 avec le premier message de validation."""
    errors = exc.errors()
    message = errors[0].get("msg", "invalid payload") if errors else "invalid payload"
    log.info("request_validation_failed", path=request.url.path, errors=len(errors))
    return create_error_response(HTTP_BAD_REQUEST, message)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ExtensionError, handle_extension_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
