"""
Routes d'activation et de désactivation des extensions d'un cours.

Ce module regroupe les endpoints `/extension` qui propagent (ou retirent) les données d'une
extension dans tous les documents d'un cours, et celui qui expose le registre des extensions
activées pour permettre au client de relire l'état après un échec partiel.
"""

from fastapi import APIRouter

from authoring.api.schemas import EnabledExtensionsResponse, ToggleRequest, ToggleResponse
from authoring.apigw.errors import create_error_response, error_response
from authoring.core.container import container
from authoring.core.http_constants import HTTP_NOT_FOUND
from authoring.domain.entities import ToggleAction
from authoring.domain.extension_applier import INVALID_IDS_MESSAGE

router = APIRouter(prefix="/extension", tags=["extension"])


async def _toggle(course_id: str, action: ToggleAction, payload: ToggleRequest | None):
    extensions = payload.extensions if payload else None
    if not isinstance(extensions, list | dict):
        return create_error_response(HTTP_NOT_FOUND, INVALID_IDS_MESSAGE)
    try:
        await container.applier.apply(course_id, action, extensions)
    except Exception as exc:
        return error_response(exc)
    return {"success": True}


@router.post("/enable/{course_id}", response_model=ToggleResponse)
async def enable_extensions(course_id: str, payload: ToggleRequest | None = None):
    """
    Ajoute les données par défaut des extensions aux contenus du cours.

    Paramètres:
    - course_id: identifiant du cours.
    - payload: `{"extensions": [id, ...]}`.

    Retour: `{"success": true}`; 404 si `extensions` est absent ou n'est pas une liste.
    """
    return await _toggle(course_id, ToggleAction.ENABLE, payload)


@router.post("/disable/{course_id}", response_model=ToggleResponse)
async def disable_extensions(course_id: str, payload: ToggleRequest | None = None):
    """
    Retire les données des extensions des contenus du cours.

    Paramètres:
    - course_id: identifiant du cours.
    - payload: `{"extensions": [id, ...]}`.

    Retour: `{"success": true}`; 404 si `extensions` est absent ou n'est pas une liste.
    """
    return await _toggle(course_id, ToggleAction.DISABLE, payload)


@router.get("/enabled/{course_id}", response_model=EnabledExtensionsResponse)
async def enabled_extensions(course_id: str):
    """Retourne le registre `_enabledExtensions` du cours (vide si non configuré)."""
    try:
        enabled = await container.registry.get(course_id)
    except Exception as exc:
        return error_response(exc)
    return {"success": True, "enabled": enabled}
