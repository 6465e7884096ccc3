"""Registre des extensions activées par cours.

Le registre est la table `_enabledExtensions` du document `config` d'un cours:
`{clé d'extension: {_id, version, targetAttribute}}`. C'est la source de vérité de « quelle
extension est active où ».
"""

from __future__ import annotations

from typing import Any

import structlog

from authoring.domain.entities import CONFIG, EnabledExtension, ExtensionDescriptor
from authoring.domain.errors import ConfigNotFoundError
from authoring.infra.repositories import DocumentStore

EnabledMap = dict[str, dict[str, Any]]


def with_extension(enabled: EnabledMap | None, descriptor: ExtensionDescriptor) -> EnabledMap:
    """Retourne une copie du registre où `descriptor` est enregistrée (remplacée si présente)."""
    updated = dict(enabled or {})
    updated[descriptor.key] = EnabledExtension.from_descriptor(descriptor).to_document()
    return updated


def without_extension(enabled: EnabledMap | None, descriptor: ExtensionDescriptor) -> EnabledMap:
    """Retourne une copie du registre sans l'entrée de `descriptor`."""
    updated = dict(enabled or {})
    updated.pop(descriptor.key, None)
    return updated


class EnabledExtensionRegistry:
    """Accès au registre `_enabledExtensions` porté par le document `config` d'un cours."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self._log = structlog.get_logger(__name__).bind(component="extension_registry")

    async def config_document(self, course_id: str, required: bool = False) -> dict | None:
        """Charge le document de configuration du cours.

        Lève `ConfigNotFoundError` si `required` et que le document est absent.
        """
        results = await self.store.retrieve(
            CONFIG, {"_courseId": course_id}, fields=("_id", "_enabledExtensions")
        )
        if results:
            return results[0]
        if required:
            raise ConfigNotFoundError(course_id)
        self._log.info("config_not_found", course_id=course_id)
        return None

    async def get(self, course_id: str) -> EnabledMap:
        """Retourne le registre du cours (vide si la configuration est absente)."""
        config = await self.config_document(course_id)
        return dict((config or {}).get("_enabledExtensions") or {})

    async def enabled_ids(self, course_id: str) -> list[str]:
        """Identifiants des extensions activées, dans l'ordre d'énumération du registre."""
        enabled = await self.get(course_id)
        return [entry["_id"] for entry in enabled.values() if entry.get("_id")]

    async def register(self, course_id: str, descriptor: ExtensionDescriptor) -> EnabledMap:
        """Ajoute `descriptor` au registre du cours et persiste le delta."""
        config = await self.config_document(course_id, required=True)
        enabled = with_extension(config.get("_enabledExtensions"), descriptor)
        await self.store.update(CONFIG, {"_id": config["_id"]}, {"_enabledExtensions": enabled})
        return enabled

    async def unregister(self, course_id: str, descriptor: ExtensionDescriptor) -> EnabledMap:
        """Retire `descriptor` du registre du cours et persiste le delta.

        Sans document de configuration il n'y a rien à retirer.
        """
        config = await self.config_document(course_id)
        if config is None:
            return {}
        enabled = without_extension(config.get("_enabledExtensions"), descriptor)
        await self.store.update(CONFIG, {"_id": config["_id"]}, {"_enabledExtensions": enabled})
        return enabled
