"""Hooks de cycle de vie des contenus et injection des extensions à la création.

`ContentHooks` est le registre de callbacks de la couche de gestion de contenu: chaque hook
reçoit les arguments de création et retourne la même forme. `ContentCreationHook` y est
enregistré pour les types `contentobject`, `article`, `block` et `component`.
"""

from __future__ import annotations

import functools
from collections import defaultdict
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

import structlog

from authoring.app.metrics import CONTENT_HOOK_FAILURES_TOTAL
from authoring.domain.extension_registry import EnabledExtensionRegistry
from authoring.domain.plugins import ExtensionCatalog
from authoring.domain.schema_synthesizer import SchemaObjectSynthesizer

HookCallback = Callable[[list[Any]], Awaitable[list[Any]]]

DEFAULT_HOOK_TYPES = ("contentobject", "article", "block", "component")


class ContentHooks:
    """Registre des hooks par (type de hook, type de contenu)."""

    def __init__(self) -> None:
        self._hooks: dict[tuple[str, str], list[HookCallback]] = defaultdict(list)

    def add_content_hook(self, hook_type: str, content_type: str, callback: HookCallback) -> None:
        self._hooks[(hook_type, content_type)].append(callback)

    def hooks_for(self, hook_type: str, content_type: str) -> list[HookCallback]:
        return list(self._hooks.get((hook_type, content_type), ()))

    async def run(self, hook_type: str, content_type: str, data: list[Any]) -> list[Any]:
        """Exécute les hooks dans l'ordre d'enregistrement, chacun recevant le résultat du
        précédent."""
        for callback in self.hooks_for(hook_type, content_type):
            data = await callback(data)
        return data


class ContentCreationHook:
    """Pré-remplit `_extensions` d'un brouillon de contenu avec les extensions du cours.

    L'injection est « best effort »: une erreur de lecture est journalisée et les arguments sont
    rendus intacts, la création du contenu n'est jamais bloquée.
    """

    def __init__(
        self,
        registry: EnabledExtensionRegistry,
        catalog: ExtensionCatalog,
        synthesizer: SchemaObjectSynthesizer,
    ):
        self.registry = registry
        self.catalog = catalog
        self.synthesizer = synthesizer
        self._log = structlog.get_logger(__name__).bind(component="content_creation_hook")

    async def __call__(self, content_type: str, data: list[Any]) -> list[Any]:
        """Retourne `data` avec `data[0]["_extensions"]` reconstruit pour `content_type`."""
        if not data or not isinstance(data[0], dict):
            return data
        draft = data[0]
        course_id = draft.get("_courseId")
        if not course_id:
            # cours inconnu: rien à injecter
            return data

        try:
            # sans document `config`, aucune extension n'est activée
            config = await self.registry.config_document(course_id) or {}
            enabled = config.get("_enabledExtensions") or {}
            ids = [entry["_id"] for entry in enabled.values() if entry.get("_id")]
            descriptors = await self.catalog.get_many(ids)
        except Exception as exc:
            CONTENT_HOOK_FAILURES_TOTAL.labels(content_type).inc()
            self._log.error(
                "extensions_load_failed",
                course_id=course_id,
                content_type=content_type,
                error=str(exc),
            )
            return data

        extensions: dict[str, Any] = {}
        for descriptor in descriptors:
            payload = self.synthesizer.synthesize(
                descriptor.location_schema(content_type),
                descriptor.id,
                descriptor.version,
                content_type,
            )
            if payload is not False:
                extensions[descriptor.target_attribute] = payload

        data = list(data)
        data[0] = {**draft, "_extensions": extensions}
        return data


def register_creation_hooks(
    hooks: ContentHooks,
    creation_hook: ContentCreationHook,
    content_types: Iterable[str] = DEFAULT_HOOK_TYPES,
) -> None:
    """Enregistre `creation_hook` comme hook `create` de chaque type de contenu."""
    for content_type in content_types:
        hooks.add_content_hook("create", content_type, functools.partial(creation_hook, content_type))
