# ============================================================
# Module : authoring/domain/extension_applier.py
# Objet  : Activation/désactivation d'extensions sur tout un cours.
# Contexte : Pas de transaction côté stockage; un échec laisse le cours
#            partiellement mis à jour (relancer `disable` est idempotent).
# Invariants :
#  - Extensions dans l'ordre de l'appelant, emplacements dans l'ordre déclaré.
#  - Un emplacement est terminé avant de passer au suivant.
#  - Deltas partiels uniquement (`_extensions`, `_enabledExtensions` sur config).
# ============================================================
"""Orchestration de la propagation des extensions dans les documents d'un cours."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

import structlog

from authoring.app.metrics import (
    EXTENSION_APPLY_LATENCY,
    EXTENSION_DOCUMENTS_UPDATED_TOTAL,
    EXTENSION_TOGGLES_TOTAL,
)
from authoring.domain.content_walker import ContentHierarchyWalker
from authoring.domain.entities import CONFIG, ExtensionDescriptor, ToggleAction
from authoring.domain.errors import ConfigNotFoundError, InvalidArgumentError
from authoring.domain.extension_registry import (
    EnabledExtensionRegistry,
    with_extension,
    without_extension,
)
from authoring.domain.plugins import ExtensionCatalog
from authoring.domain.schema_synthesizer import SchemaObjectSynthesizer, SynthesizedPayload
from authoring.infra.repositories import Document, DocumentStore

INVALID_IDS_MESSAGE = "extensions should be an array of ids"


@dataclass
class ApplyResult:
    """Bilan d'un appel à `ExtensionApplier.apply`."""

    course_id: str
    action: ToggleAction
    applied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    documents_updated: int = 0


def normalize_extension_ids(extension_ids: Any) -> list[str]:
    """Valide la liste d'identifiants reçue et la normalise (ordre conservé, sans doublon).

    Accepte une séquence (list/tuple/set) ou un mapping dont les valeurs sont les identifiants.
    Lève `InvalidArgumentError` pour tout autre type ou une liste vide.
    """
    if isinstance(extension_ids, Mapping):
        values = list(extension_ids.values())
    elif isinstance(extension_ids, list | tuple | set | frozenset):
        values = list(extension_ids)
    else:
        raise InvalidArgumentError(INVALID_IDS_MESSAGE)

    if not values or not all(isinstance(v, str | int) and not isinstance(v, bool) for v in values):
        raise InvalidArgumentError(INVALID_IDS_MESSAGE)
    return list(dict.fromkeys(str(v) for v in values))


def parse_action(action: ToggleAction | str) -> ToggleAction:
    try:
        return ToggleAction(action)
    except ValueError as err:
        raise InvalidArgumentError(f"unknown action: {action}") from err


def build_delta(
    document: Document,
    action: ToggleAction,
    descriptor: ExtensionDescriptor,
    payload: SynthesizedPayload | Literal[False],
    is_config: bool,
) -> dict[str, Any]:
    """Calcule le delta à persister pour un document.

    - enable: `_extensions[targetAttribute]` reçoit l'objet synthétisé (écrasé si présent).
    - disable: `_extensions[targetAttribute]` est retiré si l'extension déclare des champs.
    - config: `_enabledExtensions` est mis à jour dans les deux cas.
    """
    extensions = dict(document.get("_extensions") or {})
    target = descriptor.target_attribute
    if payload is not False:
        if action is ToggleAction.ENABLE:
            extensions[target] = payload
        else:
            extensions.pop(target, None)

    delta: dict[str, Any] = {"_extensions": extensions}
    if is_config:
        enabled = document.get("_enabledExtensions")
        if action is ToggleAction.ENABLE:
            delta["_enabledExtensions"] = with_extension(enabled, descriptor)
        else:
            delta["_enabledExtensions"] = without_extension(enabled, descriptor)
    return delta


class ExtensionApplier:
    """Applique ou retire les données d'extensions sur l'ensemble des documents d'un cours.

    Paramètres:
    - store: stockage des documents.
    - synthesizer: synthèse (mémoïsée) des objets par défaut.
    - registry, walker, catalog: collaborateurs, construits sur `store` si absents.
    - batch_size: nombre maximal de mises à jour concurrentes par emplacement.
    """

    def __init__(
        self,
        store: DocumentStore,
        synthesizer: SchemaObjectSynthesizer,
        registry: EnabledExtensionRegistry | None = None,
        walker: ContentHierarchyWalker | None = None,
        catalog: ExtensionCatalog | None = None,
        batch_size: int = 100,
    ):
        self.store = store
        self.synthesizer = synthesizer
        self.registry = registry or EnabledExtensionRegistry(store)
        self.walker = walker or ContentHierarchyWalker(store)
        self.catalog = catalog or ExtensionCatalog(store)
        self.batch_size = max(1, batch_size)
        self._log = structlog.get_logger(__name__).bind(component="extension_applier")

    async def apply(
        self, course_id: str, action: ToggleAction | str, extension_ids: Any
    ) -> ApplyResult:
        """Active ou désactive `extension_ids` pour le cours `course_id`.

        La première erreur (lecture ou écriture) interrompt l'opération et est propagée; les
        documents déjà mis à jour le restent.
        """
        action = parse_action(action)
        ids = normalize_extension_ids(extension_ids)
        log = self._log.bind(course_id=course_id, action=action.value)
        started = time.perf_counter()
        status = "error"
        try:
            await self.walker.require_course(course_id)
            if action is ToggleAction.ENABLE:
                # le registre doit pouvoir être écrit avant toute mise à jour de contenu
                await self.registry.config_document(course_id, required=True)
            descriptors = await self.catalog.get_many(ids)
            found = {d.id for d in descriptors}
            outcome = ApplyResult(course_id=course_id, action=action)
            outcome.skipped = [i for i in ids if i not in found]
            if outcome.skipped:
                log.warning("extensions_not_found", extension_ids=outcome.skipped)

            for descriptor in descriptors:
                outcome.documents_updated += await self._apply_extension(
                    course_id, action, descriptor
                )
                outcome.applied.append(descriptor.key)
            status = "ok"
            log.info(
                "extensions_toggled",
                extensions=outcome.applied,
                documents_updated=outcome.documents_updated,
            )
            return outcome
        except Exception:
            log.error("extensions_toggle_failed", extension_ids=ids, exc_info=True)
            raise
        finally:
            EXTENSION_TOGGLES_TOTAL.labels(action.value, status).inc()
            EXTENSION_APPLY_LATENCY.labels(action.value).observe(time.perf_counter() - started)

    async def _apply_extension(
        self, course_id: str, action: ToggleAction, descriptor: ExtensionDescriptor
    ) -> int:
        updated = 0
        locations = self.walker.locations_for(descriptor)
        for location in locations:
            updated += await self._apply_location(course_id, action, descriptor, location)

        # le registre doit refléter l'extension même sans emplacement `config` déclaré
        if CONFIG not in locations:
            if action is ToggleAction.ENABLE:
                await self.registry.register(course_id, descriptor)
            else:
                await self.registry.unregister(course_id, descriptor)
        return updated

    async def _apply_location(
        self,
        course_id: str,
        action: ToggleAction,
        descriptor: ExtensionDescriptor,
        location: str,
    ) -> int:
        documents = await self.walker.documents(course_id, location)
        is_config = location == CONFIG
        if is_config and not documents and action is ToggleAction.ENABLE:
            raise ConfigNotFoundError(course_id)

        payload = self.synthesizer.synthesize(
            descriptor.location_schema(location), descriptor.id, descriptor.version, location
        )
        updates = [
            (doc["_id"], build_delta(doc, action, descriptor, payload, is_config))
            for doc in documents
        ]
        for start in range(0, len(updates), self.batch_size):
            batch = updates[start : start + self.batch_size]
            await asyncio.gather(
                *(self.store.update(location, {"_id": doc_id}, delta) for doc_id, delta in batch)
            )

        EXTENSION_DOCUMENTS_UPDATED_TOTAL.labels(action.value, location).inc(len(updates))
        self._log.debug(
            "extension_location_applied",
            course_id=course_id,
            extension=descriptor.key,
            location=location,
            documents=len(updates),
        )
        return len(updates)
