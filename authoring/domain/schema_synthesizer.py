# ============================================================
# Module : authoring/domain/schema_synthesizer.py
# Objet  : Objet par défaut synthétisé depuis le schéma d'une extension.
# Invariants :
#  - Même (extension, version, emplacement) => même structure.
#  - Les résultats retournés ne sont jamais partagés avec le cache.
# ============================================================
"""Synthèse d'objets par défaut à partir d'un sous-ensemble de JSON Schema.

Seuls les types `boolean`, `integer`, `number`, `string`, `array` et `object` sont reconnus. Il
ne s'agit pas d'un validateur: un nœud inconnu ou mal formé est simplement ignoré.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any, Literal, NamedTuple

import structlog

from authoring.app.metrics import SYNTHESIS_CACHE_TOTAL

SCALAR_TYPES = frozenset({"boolean", "integer", "number", "string"})

SynthesizedPayload = dict[str, Any]


class SynthesisKey(NamedTuple):
    """Clé de mémoïsation d'une synthèse."""

    extension_id: str
    version: str
    location: str

    def __str__(self) -> str:
        return f"{self.extension_id}#{self.version}/{self.location}"


class SynthesisCache:
    """Cache des objets synthétisés, partagé par les appelants qui l'injectent.

    Politique d'éviction: aucune, le cache vit autant que le processus. Les clés sont dérivées
    d'entrées immuables (une version d'extension ne change pas de schéma), aucune invalidation
    n'est donc nécessaire pour la correction.
    """

    def __init__(self) -> None:
        self._entries: dict[SynthesisKey, SynthesizedPayload] = {}

    def get(self, key: SynthesisKey) -> SynthesizedPayload | None:
        return self._entries.get(key)

    def put(self, key: SynthesisKey, payload: SynthesizedPayload) -> None:
        self._entries[key] = payload

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class SchemaObjectSynthesizer:
    """Construit l'objet par défaut d'une extension pour un emplacement donné.

    Paramètres:
    - cache: `SynthesisCache` injecté; un cache privé est créé si absent.
    """

    def __init__(self, cache: SynthesisCache | None = None) -> None:
        self.cache = cache if cache is not None else SynthesisCache()
        self._log = structlog.get_logger(__name__).bind(component="schema_synthesizer")

    def synthesize(
        self,
        schema: Mapping[str, Any] | None,
        extension_id: str,
        version: str,
        location: str,
    ) -> SynthesizedPayload | Literal[False]:
        """Retourne l'objet par défaut décrit par `schema`, ou False si aucun champ n'est déclaré.

        Paramètres:
        - schema: table `properties` déclarée par l'extension pour `location`.
        - extension_id, version, location: composantes de la clé de mémoïsation.

        Retour: une copie indépendante de l'objet synthétisé.
        """
        if not schema:
            return False

        key = SynthesisKey(str(extension_id), str(version), location)
        cached = self.cache.get(key)
        if cached is not None:
            SYNTHESIS_CACHE_TOTAL.labels("hit").inc()
            return copy.deepcopy(cached)

        SYNTHESIS_CACHE_TOTAL.labels("miss").inc()
        payload = self._walk(schema, path=str(key))
        self.cache.put(key, payload)
        return copy.deepcopy(payload)

    def _walk(self, properties: Any, path: str) -> SynthesizedPayload:
        child: SynthesizedPayload = {}
        if not isinstance(properties, Mapping):
            return child
        for name, node in properties.items():
            if not isinstance(node, Mapping):
                self._log.debug("schema_node_skipped", path=f"{path}.{name}", reason="not_a_mapping")
                continue
            node_type = node.get("type")
            if node_type in SCALAR_TYPES:
                child[name] = copy.deepcopy(node["default"]) if "default" in node else None
            elif node_type == "array":
                child[name] = []
            elif node_type == "object":
                child[name] = self._walk(node.get("properties"), f"{path}.{name}")
            else:
                self._log.debug("schema_node_skipped", path=f"{path}.{name}", type=node_type)
        return child
