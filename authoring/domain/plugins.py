"""Types de plugins empaquetés et source des descripteurs d'extensions.

Un `PackagePluginKind` décrit une famille de paquets versionnés (ici les extensions). Le moteur
d'extensions ne dépend que de `ExtensionCatalog`, qui lit les descripteurs du type de plugin dans
le stockage; l'installation et la mise à jour des paquets restent hors de ce module.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

import structlog
from pydantic import ValidationError

from authoring.domain.entities import ExtensionDescriptor
from authoring.infra.repositories import DocumentStore


@dataclass(frozen=True)
class PackagePluginKind:
    """Famille de plugins distribués sous forme de paquets versionnés."""

    plugin_type: str
    model_name: str
    keywords: str
    package_type: str
    bundled: tuple[str, ...] = field(default_factory=tuple)


EXTENSION_PLUGIN = PackagePluginKind(
    plugin_type="extensiontype",
    model_name="extension",
    keywords="adapt-extension",
    package_type="extension",
    bundled=(
        "adapt-contrib-assessment#develop",
        "adapt-contrib-pageLevelProgress#develop",
        "adapt-contrib-resources#develop",
        "adapt-contrib-spoor#develop",
        "adapt-contrib-trickle#develop",
        "adapt-contrib-tutor#develop",
    ),
)


class ExtensionCatalog:
    """Lecture des descripteurs d'extensions installées.

    Les descripteurs ne sont jamais mis en cache: chaque appel relit le stockage.
    """

    def __init__(self, store: DocumentStore, kind: PackagePluginKind = EXTENSION_PLUGIN):
        self.store = store
        self.kind = kind
        self._log = structlog.get_logger(__name__).bind(component="extension_catalog")

    def _parse(self, documents: list[dict]) -> list[ExtensionDescriptor]:
        descriptors = []
        for document in documents:
            try:
                descriptors.append(ExtensionDescriptor.model_validate(document))
            except ValidationError as err:
                self._log.warning(
                    "extension_descriptor_invalid",
                    extension_id=document.get("_id"),
                    errors=err.error_count(),
                )
        return descriptors

    async def get_many(self, ids: Sequence[str]) -> list[ExtensionDescriptor]:
        """Charge les descripteurs `ids` en une lecture, dans l'ordre demandé.

        Les identifiants inconnus sont absents du résultat.
        """
        if not ids:
            return []
        documents = await self.store.retrieve(self.kind.plugin_type, {"_id": {"$in": list(ids)}})
        by_id = {d.id: d for d in self._parse(documents)}
        return [by_id[i] for i in dict.fromkeys(ids) if i in by_id]

    async def list_all(self) -> list[ExtensionDescriptor]:
        """Retourne toutes les extensions installées."""
        return self._parse(await self.store.retrieve(self.kind.plugin_type, {}))
