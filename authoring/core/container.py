"""
Conteneur d'injection de dépendances et configuration application.

Instancie les composants centraux (settings, stockage de documents, synthèse, registre,
orchestrateur d'extensions, hooks de contenu) et expose un singleton `container` utilisé par le
reste de l'application.
"""

from authoring.core.settings import Settings, get_settings
from authoring.domain.content_hooks import (
    ContentCreationHook,
    ContentHooks,
    register_creation_hooks,
)
from authoring.domain.content_walker import ContentHierarchyWalker
from authoring.domain.extension_applier import ExtensionApplier
from authoring.domain.extension_registry import EnabledExtensionRegistry
from authoring.domain.plugins import ExtensionCatalog
from authoring.domain.schema_synthesizer import SchemaObjectSynthesizer, SynthesisCache
from authoring.domain.services import ContentService
from authoring.infra.repositories import DocumentStore, InMemoryDocumentStore, RedisDocumentStore


class Container:
    def __init__(self, settings: Settings | None = None, store: DocumentStore | None = None):
        self.settings = settings or get_settings()
        if store is not None:
            self.store = store
            self.storage_backend = "custom"
        elif self.settings.REDIS_URL:
            try:
                self.store = RedisDocumentStore(
                    self.settings.REDIS_URL, prefix=self.settings.REDIS_KEY_PREFIX
                )
                self.storage_backend = "redis"
            except Exception as err:
                if self.settings.REQUIRE_REDIS:
                    raise RuntimeError("Redis required but unavailable") from err
                self.store = InMemoryDocumentStore()
                self.storage_backend = "memory-fallback"
        else:
            if self.settings.REQUIRE_REDIS:
                raise RuntimeError("Redis required but REDIS_URL not set")
            self.store = InMemoryDocumentStore()
            self.storage_backend = "memory"

        # un seul cache de synthèse pour tout le processus
        self.synthesis_cache = SynthesisCache()
        self.synthesizer = SchemaObjectSynthesizer(self.synthesis_cache)
        self.registry = EnabledExtensionRegistry(self.store)
        self.catalog = ExtensionCatalog(self.store)
        self.walker = ContentHierarchyWalker(self.store)
        self.applier = ExtensionApplier(
            self.store,
            self.synthesizer,
            registry=self.registry,
            walker=self.walker,
            catalog=self.catalog,
            batch_size=self.settings.EXTENSION_UPDATE_BATCH_SIZE,
        )

        self.content_hooks = ContentHooks()
        self.creation_hook = ContentCreationHook(self.registry, self.catalog, self.synthesizer)
        register_creation_hooks(
            self.content_hooks, self.creation_hook, self.settings.CONTENT_HOOK_TYPES
        )
        self.content_service = ContentService(self.store, self.content_hooks)


container = Container()
