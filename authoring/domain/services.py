from typing import Any

from authoring.domain.content_hooks import ContentHooks
from authoring.infra.repositories import DocumentStore


class ContentService:
    """Service de création de contenus passant par les hooks `create`.

    Responsabilités:
    - Exécuter les hooks enregistrés pour le type de contenu (ex: injection des extensions).
    - Persister le brouillon résultant via `store`.
    """

    def __init__(self, store: DocumentStore, hooks: ContentHooks):
        """Initialise le service avec ses dépendances.

        Paramètres:
        - store: stockage des documents de contenu.
        - hooks: registre des hooks de cycle de vie.
        """
        self.store = store
        self.hooks = hooks

    async def create(self, content_type: str, document: dict[str, Any]) -> dict[str, Any]:
        """Crée un document de `content_type` après passage dans les hooks `create`.

        Retour: le document tel que persisté (avec `_id`).
        """
        data = await self.hooks.run("create", content_type, [dict(document)])
        return await self.store.create(content_type, data[0])
