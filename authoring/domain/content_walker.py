"""Résolution des documents visés par une extension dans un cours.

Tous les documents de contenu portent une référence directe `_courseId` vers leur cours: un seul
filtre par type suffit, sans parcours récursif de l'arborescence. Seul l'emplacement `course`
désigne le document d'ancrage lui-même (`_id`).
"""

from __future__ import annotations

from collections.abc import Iterable

from authoring.domain.entities import COURSE, ExtensionDescriptor
from authoring.domain.errors import CourseNotFoundError
from authoring.infra.repositories import Document, DocumentStore

EXTENSION_FIELDS = ("_id", "_extensions", "_enabledExtensions")


class ContentHierarchyWalker:
    """Énumère les emplacements d'une extension et les documents correspondants d'un cours."""

    def __init__(self, store: DocumentStore):
        self.store = store

    @staticmethod
    def criteria_for(course_id: str, location: str) -> dict[str, str]:
        """Critère de sélection des documents de `location` appartenant au cours."""
        if location == COURSE:
            return {"_id": course_id}
        return {"_courseId": course_id}

    @staticmethod
    def locations_for(descriptor: ExtensionDescriptor) -> list[str]:
        """Emplacements déclarés par l'extension, dans l'ordre de déclaration."""
        return list(descriptor.plugin_locations.keys())

    async def documents(
        self,
        course_id: str,
        location: str,
        fields: Iterable[str] | None = EXTENSION_FIELDS,
    ) -> list[Document]:
        """Lit (avec projection) les documents de `location` rattachés au cours."""
        return await self.store.retrieve(
            location, self.criteria_for(course_id, location), fields=fields
        )

    async def require_course(self, course_id: str) -> Document:
        """Retourne le document du cours ou lève `CourseNotFoundError`."""
        found = await self.documents(course_id, COURSE, fields=("_id",))
        if not found:
            raise CourseNotFoundError(course_id)
        return found[0]
