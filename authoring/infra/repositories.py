"""
Dépôts de documents de contenu.

Ce module fournit le stockage de documents (cours, configuration, pages, blocs, composants,
types d'extensions) derrière une interface asynchrone minimale `retrieve`/`update`/`create`, avec
une version en mémoire et une version Redis.

Critères supportés: égalité de champ et `{"$in": [...]}`. Aucune atomicité multi-documents.
"""

from __future__ import annotations

import copy
import json
import uuid
from collections.abc import Iterable, Mapping
from typing import Any, Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from authoring.domain.errors import StoreFailureError

Document = dict[str, Any]


class DocumentStore(Protocol):
    """Interface de stockage consommée par le moteur d'extensions."""

    async def retrieve(
        self,
        doc_type: str,
        criteria: Mapping[str, Any],
        fields: Iterable[str] | None = None,
    ) -> list[Document]: ...

    async def update(
        self, doc_type: str, criteria: Mapping[str, Any], delta: Mapping[str, Any]
    ) -> int: ...

    async def create(self, doc_type: str, document: Mapping[str, Any]) -> Document: ...


def matches(document: Mapping[str, Any], criteria: Mapping[str, Any]) -> bool:
    """Indique si `document` satisfait tous les critères."""
    for field, expected in criteria.items():
        value = document.get(field)
        if isinstance(expected, Mapping) and "$in" in expected:
            if value not in list(expected["$in"]):
                return False
        elif value != expected:
            return False
    return True


def project(document: Mapping[str, Any], fields: Iterable[str] | None) -> Document:
    """Retourne une copie de `document` réduite aux champs demandés (tous si None)."""
    if fields is None:
        return copy.deepcopy(dict(document))
    wanted = set(fields) | {"_id"}
    return {k: copy.deepcopy(v) for k, v in document.items() if k in wanted}


class InMemoryDocumentStore:
    """
    Dépôt de documents en mémoire (utilisé pour dev/tests).

    Stocke les documents par type dans des dicts locaux, non persistants. Les documents retournés
    sont des copies: les modifier n'altère pas le dépôt.
    """

    def __init__(self, initial: Mapping[str, Iterable[Mapping[str, Any]]] | None = None):
        """Initialise la base mémoire, éventuellement pré-remplie par type de document."""
        self._db: dict[str, dict[str, Document]] = {}
        for doc_type, documents in (initial or {}).items():
            for document in documents:
                self._insert(doc_type, document)

    def _insert(self, doc_type: str, document: Mapping[str, Any]) -> Document:
        record = copy.deepcopy(dict(document))
        record.setdefault("_id", uuid.uuid4().hex)
        self._db.setdefault(doc_type, {})[str(record["_id"])] = record
        return record

    async def retrieve(
        self,
        doc_type: str,
        criteria: Mapping[str, Any],
        fields: Iterable[str] | None = None,
    ) -> list[Document]:
        """Retourne les documents de `doc_type` correspondant aux critères."""
        docs = self._db.get(doc_type, {}).values()
        return [project(d, fields) for d in docs if matches(d, criteria)]

    async def update(
        self, doc_type: str, criteria: Mapping[str, Any], delta: Mapping[str, Any]
    ) -> int:
        """Applique le delta (champs de premier niveau) aux documents correspondants."""
        updated = 0
        for document in self._db.get(doc_type, {}).values():
            if matches(document, criteria):
                document.update(copy.deepcopy(dict(delta)))
                updated += 1
        return updated

    async def create(self, doc_type: str, document: Mapping[str, Any]) -> Document:
        """Enregistre un nouveau document et le renvoie (avec `_id` attribué si absent)."""
        return copy.deepcopy(self._insert(doc_type, document))


def encode_fields(document: Mapping[str, Any]) -> dict[str, str]:
    """Encode chaque champ de premier niveau en JSON (une entrée de hash Redis par champ)."""
    return {field: json.dumps(value) for field, value in document.items()}


def decode_fields(row: Mapping[str, str]) -> Document:
    return {field: json.loads(raw) for field, raw in row.items()}


class RedisDocumentStore:
    """Dépôt de documents adossé à Redis.

    Clés: `{prefix}:doc:{type}:{id}` (hash, un champ JSON par attribut de premier niveau) et
    `{prefix}:docs:{type}` (ensemble des ids). Les lectures filtrent côté client; une mise à jour
    n'écrit (`HSET`) que les champs du delta, les autres champs restent intacts même s'ils ont
    été modifiés entre la lecture et l'écriture.
    """

    def __init__(self, url: str, prefix: str = "authoring", client: Any | None = None):
        """Crée un client Redis asynchrone à partir de l'URL fournie."""
        self.client = client or aioredis.from_url(url, decode_responses=True)
        self.prefix = prefix

    def _doc_key(self, doc_type: str, doc_id: str) -> str:
        return f"{self.prefix}:doc:{doc_type}:{doc_id}"

    def _index_key(self, doc_type: str) -> str:
        return f"{self.prefix}:docs:{doc_type}"

    async def _candidate_ids(self, doc_type: str, criteria: Mapping[str, Any]) -> list[str]:
        wanted = criteria.get("_id")
        if isinstance(wanted, Mapping) and "$in" in wanted:
            return [str(i) for i in wanted["$in"]]
        if wanted is not None and not isinstance(wanted, Mapping):
            return [str(wanted)]
        return sorted(await self.client.smembers(self._index_key(doc_type)))

    async def _load(self, doc_type: str, criteria: Mapping[str, Any]) -> list[Document]:
        ids = await self._candidate_ids(doc_type, criteria)
        if not ids:
            return []
        pipe = self.client.pipeline(transaction=False)
        for doc_id in ids:
            pipe.hgetall(self._doc_key(doc_type, doc_id))
        rows = await pipe.execute()
        docs = (decode_fields(row) for row in rows if row)
        return [d for d in docs if matches(d, criteria)]

    async def retrieve(
        self,
        doc_type: str,
        criteria: Mapping[str, Any],
        fields: Iterable[str] | None = None,
    ) -> list[Document]:
        """Charge et désérialise les documents correspondant aux critères."""
        try:
            docs = await self._load(doc_type, criteria)
        except RedisError as err:
            raise StoreFailureError(f"retrieve {doc_type} failed: {err}") from err
        return [project(d, fields) for d in docs]

    async def update(
        self, doc_type: str, criteria: Mapping[str, Any], delta: Mapping[str, Any]
    ) -> int:
        """Écrit les seuls champs du delta sur chaque document correspondant."""
        try:
            docs = await self._load(doc_type, criteria)
            if docs and delta:
                encoded = encode_fields(delta)
                pipe = self.client.pipeline(transaction=False)
                for document in docs:
                    pipe.hset(self._doc_key(doc_type, str(document["_id"])), mapping=encoded)
                await pipe.execute()
        except RedisError as err:
            raise StoreFailureError(f"update {doc_type} failed: {err}") from err
        return len(docs)

    async def create(self, doc_type: str, document: Mapping[str, Any]) -> Document:
        """Stocke le document champ par champ et met à jour l'index du type."""
        record = dict(document)
        record.setdefault("_id", uuid.uuid4().hex)
        doc_id = str(record["_id"])
        try:
            pipe = self.client.pipeline()
            pipe.hset(self._doc_key(doc_type, doc_id), mapping=encode_fields(record))
            pipe.sadd(self._index_key(doc_type), doc_id)
            await pipe.execute()
        except RedisError as err:
            raise StoreFailureError(f"create {doc_type} failed: {err}") from err
        return record

    async def close(self) -> None:
        await self.client.aclose()
