"""
Tests pour l'activation/désactivation des extensions sur un cours.

Ce module teste la propagation des données d'extensions dans tous les documents d'un cours,
l'idempotence de l'activation, la complétude de la désactivation, l'ordre d'application, la
validation des entrées et la propagation des erreurs de stockage.
"""

from __future__ import annotations

import asyncio
from unittest.mock import Mock

import pytest

from authoring.domain.entities import ExtensionDescriptor, ToggleAction
from authoring.domain.errors import (
    ConfigNotFoundError,
    CourseNotFoundError,
    InvalidArgumentError,
    StoreFailureError,
)
from authoring.domain.extension_applier import (
    ExtensionApplier,
    build_delta,
    normalize_extension_ids,
)
from authoring.domain.schema_synthesizer import SchemaObjectSynthesizer
from authoring.infra.repositories import InMemoryDocumentStore
from tests.fakes import (
    COURSE_ID,
    EXTENSION_E,
    EXTENSION_TRICKLE,
    FailingStore,
    RecordingStore,
    seed_documents,
)

E_ENTRY = {"_id": "ext-e", "version": "1.0", "targetAttribute": "E_data"}
EXPECTED_COMPONENTS = 2
EXPECTED_TRICKLE_DOCUMENTS = 4


async def _by_id(store, doc_type: str) -> dict[str, dict]:
    return {d["_id"]: d for d in await store.retrieve(doc_type, {})}


async def _config(store, course_id: str = COURSE_ID) -> dict:
    return (await store.retrieve("config", {"_courseId": course_id}))[0]


@pytest.mark.asyncio
async def test_enable_then_disable_scenario(test_container, store) -> None:
    """Teste le scénario complet E/C/c1/c2: activation puis désactivation."""
    applier = test_container.applier

    result = await applier.apply(COURSE_ID, "enable", ["ext-e"])
    assert result.applied == ["E"]
    assert result.documents_updated == EXPECTED_COMPONENTS

    components = await _by_id(store, "component")
    assert components["c1"]["_extensions"]["E_data"] == {"enabled": None}
    assert components["c2"]["_extensions"]["E_data"] == {"enabled": None}
    assert "_extensions" not in components["d1"]
    assert components["c1"]["body"] == "one"
    assert (await _config(store))["_enabledExtensions"]["E"] == E_ENTRY

    await applier.apply(COURSE_ID, ToggleAction.DISABLE, ["ext-e"])
    components = await _by_id(store, "component")
    assert "E_data" not in components["c1"]["_extensions"]
    assert "E_data" not in components["c2"]["_extensions"]
    assert "E" not in (await _config(store))["_enabledExtensions"]


@pytest.mark.asyncio
async def test_enable_is_idempotent(test_container, store) -> None:
    """Teste qu'activer deux fois donne le même état qu'une seule activation."""
    await store.update("component", {"_id": "c1"}, {"_extensions": {"other": {"x": 1}}})
    await test_container.applier.apply(COURSE_ID, "enable", ["ext-e", "ext-trickle"])
    once = (await _by_id(store, "component"), await _by_id(store, "config"))

    await test_container.applier.apply(COURSE_ID, "enable", ["ext-e", "ext-trickle"])
    twice = (await _by_id(store, "component"), await _by_id(store, "config"))

    assert twice == once
    assert once[0]["c1"]["_extensions"] == {"other": {"x": 1}, "E_data": {"enabled": None}}
    assert list(once[1]["cfg-C"]["_enabledExtensions"]) == ["E", "trickle"]


@pytest.mark.asyncio
async def test_enable_overwrites_existing_target_attribute(test_container, store) -> None:
    """Teste que l'objet synthétisé écrase une valeur existante sous l'attribut cible."""
    await store.update("component", {"_id": "c1"}, {"_extensions": {"E_data": {"stale": True}}})
    await test_container.applier.apply(COURSE_ID, "enable", ["ext-e"])
    assert (await _by_id(store, "component"))["c1"]["_extensions"]["E_data"] == {"enabled": None}


@pytest.mark.asyncio
async def test_trickle_covers_every_declared_location(test_container, store) -> None:
    """Teste une extension déclarant config, contentobject, article et block."""
    result = await test_container.applier.apply(COURSE_ID, "enable", ["ext-trickle"])
    assert result.documents_updated == EXPECTED_TRICKLE_DOCUMENTS

    config = await _config(store)
    assert config["_extensions"]["_trickle"] == {"_isEnabled": True}
    assert config["_enabledExtensions"]["trickle"] == {
        "_id": "ext-trickle",
        "version": "2.1.0",
        "targetAttribute": "_trickle",
    }
    page = (await _by_id(store, "contentobject"))["co1"]
    assert page["_extensions"]["_trickle"] == {
        "_isEnabled": False,
        "_button": {"text": "Continue", "_order": 0},
    }
    assert (await _by_id(store, "article"))["a1"]["_extensions"] == {"_trickle": {"_steps": []}}
    # `block` déclare un schéma sans champ: rien n'est ajouté
    assert (await _by_id(store, "block"))["b1"]["_extensions"] == {}
    # les composants ne sont pas visés
    assert "_extensions" not in (await _by_id(store, "component"))["c1"]


@pytest.mark.asyncio
async def test_disable_is_complete_and_idempotent(test_container, store) -> None:
    """Teste qu'après désactivation aucun document du cours ne conserve l'attribut cible."""
    applier = test_container.applier
    await applier.apply(COURSE_ID, "enable", ["ext-trickle", "ext-e"])
    await applier.apply(COURSE_ID, "disable", ["ext-trickle"])
    await applier.apply(COURSE_ID, "disable", ["ext-trickle"])

    for doc_type in ("config", "contentobject", "article", "block", "component"):
        for document in await store.retrieve(doc_type, {"_courseId": COURSE_ID}):
            assert "_trickle" not in (document.get("_extensions") or {})
    enabled = (await _config(store))["_enabledExtensions"]
    assert enabled == {"E": E_ENTRY}


@pytest.mark.asyncio
async def test_registry_written_once_for_config_location() -> None:
    """Teste que le registre est mis à jour par l'emplacement `config` sans écriture en double."""
    store = RecordingStore(seed_documents())
    applier = ExtensionApplier(store, SchemaObjectSynthesizer())
    await applier.apply(COURSE_ID, "enable", ["ext-trickle"])
    assert store.updates().count(("config", "cfg-C")) == 1


@pytest.mark.asyncio
async def test_extensions_apply_in_caller_order() -> None:
    """Teste l'ordre: extensions dans l'ordre de l'appelant, emplacements en série."""
    store = RecordingStore(seed_documents())
    applier = ExtensionApplier(store, SchemaObjectSynthesizer())
    await applier.apply(COURSE_ID, "enable", ["ext-trickle", "ext-e"])

    locations = [t for t, _ in store.updates()]
    assert locations == [
        "config",
        "contentobject",
        "article",
        "block",
        "component",
        "component",
        "config",
    ]


@pytest.mark.asyncio
async def test_shared_target_attribute_last_extension_wins(store) -> None:
    """Teste que deux extensions partageant un attribut cible s'appliquent en série."""
    applier = ExtensionApplier(store, SchemaObjectSynthesizer())
    await applier.apply(COURSE_ID, "enable", ["ext-e", "ext-e-rival"])
    assert (await _by_id(store, "component"))["c1"]["_extensions"]["E_data"] == {
        "variant": "rival"
    }

    await applier.apply(COURSE_ID, "enable", ["ext-e-rival", "ext-e"])
    assert (await _by_id(store, "component"))["c1"]["_extensions"]["E_data"] == {
        "enabled": None
    }


@pytest.mark.asyncio
async def test_unknown_extension_ids_are_skipped(test_container, store) -> None:
    """Teste que les identifiants inconnus sont ignorés et signalés."""
    result = await test_container.applier.apply(COURSE_ID, "enable", ["nope", "ext-e"])
    assert result.skipped == ["nope"]
    assert result.applied == ["E"]


@pytest.mark.asyncio
async def test_mapping_of_ids_is_accepted(test_container, store) -> None:
    """Teste qu'un objet dont les valeurs sont des identifiants est accepté."""
    result = await test_container.applier.apply(COURSE_ID, "enable", {"0": "ext-e"})
    assert result.applied == ["E"]


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_ids", [[], {}, None, "ext-e", 42, [None], [True], [{"id": 1}]])
async def test_invalid_ids_fail_before_any_io(bad_ids) -> None:
    """Teste la validation de la liste d'identifiants avant tout accès au stockage."""
    store = Mock()
    applier = ExtensionApplier(store, SchemaObjectSynthesizer())
    with pytest.raises(InvalidArgumentError):
        await applier.apply(COURSE_ID, "enable", bad_ids)
    store.retrieve.assert_not_called()
    store.update.assert_not_called()


@pytest.mark.asyncio
async def test_unknown_action_is_invalid() -> None:
    """Teste le rejet d'une action autre que enable/disable."""
    applier = ExtensionApplier(Mock(), SchemaObjectSynthesizer())
    with pytest.raises(InvalidArgumentError):
        await applier.apply(COURSE_ID, "toggle", ["ext-e"])


@pytest.mark.asyncio
async def test_missing_course_is_a_hard_failure(test_container) -> None:
    """Teste qu'un cours inexistant fait échouer l'opération."""
    with pytest.raises(CourseNotFoundError):
        await test_container.applier.apply("missing", "enable", ["ext-e"])


@pytest.mark.asyncio
async def test_enable_without_config_document_fails() -> None:
    """Teste qu'une activation sans document `config` échoue (registre impossible)."""
    seed = seed_documents()
    seed["config"] = []
    store = RecordingStore(seed)
    applier = ExtensionApplier(store, SchemaObjectSynthesizer())
    with pytest.raises(ConfigNotFoundError):
        await applier.apply(COURSE_ID, "enable", ["ext-trickle"])
    with pytest.raises(ConfigNotFoundError):
        await applier.apply(COURSE_ID, "enable", ["ext-e"])

    # échec détecté avant toute écriture: aucun contenu ne porte de données orphelines
    assert store.updates() == []
    for component in await store.retrieve("component", {"_courseId": COURSE_ID}):
        assert "_extensions" not in component


@pytest.mark.asyncio
async def test_disable_without_config_document_cleans_content() -> None:
    """Teste qu'une désactivation sans document `config` nettoie tout de même les contenus."""
    seed = seed_documents()
    seed["config"] = []
    seed["component"][0]["_extensions"] = {"E_data": {"enabled": None}}
    store = InMemoryDocumentStore(seed)
    result = await ExtensionApplier(store, SchemaObjectSynthesizer()).apply(
        COURSE_ID, "disable", ["ext-e"]
    )
    assert result.applied == ["E"]
    assert (await _by_id(store, "component"))["c1"]["_extensions"] == {}


@pytest.mark.asyncio
async def test_update_failure_aborts_without_rollback_and_disable_heals() -> None:
    """Teste qu'un échec d'écriture interrompt l'opération, puis qu'un disable répare l'état."""
    store = FailingStore(seed_documents(), fail_update_ids={"c2"})
    applier = ExtensionApplier(store, SchemaObjectSynthesizer())

    with pytest.raises(StoreFailureError):
        await applier.apply(COURSE_ID, "enable", ["ext-e"])
    components = await _by_id(store, "component")
    assert components["c1"]["_extensions"]["E_data"] == {"enabled": None}
    assert "E" not in ((await _config(store)).get("_enabledExtensions") or {})

    store.fail_update_ids.clear()
    await applier.apply(COURSE_ID, "disable", ["ext-e"])
    assert "E_data" not in (await _by_id(store, "component"))["c1"]["_extensions"]


@pytest.mark.asyncio
async def test_retrieve_failure_aborts() -> None:
    """Teste qu'un échec de lecture interrompt l'opération."""
    store = FailingStore(seed_documents(), fail_retrieve={"component"})
    applier = ExtensionApplier(store, SchemaObjectSynthesizer())
    with pytest.raises(StoreFailureError):
        await applier.apply(COURSE_ID, "enable", ["ext-e"])


class _InFlightStore(InMemoryDocumentStore):
    def __init__(self, initial):
        super().__init__(initial)
        self.in_flight = 0
        self.peak = 0

    async def update(self, doc_type, criteria, delta):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0)
            return await super().update(doc_type, criteria, delta)
        finally:
            self.in_flight -= 1


@pytest.mark.asyncio
@pytest.mark.parametrize(("batch_size", "expected_peak"), [(100, 2), (1, 1)])
async def test_document_updates_run_concurrently_per_batch(batch_size, expected_peak) -> None:
    """Teste que les mises à jour d'un emplacement sont concurrentes, bornées par le lot."""
    store = _InFlightStore(seed_documents())
    applier = ExtensionApplier(store, SchemaObjectSynthesizer(), batch_size=batch_size)
    result = await applier.apply(COURSE_ID, "enable", ["ext-e"])
    assert result.documents_updated == EXPECTED_COMPONENTS
    assert store.peak == expected_peak


def test_normalize_extension_ids_deduplicates_in_order() -> None:
    """Teste la normalisation des identifiants (ordre conservé, doublons retirés)."""
    assert normalize_extension_ids(["b", "a", "b", 3]) == ["b", "a", "3"]


def test_build_delta_disable_without_payload_keeps_extensions() -> None:
    """Teste qu'un schéma sans champ ne retire rien à la désactivation."""
    descriptor = ExtensionDescriptor.model_validate(EXTENSION_E)
    document = {"_id": "x", "_extensions": {"E_data": {"kept": True}}}
    delta = build_delta(document, ToggleAction.DISABLE, descriptor, False, is_config=False)
    assert delta == {"_extensions": {"E_data": {"kept": True}}}


def test_build_delta_config_updates_registry() -> None:
    """Teste que le delta du document `config` porte aussi `_enabledExtensions`."""
    descriptor = ExtensionDescriptor.model_validate(EXTENSION_TRICKLE)
    document = {"_id": "cfg", "_enabledExtensions": {"E": E_ENTRY}}
    delta = build_delta(
        document, ToggleAction.ENABLE, descriptor, {"_isEnabled": True}, is_config=True
    )
    assert delta["_extensions"] == {"_trickle": {"_isEnabled": True}}
    assert list(delta["_enabledExtensions"]) == ["E", "trickle"]
    assert document["_enabledExtensions"] == {"E": E_ENTRY}
