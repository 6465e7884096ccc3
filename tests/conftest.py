"""Configuration de test pour pytest avec gestion des chemins.

Ce module configure pytest pour résoudre les imports `authoring` en ajoutant la racine du projet
au sys.path, et fournit un stockage en mémoire pré-rempli ainsi qu'un conteneur complet.
"""

import os
import sys

import pytest

# Ensure project root is on sys.path so that
# imports like `from authoring...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from authoring.core.container import Container  # noqa: E402
from authoring.core.settings import Settings  # noqa: E402
from authoring.infra.repositories import InMemoryDocumentStore  # noqa: E402
from tests.fakes import seed_documents  # noqa: E402


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """Stockage en mémoire pré-rempli avec le cours de démonstration."""
    return InMemoryDocumentStore(seed_documents())


@pytest.fixture
def test_container(store) -> Container:
    """Conteneur complet branché sur le stockage en mémoire du test."""
    return Container(settings=Settings(REDIS_URL=None, REQUIRE_REDIS=False), store=store)
