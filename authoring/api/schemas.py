# Schémas Pydantic exposés par l'API (requêtes et réponses).

from typing import Any

from pydantic import BaseModel


class ToggleRequest(BaseModel):
    """Requête d'activation/désactivation d'extensions pour un cours.

    Champs:
    - extensions: liste d'identifiants d'extensions (ou objet dont les valeurs sont des ids).
      Non typé ici: un contenu absent ou invalide est signalé par la route elle-même.
    """

    extensions: Any = None


class ToggleResponse(BaseModel):
    """Réponse d'une activation/désactivation réussie."""

    success: bool


class EnabledExtensionsResponse(BaseModel):
    """Registre des extensions activées d'un cours.

    Champs:
    - success: bool
    - enabled: dict (clé d'extension → {_id, version, targetAttribute})
    """

    success: bool
    enabled: dict[str, dict[str, Any]]
