"""
Entités du domaine des extensions.

Ce module définit les descripteurs d'extensions chargés depuis le stockage et les entrées du
registre `_enabledExtensions` porté par le document de configuration d'un cours.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Emplacements de contenu connus (clé de type de document)
COURSE = "course"
CONFIG = "config"
CONTENT_LOCATIONS = (COURSE, CONFIG, "contentobject", "article", "block", "component")


class ToggleAction(str, Enum):
    """Action appliquée à un ensemble d'extensions pour un cours."""

    ENABLE = "enable"
    DISABLE = "disable"


class ExtensionDescriptor(BaseModel):
    """Descripteur d'une extension installée (document `extensiontype`).

    Lecture seule, rechargé à chaque opération. `plugin_locations` associe un type de contenu au
    schéma `{properties: {...}}` des champs injectés, dans l'ordre de déclaration.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: str = Field(alias="_id")
    name: str
    extension: str | None = None
    version: str
    target_attribute: str = Field(alias="targetAttribute")
    display_name: str | None = Field(default=None, alias="displayName")
    plugin_locations: dict[str, Any] = Field(default_factory=dict, alias="pluginLocations")

    @model_validator(mode="before")
    @classmethod
    def _lift_package_schema(cls, data: Any) -> Any:
        """Accepte la forme stockée `properties.pluginLocations.properties`."""
        if isinstance(data, dict) and "pluginLocations" not in data:
            nested = (data.get("properties") or {}).get("pluginLocations") or {}
            if isinstance(nested, dict):
                data = {**data, "pluginLocations": nested.get("properties") or {}}
        return data

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_str(cls, value: Any) -> str:
        return str(value)

    @property
    def key(self) -> str:
        """Clé de l'extension dans `_enabledExtensions`."""
        return self.extension or self.name

    def location_schema(self, location: str) -> dict[str, Any] | None:
        """Retourne la table `properties` déclarée pour `location`, ou None."""
        declared = self.plugin_locations.get(location)
        if not isinstance(declared, dict):
            return None
        return declared.get("properties")


class EnabledExtension(BaseModel):
    """Entrée du registre `_enabledExtensions` d'un cours."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    version: str
    target_attribute: str = Field(alias="targetAttribute")

    @classmethod
    def from_descriptor(cls, descriptor: ExtensionDescriptor) -> "EnabledExtension":
        return cls(
            id=descriptor.id,
            version=descriptor.version,
            target_attribute=descriptor.target_attribute,
        )

    def to_document(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)
