"""Erreurs du domaine des extensions.

Les erreurs métier (`ExtensionError` et dérivées) sont renvoyées au client HTTP en 400.
Les défaillances du stockage (`StoreFailureError`) relèvent de l'infrastructure et donnent 500.
"""


class ExtensionError(Exception):
    """Erreur métier liée aux extensions ou aux types de contenu."""


class InvalidArgumentError(ExtensionError):
    """Liste d'identifiants d'extensions absente ou mal formée."""


class SchemaError(ExtensionError):
    """Schéma d'extension non reconnu.

    Jamais levée par la synthèse: les nœuds inconnus sont ignorés.
    """


class NotFoundError(ExtensionError):
    """Document attendu introuvable."""


class CourseNotFoundError(NotFoundError):
    def __init__(self, course_id: str) -> None:
        super().__init__(f"course {course_id} not found")
        self.course_id = course_id


class ConfigNotFoundError(NotFoundError):
    def __init__(self, course_id: str) -> None:
        super().__init__(f"config for course {course_id} not found")
        self.course_id = course_id


class StoreFailureError(RuntimeError):
    """Échec de lecture/écriture côté stockage de documents."""
