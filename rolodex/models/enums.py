from enum import Enum


class EntityKind(str, Enum):
    """The two kinds of entity that can sit on either end of a relationship."""

    ORGANIZATION = 'organization'
    PERSON = 'person'

    def __str__(self):
        return str(self.value)

    @property
    def collection(self) -> str:
        return self.value

    @property
    def counterpart(self) -> 'EntityKind':
        return EntityKind.PERSON if self is EntityKind.ORGANIZATION else EntityKind.ORGANIZATION

    @property
    def edges_field(self) -> str:
        """Name of the embedded edge list on documents of this kind."""
        return 'members' if self is EntityKind.ORGANIZATION else 'affiliations'

    @property
    def assignment_id_field(self) -> str:
        """Assignment field that references an entity of this kind."""
        return f"{self.value}_id"

    @property
    def assignment_name_field(self) -> str:
        """Assignment field caching the display name of an entity of this kind."""
        return f"{self.value}_name"
