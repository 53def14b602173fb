import logging

from rolodex.data.base import DbAdapter
from rolodex.errors import ValidationError
from rolodex.models import BaseModel, EntityKind, EntityReference
from rolodex.repositories.assignment_repository import AssignmentRepository
from rolodex.repositories.base_repository import BaseRepository
from rolodex.repositories.organization_repository import OrganizationRepository
from rolodex.repositories.person_repository import PersonRepository

logger = logging.getLogger(__name__)


class EntityStore:
    """
    The three collections behind one explicitly constructed adapter.

    Built once at start-up and handed to every component that needs storage.
    """

    def __init__(self, adapter: DbAdapter):
        self.adapter = adapter
        self.organizations = OrganizationRepository(adapter)
        self.people = PersonRepository(adapter)
        self.assignments = AssignmentRepository(adapter)

    def for_kind(self, kind: EntityKind) -> BaseRepository:
        kind = EntityKind(kind)
        return self.organizations if kind is EntityKind.ORGANIZATION else self.people

    def resolve(self, reference: EntityReference, owner_id: str) -> BaseModel:
        """
        Load the record a reference points at, reading through the owner filter.

        :raises ValidationError: the reference names a collection the store does not hold
        :raises NotFoundError: no such record for this owner
        """
        try:
            kind = EntityKind(reference.collection)
        except ValueError as e:
            raise ValidationError(f"Unknown collection '{reference.collection}'") from e
        return self.for_kind(kind).get_or_raise(reference.entity_id, owner_id)

    def ensure_indexes(self) -> None:
        """Create the lookup indexes the relationship engine relies on."""
        with self.adapter:
            for kind in EntityKind:
                repository = self.for_kind(kind)
                self.adapter.create_index(repository.table_name, [("owner_id", 1), ("entity_id", 1)],
                                          f"{kind}_owner_entity", unique=True)
                self.adapter.create_index(repository.table_name,
                                          [("owner_id", 1), (f"{kind.edges_field}.counterpart_id", 1)],
                                          f"{kind}_owner_edges")
                self.adapter.create_index(self.assignments.table_name,
                                          [("owner_id", 1), (kind.assignment_id_field, 1)],
                                          f"assignment_owner_{kind.assignment_id_field}")
        logger.info("Indexes ensured")
