from typing import List

from rolodex.data.base import DbAdapter
from rolodex.models import Assignment, EntityKind
from rolodex.repositories.base_repository import BaseRepository


class AssignmentRepository(BaseRepository):
    def __init__(self, adapter: DbAdapter):
        super().__init__(adapter, Assignment, 'assignment')

    def find_by_person(self, person_id: str, owner_id: str) -> List[Assignment]:
        """finds all the assignments held by the Person identified by person_id

        Args:
            person_id (str): `person.entity_id`
            owner_id (str): owning user

        Returns:
            List[Assignment]: found assignments, most recent start first
        """
        return self.find_referencing(EntityKind.PERSON, person_id, owner_id)

    def find_by_organization(self, organization_id: str, owner_id: str) -> List[Assignment]:
        """finds all the assignments at the Organization identified by organization_id"""
        return self.find_referencing(EntityKind.ORGANIZATION, organization_id, owner_id)

    def find_referencing(self, kind: EntityKind, entity_id: str, owner_id: str) -> List[Assignment]:
        return self.get_many(owner_id, {kind.assignment_id_field: entity_id},
                             sort=[("start_date", -1)])

    def find_for_pair(self, person_id: str, organization_id: str, owner_id: str) -> List[Assignment]:
        """Every assignment linking one person to one organization"""
        return self.get_many(owner_id, {"person_id": person_id, "organization_id": organization_id})

    def delete_referencing(self, kind: EntityKind, entity_id: str, owner_id: str) -> int:
        return self.delete_many(owner_id, {kind.assignment_id_field: entity_id})
