"""OrganizationRepository class"""
from typing import List

from rolodex.data.base import DbAdapter
from rolodex.models import EntityKind, Organization
from rolodex.repositories.base_repository import BaseRepository


class OrganizationRepository(BaseRepository):
    """OrganizationRepository class"""
    def __init__(self, adapter: DbAdapter):
        super().__init__(adapter, Organization, EntityKind.ORGANIZATION.collection)

    def find_linked_to(self, person_id: str, owner_id: str) -> List[Organization]:
        """Organizations whose members include the person"""
        return self.get_many(owner_id, {"members.counterpart_id": person_id},
                             sort=[("name", 1)])
