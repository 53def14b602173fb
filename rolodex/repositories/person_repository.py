"""PersonRepository class"""
from typing import List

from rolodex.data.base import DbAdapter
from rolodex.models import EntityKind, Person
from rolodex.repositories.base_repository import BaseRepository


class PersonRepository(BaseRepository):
    """PersonRepository class"""
    def __init__(self, adapter: DbAdapter):
        super().__init__(adapter, Person, EntityKind.PERSON.collection)

    def find_linked_to(self, organization_id: str, owner_id: str) -> List[Person]:
        """People whose affiliations point at the organization"""
        return self.get_many(owner_id, {"affiliations.counterpart_id": organization_id},
                             sort=[("name", 1)])
