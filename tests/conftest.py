"""
Shared fixtures: an in-memory store and a DirectoryService wired to it.
"""
import pytest

from rolodex.data.memory import MemoryAdapter
from rolodex.models import EntityKind
from rolodex.repositories import EntityStore
from rolodex.services import DirectoryService

OWNER = "owner-1"
OTHER_OWNER = "owner-2"


class FlakyMemoryAdapter(MemoryAdapter):
    """MemoryAdapter whose array primitives fail for selected document ids."""

    def __init__(self):
        super().__init__()
        self.fail_ids = set()
        self.fail_bulk = False

    def _maybe_fail(self, conditions):
        if conditions.get('entity_id') in self.fail_ids:
            raise RuntimeError(f"simulated outage for {conditions['entity_id']}")
        if self.fail_bulk and 'entity_id' not in conditions:
            raise RuntimeError("simulated outage for bulk update")

    def push_to_array(self, table, conditions, *args, **kwargs):
        self._maybe_fail(conditions)
        return super().push_to_array(table, conditions, *args, **kwargs)

    def pull_from_array(self, table, conditions, *args, **kwargs):
        self._maybe_fail(conditions)
        return super().pull_from_array(table, conditions, *args, **kwargs)

    def update_array_element_by_key(self, table, conditions, *args, **kwargs):
        self._maybe_fail(conditions)
        return super().update_array_element_by_key(table, conditions, *args, **kwargs)


@pytest.fixture
def adapter():
    return FlakyMemoryAdapter()


@pytest.fixture
def store(adapter):
    return EntityStore(adapter)


@pytest.fixture
def service(store):
    return DirectoryService(store)


@pytest.fixture
def make_org(service):
    def _make(name, owner=OWNER, **fields):
        return service.create_entity(owner, EntityKind.ORGANIZATION, {"name": name, **fields}).entity
    return _make


@pytest.fixture
def make_person(service):
    def _make(name, owner=OWNER, **fields):
        return service.create_entity(owner, EntityKind.PERSON, {"name": name, **fields}).entity
    return _make


def mirror_pairs(store, owner=OWNER):
    """All (organization_id, person_id, role) edges seen from each side."""
    from_orgs = {
        (org.entity_id, edge.counterpart_id, edge.role)
        for org in store.organizations.list(owner) for edge in org.members
    }
    from_people = {
        (edge.counterpart_id, person.entity_id, edge.role)
        for person in store.people.list(owner) for edge in person.affiliations
    }
    return from_orgs, from_people
