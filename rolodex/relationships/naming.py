"""
Propagation of display-name changes into every cached copy.
"""
import logging

from rolodex.models import BaseModel, EntityKind
from rolodex.repositories import EntityStore

logger = logging.getLogger(__name__)


class NamePropagator:
    """
    Rewrites the cached counterpart names that point at a renamed entity.

    Both updates are bulk, matched by id, and touch only the cached-name field,
    so running them again with the same name changes nothing.
    """

    def __init__(self, store: EntityStore):
        self.store = store

    def has_references(self, owner_id: str, kind: EntityKind, entity: BaseModel) -> bool:
        """True when the entity has at least one embedded edge or assignment."""
        kind = EntityKind(kind)
        if getattr(entity, kind.edges_field):
            return True
        return self.store.assignments.count(owner_id, {kind.assignment_id_field: entity.entity_id}) > 0

    def propagate_name_change(self, owner_id: str, kind: EntityKind, entity_id: str, new_name: str) -> int:
        """
        Set ``new_name`` on every mirror edge and assignment referencing the entity.

        Returns:
            int: The number of documents whose cached name actually changed.
        """
        kind = EntityKind(kind)
        counterpart_kind = kind.counterpart
        edges_renamed = self.store.for_kind(counterpart_kind).update_array_elements_everywhere(
            owner_id, counterpart_kind.edges_field, 'counterpart_id', entity_id,
            {'counterpart_name': new_name})
        assignments_renamed = self.store.assignments.update_many(
            owner_id, {kind.assignment_id_field: entity_id}, {kind.assignment_name_field: new_name})

        affected = edges_renamed + assignments_renamed
        logger.info(
            f"Propagated name of {kind} {entity_id} to {edges_renamed} {counterpart_kind} record(s) "
            f"and {assignments_renamed} assignment(s)")
        return affected
