"""
Entry point used by the HTTP handlers for every organization, person and assignment write.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional

from rolodex.config import RolodexConfig
from rolodex.data import get_db_adapter
from rolodex.errors import NotFoundError, PartialSyncFailure, ValidationError
from rolodex.models import Assignment, BaseModel, EntityKind
from rolodex.relationships import (
    AssignmentManager,
    AssignmentView,
    NamePropagator,
    RelationshipSynchronizer,
    SyncFailure,
    SyncResult,
)
from rolodex.relationships.diff import EdgeCollection
from rolodex.repositories import EntityStore

logger = logging.getLogger(__name__)


def _kind(kind) -> EntityKind:
    try:
        return EntityKind(kind)
    except ValueError as e:
        raise ValidationError(f"Unknown entity kind '{kind}'") from e


class DirectoryService:
    """
    Owner-scoped CRUD over organizations, people and assignments that keeps every
    cross-reference consistent.

    On update, ``edges=None`` leaves the relationship list untouched while an
    explicit empty list removes every relationship.
    """

    def __init__(self, store: EntityStore, max_workers: int = 1):
        self.store = store
        self.synchronizer = RelationshipSynchronizer(store, max_workers=max_workers)
        self.names = NamePropagator(store)
        self.assignments = AssignmentManager(store)

    @classmethod
    def from_config(cls, config: RolodexConfig) -> 'DirectoryService':
        return cls(EntityStore(get_db_adapter(config)), max_workers=config.sync_max_workers)

    # Relationship engine

    def synchronize_relationships(
        self,
        owner_id: str,
        kind: EntityKind,
        entity_id: str,
        requested_edges: EdgeCollection
    ) -> SyncResult:
        return self.synchronizer.synchronize_relationships(owner_id, _kind(kind), entity_id, requested_edges)

    def repair_relationships(
        self,
        owner_id: str,
        kind: EntityKind,
        entity_id: str,
        counterpart_ids: Iterable[str] = None
    ) -> SyncResult:
        """Retry step after a ``PartialSyncFailure``."""
        return self.synchronizer.repair_mirrors(owner_id, _kind(kind), entity_id, counterpart_ids)

    def propagate_name_change(self, owner_id: str, kind: EntityKind, entity_id: str, new_name: str) -> int:
        return self.names.propagate_name_change(owner_id, _kind(kind), entity_id, new_name)

    def cascade_delete_references(self, owner_id: str, kind: EntityKind, entity_id: str) -> int:
        """
        Remove every assignment and mirror edge referencing the entity.

        Both steps always run. If either fails, the references still present are
        looked up and reported through ``PartialSyncFailure``: counterpart records
        in ``counterpart_ids``, assignments in ``assignment_ids``.

        Returns:
            int: assignments deleted plus counterpart records detached.
        """
        kind = _kind(kind)
        deleted = 0
        errors = {}
        steps = (('delete_assignment', self.assignments.cascade_delete), ('detach', self.synchronizer.detach_all))
        for operation, step in steps:
            try:
                deleted += step(owner_id, kind, entity_id)
            except Exception as e:
                logger.warning(f"Cascade step {operation} failed for {kind} {entity_id}: {e}")
                errors[operation] = e
        if errors:
            assignment_ids = self.assignments.remaining_references(owner_id, kind, entity_id)
            holders = self.store.for_kind(kind.counterpart).find_linked_to(entity_id, owner_id)
            counterpart_ids = [holder.entity_id for holder in holders]
            if assignment_ids or counterpart_ids:
                failures = [SyncFailure(i, 'delete_assignment', str(errors.get('delete_assignment')))
                            for i in assignment_ids]
                failures += [SyncFailure(i, 'detach', str(errors.get('detach'))) for i in counterpart_ids]
                raise PartialSyncFailure(counterpart_ids, failures=failures,
                                         assignment_ids=assignment_ids) from next(iter(errors.values()))
        return deleted

    # Organizations and people

    def create_entity(
        self,
        owner_id: str,
        kind: EntityKind,
        fields: Dict[str, Any],
        edges: EdgeCollection = None
    ) -> SyncResult:
        return self.synchronizer.synchronize_new_entity(owner_id, _kind(kind), fields, edges)

    def get_entity(self, owner_id: str, kind: EntityKind, entity_id: str) -> BaseModel:
        return self.store.for_kind(_kind(kind)).get_or_raise(entity_id, owner_id)

    def list_entities(self, owner_id: str, kind: EntityKind) -> List[BaseModel]:
        return self.store.for_kind(_kind(kind)).list(owner_id, sort=[('name', 1)])

    def update_entity(
        self,
        owner_id: str,
        kind: EntityKind,
        entity_id: str,
        fields: Dict[str, Any],
        edges: EdgeCollection = None,
        expected_revision: Optional[int] = None
    ) -> SyncResult:
        """
        Update scalar fields and, when ``edges`` is given, replace the relationship list.

        A rename is propagated to every cached copy after the primary write.
        """
        kind = _kind(kind)
        repository = self.store.for_kind(kind)
        fields = dict(fields or {})
        if edges is None:
            current = repository.get_or_raise(entity_id, owner_id)
            self.synchronizer.check_scalar_fields(kind, current, fields)
            result = SyncResult(repository.update_fields(entity_id, owner_id, fields, expected_revision))
        else:
            current = repository.get_or_raise(entity_id, owner_id)
            result = self.synchronizer.synchronize_relationships(
                owner_id, kind, entity_id, edges, fields, expected_revision)

        new_name = fields.get('name')
        if new_name is not None and new_name != current.name:
            try:
                if self.names.has_references(owner_id, kind, result.entity):
                    self.names.propagate_name_change(owner_id, kind, entity_id, new_name)
            except Exception as e:
                logger.warning(f"Name propagation failed for {kind} {entity_id}: {e}")
                edges_after = getattr(result.entity, kind.edges_field)
                ids = [edge.counterpart_id for edge in edges_after] or [entity_id]
                result.partial_failures.extend(SyncFailure(i, 'rename', str(e)) for i in ids)
        return result

    def delete_entity(self, owner_id: str, kind: EntityKind, entity_id: str) -> int:
        """
        Delete the entity, then everything that references it.

        Returns:
            int: the number of references removed by the cascade.
        """
        kind = _kind(kind)
        deleted = self.store.for_kind(kind).delete(entity_id, owner_id)
        if deleted is None:
            raise NotFoundError(kind.collection, entity_id)
        return self.cascade_delete_references(owner_id, kind, entity_id)

    # Assignments

    def create_assignment(self, owner_id: str, fields: Dict[str, Any]) -> Assignment:
        return self.assignments.create_assignment(owner_id, fields)

    def update_assignment(
        self,
        owner_id: str,
        assignment_id: str,
        fields: Dict[str, Any],
        expected_revision: Optional[int] = None
    ) -> Assignment:
        return self.assignments.update_assignment(owner_id, assignment_id, fields, expected_revision)

    def delete_assignment(self, owner_id: str, assignment_id: str) -> Assignment:
        return self.assignments.delete_assignment(owner_id, assignment_id)

    def get_assignment(self, owner_id: str, assignment_id: str) -> AssignmentView:
        return self.assignments.get_assignment(owner_id, assignment_id)

    def list_assignments(self, owner_id: str) -> List[AssignmentView]:
        return self.assignments.list_assignments(owner_id)

    def assignments_for(self, owner_id: str, kind: EntityKind, entity_id: str) -> List[AssignmentView]:
        """Lookup by counterpart: a person's assignments with organizations, or the reverse."""
        if _kind(kind) is EntityKind.PERSON:
            return self.assignments.find_by_person(owner_id, entity_id)
        return self.assignments.find_by_organization(owner_id, entity_id)
