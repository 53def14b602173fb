"""
Bidirectional sync of embedded relationship edges.

The primary entity is always written first, in a single document update that
carries its scalar fields and its complete edge list. Mirror edges on the
counterparts are then brought in line one counterpart at a time. There is no
rollback: if the process stops between the two phases the primary side is
correct and some counterparts are stale until ``repair_mirrors`` runs.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from rolodex.errors import NotFoundError, PartialSyncFailure, ValidationError
from rolodex.models import BaseModel, EntityKind, RelationshipEdge
from rolodex.relationships.diff import EdgeCollection, RelationshipDiff, diff_relationships, normalize_edges
from rolodex.repositories import EntityStore

logger = logging.getLogger(__name__)

EDGE_KEY = 'counterpart_id'


@dataclass
class SyncFailure:
    """One counterpart whose mirror edge could not be brought in line."""

    counterpart_id: str
    operation: str
    error: str


@dataclass
class SyncResult:
    entity: BaseModel
    partial_failures: List[SyncFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.partial_failures

    @property
    def failed_ids(self) -> List[str]:
        return [failure.counterpart_id for failure in self.partial_failures]

    def raise_for_failures(self) -> None:
        if self.partial_failures:
            raise PartialSyncFailure(self.failed_ids, entity=self.entity, failures=self.partial_failures)


class RelationshipSynchronizer:
    """
    Keeps ``Organization.members`` and ``Person.affiliations`` mirror images of each other.
    """

    def __init__(self, store: EntityStore, max_workers: int = 1):
        self.store = store
        self.max_workers = max(1, int(max_workers))

    def resolve_edges(
        self,
        owner_id: str,
        kind: EntityKind,
        requested_edges: EdgeCollection
    ) -> Dict[str, RelationshipEdge]:
        """
        Normalize the requested edges and fill in each counterpart's current name.

        :raises ValidationError: an edge has no counterpart id
        :raises NotFoundError: a counterpart does not exist for this owner
        """
        try:
            requested = normalize_edges(requested_edges)
        except (TypeError, ValueError) as e:
            raise ValidationError(str(e)) from e
        counterparts = self.store.for_kind(kind.counterpart).get_by_ids(requested.keys(), owner_id)
        for counterpart_id in requested:
            if counterpart_id not in counterparts:
                raise NotFoundError(kind.counterpart.collection, counterpart_id)
        return {
            counterpart_id: RelationshipEdge(counterpart_id, counterparts[counterpart_id].name, edge.role)
            for counterpart_id, edge in requested.items()
        }

    def check_scalar_fields(self, kind: EntityKind, current: Optional[BaseModel], fields: Dict[str, Any]):
        repository = self.store.for_kind(kind)
        if kind.edges_field in fields:
            raise ValidationError(f"'{kind.edges_field}' must be passed as the relationship list")
        repository.check_fields(fields)
        merged = current.as_dict() if current else {}
        merged.update(fields)
        repository.model.from_dict(merged).validate()

    def synchronize_relationships(
        self,
        owner_id: str,
        kind: EntityKind,
        entity_id: str,
        requested_edges: EdgeCollection,
        fields: Dict[str, Any] = None,
        expected_revision: Optional[int] = None
    ) -> SyncResult:
        """
        Replace an entity's relationship list and mirror the change onto every counterpart.

        Args:
            owner_id (str): The owning user; both ends of every edge must belong to it.
            kind (EntityKind): Kind of the entity being edited.
            entity_id (str): The entity being edited.
            requested_edges: The complete new relationship list.
            fields (Dict[str, Any], optional): Scalar fields written in the same update.
            expected_revision (int, optional): Optimistic concurrency check for the primary write.

        Returns:
            SyncResult: The updated entity and the counterparts that could not be synced.

        Raises:
            NotFoundError, ValidationError, ConflictError: before anything is written.
        """
        kind = EntityKind(kind)
        repository = self.store.for_kind(kind)
        current = repository.get_or_raise(entity_id, owner_id)
        fields = dict(fields or {})
        self.check_scalar_fields(kind, current, fields)
        resolved = self.resolve_edges(owner_id, kind, requested_edges)

        diff = diff_relationships(getattr(current, kind.edges_field), list(resolved.values()))
        fields[kind.edges_field] = list(resolved.values())
        updated = repository.update_fields(entity_id, owner_id, fields, expected_revision)

        failures = self._sweep(owner_id, kind, updated, diff)
        return SyncResult(updated, failures)

    def synchronize_new_entity(
        self,
        owner_id: str,
        kind: EntityKind,
        fields: Dict[str, Any],
        requested_edges: EdgeCollection = None
    ) -> SyncResult:
        """Create an entity with its relationship list, then push the mirror edges."""
        kind = EntityKind(kind)
        repository = self.store.for_kind(kind)
        fields = dict(fields or {})
        self.check_scalar_fields(kind, None, fields)
        resolved = self.resolve_edges(owner_id, kind, requested_edges)

        instance = repository.model(**fields)
        setattr(instance, kind.edges_field, list(resolved.values()))
        created = repository.create(instance, owner_id)

        failures = self._sweep(owner_id, kind, created, diff_relationships([], list(resolved.values())))
        return SyncResult(created, failures)

    def repair_mirrors(
        self,
        owner_id: str,
        kind: EntityKind,
        entity_id: str,
        counterpart_ids: Iterable[str] = None
    ) -> SyncResult:
        """
        Re-assert the mirror edges of an entity from its own (authoritative) edge list.

        Counterparts listed on the entity get a mirror with the current role and
        name; counterparts not listed lose any mirror pointing back. Safe to repeat.
        """
        kind = EntityKind(kind)
        entity = self.store.for_kind(kind).get_or_raise(entity_id, owner_id)
        edges = {edge.counterpart_id: edge for edge in getattr(entity, kind.edges_field)}
        ids = edges.keys() if counterpart_ids is None else counterpart_ids

        operations = []
        for counterpart_id in dict.fromkeys(ids):
            if counterpart_id in edges:
                operations.append(self._operation(
                    'update', owner_id, kind, entity, counterpart_id, edges[counterpart_id].role))
            else:
                operations.append(self._operation('remove', owner_id, kind, entity, counterpart_id))
        return SyncResult(entity, self._dispatch(operations))

    def detach_all(self, owner_id: str, kind: EntityKind, entity_id: str) -> int:
        """
        Pull every mirror edge pointing at ``entity_id`` from the owner's counterparts.

        Works from the counterpart collection rather than the entity's own list, so it
        also removes edges the entity no longer knows about. Returns records modified.
        """
        kind = EntityKind(kind)
        removed = self.store.for_kind(kind.counterpart).pull_from_array_everywhere(
            owner_id, kind.counterpart.edges_field, {EDGE_KEY: entity_id})
        logger.info(f"Detached {kind} {entity_id} from {removed} {kind.counterpart} record(s)")
        return removed

    def _sweep(self, owner_id: str, kind: EntityKind, entity: BaseModel, diff: RelationshipDiff) -> List[SyncFailure]:
        operations = []
        for counterpart_id in diff.to_add:
            operations.append(self._operation(
                'add', owner_id, kind, entity, counterpart_id, diff.requested[counterpart_id].role))
        for counterpart_id in diff.to_update:
            operations.append(self._operation(
                'update', owner_id, kind, entity, counterpart_id, diff.requested[counterpart_id].role))
        for counterpart_id in diff.to_remove:
            operations.append(self._operation('remove', owner_id, kind, entity, counterpart_id))
        return self._dispatch(operations)

    def _operation(
        self,
        name: str,
        owner_id: str,
        kind: EntityKind,
        entity: BaseModel,
        counterpart_id: str,
        role: Optional[str] = None
    ) -> Tuple[str, str, Callable[[], None]]:
        if name == 'remove':
            return counterpart_id, name, lambda: self._remove_mirror(owner_id, kind, entity, counterpart_id)
        return counterpart_id, name, lambda: self._ensure_mirror(
            owner_id, kind, entity, counterpart_id, role, push_first=(name == 'add'))

    def _dispatch(self, operations: List[Tuple[str, str, Callable[[], None]]]) -> List[SyncFailure]:
        """Run one operation per counterpart, collecting failures instead of stopping at the first."""
        if self.max_workers > 1 and len(operations) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(self._run, operations))
        else:
            outcomes = [self._run(operation) for operation in operations]
        return [failure for failure in outcomes if failure is not None]

    @staticmethod
    def _run(operation: Tuple[str, str, Callable[[], None]]) -> Optional[SyncFailure]:
        counterpart_id, name, apply = operation
        try:
            apply()
        except Exception as e:
            logger.warning(f"Mirror {name} failed for counterpart {counterpart_id}: {e}")
            return SyncFailure(counterpart_id, name, str(e))
        return None

    def _ensure_mirror(
        self,
        owner_id: str,
        kind: EntityKind,
        entity: BaseModel,
        counterpart_id: str,
        role: Optional[str],
        push_first: bool
    ) -> None:
        """
        Make the counterpart carry exactly one edge back to ``entity`` with ``role``.

        An existing mirror is updated in place, never removed and re-added.
        """
        counterpart_kind = kind.counterpart
        repository = self.store.for_kind(counterpart_kind)
        mirror = RelationshipEdge(entity.entity_id, entity.name, role)

        def push():
            return repository.push_to_array(
                counterpart_id, owner_id, counterpart_kind.edges_field, mirror, unique_key=EDGE_KEY)

        def update():
            return repository.update_array_element_by_key(
                counterpart_id, owner_id, counterpart_kind.edges_field, EDGE_KEY, entity.entity_id,
                {'role': role, 'counterpart_name': entity.name})

        first, second = (push, update) if push_first else (update, push)
        if not first() and not second():
            raise NotFoundError(counterpart_kind.collection, counterpart_id)

    def _remove_mirror(self, owner_id: str, kind: EntityKind, entity: BaseModel, counterpart_id: str) -> None:
        self.store.for_kind(kind.counterpart).pull_from_array(
            counterpart_id, owner_id, kind.counterpart.edges_field, {EDGE_KEY: entity.entity_id})
