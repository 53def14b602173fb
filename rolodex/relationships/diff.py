"""
Reference diff between two relationship snapshots.

Pure functions only: nothing here touches the store.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Tuple, Union

from rolodex.models import RelationshipEdge

EdgeInput = Union[RelationshipEdge, Mapping[str, Any]]
EdgeCollection = Union[Iterable[EdgeInput], Mapping[str, Any]]


def _to_edge(item: EdgeInput) -> RelationshipEdge:
    if isinstance(item, RelationshipEdge):
        return RelationshipEdge(item.counterpart_id, item.counterpart_name, item.role)
    return RelationshipEdge.from_dict(item)


def normalize_edges(edges: EdgeCollection) -> Dict[str, RelationshipEdge]:
    """
    Key a relationship collection by counterpart id.

    Accepts a sequence of ``RelationshipEdge`` / dicts, or a mapping of counterpart
    id to a role string, a ``RelationshipEdge`` or ``{'role': ...}``. When an id
    appears more than once the last occurrence wins, keeping the position of the first.
    """
    if edges is None:
        return {}
    normalized: Dict[str, RelationshipEdge] = {}
    if isinstance(edges, Mapping):
        for counterpart_id, value in edges.items():
            if isinstance(value, RelationshipEdge):
                edge = RelationshipEdge(str(counterpart_id), value.counterpart_name, value.role)
            elif isinstance(value, Mapping):
                edge = _to_edge({**value, 'counterpart_id': counterpart_id})
            else:
                edge = RelationshipEdge(counterpart_id=str(counterpart_id), role=value)
            normalized[edge.counterpart_id] = edge
        return normalized
    for item in edges:
        edge = _to_edge(item)
        normalized[edge.counterpart_id] = edge
    return normalized


@dataclass(frozen=True)
class RelationshipDiff:
    """Disjoint id sets describing how to move from the existing to the requested relationships."""

    to_add: Tuple[str, ...] = ()
    to_update: Tuple[str, ...] = ()
    to_remove: Tuple[str, ...] = ()
    unchanged: Tuple[str, ...] = ()
    requested: Dict[str, RelationshipEdge] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.to_add or self.to_update or self.to_remove)


def diff_relationships(existing: EdgeCollection, requested: EdgeCollection) -> RelationshipDiff:
    """
    Compare two relationship snapshots keyed by counterpart id.

    ``to_add`` holds ids only requested, ``to_remove`` ids only existing and
    ``to_update`` ids present in both whose role differs. Ordering follows the
    requested collection (existing order for removals), so the result is deterministic.
    """
    before = normalize_edges(existing)
    after = normalize_edges(requested)

    to_add, to_update, unchanged = [], [], []
    for counterpart_id, edge in after.items():
        if counterpart_id not in before:
            to_add.append(counterpart_id)
        elif before[counterpart_id].role != edge.role:
            to_update.append(counterpart_id)
        else:
            unchanged.append(counterpart_id)
    to_remove = [counterpart_id for counterpart_id in before if counterpart_id not in after]

    return RelationshipDiff(
        to_add=tuple(to_add),
        to_update=tuple(to_update),
        to_remove=tuple(to_remove),
        unchanged=tuple(unchanged),
        requested=after,
    )
