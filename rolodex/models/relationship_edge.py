"""
RelationshipEdge and EntityReference models
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


@dataclass
class RelationshipEdge:
    """
    One side of an embedded relationship.

    The same edge shape lives on both participants: an organization's ``members``
    point at people, a person's ``affiliations`` point at organizations.
    Two edges describe the same relationship iff their ``counterpart_id`` match.
    """

    counterpart_id: str
    counterpart_name: Optional[str] = None
    role: Optional[str] = None

    def as_dict(self, convert_datetime_to_iso_string: bool = False) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RelationshipEdge":
        if 'counterpart_id' not in data or not data['counterpart_id']:
            raise ValueError("A relationship edge requires a counterpart_id")
        return cls(
            counterpart_id=str(data['counterpart_id']),
            counterpart_name=data.get('counterpart_name'),
            role=data.get('role'),
        )


@dataclass(frozen=True)
class EntityReference:
    """A cross-document pointer. Nothing in the store enforces it; it is checked at write time."""

    collection: str
    entity_id: str

    def __str__(self):
        return f"{self.collection}:{self.entity_id}"
