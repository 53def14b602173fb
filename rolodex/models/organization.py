"""
Organization model
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .base_model import BaseModel
from .relationship_edge import RelationshipEdge


@dataclass(repr=False, kw_only=True)
class Organization(BaseModel):
    """An organization model."""

    name: Optional[str] = None
    industry: Optional[str] = None
    website: Optional[str] = None
    # mirrored by `Person.affiliations`; kept in sync by the relationship engine
    members: List[RelationshipEdge] = field(default_factory=list,
                                            metadata={'model': RelationshipEdge})

    def validate_name(self):
        if not self.name or not str(self.name).strip():
            return "Organization name is required"
        return None
