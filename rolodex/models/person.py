"""
Person model
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .base_model import BaseModel
from .relationship_edge import RelationshipEdge


@dataclass(repr=False, kw_only=True)
class Person(BaseModel):
    """A person model."""

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    linkedin_user_id: Optional[str] = None
    github_user_id: Optional[str] = None
    notes: Optional[str] = None
    affiliations: List[RelationshipEdge] = field(default_factory=list,
                                                 metadata={'model': RelationshipEdge})

    def validate_name(self):
        if not self.name or not str(self.name).strip():
            return "Person name is required"
        return None
