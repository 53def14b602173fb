"""
Assignment model
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .base_model import BaseModel
from .enums import EntityKind
from .relationship_edge import EntityReference

# Cannot be re-pointed once the assignment exists
IMMUTABLE_FIELDS = ('person_id', 'organization_id')


@dataclass(repr=False, kw_only=True)
class Assignment(BaseModel):
    """The role a person held at an organization, optionally bounded by dates."""

    person_id: Optional[str] = None
    organization_id: Optional[str] = None
    person_name: Optional[str] = None
    organization_name: Optional[str] = None
    title: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    current: bool = False
    notes: Optional[str] = None

    @property
    def person(self) -> EntityReference:
        return EntityReference(EntityKind.PERSON.collection, self.person_id)

    @property
    def organization(self) -> EntityReference:
        return EntityReference(EntityKind.ORGANIZATION.collection, self.organization_id)

    def validate_person_id(self):
        if not self.person_id:
            return "Assignment requires a person"
        return None

    def validate_organization_id(self):
        if not self.organization_id:
            return "Assignment requires an organization"
        return None

    def validate_title(self):
        if not self.title or not str(self.title).strip():
            return "Assignment title is required"
        return None

    def validate_end_date(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            name = self.organization_name or self.organization_id
            return f"Invalid date range for organization {name}: start date cannot be after end date"
        return None

    def overlaps(self, other: 'Assignment') -> bool:
        """True when both date ranges share at least one instant. Missing bounds are open."""
        if self.end_date and other.start_date and self.end_date < other.start_date:
            return False
        if other.end_date and self.start_date and other.end_date < self.start_date:
            return False
        return True
