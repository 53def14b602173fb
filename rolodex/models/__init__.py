"""
Models for rolodex
"""

from .base_model import BaseModel, coerce_datetime, get_uuid_hex
from .enums import EntityKind
from .relationship_edge import RelationshipEdge, EntityReference
from .organization import Organization
from .person import Person
from .assignment import Assignment
