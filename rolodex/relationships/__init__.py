"""Relationship consistency engine"""
from .diff import RelationshipDiff, diff_relationships, normalize_edges
from .sync import RelationshipSynchronizer, SyncFailure, SyncResult
from .naming import NamePropagator
from .assignments import AssignmentManager, AssignmentView, EntitySummary
