"""
Errors raised by rolodex
"""
from typing import Any, List, Optional, Sequence


class RolodexError(Exception):
    """Base class for every error raised by the relationship engine."""


class NotFoundError(RolodexError):
    """
    Raised when an entity or a counterpart is missing.

    Records owned by another user are reported exactly like missing ones.
    """

    def __init__(self, collection: str, entity_id: Any):
        self.collection = collection
        self.entity_id = entity_id
        super().__init__(f"{collection.capitalize()} {entity_id} not found")


class ValidationError(RolodexError):
    """
    Exception raised when one or more validation errors occur.

    Attributes:
        errors (list): A list of error messages returned from validation methods.
    """

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        elif not isinstance(errors, list):
            raise ValueError("Errors should be a string or a list of strings")
        self.errors = errors
        super().__init__(self.format_errors())

    def format_errors(self):
        return "\n".join(self.errors)

    def __str__(self):
        return self.format_errors()


class ConflictError(RolodexError):
    """Raised when an update carries a stale ``expected_revision``."""

    def __init__(self, collection: str, entity_id: Any, expected_revision: int):
        self.collection = collection
        self.entity_id = entity_id
        self.expected_revision = expected_revision
        super().__init__(
            f"{collection.capitalize()} {entity_id} was modified concurrently "
            f"(expected revision {expected_revision})")


class PartialSyncFailure(RolodexError):
    """
    Raised after the primary write committed but some dependent updates failed.

    The primary entity is authoritative. Callers should retry the sync step
    (``repair_mirrors``) for ``counterpart_ids`` rather than the whole mutation.
    A cascade delete that could not finish lists the counterpart records still
    holding an edge in ``counterpart_ids`` and the surviving assignments in
    ``assignment_ids``.
    """

    def __init__(
        self,
        counterpart_ids: Sequence[str],
        entity: Optional[Any] = None,
        failures: Optional[List[Any]] = None,
        assignment_ids: Optional[Sequence[str]] = None
    ):
        self.counterpart_ids = list(counterpart_ids)
        self.assignment_ids = list(assignment_ids or [])
        self.entity = entity
        self.failures = failures or []
        message = f"Relationship sync incomplete for counterparts: {', '.join(self.counterpart_ids)}"
        if self.assignment_ids:
            message += f"; assignments remaining: {', '.join(self.assignment_ids)}"
        super().__init__(message)
