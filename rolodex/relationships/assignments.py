"""
Consistency rules for the normalized person/organization join collection.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Optional

from rolodex.errors import NotFoundError, ValidationError
from rolodex.models import Assignment, BaseModel, EntityKind, coerce_datetime
from rolodex.models.assignment import IMMUTABLE_FIELDS
from rolodex.repositories import EntityStore

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = ('title', 'start_date', 'end_date', 'current', 'notes')

# Counterpart attributes shown alongside an assignment
SUMMARY_FIELDS = {
    EntityKind.ORGANIZATION: ('industry', 'website'),
    EntityKind.PERSON: ('email', 'phone'),
}


@dataclass
class EntitySummary:
    kind: EntityKind
    entity_id: str
    name: Optional[str]
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_entity(cls, kind: EntityKind, entity: BaseModel) -> 'EntitySummary':
        details = {name: getattr(entity, name) for name in SUMMARY_FIELDS[kind]}
        return cls(kind, entity.entity_id, entity.name, details)


@dataclass
class AssignmentView:
    """An assignment joined with the summaries of the entities it links."""

    assignment: Assignment
    person: Optional[EntitySummary] = None
    organization: Optional[EntitySummary] = None


class AssignmentManager:
    def __init__(self, store: EntityStore):
        self.store = store

    @staticmethod
    def _coerce_dates(fields: Dict[str, Any]) -> Dict[str, Any]:
        coerced = dict(fields)
        for name in ('start_date', 'end_date'):
            if name in coerced:
                try:
                    coerced[name] = coerce_datetime(coerced[name])
                except (TypeError, ValueError) as e:
                    raise ValidationError(f"Invalid {name}: {e}") from e
        return coerced

    @staticmethod
    def _check_current(fields: Dict[str, Any]) -> Dict[str, Any]:
        if 'current' in fields and not isinstance(fields['current'], bool):
            raise ValidationError("'current' must be true or false")
        return fields

    @staticmethod
    def _reject_unknown(fields: Dict[str, Any], allowed: Iterable[str]) -> None:
        unknown = [name for name in fields if name not in allowed]
        if unknown:
            raise ValidationError([f"Field '{name}' cannot be set on an assignment" for name in unknown])

    def _check_duplicates(self, owner_id: str, candidate: Assignment) -> None:
        """No two assignments may give the same person the same title at the same organization at once."""
        title = (candidate.title or '').strip().casefold()
        for other in self.store.assignments.find_for_pair(candidate.person_id, candidate.organization_id, owner_id):
            if other.entity_id == candidate.entity_id:
                continue
            if (other.title or '').strip().casefold() == title and candidate.overlaps(other):
                raise ValidationError(
                    f"{candidate.person_name} already holds the role '{candidate.title}' at "
                    f"{candidate.organization_name} for an overlapping period")

    def create_assignment(self, owner_id: str, fields: Dict[str, Any]) -> Assignment:
        """
        Create an assignment between an existing person and organization of the same owner.

        :raises ValidationError: missing reference ids, bad dates, duplicate role
        :raises NotFoundError: the person or the organization does not exist for this owner
        """
        self._reject_unknown(fields, IMMUTABLE_FIELDS + MUTABLE_FIELDS)
        fields = self._check_current(self._coerce_dates(fields))
        if not fields.get('person_id') or not fields.get('organization_id'):
            raise ValidationError("An assignment requires both a person_id and an organization_id")

        candidate = Assignment(
            person_id=str(fields['person_id']),
            organization_id=str(fields['organization_id']),
            title=fields.get('title'),
            start_date=fields.get('start_date'),
            end_date=fields.get('end_date'),
            current=fields.get('current', False),
            notes=fields.get('notes'),
        )
        person = self.store.resolve(candidate.person, owner_id)
        organization = self.store.resolve(candidate.organization, owner_id)
        candidate.person_name = person.name
        candidate.organization_name = organization.name
        candidate.validate()
        self._check_duplicates(owner_id, candidate)

        created = self.store.assignments.create(candidate, owner_id)
        logger.info(
            f"Assignment {created.entity_id} created: '{created.title}' for {person.name} at {organization.name}")
        return created

    def update_assignment(
        self,
        owner_id: str,
        assignment_id: str,
        fields: Dict[str, Any],
        expected_revision: Optional[int] = None
    ) -> Assignment:
        """
        Update the mutable fields of an assignment, re-checking the date order and duplicates.

        The person and organization cannot be changed; passing their current ids is tolerated.
        """
        existing = self.store.assignments.get_or_raise(assignment_id, owner_id)
        changes = dict(fields)
        for name in IMMUTABLE_FIELDS:
            if name in changes:
                if changes[name] != getattr(existing, name):
                    raise ValidationError(f"'{name}' cannot be changed once an assignment exists")
                changes.pop(name)
        self._reject_unknown(changes, MUTABLE_FIELDS)
        changes = self._check_current(self._coerce_dates(changes))

        merged = replace(existing, **changes)
        merged.validate()
        self._check_duplicates(owner_id, merged)

        updated = self.store.assignments.update_fields(assignment_id, owner_id, changes, expected_revision)
        logger.info(f"Assignment {assignment_id} updated: '{existing.title}' -> '{updated.title}'")
        return updated

    def delete_assignment(self, owner_id: str, assignment_id: str) -> Assignment:
        deleted = self.store.assignments.delete(assignment_id, owner_id)
        if deleted is None:
            raise NotFoundError(self.store.assignments.table_name, assignment_id)
        return deleted

    def cascade_delete(self, owner_id: str, kind: EntityKind, entity_id: str) -> int:
        """Delete every assignment referencing the entity. Returns how many were deleted."""
        kind = EntityKind(kind)
        deleted = self.store.assignments.delete_referencing(kind, entity_id, owner_id)
        logger.info(f"Cascade deleted {deleted} assignment(s) referencing {kind} {entity_id}")
        return deleted

    def remaining_references(self, owner_id: str, kind: EntityKind, entity_id: str) -> List[str]:
        kind = EntityKind(kind)
        return [a.entity_id for a in self.store.assignments.find_referencing(kind, entity_id, owner_id)]

    def get_assignment(self, owner_id: str, assignment_id: str) -> AssignmentView:
        assignment = self.store.assignments.get_or_raise(assignment_id, owner_id)
        views = self._join(owner_id, [assignment], EntityKind)
        if not views:
            raise NotFoundError(self.store.assignments.table_name, assignment_id)
        return views[0]

    def list_assignments(self, owner_id: str) -> List[AssignmentView]:
        return self._join(owner_id, self.store.assignments.list(owner_id), EntityKind)

    def find_by_person(self, owner_id: str, person_id: str) -> List[AssignmentView]:
        """Assignments of one person, each joined with its organization summary."""
        return self._join(owner_id, self.store.assignments.find_by_person(person_id, owner_id),
                          [EntityKind.ORGANIZATION])

    def find_by_organization(self, owner_id: str, organization_id: str) -> List[AssignmentView]:
        """Assignments at one organization, each joined with its person summary."""
        return self._join(owner_id, self.store.assignments.find_by_organization(organization_id, owner_id),
                          [EntityKind.PERSON])

    def _join(self, owner_id: str, assignments: List[Assignment], kinds: Iterable[EntityKind]) -> List[AssignmentView]:
        """
        Attach entity summaries, reading the joined side with the same owner filter.

        Assignments whose joined entity is gone are orphans; they are skipped and logged.
        """
        kinds = list(kinds)
        related = {
            kind: self.store.for_kind(kind).get_by_ids(
                [getattr(a, kind.assignment_id_field) for a in assignments], owner_id)
            for kind in kinds
        }
        views = []
        for assignment in assignments:
            view = AssignmentView(assignment)
            orphaned = False
            for kind in kinds:
                entity = related[kind].get(getattr(assignment, kind.assignment_id_field))
                if entity is None:
                    orphaned = True
                    break
                setattr(view, kind.value, EntitySummary.from_entity(kind, entity))
            if orphaned:
                logger.warning(f"Skipping orphaned assignment {assignment.entity_id}")
                continue
            views.append(view)
        return views
