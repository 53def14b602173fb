"""
Tests for assignment consistency rules
"""
from datetime import datetime, timezone

import pytest

from conftest import OTHER_OWNER, OWNER
from rolodex.errors import ConflictError, NotFoundError, ValidationError
from rolodex.models import EntityKind, EntityReference


@pytest.fixture
def pair(make_org, make_person):
    return make_person("Ada", email="ada@example.com"), make_org("Acme", industry="Software")


def engineer(person, organization, **extra):
    return {
        "person_id": person.entity_id,
        "organization_id": organization.entity_id,
        "title": "Engineer",
        "start_date": "2020-01-01",
        "end_date": "2021-01-01",
        **extra,
    }


def test_create_and_lookup_by_counterpart(service, pair):
    person, organization = pair

    created = service.create_assignment(OWNER, engineer(person, organization))

    assert created.person_name == "Ada"
    assert created.organization_name == "Acme"
    assert created.start_date == datetime(2020, 1, 1, tzinfo=timezone.utc)

    by_person = service.assignments_for(OWNER, EntityKind.PERSON, person.entity_id)
    assert len(by_person) == 1
    assert by_person[0].assignment.entity_id == created.entity_id
    assert by_person[0].organization.entity_id == organization.entity_id
    assert by_person[0].organization.details == {"industry": "Software", "website": None}
    assert by_person[0].person is None

    by_org = service.assignments_for(OWNER, EntityKind.ORGANIZATION, organization.entity_id)
    assert len(by_org) == 1
    assert by_org[0].person.name == "Ada"
    assert by_org[0].person.details["email"] == "ada@example.com"


def test_start_after_end_is_rejected_and_nothing_is_stored(service, store, pair):
    person, organization = pair

    with pytest.raises(ValidationError) as exc_info:
        service.create_assignment(OWNER, engineer(person, organization,
                                                  start_date="2022-01-01", end_date="2021-01-01"))

    assert "Acme" in str(exc_info.value)
    assert store.assignments.count(OWNER) == 0


def test_unparseable_date_is_a_validation_error(service, pair):
    person, organization = pair

    with pytest.raises(ValidationError):
        service.create_assignment(OWNER, engineer(person, organization, start_date="someday"))


def test_references_are_required(service, pair):
    person, _ = pair

    with pytest.raises(ValidationError):
        service.create_assignment(OWNER, {"person_id": person.entity_id, "title": "Engineer"})


def test_missing_or_foreign_reference_is_not_found(service, store, pair, make_org):
    person, organization = pair
    foreign = make_org("Globex", owner=OTHER_OWNER)

    with pytest.raises(NotFoundError):
        service.create_assignment(OWNER, engineer(person, foreign))
    with pytest.raises(NotFoundError):
        service.create_assignment(OTHER_OWNER, engineer(person, foreign))
    with pytest.raises(NotFoundError):
        service.create_assignment(OWNER, {**engineer(person, organization), "person_id": "ghost"})

    assert store.assignments.count(OWNER) == 0
    assert store.assignments.count(OTHER_OWNER) == 0


def test_unknown_field_is_rejected(service, pair):
    person, organization = pair

    with pytest.raises(ValidationError):
        service.create_assignment(OWNER, engineer(person, organization, salary=100))


def test_duplicate_role_for_overlapping_period(service, pair):
    person, organization = pair
    service.create_assignment(OWNER, engineer(person, organization))

    with pytest.raises(ValidationError):
        service.create_assignment(OWNER, engineer(person, organization, title="engineer ",
                                                  start_date="2020-06-01", end_date=None))

    # Same title later on, and a different title at the same time, are both fine
    service.create_assignment(OWNER, engineer(person, organization, start_date="2022-01-01", end_date=None))
    service.create_assignment(OWNER, engineer(person, organization, title="Manager"))


def test_update_rechecks_dates(service, store, pair):
    person, organization = pair
    created = service.create_assignment(OWNER, engineer(person, organization))

    with pytest.raises(ValidationError):
        service.update_assignment(OWNER, created.entity_id, {"start_date": "2021-06-01"})
    assert store.assignments.get(created.entity_id, OWNER).start_date == created.start_date

    updated = service.update_assignment(OWNER, created.entity_id, {
        "title": "Senior Engineer", "end_date": None, "current": True})
    assert updated.title == "Senior Engineer"
    assert updated.end_date is None
    assert updated.current is True
    assert updated.revision == created.revision + 1


def test_references_are_immutable(service, pair, make_person):
    person, organization = pair
    other = make_person("Grace")
    created = service.create_assignment(OWNER, engineer(person, organization))

    with pytest.raises(ValidationError):
        service.update_assignment(OWNER, created.entity_id, {"person_id": other.entity_id})

    # Echoing the current reference back is harmless
    updated = service.update_assignment(OWNER, created.entity_id, {
        "person_id": person.entity_id, "notes": "moved teams"})
    assert updated.notes == "moved teams"


def test_update_with_stale_revision(service, pair):
    person, organization = pair
    created = service.create_assignment(OWNER, engineer(person, organization))
    service.update_assignment(OWNER, created.entity_id, {"notes": "first"})

    with pytest.raises(ConflictError):
        service.update_assignment(OWNER, created.entity_id, {"notes": "second"},
                                  expected_revision=created.revision)


def test_update_duplicate_check_ignores_itself(service, pair):
    person, organization = pair
    created = service.create_assignment(OWNER, engineer(person, organization))

    updated = service.update_assignment(OWNER, created.entity_id, {"end_date": "2020-12-31"})
    assert updated.end_date == datetime(2020, 12, 31, tzinfo=timezone.utc)


def test_delete_assignment(service, pair):
    person, organization = pair
    created = service.create_assignment(OWNER, engineer(person, organization))

    with pytest.raises(NotFoundError):
        service.delete_assignment(OTHER_OWNER, created.entity_id)

    assert service.delete_assignment(OWNER, created.entity_id).entity_id == created.entity_id
    with pytest.raises(NotFoundError):
        service.delete_assignment(OWNER, created.entity_id)


def test_orphans_are_skipped_on_read(service, store, pair):
    person, organization = pair
    created = service.create_assignment(OWNER, engineer(person, organization))
    # Bypass the cascade to simulate a half-finished delete
    store.people.delete(person.entity_id, OWNER)

    assert service.list_assignments(OWNER) == []
    assert service.assignments_for(OWNER, EntityKind.ORGANIZATION, organization.entity_id) == []
    with pytest.raises(NotFoundError):
        service.get_assignment(OWNER, created.entity_id)


def test_get_and_list(service, pair):
    person, organization = pair
    created = service.create_assignment(OWNER, engineer(person, organization))

    view = service.get_assignment(OWNER, created.entity_id)
    assert view.person.name == "Ada"
    assert view.organization.name == "Acme"
    assert [v.assignment.entity_id for v in service.list_assignments(OWNER)] == [created.entity_id]
    assert service.list_assignments(OTHER_OWNER) == []


@pytest.mark.parametrize("value", ["false", 0, None])
def test_current_must_be_a_boolean(service, store, pair, value):
    person, organization = pair

    with pytest.raises(ValidationError):
        service.create_assignment(OWNER, engineer(person, organization, current=value))
    assert store.assignments.count(OWNER) == 0

    created = service.create_assignment(OWNER, engineer(person, organization, current=False))
    with pytest.raises(ValidationError):
        service.update_assignment(OWNER, created.entity_id, {"current": value})
    assert store.assignments.get(created.entity_id, OWNER).current is False


def test_references_resolve_through_the_store(service, store, pair):
    person, organization = pair
    created = service.create_assignment(OWNER, engineer(person, organization))

    assert store.resolve(created.person, OWNER).name == "Ada"
    assert store.resolve(created.organization, OWNER).name == "Acme"
    with pytest.raises(NotFoundError):
        store.resolve(created.person, OTHER_OWNER)
    with pytest.raises(ValidationError):
        store.resolve(EntityReference("company", organization.entity_id), OWNER)
