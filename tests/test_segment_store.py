from datetime import datetime, timedelta, timezone

import pytest

from segment_manager_api.app.core.errors import DuplicateNameError, NotFoundError, ValidationError
from segment_manager_api.app.services.segment_service import SegmentStore


class FakeClock:
    def __init__(self):
        self.now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds=60):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return SegmentStore(clock=clock)


def test_create_trims_and_stamps(store, clock):
    segment = store.create_segment("  MAIL_GPT ", "  GPT in mail  ")
    assert segment.name == "MAIL_GPT"
    assert segment.description == "GPT in mail"
    assert segment.created_at == clock.now
    assert segment.updated_at == clock.now
    assert segment.id


def test_create_then_list_contains_exactly_one(store):
    store.create_segment("BETA", "Beta testers")
    names = [s.name for s in store.list_segments()]
    assert names.count("BETA") == 1


def test_duplicate_name_rejected(store):
    store.create_segment("BETA")
    with pytest.raises(DuplicateNameError) as excinfo:
        store.create_segment(" BETA ")
    assert excinfo.value.field == "name"
    assert len(store) == 1


def test_names_are_case_sensitive(store):
    store.create_segment("beta")
    store.create_segment("BETA")
    assert len(store) == 2


@pytest.mark.parametrize("name", ["", "   ", None])
def test_blank_name_rejected(store, name):
    with pytest.raises(ValidationError) as excinfo:
        store.create_segment(name, "desc")
    assert excinfo.value.field == "name"
    assert store.list_segments() == []


def test_ids_are_unique(store):
    ids = {store.create_segment(f"S{i}").id for i in range(20)}
    assert len(ids) == 20


def test_listing_keeps_creation_order(store):
    for name in ("C", "A", "B"):
        store.create_segment(name)
    assert [s.name for s in store.list_segments()] == ["C", "A", "B"]


def test_update_replaces_fields_and_keeps_identity(store, clock):
    first = store.create_segment("A", "one")
    store.create_segment("B")
    clock.advance()
    updated = store.update_segment(first.id, " A2 ", " two ")
    assert updated.id == first.id
    assert updated.name == "A2"
    assert updated.description == "two"
    assert updated.created_at == first.created_at
    assert updated.updated_at > first.updated_at
    assert [s.name for s in store.list_segments()] == ["A2", "B"]


def test_update_to_own_name_is_allowed(store):
    segment = store.create_segment("A", "one")
    updated = store.update_segment(segment.id, "A", "other")
    assert updated.description == "other"


def test_update_to_other_segments_name_fails(store):
    a = store.create_segment("A")
    store.create_segment("B")
    with pytest.raises(DuplicateNameError):
        store.update_segment(a.id, "B")
    assert store.get_segment(a.id).name == "A"


def test_update_validation_and_missing(store):
    segment = store.create_segment("A")
    with pytest.raises(ValidationError):
        store.update_segment(segment.id, "  ")
    with pytest.raises(NotFoundError):
        store.update_segment("missing", "X")


def test_delete(store):
    segment = store.create_segment("A")
    store.delete_segment(segment.id)
    assert segment.id not in store
    with pytest.raises(NotFoundError):
        store.delete_segment(segment.id)


def test_name_free_after_delete(store):
    segment = store.create_segment("A")
    store.delete_segment(segment.id)
    assert store.create_segment("A").id != segment.id


def test_records_are_frozen(store):
    segment = store.create_segment("A")
    with pytest.raises(Exception):
        segment.name = "B"
