import threading

import pytest

from segment_manager_api.app.core.errors import NotFoundError, ValidationError
from segment_manager_api.app.services.membership_service import (
    MembershipIndex,
    bucket_for_user,
    normalize_user_id,
)


def test_normalize_user_id():
    assert normalize_user_id(42) == "42"
    assert normalize_user_id(" 42 ") == "42"
    for bad in (None, "", "  "):
        with pytest.raises(ValidationError):
            normalize_user_id(bad)


def test_bucket_is_modulo_for_numeric_ids():
    assert bucket_for_user(1) == 1
    assert bucket_for_user(100) == 0
    assert bucket_for_user(1000) == 0
    assert bucket_for_user("342") == 42
    assert bucket_for_user(2**70 + 5) == (2**70 + 5) % 100


def test_bucket_is_stable_for_other_ids():
    assert bucket_for_user("alice") == bucket_for_user("alice")
    assert 0 <= bucket_for_user("alice") < 100


def test_index_drops_empty_users():
    index = MembershipIndex()
    assert index.add(1, "s1") is True
    assert index.add("1", "s1") is False
    assert index.remove(1, "s1") is True
    assert len(index) == 0
    assert index.remove(1, "s1") is False


def test_cascade_delete_in_index():
    index = MembershipIndex()
    index.add(1, "a")
    index.add(1, "b")
    index.add(2, "a")
    assert index.cascade_delete_segment("a") == 2
    assert index.snapshot() == {"1": {"b"}}


def test_add_requires_existing_segment(manager):
    with pytest.raises(NotFoundError):
        manager.add_user_to_segment(42, "missing")
    assert manager.user_count() == 0


@pytest.mark.parametrize("user_id,segment_id", [("", "x"), (None, "x"), (42, ""), (42, None)])
def test_membership_arguments_required(manager, user_id, segment_id):
    manager.create_segment("A")
    with pytest.raises(ValidationError):
        manager.add_user_to_segment(user_id, segment_id)
    with pytest.raises(ValidationError):
        manager.remove_user_from_segment(user_id, segment_id)


def test_add_is_idempotent(manager):
    segment = manager.create_segment("A")
    assert manager.add_user_to_segment(42, segment.id) is True
    assert manager.add_user_to_segment(42, segment.id) is False
    assert manager.list_segment_members(segment.id) == ["42"]


def test_add_then_remove_round_trip(manager):
    a = manager.create_segment("A")
    b = manager.create_segment("B")
    manager.add_user_to_segment(7, a.id)
    before = manager.lookup_user_segments(7)

    manager.add_user_to_segment(7, b.id)
    manager.remove_user_from_segment(7, b.id)
    assert manager.lookup_user_segments(7) == before

    manager.remove_user_from_segment(7, a.id)
    result = manager.lookup_user_segments(7)
    assert result.found is False
    assert result.segments == []
    assert manager.user_count() == 0


def test_remove_is_idempotent(manager):
    segment = manager.create_segment("A")
    manager.add_user_to_segment(1, segment.id)
    assert manager.remove_user_from_segment(1, segment.id) is True
    assert manager.remove_user_from_segment(1, segment.id) is False
    assert manager.remove_user_from_segment(1, "never-existed") is False


def test_lookup_uses_segment_listing_order(manager):
    a = manager.create_segment("A")
    b = manager.create_segment("B")
    c = manager.create_segment("C")
    for segment in (c, a, b):
        manager.add_user_to_segment("u1", segment.id)
    assert [s.name for s in manager.lookup_user_segments("u1").segments] == ["A", "B", "C"]


def test_lookup_unknown_user(manager):
    result = manager.lookup_user_segments(999)
    assert result.found is False
    assert result.user_id == "999"
    with pytest.raises(ValidationError):
        manager.lookup_user_segments("")


def test_delete_segment_cascades(manager):
    a = manager.create_segment("A")
    b = manager.create_segment("B")
    manager.add_user_to_segment(1, a.id)
    manager.add_user_to_segment(1, b.id)
    manager.add_user_to_segment(2, a.id)

    manager.delete_segment(a.id)

    for user_id in (1, 2):
        assert a.id not in {s.id for s in manager.lookup_user_segments(user_id).segments}
    assert [s.id for s in manager.lookup_user_segments(1).segments] == [b.id]
    assert manager.lookup_user_segments(2).found is False
    assert manager.user_count() == 1


def test_delete_unknown_segment(manager):
    with pytest.raises(NotFoundError):
        manager.delete_segment("missing")


def test_beta_scenario(manager):
    beta = manager.create_segment("BETA", "Beta testers")
    manager.add_user_to_segment(42, beta.id)

    result = manager.lookup_user_segments(42)
    assert [(s.name, s.description) for s in result.segments] == [("BETA", "Beta testers")]

    manager.delete_segment(beta.id)
    assert manager.lookup_user_segments(42).segments == []


def test_bucket_for_very_long_numeric_ids():
    huge = 10**5000 + 7
    assert bucket_for_user(huge) == 7
    assert bucket_for_user("1" + "0" * 5000 + "7") == 7
    assert bucket_for_user(huge) == bucket_for_user(normalize_user_id(huge))


def test_very_long_numeric_id_is_usable(manager):
    segment = manager.create_segment("A")
    huge = 10**5000 + 7
    assert manager.assign_random_users(segment.id, 50, [huge, 60]) == 1
    assert manager.add_user_to_segment(3, segment.id) is True
    members = manager.list_segment_members(segment.id)
    assert members == ["3", normalize_user_id(huge)]
    assert normalize_user_id(huge).endswith("0007")
    assert manager.lookup_user_segments(huge).found is True


def test_members_sorted_numerically_then_by_text(manager):
    segment = manager.create_segment("A")
    for user_id in ("bob", 100, 9, "alice", 25):
        manager.add_user_to_segment(user_id, segment.id)
    assert manager.list_segment_members(segment.id) == ["9", "25", "100", "alice", "bob"]


def test_concurrent_adds_and_delete_leave_no_dangling_memberships(manager):
    segment = manager.create_segment("A")
    keep = manager.create_segment("B")
    manager.add_user_to_segment(0, keep.id)
    start = threading.Barrier(5)

    def add_users(offset):
        start.wait()
        for user_id in range(offset, offset + 500):
            try:
                manager.add_user_to_segment(user_id, segment.id)
            except NotFoundError:
                break

    def delete_segment():
        start.wait()
        manager.delete_segment(segment.id)

    threads = [threading.Thread(target=add_users, args=(n * 1000,)) for n in range(4)]
    threads.append(threading.Thread(target=delete_segment))
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    snapshot = manager._index.snapshot()
    assert all(segment.id not in segments for segments in snapshot.values())
    assert all(segments for segments in snapshot.values())
    assert snapshot == {"0": {keep.id}}
