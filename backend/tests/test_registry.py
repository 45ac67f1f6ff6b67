import pytest

from agriquiz.errors import RoomNotFound
from agriquiz.services.quiz.registry import RoomRegistry
from agriquiz.services.quiz.validation import (
    ROOM_CODE_ALPHABET,
    ROOM_CODE_LENGTH,
    generate_room_code,
    normalize_room_code,
)


def test_generated_codes_use_unambiguous_alphabet():
    for _ in range(50):
        code = generate_room_code()
        assert len(code) == ROOM_CODE_LENGTH
        assert set(code) <= set(ROOM_CODE_ALPHABET)
    assert len(ROOM_CODE_ALPHABET) ** ROOM_CODE_LENGTH >= 2 ** 30


def test_normalize_room_code():
    assert normalize_room_code(' ab-c12 ') == 'ABC12'
    assert normalize_room_code('') is None
    assert normalize_room_code(None) is None


def test_create_room_starts_empty():
    registry = RoomRegistry()
    room = registry.create_room('manager-sid')
    assert room.manager_id == 'manager-sid'
    assert room.players == []
    assert room.settings is None
    assert room.started is False
    assert registry.get_room(room.id) is room
    assert registry.get_room(room.id.lower()) is room


def test_create_room_regenerates_on_collision():
    codes = iter(['AAAAAA', 'AAAAAA', 'BBBBBB'])
    registry = RoomRegistry(code_factory=lambda: next(codes))
    first = registry.create_room('s1')
    second = registry.create_room('s2')
    assert (first.id, second.id) == ('AAAAAA', 'BBBBBB')
    assert len(registry) == 2


def test_get_missing_room_returns_none():
    assert RoomRegistry().get_room('NOPE42') is None


def test_locked_missing_room_raises():
    with pytest.raises(RoomNotFound):
        with RoomRegistry().locked('NOPE42'):
            pass


def test_remove_room_drops_memberships():
    registry = RoomRegistry()
    room = registry.create_room('m')
    registry.add_member('p1', room.id)
    assert registry.remove_room(room.id) is room
    assert room.id not in registry
    assert registry.pop_memberships('p1') == set()
    assert registry.remove_room(room.id) is None


def test_membership_index():
    registry = RoomRegistry()
    a = registry.create_room('m')
    b = registry.create_room('m')
    registry.add_member('p1', a.id)
    registry.add_member('p1', b.id)
    registry.discard_member('p1', a.id)
    assert registry.pop_memberships('p1') == {b.id}
    assert registry.pop_memberships('p1') == set()


def test_expire_idle_removes_only_stale_rooms():
    registry = RoomRegistry()
    old = registry.create_room('m')
    fresh = registry.create_room('m')
    old.touched_at = 100.0
    fresh.touched_at = 190.0
    assert registry.expire_idle(60, now=200.0) == [old.id]
    assert old.id not in registry
    assert fresh.id in registry
    assert registry.expire_idle(0, now=10_000.0) == []
