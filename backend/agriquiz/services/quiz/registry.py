"""In-memory room registry.

One instance is owned by each Flask app (``app.extensions``). The registry
dict is guarded by a short-lived lock; every room additionally carries its
own lock so transitions on different rooms never contend.
"""
from contextlib import contextmanager
from threading import Lock
from typing import Dict, Iterator, List, Optional, Set
import logging
import time

from agriquiz.errors import RoomNotFound
from agriquiz.models import Room
from .validation import generate_room_code, normalize_room_code

logger = logging.getLogger(__name__)


class RoomRegistry:
    def __init__(self, code_factory=generate_room_code):
        self._code_factory = code_factory
        self._rooms: Dict[str, Room] = {}
        self._room_locks: Dict[str, Lock] = {}
        self._members: Dict[str, Set[str]] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id) -> bool:
        return normalize_room_code(room_id) in self._rooms

    def create_room(self, creator_id: str) -> Room:
        with self._lock:
            code = self._code_factory()
            while code in self._rooms:
                logger.warning(f"Room code collision detected, regenerating: {code}")
                code = self._code_factory()
            room = Room(id=code, manager_id=creator_id)
            self._rooms[code] = room
            self._room_locks[code] = Lock()
        logger.info(f"Created room {code} for manager {creator_id}")
        return room

    def get_room(self, room_id) -> Optional[Room]:
        return self._rooms.get(normalize_room_code(room_id))

    @contextmanager
    def locked(self, room_id) -> Iterator[Room]:
        """Hold the room's lock for the duration of one transition."""
        code = normalize_room_code(room_id)
        with self._lock:
            lock = self._room_locks.get(code)
        if lock is None:
            raise RoomNotFound(room_id)
        with lock:
            # Removed while we were waiting on the lock
            room = self._rooms.get(code)
            if room is None:
                raise RoomNotFound(room_id)
            yield room

    def remove_room(self, room_id) -> Optional[Room]:
        code = normalize_room_code(room_id)
        with self._lock:
            room = self._rooms.pop(code, None)
            self._room_locks.pop(code, None)
            for rooms in self._members.values():
                rooms.discard(code)
        if room is not None:
            logger.info(f"Removed room {code}")
        return room

    # ---- connection membership ----

    def add_member(self, sid: str, room_id: str) -> None:
        with self._lock:
            self._members.setdefault(sid, set()).add(room_id)

    def discard_member(self, sid: str, room_id: str) -> None:
        with self._lock:
            rooms = self._members.get(sid)
            if rooms is not None:
                rooms.discard(room_id)
                if not rooms:
                    del self._members[sid]

    def pop_memberships(self, sid: str) -> Set[str]:
        with self._lock:
            return self._members.pop(sid, set())

    # ---- idle expiry ----

    def expire_idle(self, ttl: float, now: Optional[float] = None) -> List[str]:
        if ttl <= 0:
            return []
        now = time.monotonic() if now is None else now
        with self._lock:
            stale = [code for code, room in self._rooms.items() if now - room.touched_at > ttl]
        return [code for code in stale if self.remove_room(code) is not None]
