"""Per-room-type coordination slots.

Every operation that changes a room type's active-reservation set holds
that room type's slot while it reads availability and commits. Distinct
room types have independent slots and never block each other.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from booking.models.errors import Busy
from booking.utils.logging import get_logger

logger = get_logger(__name__)


class RoomTypeLocks:
    """Registry of one exclusive lock per room type, with bounded waits."""

    def __init__(self, timeout_seconds: float = 5.0) -> None:
        """Initialize the lock registry.

        Args:
            timeout_seconds: Longest time a caller waits for a slot before Busy
        """
        self.timeout_seconds = timeout_seconds
        self._registry_lock = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def _lock_for(self, room_type_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(room_type_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[room_type_id] = lock
            return lock

    @contextmanager
    def slot(self, room_type_id: str, timeout_seconds: float | None = None) -> Iterator[None]:
        """Hold the room type's slot for the duration of the block.

        The slot is released on every exit path, including exceptions.

        Raises:
            Busy: If the slot is not acquired within the timeout
        """
        timeout = self.timeout_seconds if timeout_seconds is None else timeout_seconds
        lock = self._lock_for(room_type_id)
        if not lock.acquire(timeout=timeout):
            logger.warning(
                "Slot for room type %s not acquired within %.2fs", room_type_id, timeout
            )
            raise Busy(details={"room_type_id": room_type_id, "timeout_seconds": str(timeout)})
        try:
            yield
        finally:
            lock.release()

    def is_held(self, room_type_id: str) -> bool:
        return self._lock_for(room_type_id).locked()
