"""Per-session mutual exclusion."""
import asyncio
import itertools
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict

from brewchat.core.errors import SessionBusy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionLease:
    """Proof that the holder currently owns a session."""

    session_id: str
    generation: int


class SessionLockRegistry:
    """Hands out one lease per session id at a time.

    Locks are created on demand and dropped once nobody holds or waits for
    them, so the registry only tracks sessions with a turn in flight.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}
        self._generations = itertools.count(1)

    def is_held(self, session_id: str) -> bool:
        lock = self._locks.get(session_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, session_id: str, wait: float = 0.0) -> AsyncIterator[SessionLease]:
        """
        Own ``session_id`` for the duration of the block.

        Args:
            session_id: Session to lock
            wait: Seconds to wait for the current holder; 0 rejects immediately

        Raises:
            SessionBusy: if the session could not be acquired in time
        """
        lock = self._locks.setdefault(session_id, asyncio.Lock())
        self._users[session_id] = self._users.get(session_id, 0) + 1
        try:
            if wait <= 0:
                if lock.locked():
                    raise SessionBusy(f"Session {session_id} is busy with another turn")
                await lock.acquire()
            else:
                try:
                    await asyncio.wait_for(lock.acquire(), timeout=wait)
                except asyncio.TimeoutError:
                    raise SessionBusy(f"Session {session_id} is busy with another turn")

            lease = SessionLease(session_id=session_id, generation=next(self._generations))
            logger.debug(f"[SESSION LOCK] Acquired {session_id} (generation {lease.generation})")
            try:
                yield lease
            finally:
                lock.release()
                logger.debug(f"[SESSION LOCK] Released {session_id} (generation {lease.generation})")
        finally:
            self._users[session_id] -= 1
            if self._users[session_id] == 0:
                del self._users[session_id]
                self._locks.pop(session_id, None)


# Module-level registry shared by all requests in this process
session_locks = SessionLockRegistry()
