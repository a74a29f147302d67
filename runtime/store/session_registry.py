"""In-memory session registry for the MCP tool bridge.

The registry keeps one independent store per transport kind, each mapping
session_id -> connection handle. It is the only shared mutable state in the
server and the sole owner of every handle it holds:

- `create` allocates a fresh id, builds the handle for it and binds it.
- `lookup` resolves an id without taking a lock.
- `remove` unbinds an id and closes its handle. Removing an id that is not
  (or no longer) present is a no-op.

Mutations of one store are serialized by that store's lock; the two stores
never block each other.
"""

import logging
from typing import Callable, Dict, List, Optional, Protocol, Tuple, TypeVar
from uuid import uuid4

import anyio

from exceptions.exceptions import SessionIdCollisionError
from ..models.session_models import TransportKind


logger = logging.getLogger(__name__)


class SessionHandle(Protocol):
    """Anything the registry can own: it must know how to release itself."""

    async def close(self) -> None:
        ...


HandleT = TypeVar("HandleT", bound=SessionHandle)


def _default_session_id() -> str:
    return uuid4().hex


class SessionRegistry:
    """Keyed stores of live connections, one per TransportKind.

    Parameters
    ----------
    id_factory:
        Callable producing candidate session ids. Defaults to a random
        128-bit UUID rendered as hex.
    max_id_attempts:
        How many candidates `create` tries before giving up with
        SessionIdCollisionError.
    """

    def __init__(
        self,
        id_factory: Optional[Callable[[], str]] = None,
        max_id_attempts: int = 8,
    ) -> None:
        self._id_factory = id_factory or _default_session_id
        self._max_id_attempts = max_id_attempts
        self._stores: Dict[TransportKind, Dict[str, SessionHandle]] = {
            kind: {} for kind in TransportKind
        }
        self._locks: Dict[TransportKind, anyio.Lock] = {
            kind: anyio.Lock() for kind in TransportKind
        }

    async def create(
        self,
        kind: TransportKind,
        factory: Callable[[str], HandleT],
    ) -> Tuple[str, HandleT]:
        """Allocate a new session id for `kind` and bind `factory(id)` to it."""
        async with self._locks[kind]:
            store = self._stores[kind]
            session_id = self._allocate_id(kind, store)
            handle = factory(session_id)
            store[session_id] = handle

        logger.info("[SESSION] Created %s session %s", kind.value, session_id)
        return session_id, handle

    def _allocate_id(self, kind: TransportKind, store: Dict[str, SessionHandle]) -> str:
        for attempt in range(1, self._max_id_attempts + 1):
            candidate = self._id_factory()
            if candidate not in store:
                return candidate
            logger.warning(
                "[SESSION] %s session id collision on attempt %d, regenerating",
                kind.value,
                attempt,
            )
        raise SessionIdCollisionError(kind.value, self._max_id_attempts)

    def lookup(self, kind: TransportKind, session_id: Optional[str]) -> Optional[SessionHandle]:
        if not session_id:
            return None
        return self._stores[kind].get(session_id)

    async def remove(self, kind: TransportKind, session_id: str) -> bool:
        """Unbind `session_id` and close its handle.

        Returns True if a session was removed, False if it was already gone.
        """
        async with self._locks[kind]:
            handle = self._stores[kind].pop(session_id, None)

        if handle is None:
            return False

        # Closing may trigger the transport's own closure path, which calls
        # back into remove(); the lock must not be held here.
        try:
            await handle.close()
        except Exception:
            logger.exception(
                "[SESSION] Error while closing %s session %s", kind.value, session_id
            )

        logger.info("[SESSION] Removed %s session %s", kind.value, session_id)
        return True

    def sessions(self, kind: TransportKind) -> List[str]:
        return list(self._stores[kind])

    def count(self, kind: TransportKind) -> int:
        return len(self._stores[kind])

    async def close_all(self) -> None:
        for kind in TransportKind:
            for session_id in self.sessions(kind):
                await self.remove(kind, session_id)
