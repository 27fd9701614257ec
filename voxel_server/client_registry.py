"""Connected client sessions: identity, display color and outbound queue."""
import asyncio
import itertools
import logging
import random
import threading
from typing import Any, Dict, List, Optional, Sequence

from websockets.protocol import State

logger = logging.getLogger(__name__)

COLOR_PALETTE = (
    '#FF6B6B', '#4ECDC4', '#FFD166', '#06D6A0', '#118AB2',
    '#EF476F', '#FFC43D', '#1B9AAA', '#6A4C93', '#F72585',
)


class Session:
    """Server-side record of one connected participant"""

    def __init__(self, client_id: int, color: str, transport: Any,
                 address: Optional[str] = None, outbox_size: int = 0):
        self.id = client_id
        self.color = color
        self.transport = transport
        self.address = address or 'unknown'
        self.outbox: asyncio.Queue = asyncio.Queue(maxsize=outbox_size)
        self.close_task: Optional[asyncio.Task] = None

    def __repr__(self):
        return f"Session(id={self.id}, color={self.color!r}, address={self.address!r})"

    @property
    def is_open(self) -> bool:
        return getattr(self.transport, 'state', None) is State.OPEN

    def deliver(self, text: str) -> bool:
        """Queue an already serialized message; False if the outbox is full"""
        try:
            self.outbox.put_nowait(text)
        except asyncio.QueueFull:
            return False
        return True


class ClientRegistry:
    """Maps transport handles to sessions.  Identities are never reused."""

    def __init__(self, rng: Optional[random.Random] = None,
                 palette: Sequence[str] = COLOR_PALETTE, outbox_size: int = 0):
        if not palette:
            raise ValueError("color palette must not be empty")
        self._rng = rng or random.Random()
        self._palette = tuple(palette)
        self._outbox_size = outbox_size
        self._ids = itertools.count(1)
        self._sessions: Dict[Any, Session] = {}
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._sessions)

    def register(self, connection: Any, address: Optional[str] = None) -> Session:
        with self._lock:
            session = Session(next(self._ids), self._rng.choice(self._palette), connection,
                              address=address, outbox_size=self._outbox_size)
            self._sessions[connection] = session
            total = len(self._sessions)
        logger.info(f"👤 Client #{session.id} registered from {session.address} ({total} connected)")
        return session

    def unregister(self, connection: Any) -> Optional[Session]:
        """Remove a connection; returns the removed session or None if it was not registered"""
        with self._lock:
            session = self._sessions.pop(connection, None)
        if session is not None:
            logger.info(f"👋 Client #{session.id} unregistered")
        return session

    def lookup(self, connection: Any) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(connection)

    def all(self) -> List[Session]:
        with self._lock:
            return list(self._sessions.values())
