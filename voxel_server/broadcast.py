"""Fan-out of server messages to every connected client."""
import asyncio
import logging
from typing import Optional

from .client_registry import ClientRegistry, Session
from .protocol import Message, encode_message

logger = logging.getLogger(__name__)

OVERFLOW_CLOSE_CODE = 1013


class BroadcastHub:
    """Serializes a message once and queues it on each open session"""

    def __init__(self, registry: ClientRegistry):
        self.registry = registry

    def publish(self, message: Message) -> int:
        """Deliver to all open sessions; returns how many received it"""
        text = encode_message(message)
        delivered = 0
        for session in self.registry.all():
            if self._deliver(session, text):
                delivered += 1
        logger.debug(f"📣 {message.kind} delivered to {delivered} client(s)")
        return delivered

    def send(self, session: Session, message: Message) -> bool:
        return self._deliver(session, encode_message(message))

    def _deliver(self, session: Session, text: str) -> bool:
        if not session.is_open:
            return False
        if session.deliver(text):
            return True
        # the client stopped reading; its handler unregisters it once the close completes
        logger.warning(f"⚠️ Outbound queue full for client #{session.id}, closing connection")
        self._close_stalled(session)
        return False

    @staticmethod
    def _close_stalled(session: Session) -> Optional[asyncio.Task]:
        if session.close_task is None:
            session.close_task = asyncio.ensure_future(
                session.transport.close(OVERFLOW_CLOSE_CODE, 'outbound queue full'))
        return session.close_task
