"""WebSocket handler for browser clients editing the shared world"""
import asyncio
import logging
from contextlib import suppress

import websockets

from .client_registry import Session
from .grid_store import OutOfBounds
from .protocol import InitWorld, MalformedMessage, RosterEntry, UserJoined, UserLeft, parse_edit_request
from .state import ServerContext

logger = logging.getLogger(__name__)

WRITER_FAILED_CLOSE_CODE = 1011


def _format_address(websocket) -> str:
    try:
        return f"{websocket.remote_address[0]}:{websocket.remote_address[1]}"
    except (AttributeError, IndexError, TypeError):
        return 'unknown'


class ConnectionHandler:
    """Runs the lifecycle of every client connection.

    One task per connection owns the receive loop; outbound frames are queued
    on the session by the broadcast hub and written by a companion writer
    task, so a slow client never holds up edits from the others.
    """

    def __init__(self, context: ServerContext):
        self.context = context

    async def __call__(self, websocket):
        context = self.context
        session = context.registry.register(websocket, _format_address(websocket))
        logger.info(f"🟢 Client #{session.id} connected from {session.address}")
        writer = asyncio.create_task(self._write_loop(websocket, session))
        try:
            self._join(session)
            async for frame in websocket:
                try:
                    self.handle_frame(session, frame)
                except Exception:
                    logger.exception(f"Error handling message from client #{session.id}")
        except websockets.exceptions.ConnectionClosed as e:
            logger.debug(f"Client #{session.id} connection closed: {e}")
        except OSError as e:
            logger.warning(f"Transport error for client #{session.id}: {e}")
        finally:
            self._leave(websocket)
            await self._stop_writer(session, writer)

    def _join(self, session: Session):
        context = self.context
        context.hub.send(session, InitWorld(context.grid.snapshot(), session.id, session.color))
        roster = tuple(RosterEntry(s.id, s.color) for s in sorted(context.registry.all(), key=lambda s: s.id))
        context.hub.publish(UserJoined(session.id, roster))

    def _leave(self, websocket):
        session = self.context.registry.unregister(websocket)
        if session is None:
            return
        logger.info(f"🔴 Client #{session.id} disconnected")
        self.context.hub.publish(UserLeft(session.id))

    def handle_frame(self, session: Session, frame) -> bool:
        """Apply one inbound frame; returns True when an edit was broadcast.

        Rejected frames are only logged; the sender is never told.
        """
        try:
            edit = parse_edit_request(frame, self.context.config.max_block_type)
        except MalformedMessage as e:
            logger.warning(f"Dropped malformed message from client #{session.id}: {e}")
            return False
        logger.debug(f"Received {edit.kind} from client #{session.id}: {edit.pos} -> {edit.block_type}")
        try:
            self.context.grid.set(*edit.pos, edit.block_type)
        except OutOfBounds as e:
            logger.warning(f"Dropped edit from client #{session.id}: {e}")
            return False
        self.context.hub.publish(edit.tagged(session.id, session.color))
        return True

    @staticmethod
    async def _write_loop(websocket, session: Session):
        while True:
            text = await session.outbox.get()
            try:
                await websocket.send(text)
            except websockets.exceptions.ConnectionClosed:
                return
            except Exception:
                # ends the receive loop as well
                await websocket.close(WRITER_FAILED_CLOSE_CODE, "internal error")
                raise

    @staticmethod
    async def _stop_writer(session: Session, writer: asyncio.Task):
        if not writer.done():
            writer.cancel()
        with suppress(asyncio.CancelledError):
            try:
                await writer
            except Exception:
                logger.exception(f"Writer for client #{session.id} failed")
