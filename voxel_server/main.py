"""Entrypoint that wires up the WebSocket and static HTTP servers"""
import asyncio
import logging
import signal
from typing import Optional

import psutil
import websockets

from .config import ServerConfig
from .http import start_http_server, stop_http_server
from .state import ServerContext
from .web_ws import ConnectionHandler

logger = logging.getLogger(__name__)


def install_signal_handlers(shutdown_event: asyncio.Event):
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows event loops have no add_signal_handler
            signal.signal(sig, lambda signum, frame: loop.call_soon_threadsafe(shutdown_event.set))


async def main(config: Optional[ServerConfig] = None, shutdown_event: Optional[asyncio.Event] = None):
    """Run until the shutdown event is set (SIGINT/SIGTERM by default)"""
    config = config or ServerConfig.from_env()
    if shutdown_event is None:
        shutdown_event = asyncio.Event()
        install_signal_handlers(shutdown_event)

    logger.info('=' * 60)
    logger.info('🧱 Voxel collaboration server')
    logger.info('=' * 60)
    available_memory_gb = psutil.virtual_memory().available / (1024 ** 3)
    logger.info(f"💻 System: {psutil.cpu_count()} CPUs, {available_memory_gb:.1f} GB available RAM")

    context = ServerContext(config)
    http_server = start_http_server(context)

    ws_server = None
    try:
        ws_server = await websockets.serve(
            ConnectionHandler(context),
            config.ws_host,
            config.ws_port,
            ping_interval=config.ping_interval or None,
        )
        logger.info(f"✅ WebSocket server listening on ws://{config.ws_host}:{config.ws_port}")
        logger.info(f"📍 Open http://localhost:{config.http_port} in your browser, Ctrl+C to stop")
        await shutdown_event.wait()
        logger.info("👋 Starting graceful shutdown...")
    except Exception as e:
        logger.error(f"❌ Server error: {e}", exc_info=True)
        raise
    finally:
        if ws_server:
            logger.info("  • Closing WebSocket server...")
            ws_server.close()
            await ws_server.wait_closed()
        logger.info("  • Stopping HTTP server...")
        await stop_http_server(http_server)
        logger.info("✅ Server shutdown complete")
