"""Shared runtime state for the server, owned by one ServerContext."""
import logging
import random
from datetime import datetime, timezone
from typing import Optional

from .broadcast import BroadcastHub
from .client_registry import ClientRegistry
from .config import ServerConfig
from .grid_store import GridStore

logger = logging.getLogger(__name__)


class ServerContext:
    """Grid, registry and hub for one server process.

    Passed explicitly to the connection handler and the HTTP endpoint so no
    module holds process-wide mutable state.
    """

    def __init__(self, config: Optional[ServerConfig] = None, rng: Optional[random.Random] = None,
                 grid: Optional[GridStore] = None):
        self.config = config or ServerConfig()
        if rng is None:
            rng = random.Random(self.config.world_seed)
        self.rng = rng
        self.grid = grid or GridStore.generate(*self.config.world_shape, rng=rng,
                                               scatter_count=self.config.scatter_count)
        self.registry = ClientRegistry(rng=rng, outbox_size=self.config.outbox_size)
        self.hub = BroadcastHub(self.registry)
        self.started_at = now_utc()

    def uptime_seconds(self) -> float:
        return (now_utc() - self.started_at).total_seconds()


def now_utc():
    return datetime.now(timezone.utc)
