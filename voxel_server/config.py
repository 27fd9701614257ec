"""Runtime configuration read from the environment (and a .env file via the launcher)."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_STATIC_DIR = Path(__file__).resolve().parent.parent / 'static'


def _int_env(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class ServerConfig:
    ws_host: str = '0.0.0.0'
    ws_port: int = 8080
    http_port: int = 3001
    static_dir: Path = DEFAULT_STATIC_DIR
    world_width: int = 16
    world_height: int = 16
    world_depth: int = 16
    scatter_count: int = 20
    world_seed: Optional[int] = None
    max_block_type: int = 255
    outbox_size: int = 1024
    ping_interval: int = 20
    log_level: str = 'INFO'

    @property
    def world_shape(self):
        return (self.world_width, self.world_height, self.world_depth)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> 'ServerConfig':
        """Build a config from environment variables, falling back to defaults"""
        env = os.environ if env is None else env
        seed_raw = env.get('WORLD_SEED')
        seed = _int_env(env, 'WORLD_SEED', 0, minimum=-(2 ** 63)) if seed_raw else None
        max_block_type = _int_env(env, 'MAX_BLOCK_TYPE', cls.max_block_type, minimum=1)
        if max_block_type > 2 ** 31 - 1:
            # grid cells are int32
            raise ValueError(f"MAX_BLOCK_TYPE must fit in 32 bits, got {max_block_type}")
        return cls(
            ws_host=env.get('WS_HOST', cls.ws_host),
            ws_port=_int_env(env, 'WS_PORT', cls.ws_port),
            http_port=_int_env(env, 'HTTP_PORT', cls.http_port),
            static_dir=Path(env.get('STATIC_DIR') or DEFAULT_STATIC_DIR),
            world_width=_int_env(env, 'WORLD_WIDTH', cls.world_width, minimum=1),
            world_height=_int_env(env, 'WORLD_HEIGHT', cls.world_height, minimum=1),
            world_depth=_int_env(env, 'WORLD_DEPTH', cls.world_depth, minimum=1),
            scatter_count=_int_env(env, 'WORLD_SCATTER_COUNT', cls.scatter_count),
            world_seed=seed,
            max_block_type=max_block_type,
            outbox_size=_int_env(env, 'OUTBOX_SIZE', cls.outbox_size, minimum=1),
            ping_interval=_int_env(env, 'PING_INTERVAL', cls.ping_interval),
            log_level=(env.get('LOG_LEVEL') or cls.log_level).upper(),
        )
