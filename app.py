# Launcher for the voxel collaboration server
import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

load_dotenv()

parser = argparse.ArgumentParser(description='Shared voxel world server')
parser.add_argument('--level', '-l', help='Logging level (DEBUG, INFO, WARNING, ERROR); overrides LOG_LEVEL')
parser.add_argument('--ws-port', type=int, help='WebSocket port (overrides WS_PORT)')
parser.add_argument('--http-port', type=int, help='Static file port (overrides HTTP_PORT)')


def configure_logging(config):
    level = getattr(logging, config.log_level, logging.INFO)
    logging.basicConfig(level=level, format='%(asctime)s - %(message)s')
    # Some libraries preconfigure handlers; make sure they follow the selected level
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        handler.setLevel(level)
    return level


def run(argv=None):
    args = parser.parse_args(argv)
    if args.level:
        os.environ['LOG_LEVEL'] = args.level
    if args.ws_port is not None:
        os.environ['WS_PORT'] = str(args.ws_port)
    if args.http_port is not None:
        os.environ['HTTP_PORT'] = str(args.http_port)

    from voxel_server.config import ServerConfig
    from voxel_server.main import main

    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        logging.basicConfig(format='%(asctime)s - %(message)s')
        logging.error(f'Invalid configuration: {e}')
        return 2
    configure_logging(config)
    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        logging.info("Server stopped by user")
    return 0


if __name__ == '__main__':
    sys.exit(run())
