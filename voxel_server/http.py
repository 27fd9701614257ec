"""Read-only HTTP server for the browser client's static files"""
import asyncio
import json
import logging
import os
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

from .state import ServerContext

logger = logging.getLogger(__name__)

CONTENT_TYPES = {
    '.html': 'text/html',
    '.css': 'text/css',
    '.js': 'application/javascript',
    '.json': 'application/json',
    '.png': 'image/png',
    '.svg': 'image/svg+xml',
    '.ico': 'image/x-icon',
}


class StaticHTTPServer(HTTPServer):
    def __init__(self, address, context: ServerContext):
        self.context = context
        super().__init__(address, StaticHTTPHandler)


class StaticHTTPHandler(BaseHTTPRequestHandler):
    def _send_json(self, status, body):
        data = json.dumps(body).encode()
        self.send_response(status)
        self.send_header('Content-type', 'application/json')
        self.send_header('Content-Length', str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def do_GET(self):
        context = self.server.context
        clean_path = self.path.split('?')[0]
        if clean_path == '/api/server-info':
            width, height, depth = context.grid.dimensions
            self._send_json(200, {
                'ws_port': context.config.ws_port,
                'world': {'width': width, 'height': height, 'depth': depth},
                'clients': len(context.registry),
                'uptime_seconds': round(context.uptime_seconds(), 1),
            })
            return
        if clean_path == '/':
            clean_path = '/index.html'
        if '..' in clean_path:
            self.send_response(403)
            self.end_headers()
            return
        content_type = CONTENT_TYPES.get(os.path.splitext(clean_path)[1], 'text/plain')
        file_path = os.path.join(str(context.config.static_dir), clean_path.lstrip('/'))
        try:
            with open(file_path, 'rb') as f:
                content = f.read()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            self.send_response(404)
            self.end_headers()
            self.wfile.write(b'File not found')
            return
        self.send_response(200)
        self.send_header('Content-type', content_type)
        self.send_header('Content-Length', str(len(content)))
        self.end_headers()
        self.wfile.write(content)

    def log_message(self, format, *args):
        logger.debug(f"HTTP {self.address_string()} {format % args}")


def run_http_server(server: StaticHTTPServer):
    host, port = server.server_address[:2]
    logger.info(f"🌐 Static files served at http://{host}:{port}")
    server.serve_forever()


def start_http_server(context: ServerContext) -> StaticHTTPServer:
    """Bind on the configured host and serve from a daemon thread"""
    server = StaticHTTPServer((context.config.ws_host, context.config.http_port), context)
    threading.Thread(target=run_http_server, args=(server,), daemon=True).start()
    return server


async def stop_http_server(server: StaticHTTPServer):
    # shutdown() blocks until serve_forever returns
    await asyncio.to_thread(server.shutdown)
    server.server_close()
