"""Server package for the shared voxel world.
This package contains the authoritative grid, client registry, broadcast hub, wire protocol, WebSocket connection handler and static HTTP endpoint.
"""

# Expose top-level modules for convenience
__all__ = [
    'config',
    'grid_store',
    'client_registry',
    'protocol',
    'broadcast',
    'state',
    'web_ws',
    'http',
    'main'
]
