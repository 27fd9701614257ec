"""Wire messages exchanged with browser clients.

Every frame is a UTF-8 JSON envelope ``{"type": <kind>, "payload": {...}}``.
Clients only ever send ``update_voxel``; the other kinds originate on the
server.  Removing a block is an ``update_voxel`` with block type 0.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)

INIT_WORLD = 'init_world'
UPDATE_VOXEL = 'update_voxel'
USER_JOINED = 'user_joined'
USER_LEFT = 'user_left'

DEFAULT_MAX_BLOCK_TYPE = 255


class MalformedMessage(ValueError):
    """Inbound frame that cannot be decoded or lacks required fields"""


Position = Tuple[int, int, int]


@dataclass(frozen=True)
class RosterEntry:
    id: int
    color: str

    def to_json(self) -> Dict[str, Any]:
        return {'id': self.id, 'color': self.color}


@dataclass(frozen=True)
class InitWorld:
    world: Any
    client_id: int
    client_color: str
    kind = INIT_WORLD

    def payload(self) -> Dict[str, Any]:
        world = self.world.tolist() if isinstance(self.world, np.ndarray) else self.world
        return {'world': world, 'clientId': self.client_id, 'clientColor': self.client_color}


@dataclass(frozen=True)
class UpdateVoxel:
    pos: Position
    block_type: int
    client_id: Optional[int] = None
    client_color: Optional[str] = None
    kind = UPDATE_VOXEL

    def tagged(self, client_id: int, client_color: str) -> 'UpdateVoxel':
        """Copy of this edit attributed to the session that sent it"""
        return UpdateVoxel(self.pos, self.block_type, client_id, client_color)

    def payload(self) -> Dict[str, Any]:
        body = {'pos': list(self.pos), 'blockType': self.block_type}
        if self.client_id is not None:
            body['clientId'] = self.client_id
            body['clientColor'] = self.client_color
        return body


@dataclass(frozen=True)
class UserJoined:
    client_id: int
    clients: Tuple[RosterEntry, ...]
    kind = USER_JOINED

    def payload(self) -> Dict[str, Any]:
        return {'clientId': self.client_id, 'clients': [c.to_json() for c in self.clients]}


@dataclass(frozen=True)
class UserLeft:
    client_id: int
    kind = USER_LEFT

    def payload(self) -> Dict[str, Any]:
        return {'clientId': self.client_id}


Message = Union[InitWorld, UpdateVoxel, UserJoined, UserLeft]


def encode_message(message: Message) -> str:
    return json.dumps({'type': message.kind, 'payload': message.payload()}, separators=(',', ':'))


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _require(payload: Dict[str, Any], key: str):
    if key not in payload:
        raise MalformedMessage(f"missing field {key!r}")
    return payload[key]


def _require_int(payload: Dict[str, Any], key: str) -> int:
    value = _require(payload, key)
    if not _is_int(value):
        raise MalformedMessage(f"{key!r} must be an integer")
    return value


def _parse_position(value) -> Position:
    if not isinstance(value, list) or len(value) != 3 or not all(_is_int(v) for v in value):
        raise MalformedMessage("'pos' must be a list of three integers")
    return (value[0], value[1], value[2])


def _parse_roster(value) -> Tuple[RosterEntry, ...]:
    if not isinstance(value, list):
        raise MalformedMessage("'clients' must be a list")
    entries: List[RosterEntry] = []
    for item in value:
        if not isinstance(item, dict):
            raise MalformedMessage("roster entries must be objects")
        color = _require(item, 'color')
        if not isinstance(color, str):
            raise MalformedMessage("roster 'color' must be a string")
        entries.append(RosterEntry(_require_int(item, 'id'), color))
    return tuple(entries)


def _parse_update_voxel(payload, max_block_type) -> UpdateVoxel:
    pos = _parse_position(_require(payload, 'pos'))
    block_type = _require_int(payload, 'blockType')
    if not 0 <= block_type <= max_block_type:
        raise MalformedMessage(f"'blockType' must be within 0..{max_block_type}")
    client_id = payload.get('clientId')
    client_color = payload.get('clientColor')
    if client_id is not None and not _is_int(client_id):
        raise MalformedMessage("'clientId' must be an integer")
    return UpdateVoxel(pos, block_type, client_id, client_color)


def decode_message(raw: Union[str, bytes], max_block_type: int = DEFAULT_MAX_BLOCK_TYPE) -> Message:
    """Parse and validate one frame into a message object.

    Raises MalformedMessage for invalid UTF-8, invalid JSON, an envelope that
    is not an object, an unknown ``type`` or a payload missing required fields.
    """
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedMessage(f"frame is not valid UTF-8: {e}") from e
    try:
        envelope = json.loads(raw)
    except (TypeError, ValueError, RecursionError) as e:
        # RecursionError: nesting deeper than the decoder can follow
        raise MalformedMessage(f"frame is not valid JSON: {e}") from e
    if not isinstance(envelope, dict):
        raise MalformedMessage("envelope must be a JSON object")
    kind = envelope.get('type')
    payload = envelope.get('payload')
    if not isinstance(payload, dict):
        raise MalformedMessage("'payload' must be an object")

    if kind == UPDATE_VOXEL:
        return _parse_update_voxel(payload, max_block_type)
    if kind == INIT_WORLD:
        color = _require(payload, 'clientColor')
        return InitWorld(_require(payload, 'world'), _require_int(payload, 'clientId'), color)
    if kind == USER_JOINED:
        return UserJoined(_require_int(payload, 'clientId'), _parse_roster(_require(payload, 'clients')))
    if kind == USER_LEFT:
        return UserLeft(_require_int(payload, 'clientId'))
    raise MalformedMessage(f"unknown message type {kind!r}")


def parse_edit_request(raw: Union[str, bytes], max_block_type: int = DEFAULT_MAX_BLOCK_TYPE) -> UpdateVoxel:
    """Decode a client frame, accepting only ``update_voxel``"""
    message = decode_message(raw, max_block_type)
    if not isinstance(message, UpdateVoxel):
        raise MalformedMessage(f"clients may not send {message.kind!r}")
    return message
