import json
import unittest

import numpy as np

from voxel_server.protocol import (
    InitWorld,
    MalformedMessage,
    RosterEntry,
    UpdateVoxel,
    UserJoined,
    UserLeft,
    decode_message,
    encode_message,
    parse_edit_request,
)


def frame(kind, payload):
    return json.dumps({'type': kind, 'payload': payload})


class TestEncode(unittest.TestCase):
    def test_init_world_serializes_grid(self):
        world = np.zeros((2, 2, 2), dtype=np.int32)
        world[1, 0, 1] = 1
        out = json.loads(encode_message(InitWorld(world, 3, '#4ECDC4')))
        self.assertEqual(out['type'], 'init_world')
        self.assertEqual(out['payload']['clientId'], 3)
        self.assertEqual(out['payload']['clientColor'], '#4ECDC4')
        self.assertEqual(out['payload']['world'][1][0][1], 1)
        self.assertEqual(out['payload']['world'][0][0][0], 0)

    def test_tagged_update(self):
        edit = UpdateVoxel((5, 1, 5), 3).tagged(2, '#FFD166')
        out = json.loads(encode_message(edit))
        self.assertEqual(out, {
            'type': 'update_voxel',
            'payload': {'pos': [5, 1, 5], 'blockType': 3, 'clientId': 2, 'clientColor': '#FFD166'},
        })

    def test_untagged_update_has_no_client_fields(self):
        out = json.loads(encode_message(UpdateVoxel((0, 0, 0), 0)))
        self.assertEqual(out['payload'], {'pos': [0, 0, 0], 'blockType': 0})

    def test_roster_messages(self):
        joined = UserJoined(2, (RosterEntry(1, '#4ECDC4'), RosterEntry(2, '#FF6B6B')))
        out = json.loads(encode_message(joined))
        self.assertEqual(out['payload'], {
            'clientId': 2,
            'clients': [{'id': 1, 'color': '#4ECDC4'}, {'id': 2, 'color': '#FF6B6B'}],
        })
        self.assertEqual(json.loads(encode_message(UserLeft(1))),
                         {'type': 'user_left', 'payload': {'clientId': 1}})


class TestDecode(unittest.TestCase):
    def test_edit_request(self):
        edit = parse_edit_request(frame('update_voxel', {'pos': [5, 1, 5], 'blockType': 3}))
        self.assertEqual(edit, UpdateVoxel((5, 1, 5), 3))

    def test_bytes_frame(self):
        raw = frame('update_voxel', {'pos': [1, 2, 3], 'blockType': 0}).encode('utf-8')
        self.assertEqual(parse_edit_request(raw).pos, (1, 2, 3))

    def test_out_of_range_coordinates_are_well_formed(self):
        # bounds are checked by the grid, not the protocol
        edit = parse_edit_request(frame('update_voxel', {'pos': [99, 0, -4], 'blockType': 1}))
        self.assertEqual(edit.pos, (99, 0, -4))

    def test_malformed_frames(self):
        bad = [
            b'\xff\xfe',
            'not json',
            '[1, 2, 3]',
            json.dumps({'type': 'update_voxel'}),
            json.dumps({'type': 'update_voxel', 'payload': []}),
            frame('update_voxel', {'blockType': 1}),
            frame('update_voxel', {'pos': [1, 2, 3]}),
            frame('update_voxel', {'pos': [1, 2], 'blockType': 1}),
            frame('update_voxel', {'pos': [1, 2, 3, 4], 'blockType': 1}),
            frame('update_voxel', {'pos': [1, 2.5, 3], 'blockType': 1}),
            frame('update_voxel', {'pos': ['1', 2, 3], 'blockType': 1}),
            frame('update_voxel', {'pos': [True, 2, 3], 'blockType': 1}),
            frame('update_voxel', {'pos': [1, 2, 3], 'blockType': '1'}),
            frame('update_voxel', {'pos': [1, 2, 3], 'blockType': -1}),
            frame('update_voxel', {'pos': [1, 2, 3], 'blockType': 256}),
            frame('teleport', {'pos': [1, 2, 3]}),
            '[' * 200000,
            '{"type":"update_voxel","payload":' + '[' * 200000,
        ]
        for raw in bad:
            with self.subTest(raw=raw):
                with self.assertRaises(MalformedMessage):
                    parse_edit_request(raw)

    def test_block_type_limit_is_configurable(self):
        raw = frame('update_voxel', {'pos': [1, 2, 3], 'blockType': 1000})
        self.assertEqual(parse_edit_request(raw, max_block_type=4096).block_type, 1000)

    def test_clients_cannot_send_server_kinds(self):
        with self.assertRaises(MalformedMessage):
            parse_edit_request(frame('user_left', {'clientId': 1}))

    def test_decode_server_messages(self):
        msg = decode_message(frame('user_joined', {'clientId': 2, 'clients': [{'id': 1, 'color': '#4ECDC4'}]}))
        self.assertEqual(msg, UserJoined(2, (RosterEntry(1, '#4ECDC4'),)))
        self.assertEqual(decode_message(frame('user_left', {'clientId': 4})), UserLeft(4))
        init = decode_message(frame('init_world', {'world': [[[1]]], 'clientId': 1, 'clientColor': '#F72585'}))
        self.assertEqual(init.client_id, 1)
        self.assertEqual(init.world, [[[1]]])
        echo = decode_message(frame('update_voxel', {'pos': [0, 0, 0], 'blockType': 2,
                                                     'clientId': 1, 'clientColor': '#F72585'}))
        self.assertEqual(echo, UpdateVoxel((0, 0, 0), 2, 1, '#F72585'))

    def test_bad_roster(self):
        with self.assertRaises(MalformedMessage):
            decode_message(frame('user_joined', {'clientId': 2, 'clients': [{'id': 1}]}))
        with self.assertRaises(MalformedMessage):
            decode_message(frame('user_joined', {'clientId': 2, 'clients': 'everyone'}))


if __name__ == '__main__':
    unittest.main()
