"""
Tests for the relay server callbacks, driven with fake connections
"""

import asyncio

from fakes import BrokenWebSocket, FakeWebSocket
from server.relay_server import RelayServer, parse_args
from shared.constants import SERVER_HOST, SERVER_PORT
from shared.errors import SendFailure
from shared.protocol import PositionSample, decode_table, encode_sample


def run(coro):
    return asyncio.run(coro)


class TestRelayServer:

    def test_connect_creates_no_entry(self):
        async def scenario():
            server = RelayServer()
            ws = FakeWebSocket()
            await server.on_connect(ws)
            return server

        server = run(scenario())
        assert server.get_stats() == {"connections": 1, "participants": 0}

    def test_message_upserts_and_broadcasts_to_everyone(self):
        async def scenario():
            server = RelayServer()
            ws1, ws2 = FakeWebSocket(), FakeWebSocket()
            await server.on_connect(ws1)
            await server.on_connect(ws2)
            accepted = await server.on_message(ws1, encode_sample("a", PositionSample(48, 48, 1)))
            return server, ws1, ws2, accepted

        server, ws1, ws2, accepted = run(scenario())
        assert accepted
        expected = {"a": PositionSample(48, 48, 1)}
        assert server.state_table.snapshot() == expected
        # Sender gets the table too
        assert [decode_table(p) for p in ws1.sent] == [expected]
        assert [decode_table(p) for p in ws2.sent] == [expected]

    def test_malformed_message_is_dropped(self):
        async def scenario():
            server = RelayServer()
            ws1, ws2 = FakeWebSocket(), FakeWebSocket()
            await server.on_connect(ws1)
            await server.on_connect(ws2)
            await server.on_message(ws1, encode_sample("a", PositionSample(1, 1, 1)))
            accepted = await server.on_message(ws2, '{"id": "b", "x": "oops"}')
            return server, ws1, ws2, accepted

        server, ws1, ws2, accepted = run(scenario())
        assert not accepted
        assert server.state_table.snapshot() == {"a": PositionSample(1, 1, 1)}
        # No extra broadcast, and the bad sender is still connected
        assert len(ws1.sent) == 1
        assert ws2 in server.connections

    def test_table_is_last_sample_per_id(self):
        messages = [
            ("a", PositionSample(1, 1, 1)),
            ("b", PositionSample(2, 2, 2)),
            ("a", PositionSample(3, 1, 2)),
        ]

        async def scenario():
            server = RelayServer()
            conns = {"a": FakeWebSocket(), "b": FakeWebSocket()}
            for ws in conns.values():
                await server.on_connect(ws)
            for pid, sample in messages:
                await server.on_message(conns[pid], encode_sample(pid, sample))
            await server.on_message(conns["b"], "garbage")
            return server, conns

        server, conns = run(scenario())
        expected = {"a": PositionSample(3, 1, 2), "b": PositionSample(2, 2, 2)}
        assert server.state_table.snapshot() == expected
        assert decode_table(conns["a"].sent[-1]) == expected

    def test_disconnect_removes_entry_from_next_broadcast(self):
        async def scenario():
            server = RelayServer()
            ws_x, ws_y = FakeWebSocket(), FakeWebSocket()
            await server.on_connect(ws_x)
            await server.on_connect(ws_y)
            await server.on_message(ws_x, encode_sample("x", PositionSample(1, 1, 1)))
            await server.on_message(ws_y, encode_sample("y", PositionSample(2, 2, 2)))
            removed = await server.on_disconnect(ws_x)
            await server.on_message(ws_y, encode_sample("y", PositionSample(3, 2, 2)))
            return server, ws_x, ws_y, removed

        server, ws_x, ws_y, removed = run(scenario())
        assert removed == ["x"]
        assert "x" not in decode_table(ws_y.sent[-1])
        # The disconnect itself is announced to the remaining connection
        assert decode_table(ws_y.sent[-2]) == {"y": PositionSample(2, 2, 2)}
        assert ws_x not in server.connections
        assert len(ws_x.sent) == 2

    def test_disconnect_before_first_sample(self):
        async def scenario():
            server = RelayServer()
            ws1, ws2 = FakeWebSocket(), FakeWebSocket()
            await server.on_connect(ws1)
            await server.on_connect(ws2)
            removed = await server.on_disconnect(ws1)
            return server, ws2, removed

        server, ws2, removed = run(scenario())
        assert removed == []
        assert ws2.sent == []
        assert server.get_stats() == {"connections": 1, "participants": 0}

    def test_failed_send_does_not_stop_fan_out(self):
        async def scenario():
            server = RelayServer()
            good1, broken, good2 = FakeWebSocket(), BrokenWebSocket(), FakeWebSocket()
            for ws in (good1, broken, good2):
                await server.on_connect(ws)
            accepted = await server.on_message(good1, encode_sample("a", PositionSample(5, 5, 5)))
            failures = await server.broadcast("{}")
            return good1, good2, broken, accepted, failures

        good1, good2, broken, accepted, failures = run(scenario())
        assert accepted
        assert len(good1.sent) == 2
        assert len(good2.sent) == 2
        assert len(failures) == 1
        assert isinstance(failures[0], SendFailure)
        assert failures[0].recipient == broken.remote_address
        assert isinstance(failures[0].cause, ConnectionResetError)

    def test_concurrent_messages_lose_no_updates(self):
        async def scenario():
            server = RelayServer()
            conns = [FakeWebSocket() for _ in range(20)]
            for ws in conns:
                await server.on_connect(ws)
            await asyncio.gather(*(
                server.on_message(ws, encode_sample(f"p{i}", PositionSample(i, i, i % 4)))
                for i, ws in enumerate(conns)
            ))
            return server, conns

        server, conns = run(scenario())
        assert len(server.state_table) == 20
        # Every broadcast is a complete table at the time it was taken, so the last one has everyone
        for ws in conns:
            assert len(ws.sent) == 20
            assert len(decode_table(ws.sent[-1])) == 20

    def test_oversized_number_is_dropped_and_connection_kept(self):
        huge = "1" + "0" * 400

        async def scenario():
            server = RelayServer()
            ws = FakeWebSocket()
            await server.on_connect(ws)
            await server.on_message(ws, encode_sample("a", PositionSample(1, 1, 1)))
            results = [
                await server.on_message(ws, '{"id": "a", "x": %s, "y": 1, "frame": 1}' % huge),
                await server.on_message(ws, "[" * 100000),
                await server.on_message(ws, '{"id": "a", "x": %s, "y": 1, "frame": 1}' % ("9" * 5000)),
            ]
            accepted = await server.on_message(ws, encode_sample("a", PositionSample(2, 2, 2)))
            return server, ws, results, accepted

        server, ws, results, accepted = run(scenario())
        assert results == [False, False, False]
        assert accepted
        assert ws in server.connections
        assert len(ws.sent) == 2
        assert decode_table(ws.sent[-1]) == {"a": PositionSample(2, 2, 2)}


class TestRelayCli:

    def test_defaults(self):
        args = parse_args([])
        assert args.host == SERVER_HOST
        assert args.port == SERVER_PORT
        assert args.log_level == "INFO"

    def test_overrides(self):
        args = parse_args(["--host", "0.0.0.0", "--port", "9000", "--log-level", "debug"])
        assert (args.host, args.port, args.log_level) == ("0.0.0.0", 9000, "debug")
