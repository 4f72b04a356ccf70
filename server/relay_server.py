"""
Relay server for Spaceman Sync.
Keeps the latest sample per participant and rebroadcasts the whole
table to everyone after every accepted update.

Every accepted sample costs one table-sized message per connected
participant, so traffic grows with the square of the player count.
Fine for a handful of players, not for hundreds.
"""

import argparse
import asyncio
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

import websockets
from websockets.exceptions import ConnectionClosed

from shared.constants import SERVER_HOST, SERVER_PORT
from shared.errors import MalformedMessage, SendFailure
from shared.protocol import Payload, decode_sample, encode_table
from server.state_table import StateTable

logger = logging.getLogger(__name__)


class RelayServer:
    """
    Main relay server class.
    Owns the state table and the set of live connections; both are only
    touched while holding ``lock``.
    """

    def __init__(self):
        self.state_table = StateTable()
        self.connections: Set[Any] = set()
        self.lock = asyncio.Lock()

    @staticmethod
    def describe(websocket) -> str:
        return str(getattr(websocket, "remote_address", None) or id(websocket))

    async def on_connect(self, websocket):
        """Register a new connection. No table entry until its first sample arrives."""
        async with self.lock:
            self.connections.add(websocket)
        logger.info("New connection from %s. Total connections: %d",
                    self.describe(websocket), len(self.connections))

    async def on_message(self, websocket, raw: Payload) -> bool:
        """Apply one sample and broadcast the table. Returns False if the message was dropped."""
        try:
            participant_id, sample = decode_sample(raw)
        except MalformedMessage as e:
            logger.warning("Dropping malformed message from %s: %s", self.describe(websocket), e)
            return False

        async with self.lock:
            if participant_id not in self.state_table.participant_ids(websocket):
                logger.info("Participant %s is active on %s", participant_id, self.describe(websocket))
            self.state_table.upsert(websocket, participant_id, sample)
            payload = encode_table(self.state_table.snapshot())
            await self.broadcast(payload)

        logger.debug("Relayed %s -> %s to %d connections", participant_id, sample, len(self.connections))
        return True

    async def on_disconnect(self, websocket) -> List[str]:
        """Drop the connection and its table entries, then tell everyone else."""
        async with self.lock:
            self.connections.discard(websocket)
            removed = self.state_table.remove_connection(websocket)
            if removed and self.connections:
                await self.broadcast(encode_table(self.state_table.snapshot()))

        if removed:
            logger.info("Participant(s) %s left. Total participants: %d",
                        ", ".join(removed), len(self.state_table))
        else:
            logger.info("Connection %s closed before sending any sample", self.describe(websocket))
        return removed

    async def broadcast(self, payload: str,
                        recipients: Optional[Iterable[Any]] = None) -> List[SendFailure]:
        """
        Best-effort fan-out. A failed write to one connection is logged
        and does not stop delivery to the rest.
        """
        targets = list(self.connections if recipients is None else recipients)
        results = await asyncio.gather(
            *(websocket.send(payload) for websocket in targets),
            return_exceptions=True
        )

        failures = []
        for websocket, result in zip(targets, results):
            if isinstance(result, BaseException):
                failure = SendFailure(self.describe(websocket), result)
                logger.warning("%s", failure)
                failures.append(failure)
        return failures

    async def handle_connection(self, websocket):
        """Handle a new WebSocket connection for its whole lifetime."""
        await self.on_connect(websocket)
        try:
            async for raw_message in websocket:
                await self.on_message(websocket, raw_message)
        except ConnectionClosed:
            pass
        except Exception:
            logger.exception("Unexpected error on connection %s", self.describe(websocket))
        finally:
            await self.on_disconnect(websocket)

    def get_stats(self) -> Dict[str, int]:
        return {
            "connections": len(self.connections),
            "participants": len(self.state_table),
        }

    async def start(self, host: str = SERVER_HOST, port: int = SERVER_PORT):
        """Start the relay server and run forever."""
        logger.info("Starting on ws://%s:%d", host, port)
        async with websockets.serve(self.handle_connection, host, port):
            logger.info("Listening for connections...")
            await asyncio.Future()  # Run forever


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Spaceman Sync relay server")
    parser.add_argument("--host", default=SERVER_HOST, help="Interface to bind")
    parser.add_argument("--port", type=int, default=SERVER_PORT, help="Port to listen on")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, ...)")
    return parser.parse_args(argv)


def main(argv=None):
    """Entry point for the relay server."""
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    server = RelayServer()
    try:
        asyncio.run(server.start(args.host, args.port))
    except KeyboardInterrupt:
        logger.info("Server shutting down...")


if __name__ == "__main__":
    main()
