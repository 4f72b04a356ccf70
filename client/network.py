"""
WebSocket network client for Spaceman Sync.
Networking runs on its own thread with its own asyncio loop so the
game loop never waits on the socket. Payloads cross threads through
plain queues.
"""

import asyncio
import logging
import threading
from queue import Empty, Queue
from typing import List, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from shared.constants import SERVER_HOST, SERVER_PORT

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.005  # Seconds between outgoing queue checks


class NetworkClient:
    """
    Handles WebSocket communication with the relay server.
    One connection per session, opened once. No reconnect.
    """

    def __init__(self, host: str = SERVER_HOST, port: int = SERVER_PORT):
        self.uri = f"ws://{host}:{port}"
        self.websocket = None
        self.connected = False
        self.connection_lost = False  # Set once we were connected and then weren't

        # Message queues for thread-safe communication
        self.incoming_messages: Queue = Queue()
        self.outgoing_messages: Queue = Queue()

        # Threading
        self.network_thread: Optional[threading.Thread] = None
        self.running = False
        self.loop: Optional[asyncio.AbstractEventLoop] = None

    def connect(self):
        """Start the connection in a background thread."""
        self.running = True
        self.network_thread = threading.Thread(
            target=self._run_network_loop,
            daemon=True
        )
        self.network_thread.start()

    def _run_network_loop(self):
        """Run the asyncio event loop for networking."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)

        try:
            self.loop.run_until_complete(self._connect_and_run())
        except Exception:
            logger.exception("Error in network loop")
        finally:
            self.loop.close()

    async def _connect_and_run(self):
        """Connect to the server and pump messages both ways."""
        logger.info("Connecting to %s...", self.uri)

        try:
            async with websockets.connect(self.uri) as websocket:
                self.websocket = websocket
                self.connected = True
                logger.info("Connected!")

                await asyncio.gather(
                    self._receive_loop(),
                    self._send_loop()
                )
        except (OSError, ConnectionClosed) as e:
            logger.warning("Connection error: %s", e)
        finally:
            # websocket is only set once the handshake succeeded; running is False on our own disconnect
            if self.websocket is not None and self.running:
                self.connection_lost = True
            self.connected = False

    async def _receive_loop(self):
        """Queue every payload from the server for the game thread."""
        try:
            async for raw_message in self.websocket:
                self.incoming_messages.put(raw_message)
        except ConnectionClosed as e:
            logger.info("Connection closed by server: %s", e)
        finally:
            self.connected = False

    async def _send_loop(self):
        """Forward queued outgoing payloads to the socket."""
        while self.running and self.connected:
            try:
                payload = self.outgoing_messages.get_nowait()
            except Empty:
                await asyncio.sleep(POLL_INTERVAL)
                continue

            try:
                await self.websocket.send(payload)
            except ConnectionClosed:
                self.connected = False
                return

        # Leaving the send loop closes the socket, which ends the receive loop
        if self.websocket is not None:
            await self.websocket.close()

    def send(self, payload: str) -> bool:
        """Queue a payload for the server. Fire and forget; dropped if not connected."""
        if not self.connected:
            return False
        self.outgoing_messages.put(payload)
        return True

    def get_messages(self) -> List[str]:
        """Get all pending incoming payloads (non-blocking)."""
        messages = []
        while True:
            try:
                messages.append(self.incoming_messages.get_nowait())
            except Empty:
                break
        return messages

    def disconnect(self):
        """Disconnect from the server."""
        self.running = False

        if self.network_thread and self.network_thread.is_alive():
            self.network_thread.join(timeout=1.0)
        self.connected = False
