"""WebSocket server that tracks clients and pushes text messages to them."""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Callable, Coroutine, Dict, Iterable, List, Optional

import websockets
from websockets.exceptions import ConnectionClosed

logger = logging.getLogger(__name__)

MessageCallback = Callable[[str, str], None]
ConnectionCallback = Callable[[Any], None]

_SEND_TIMEOUT = 5.0


class WebSocketServer:
    """Accepts WebSocket clients on a background thread.

    Each client gets an id of the form ``client_0x...``. Incoming messages
    are handed to ``message_callback(client_id, payload)``; connects and
    disconnects to ``connection_callback(connection)`` and
    ``disconnection_callback(connection)``. Callbacks run on the server's
    own thread.
    """

    def __init__(
        self,
        host: str = "0.0.0.0",
        message_callback: Optional[MessageCallback] = None,
        connection_callback: Optional[ConnectionCallback] = None,
        disconnection_callback: Optional[ConnectionCallback] = None,
    ) -> None:
        self.host = host
        self.message_callback = message_callback
        self.connection_callback = connection_callback
        self.disconnection_callback = disconnection_callback
        self.port: Optional[int] = None
        self._connections: Dict[Any, str] = {}
        self._connections_lock = threading.Lock()
        self._lock = threading.Lock()
        self._running = False
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._ready = threading.Event()
        self._error: Optional[BaseException] = None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def clients(self) -> List[str]:
        """Ids of the clients connected right now."""
        with self._connections_lock:
            return list(self._connections.values())

    # ---- lifecycle --------------------------------------------------------

    def start(self, port: int) -> None:
        """Listen on `port` (0 picks a free one); a no-op if already running.

        Raises OSError if the port cannot be bound.
        """
        with self._lock:
            if self._running:
                return
            self._ready = threading.Event()
            self._error = None
            thread = threading.Thread(
                target=asyncio.run,
                args=(self._run(port),),
                name="websocket-server",
                daemon=True,
            )
            self._thread = thread
            thread.start()
            self._ready.wait()
            if self._error is not None:
                thread.join()
                self._thread = None
                raise self._error
            self._running = True

    def stop(self) -> None:
        """Close every connection and stop the server; a no-op if stopped."""
        with self._lock:
            if not self._running:
                return
            if threading.current_thread() is self._thread:
                raise RuntimeError("cannot stop the server from its own thread")
            self._running = False
            loop, stop_event, thread = self._loop, self._stop_event, self._thread
        if loop is not None and stop_event is not None:
            try:
                loop.call_soon_threadsafe(stop_event.set)
            except RuntimeError:
                pass
        if thread is not None:
            thread.join()
        self._thread = None
        self.port = None

    # ---- sending ----------------------------------------------------------

    def broadcast(self, message: str) -> None:
        """Send a text message to every connected client."""
        with self._connections_lock:
            connections = list(self._connections)
        self._schedule(self._send_all(connections, message))

    def send(self, connection: Any, message: str) -> None:
        """Send a text message to one connection."""
        self._schedule(self._send_all([connection], message))

    # ---- internals --------------------------------------------------------

    async def _run(self, port: int) -> None:
        self._loop = asyncio.get_running_loop()
        self._stop_event = asyncio.Event()
        try:
            async with websockets.serve(self._handle, self.host, port) as server:
                self.port = server.sockets[0].getsockname()[1]
                self._ready.set()
                await self._stop_event.wait()
        except Exception as exc:
            logger.error("Error running WebSocket server: %s", exc)
            self._error = exc
        finally:
            self._loop = None
            self._ready.set()

    async def _handle(self, connection: Any, path: Optional[str] = None) -> None:
        client_id = f"client_{id(connection):#x}"
        with self._connections_lock:
            self._connections[connection] = client_id
        self._call(self.connection_callback, connection)
        try:
            async for message in connection:
                if isinstance(message, bytes):
                    message = message.decode("utf-8", errors="replace")
                self._call(self.message_callback, client_id, message)
        except ConnectionClosed:
            pass
        finally:
            with self._connections_lock:
                self._connections.pop(connection, None)
            self._call(self.disconnection_callback, connection)

    @staticmethod
    def _call(callback: Optional[Callable[..., None]], *args: Any) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("WebSocket callback failed")

    @staticmethod
    async def _send_all(connections: Iterable[Any], message: str) -> None:
        for connection in connections:
            try:
                await connection.send(message)
            except Exception as exc:
                logger.error("Error sending message: %s", exc)

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        loop = self._loop
        if loop is None or not self._running:
            coro.close()
            return
        if threading.current_thread() is self._thread:
            loop.create_task(coro)
            return
        try:
            future = asyncio.run_coroutine_threadsafe(coro, loop)
        except RuntimeError:
            coro.close()
            return
        try:
            future.result(timeout=_SEND_TIMEOUT)
        except concurrent.futures.TimeoutError:
            logger.error("Timed out sending message")