"""
WebSocket server for the NFC bridge.

The companion phone app connects to this WebSocket endpoint and acts as a
MIFARE Classic reader/writer. The backend drives it one block at a time:
every authenticated read or write is a request the phone answers, so the
key search itself runs on the backend.

Protocol messages (JSON):
  Backend → Phone:
    {"action": "BEGIN_SESSION", "request_id": "..."}
    {"action": "READ_BLOCK", "request_id": "...", "sector": 13, "block": 2,
     "key": "FFFFFFFFFFFF", "key_type": "A"}
    {"action": "WRITE_BLOCK", ... same fields ..., "data": "<32 hex chars>"}
    {"action": "END_SESSION", "request_id": "..."}

  Phone → Backend:
    {"action": "SESSION_READY", "request_id": "...", "uid": "...", "tag_type": "..."}
    {"action": "BLOCK_DATA", "request_id": "...", "data": "<32 hex chars>"}
    {"action": "WRITE_RESULT", "request_id": "...", "success": true/false, "error": "..."}
    {"action": "BLOCK_ERROR", "request_id": "...", "error": "AUTH" | "TAG_LOST" | "IO", "message": "..."}
    {"action": "TAG_DETECTED", "uid": "..."}
    {"action": "STATUS", "connected": true, "device": "..."}
    {"action": "ERROR", "message": "..."}
"""

import asyncio
import concurrent.futures
import json
import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import WebSocket, WebSocketDisconnect

from mifarerw.config import BLOCK_OP_TIMEOUT, CARD_WAIT_TIMEOUT
from mifarerw.rfid.errors import AuthenticationError, SessionBusyError, TransportError
from mifarerw.rfid.keys import KeyRole
from mifarerw.rfid.mifare import BYTES_PER_BLOCK, BlockAddress

logger = logging.getLogger(__name__)

REPLY_ACTIONS = ("SESSION_READY", "BLOCK_DATA", "WRITE_RESULT", "BLOCK_ERROR")

# BLOCK_ERROR code meaning the card refused the key
AUTH_ERROR_CODE = "AUTH"


class NFCBridgeManager:
    """Manages the WebSocket connection from the phone bridge app."""

    def __init__(self):
        self._phone: Optional[WebSocket] = None
        self._pending: dict[str, asyncio.Future] = {}
        self._request_counter = 0
        self._session_lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self._phone is not None

    @property
    def in_session(self) -> bool:
        return self._session_lock.locked()

    async def connect(self, websocket: WebSocket):
        """Accept a new phone connection (replaces any existing one)."""
        await websocket.accept()
        if self._phone:
            try:
                await self._phone.close()
            except Exception as e:
                logger.warning(f"Could not close previous phone connection: {e}")
        self._phone = websocket
        logger.info("NFC bridge phone connected")

    async def disconnect(self):
        """Handle phone disconnection."""
        self._phone = None
        self._fail_pending("NFC bridge phone disconnected")
        logger.info("NFC bridge phone disconnected")

    def _fail_pending(self, message: str):
        for fut in self._pending.values():
            if not fut.done():
                fut.set_exception(TransportError(message))
        self._pending.clear()

    async def handle_message(self, data: dict):
        """Process an incoming message from the phone."""
        action = data.get("action", "")

        if action in REPLY_ACTIONS:
            request_id = data.get("request_id", "")
            future = self._pending.pop(request_id, None)
            if future is None:
                logger.debug(f"Dropping {action} for unknown request {request_id!r}")
            elif not future.done():
                future.set_result(data)

        elif action == "TAG_DETECTED":
            logger.info(f"Tag detected: UID={data.get('uid', 'unknown')}")

        elif action == "STATUS":
            logger.info(f"Phone status: {data}")

        elif action == "ERROR":
            message = data.get("message", "NFC error")
            logger.error(f"Phone error: {message}")
            self._fail_pending(message)

    async def request(self, message: dict, timeout: float) -> dict:
        """
        Send a request to the phone and wait for its reply.

        Raises AuthenticationError if the phone reports a refused key and
        TransportError for every other failure, including timeouts.
        """
        if not self._phone:
            raise TransportError("No phone connected")

        self._request_counter += 1
        request_id = str(self._request_counter)

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            await self._phone.send_json({**message, "request_id": request_id})
        except Exception as e:
            self._pending.pop(request_id, None)
            raise TransportError(f"Could not reach phone: {e}") from e

        try:
            reply = await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            self._pending.pop(request_id, None)
            raise TransportError(f"{message['action']} timed out, hold the tag near the phone")
        _raise_for_reply(reply)
        return reply

    async def send(self, message: dict):
        """Send a message that expects no reply."""
        if not self._phone:
            raise TransportError("No phone connected")
        self._request_counter += 1
        try:
            await self._phone.send_json({**message, "request_id": str(self._request_counter)})
        except Exception as e:
            raise TransportError(f"Could not reach phone: {e}") from e

    @contextmanager
    def session(self, loop: asyncio.AbstractEventLoop,
                card_timeout: float = CARD_WAIT_TIMEOUT,
                block_timeout: float = BLOCK_OP_TIMEOUT) -> Iterator["BridgeSession"]:
        """
        Open a card session on the phone and close it when done.

        Must be used from a worker thread, never from the event loop thread:
        each block operation blocks until the loop has exchanged it with the
        phone. Only one session may be open at a time.
        """
        if not self._session_lock.acquire(blocking=False):
            raise SessionBusyError("A card session is already in progress")
        try:
            session = BridgeSession(self, loop, block_timeout)
            session.open(card_timeout)
            try:
                yield session
            finally:
                session.close()
        finally:
            self._session_lock.release()

    async def listen(self, websocket: WebSocket):
        """Main loop for handling phone WebSocket messages."""
        try:
            while True:
                text = await websocket.receive_text()
                data = json.loads(text)
                await self.handle_message(data)
        except WebSocketDisconnect:
            await self.disconnect()
        except Exception as e:
            logger.error(f"NFC bridge error: {e}")
            await self.disconnect()


def _raise_for_reply(reply: dict):
    action = reply.get("action")
    if action == "BLOCK_ERROR" or (action == "WRITE_RESULT" and not reply.get("success")):
        code = reply.get("error", "IO")
        message = reply.get("message") or f"phone reported {code}"
        if code == AUTH_ERROR_CODE:
            raise AuthenticationError(message)
        raise TransportError(message)


class BridgeSession:
    """
    One card session on the phone, used synchronously by the engines.

    Implements the CardTransport primitives by handing each request to the
    event loop that owns the WebSocket.
    """

    def __init__(self, manager: NFCBridgeManager, loop: asyncio.AbstractEventLoop,
                 block_timeout: float = BLOCK_OP_TIMEOUT):
        self.manager = manager
        self.loop = loop
        self.block_timeout = block_timeout
        self.uid: str = ""
        self.tag_type: str = ""

    def _call(self, coro, timeout: float):
        # The coroutine enforces its own timeout; this one only guards against a stopped loop
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        try:
            return future.result(timeout=timeout + 1)
        except concurrent.futures.TimeoutError as e:
            future.cancel()
            raise TransportError("NFC bridge event loop is not responding") from e

    def open(self, timeout: float):
        reply = self._call(self.manager.request({"action": "BEGIN_SESSION"}, timeout), timeout)
        self.uid = reply.get("uid", "").upper()
        self.tag_type = reply.get("tag_type", "")
        logger.info(f"Card detected: {self.tag_type} UID={self.uid}")

    def close(self):
        try:
            self._call(self.manager.send({"action": "END_SESSION"}), self.block_timeout)
        except TransportError as e:
            logger.warning(f"Could not end card session cleanly: {e}")

    def _block_message(self, action: str, address: BlockAddress, key: bytes, role: KeyRole) -> dict:
        return {
            "action": action,
            "sector": address.sector,
            "block": address.block,
            "key": key.hex().upper(),
            "key_type": role.value,
        }

    def authenticated_read(self, address: BlockAddress, key: bytes, role: KeyRole) -> bytes:
        message = self._block_message("READ_BLOCK", address, key, role)
        reply = self._call(self.manager.request(message, self.block_timeout), self.block_timeout)
        data = reply.get("data")
        if not isinstance(data, str):
            raise TransportError(f"{address}: phone sent no block data")
        try:
            data = bytes.fromhex(data)
        except ValueError as e:
            raise TransportError(f"{address}: phone sent malformed block data") from e
        if len(data) != BYTES_PER_BLOCK:
            raise TransportError(f"{address}: phone sent {len(data)} bytes, expected {BYTES_PER_BLOCK}")
        return data

    def authenticated_write(self, address: BlockAddress, key: bytes, role: KeyRole, data: bytes) -> None:
        message = self._block_message("WRITE_BLOCK", address, key, role)
        message["data"] = data.hex().upper()
        self._call(self.manager.request(message, self.block_timeout), self.block_timeout)


# Global singleton
nfc_bridge = NFCBridgeManager()
