"""
Single block write with verification.

A write goes through these steps, stopping at the first failure:

    VALIDATE -> READ_OLD -> RESOLVE_BLOCK -> WRITE -> READ_BACK

Only the caller's key is used, never the default key catalog: a block is
only written with a key that was just proven to read it. The content read
back after the write is reported as is, whether or not it matches the
payload.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from mifarerw.rfid.blocks import resolve_block_bytes
from mifarerw.rfid.errors import AuthenticationError, AuthenticationExhausted, ResolveError, TransportError
from mifarerw.rfid.keys import Key, is_hex_string, is_valid_key
from mifarerw.rfid.mifare import BlockAddress, BlockContent

from .resolver import AccessResolver
from .transport import CardTransport

logger = logging.getLogger(__name__)


class WriteState(str, Enum):
    REJECTED = "rejected"
    READ_FAILED = "read_failed"
    RESOLVE_FAILED = "resolve_failed"
    WRITE_FAILED = "write_failed"
    DONE = "done"


@dataclass
class WriteResult:
    address: BlockAddress
    key: str
    state: WriteState
    used_key: Optional[Key] = None
    old_content: Optional[BlockContent] = None
    new_content: Optional[BlockContent] = None
    error: Optional[str] = None
    read_back_error: Optional[str] = None

    @property
    def written(self) -> bool:
        return self.state is WriteState.DONE

    def to_dict(self) -> dict:
        return {
            "sector": self.address.sector,
            "block": self.address.block,
            "kind": self.address.kind.value,
            "key": self.key,
            "key_type": self.used_key.role.value if self.used_key else None,
            "state": self.state.value,
            "old_data": self.old_content.hex if self.old_content else None,
            "new_data": self.new_content.hex if self.new_content else None,
            "error": self.error,
            "read_back_error": self.read_back_error,
        }


class WriteVerifyEngine:
    """Writes one block of the card in the session, reporting old and new content."""

    def __init__(self, transport: CardTransport):
        self.transport = transport
        self.resolver = AccessResolver(transport)

    @staticmethod
    def reject_reason(key: str, payload: str) -> Optional[str]:
        """Return why a write request is malformed, or None if it is acceptable."""
        if not is_valid_key(key):
            return f"The key {key!r} is not valid: expected exactly 12 hex characters"
        if not payload:
            return "The data is empty"
        if not is_hex_string(payload):
            return f"{payload!r} is not an hex string of whole bytes"
        return None

    def write(self, address: BlockAddress, key: str, payload: str) -> WriteResult:
        reason = self.reject_reason(key, payload)
        if reason:
            logger.warning(f"{address}: write rejected: {reason}")
            return WriteResult(address, key, WriteState.REJECTED, error=reason)
        key = key.upper()

        try:
            old = self.resolver.try_key(address, bytes.fromhex(key))
        except (AuthenticationExhausted, TransportError) as e:
            logger.warning(f"{address}: failed to read old block data: {e}")
            return WriteResult(address, key, WriteState.READ_FAILED, error=str(e))
        logger.info(f"{address}: old block data {old.content.hex} ({old.key})")
        result = WriteResult(address, key, WriteState.DONE, used_key=old.key, old_content=old.content)

        try:
            data = resolve_block_bytes(address.sector, address.block, bytes.fromhex(payload))
        except ResolveError as e:
            logger.warning(f"{address}: {e}")
            result.state = WriteState.RESOLVE_FAILED
            result.error = str(e)
            return result

        try:
            self.transport.authenticated_write(address, old.key.value, old.key.role, data)
        except (AuthenticationError, TransportError) as e:
            logger.error(f"{address}: write failed with {old.key}: {e}")
            result.state = WriteState.WRITE_FAILED
            result.error = str(e) or type(e).__name__
            return result

        try:
            new = self.resolver.read(address, old.key)
        except (AuthenticationError, TransportError) as e:
            logger.warning(f"{address}: written, but failed to read back: {e}")
            result.read_back_error = str(e) or type(e).__name__
            return result
        result.new_content = new.content
        logger.info(f"{address}: new block data {new.content.hex} ({new.key})")
        return result
