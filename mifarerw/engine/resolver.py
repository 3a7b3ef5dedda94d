"""Key resolution: find which key and role can read a block."""

import logging
from dataclasses import dataclass

from mifarerw.rfid.errors import AuthenticationError, AuthenticationExhausted, TransportError
from mifarerw.rfid.keys import Key, KeyCatalog, KeyRole
from mifarerw.rfid.mifare import BYTES_PER_BLOCK, BlockAddress, BlockContent

from .transport import CardTransport

logger = logging.getLogger(__name__)

# Role A is always tried first
ROLE_ORDER = (KeyRole.A, KeyRole.B)


@dataclass(frozen=True)
class AccessOutcome:
    """A successful read and the key that made it possible."""
    content: BlockContent
    key: Key

    def to_dict(self) -> dict:
        return {
            "data": self.content.hex,
            "key": self.key.hex,
            "key_type": self.key.role.value,
        }


class AccessResolver:
    """Tries candidate keys against single blocks of one card session."""

    def __init__(self, transport: CardTransport):
        self.transport = transport

    def read(self, address: BlockAddress, key: Key) -> AccessOutcome:
        """One authenticated read with a known key and role."""
        data = self.transport.authenticated_read(address, key.value, key.role)
        if data is None or len(data) != BYTES_PER_BLOCK:
            raise TransportError(
                f"{address}: expected {BYTES_PER_BLOCK} bytes from the card, "
                f"got {0 if data is None else len(data)}"
            )
        return AccessOutcome(content=BlockContent(address, bytes(data)), key=key)

    def try_key(self, address: BlockAddress, key_value: bytes) -> AccessOutcome:
        """
        Read a block with one key value, as Key A then as Key B.

        Raises AuthenticationExhausted if neither role authenticates.
        TransportError is never followed by another attempt.
        """
        for role in ROLE_ORDER:
            key = Key(role, key_value)
            try:
                return self.read(address, key)
            except AuthenticationError:
                logger.debug(f"{address}: {key} refused")
        raise AuthenticationExhausted(address, [key_value.hex().upper()])

    def try_catalog(self, address: BlockAddress, catalog: KeyCatalog) -> AccessOutcome:
        """Try every key of the catalog in order and return the first that reads the block."""
        for key_value in catalog:
            try:
                return self.try_key(address, key_value)
            except AuthenticationExhausted:
                continue
        raise AuthenticationExhausted(address, catalog.hex_keys())
