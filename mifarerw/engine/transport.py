"""
Card transport primitives consumed by the engines.

A transport is an already-opened session with one card. It performs a
single authenticated block read or write per call and reports failures as:

- AuthenticationError: the card refused this key for this role
- TransportError: the card is gone or the link to the reader failed

Everything below these two calls (reader commands, radio, timeouts) is the
transport's business.
"""

from typing import Protocol

from mifarerw.rfid.keys import KeyRole
from mifarerw.rfid.mifare import BlockAddress


class CardTransport(Protocol):

    def authenticated_read(self, address: BlockAddress, key: bytes, role: KeyRole) -> bytes:
        """Authenticate the block's sector with (key, role) and read 16 bytes."""
        ...

    def authenticated_write(self, address: BlockAddress, key: bytes, role: KeyRole, data: bytes) -> None:
        """Authenticate the block's sector with (key, role) and write 16 bytes."""
        ...
