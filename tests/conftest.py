"""Shared fixtures: an in-memory MIFARE Classic 1K card implementing the transport primitives."""

from contextlib import contextmanager

import pytest

from mifarerw.rfid.errors import AuthenticationError, TransportError
from mifarerw.rfid.keys import KeyRole
from mifarerw.rfid.mifare import (
    BYTES_PER_BLOCK, NUM_SECTORS, BlockAddress, BlockKind, all_addresses,
)

DEFAULT_KEY = bytes.fromhex("FFFFFFFFFFFF")
DEFAULT_TRAILER = bytes.fromhex("000000000000FF078069FFFFFFFFFFFF")
UID_BLOCK = bytes.fromhex("DEADBEEF220804000102030405060708")


class FakeCard:
    """
    A card with per-sector Key A / Key B and per-sector roles allowed to
    read and write. Records every primitive call in order.
    """

    def __init__(self):
        self.blocks: dict[BlockAddress, bytes] = {}
        for address in all_addresses():
            if address.kind is BlockKind.TRAILER:
                self.blocks[address] = DEFAULT_TRAILER
            elif address.kind is BlockKind.MANUFACTURER:
                self.blocks[address] = UID_BLOCK
            else:
                self.blocks[address] = bytes([address.absolute_block]) * BYTES_PER_BLOCK
        self.keys = {s: {KeyRole.A: DEFAULT_KEY, KeyRole.B: DEFAULT_KEY} for s in range(NUM_SECTORS)}
        self.read_roles = {s: {KeyRole.A, KeyRole.B} for s in range(NUM_SECTORS)}
        self.write_roles = {s: {KeyRole.A, KeyRole.B} for s in range(NUM_SECTORS)}
        self.frozen: set[BlockAddress] = set()  # writes are acknowledged but not stored
        self.lost_after_calls = None
        self.calls: list[tuple] = []
        self.uid = "DEADBEEF"

    def set_sector_keys(self, sector: int, key_a: str, key_b: str):
        self.keys[sector] = {KeyRole.A: bytes.fromhex(key_a), KeyRole.B: bytes.fromhex(key_b)}

    def _authenticate(self, op: str, address: BlockAddress, key: bytes, role: KeyRole, allowed: set):
        self.calls.append((op, address, key.hex().upper(), role))
        if self.lost_after_calls is not None and len(self.calls) > self.lost_after_calls:
            raise TransportError("Card removed")
        if self.keys[address.sector][role] != key or role not in allowed:
            raise AuthenticationError(f"{address}: Key {role.value} refused")

    def authenticated_read(self, address: BlockAddress, key: bytes, role: KeyRole) -> bytes:
        self._authenticate("read", address, key, role, self.read_roles[address.sector])
        return self.blocks[address]

    def authenticated_write(self, address: BlockAddress, key: bytes, role: KeyRole, data: bytes) -> None:
        self._authenticate("write", address, key, role, self.write_roles[address.sector])
        if address not in self.frozen:
            self.blocks[address] = bytes(data)

    def ops(self, op: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == op]


@pytest.fixture
def card() -> FakeCard:
    return FakeCard()


@pytest.fixture
def session_opener(card):
    """A session opener handing out the fake card, as the bridge would hand out a phone session."""
    opened = []

    @contextmanager
    def open_session():
        opened.append(card)
        yield card

    open_session.opened = opened
    return open_session
