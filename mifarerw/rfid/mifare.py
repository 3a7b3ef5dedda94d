"""
MIFARE Classic 1K constants and structure definitions.

A MIFARE Classic 1K tag has:
- 16 sectors (0-15)
- 4 blocks per sector (64 blocks total, numbered 0-63)
- 16 bytes per block (1024 bytes total)
- Block 0: manufacturer data (read-only, contains UID)
- Every 4th block (3, 7, 11, ...): sector trailer (Key A + access bits + Key B)
"""

from dataclasses import dataclass
from enum import Enum

from .errors import InputValidationError

# Tag geometry
NUM_SECTORS = 16
BLOCKS_PER_SECTOR = 4
BYTES_PER_BLOCK = 16
TOTAL_BLOCKS = NUM_SECTORS * BLOCKS_PER_SECTOR  # 64

# Sector trailer layout within a 16-byte block
KEY_A_OFFSET = 0
KEY_A_LENGTH = 6
ACCESS_BITS_OFFSET = 6
ACCESS_BITS_LENGTH = 4
KEY_B_OFFSET = 10
KEY_B_LENGTH = 6


class BlockKind(str, Enum):
    MANUFACTURER = "manufacturer"
    DATA = "data"
    TRAILER = "trailer"


def block_kind(sector: int, block: int) -> BlockKind:
    """Classify a (sector, block) pair under the fixed 1K layout."""
    if is_sector_trailer(sector_to_block(sector) + block):
        return BlockKind.TRAILER
    if sector == 0 and block == 0:
        return BlockKind.MANUFACTURER
    return BlockKind.DATA


@dataclass(frozen=True)
class BlockAddress:
    """A validated (sector, block) pair."""
    sector: int
    block: int

    def __post_init__(self):
        for name, value, limit in (("sector", self.sector, NUM_SECTORS),
                                   ("block", self.block, BLOCKS_PER_SECTOR)):
            if not isinstance(value, int) or isinstance(value, bool):
                raise InputValidationError(f"{name} index must be an integer, got {value!r}")
            if not 0 <= value < limit:
                raise InputValidationError(
                    f"{name} index must be in [0, {limit}), got {value}"
                )

    @property
    def kind(self) -> BlockKind:
        return block_kind(self.sector, self.block)

    @property
    def absolute_block(self) -> int:
        return sector_to_block(self.sector) + self.block

    def __str__(self) -> str:
        return f"Sector {self.sector:02d} block {self.block:02d}"

    def to_dict(self) -> dict:
        return {"sector": self.sector, "block": self.block, "kind": self.kind.value}


@dataclass(frozen=True)
class BlockContent:
    """16 raw bytes as read from one block."""
    address: BlockAddress
    data: bytes

    @property
    def kind(self) -> BlockKind:
        return self.address.kind

    @property
    def hex(self) -> str:
        return self.data.hex().upper()


def all_addresses() -> list[BlockAddress]:
    """Every address of the card in row-major order (sector, then block)."""
    return [BlockAddress(s, b) for s in range(NUM_SECTORS) for b in range(BLOCKS_PER_SECTOR)]


def sector_to_block(sector: int) -> int:
    """Return the first block number for a given sector."""
    return sector * BLOCKS_PER_SECTOR


def is_sector_trailer(block: int) -> bool:
    """Check if a block number is a sector trailer."""
    return (block + 1) % BLOCKS_PER_SECTOR == 0


def parse_sector_trailer(data: bytes) -> dict:
    """
    Parse a 16-byte sector trailer block.

    Returns dict with key_a, access_bits, and key_b as bytes.
    """
    if len(data) != BYTES_PER_BLOCK:
        raise ValueError(f"Sector trailer must be {BYTES_PER_BLOCK} bytes, got {len(data)}")
    return {
        "key_a": data[KEY_A_OFFSET:KEY_A_OFFSET + KEY_A_LENGTH],
        "access_bits": data[ACCESS_BITS_OFFSET:ACCESS_BITS_OFFSET + ACCESS_BITS_LENGTH],
        "key_b": data[KEY_B_OFFSET:KEY_B_OFFSET + KEY_B_LENGTH],
    }


def build_sector_trailer(key_a: bytes, access_bits: bytes, key_b: bytes) -> bytes:
    """Assemble a 16-byte sector trailer from its parts."""
    if len(key_a) != KEY_A_LENGTH or len(key_b) != KEY_B_LENGTH:
        raise ValueError(f"Trailer keys must be {KEY_A_LENGTH} bytes each")
    if len(access_bits) != ACCESS_BITS_LENGTH:
        raise ValueError(f"Access bits must be {ACCESS_BITS_LENGTH} bytes, got {len(access_bits)}")
    return bytes(key_a) + bytes(access_bits) + bytes(key_b)


def decode_access_conditions(access_bits: bytes) -> list[tuple[int, int, int]]:
    """
    Decode the access conditions stored in bytes 6-8 of a sector trailer.

    Every condition bit is stored twice, once inverted. Returns one
    (C1, C2, C3) triple per block of the sector, block 0 first.
    Raises ValueError if a bit does not match its inverted copy.
    """
    if len(access_bits) < 3:
        raise ValueError(f"Access bits need at least 3 bytes, got {len(access_bits)}")
    b6, b7, b8 = access_bits[0], access_bits[1], access_bits[2]
    c1 = b7 >> 4
    c2 = b8 & 0x0F
    c3 = b8 >> 4
    if ((b6 & 0x0F) != (~c1 & 0x0F)
            or (b6 >> 4) != (~c2 & 0x0F)
            or (b7 & 0x0F) != (~c3 & 0x0F)):
        raise ValueError(f"Access bits {bytes(access_bits[:3]).hex().upper()} do not match their inverted copy")
    return [((c1 >> i) & 1, (c2 >> i) & 1, (c3 >> i) & 1) for i in range(BLOCKS_PER_SECTOR)]


def encode_access_bits(conditions: list[tuple[int, int, int]], user_byte: int = 0x69) -> bytes:
    """Inverse of decode_access_conditions. The fourth byte is free user data."""
    if len(conditions) != BLOCKS_PER_SECTOR:
        raise ValueError(f"Need {BLOCKS_PER_SECTOR} access conditions, got {len(conditions)}")
    c1 = c2 = c3 = 0
    for i, (b1, b2, b3) in enumerate(conditions):
        c1 |= (b1 & 1) << i
        c2 |= (b2 & 1) << i
        c3 |= (b3 & 1) << i
    return bytes([
        ((~c2 & 0x0F) << 4) | (~c1 & 0x0F),
        (c1 << 4) | (~c3 & 0x0F),
        (c3 << 4) | c2,
        user_byte & 0xFF,
    ])
