"""
Payload resolution for block writes.

Maps a raw 16-byte payload onto the kind of block it is written to:
data blocks take it as is, sector trailers are rebuilt from validated
keys and access bits, and the manufacturer block is never writable.
"""

from .errors import ResolveError
from .mifare import (
    BYTES_PER_BLOCK, BlockKind, block_kind,
    parse_sector_trailer, build_sector_trailer, decode_access_conditions,
)


def resolve_block_bytes(sector: int, block: int, payload: bytes) -> bytes:
    """
    Return the exact bytes to write to (sector, block).

    Raises ResolveError when the payload cannot be written to that block.
    """
    kind = block_kind(sector, block)
    if kind is BlockKind.MANUFACTURER:
        raise ResolveError(
            f"Sector {sector:02d} block {block:02d} is the manufacturer block and cannot be written"
        )
    if len(payload) != BYTES_PER_BLOCK:
        raise ResolveError(f"Block data must be {BYTES_PER_BLOCK} bytes, got {len(payload)}")

    if kind is BlockKind.DATA:
        return bytes(payload)

    trailer = parse_sector_trailer(payload)
    try:
        decode_access_conditions(trailer["access_bits"])
    except ValueError as e:
        raise ResolveError(f"Refusing to write sector {sector:02d} trailer: {e}") from e
    return build_sector_trailer(trailer["key_a"], trailer["access_bits"], trailer["key_b"])
