"""
MIFARE Classic key handling.

Keys are 6-byte secrets written as 12 hex characters. A sector has two of
them (Key A and Key B); which one grants read or write access is decided by
the access bits in the sector trailer, so a candidate key value is always
tried with both roles.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator

from .errors import InputValidationError

KEY_LENGTH = 6

HEX_STRING_PATTERN = re.compile(r"^([0-9A-Fa-f]{2})+$")

# Well-known keys, tried after the user supplied ones, in this order
COMMON_KEYS = (
    "001122334455",
    "000102030405",
    "A0A1A2A3A4A5",
    "B0B1B2B3B4B5",
    "AAAAAAAAAAAA",
    "BBBBBBBBBBBB",
    "AABBCCDDEEFF",
    "FFFFFFFFFFFF",
)


class KeyRole(str, Enum):
    A = "A"
    B = "B"


@dataclass(frozen=True)
class Key:
    """A key value used with a given role."""
    role: KeyRole
    value: bytes

    @property
    def hex(self) -> str:
        return self.value.hex().upper()

    def __str__(self) -> str:
        return f"Key {self.role.value}: {self.hex}"


def is_hex_string(s) -> bool:
    """True for a non-empty string of whole hex bytes."""
    return isinstance(s, str) and HEX_STRING_PATTERN.match(s) is not None


def is_valid_key(s) -> bool:
    return is_hex_string(s) and len(s) == KEY_LENGTH * 2


def parse_key(s: str) -> bytes:
    """Convert a 12 hex character key into its 6 bytes."""
    if not is_valid_key(s):
        raise InputValidationError(f"Key {s!r} is not valid: expected exactly {KEY_LENGTH * 2} hex characters")
    return bytes.fromhex(s)


class KeyCatalog:
    """
    Ordered, deduplicated list of candidate key values.

    The order is the search order used when dumping a card: the first key
    that authenticates a block is the one reported for it.
    """

    def __init__(self, keys: Iterable[bytes]):
        self._keys = tuple(keys)

    @classmethod
    def build(cls, user_keys: Iterable[str] = (), defaults: Iterable[str] = COMMON_KEYS) -> "KeyCatalog":
        """
        Validate user keys and append the default keys after them.

        Duplicates are dropped case-insensitively, keeping the first one seen.
        Raises InputValidationError on the first malformed user key.
        """
        seen = set()
        keys = []
        for candidate in list(user_keys) + list(defaults):
            value = parse_key(candidate)
            if value not in seen:
                seen.add(value)
                keys.append(value)
        return cls(keys)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __eq__(self, other) -> bool:
        return isinstance(other, KeyCatalog) and self._keys == other._keys

    def __repr__(self) -> str:
        return f"KeyCatalog({self.hex_keys()!r})"

    def hex_keys(self) -> list[str]:
        return [k.hex().upper() for k in self._keys]
