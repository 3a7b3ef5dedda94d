"""Error taxonomy for MIFARE Classic block access."""


class MifareError(Exception):
    """Base class for all card access errors."""


class InputValidationError(MifareError, ValueError):
    """Malformed key, payload or address. Raised before any device access."""


class AuthenticationError(MifareError):
    """A single authentication attempt (one key, one role) was refused."""


class AuthenticationExhausted(MifareError):
    """No candidate key authenticated the block, with either role."""

    def __init__(self, address, attempted_keys: list[str]):
        self.address = address
        self.attempted_keys = list(attempted_keys)
        tried = ", ".join(self.attempted_keys) or "no keys"
        super().__init__(f"{address}: no key authenticated the block (tried {tried})")


class TransportError(MifareError):
    """The card is gone or the reader link failed. Fatal to the current operation."""


class SessionBusyError(TransportError):
    """Another card session is already in progress."""


class ResolveError(MifareError):
    """The payload cannot be written to a block of this kind."""
