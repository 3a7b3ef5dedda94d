"""
Full card dump.

Sweeps the 64 blocks in row-major order (sector 0 blocks 0-3, sector 1
blocks 0-3, ...). A block that no key can read is recorded as failed and
the sweep goes on; a lost card stops the sweep, since every later block
would fail the same way.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, Optional

from mifarerw.rfid.errors import AuthenticationExhausted, TransportError
from mifarerw.rfid.keys import KeyCatalog
from mifarerw.rfid.mifare import BlockAddress, all_addresses

from .resolver import AccessOutcome, AccessResolver
from .transport import CardTransport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DumpEntry:
    """Result for one address: an outcome, or the exhausted-keys failure."""
    address: BlockAddress
    outcome: Optional[AccessOutcome] = None
    failure: Optional[AuthenticationExhausted] = None

    @property
    def ok(self) -> bool:
        return self.outcome is not None

    def to_dict(self) -> dict:
        result = {"sector": self.address.sector, "block": self.address.block,
                  "kind": self.address.kind.value, "ok": self.ok}
        if self.outcome:
            result.update(self.outcome.to_dict())
        elif self.failure:
            result["error"] = str(self.failure)
        return result


@dataclass
class DumpReport:
    entries: list[DumpEntry] = field(default_factory=list)
    aborted: bool = False
    error: Optional[str] = None

    @property
    def read_count(self) -> int:
        return sum(1 for e in self.entries if e.ok)

    @property
    def failed_count(self) -> int:
        return sum(1 for e in self.entries if not e.ok)

    def to_dict(self) -> dict:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "aborted": self.aborted,
            "error": self.error,
        }


class DumpEngine:
    """Dumps every block of the card in the session using a key catalog."""

    def __init__(self, transport: CardTransport):
        self.resolver = AccessResolver(transport)

    def iter_dump(self, catalog: KeyCatalog) -> Iterator[DumpEntry]:
        """
        Yield one DumpEntry per address, in row-major order.

        A TransportError propagates out of the generator; no address after
        the failing one is attempted.
        """
        for address in all_addresses():
            try:
                outcome = self.resolver.try_catalog(address, catalog)
            except AuthenticationExhausted as e:
                logger.warning(f"{address}: failed to read block with {len(catalog)} keys")
                yield DumpEntry(address, failure=e)
                continue
            logger.info(f"{address}: {outcome.content.hex} ({outcome.key})")
            yield DumpEntry(address, outcome=outcome)

    def run(self, catalog: KeyCatalog) -> DumpReport:
        """Dump the whole card. A transport failure ends the report early and is recorded in it."""
        report = DumpReport()
        try:
            for entry in self.iter_dump(catalog):
                report.entries.append(entry)
        except TransportError as e:
            logger.error(f"Dump aborted after {len(report.entries)} blocks: {e}")
            report.aborted = True
            report.error = str(e)
            return report
        logger.info(f"Dump complete: {report.read_count} blocks read, {report.failed_count} failed")
        return report
