"""
Human-readable rendering of dump and write results.

Supports multiple output formats:
- Console lines (one per block, "Sector 13 block 02: ... (Key A: ...)")
- Proxmark3-style text dump
"""

from .dump import DumpEntry, DumpReport
from .write import WriteResult, WriteState

FAILED_READ = "<Failed to read block>"
CARD_LOST = "Card removed or not present."


def format_dump_entry(entry: DumpEntry) -> str:
    if entry.ok:
        return f"{entry.address}: {entry.outcome.content.hex} ({entry.outcome.key})"
    return f"{entry.address}: {FAILED_READ}"


def format_dump(report: DumpReport) -> list[str]:
    """One line per dumped block, plus a closing line if the card was lost."""
    lines = [format_dump_entry(e) for e in report.entries]
    if report.aborted:
        lines.append(CARD_LOST)
    return lines


def format_write(result: WriteResult) -> list[str]:
    """Old and new block data lines of a write, in the order they happened."""
    if result.state is WriteState.REJECTED:
        return [result.error]
    if result.old_content is None:
        return [f"Old block data: {FAILED_READ}"]

    lines = [f"Old block data: {result.old_content.hex} ({result.used_key})"]
    if result.state is not WriteState.DONE:
        lines.append(result.error)
    elif result.new_content is None:
        lines.append(f"New block data: {FAILED_READ}")
    else:
        lines.append(f"New block data: {result.new_content.hex} ({result.used_key})")
    return lines


def build_proxmark3_dump(report: DumpReport) -> str:
    """
    Build a Proxmark3-compatible text dump.

    Output format:
    Block 00: AA BB CC DD EE FF 00 11 22 33 44 55 66 77 88 99

    Unreadable blocks are written as "--" bytes.
    """
    lines = []
    for entry in report.entries:
        if entry.ok:
            hex_bytes = " ".join(f"{b:02X}" for b in entry.outcome.content.data)
        else:
            hex_bytes = " ".join(["--"] * 16)
        lines.append(f"Block {entry.address.absolute_block:02d}: {hex_bytes}")
    return "\n".join(lines)
