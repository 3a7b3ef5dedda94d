"""Tests for dump and write rendering."""

from mifarerw.engine.dump import DumpEngine
from mifarerw.engine.report import build_proxmark3_dump, format_dump, format_write
from mifarerw.engine.write import WriteVerifyEngine
from mifarerw.rfid.keys import KeyCatalog
from mifarerw.rfid.mifare import BlockAddress

PAYLOAD = "FFFFFFFFFFFF00000000060504030201"


class TestFormatDump:
    def test_lines(self, card):
        card.set_sector_keys(1, "123456789ABC", "CBA987654321")
        lines = format_dump(DumpEngine(card).run(KeyCatalog.build()))
        assert len(lines) == 64
        assert lines[0] == "Sector 00 block 00: DEADBEEF220804000102030405060708 (Key A: FFFFFFFFFFFF)"
        assert lines[4] == "Sector 01 block 00: <Failed to read block>"

    def test_card_lost_line(self, card):
        card.lost_after_calls = 0
        lines = format_dump(DumpEngine(card).run(KeyCatalog.build()))
        assert lines == ["Card removed or not present."]


class TestFormatWrite:
    def test_done(self, card):
        old = card.blocks[BlockAddress(13, 2)].hex().upper()
        result = WriteVerifyEngine(card).write(BlockAddress(13, 2), "FFFFFFFFFFFF", PAYLOAD)
        assert format_write(result) == [
            f"Old block data: {old} (Key A: FFFFFFFFFFFF)",
            f"New block data: {PAYLOAD} (Key A: FFFFFFFFFFFF)",
        ]

    def test_read_failed(self, card):
        result = WriteVerifyEngine(card).write(BlockAddress(13, 2), "001122334455", PAYLOAD)
        assert format_write(result) == ["Old block data: <Failed to read block>"]

    def test_rejected(self, card):
        result = WriteVerifyEngine(card).write(BlockAddress(13, 2), "XYZ", PAYLOAD)
        assert format_write(result) == [result.error]

    def test_resolve_failed(self, card):
        result = WriteVerifyEngine(card).write(BlockAddress(0, 0), "FFFFFFFFFFFF", PAYLOAD)
        lines = format_write(result)
        assert len(lines) == 2
        assert "manufacturer" in lines[1]


class TestProxmark3Dump:
    def test_format(self, card):
        card.set_sector_keys(15, "123456789ABC", "CBA987654321")
        text = build_proxmark3_dump(DumpEngine(card).run(KeyCatalog.build()))
        lines = text.splitlines()
        assert len(lines) == 64
        assert lines[0] == "Block 00: DE AD BE EF 22 08 04 00 01 02 03 04 05 06 07 08"
        assert lines[63] == "Block 63: " + " ".join(["--"] * 16)
