"""Tests for payload resolution per block kind."""

import pytest
from mifarerw.rfid.blocks import resolve_block_bytes
from mifarerw.rfid.errors import ResolveError


class TestDataBlocks:
    def test_pass_through(self):
        payload = bytes.fromhex("FFFFFFFFFFFF00000000060504030201")
        assert resolve_block_bytes(13, 2, payload) == payload

    def test_sector_zero_data_blocks_are_writable(self):
        assert resolve_block_bytes(0, 1, bytes(16)) == bytes(16)
        assert resolve_block_bytes(0, 2, bytes(16)) == bytes(16)

    @pytest.mark.parametrize("length", [1, 15, 17, 32])
    def test_wrong_length(self, length):
        with pytest.raises(ResolveError, match="16 bytes"):
            resolve_block_bytes(1, 0, bytes(length))


class TestManufacturerBlock:
    def test_never_writable(self):
        with pytest.raises(ResolveError, match="manufacturer"):
            resolve_block_bytes(0, 0, bytes(16))


class TestTrailerBlocks:
    def test_valid_trailer(self):
        payload = bytes.fromhex("A0A1A2A3A4A5FF078069B0B1B2B3B4B5")
        assert resolve_block_bytes(5, 3, payload) == payload

    def test_sector_zero_trailer(self):
        payload = bytes.fromhex("FFFFFFFFFFFFFF078069FFFFFFFFFFFF")
        assert resolve_block_bytes(0, 3, payload) == payload

    def test_inconsistent_access_bits_refused(self):
        # Plain data written to a trailer would lock the sector
        payload = bytes.fromhex("FFFFFFFFFFFF00000000060504030201")
        with pytest.raises(ResolveError, match="trailer"):
            resolve_block_bytes(13, 3, payload)

    def test_wrong_length(self):
        with pytest.raises(ResolveError):
            resolve_block_bytes(13, 3, bytes.fromhex("FFFFFFFFFFFFFF078069"))
