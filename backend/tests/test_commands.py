"""Tests for the byte layout of raster protocol commands."""

from __future__ import annotations

import pytest

from qlraster.printer import protocol
from qlraster.printer.constants import MediaType, Mode
from qlraster.printer.errors import WidthMismatch
from qlraster.printer.status import parse_status


@pytest.mark.parametrize(
    "command, expected",
    [
        (protocol.status_information_request(), "1B 69 53"),
        (protocol.initialize(), "1B 40"),
        (protocol.switch_to_raster_mode(), "1B 69 61 01"),
        (protocol.set_mode(Mode.AUTO_CUT), "1B 69 4D 40"),
        (protocol.set_advanced_mode(cut_at_end=True), "1B 69 4B 08"),
        (protocol.margin_amount(), "1B 69 64 23 00"),
        (protocol.print_without_feeding(), "0C"),
        (protocol.print_with_feeding(), "1A"),
        (protocol.no_compression(), "4D 00"),
        (protocol.enable_status_notification(), "1B 69 21 00"),
        (protocol.cut_each(1), "1B 69 41 01"),
    ],
)
def test_fixed_commands(command, expected):
    assert command == bytes.fromhex(expected)


class TestPrintInformation:
    def test_continuous(self, make_frame):
        status = parse_status(make_frame(media_type=MediaType.CONTINUOUS, width=62))
        cmd = protocol.print_information(status, 123)
        assert len(cmd) == 13
        assert cmd[0:3] == b"\x1B\x69\x7A"
        assert cmd[3] & 0x80 and cmd[3] & 0x02 and cmd[3] & 0x04
        assert not cmd[3] & 0x08
        assert cmd[4] == 0x0A
        assert cmd[5] == 62
        assert cmd[6] == 0
        assert int.from_bytes(cmd[7:11], "little") == 123
        assert cmd[11:13] == b"\x00\x00"

    def test_continuous_ignores_reported_length(self, make_frame):
        status = parse_status(make_frame(media_type=MediaType.CONTINUOUS, width=29, length=90))
        assert protocol.print_information(status, 1)[6] == 0

    def test_die_cut_sets_length(self, make_frame):
        status = parse_status(make_frame(media_type=MediaType.DIE_CUT, width=62, length=100))
        cmd = protocol.print_information(status, 0x01020304)
        assert cmd[3] == 0x8E
        assert cmd[4] == 0x0B
        assert cmd[5] == 62
        assert cmd[6] == 100
        assert cmd[7:11] == b"\x04\x03\x02\x01"


class TestRasterLine:
    def test_frame(self):
        line = bytearray(90)
        line[0] = 0xFF
        cmd = protocol.raster_line(bytes(line))
        assert len(cmd) == 93
        assert cmd[0] == 0x67
        assert cmd[1] == 0x00
        assert cmd[2] == 0x5A
        assert cmd[3] == 0xFF
        assert cmd[4:] == bytes(89)

    @pytest.mark.parametrize("size", [0, 89, 91])
    def test_wrong_length(self, size):
        with pytest.raises(WidthMismatch):
            protocol.raster_line(bytes(size))
