"""Shared fixtures: a scripted in-memory transport and status frame builder."""

from __future__ import annotations

import pytest

from qlraster.printer.constants import MediaType, StatusType
from qlraster.printer.errors import PrinterTimeout, TransportIOError
from qlraster.printer.transport import Transport


def build_frame(
    *,
    media_type: int = MediaType.CONTINUOUS,
    width: int = 62,
    length: int = 0,
    status_type: int = StatusType.REPLY_TO_STATUS_REQUEST,
    phase_type: int = 0,
    phase_number: int = 0,
    notification: int = 0,
    err1: int = 0,
    err2: int = 0,
    model: int = 0x35,
    header: bytes = b"\x80\x20\x42",
) -> bytes:
    frame = bytearray(32)
    frame[0:3] = header
    frame[4] = model
    frame[8] = err1
    frame[9] = err2
    frame[10] = width
    frame[11] = media_type
    frame[17] = length
    frame[18] = status_type
    frame[19] = phase_type
    frame[20:22] = phase_number.to_bytes(2, "big")
    frame[22] = notification
    return bytes(frame)


class FakeTransport(Transport):
    """Records writes and replays queued status frames."""

    def __init__(self, frames=(), fail_on_write: int | None = None,
                 close_error: Exception | None = None):
        self.frames = list(frames)
        self.writes: list[bytes] = []
        self.fail_on_write = fail_on_write
        self.close_error = close_error
        self.connected = False
        self.closed = False

    def connect(self) -> None:
        self.connected = True

    def write(self, data: bytes) -> int:
        if self.fail_on_write is not None and len(self.writes) >= self.fail_on_write:
            raise TransportIOError("simulated write failure")
        self.writes.append(bytes(data))
        return len(data)

    def read_frame(self, length: int = 32, timeout_ms: int = 0) -> bytes:
        if not self.frames:
            raise PrinterTimeout("no status frame queued")
        return self.frames.pop(0)

    def close(self) -> None:
        self.closed = True
        if self.close_error is not None:
            raise self.close_error


@pytest.fixture
def make_frame():
    return build_frame


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def transport_cls():
    return FakeTransport
