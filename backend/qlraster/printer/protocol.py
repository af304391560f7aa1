"""Brother QL raster protocol commands and print job driver."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Iterable

from PIL import Image

from .constants import (
    DEFAULT_BRIGHTNESS, DEFAULT_CONTRAST, DEFAULT_MARGIN_DOTS, LINE_LENGTH_BYTES,
    PRINT_TIMEOUT_S, STATUS_MESSAGE_LENGTH, STATUS_POLL_INTERVAL_S,
    STATUS_READ_TIMEOUT_MS, AdvancedMode, JobState, MediaType, Mode, StatusType,
)
from .errors import (
    DeviceError, NotConnected, PrinterError, PrintTimeout, WidthMismatch,
)
from .raster import ImageSource, build_mono_at_width, pack_raster_lines
from .status import PrinterStatus, parse_status
from .transport import Transport

log = logging.getLogger(__name__)


# ── Low-level command builders ──────────────────────────────────────────

def initialize() -> bytes:
    return b"\x1B\x40"

def switch_to_raster_mode() -> bytes:
    return b"\x1B\x69\x61\x01"

def enable_status_notification() -> bytes:
    return b"\x1B\x69\x21\x00"

def print_information(status: PrinterStatus, line_count: int) -> bytes:
    die_cut = status.media_type == MediaType.DIE_CUT
    flags = 0x80 | 0x02 | 0x04  # recovery, kind valid, width valid
    if die_cut:
        flags |= 0x08  # length valid
    return (
        b"\x1B\x69\x7A"
        + bytes([
            flags,
            int(status.media_type) & 0xFF,
            status.media_width_mm & 0xFF,
            status.media_length_mm & 0xFF if die_cut else 0x00,
        ])
        + (line_count & 0xFFFFFFFF).to_bytes(4, "little")
        + b"\x00\x00"
    )

def set_mode(mode: Mode = Mode.AUTO_CUT) -> bytes:
    return b"\x1B\x69\x4D" + mode.to_bytes(1, "big")

def set_advanced_mode(cut_at_end: bool = True) -> bytes:
    value = AdvancedMode.CUT_AT_END if cut_at_end else AdvancedMode(0)
    return b"\x1B\x69\x4B" + value.to_bytes(1, "big")

def cut_each(labels: int = 1) -> bytes:
    return b"\x1B\x69\x41" + labels.to_bytes(1, "big")

def margin_amount(dots: int = DEFAULT_MARGIN_DOTS) -> bytes:
    return b"\x1B\x69\x64" + dots.to_bytes(2, "little")

def no_compression() -> bytes:
    return b"\x4D\x00"

def raster_line(line: bytes) -> bytes:
    if len(line) != LINE_LENGTH_BYTES:
        raise WidthMismatch(
            f"Raster line must be {LINE_LENGTH_BYTES} bytes, got {len(line)}"
        )
    return b"\x67\x00" + LINE_LENGTH_BYTES.to_bytes(1, "big") + bytes(line)

def print_with_feeding() -> bytes:
    return b"\x1A"

def print_without_feeding() -> bytes:
    return b"\x0C"

def status_information_request() -> bytes:
    return b"\x1B\x69\x53"


# ── High-level printer driver ──────────────────────────────────────────

@dataclass
class PrintOptions:
    cut_at_end: bool = False
    auto_cut: bool = False
    enable_status_notifications: bool = False
    brightness: int = DEFAULT_BRIGHTNESS  # 100 = unchanged
    contrast: int = DEFAULT_CONTRAST      # 100 = unchanged
    flip_margins: bool = False


class QLPrinter:
    """Print session over one exclusively owned Transport.

    The session keeps the most recently observed status; every command that
    depends on the loaded media is built from it.
    """

    def __init__(self, transport: Transport, *,
                 poll_interval: float = STATUS_POLL_INTERVAL_S,
                 timeout: float = PRINT_TIMEOUT_S,
                 read_timeout_ms: int = STATUS_READ_TIMEOUT_MS):
        self._tr = transport
        self._status: PrinterStatus | None = None
        self._state = JobState.IDLE
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._read_timeout_ms = read_timeout_ms

    @property
    def status(self) -> PrinterStatus | None:
        return self._status

    @property
    def state(self) -> JobState:
        return self._state

    def connect(self) -> PrinterStatus:
        self._tr.connect()
        status = self.update_status()
        log.info("Printer ready: %s %dmm, %d printable dots",
                 getattr(status.media_type, "name", status.media_type),
                 status.media_width_mm, status.printable_dots)
        return status

    def close(self):
        self._tr.close()

    def _close_after(self, exc: BaseException) -> None:
        # keep the original failure; a release error only gets logged
        try:
            self.close()
        except PrinterError as e:
            log.warning("Could not release printer after %s: %s", type(exc).__name__, e)

    def __enter__(self):
        try:
            self.connect()
        except BaseException as e:
            self._close_after(e)
            raise
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc is None:
            self.close()
        else:
            self._close_after(exc)

    def update_status(self) -> PrinterStatus:
        self._tr.write(status_information_request())
        raw = self._tr.read_frame(STATUS_MESSAGE_LENGTH, self._read_timeout_ms)
        self._status = parse_status(raw)
        if not self._status.header_ok:
            log.debug("Unexpected status header: %s", raw[:3].hex())
        return self._status

    def _require_status(self) -> PrinterStatus:
        if self._status is None:
            raise NotConnected("Printer status not available; call connect() first")
        return self._status

    def print_lines(self, lines: Iterable[bytes],
                    options: PrintOptions | None = None) -> PrinterStatus:
        """Send one label made of raster lines and wait until it is printed."""
        status = self._require_status()
        options = options or PrintOptions()
        lines = [bytes(line) for line in lines]
        for line in lines:
            if len(line) != LINE_LENGTH_BYTES:
                raise WidthMismatch(
                    f"Raster line must be {LINE_LENGTH_BYTES} bytes, got {len(line)}"
                )

        try:
            self._state = JobState.INITIALIZING
            self._tr.write(initialize())
            if options.enable_status_notifications:
                self._tr.write(enable_status_notification())

            self._state = JobState.CONFIGURING_MODE
            self._tr.write(switch_to_raster_mode())
            self._tr.write(no_compression())
            self._tr.write(print_information(status, len(lines)))
            if options.auto_cut:
                self._tr.write(set_mode(Mode.AUTO_CUT))
                self._tr.write(cut_each(1))
            if options.cut_at_end:
                self._tr.write(set_advanced_mode(cut_at_end=True))
            self._tr.write(margin_amount())

            self._state = JobState.STREAMING_DATA
            log.debug("Streaming %d raster lines", len(lines))
            for line in lines:
                self._tr.write(raster_line(line))
            self._tr.write(print_with_feeding())

            self._state = JobState.AWAITING_COMPLETION
            final = self.wait_for_completion()
        except BaseException:
            self._state = JobState.FAILED
            raise

        self._state = JobState.COMPLETED
        log.info("Printed %d lines", len(lines))
        return final

    def wait_for_completion(self) -> PrinterStatus:
        deadline = time.monotonic() + self._timeout
        while time.monotonic() < deadline:
            status = self.update_status()
            if status.status_type == StatusType.ERROR_OCCURRED:
                log.warning("Printer error: %s", status.error_messages())
                raise DeviceError(status.error_information_1,
                                  status.error_information_2,
                                  status.error_messages())
            if status.status_type == StatusType.TURNED_OFF:
                raise DeviceError(status.error_information_1,
                                  status.error_information_2,
                                  ["printer turned off during printing"])
            if status.status_type == StatusType.PRINTING_COMPLETED:
                return status
            time.sleep(self._poll_interval)
        raise PrintTimeout(f"Printer did not confirm print completion within {self._timeout}s")

    def _pack(self, mono: Image.Image, options: PrintOptions) -> list[bytes]:
        status = self._require_status()
        return pack_raster_lines(mono, status.printable_dots, status.left_margin,
                                 status.right_margin, options.flip_margins)

    def preview_image(self, source: ImageSource,
                      options: PrintOptions | None = None) -> Image.Image:
        status = self._require_status()
        options = options or PrintOptions()
        _, preview = build_mono_at_width(source, status.printable_dots,
                                         options.brightness, options.contrast)
        return preview

    def print_image(self, source: ImageSource,
                    options: PrintOptions | None = None) -> PrinterStatus:
        status = self._require_status()
        options = options or PrintOptions()
        mono, _ = build_mono_at_width(source, status.printable_dots,
                                      options.brightness, options.contrast)
        return self.print_lines(self._pack(mono, options), options)

    def print_mono(self, mono: Image.Image,
                   options: PrintOptions | None = None) -> PrinterStatus:
        """Print an already dithered image, rebuilding it if the width is off."""
        status = self._require_status()
        options = options or PrintOptions()
        if mono.width != status.printable_dots:
            mono, _ = build_mono_at_width(mono, status.printable_dots,
                                          options.brightness, options.contrast)
        return self.print_lines(self._pack(mono, options), options)
