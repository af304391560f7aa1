"""Printer service: opens the printer, previews and prints images."""
from __future__ import annotations
import io
import logging
import threading
from typing import Callable, Optional

from ..printer.protocol import PrintOptions, QLPrinter
from ..printer.transport import Transport, USBTransport

log = logging.getLogger(__name__)

# The USB device can only be claimed by one job at a time.
_device_lock = threading.Lock()

TransportFactory = Callable[[Optional[str]], Transport]


def _usb_transport(serial: Optional[str]) -> Transport:
    return USBTransport(serial)


transport_factory: TransportFactory = _usb_transport


def open_printer(serial: Optional[str] = None) -> QLPrinter:
    """Build a session on a fresh transport; use it as a context manager."""
    return QLPrinter(transport_factory(serial))


def get_status(serial: Optional[str] = None) -> dict:
    with _device_lock, open_printer(serial) as printer:
        return printer.status.to_dict()


def render_preview(image_bytes: bytes, options: PrintOptions,
                   serial: Optional[str] = None) -> tuple[bytes, tuple[int, int]]:
    """Return the dithered preview as PNG bytes and its size."""
    with _device_lock, open_printer(serial) as printer:
        preview = printer.preview_image(image_bytes, options)
    buf = io.BytesIO()
    preview.save(buf, format="PNG")
    return buf.getvalue(), preview.size


def print_image(image_bytes: bytes, options: PrintOptions,
                serial: Optional[str] = None) -> dict:
    """Print one label and report the final printer state."""
    with _device_lock, open_printer(serial) as printer:
        status = printer.status
        width = status.printable_dots
        try:
            final = printer.print_image(image_bytes, options)
        except Exception as e:
            log.error("Print failed in state %s: %s", printer.state.value, e)
            raise
        log.info("Printed label on %dmm media (%d dots wide)",
                 status.media_width_mm, width)
        return {
            "state": printer.state.value,
            "printable_dots": width,
            "status": final.to_dict(),
        }
