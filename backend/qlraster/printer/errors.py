"""Printer exceptions.

Every failure is terminal for the job that raised it; nothing in the driver
retries. ``PrinterError`` derives from ``RuntimeError`` so callers catching the
generic runtime failures of the transport keep working.
"""
from __future__ import annotations


class PrinterError(RuntimeError):
    """Base class for all printer failures."""


class MalformedFrame(PrinterError, ValueError):
    """A status frame was shorter than 32 bytes."""


class NotConnected(PrinterError):
    """An operation needs a printer status that has not been observed yet."""


class WidthMismatch(PrinterError, ValueError):
    """Image or raster geometry does not match the loaded media."""


class DeviceError(PrinterError):
    """The printer reported an error while a job was running."""

    def __init__(self, error_information_1: int, error_information_2: int,
                 messages: list[str] | None = None):
        self.error_information_1 = int(error_information_1)
        self.error_information_2 = int(error_information_2)
        self.messages = list(messages or [])
        detail = " | ".join(self.messages) if self.messages else "unknown printer error"
        super().__init__(
            f"{detail} (error1=0x{self.error_information_1:02X}, "
            f"error2=0x{self.error_information_2:02X})"
        )


class PrinterTimeout(PrinterError, TimeoutError):
    """No answer from the printer within the allowed time."""


class PrintTimeout(PrinterTimeout):
    """Printing was not confirmed before the job deadline."""


class TransportError(PrinterError):
    """Base class for failures of the byte transport."""


class DeviceUnavailable(TransportError):
    """No usable printer could be opened."""


class TransportIOError(TransportError, OSError):
    """A read or write on an open transport failed."""
