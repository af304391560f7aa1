"""Transport abstraction: the byte link to the printer, and its USB backend."""
from abc import ABC, abstractmethod
from typing import Optional
import logging
import time

from .constants import (
    STATUS_MESSAGE_LENGTH, USB_CHUNK_SIZE, USB_IN_EP_ID, USB_INTERFACE,
    USB_OUT_EP_ID, USB_TRX_TIMEOUT_MS, USBID_BROTHER, SupportedPrinterIDs,
)
from .errors import DeviceUnavailable, PrinterTimeout, TransportIOError

log = logging.getLogger(__name__)


class Transport(ABC):
    """Abstract byte-level transport to a Brother QL printer."""

    @abstractmethod
    def connect(self) -> None: ...

    @abstractmethod
    def write(self, data: bytes) -> int: ...

    @abstractmethod
    def read_frame(self, length: int = STATUS_MESSAGE_LENGTH,
                   timeout_ms: int = USB_TRX_TIMEOUT_MS) -> bytes: ...

    @abstractmethod
    def close(self) -> None: ...

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, *exc):
        self.close()


# ---------------------------------------------------------------------------
# USB Transport
# ---------------------------------------------------------------------------

def _find_devices(product_id: Optional[int] = None) -> list:
    import usb.core

    wanted = {product_id} if product_id is not None else set(SupportedPrinterIDs)
    return [
        dev for dev in usb.core.find(find_all=True, idVendor=USBID_BROTHER)
        if dev.idProduct in wanted
    ]


class USBTransport(Transport):
    def __init__(self, serial: Optional[str] = None, product_id: Optional[int] = None):
        self._serial = serial
        self._product_id = product_id
        self._dev = None

    @property
    def is_connected(self) -> bool:
        return self._dev is not None

    def connect(self) -> None:
        import usb.core
        import usb.util

        dev = None
        try:
            for candidate in _find_devices(self._product_id):
                if self._serial and candidate.serial_number != self._serial:
                    continue
                dev = candidate
                break
        except usb.core.USBError as e:
            raise DeviceUnavailable(f"USB enumeration failed: {e}") from e

        if dev is None:
            raise DeviceUnavailable("No supported USB printer found")

        try:
            if dev.is_kernel_driver_active(USB_INTERFACE):
                dev.detach_kernel_driver(USB_INTERFACE)
            dev.set_configuration()
            usb.util.claim_interface(dev, USB_INTERFACE)
        except usb.core.USBError as e:
            usb.util.dispose_resources(dev)
            raise DeviceUnavailable(f"Cannot claim printer: {e}") from e

        self._dev = dev
        log.info("USB connected: %s", dev.product)

    def _require_device(self):
        if self._dev is None:
            raise TransportIOError("USB transport is not connected")
        return self._dev

    def write(self, data: bytes) -> int:
        import usb.core
        dev = self._require_device()
        sent = 0
        while sent < len(data):
            try:
                n = dev.write(USB_OUT_EP_ID, data[sent:sent + USB_CHUNK_SIZE], USB_TRX_TIMEOUT_MS)
            except usb.core.USBError as e:
                raise TransportIOError(f"Write to printer failed: {e}") from e
            if n == 0:
                raise TransportIOError("IO timeout while writing to printer")
            sent += n
        return sent

    def read_frame(self, length: int = STATUS_MESSAGE_LENGTH,
                   timeout_ms: int = USB_TRX_TIMEOUT_MS) -> bytes:
        """Read exactly ``length`` bytes; empty reads are retried until the deadline."""
        import usb.core
        dev = self._require_device()
        deadline = time.monotonic() + timeout_ms / 1000
        buf = bytearray()
        while len(buf) < length:
            remaining_ms = int((deadline - time.monotonic()) * 1000)
            if remaining_ms <= 0:
                raise PrinterTimeout(f"Read {len(buf)}/{length} bytes before timeout")
            try:
                chunk = dev.read(USB_IN_EP_ID, length - len(buf), remaining_ms)
            except usb.core.USBTimeoutError as e:
                raise PrinterTimeout("IO timeout while reading from printer") from e
            except usb.core.USBError as e:
                raise TransportIOError(f"Read from printer failed: {e}") from e
            if len(chunk) == 0:
                time.sleep(0.01)  # printer has nothing queued yet
                continue
            buf += bytes(chunk)
        return bytes(buf)

    def close(self) -> None:
        if self._dev:
            import usb.core
            import usb.util
            try:
                usb.util.release_interface(self._dev, USB_INTERFACE)
            except usb.core.USBError as e:
                raise TransportIOError(f"Cannot release printer: {e}") from e
            finally:
                usb.util.dispose_resources(self._dev)
                self._dev = None


def discover_usb_printers() -> list[dict]:
    """List attached Brother QL printers."""
    results = []
    for dev in _find_devices():
        pid = dev.idProduct
        results.append({
            "type": "usb",
            "product": dev.product or SupportedPrinterIDs(pid).name,
            "product_id": pid,
            "serial": dev.serial_number,
            "manufacturer": dev.manufacturer,
        })
    return results
