"""Printer & label API router."""
from __future__ import annotations
import base64
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool
from PIL import UnidentifiedImageError

from ..models.schemas import (
    DiscoveredPrinter, PreviewResponse, PrinterInfo, PrintOptionsSchema, PrintResult,
)
from ..printer.constants import DEFAULT_BRIGHTNESS, DEFAULT_CONTRAST
from ..printer.errors import (
    DeviceError, DeviceUnavailable, MalformedFrame, NotConnected, PrinterError,
    PrinterTimeout, TransportIOError, WidthMismatch,
)
from ..services import printer_service

router = APIRouter(prefix="/api", tags=["printer"])

_ERROR_STATUS: list[tuple[type[Exception], int]] = [
    (DeviceUnavailable, 503),
    (NotConnected, 503),
    (DeviceError, 409),
    (PrinterTimeout, 504),
    (TransportIOError, 502),
    (WidthMismatch, 422),
    (MalformedFrame, 422),
    (UnidentifiedImageError, 422),
]


def _http_error(exc: Exception) -> HTTPException:
    for exc_type, code in _ERROR_STATUS:
        if isinstance(exc, exc_type):
            return HTTPException(status_code=code, detail=str(exc))
    return HTTPException(status_code=500, detail=str(exc))


@router.get("/printer/discover")
async def discover_printers():
    """Discover connected printers (USB)."""
    from ..printer.transport import discover_usb_printers
    try:
        printers = await run_in_threadpool(discover_usb_printers)
    except Exception as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {"printers": [DiscoveredPrinter(**p) for p in printers]}


@router.get("/printer/status", response_model=PrinterInfo)
async def printer_status(serial: Optional[str] = None):
    """Get printer status."""
    try:
        return await run_in_threadpool(printer_service.get_status, serial)
    except PrinterError as e:
        raise _http_error(e)


@router.post("/label/preview", response_model=PreviewResponse)
async def preview_label(
    file: UploadFile = File(...),
    brightness: int = Form(DEFAULT_BRIGHTNESS, ge=0, le=400),
    contrast: int = Form(DEFAULT_CONTRAST, ge=0, le=400),
    flip_margins: bool = Form(False),
    serial: Optional[str] = Form(None),
):
    """Render the dithered label preview and return PNG as base64."""
    data = await file.read()
    options = PrintOptionsSchema(
        brightness=brightness, contrast=contrast, flip_margins=flip_margins,
    ).to_options()
    try:
        png_bytes, (width, height) = await run_in_threadpool(
            printer_service.render_preview, data, options, serial
        )
    except (PrinterError, UnidentifiedImageError) as e:
        raise _http_error(e)
    b64 = base64.b64encode(png_bytes).decode()
    return PreviewResponse(image=f"data:image/png;base64,{b64}", width=width, height=height)


@router.post("/label/print", response_model=PrintResult)
async def print_label(
    file: UploadFile = File(...),
    cut_at_end: bool = Form(True),
    auto_cut: bool = Form(False),
    enable_status_notifications: bool = Form(False),
    brightness: int = Form(DEFAULT_BRIGHTNESS, ge=0, le=400),
    contrast: int = Form(DEFAULT_CONTRAST, ge=0, le=400),
    flip_margins: bool = Form(False),
    serial: Optional[str] = Form(None),
):
    """Dither the uploaded image and print it as one label."""
    data = await file.read()
    options = PrintOptionsSchema(
        cut_at_end=cut_at_end,
        auto_cut=auto_cut,
        enable_status_notifications=enable_status_notifications,
        brightness=brightness,
        contrast=contrast,
        flip_margins=flip_margins,
    ).to_options()
    try:
        return await run_in_threadpool(printer_service.print_image, data, options, serial)
    except (PrinterError, UnidentifiedImageError) as e:
        raise _http_error(e)
