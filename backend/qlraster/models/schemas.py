"""Pydantic schemas for API request/response models."""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Optional

from ..printer.constants import DEFAULT_BRIGHTNESS, DEFAULT_CONTRAST
from ..printer.protocol import PrintOptions


class PrintOptionsSchema(BaseModel):
    cut_at_end: bool = True
    auto_cut: bool = False
    enable_status_notifications: bool = False
    brightness: int = Field(DEFAULT_BRIGHTNESS, ge=0, le=400)  # 100 = unchanged
    contrast: int = Field(DEFAULT_CONTRAST, ge=0, le=400)      # 100 = unchanged
    flip_margins: bool = False

    def to_options(self) -> PrintOptions:
        return PrintOptions(**self.model_dump())


class PrinterInfo(BaseModel):
    header_ok: bool
    model: str
    media_type: str
    media_width_mm: int
    media_length_mm: int
    media_present: bool
    supply: Optional[str] = None
    status_type: str
    phase_type: str
    phase_number: int
    errors: list[str]
    left_margin: int
    printable_dots: int
    right_margin: int


class DiscoveredPrinter(BaseModel):
    type: str = "usb"
    product: str
    product_id: int
    serial: Optional[str] = None
    manufacturer: Optional[str] = None


class PreviewResponse(BaseModel):
    image: str  # data URL
    width: int
    height: int


class PrintResult(BaseModel):
    state: str
    printable_dots: int
    status: PrinterInfo
