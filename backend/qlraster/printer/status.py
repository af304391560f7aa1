"""Status frame parsing and media geometry for Brother QL printers."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from .constants import (
    ERROR_MESSAGES_1, ERROR_MESSAGES_2, STATUS_HEADER, STATUS_MESSAGE_LENGTH,
    ErrorInformation1, ErrorInformation2, MediaType, ModelCode, PhaseType,
    StatusOffsets, StatusType,
)
from .errors import MalformedFrame


class Geometry(NamedTuple):
    """Print head layout for one media, in dots."""
    left: int
    printable: int
    right: int


# (media type, width mm, length mm or 0 for continuous) -> pin layout.
# Declaration order matters for the die-cut width-only fallback.
GEOMETRY_TABLE: dict[tuple[int, int, int], Geometry] = {
    # Continuous length tape
    (MediaType.CONTINUOUS, 12, 0): Geometry(585, 106, 29),
    (MediaType.CONTINUOUS, 29, 0): Geometry(408, 306, 6),
    (MediaType.CONTINUOUS, 38, 0): Geometry(295, 413, 12),
    (MediaType.CONTINUOUS, 50, 0): Geometry(154, 554, 12),
    (MediaType.CONTINUOUS, 54, 0): Geometry(130, 590, 0),
    (MediaType.CONTINUOUS, 62, 0): Geometry(12, 696, 12),
    # Die-cut labels (W x H mm)
    (MediaType.DIE_CUT, 17, 54): Geometry(555, 165, 0),
    (MediaType.DIE_CUT, 17, 87): Geometry(555, 165, 0),
    (MediaType.DIE_CUT, 23, 23): Geometry(442, 236, 42),
    (MediaType.DIE_CUT, 29, 42): Geometry(408, 306, 6),
    (MediaType.DIE_CUT, 29, 90): Geometry(408, 306, 6),
    (MediaType.DIE_CUT, 38, 90): Geometry(295, 413, 12),
    (MediaType.DIE_CUT, 39, 48): Geometry(289, 425, 6),
    (MediaType.DIE_CUT, 52, 29): Geometry(142, 578, 0),
    (MediaType.DIE_CUT, 54, 29): Geometry(59, 602, 59),
    (MediaType.DIE_CUT, 60, 86): Geometry(24, 672, 24),
    (MediaType.DIE_CUT, 62, 29): Geometry(12, 696, 12),
    (MediaType.DIE_CUT, 62, 100): Geometry(12, 696, 12),
    # Round (diameter mm, width == length)
    (MediaType.DIE_CUT, 12, 12): Geometry(513, 94, 113),
    (MediaType.DIE_CUT, 24, 24): Geometry(442, 236, 42),
    (MediaType.DIE_CUT, 58, 58): Geometry(51, 618, 51),
}

DK_SUPPLIES: dict[tuple[int, int, int], str] = {
    (MediaType.CONTINUOUS, 12, 0): "DK-22214 12mm continuous",
    (MediaType.CONTINUOUS, 29, 0): "DK-22210 29mm continuous",
    (MediaType.CONTINUOUS, 38, 0): "DK-22225 38mm continuous",
    (MediaType.CONTINUOUS, 50, 0): "DK-22223 50mm continuous",
    (MediaType.CONTINUOUS, 54, 0): "DK-22211 54mm continuous",
    (MediaType.CONTINUOUS, 62, 0): "DK-22205 62mm continuous",
    (MediaType.DIE_CUT, 17, 54): "DK-1208 17x54",
    (MediaType.DIE_CUT, 29, 90): "DK-1201 29x90",
    (MediaType.DIE_CUT, 38, 90): "DK-1202 38x90",
    (MediaType.DIE_CUT, 62, 29): "DK-1209 62x29",
    (MediaType.DIE_CUT, 62, 100): "DK-1218 62x100",
    (MediaType.DIE_CUT, 24, 24): "Round 24mm",
}


def _media_key(media_type: int, width_mm: int, length_mm: int) -> tuple[int, int, int]:
    # length is meaningless for continuous tape
    if media_type == MediaType.CONTINUOUS:
        length_mm = 0
    return (int(media_type), width_mm, length_mm)


def resolve_geometry(media_type: int, width_mm: int, length_mm: int) -> Geometry | None:
    """Look up the pin layout for the loaded media.

    Exact (type, width, length) matches win. Die-cut media with no exact
    match falls back to the first declared die-cut entry of the same width,
    which is ambiguous when several labels share a width. Continuous tape
    falls back to its zero-length entry. Returns ``None`` for unknown media.
    """
    exact = GEOMETRY_TABLE.get(_media_key(media_type, width_mm, length_mm))
    if exact is not None:
        return exact

    if media_type == MediaType.DIE_CUT:
        for (mt, width, _length), geometry in GEOMETRY_TABLE.items():
            if mt == MediaType.DIE_CUT and width == width_mm:
                return geometry
    elif media_type == MediaType.CONTINUOUS:
        return GEOMETRY_TABLE.get((MediaType.CONTINUOUS, width_mm, 0))
    return None


def _coerce(enum_cls, value: int):
    """Return the enum member for ``value``, or the raw byte if it is unknown."""
    try:
        return enum_cls(value)
    except ValueError:
        return value


@dataclass(frozen=True)
class PrinterStatus:
    header_ok: bool
    model: ModelCode | int
    media_type: MediaType | int
    media_width_mm: int
    media_length_mm: int
    error_information_1: ErrorInformation1
    error_information_2: ErrorInformation2
    status_type: StatusType | int
    phase_type: PhaseType | int
    phase_number: int
    notification: int
    left_margin: int = 0
    printable_dots: int = 0
    right_margin: int = 0
    raw: bytes = field(default=b"", repr=False, compare=False)

    @property
    def media_present(self) -> bool:
        return (self.media_type != MediaType.NO_MEDIA
                and not self.error_information_1 & ErrorInformation1.NO_MEDIA)

    @property
    def supply_name(self) -> str | None:
        return DK_SUPPLIES.get(
            _media_key(self.media_type, self.media_width_mm, self.media_length_mm)
        )

    @property
    def geometry(self) -> Geometry:
        return Geometry(self.left_margin, self.printable_dots, self.right_margin)

    def error_messages(self) -> list[str]:
        msgs = [msg for flag, msg in ERROR_MESSAGES_1.items()
                if self.error_information_1 & flag]
        msgs += [msg for flag, msg in ERROR_MESSAGES_2.items()
                 if self.error_information_2 & flag]
        return msgs

    def to_dict(self) -> dict:
        return {
            "header_ok": self.header_ok,
            "model": getattr(self.model, "name", f"0x{self.model:02X}"),
            "media_type": getattr(self.media_type, "name", f"0x{self.media_type:02X}"),
            "media_width_mm": self.media_width_mm,
            "media_length_mm": self.media_length_mm,
            "media_present": self.media_present,
            "supply": self.supply_name,
            "status_type": getattr(self.status_type, "name", f"0x{self.status_type:02X}"),
            "phase_type": getattr(self.phase_type, "name", f"0x{self.phase_type:02X}"),
            "phase_number": self.phase_number,
            "errors": self.error_messages(),
            "left_margin": self.left_margin,
            "printable_dots": self.printable_dots,
            "right_margin": self.right_margin,
        }


def parse_status(frame: bytes) -> PrinterStatus:
    """Decode a 32-byte status frame.

    A bad header signature only clears ``header_ok``; decoding goes on.
    """
    if len(frame) < STATUS_MESSAGE_LENGTH:
        raise MalformedFrame(
            f"Status frame must be {STATUS_MESSAGE_LENGTH} bytes, got {len(frame)}"
        )
    raw = bytes(frame[:STATUS_MESSAGE_LENGTH])

    media_type = _coerce(MediaType, raw[StatusOffsets.MEDIA_TYPE])
    media_width = raw[StatusOffsets.MEDIA_WIDTH]
    media_length = raw[StatusOffsets.MEDIA_LENGTH]
    geometry = resolve_geometry(media_type, media_width, media_length) or Geometry(0, 0, 0)

    return PrinterStatus(
        header_ok=raw[:3] == STATUS_HEADER,
        model=_coerce(ModelCode, raw[StatusOffsets.MODEL]),
        media_type=media_type,
        media_width_mm=media_width,
        media_length_mm=media_length,
        error_information_1=ErrorInformation1(raw[StatusOffsets.ERROR_INFORMATION_1]),
        error_information_2=ErrorInformation2(raw[StatusOffsets.ERROR_INFORMATION_2]),
        status_type=_coerce(StatusType, raw[StatusOffsets.STATUS_TYPE]),
        phase_type=_coerce(PhaseType, raw[StatusOffsets.PHASE_TYPE]),
        phase_number=int.from_bytes(
            raw[StatusOffsets.PHASE_NUMBER:StatusOffsets.PHASE_NUMBER + 2], "big"
        ),
        notification=raw[StatusOffsets.NOTIFICATION_NUMBER],
        left_margin=geometry.left,
        printable_dots=geometry.printable,
        right_margin=geometry.right,
        raw=raw,
    )
