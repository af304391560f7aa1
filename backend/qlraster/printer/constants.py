"""Brother QL printer constants: enums and protocol values."""
from enum import Enum, IntEnum, IntFlag

PRINT_HEAD_PINS = 720
PRINT_DPI = 300
USBID_BROTHER = 0x04F9
LINE_LENGTH_BYTES = 0x5A  # 720 pins / 8
USB_OUT_EP_ID = 0x02
USB_IN_EP_ID = 0x81
USB_INTERFACE = 0
USB_CHUNK_SIZE = 0x40
USB_TRX_TIMEOUT_MS = 10000
STATUS_MESSAGE_LENGTH = 32
STATUS_HEADER = b"\x80\x20\x42"

# Pixels brighter than this are left blank when packing.
PACK_THRESHOLD = 127
DITHER_THRESHOLD = 128
DEFAULT_BRIGHTNESS = 150
DEFAULT_CONTRAST = 80

DEFAULT_MARGIN_DOTS = 35
STATUS_POLL_INTERVAL_S = 0.15
PRINT_TIMEOUT_S = 20.0
STATUS_READ_TIMEOUT_MS = 4000


class SupportedPrinterIDs(IntEnum):
    QL500 = 0x2015
    QL550 = 0x2016
    QL650TD = 0x201B
    QL1050 = 0x2020
    QL560 = 0x2027
    QL570 = 0x2028
    QL580N = 0x2029
    QL1060N = 0x202A
    QL700 = 0x2042


class StatusOffsets(IntEnum):
    MODEL = 4
    ERROR_INFORMATION_1 = 8
    ERROR_INFORMATION_2 = 9
    MEDIA_WIDTH = 10
    MEDIA_TYPE = 11
    MEDIA_LENGTH = 17
    STATUS_TYPE = 18
    PHASE_TYPE = 19
    PHASE_NUMBER = 20
    NOTIFICATION_NUMBER = 22


class ModelCode(IntEnum):
    UNKNOWN = 0x00
    QL500_550 = 0x4F  # 'O'
    QL560 = 0x31      # '1'
    QL570 = 0x32      # '2'
    QL580N = 0x33     # '3'
    QL650TD = 0x51    # 'Q'
    QL700 = 0x35      # '5'
    QL1050 = 0x50     # 'P'
    QL1060N = 0x34    # '4'


class ErrorInformation1(IntFlag):
    NO_MEDIA = 0x01
    END_OF_MEDIA = 0x02  # die-cut only
    CUTTER_JAM = 0x04
    MAIN_UNIT_IN_USE = 0x10
    FAN_FAILURE = 0x80


class ErrorInformation2(IntFlag):
    TRANSMISSION_ERROR = 0x04
    COVER_OPEN = 0x10
    CANNOT_FEED = 0x40
    SYSTEM_ERROR = 0x80


ERROR_MESSAGES_1 = {
    ErrorInformation1.NO_MEDIA: "no media",
    ErrorInformation1.END_OF_MEDIA: "end of media",
    ErrorInformation1.CUTTER_JAM: "cutter jam",
    ErrorInformation1.MAIN_UNIT_IN_USE: "main unit in use",
    ErrorInformation1.FAN_FAILURE: "fan doesn't work",
}

ERROR_MESSAGES_2 = {
    ErrorInformation2.TRANSMISSION_ERROR: "transmission error",
    ErrorInformation2.COVER_OPEN: "cover opened while printing",
    ErrorInformation2.CANNOT_FEED: "cannot feed",
    ErrorInformation2.SYSTEM_ERROR: "system error",
}


class MediaType(IntEnum):
    NO_MEDIA = 0x00
    CONTINUOUS = 0x0A
    DIE_CUT = 0x0B


class Mode(IntFlag):
    AUTO_CUT = 0x40


class AdvancedMode(IntFlag):
    CUT_AT_END = 0x08


class StatusType(IntEnum):
    REPLY_TO_STATUS_REQUEST = 0x00
    PRINTING_COMPLETED = 0x01
    ERROR_OCCURRED = 0x02
    TURNED_OFF = 0x04
    NOTIFICATION = 0x05
    PHASE_CHANGE = 0x06


class PhaseType(IntEnum):
    WAITING_TO_RECEIVE = 0x00
    PRINTING = 0x01


class JobState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    CONFIGURING_MODE = "configuring_mode"
    STREAMING_DATA = "streaming_data"
    AWAITING_COMPLETION = "awaiting_completion"
    COMPLETED = "completed"
    FAILED = "failed"
