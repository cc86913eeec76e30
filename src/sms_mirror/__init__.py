"""SMS Mirror - threaded SMS conversations mirrored from a phone."""

__version__ = "0.1.0"

from .api import (
    DuplicateField,
    MalformedAddress,
    MalformedUri,
    Message,
    MessageDirection,
    MessageStatus,
    NumberAddress,
    SmsRequest,
    SmsUriError,
    parse_number,
    parse_uri,
)
from .state.threads import Separator, VisualThread, build_threads
from .utils.links import linkify
from .utils.timefmt import format_time, format_time_short

__all__ = [
    "DuplicateField",
    "MalformedAddress",
    "MalformedUri",
    "Message",
    "MessageDirection",
    "MessageStatus",
    "NumberAddress",
    "Separator",
    "SmsRequest",
    "SmsUriError",
    "VisualThread",
    "build_threads",
    "format_time",
    "format_time_short",
    "linkify",
    "parse_number",
    "parse_uri",
]
