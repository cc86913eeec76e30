"""Message records and sms: URI parsing."""

from .models import Message, MessageDirection, MessageStatus
from .uri import (
    DuplicateField,
    MalformedAddress,
    MalformedUri,
    NumberAddress,
    SmsRequest,
    SmsUriError,
    parse_number,
    parse_uri,
)

__all__ = [
    "Message",
    "MessageDirection",
    "MessageStatus",
    "NumberAddress",
    "SmsRequest",
    "SmsUriError",
    "MalformedAddress",
    "MalformedUri",
    "DuplicateField",
    "parse_number",
    "parse_uri",
]
