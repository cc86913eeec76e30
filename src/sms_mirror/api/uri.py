"""Parsing for sms: URIs (RFC 5724) and tel: style phone numbers.

The digit grammar is deliberately lenient: it accepts characters from
global-number and local-number (without phone-context) plus single spaces,
so numbers can be passed straight from an address book without
pre-processing. URIs coming from a file chooser always look like
``sms:///...``, so up to three slashes are allowed after the scheme.
"""

from __future__ import annotations

import logging
import string
from typing import Any
from urllib.parse import quote, unquote

from pydantic import BaseModel, ConfigDict, field_validator

logger = logging.getLogger(__name__)

SCHEME = "sms:"

_HEX = frozenset(string.hexdigits)
_DIGIT_CHARS = frozenset("0123456789ABCDEFabcdef*#().-")
_PARAM_KEY_CHARS = frozenset(string.ascii_letters + string.digits + "-")
_PARAM_VALUE_CHARS = frozenset(
    string.ascii_letters + string.digits + "_[]/:&+$.!~*'()-"
)
_QUERY_CHARS = frozenset(string.ascii_letters + string.digits + "_.!~*'()-")

# Escapes understood inside a digit token
_DIGIT_ESCAPES = {"%20": " ", "%23": "#"}

# Characters left alone when escaping a body; everything else becomes %XX
_BODY_SAFE = "_.!~*'()-"


class SmsUriError(ValueError):
    """Base exception for sms: URI and phone number parsing errors."""

    def __init__(self, message: str, text: str | None = None):
        super().__init__(message)
        self.text = text


class MalformedAddress(SmsUriError):
    """A phone number token does not match the digit grammar."""
    pass


class MalformedUri(SmsUriError):
    """The URI is not a well-formed sms: URI."""
    pass


class DuplicateField(SmsUriError):
    """A query field that may appear once was repeated."""
    pass


def strip_number(address: str) -> str:
    """Remove every non-digit character from an address."""
    return "".join(c for c in address if c in string.digits)


def _escape_digits(digits: str) -> str:
    return digits.replace(" ", "%20").replace("#", "%23")


class NumberAddress(BaseModel):
    """A phone number with an optional phone-context prefix."""

    model_config = ConfigDict(frozen=True)

    digits: str
    context_prefix: str | None = None

    @field_validator("digits")
    @classmethod
    def check_digits(cls, v: str) -> str:
        """Digits must be a decoded token of the digit grammar."""
        decoded, end = _scan_digits(v, 0)
        if end != len(v) or decoded != v:
            raise ValueError(f"invalid phone number {v!r}")
        return v

    @field_validator("context_prefix")
    @classmethod
    def check_context_prefix(cls, v: str | None) -> str | None:
        """Only international (+) contexts are kept."""
        if v is None:
            return v
        if not v.startswith("+"):
            raise ValueError("phone-context prefix must start with '+'")
        if _scan_param_value(v, 0) != len(v):
            raise ValueError(f"invalid phone-context prefix {v!r}")
        return v

    @property
    def address(self) -> str:
        """The canonical address, with the context prefix applied."""
        if self.context_prefix:
            return self.context_prefix + self.digits
        return self.digits

    @property
    def stripped(self) -> str:
        """The canonical address reduced to its digits."""
        return strip_number(self.address)

    def to_uri_token(self) -> str:
        """
        Escape the canonical address for use in an sms: URI.

        The address is written as a single digit token when it reads back
        unchanged. Otherwise the context goes in a ``phone-context``
        parameter, eg. ``+5551234;phone-context=+1`` rather than
        ``+1+5551234``.
        """
        token = _escape_digits(self.address)
        try:
            decoded, end = _scan_digits(token, 0)
        except MalformedAddress:
            decoded, end = None, 0
        if end == len(token) and decoded == self.address:
            return token
        return f"{_escape_digits(self.digits)};phone-context={self.context_prefix}"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, NumberAddress):
            return self.address == other.address
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.address)

    def __str__(self) -> str:
        return self.address


class SmsRequest(BaseModel):
    """Recipients and optional body parsed from an sms: URI."""

    recipients: list[NumberAddress]
    body: str | None = None

    @field_validator("recipients")
    @classmethod
    def check_recipients(cls, v: list[NumberAddress]) -> list[NumberAddress]:
        """A request is addressed to at least one number."""
        if not v:
            raise ValueError("at least one recipient is required")
        return v

    @field_validator("body")
    @classmethod
    def empty_body_is_none(cls, v: str | None) -> str | None:
        """An empty body is the same as no body."""
        return v or None

    @property
    def addresses(self) -> list[str]:
        """Canonical addresses of all recipients, in order."""
        return [r.address for r in self.recipients]

    def to_uri(self) -> str:
        """Serialize back to an sms: URI that parse_uri() accepts."""
        uri = SCHEME + ",".join(r.to_uri_token() for r in self.recipients)
        if self.body:
            uri += "?body=" + quote(self.body, safe=_BODY_SAFE)
        return uri

    def __str__(self) -> str:
        return self.to_uri()


def _scan_digits(text: str, pos: int) -> tuple[str, int]:
    """
    Scan a lenient digit run starting at pos.

    Returns (decoded_digits, end_position). The run stops at the first
    character outside the grammar, which the caller must then validate.
    """
    out: list[str] = []
    if pos < len(text) and text[pos] == "+":
        out.append("+")
        pos += 1

    body_start = len(out)
    while pos < len(text):
        c = text[pos]
        if c in _DIGIT_CHARS:
            decoded = c
            pos += 1
        elif c == " ":
            decoded = " "
            pos += 1
        elif c == "%" and text[pos:pos + 3].upper() in _DIGIT_ESCAPES:
            decoded = _DIGIT_ESCAPES[text[pos:pos + 3].upper()]
            pos += 3
        else:
            break

        if decoded == " " and out and out[-1] == " ":
            raise MalformedAddress("double space in phone number", text)
        out.append(decoded)

    digits = "".join(out)
    if not digits[body_start:].strip():
        raise MalformedAddress("phone number has no digits", text)
    return digits, pos


def _scan_param_value(text: str, pos: int) -> int:
    """Return the end of the tel parameter value starting at pos."""
    while pos < len(text):
        c = text[pos]
        if c in _PARAM_VALUE_CHARS:
            pos += 1
        elif c == "%" and len(text) >= pos + 3 and set(text[pos + 1:pos + 3]) <= _HEX:
            pos += 3
        else:
            break
    return pos


def _scan_params(text: str, pos: int) -> tuple[list[tuple[str, str]], int]:
    """Scan zero or more ;key=value tel parameters starting at pos."""
    params: list[tuple[str, str]] = []
    while pos < len(text) and text[pos] == ";":
        pos += 1
        key_start = pos
        while pos < len(text) and text[pos] in _PARAM_KEY_CHARS:
            pos += 1
        key = text[key_start:pos]
        if not key or pos >= len(text) or text[pos] != "=":
            raise MalformedAddress("malformed phone number parameter", text)
        pos += 1

        value_start = pos
        pos = _scan_param_value(text, pos)
        value = text[value_start:pos]
        if not value:
            raise MalformedAddress("empty phone number parameter", text)
        params.append((key, value))
    return params, pos


def parse_number(text: str) -> NumberAddress:
    """
    Parse a single phone number with optional tel: parameters.

    The first ``phone-context`` parameter with an international (``+``)
    value is prepended to the number; every other parameter is ignored.

    Raises:
        MalformedAddress: if the token does not match the digit grammar.
    """
    digits, pos = _scan_digits(text, 0)
    params, pos = _scan_params(text, pos)
    if pos != len(text):
        raise MalformedAddress(f"unexpected character {text[pos]!r} in phone number", text)

    for key, value in params:
        if key == "phone-context" and value.startswith("+"):
            return NumberAddress(digits=digits, context_prefix=value)
    return NumberAddress(digits=digits)


def _parse_query(query: str, text: str) -> str | None:
    """Validate the query of an sms: URI and return the decoded body."""
    body: str | None = None
    seen_body = False

    for field in query.split("&"):
        key, sep, value = field.partition("=")
        if not key or not sep or not set(key) <= _QUERY_CHARS:
            raise MalformedUri(f"malformed query field {field!r}", text)

        i = 0
        while i < len(value):
            if value[i] in _QUERY_CHARS:
                i += 1
            elif value[i] == "%" and len(value) >= i + 3 and set(value[i + 1:i + 3]) <= _HEX:
                i += 3
            else:
                raise MalformedUri(f"invalid character in query field {key!r}", text)

        if key != "body":
            continue
        if seen_body:
            raise DuplicateField('duplicate "body" field', text)
        seen_body = True
        try:
            body = unquote(value, errors="strict") if value else None
        except UnicodeDecodeError as e:
            raise MalformedUri(f"body is not valid UTF-8: {e}", text) from e

    return body


def parse_uri(text: str) -> SmsRequest:
    """
    Parse an sms: URI into its recipients and body.

    Raises:
        MalformedUri: if the scheme, a recipient or the query is malformed,
            or the URI carries a fragment.
        DuplicateField: if the ``body`` field appears more than once.
    """
    logger.debug("Parsing sms URI %r", text)

    if text[:len(SCHEME)].lower() != SCHEME:
        raise MalformedUri("not an sms: URI", text)
    if "#" in text:
        raise MalformedUri("fragments are not allowed in sms: URIs", text)

    rest = text[len(SCHEME):]
    slashes = len(rest) - len(rest.lstrip("/"))
    if slashes > 3:
        raise MalformedUri("too many slashes after scheme", text)
    rest = rest[slashes:]

    recipients_part, sep, query = rest.partition("?")

    recipients = []
    for token in recipients_part.split(","):
        try:
            recipients.append(parse_number(token))
        except MalformedAddress as e:
            raise MalformedUri(f"invalid recipient {token!r}: {e}", text) from e

    body = None
    if sep:
        if not query:
            raise MalformedUri("empty query", text)
        body = _parse_query(query, text)

    return SmsRequest(recipients=recipients, body=body)
