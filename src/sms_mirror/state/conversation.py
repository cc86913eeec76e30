"""A conversation with a single phone number."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from ..api.models import Message, MessageDirection, MessageStatus
from ..api.uri import strip_number
from ..utils.config import Config
from ..utils.timefmt import format_time_short, now_ms
from .cache import Cache
from .threads import THREAD_BREAK_MS, ThreadBuilder, ThreadItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversationSummary:
    """One row of the conversation list."""

    address: str
    thread_id: int
    body: str
    time: str
    unread: bool


def summarize(message: Message, now: int | None = None) -> ConversationSummary:
    """Summarize a conversation by its most recent message."""
    return ConversationSummary(
        address=message.address,
        thread_id=message.thread_id,
        body=message.body,
        time=format_time_short(message.date, now),
        unread=message.is_unread,
    )


def summarize_threads(messages: Iterable[Message], now: int | None = None) -> list[ConversationSummary]:
    """Summarize thread heads (eg. from Cache.get_threads), newest first."""
    ordered = sorted(messages, key=lambda m: m.date, reverse=True)
    return [summarize(m, now) for m in ordered]


class Conversation:
    """
    The message log of a conversation, grouped into visual threads.

    Messages logged locally (received or sent while the window is open) get
    ids following the last known message, as the phone assigns them in
    order.
    """

    def __init__(
        self,
        number: str,
        config: Config | None = None,
        now: int | None = None,
    ) -> None:
        self.number = number
        self.messages: list[Message] = []
        self.message_id = 0
        self.thread_id = 0
        threshold = config.thread_break_ms if config else THREAD_BREAK_MS
        self._builder = ThreadBuilder(threshold=threshold, now=now)

    @classmethod
    def from_cache(
        cls,
        cache: Cache,
        number: str,
        config: Config | None = None,
        now: int | None = None,
    ) -> Conversation:
        """Create a conversation populated with the cached messages for number."""
        conversation = cls(number, config=config, now=now)
        conversation.populate(cache.get_conversation(conversation.stripped_number))
        return conversation

    @property
    def stripped_number(self) -> str:
        return strip_number(self.number)

    @property
    def items(self) -> list[ThreadItem]:
        """Threads and separators, in display order."""
        return self._builder.items

    def populate(self, messages: Iterable[Message]) -> None:
        """Replace the log with messages, sorted by date."""
        self.messages = sorted(messages, key=lambda m: (m.date, m.id))
        self._builder.reset()
        self._builder.extend(self.messages)

        if self.messages:
            last = self.messages[-1]
            self.thread_id = last.thread_id
            self.message_id = max(m.id for m in self.messages)
        logger.debug(
            "Populated conversation %s with %d messages in %d threads",
            self.number, len(self.messages), len(self._builder.threads),
        )

    def add(self, message: Message) -> list[ThreadItem]:
        """Log a message and return the threads/separators it created."""
        self.messages.append(message)
        self.message_id = max(self.message_id, message.id)
        if message.thread_id:
            self.thread_id = message.thread_id
        return self._builder.add(message)

    def _log(
        self,
        body: str,
        direction: MessageDirection,
        status: MessageStatus,
        date: int | None,
    ) -> list[ThreadItem]:
        message = Message(
            id=self.message_id + 1,
            thread_id=self.thread_id,
            address=self.number,
            body=body,
            date=now_ms() if date is None else date,
            direction=direction,
            status=status,
        )
        return self.add(message)

    def receive(self, body: str, date: int | None = None) -> list[ThreadItem]:
        """Log an incoming message that has not been read yet."""
        return self._log(body, MessageDirection.IN, MessageStatus.UNREAD, date)

    def send(self, body: str, date: int | None = None) -> list[ThreadItem]:
        """Log an outgoing message."""
        return self._log(body, MessageDirection.OUT, MessageStatus.READ, date)

    def summary(self, now: int | None = None) -> ConversationSummary | None:
        """Summarize the conversation by its latest message."""
        if not self.messages:
            return None
        return summarize(self.messages[-1], now)
