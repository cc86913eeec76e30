"""Grouping of conversation messages into visual threads.

A visual thread is a series of sequential messages in one direction,
displayed with a single instance of the sender's avatar. A new thread is
started when the direction changes, and a timestamp separator plus a new
thread when more than an hour passes between messages.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Union

from ..api.models import Message, MessageDirection
from ..utils.timefmt import HOUR_MS, format_time

logger = logging.getLogger(__name__)

THREAD_BREAK_MS = HOUR_MS


@dataclass
class VisualThread:
    """A run of same-direction messages shown as one group of bubbles."""

    direction: MessageDirection
    messages: list[Message] = field(default_factory=list)

    @property
    def last_date(self) -> int:
        """Date of the most recently appended message."""
        return self.messages[-1].date

    def __len__(self) -> int:
        return len(self.messages)


@dataclass(frozen=True)
class Separator:
    """
    A centered timestamp row between threads.

    Emitted before a thread that follows a long gap, and for every NOTICE
    message, which is carried in ``notice``.
    """

    date: int
    label: str
    notice: Message | None = None


ThreadItem = Union[VisualThread, Separator]


class ThreadBuilder:
    """
    Incrementally groups messages, given in ascending date order.

    The builder only ever appends to the newest thread; once a new thread
    or separator is emitted, older items are never touched again.
    """

    def __init__(self, threshold: int = THREAD_BREAK_MS, now: int | None = None) -> None:
        """
        Initialize the builder.

        Args:
            threshold: Gap in milliseconds above which a new thread starts.
            now: Time used to render separator labels. If None, the wall
                clock is read for every label.
        """
        self.threshold = threshold
        self.now = now
        self.items: list[ThreadItem] = []
        self._thread: VisualThread | None = None
        self._last_seen: int | None = None

    @property
    def active_thread(self) -> VisualThread | None:
        """The thread the next message may be appended to."""
        return self._thread

    @property
    def threads(self) -> list[VisualThread]:
        """All threads built so far, without separators."""
        return [item for item in self.items if isinstance(item, VisualThread)]

    def reset(self) -> None:
        """Forget every item and return to the initial state."""
        self.items = []
        self._thread = None
        self._last_seen = None

    def add(self, message: Message) -> list[ThreadItem]:
        """
        Add a message and return the items it created.

        The returned list is empty when the message was appended to the
        active thread; it holds a new thread, a separator, or a separator
        followed by a new thread otherwise.
        """
        if self._last_seen is not None and message.date < self._last_seen:
            logger.debug(
                "Message %d is older than the previous message; grouping may be off",
                message.id,
            )
        self._last_seen = message.date

        if message.direction == MessageDirection.NOTICE:
            self._thread = None
            return self._emit(
                Separator(date=message.date, label=self._label(message.date), notice=message)
            )

        thread = self._thread
        if thread is None or thread.direction != message.direction:
            return self._emit(self._open(message))

        if message.date - thread.last_date > self.threshold:
            separator = Separator(date=message.date, label=self._label(message.date))
            return self._emit(separator, self._open(message))

        thread.messages.append(message)
        return []

    def extend(self, messages: Iterable[Message]) -> list[ThreadItem]:
        """Add several messages and return every item they created."""
        created: list[ThreadItem] = []
        for message in messages:
            created.extend(self.add(message))
        return created

    def _open(self, message: Message) -> VisualThread:
        self._thread = VisualThread(direction=message.direction, messages=[message])
        return self._thread

    def _emit(self, *items: ThreadItem) -> list[ThreadItem]:
        self.items.extend(items)
        return list(items)

    def _label(self, date: int) -> str:
        return format_time(date, self.now)


def build_threads(
    messages: Iterable[Message],
    now: int | None = None,
    threshold: int = THREAD_BREAK_MS,
) -> list[ThreadItem]:
    """
    Group messages into visual threads and separators.

    Messages must be sorted by ascending date; the result depends only on
    their direction and date.
    """
    builder = ThreadBuilder(threshold=threshold, now=now)
    builder.extend(messages)
    return builder.items
