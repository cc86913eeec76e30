"""Pydantic models for message packets received from the phone."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MessageStatus(int, Enum):
    """
    SMS message status. Matches the 'read' field of the phone's message
    packet.
    """
    UNREAD = 0
    READ = 1


class MessageDirection(int, Enum):
    """
    SMS message direction. Matches the 'type' field of the phone's message
    packet.

    NOTICE is a general message (eg. timestamp, missed call) that is never
    part of a conversation thread.
    """
    NOTICE = 0
    IN = 1
    OUT = 2


class Message(BaseModel):
    """Represents a single SMS message. Immutable once created."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: int = Field(alias="_id")
    thread_id: int = 0
    address: str
    body: str = ""
    date: int
    direction: MessageDirection = Field(alias="type")
    status: MessageStatus = Field(default=MessageStatus.UNREAD, alias="read")
    event: str = "sms"

    @field_validator("body", mode="before")
    @classmethod
    def none_body_is_empty(cls, v: Any) -> str:
        """Some packets (eg. MMS without text) carry no body."""
        if v is None:
            return ""
        return v

    @property
    def date_dt(self) -> datetime:
        """Get date as a local datetime object."""
        # Packets carry milliseconds since epoch
        return datetime.fromtimestamp(self.date / 1000)

    @property
    def is_unread(self) -> bool:
        """Check if the message has not been marked as read."""
        return self.status == MessageStatus.UNREAD

    @property
    def is_notice(self) -> bool:
        """Check if this is a non-conversational notice."""
        return self.direction == MessageDirection.NOTICE
