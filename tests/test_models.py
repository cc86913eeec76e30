"""Tests for the message packet models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sms_mirror.api.models import Message, MessageDirection, MessageStatus


class TestModels:
    """Test Pydantic model parsing."""

    def test_message_parsing(self) -> None:
        """Test Message model parsing from a phone packet."""
        data = {
            "_id": 100,
            "thread_id": 7,
            "address": "+15551234",
            "body": "Hello, world!",
            "date": 1718371800000,  # 2024-06-14 13:30:00 UTC
            "type": 1,
            "read": 0,
            "event": "sms",
        }
        message = Message(**data)
        assert message.id == 100
        assert message.thread_id == 7
        assert message.body == "Hello, world!"
        assert message.direction is MessageDirection.IN
        assert message.status is MessageStatus.UNREAD
        assert message.is_unread is True
        assert message.is_notice is False
        assert message.date_dt.year == 2024

    def test_populate_by_name(self) -> None:
        """Fields can be given by name as well as by packet alias."""
        message = Message(
            id=1,
            address="5551234",
            date=0,
            direction=MessageDirection.OUT,
            status=MessageStatus.READ,
        )
        assert message.direction is MessageDirection.OUT
        assert message.is_unread is False
        assert message.event == "sms"

    def test_missing_body(self) -> None:
        """A packet without text gets an empty body."""
        message = Message.model_validate({"_id": 1, "address": "1", "date": 0, "type": 0, "body": None})
        assert message.body == ""
        assert message.is_notice is True

    def test_extra_fields_ignored(self) -> None:
        """Unknown packet fields are dropped."""
        message = Message.model_validate(
            {"_id": 1, "address": "1", "date": 0, "type": 2, "sub_id": 3}
        )
        assert not hasattr(message, "sub_id")

    def test_invalid_direction(self) -> None:
        """Only known directions are accepted."""
        with pytest.raises(ValidationError):
            Message.model_validate({"_id": 1, "address": "1", "date": 0, "type": 7})

    def test_messages_are_immutable(self) -> None:
        """Messages cannot be modified once created."""
        message = Message(id=1, address="1", date=0, direction=MessageDirection.IN)
        with pytest.raises(ValidationError):
            message.body = "changed"

    def test_json_round_trip_uses_packet_names(self) -> None:
        """Serializing by alias gives back the packet field names."""
        message = Message(id=5, thread_id=2, address="1", body="x", date=10, direction=MessageDirection.OUT)
        data = message.model_dump(by_alias=True)
        assert data["_id"] == 5
        assert data["type"] == 2
        assert data["read"] == 0
        assert Message(**data) == message
