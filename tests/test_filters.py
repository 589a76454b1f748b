"""Tests for sync filter documents."""

import pytest

from textclient.filters import (
    EventFilter,
    Filter,
    RoomEventFilter,
    build_text_message_filter,
)


class TestTextMessageFilter:
    """Test the default filter for text clients."""

    def test_document(self):
        """The serialized filter matches what the server expects."""
        assert build_text_message_filter().to_dict() == {
            "account_data": {"not_types": ["*"]},
            "room": {
                "account_data": {"not_types": ["*"]},
                "ephemeral": {
                    "not_types": ["m.typing", "m.receipt"],
                    "lazy_load_members": True,
                },
                "state": {
                    "not_types": [
                        "m.room.join_rules",
                        "m.room.guest_access",
                        "m.room.avatar",
                        "m.room.history_visibility",
                        "m.room.power_levels",
                        "im.vector.modular.widgets",
                    ],
                    "lazy_load_members": True,
                },
                "timeline": {"lazy_load_members": True},
            },
            "event_format": "client",
        }

    def test_builds_fresh_instances(self):
        """Callers may modify the result without affecting later calls."""
        first = build_text_message_filter()
        first.room.timeline.limit = 1

        assert build_text_message_filter().room.timeline.limit is None


class TestSerialization:
    """Test to_dict/from_dict."""

    def test_unset_fields_omitted(self):
        """None values are not serialized."""
        assert EventFilter(limit=3).to_dict() == {"limit": 3}
        assert RoomEventFilter(contains_url=False).to_dict() == {"contains_url": False}

    def test_from_server_document(self):
        """A stored filter is parsed and unknown keys are kept."""
        parsed = Filter.from_dict(
            {
                "event_fields": ["type", "content.body"],
                "presence": {"types": ["m.presence"]},
                "room": {
                    "rooms": ["!a:x.y"],
                    "timeline": {"limit": 10, "lazy_load_members": True},
                },
                "org.example.flag": True,
            }
        )

        assert parsed.event_fields == ["type", "content.body"]
        assert parsed.presence.types == ["m.presence"]
        assert parsed.room.rooms == ["!a:x.y"]
        assert parsed.room.timeline.limit == 10
        assert parsed.room.timeline.lazy_load_members is True
        assert parsed.room.state is None
        assert parsed.extra == {"org.example.flag": True}
        assert parsed.to_dict()["org.example.flag"] is True

    def test_rejects_non_object(self):
        """A filter must be a JSON object."""
        with pytest.raises(TypeError):
            Filter.from_dict(["not", "a", "filter"])
