"""Tests for phone normalization and chat-id helpers."""

import pytest

from inboxly.domain.phone import is_group_chat_id, normalize_phone, phone_from_chat_id


class TestNormalizePhone:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("+7 (701) 123-45-67", "77011234567"),
            ("87011234567", "77011234567"),
            ("7011234567", "77011234567"),
            ("77011234567", "77011234567"),
            ("+1 202 555 0143", "12025550143"),
            ("", ""),
            (None, ""),
            ("abc", ""),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_phone(raw) == expected

    def test_formatting_variants_collide(self):
        variants = ["+7 701 123 45 67", "8 (701) 123-45-67", "701-123-45-67"]
        assert {normalize_phone(v) for v in variants} == {"77011234567"}

    def test_idempotent(self):
        once = normalize_phone("8 701 123 45 67")
        assert normalize_phone(once) == once

    def test_eleven_digits_not_starting_with_8_unchanged(self):
        assert normalize_phone("97011234567") == "97011234567"


class TestChatIds:
    def test_strips_individual_suffixes(self):
        assert phone_from_chat_id("77011234567@c.us") == "77011234567"
        assert phone_from_chat_id("77011234567@s.whatsapp.net") == "77011234567"

    def test_strips_group_suffix(self):
        assert phone_from_chat_id("120363025@g.us") == "120363025"

    def test_plain_id_unchanged(self):
        assert phone_from_chat_id("77011234567") == "77011234567"

    def test_is_group(self):
        assert is_group_chat_id("120363025@g.us")
        assert not is_group_chat_id("77011234567@c.us")
