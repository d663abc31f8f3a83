"""
Tests for the admin allow-list and log masking.
"""

import logging

import pytest
from brokerbot.core.config import Settings
from brokerbot.core.logging import MaskingFormatter
from brokerbot.core.security import is_admin_phone


def format_message(message: str) -> str:
    record = logging.LogRecord("brokerbot", logging.INFO, __file__, 1, message, None, None)
    return MaskingFormatter("%(message)s").format(record)


class TestAdminAllowList:
    """Exact-match allow-list of admin phones."""

    @pytest.fixture
    def allow_list_settings(self) -> Settings:
        return Settings(
            APP_ENV="development",
            DATABASE_URL="sqlite://",
            ADMIN_PHONE_NUMBERS=" 5511900000001, 5511900000002 ,",
        )

    def test_listed_phone(self, allow_list_settings):
        assert is_admin_phone("5511900000002", allow_list_settings) is True

    def test_unlisted_phone(self, allow_list_settings):
        assert is_admin_phone("5511988887777", allow_list_settings) is False

    def test_no_normalization(self, allow_list_settings):
        assert is_admin_phone("+55 11 90000-0001", allow_list_settings) is False

    def test_empty_allow_list(self):
        empty = Settings(APP_ENV="development", DATABASE_URL="sqlite://", ADMIN_PHONE_NUMBERS="")
        assert empty.admin_phones == frozenset()


class TestLogMasking:
    """Sensitive values never reach log output."""

    def test_phone_in_free_text(self):
        masked = format_message("Message from 5511988887777: intent=qa")
        assert "5511988887777" not in masked
        assert "5511*****77" in masked

    def test_json_fields(self):
        masked = format_message('{"phone": "5511988887777", "senderName": "Bruno", "client-token": "abc"}')
        assert '"phone": "***"' in masked
        assert '"senderName": "***"' in masked
        assert "abc" not in masked

    def test_plain_text_untouched(self):
        assert format_message("Quote flow step=lives status=collecting") == (
            "Quote flow step=lives status=collecting"
        )
