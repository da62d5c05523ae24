import logging

import pytest

from utils.logging_config import SecretMaskingFilter


def masked(message: str, *args) -> str:
    record = logging.LogRecord("test", logging.INFO, __file__, 1, message, args, None)
    SecretMaskingFilter().filter(record)
    return record.getMessage()


class TestSecretMaskingFilter:

    def test_bearer_token(self):
        result = masked("Authorization: Bearer abc.def.ghi")
        assert "abc.def.ghi" not in result
        assert "REDACTED_BEARER_TOKEN" in result

    def test_guest_token(self):
        result = masked("x-guest-token: 0b7c5f0e-1f7a-4c1e-9a53-5c3f2e7d9a10")
        assert "0b7c5f0e" not in result

    def test_email_in_args(self):
        result = masked("Created user %s", "jane@example.com")
        assert "jane@example.com" not in result

    @pytest.mark.parametrize("message", ["Order 42 created", "Cart 7: added product 3 x2"])
    def test_plain_messages_untouched(self, message):
        assert masked(message) == message
