"""Unit tests for optional API key authentication."""

from unittest.mock import patch

import pytest

from app.core.auth import parse_api_keys, resolve_api_key, resolve_user_id
from app.core.errors import AuthenticationAppError


class TestParseAPIKeys:
    """Test parsing of user_id:key pairs."""

    def test_parse_single_pair(self) -> None:
        assert parse_api_keys("alice:secret") == {"secret": "alice"}

    def test_parse_multiple_pairs(self) -> None:
        result = parse_api_keys("alice:k1,bob:k2,carol:k3")
        assert result == {"k1": "alice", "k2": "bob", "k3": "carol"}

    def test_parse_pairs_with_whitespace(self) -> None:
        result = parse_api_keys(" alice : k1 ,  bob:k2 ")
        assert result == {"k1": "alice", "k2": "bob"}

    def test_key_may_contain_colon(self) -> None:
        assert parse_api_keys("alice:sk:live:1") == {"sk:live:1": "alice"}

    @pytest.mark.parametrize("raw", [None, "", "   ,  ,  "])
    def test_empty_config_returns_empty_map(self, raw) -> None:
        assert parse_api_keys(raw) == {}

    def test_malformed_entries_are_skipped(self) -> None:
        result = parse_api_keys("no-colon,:missing-user,missing-key:,alice:ok")
        assert result == {"ok": "alice"}


class TestResolveAPIKey:
    @patch("app.core.auth.settings")
    def test_known_key_returns_user(self, mock_settings) -> None:
        mock_settings.app.api_keys = "alice:k1,bob:k2"

        assert resolve_api_key("k1") == "alice"
        assert resolve_api_key("k2") == "bob"

    @patch("app.core.auth.settings")
    def test_unknown_key_raises(self, mock_settings) -> None:
        mock_settings.app.api_keys = "alice:k1"

        with pytest.raises(AuthenticationAppError) as exc_info:
            resolve_api_key("k2")

        assert exc_info.value.code == "invalid_api_key"

    @patch("app.core.auth.settings")
    def test_no_keys_configured_rejects_every_key(self, mock_settings) -> None:
        mock_settings.app.api_keys = None

        with pytest.raises(AuthenticationAppError):
            resolve_api_key("anything")


class TestResolveUserIdDependency:
    @pytest.mark.asyncio
    async def test_missing_header_is_anonymous(self) -> None:
        assert await resolve_user_id(x_api_key=None) is None
        assert await resolve_user_id(x_api_key="") is None

    @pytest.mark.asyncio
    @patch("app.core.auth.settings")
    async def test_valid_key_resolves_user(self, mock_settings) -> None:
        mock_settings.app.api_keys = "alice:k1"

        assert await resolve_user_id(x_api_key="k1") == "alice"

    @pytest.mark.asyncio
    @patch("app.core.auth.settings")
    async def test_invalid_key_raises(self, mock_settings) -> None:
        mock_settings.app.api_keys = "alice:k1"

        with pytest.raises(AuthenticationAppError):
            await resolve_user_id(x_api_key="wrong")
