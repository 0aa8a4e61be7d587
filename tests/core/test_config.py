"""Tests for application configuration."""
import pytest
from pydantic import ValidationError

from core.config import Settings, SyncStrategy

SUPABASE_URL = "https://test-project.supabase.co"


class TestSupabaseSettings:
    """Tests for backend connection settings."""

    def test_required_values_missing_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Startup fails when the project URL or anon key is not configured."""
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)
        monkeypatch.delenv("NEXT_PUBLIC_SUPABASE_URL", raising=False)
        monkeypatch.delenv("NEXT_PUBLIC_SUPABASE_ANON_KEY", raising=False)

        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    def test_public_prefixed_names_accepted(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """NEXT_PUBLIC_ variable names are accepted for both values."""
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_ANON_KEY", raising=False)
        monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_URL", "https://public.supabase.co")
        monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_ANON_KEY", "public-anon-key")

        settings = Settings(_env_file=None)

        assert settings.supabase_url == "https://public.supabase.co"
        assert settings.supabase_anon_key == "public-anon-key"

    def test_auth_health_url(self) -> None:
        """The health URL is built from the project URL without a double slash."""
        settings = Settings(
            _env_file=None,
            supabase_url=SUPABASE_URL + "/",
            supabase_anon_key="anon-key",
        )
        assert settings.supabase_auth_health_url == f"{SUPABASE_URL}/auth/v1/health"


class TestFeedSettings:
    """Tests for feed synchronization settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Push is the default strategy with a 3 second poll fallback interval."""
        monkeypatch.delenv("SUBMIT_SETTLE_DELAY_SECONDS", raising=False)
        settings = Settings(_env_file=None, supabase_url=SUPABASE_URL, supabase_anon_key="k")

        assert settings.sync_strategy == SyncStrategy.PUSH
        assert settings.poll_interval_seconds == 3.0
        assert settings.reconnect_base_delay_seconds == 1.0
        assert settings.reconnect_max_delay_seconds == 30.0
        assert settings.submit_settle_delay_seconds == 0.1
        assert settings.oauth_provider == "google"
        assert settings.cookie_secure is True

    def test_poll_strategy_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """SYNC_STRATEGY selects the poll strategy."""
        monkeypatch.setenv("SYNC_STRATEGY", "poll")
        monkeypatch.setenv("POLL_INTERVAL_SECONDS", "5")

        settings = Settings(_env_file=None, supabase_url=SUPABASE_URL, supabase_anon_key="k")

        assert settings.sync_strategy == SyncStrategy.POLL
        assert settings.poll_interval_seconds == 5.0

    @pytest.mark.parametrize("name", ["SYNC_STRATEGY", "POLL_INTERVAL_SECONDS"])
    def test_invalid_values_rejected(self, name: str) -> None:
        """Unknown strategies and non-positive intervals are rejected."""
        values = {"SYNC_STRATEGY": "websocket", "POLL_INTERVAL_SECONDS": "0"}
        with pytest.raises(ValidationError):
            Settings(
                _env_file=None,
                supabase_url=SUPABASE_URL,
                supabase_anon_key="k",
                **{name: values[name]},
            )


class TestCorsOriginsParsing:
    """Tests for CORS origins parsing from environment variables."""

    def test_parse_multiple_origins_with_whitespace(self) -> None:
        """Comma-separated origins are split and stripped."""
        settings = Settings(
            _env_file=None,
            supabase_url=SUPABASE_URL,
            supabase_anon_key="k",
            CORS_ORIGINS="  http://localhost:3000 , https://example.com,",
        )
        assert settings.cors_origins == ["http://localhost:3000", "https://example.com"]

    def test_parse_empty_string(self) -> None:
        """Empty string results in empty list."""
        settings = Settings(
            _env_file=None,
            supabase_url=SUPABASE_URL,
            supabase_anon_key="k",
            CORS_ORIGINS="",
        )
        assert settings.cors_origins == []
