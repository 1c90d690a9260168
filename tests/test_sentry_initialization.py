"""
Tests for Sentry initialization.
"""
from unittest.mock import patch

from practice_app.main import init_sentry


class TestInitSentry:
    @patch("practice_app.main.sentry_sdk.init")
    def test_initializes_with_dsn(self, mock_init):
        result = init_sentry(
            dsn="https://key@sentry.example.com/1",
            traces_sample_rate=0.25,
            environment="production",
            release="1.0.0",
        )

        assert result is True
        mock_init.assert_called_once()
        kwargs = mock_init.call_args.kwargs
        assert kwargs["dsn"] == "https://key@sentry.example.com/1"
        assert kwargs["environment"] == "production"
        assert kwargs["release"] == "1.0.0"
        assert kwargs["traces_sample_rate"] == 0.25
        assert kwargs["send_default_pii"] is False
        assert len(kwargs["integrations"]) == 2

    @patch("practice_app.main.sentry_sdk.init")
    def test_empty_dsn_skips_initialization(self, mock_init):
        assert init_sentry("", 0.1, "development", "1.0.0") is False
        assert init_sentry(None, 0.1, "development", "1.0.0") is False
        mock_init.assert_not_called()

    @patch("practice_app.main.sentry_sdk.init")
    def test_logs_sample_rate(self, mock_init, caplog):
        with caplog.at_level("INFO", logger="practice_app.main"):
            init_sentry("https://key@sentry.example.com/1", 0.1, "staging", "1.0.0")

        assert "Sentry initialized for environment 'staging' with 10% trace sampling" in caplog.text
