"""Tests for application settings."""

import pytest

from vyaya.config import AppSettings


class TestAppSettings:

    def test_defaults(self):
        settings = AppSettings(_env_file=None)
        assert settings.app_environment == "development"
        assert settings.debug_mode is False
        assert settings.history_page_size == 20
        assert settings.reject_odometer_regression is True

    def test_read_from_environment(self, monkeypatch):
        """Environment and debug flag come from the process environment."""
        monkeypatch.setenv("APP_ENVIRONMENT", "production")
        monkeypatch.setenv("DEBUG_MODE", "true")
        monkeypatch.setenv("CREDIT_TAKEN_LOANS", "true")

        settings = AppSettings(_env_file=None)

        assert settings.app_environment == "production"
        assert settings.debug_mode is True
        assert settings.credit_taken_loans is True

    def test_page_size_bounds(self):
        with pytest.raises(ValueError):
            AppSettings(_env_file=None, history_page_size=0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
