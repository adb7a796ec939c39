"""
Unit tests for settings parsing.
"""

import pytest
from pydantic import ValidationError

from app.core.config import ConfigValidator, EnvironmentEnum, Settings


class TestSettings:
    def test_environment_aliases(self):
        assert Settings(environment="dev").environment == EnvironmentEnum.development
        assert Settings(environment="prod").environment == EnvironmentEnum.production
        assert Settings(environment="test").environment == EnvironmentEnum.testing

    def test_comma_separated_lists(self):
        config = Settings(
            allowed_origins="http://a.test, http://b.test,",
            allowed_avatar_types="image/png,image/gif",
        )

        assert config.allowed_origins_list == ["http://a.test", "http://b.test"]
        assert config.allowed_avatar_types_list == ["image/png", "image/gif"]

    def test_frontend_url_trailing_slash_removed(self):
        assert Settings(frontend_url="http://app.test/").frontend_url == "http://app.test"

    def test_avatar_size_ceiling(self):
        with pytest.raises(ValidationError):
            Settings(max_avatar_size=50 * 1024 * 1024)

    def test_history_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(ai_history_limit=0)

    def test_rate_limit_defaults(self):
        config = Settings()

        assert config.rate_limit_auth == "15/15 minutes"
        assert config.rate_limit_strict == "3/hour"
        assert config.max_login_attempts == 5
        assert config.lock_time_minutes == 120

    def test_feature_status(self):
        status = ConfigValidator.get_feature_status()

        assert {"ai_enabled", "gemini", "deepseek", "email_enabled", "google_oauth"} <= set(status)
