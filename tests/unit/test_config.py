"""Unit tests for configuration module."""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from src.core.config import Settings, get_settings

REQUIRED_ENV = {"WOOCOMMERCE_REST_API_URL": "https://shop.test/wp-json/wc/v3"}


class TestSettings:
    """Tests for Settings class."""

    def test_settings_loads_from_environment(self) -> None:
        """Test that Settings loads values from environment variables."""
        env_vars = {
            **REQUIRED_ENV,
            "APP_NAME": "test-app",
            "APP_ENV": "testing",
            "DEBUG": "true",
            "PORT": "9000",
            "WOOCOMMERCE_CONSUMER_KEY": "ck_live",
            "STRIPE_SECRET_KEY": "sk_live_abc",
            "CURRENCY": "cad",
            "PAYMENT_CONFIRMATION_TIMEOUT_SECONDS": "5",
        }

        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings()

            assert settings.app_name == "test-app"
            assert settings.app_env == "testing"
            assert settings.debug is True
            assert settings.port == 9000
            assert settings.woocommerce_rest_api_url == "https://shop.test/wp-json/wc/v3"
            assert settings.woocommerce_consumer_key == "ck_live"
            assert settings.currency == "cad"
            assert settings.payment_confirmation_timeout_seconds == 5.0
            assert settings.is_stripe_test_mode is False

    def test_settings_default_values(self) -> None:
        """Test that default values are applied correctly."""
        with patch.dict(os.environ, REQUIRED_ENV, clear=True):
            settings = Settings(_env_file=None)

            assert settings.app_name == "storefront-checkout"
            assert settings.app_env == "development"
            assert settings.debug is False
            assert settings.port == 8080
            assert settings.currency == "usd"
            assert settings.shipping_options_path == "/options/shipping"
            assert settings.state_dir == Path(".storefront-state")
            assert settings.request_timeout_seconds == 15.0
            assert settings.shipping_debounce_seconds == 0.3

    def test_settings_list_properties(self) -> None:
        """Test that comma-separated settings are parsed into lists."""
        env_vars = {
            **REQUIRED_ENV,
            "CORS_ORIGINS": "http://localhost:3000, http://example.com , ",
            "PAYMENT_METHOD_TYPES": "card, klarna,affirm",
        }

        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings()

            assert settings.cors_origins_list == ["http://localhost:3000", "http://example.com"]
            assert settings.payment_method_types_list == ["card", "klarna", "affirm"]

    def test_return_url(self) -> None:
        """Test that the processor return URL joins site URL and thank-you path."""
        env_vars = {**REQUIRED_ENV, "SITE_URL": "https://shop.test/", "THANKYOU_PATH": "/thankyou"}

        with patch.dict(os.environ, env_vars, clear=True):
            assert Settings().return_url == "https://shop.test/thankyou"

    def test_settings_is_production_property(self) -> None:
        """Test the is_production property."""
        with patch.dict(os.environ, {**REQUIRED_ENV, "APP_ENV": "production"}, clear=True):
            assert Settings().is_production is True

        with patch.dict(os.environ, {**REQUIRED_ENV, "APP_ENV": "development"}, clear=True):
            assert Settings().is_production is False

    def test_non_positive_timeout_rejected(self) -> None:
        """Test that timeouts must be positive."""
        with patch.dict(os.environ, {**REQUIRED_ENV, "REQUEST_TIMEOUT_SECONDS": "0"}, clear=True):
            with pytest.raises(ValidationError):
                Settings()

    def test_settings_validation_error_missing_required(self) -> None:
        """Test that validation errors are raised for missing required fields."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValidationError) as exc_info:
                Settings(_env_file=None)

            error_fields = [e["loc"][0] for e in exc_info.value.errors()]
            assert "woocommerce_rest_api_url" in error_fields


class TestGetSettings:
    """Tests for get_settings function."""

    def test_get_settings_returns_cached_singleton(self) -> None:
        """Test that get_settings returns the same cached instance."""
        get_settings.cache_clear()

        settings1 = get_settings()
        settings2 = get_settings()

        assert isinstance(settings1, Settings)
        assert settings1 is settings2

        get_settings.cache_clear()

    def test_get_settings_cache_can_be_cleared(self) -> None:
        """Test that cache can be cleared to reload settings."""
        get_settings.cache_clear()

        settings1 = get_settings()
        get_settings.cache_clear()
        settings2 = get_settings()

        assert settings1 is not settings2

        get_settings.cache_clear()
