"""Unit tests for configuration management."""

import pytest
import os
from unittest.mock import patch


class TestSettings:
    """Tests for Settings configuration."""

    def test_default_values(self):
        """Test that default values are set correctly."""
        from app.config import Settings

        with patch.dict(os.environ, {"DASHSCOPE_API_KEY": "sk-test"}, clear=True):
            settings = Settings(_env_file=None)

            assert settings.dashscope_api_key == "sk-test"
            assert settings.replicate_token is None
            assert settings.huggingface_token is None
            assert settings.image_provider == "dashscope"
            assert settings.dashscope_model == "qwen-image-edit-plus"
            assert settings.log_level == "INFO"
            assert settings.request_timeout == 60
            assert settings.poll_max_attempts == 60
            assert settings.poll_interval_ms == 2000
            assert settings.watermark is False
            assert settings.run_integration_tests is False

    def test_custom_values(self):
        """Test that custom values can be set via environment variables."""
        from app.config import Settings

        env_vars = {
            "REPLICATE_TOKEN": "r8_custom_token",
            "HUGGINGFACE_TOKEN": "hf_custom_token",
            "IMAGE_PROVIDER": "replicate",
            "LOG_LEVEL": "DEBUG",
            "REQUEST_TIMEOUT": "120",
            "POLL_MAX_ATTEMPTS": "30",
            "POLL_INTERVAL_MS": "500",
            "WATERMARK": "true",
            "RUN_INTEGRATION_TESTS": "true"
        }

        with patch.dict(os.environ, env_vars, clear=True):
            settings = Settings(_env_file=None)

            assert settings.replicate_token == "r8_custom_token"
            assert settings.huggingface_token == "hf_custom_token"
            assert settings.image_provider == "replicate"
            assert settings.log_level == "DEBUG"
            assert settings.request_timeout == 120
            assert settings.poll_max_attempts == 30
            assert settings.poll_interval_ms == 500
            assert settings.watermark is True
            assert settings.run_integration_tests is True

    def test_cors_origins_json(self):
        """Test that list settings are parsed from JSON."""
        from app.config import Settings

        with patch.dict(os.environ, {"CORS_ORIGINS": '["http://localhost:3000"]'}, clear=True):
            settings = Settings(_env_file=None)
            assert settings.cors_origins == ["http://localhost:3000"]

    @pytest.mark.parametrize("provider", ["dashscope", "dashscope_async", "DashScope"])
    def test_validate_dashscope_success(self, provider):
        """Test validation succeeds when the DashScope key is present."""
        from app.config import Settings

        with patch.dict(os.environ, {"DASHSCOPE_API_KEY": "sk-valid", "IMAGE_PROVIDER": provider}, clear=True):
            settings = Settings(_env_file=None)
            settings.validate_required_keys()  # Should not raise

    def test_validate_missing_dashscope_key(self):
        """Test validation fails when the DashScope key is missing."""
        from app.config import Settings

        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

            with pytest.raises(ValueError, match="DASHSCOPE_API_KEY is required"):
                settings.validate_required_keys()

    def test_validate_missing_replicate_token(self):
        """Test validation fails when the Replicate token is missing."""
        from app.config import Settings

        with patch.dict(os.environ, {"IMAGE_PROVIDER": "replicate", "DASHSCOPE_API_KEY": "sk-x"}, clear=True):
            settings = Settings(_env_file=None)

            with pytest.raises(ValueError, match="REPLICATE_TOKEN is required"):
                settings.validate_required_keys()

    def test_validate_unknown_provider(self):
        """Test validation fails for an unknown provider."""
        from app.config import Settings

        with patch.dict(os.environ, {"IMAGE_PROVIDER": "midjourney"}, clear=True):
            settings = Settings(_env_file=None)

            with pytest.raises(ValueError, match="Unsupported IMAGE_PROVIDER"):
                settings.validate_required_keys()

    def test_validate_poll_budget(self):
        """Test validation fails for a zero poll budget."""
        from app.config import Settings

        with patch.dict(os.environ, {"DASHSCOPE_API_KEY": "sk-x", "POLL_MAX_ATTEMPTS": "0"}, clear=True):
            settings = Settings(_env_file=None)

            with pytest.raises(ValueError, match="POLL_MAX_ATTEMPTS"):
                settings.validate_required_keys()

    def test_integer_parsing_failure(self):
        """Test that non-numeric integers fail validation."""
        from app.config import Settings
        from pydantic import ValidationError

        with patch.dict(os.environ, {"REQUEST_TIMEOUT": "soon"}, clear=True):
            with pytest.raises(ValidationError):
                Settings(_env_file=None)


class TestProviderConfig:
    """Tests for Settings.provider_config."""

    def test_dashscope_config(self):
        """Test that DashScope settings flow into ProviderConfig."""
        from app.config import Settings

        env_vars = {
            "DASHSCOPE_API_KEY": "sk-test",
            "DASHSCOPE_ENDPOINT": "https://dashscope.test/generation",
            "REQUEST_TIMEOUT": "30",
            "POLL_MAX_ATTEMPTS": "10",
        }

        with patch.dict(os.environ, env_vars, clear=True):
            config = Settings(_env_file=None).provider_config()

            assert config.api_key == "sk-test"
            assert config.model == "qwen-image-edit-plus"
            assert config.endpoint == "https://dashscope.test/generation"
            assert config.timeout == 30.0
            assert config.poll_max_attempts == 10
            assert config.poll_interval_ms == 2000

    def test_replicate_config(self):
        """Test that the Replicate provider uses its own token and model."""
        from app.config import Settings

        env_vars = {
            "DASHSCOPE_API_KEY": "sk-test",
            "REPLICATE_TOKEN": "r8_test",
            "IMAGE_PROVIDER": "replicate",
            "REPLICATE_MODEL": "owner/model",
        }

        with patch.dict(os.environ, env_vars, clear=True):
            config = Settings(_env_file=None).provider_config()

            assert config.api_key == "r8_test"
            assert config.model == "owner/model"

    def test_config_is_immutable(self):
        """Test that the built config cannot be modified."""
        from app.config import Settings
        from dataclasses import FrozenInstanceError

        with patch.dict(os.environ, {"DASHSCOPE_API_KEY": "sk-test"}, clear=True):
            config = Settings(_env_file=None).provider_config()

            with pytest.raises(FrozenInstanceError):
                config.api_key = "other"
