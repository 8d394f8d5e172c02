"""Application configuration management."""

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

from storyboard.core.base_adapter import ProviderConfig
from storyboard.providers.dashscope import (
    DEFAULT_ENDPOINT,
    DEFAULT_MODEL as DASHSCOPE_DEFAULT_MODEL,
    DEFAULT_TASK_ENDPOINT,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    These settings are automatically loaded from the .env file or environment variables.
    All sensitive data (API keys) should be stored in environment variables, not hardcoded.

    Attributes:
        dashscope_api_key: DashScope API key (dashscope and dashscope_async providers)
        replicate_token: Replicate API token (replicate provider)
        huggingface_token: HuggingFace API token (optional, enables image descriptions)
        image_provider: Which adapter generates images
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        request_timeout: Per-call network deadline in seconds
        poll_max_attempts: Status queries before a task times out
        poll_interval_ms: Delay between status queries
    """

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore'
    )

    # API Keys
    dashscope_api_key: str = ""
    replicate_token: Optional[str] = None
    huggingface_token: Optional[str] = None

    # Provider Configuration
    image_provider: str = "dashscope"
    dashscope_endpoint: str = DEFAULT_ENDPOINT
    dashscope_task_endpoint: str = DEFAULT_TASK_ENDPOINT
    dashscope_model: str = DASHSCOPE_DEFAULT_MODEL
    replicate_model: str = "qwen/qwen-image-edit"
    describe_model: str = "Salesforce/blip-image-captioning-large"
    watermark: bool = False

    # Application Settings
    log_level: str = "INFO"
    request_timeout: int = 60
    poll_max_attempts: int = 60
    poll_interval_ms: int = 2000
    cors_origins: list[str] = ["*"]
    host: str = "0.0.0.0"
    port: int = 8000

    # Testing
    run_integration_tests: bool = False

    def validate_required_keys(self) -> None:
        """Validate that the selected provider has its credential.

        Raises:
            ValueError: If the provider is unknown or its API key is missing
        """
        provider = self.image_provider.lower()

        if provider in ("dashscope", "dashscope_async"):
            if not self.dashscope_api_key:
                raise ValueError(
                    "DASHSCOPE_API_KEY is required when using the DashScope provider. "
                    "Please set it in your .env file or environment variables."
                )
        elif provider == "replicate":
            if not self.replicate_token:
                raise ValueError(
                    "REPLICATE_TOKEN is required when using the Replicate provider. "
                    "Please set it in your .env file or environment variables. "
                    "Get your token from: https://replicate.com/account/api-tokens"
                )
        else:
            raise ValueError(
                f"Unsupported IMAGE_PROVIDER: '{self.image_provider}'. "
                "Supported providers: dashscope, dashscope_async, replicate"
            )

        if self.poll_max_attempts < 1:
            raise ValueError("POLL_MAX_ATTEMPTS must be at least 1")

    def provider_config(self) -> ProviderConfig:
        """Build the immutable adapter configuration for the selected provider.

        Returns:
            ProviderConfig for the adapter named by image_provider
        """
        if self.image_provider.lower() == "replicate":
            api_key = self.replicate_token or ""
            model = self.replicate_model
        else:
            api_key = self.dashscope_api_key
            model = self.dashscope_model

        return ProviderConfig(
            api_key=api_key,
            model=model,
            endpoint=self.dashscope_endpoint,
            task_endpoint=self.dashscope_task_endpoint,
            timeout=float(self.request_timeout),
            poll_max_attempts=self.poll_max_attempts,
            poll_interval_ms=self.poll_interval_ms,
            watermark=self.watermark
        )


# Global settings instance
settings = Settings()
