"""Factory for creating provider adapters by name."""

import logging
from typing import Dict, Type

from storyboard.core.base_adapter import BaseAdapter, ProviderConfig
from storyboard.providers.dashscope import DashScopeAdapter, DashScopeTaskAdapter
from storyboard.providers.replicate import ReplicateAdapter

logger = logging.getLogger(__name__)


class AdapterFactory:
    """Factory class for creating adapter instances.

    The adapter (and therefore the protocol variant) is picked once from
    configuration at startup; request handling never branches on it.
    Additional providers can be added with :meth:`register`.
    """

    _registry: Dict[str, Type[BaseAdapter]] = {
        "dashscope": DashScopeAdapter,
        "dashscope_async": DashScopeTaskAdapter,
        "replicate": ReplicateAdapter,
    }

    @classmethod
    def create_adapter(cls, provider: str, config: ProviderConfig) -> BaseAdapter:
        """Create an adapter instance.

        Args:
            provider: Provider name (e.g., "dashscope", "dashscope_async", "replicate")
            config: Provider configuration

        Returns:
            An instance of the requested adapter

        Raises:
            ValueError: If the provider is not supported or the API key is missing
        """
        provider_lower = provider.lower()
        adapter_class = cls._registry.get(provider_lower)
        if adapter_class is None:
            supported = ", ".join(cls.get_supported_providers())
            raise ValueError(
                f"Unsupported image provider: '{provider}'. "
                f"Supported providers: {supported}"
            )

        logger.info(f"Creating {provider_lower} adapter ({adapter_class.protocol})")
        return adapter_class(config)

    @classmethod
    def register(cls, provider: str, adapter_class: Type[BaseAdapter]) -> None:
        """Register an adapter class under a provider name.

        Args:
            provider: Provider name (lowercase, no spaces)
            adapter_class: BaseAdapter subclass

        Raises:
            ValueError: If the name is invalid
            TypeError: If adapter_class is not a BaseAdapter subclass
        """
        if not provider or not provider.islower() or " " in provider:
            raise ValueError(f"Provider name must be lowercase with no spaces: '{provider}'")
        if not (isinstance(adapter_class, type) and issubclass(adapter_class, BaseAdapter)):
            raise TypeError(f"{adapter_class!r} is not a BaseAdapter subclass")

        cls._registry[provider] = adapter_class
        logger.info(f"Registered adapter '{provider}': {adapter_class.__name__}")

    @classmethod
    def get_supported_providers(cls) -> list[str]:
        """Get list of supported provider names."""
        return sorted(cls._registry)

    @classmethod
    def is_supported(cls, provider: str) -> bool:
        """Check if a provider name is supported.

        Args:
            provider: The provider name to check

        Returns:
            True if supported, False otherwise
        """
        return provider.lower() in cls._registry
