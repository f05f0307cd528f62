"""
AI Provider Factory - Creates the appropriate AI provider based on configuration
"""

import importlib
import logging
from typing import Any, Dict, Optional

from .base import AIProvider

logger = logging.getLogger(__name__)

# Registry of available providers
PROVIDERS = {
    "claude": "applyops.ai.claude.ClaudeProvider",
    "gemini": "applyops.ai.gemini_provider.GeminiProvider",
}

DEFAULT_PROVIDER = "gemini"


def get_provider(config: Optional[Dict[str, Any]] = None) -> AIProvider:
    """
    Get the configured AI provider instance.

    Reads the 'ai.provider' setting and instantiates the matching class.

    Args:
        config: Configuration dict (as returned by Config.to_dict()).
            Defaults to the process-wide configuration.

    Raises:
        ValueError: If the provider is unknown or its API key is missing
        ImportError: If the provider's package is not installed

    Example:
        >>> provider = get_provider({'ai': {'provider': 'claude'}})
        >>> provider.provider_name
        'claude'
    """
    if config is None:
        from applyops.config import get_config

        config = get_config().to_dict()

    ai_config = config.get("ai", {})
    provider_name = (ai_config.get("provider") or DEFAULT_PROVIDER).lower()

    if provider_name not in PROVIDERS:
        available = ", ".join(PROVIDERS.keys())
        raise ValueError(
            f"Unknown AI provider: '{provider_name}'. " f"Available providers: {available}"
        )

    module_path, class_name = PROVIDERS[provider_name].rsplit(".", 1)

    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        logger.error(f"Failed to import {provider_name} provider: {e}")
        raise ImportError(
            f"Failed to load {provider_name} provider. "
            f"Ensure the required package is installed. Error: {e}"
        )

    provider_class = getattr(module, class_name)
    provider = provider_class(config)
    logger.info(f"Using AI provider {provider.provider_name} ({provider.model_name})")
    return provider
