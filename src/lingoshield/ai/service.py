"""
AI Provider Service Module

This module builds translation providers from configuration:
- Configuration validation
- Model selection (models array first entry, legacy 'model' field)
- Provider construction for built-in and custom providers

For the provider implementations, see ai/providers.py
"""

from typing import Any, Dict, Optional

from lingoshield.ai.providers import (
    PLACEHOLDER_API_KEY,
    EchoProvider,
    OpenAICompatibleProvider,
    TranslationProvider,
)
from lingoshield.config import BUILTIN_PROVIDERS, DEFAULT_SYSTEM_MESSAGE
from lingoshield.exceptions import ConfigurationError
from lingoshield.logger import get_logger

logger = get_logger(__name__)


def _display_name(provider: str) -> str:
    if provider in BUILTIN_PROVIDERS:
        return provider.capitalize()
    return provider.replace('-', ' ').title()


def get_model(provider_config: Dict[str, Any], model_override: Optional[str] = None) -> str:
    """
    Get the model to use for translation.

    Priority:
    1. model_override (if set)
    2. First model from 'models' array
    3. 'model' field (legacy)
    """
    if model_override:
        return model_override
    models = provider_config.get('models', [])
    if isinstance(models, list):
        for model in models:
            if model and isinstance(model, str):
                return model
    return provider_config.get('model', '') or ''


def validate_provider_config(config: Dict[str, Any], provider_override: Optional[str] = None) -> str:
    """
    Validate that the provider configuration is properly set up.

    Args:
        config: Application config dict
        provider_override: Optional provider to validate instead of the default

    Returns:
        The validated provider name

    Raises:
        ConfigurationError: If configuration is invalid or missing, with code and details
    """
    provider = provider_override if provider_override else config.get('ai_provider', 'echo')
    if provider == EchoProvider.name:
        return provider

    provider_config = config.get(provider)
    if not isinstance(provider_config, dict) or not provider_config:
        kind = "AI provider" if provider in BUILTIN_PROVIDERS else "Custom AI provider"
        raise ConfigurationError(
            f"{kind} '{provider}' configuration not found",
            code="ai_config_missing",
            details={"provider": provider},
        )

    api_key = provider_config.get('api_key', '')
    if not api_key or api_key == PLACEHOLDER_API_KEY:
        raise ConfigurationError(
            f"{_display_name(provider)} API key not configured. Please set it in Settings.",
            code="ai_config_missing",
            details={"provider": provider, "missing_field": "api_key"},
        )

    if not get_model(provider_config):
        raise ConfigurationError(
            f"{_display_name(provider)} model not configured",
            code="ai_config_missing",
            details={"provider": provider, "missing_field": "models"},
        )

    if not provider_config.get('api_url'):
        raise ConfigurationError(
            f"{_display_name(provider)} API URL not configured",
            code="ai_config_missing",
            details={"provider": provider, "missing_field": "api_url"},
        )
    return provider


def create_provider(
    config: Dict[str, Any],
    provider_override: Optional[str] = None,
    model_override: Optional[str] = None,
) -> TranslationProvider:
    """
    Build the configured translation provider.

    Raises:
        ConfigurationError: If the provider is not usable
    """
    provider = validate_provider_config(config, provider_override)
    if provider == EchoProvider.name:
        logger.info("Using echo provider (texts are returned unchanged)")
        return EchoProvider()

    provider_config = config[provider]
    translation_config = config.get('translation', {})
    model = get_model(provider_config, model_override)
    logger.info(f"Initialized translation provider: {provider}, model: {model}")
    return OpenAICompatibleProvider(
        name=provider,
        api_key=provider_config['api_key'],
        api_url=provider_config['api_url'],
        model=model,
        timeout=provider_config.get('timeout', 120),
        system_message=translation_config.get('system_message') or DEFAULT_SYSTEM_MESSAGE,
    )
