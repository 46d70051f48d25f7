"""
AI Module

This module provides translation providers and their configuration.
"""

from lingoshield.ai.providers import EchoProvider, OpenAICompatibleProvider, TranslationProvider
from lingoshield.ai.service import create_provider, validate_provider_config

__all__ = [
    'EchoProvider',
    'OpenAICompatibleProvider',
    'TranslationProvider',
    'create_provider',
    'validate_provider_config',
]
