"""
Provider Factory
================

Registry for generation clients and script parsers.
"""

import logging
from typing import Dict, List, Type

from .base import GenerationClient, ScriptParser
from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Registries of available implementations
_PROVIDERS: Dict[str, Type[GenerationClient]] = {}
_PARSERS: Dict[str, Type[ScriptParser]] = {}


def register_provider(name: str):
    """Decorator to register a generation client class."""
    def decorator(cls: Type[GenerationClient]):
        _PROVIDERS[name.lower()] = cls
        return cls
    return decorator


def register_parser(name: str):
    """Decorator to register a script parser class."""
    def decorator(cls: Type[ScriptParser]):
        _PARSERS[name.lower()] = cls
        return cls
    return decorator


def _load_builtin(name: str) -> None:
    """Import the module that registers a built-in provider."""
    if name == "google":
        from . import google  # noqa: F401


def get_provider(name: str, **kwargs) -> GenerationClient:
    """
    Get a generation client instance.

    Args:
        name: Provider name (e.g., 'google')
        **kwargs: Provider-specific constructor arguments

    Returns:
        Configured client instance

    Raises:
        ConfigurationError: If the provider name is not recognized
    """
    name_lower = name.lower()
    if name_lower not in _PROVIDERS:
        _load_builtin(name_lower)

    provider_class = _PROVIDERS.get(name_lower)
    if provider_class is None:
        raise ConfigurationError(
            f"Unknown provider: {name}",
            config_key="generation.provider",
        )

    logger.debug(f"Creating generation client: {provider_class.__name__}")
    return provider_class(**kwargs)


def get_parser(name: str, **kwargs) -> ScriptParser:
    """
    Get a script parser instance.

    Raises:
        ConfigurationError: If the parser name is not recognized
    """
    name_lower = name.lower()
    if name_lower not in _PARSERS:
        _load_builtin(name_lower)

    parser_class = _PARSERS.get(name_lower)
    if parser_class is None:
        raise ConfigurationError(
            f"Unknown script parser: {name}",
            config_key="generation.provider",
        )

    logger.debug(f"Creating script parser: {parser_class.__name__}")
    return parser_class(**kwargs)


def list_providers() -> List[str]:
    """List all registered provider names."""
    _load_builtin("google")
    return sorted(_PROVIDERS.keys())
