"""Maps configured provider names to client implementations."""

from __future__ import annotations

from typing import Dict, Mapping

from .providers.base import ProviderClient
from .providers.gemini_provider import GeminiProvider
from .types import ConfigError

PROVIDER_CLASSES = {
    GeminiProvider.name: GeminiProvider,
}


def default_providers() -> Dict[str, ProviderClient]:
    return {name: provider_cls() for name, provider_cls in PROVIDER_CLASSES.items()}


def get_provider(name: str, providers: Mapping[str, ProviderClient]) -> ProviderClient:
    provider = providers.get(name)
    if provider is None:
        supported = ", ".join(sorted(providers)) or "none"
        raise ConfigError(
            f"no client available for provider '{name}' (supported: {supported})",
            name=name,
            reason=ConfigError.NOT_FOUND,
        )
    return provider
