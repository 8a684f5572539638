"""
Provider registry for language-specific semantic models.

Provides a plugin-based architecture where semantic-model providers
can be registered and looked up by language.
"""

import logging
from typing import Dict, List, Optional, Sequence, Type

from codelpg.core.config import PipelineConfig
from codelpg.core.exceptions import LanguageNotSupportedError
from codelpg.semantic.provider import SemanticModelProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Central registry for semantic-model providers.

    Providers hold per-run state, so the registry hands out a fresh
    instance for every request.
    """

    _providers: Dict[str, Type[SemanticModelProvider]] = {}

    @classmethod
    def register(cls, provider_class: Type[SemanticModelProvider]) -> Type[SemanticModelProvider]:
        """
        Register a provider.

        Can be used as a decorator:
            @ProviderRegistry.register
            class PythonSemanticProvider(SemanticModelProvider):
                ...

        Args:
            provider_class: The provider class to register.

        Returns:
            The registered class (for decorator usage).
        """
        language = provider_class.LANGUAGE
        if language in cls._providers:
            logger.warning(
                f"Overwriting existing provider for {language}: "
                f"{cls._providers[language].__name__} -> {provider_class.__name__}"
            )

        cls._providers[language] = provider_class
        logger.debug(f"Registered provider for {language}: {provider_class.__name__}")
        return provider_class

    @classmethod
    def create(
        cls,
        language: str,
        sources: Sequence[str],
        config: PipelineConfig = None,
    ) -> SemanticModelProvider:
        """
        Create a provider for a language over the given source roots.

        Raises:
            LanguageNotSupportedError: If no provider is registered.
        """
        provider_class = cls._providers.get(language)
        if provider_class is None:
            raise LanguageNotSupportedError(language)
        return provider_class(sources, config)

    @classmethod
    def has_provider(cls, language: str) -> bool:
        """Check if a provider exists for a language."""
        return language in cls._providers

    @classmethod
    def list_languages(cls) -> List[str]:
        """List all languages with registered providers."""
        return list(cls._providers.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registered providers (mainly for testing)."""
        cls._providers.clear()

    @classmethod
    def get_provider_class(cls, language: str) -> Optional[Type[SemanticModelProvider]]:
        """Get the provider class for a language."""
        return cls._providers.get(language)
