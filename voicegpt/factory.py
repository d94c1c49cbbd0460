"""
Factory for creating provider instances based on configuration.
"""

from typing import Dict, Any

from .interfaces import (
    TranscriptionInterface,
    CompletionInterface,
    TextToSpeechInterface
)
from .providers.transcription import OpenAIWhisperProvider
from .providers.completion import OpenAIChatProvider
from .providers.tts import OpenAITTSProvider


class ProviderFactory:
    """Factory for creating provider instances."""

    # Provider registries
    TRANSCRIPTION_PROVIDERS = {
        'openai_whisper': OpenAIWhisperProvider,
    }

    COMPLETION_PROVIDERS = {
        'openai_chat': OpenAIChatProvider,
    }

    TTS_PROVIDERS = {
        'openai_tts': OpenAITTSProvider,
    }

    @staticmethod
    def _create(registry: Dict[str, type], kind: str, provider_name: str, config: Dict[str, Any]):
        if provider_name not in registry:
            available = ', '.join(registry.keys())
            raise ValueError(f"Unsupported {kind} provider: {provider_name}. Available: {available}")
        provider_class = registry[provider_name]
        return provider_class(config)

    @classmethod
    def create_transcription_provider(cls,
                                      provider_name: str,
                                      config: Dict[str, Any]) -> TranscriptionInterface:
        """
        Create a transcription provider instance.

        Args:
            provider_name: Name of the provider to create
            config: Configuration for the provider

        Returns:
            TranscriptionInterface: Provider instance

        Raises:
            ValueError: If provider name is not supported
        """
        return cls._create(cls.TRANSCRIPTION_PROVIDERS, "transcription", provider_name, config)

    @classmethod
    def create_completion_provider(cls,
                                   provider_name: str,
                                   config: Dict[str, Any]) -> CompletionInterface:
        """Create a completion provider instance."""
        return cls._create(cls.COMPLETION_PROVIDERS, "completion", provider_name, config)

    @classmethod
    def create_tts_provider(cls,
                            provider_name: str,
                            config: Dict[str, Any]) -> TextToSpeechInterface:
        """Create a TTS provider instance."""
        return cls._create(cls.TTS_PROVIDERS, "TTS", provider_name, config)

    @classmethod
    def create_all_providers(cls, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create all providers based on configuration.

        Args:
            config: Full configuration dictionary

        Returns:
            Dictionary containing all provider instances
        """
        providers = {}
        builders = {
            'transcription': cls.create_transcription_provider,
            'completion': cls.create_completion_provider,
            'tts': cls.create_tts_provider,
        }

        for section, builder in builders.items():
            section_config = config.get(section)
            if not section_config:
                continue
            provider_name = section_config.get('provider')
            if provider_name:
                providers[section] = builder(provider_name, section_config.get('config', {}))

        return providers

    @classmethod
    def get_available_providers(cls) -> Dict[str, list]:
        """Get list of available providers for each type."""
        return {
            'transcription': list(cls.TRANSCRIPTION_PROVIDERS.keys()),
            'completion': list(cls.COMPLETION_PROVIDERS.keys()),
            'tts': list(cls.TTS_PROVIDERS.keys()),
        }
