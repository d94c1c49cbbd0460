"""
Pydantic configuration models with validation.
"""

from typing import Optional, Dict, Any, List

from pydantic import BaseModel, Field, field_validator, model_validator


class VADSettings(BaseModel):
    """Voice activity detection configuration."""
    silence_threshold_db: float = Field(-25.0, le=0.0, description="Speech/silence boundary in dB")
    silence_timeout_ms: int = Field(1500, gt=0, description="Silence that ends an utterance")
    min_speech_duration_ms: int = Field(500, gt=0, description="Shortest speech that counts")
    poll_interval_ms: int = Field(100, ge=50, le=250, description="Sampling cadence")


class CaptureSettings(BaseModel):
    """Microphone capture configuration."""
    sample_rate: int = Field(16000, ge=8000, le=48000, description="Audio sample rate")
    channels: int = Field(1, ge=1, le=2, description="Input channels")
    blocksize: int = Field(1600, ge=128, le=16000, description="Frames per callback")
    device_index: Optional[int] = Field(None, description="Audio input device index")
    latency: Optional[str] = Field(None, description="sounddevice latency hint")

    @field_validator('latency')
    @classmethod
    def validate_latency(cls, v):
        if v is not None and v not in ('low', 'high'):
            raise ValueError("latency must be 'low', 'high' or unset")
        return v


class PlaybackSettings(BaseModel):
    """Output player configuration."""
    player_command: List[str] = Field(
        default_factory=lambda: ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet"],
        description="Player argv; audio is piped to stdin"
    )
    timeout: float = Field(120.0, gt=0, description="Longest reply playback in seconds")

    @field_validator('player_command')
    @classmethod
    def validate_player_command(cls, v):
        if not v:
            raise ValueError("player_command must name a program")
        return v


class ProviderSettings(BaseModel):
    """One external service selection."""
    provider: str = Field(..., description="Registered provider name")
    config: Dict[str, Any] = Field(default_factory=dict)


class ConversationSettings(BaseModel):
    """Conversation flow configuration."""
    system_prompt: str = Field("You are a helpful assistant.", description="Seed system message")
    greeting: str = Field("Hello, how can I help you?", description="Spoken on the first interaction")
    min_utterance_bytes: int = Field(5000, ge=0, description="Shorter payloads are treated as noise")


class FrameworkConfig(BaseModel):
    """Complete framework configuration."""
    transcription: ProviderSettings
    completion: ProviderSettings
    tts: ProviderSettings
    vad: VADSettings = Field(default_factory=VADSettings)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    playback: PlaybackSettings = Field(default_factory=PlaybackSettings)
    conversation: ConversationSettings = Field(default_factory=ConversationSettings)
    debug: bool = False

    @model_validator(mode='after')
    def validate_api_keys(self):
        """OpenAI-backed providers need a credential."""
        errors = []
        for name in ('transcription', 'completion', 'tts'):
            section: ProviderSettings = getattr(self, name)
            if section.provider.startswith('openai') and not section.config.get('api_key'):
                errors.append(f"{name}: OpenAI API key required")

        if errors:
            raise ValueError('; '.join(errors))

        return self


def validate_config(config: Dict[str, Any]) -> FrameworkConfig:
    """
    Validate an assembled configuration dictionary.

    Raises:
        pydantic.ValidationError: If the configuration is invalid
    """
    return FrameworkConfig(**config)
