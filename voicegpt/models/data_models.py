"""
Common data structures for the voice conversation loop.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum


class MessageRole(str, Enum):
    """Enum for message roles."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class AudioFormat(str, Enum):
    """Enum for audio formats."""
    MP3 = "mp3"
    WAV = "wav"
    PCM16 = "pcm16"
    OGG = "ogg"
    FLAC = "flac"
    AAC = "aac"


@dataclass(frozen=True)
class ConversationMessage:
    """A single role-tagged message. Immutable once created."""
    role: MessageRole
    content: str
    timestamp: float = field(default_factory=lambda: datetime.now().timestamp(), compare=False)

    def to_dict(self) -> Dict[str, str]:
        """Convert to the dictionary format completion services expect."""
        return {
            'role': self.role.value,
            'content': self.content
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConversationMessage':
        """Create from dictionary format."""
        return cls(
            role=MessageRole(data['role']),
            content=data.get('content', '')
        )


@dataclass
class AudioOutput:
    """Encoded audio returned by a speech synthesis provider."""
    audio_data: bytes
    format: AudioFormat
    sample_rate: int = 24000
    voice: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def get_size_kb(self) -> float:
        """Get audio data size in kilobytes."""
        return len(self.audio_data) / 1024

    def is_valid(self) -> bool:
        """Check if audio output is valid."""
        return len(self.audio_data) > 0 and self.sample_rate > 0
