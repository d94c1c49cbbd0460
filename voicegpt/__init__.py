"""
VoiceGPT - hands-free voice conversation loop.

This package provides:
- Amplitude-based voice activity detection with barge-in
- Microphone capture and interruptible playback
- Speech-to-text, chat completion and text-to-speech providers (OpenAI)
- A conversation orchestrator tying them into one self-healing loop

Usage:
    from voicegpt import ConversationOrchestrator, get_framework_config

    config = get_framework_config()
    async with ConversationOrchestrator(config, on_error=print) as orchestrator:
        await orchestrator.start_interaction()
"""

from .orchestrator import ConversationOrchestrator
from .factory import ProviderFactory
from .config import get_framework_config
from .utils.state_machine import InteractionState
from . import interfaces
from . import models
from . import providers

__version__ = "1.0.0"

__all__ = [
    'ConversationOrchestrator',
    'ProviderFactory',
    'get_framework_config',
    'InteractionState',
    'interfaces',
    'models',
    'providers'
]
