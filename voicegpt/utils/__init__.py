# Utils package

from .logging_config import setup_logging, get_logger
from .error_handling import (
    VoiceGPTError,
    DeviceUnavailable,
    ServiceError,
    TranscriptionFailed,
    CompletionFailed,
    SynthesisFailed,
    PlaybackFailed,
    TooShortUtterance,
    ErrorHandler,
    ErrorSeverity,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "VoiceGPTError",
    "DeviceUnavailable",
    "ServiceError",
    "TranscriptionFailed",
    "CompletionFailed",
    "SynthesisFailed",
    "PlaybackFailed",
    "TooShortUtterance",
    "ErrorHandler",
    "ErrorSeverity",
]
