"""
Error taxonomy and structured error reporting.

Provider and device failures are funneled through an ErrorHandler that
records them and forwards each one, once, to the host's error callback.
"""

import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Callable, Dict, Any, List
from datetime import datetime

from .logging_config import get_logger


logger = get_logger("errors")


# =============================================================================
# Exceptions
# =============================================================================

class VoiceGPTError(Exception):
    """Base class for every error raised by voicegpt."""


class DeviceUnavailable(VoiceGPTError):
    """The microphone or output sink could not be opened."""


class ServiceError(VoiceGPTError):
    """An external service call failed."""

    service = "service"

    def __init__(self, status: Optional[int] = None, body: str = "", message: Optional[str] = None):
        self.status = status
        self.body = body
        if message is None:
            status_str = status if status is not None else "no status"
            message = f"{self.service} failed ({status_str}): {body}"
        super().__init__(message)


class TranscriptionFailed(ServiceError):
    service = "Transcription"


class CompletionFailed(ServiceError):
    service = "Completion"


class SynthesisFailed(ServiceError):
    service = "Speech synthesis"


class PlaybackFailed(VoiceGPTError):
    """Output decode/device error during playback."""


class TooShortUtterance(VoiceGPTError):
    """Captured payload is too small to be real speech. Never reported to the host."""

    def __init__(self, size: int, minimum: int):
        self.size = size
        self.minimum = minimum
        super().__init__(f"Utterance payload {size} bytes < {minimum} bytes")


# =============================================================================
# Structured reporting
# =============================================================================

class ErrorSeverity(Enum):
    """Error severity levels."""
    RECOVERABLE = "recoverable"  # Return to listening
    FATAL = "fatal"              # Interaction returns to idle


@dataclass
class ComponentError:
    """Structured error information."""
    component: str
    severity: ErrorSeverity
    exception: Exception
    timestamp: float = field(default_factory=lambda: datetime.now().timestamp())
    traceback_str: Optional[str] = None

    def __post_init__(self):
        if not self.traceback_str and self.exception.__traceback__ is not None:
            self.traceback_str = ''.join(
                traceback.format_exception(
                    type(self.exception),
                    self.exception,
                    self.exception.__traceback__
                )
            )

    @property
    def message(self) -> str:
        return str(self.exception)


ErrorCallback = Callable[[Exception], None]


def classify(error: Exception) -> ErrorSeverity:
    """Map an exception onto the severity the orchestrator acts on."""
    if isinstance(error, DeviceUnavailable):
        return ErrorSeverity.FATAL
    return ErrorSeverity.RECOVERABLE


class ErrorHandler:
    """
    Centralized error reporting.

    Features:
    - Severity classification
    - Single host callback, shielded from its own exceptions
    - Bounded error history
    """

    def __init__(self, callback: Optional[ErrorCallback] = None, max_history: int = 100):
        self._callback = callback
        self._error_log: List[ComponentError] = []
        self._max_history = max_history

    def set_callback(self, callback: Optional[ErrorCallback]) -> None:
        """Register (or clear) the host error callback."""
        self._callback = callback

    def report(self, component: str, error: Exception) -> ComponentError:
        """
        Record an error and forward it to the host.

        Without a host callback the error is only logged.

        Args:
            component: Component the error came from
            error: The exception to report

        Returns:
            The recorded ComponentError
        """
        record = ComponentError(
            component=component,
            severity=classify(error),
            exception=error
        )
        self._error_log.append(record)
        if len(self._error_log) > self._max_history:
            self._error_log.pop(0)

        if record.severity == ErrorSeverity.FATAL:
            logger.error(f"💀 {component}: {error}")
        else:
            logger.warning(f"🔧 {component}: {error} (recovering)")

        if self._callback is None:
            if record.traceback_str:
                logger.debug(record.traceback_str)
            return record

        try:
            self._callback(error)
        except Exception:
            logger.exception("Error callback raised")
        return record

    def get_error_history(self, component: Optional[str] = None) -> List[ComponentError]:
        """
        Get error history, optionally filtered by component.
        """
        if component:
            return [e for e in self._error_log if e.component == component]
        return self._error_log.copy()

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of errors."""
        summary = {
            'total_errors': len(self._error_log),
            'by_severity': {},
            'by_component': {},
            'by_type': {}
        }

        for error in self._error_log:
            severity = error.severity.value
            summary['by_severity'][severity] = summary['by_severity'].get(severity, 0) + 1

            component = error.component
            summary['by_component'][component] = summary['by_component'].get(component, 0) + 1

            name = type(error.exception).__name__
            summary['by_type'][name] = summary['by_type'].get(name, 0) + 1

        return summary


async def safe_cleanup(*cleanup_funcs: Callable):
    """
    Safely run multiple cleanup functions, ensuring all run even if some fail.

    Args:
        *cleanup_funcs: Async cleanup functions to run
    """
    errors = []

    for func in cleanup_funcs:
        try:
            await func()
        except Exception as e:
            name = getattr(func, '__name__', repr(func))
            errors.append((name, e))
            logger.warning(f"⚠️  Cleanup error in {name}: {e}")

    if errors:
        logger.warning(f"⚠️  {len(errors)} cleanup errors occurred")
    return errors
