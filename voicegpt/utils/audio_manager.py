"""
Shared audio resource manager to prevent conflicts between components.
"""

import threading
from typing import Optional

from .logging_config import get_logger


logger = get_logger("audio")


class SharedAudioManager:
    """
    Tracks exclusive ownership of the input device.

    Only one owner may hold the microphone at a time. Re-acquiring by the
    current owner is counted, a different owner is refused until release.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._current_owner: Optional[str] = None
        self._owner_count = 0

    def acquire_audio(self, owner_name: str) -> bool:
        """
        Acquire the input device for the given owner.

        Args:
            owner_name: Name of the component requesting audio

        Returns:
            True if acquired, False if another owner holds it
        """
        with self._lock:
            if self._current_owner and self._current_owner != owner_name:
                logger.warning(f"⚠️  Audio busy with {self._current_owner}, cannot acquire for {owner_name}")
                return False

            self._current_owner = owner_name
            self._owner_count += 1
            logger.debug(f"✅ Audio acquired by {owner_name} (count: {self._owner_count})")
            return True

    def release_audio(self, owner_name: str, force_cleanup: bool = False):
        """
        Release the input device from the given owner.

        Args:
            owner_name: Name of the component releasing audio
            force_cleanup: Drop ownership regardless of the acquire count
        """
        with self._lock:
            if self._current_owner is None:
                logger.debug(f"📤 Audio already released for {owner_name}")
                return

            if self._current_owner != owner_name:
                logger.warning(f"⚠️  {owner_name} tried to release audio, but {self._current_owner} owns it")
                return

            self._owner_count = max(0, self._owner_count - 1)
            logger.debug(f"📤 Audio released by {owner_name} (count: {self._owner_count})")

            if self._owner_count <= 0 or force_cleanup:
                self._current_owner = None
                self._owner_count = 0

    def force_cleanup(self):
        """Drop any ownership."""
        with self._lock:
            self._current_owner = None
            self._owner_count = 0

    @property
    def current_owner(self) -> Optional[str]:
        return self._current_owner

    def get_status(self) -> dict:
        """Get current audio manager status."""
        with self._lock:
            return {
                'current_owner': self._current_owner,
                'owner_count': self._owner_count
            }


# Global shared instance
_audio_manager = SharedAudioManager()


def get_audio_manager() -> SharedAudioManager:
    """Get the global audio manager instance."""
    return _audio_manager
