"""
Configuration for voicegpt.
Organized into discrete feature sections for clarity.

Values come from the process environment (optionally seeded from a ``.env``
file) and are read when the configuration is assembled, so changes to the
environment are picked up by the next ``get_framework_config()`` call.
"""

import os
from pathlib import Path
from typing import Dict, Any, Optional

from dotenv import load_dotenv

from .config_models import validate_config


# =============================================================================
# SECTION 1: ENVIRONMENT & CREDENTIALS
# =============================================================================

# Load environment variables from the project root, then the working directory
parent_dir = Path(__file__).parent.parent
env_path = parent_dir / ".env"
if env_path.exists():
    load_dotenv(env_path)
load_dotenv()


def _env_str(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    value = _env_str(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _env_float(name: str, default: float) -> float:
    value = _env_str(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


def _env_bool(name: str, default: bool = False) -> bool:
    value = _env_str(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "on")


# =============================================================================
# SECTION 2: PROVIDER SELECTION
# =============================================================================
# Choose which provider implementation to use for each service.

TRANSCRIPTION_PROVIDER = "openai_whisper"
COMPLETION_PROVIDER = "openai_chat"
TTS_PROVIDER = "openai_tts"


# =============================================================================
# SECTION 3: VOICE ACTIVITY DETECTION
# =============================================================================

DEFAULT_SILENCE_THRESHOLD_DB = -25.0
DEFAULT_SILENCE_TIMEOUT_MS = 1500
DEFAULT_MIN_SPEECH_DURATION_MS = 500
DEFAULT_POLL_INTERVAL_MS = 100


# =============================================================================
# SECTION 4: CAPTURE
# =============================================================================

CAPTURE_SAMPLE_RATE = 16000
CAPTURE_CHANNELS = 1
CAPTURE_BLOCKSIZE = 1600  # 100ms at 16kHz

# Payloads smaller than this are brief noise, not speech
MIN_UTTERANCE_BYTES = 5000


# =============================================================================
# SECTION 5: PLAYBACK
# =============================================================================

PLAYER_COMMAND = ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet"]
PLAYBACK_TIMEOUT = 120.0


# =============================================================================
# SECTION 6: MODELS & VOICE
# =============================================================================

DEFAULT_COMPLETION_MODEL = "gpt-3.5-turbo"
DEFAULT_TRANSCRIPTION_MODEL = "whisper-1"
DEFAULT_TTS_MODEL = "tts-1"
DEFAULT_TTS_VOICE = "nova"


# =============================================================================
# SECTION 7: CONVERSATION
# =============================================================================

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_GREETING = "Hello, how can I help you?"


# =============================================================================
# SECTION 8: ASSEMBLY
# =============================================================================

def get_framework_config(
    *,
    api_key: Optional[str] = None,
    system_prompt: Optional[str] = None,
    greeting: Optional[str] = None,
    voice: Optional[str] = None,
    debug: Optional[bool] = None,
    validate: bool = True
) -> Dict[str, Any]:
    """
    Assemble the complete framework configuration.

    Keyword overrides win over environment values, which win over defaults.

    Args:
        api_key: OpenAI credential
        system_prompt: Seed system message
        greeting: First-interaction greeting
        voice: Synthesis voice
        debug: Verbose logging
        validate: Run the pydantic validation before returning

    Returns:
        Dictionary containing all provider and audio configurations

    Raises:
        pydantic.ValidationError: If validation is enabled and fails
    """
    key = api_key or _env_str("OPENAI_API_KEY")

    config: Dict[str, Any] = {
        "transcription": {
            "provider": TRANSCRIPTION_PROVIDER,
            "config": {
                "api_key": key,
                "model": _env_str("VOICEGPT_TRANSCRIPTION_MODEL", DEFAULT_TRANSCRIPTION_MODEL),
            }
        },
        "completion": {
            "provider": COMPLETION_PROVIDER,
            "config": {
                "api_key": key,
                "model": _env_str("VOICEGPT_COMPLETION_MODEL", DEFAULT_COMPLETION_MODEL),
            }
        },
        "tts": {
            "provider": TTS_PROVIDER,
            "config": {
                "api_key": key,
                "model": _env_str("VOICEGPT_TTS_MODEL", DEFAULT_TTS_MODEL),
                "voice": voice or _env_str("VOICEGPT_TTS_VOICE", DEFAULT_TTS_VOICE),
            }
        },
        "vad": {
            "silence_threshold_db": _env_float("VOICEGPT_SILENCE_THRESHOLD_DB", DEFAULT_SILENCE_THRESHOLD_DB),
            "silence_timeout_ms": _env_int("VOICEGPT_SILENCE_TIMEOUT_MS", DEFAULT_SILENCE_TIMEOUT_MS),
            "min_speech_duration_ms": _env_int("VOICEGPT_MIN_SPEECH_DURATION_MS", DEFAULT_MIN_SPEECH_DURATION_MS),
            "poll_interval_ms": DEFAULT_POLL_INTERVAL_MS,
        },
        "capture": {
            "sample_rate": CAPTURE_SAMPLE_RATE,
            "channels": CAPTURE_CHANNELS,
            "blocksize": CAPTURE_BLOCKSIZE,
            "device_index": _env_int("VOICEGPT_INPUT_DEVICE", None),
        },
        "playback": {
            "player_command": list(PLAYER_COMMAND),
            "timeout": PLAYBACK_TIMEOUT,
        },
        "conversation": {
            "system_prompt": system_prompt or _env_str("VOICEGPT_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT),
            "greeting": greeting if greeting is not None else _env_str("VOICEGPT_GREETING", DEFAULT_GREETING),
            "min_utterance_bytes": MIN_UTTERANCE_BYTES,
        },
        "debug": debug if debug is not None else _env_bool("VOICEGPT_DEBUG"),
    }

    if validate:
        validate_config(config)
    return config


# =============================================================================
# SECTION 9: VALIDATION & SUMMARY
# =============================================================================

def validate_environment() -> Dict[str, Any]:
    """Validate the environment and configuration."""
    results = {"valid": True, "errors": [], "warnings": [], "info": []}

    if not _env_str("OPENAI_API_KEY"):
        results["errors"].append("Missing required: OPENAI_API_KEY")
        results["valid"] = False

    try:
        get_framework_config(validate=True)
    except Exception as e:
        if results["valid"]:
            results["errors"].append(f"Invalid configuration: {e}")
            results["valid"] = False

    if _env_str("VOICEGPT_INPUT_DEVICE") is None:
        results["info"].append("Input device: system default")

    return results


def print_config_summary():
    """Print a summary of the current configuration."""
    config = get_framework_config(validate=False)
    vad = config["vad"]
    conversation = config["conversation"]

    print("=" * 60)
    print("🔧 VoiceGPT Configuration")
    print("=" * 60)
    print(f"Transcription: {TRANSCRIPTION_PROVIDER} ({config['transcription']['config']['model']})")
    print(f"Completion: {COMPLETION_PROVIDER} ({config['completion']['config']['model']})")
    print(f"TTS: {TTS_PROVIDER} ({config['tts']['config']['model']}, voice {config['tts']['config']['voice']})")
    print()
    print(f"Silence threshold: {vad['silence_threshold_db']} dB")
    print(f"Silence timeout: {vad['silence_timeout_ms']} ms")
    print(f"Min speech: {vad['min_speech_duration_ms']} ms")
    print(f"System Prompt: {'✅' if conversation['system_prompt'] else '❌'}")
    print(f"Greeting: {conversation['greeting']!r}")
    print(f"Debug: {'on' if config['debug'] else 'off'}")
    print()

    validation = validate_environment()
    if validation["valid"]:
        print("✅ Configuration Valid")
    else:
        print("❌ Configuration Issues:")
        for error in validation["errors"]:
            print(f"  - {error}")

    if validation["warnings"]:
        print("\n⚠️  Warnings:")
        for warning in validation["warnings"]:
            print(f"  - {warning}")

    print("=" * 60)
    return validation
