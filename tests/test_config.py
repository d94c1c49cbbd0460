"""
Tests for configuration assembly, validation, logging setup and the CLI.
"""

import logging

import pytest
from pydantic import ValidationError

from voicegpt import config as config_module
from voicegpt.config import get_framework_config, validate_environment
from voicegpt.config_models import validate_config, VADSettings
from voicegpt.main import create_parser, main, TranscriptPrinter
from voicegpt.utils.error_handling import CompletionFailed
from voicegpt.utils.logging_config import setup_logging, get_logger, ROOT_LOGGER_NAME


@pytest.fixture
def reset_logging():
    yield
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)


class TestFrameworkConfig:

    def test_defaults(self, clean_env):
        config = get_framework_config(api_key="sk-test")

        assert config['vad'] == {
            'silence_threshold_db': -25.0,
            'silence_timeout_ms': 1500,
            'min_speech_duration_ms': 500,
            'poll_interval_ms': 100,
        }
        assert config['conversation']['min_utterance_bytes'] == 5000
        assert config['conversation']['greeting'] == config_module.DEFAULT_GREETING
        assert config['completion']['config']['model'] == 'gpt-3.5-turbo'
        assert config['tts']['config']['voice'] == 'nova'
        assert config['debug'] is False

    def test_environment_overrides(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "sk-env")
        clean_env.setenv("VOICEGPT_SILENCE_THRESHOLD_DB", "-30")
        clean_env.setenv("VOICEGPT_SILENCE_TIMEOUT_MS", "2000")
        clean_env.setenv("VOICEGPT_COMPLETION_MODEL", "gpt-4o-mini")
        clean_env.setenv("VOICEGPT_DEBUG", "true")

        config = get_framework_config()

        assert config['completion']['config']['api_key'] == "sk-env"
        assert config['vad']['silence_threshold_db'] == -30.0
        assert config['vad']['silence_timeout_ms'] == 2000
        assert config['completion']['config']['model'] == "gpt-4o-mini"
        assert config['debug'] is True

    def test_keyword_overrides_win(self, clean_env):
        clean_env.setenv("VOICEGPT_SYSTEM_PROMPT", "from env")

        config = get_framework_config(api_key="sk-test", system_prompt="from kwarg", voice="echo")

        assert config['conversation']['system_prompt'] == "from kwarg"
        assert config['tts']['config']['voice'] == "echo"

    def test_empty_greeting_is_kept(self, clean_env):
        config = get_framework_config(api_key="sk-test", greeting="")

        assert config['conversation']['greeting'] == ""

    def test_missing_api_key(self, clean_env):
        with pytest.raises(ValidationError):
            get_framework_config()

    def test_missing_api_key_without_validation(self, clean_env):
        config = get_framework_config(validate=False)

        assert config['completion']['config']['api_key'] is None

    def test_bad_integer(self, clean_env):
        clean_env.setenv("VOICEGPT_SILENCE_TIMEOUT_MS", "soon")

        with pytest.raises(ValueError, match="VOICEGPT_SILENCE_TIMEOUT_MS"):
            get_framework_config(api_key="sk-test")

    def test_positive_threshold_rejected(self, clean_env):
        clean_env.setenv("VOICEGPT_SILENCE_THRESHOLD_DB", "5")

        with pytest.raises(ValidationError):
            get_framework_config(api_key="sk-test")


class TestSettingsModels:

    def test_poll_interval_bounds(self):
        with pytest.raises(ValidationError):
            VADSettings(poll_interval_ms=300)
        assert VADSettings(poll_interval_ms=50).poll_interval_ms == 50

    def test_latency_hint(self, clean_env):
        config = get_framework_config(api_key="sk-test", validate=False)
        config['capture']['latency'] = 'medium'

        with pytest.raises(ValidationError):
            validate_config(config)

    def test_empty_player_command(self, clean_env):
        config = get_framework_config(api_key="sk-test", validate=False)
        config['playback']['player_command'] = []

        with pytest.raises(ValidationError):
            validate_config(config)

    def test_non_openai_provider_needs_no_key(self):
        validated = validate_config({
            'transcription': {'provider': 'local', 'config': {}},
            'completion': {'provider': 'local', 'config': {}},
            'tts': {'provider': 'local', 'config': {}},
        })

        assert validated.vad.silence_timeout_ms == 1500


class TestValidateEnvironment:

    def test_missing_key(self, clean_env):
        results = validate_environment()

        assert not results['valid']
        assert "Missing required: OPENAI_API_KEY" in results['errors']

    def test_valid(self, clean_env):
        clean_env.setenv("OPENAI_API_KEY", "sk-test")

        results = validate_environment()

        assert results['valid']
        assert results['errors'] == []


@pytest.mark.usefixtures("reset_logging")
class TestCLI:

    def test_parser_run_options(self):
        args = create_parser().parse_args(["run", "--debug", "--greeting", "", "--voice", "echo"])

        assert args.command == "run"
        assert args.debug
        assert args.greeting == ""
        assert args.voice == "echo"

    def test_config_command(self, clean_env, capsys):
        clean_env.setenv("OPENAI_API_KEY", "sk-test")

        assert main(["config"]) == 0
        assert "VoiceGPT Configuration" in capsys.readouterr().out

    def test_config_command_reports_problems(self, clean_env):
        assert main(["config"]) == 1

    def test_no_command(self, capsys):
        assert main([]) == 2

    def test_run_with_invalid_config(self, clean_env, capsys):
        assert main(["run"]) == 1
        assert "Invalid configuration" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_transcript_printed_once_per_completed_turn(self, make_harness, settle, capsys):
        h = make_harness(greeting="", transcripts=["hi", "again", "more"])
        h.orchestrator.add_state_listener(TranscriptPrinter(h.orchestrator))
        await h.orchestrator.start_interaction()

        h.detector.fire_utterance()
        await settle()
        # A failed turn, then a too-short one, must not repeat the first exchange
        h.capture.fill_bytes = 10
        h.completion.error = CompletionFailed(None, "network down")
        h.detector.fire_utterance()
        await settle()
        h.detector.fire_utterance()
        await settle()

        out = capsys.readouterr().out
        assert out.count("🤖 Assistant:") == 1
        assert "👤 You: hi" in out
        assert len(h.transcription.calls) == 2


@pytest.mark.usefixtures("reset_logging")
class TestLoggingSetup:

    def test_debug_flag_forces_debug_level(self):
        assert setup_logging("WARNING", debug=True).level == logging.DEBUG

    def test_level_name(self):
        assert setup_logging("warning").level == logging.WARNING

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logging("LOUD")

    def test_repeated_setup_replaces_handlers(self):
        setup_logging("INFO")
        root = setup_logging("INFO")

        assert len(root.handlers) == 1

    def test_component_tag(self, caplog):
        logger = get_logger("vad")

        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
            logger.info("level check")

        record = caplog.records[-1]
        assert record.component == "vad"
        assert record.name == "voicegpt.vad"

    def test_run_honours_debug_flag(self, clean_env, monkeypatch):
        import voicegpt.main as main_module

        async def fake_cmd_run(args):
            main_module._configure_logging(debug=args.debug)
            return 0

        monkeypatch.setattr(main_module, "cmd_run", fake_cmd_run)

        assert main(["run", "--debug"]) == 0
        assert logging.getLogger(ROOT_LOGGER_NAME).level == logging.DEBUG
