"""
Command line interface for voicegpt.
"""

import asyncio
import argparse
import os
from typing import Optional, List

from pydantic import ValidationError

from .orchestrator import ConversationOrchestrator
from .config import get_framework_config, print_config_summary
from .utils.logging_config import setup_logging
from .utils.state_machine import InteractionState


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="voicegpt",
        description="Hands-free voice conversation with a language model",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    run = subparsers.add_parser(
        'run',
        help='Start a conversation (listen -> transcribe -> respond -> speak)'
    )
    run.add_argument("--debug", action="store_true", help="Verbose logging, including audio levels")
    run.add_argument("--system-prompt", help="Override the system prompt")
    run.add_argument("--greeting", help="Override the first-interaction greeting (empty to disable)")
    run.add_argument("--voice", help="Synthesis voice override")

    subparsers.add_parser(
        'config',
        help='Show configuration'
    )

    return parser


def _print_error(error: Exception) -> None:
    print(f"\n❌ {error}")


def _configure_logging(debug: bool = False) -> None:
    try:
        setup_logging(os.getenv("LOG_LEVEL", "INFO"), debug=debug)
    except ValueError as e:
        print(f"⚠️  Failed to setup logging: {e}")


class TranscriptPrinter:
    """State listener that prints each completed exchange exactly once."""

    def __init__(self, orchestrator: ConversationOrchestrator):
        self.orchestrator = orchestrator
        self._printed_turns = orchestrator.history.turn_count

    def __call__(self, previous: InteractionState, current: InteractionState) -> None:
        if current != InteractionState.LISTENING:
            return
        turns = self.orchestrator.history.turn_count
        if turns > self._printed_turns:
            self._printed_turns = turns
            print(f"\n👤 You: {self.orchestrator.question}")
            print(f"🤖 Assistant: {self.orchestrator.response}")
        if previous != InteractionState.SPEAKING:
            print("🎙️  Listening... (Ctrl+C to stop)")


async def cmd_run(args: argparse.Namespace) -> int:
    """Run one conversation until Ctrl+C or the interaction stops."""
    try:
        config = get_framework_config(
            system_prompt=args.system_prompt,
            greeting=args.greeting,
            voice=args.voice,
            debug=True if args.debug else None
        )
    except ValidationError as e:
        print(f"❌ Invalid configuration:\n{e}")
        return 1

    _configure_logging(debug=config['debug'])
    stopped = asyncio.Event()

    async with ConversationOrchestrator(config, on_error=_print_error) as orchestrator:

        def on_state(previous: InteractionState, current: InteractionState) -> None:
            if current == InteractionState.IDLE:
                stopped.set()

        orchestrator.add_state_listener(TranscriptPrinter(orchestrator))
        orchestrator.add_state_listener(on_state)

        print("\n" + "=" * 60)
        print("VoiceGPT")
        print("=" * 60 + "\n")

        await orchestrator.start_interaction()
        if orchestrator.state != InteractionState.IDLE:
            await stopped.wait()

    return 0


def cmd_config() -> int:
    """Show configuration."""
    validation = print_config_summary()
    return 0 if validation["valid"] else 1


async def async_main(argv: Optional[List[str]] = None) -> int:
    """Async main function."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    if args.command == 'config':
        return cmd_config()

    if args.command == 'run':
        return await cmd_run(args)

    print(f"Unknown command: {args.command}")
    parser.print_help()
    return 2


def main(argv: Optional[List[str]] = None) -> int:
    """Synchronous entry point."""
    _configure_logging()

    try:
        return asyncio.run(async_main(argv))
    except KeyboardInterrupt:
        print("\n⚠️  Interrupted by user")
        return 130


if __name__ == '__main__':
    raise SystemExit(main())
