"""
Logging for voicegpt.

Every module logs through ``get_logger(component)``, which returns an adapter
on a child of the ``voicegpt`` logger tagged with the component name. Output
is configured once by the host through ``setup_logging()``; the package
itself never installs handlers.

Line layout::

    [12:00:01.250] [ℹ️  INFO   ] [vad         ] VAD started
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple, Dict


ROOT_LOGGER_NAME = 'voicegpt'

# level name -> (ANSI colour, emoji)
LEVEL_STYLES: Dict[str, Tuple[str, str]] = {
    'DEBUG': ('\033[36m', '🔍'),
    'INFO': ('\033[32m', 'ℹ️ '),
    'WARNING': ('\033[33m', '⚠️ '),
    'ERROR': ('\033[31m', '❌'),
    'CRITICAL': ('\033[35m', '💀'),
}
RESET = '\033[0m'


class StructuredFormatter(logging.Formatter):
    """Timestamp, styled level, component column, message."""

    def __init__(self, use_colors: bool = True, use_emojis: bool = True, stream=None):
        super().__init__()
        self.use_emojis = use_emojis
        # Colour only when writing to a terminal
        self.use_colors = use_colors and bool(getattr(stream, 'isatty', lambda: False)())

    def _level(self, levelname: str) -> str:
        color, emoji = LEVEL_STYLES.get(levelname, ('', ''))
        text = f"{emoji} {levelname}" if self.use_emojis else levelname
        text = f"{text:11}"
        if self.use_colors and color:
            text = f"{color}{text}{RESET}"
        return text

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime('%H:%M:%S.%f')[:-3]
        component = getattr(record, 'component', record.name.rpartition('.')[2])
        line = f"[{stamp}] [{self._level(record.levelname)}] [{component:12}] {record.getMessage()}"
        if record.exc_info:
            line += '\n' + self.formatException(record.exc_info)
        return line


class ComponentLogger(logging.LoggerAdapter):
    """Adds the component name to every record it emits."""

    def __init__(self, logger: logging.Logger, component: str):
        super().__init__(logger, {'component': component})
        self.component = component

    def process(self, msg, kwargs):
        extra = dict(kwargs.get('extra') or {})
        extra.setdefault('component', self.component)
        kwargs['extra'] = extra
        return msg, kwargs


def setup_logging(
    level: str = "INFO",
    *,
    debug: bool = False,
    log_file: Optional[Path] = None,
    use_colors: bool = True,
    use_emojis: bool = True
) -> logging.Logger:
    """
    Configure output for the package logger.

    Replaces any handlers installed by an earlier call.

    Args:
        level: Log level name used when ``debug`` is off
        debug: The configuration ``debug`` flag; forces DEBUG
        log_file: Optional file that receives plain (unstyled) lines
        use_colors: ANSI colours on the console
        use_emojis: Emoji level markers on the console

    Returns:
        The package logger

    Raises:
        ValueError: For an unknown level name
    """
    resolved = logging.DEBUG if debug else logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level!r}")

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(resolved)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(StructuredFormatter(use_colors, use_emojis, stream=sys.stdout))
    root.addHandler(console)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter(use_colors=False, use_emojis=False))
        root.addHandler(file_handler)

    return root


def get_logger(component: str) -> ComponentLogger:
    """Logger for one component, e.g. ``get_logger("vad")``."""
    return ComponentLogger(logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}"), component)
