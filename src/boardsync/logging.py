"""Rich-based logging for boardsync.

Library modules only create loggers through ``get_logger``; applications
embedding the board call ``configure_logging`` once at startup. Messages
carry a bracketed component tag (``[Store]``, ``[Sync]``, ...) which the
Rich handler colours per component. Outside a TTY, plain lines are used.
"""

from __future__ import annotations

import logging
import os
import sys

from rich.console import Console
from rich.highlighter import RegexHighlighter
from rich.logging import RichHandler
from rich.theme import Theme

from boardsync.settings import settings

COMPONENTS = ("Board", "Store", "Sync", "Reorder", "Commands", "Session")

BOARD_THEME = Theme({
    "logging.level.debug": "blue",
    "logging.level.info": "green",
    "logging.level.warning": "yellow",
    "logging.level.error": "red bold",
    "boardsync.board": "cyan bold",
    "boardsync.store": "magenta bold",
    "boardsync.sync": "blue bold",
    "boardsync.reorder": "yellow bold",
    "boardsync.commands": "green bold",
    "boardsync.session": "cyan",
})

# Loggers of the supabase client stack that are chatty at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "hpack", "websockets", "realtime")


class ComponentHighlighter(RegexHighlighter):
    """Colours the leading ``[Component]`` tag of a log message."""

    base_style = "boardsync."
    highlights = [rf"^(?P<{name.lower()}>\[{name}\])" for name in COMPONENTS]


def should_use_rich() -> bool:
    """Rich output when BOARDSYNC_RICH_LOGS is truthy, plain when falsy, else TTY detection."""
    env_value = os.environ.get("BOARDSYNC_RICH_LOGS", "").lower()
    if env_value in ("1", "true", "yes"):
        return True
    if env_value in ("0", "false", "no"):
        return False
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def configure_logging(
    level: int | str | None = None,
    force_rich: bool | None = None,
) -> None:
    """Install a single root handler for the board.

    Args:
        level: Logging level or level name (default: settings.log_level)
        force_rich: Override auto-detection. None = auto-detect.
    """
    use_rich = force_rich if force_rich is not None else should_use_rich()
    level = level if level is not None else settings.log_level

    root = logging.getLogger()
    root.handlers.clear()

    if use_rich:
        handler: logging.Handler = RichHandler(
            console=Console(theme=BOARD_THEME, force_terminal=True),
            show_path=False,
            rich_tracebacks=True,
            markup=False,
            highlighter=ComponentHighlighter(),
            log_time_format="[%H:%M:%S]",
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Logger for a boardsync module."""
    return logging.getLogger(name)
