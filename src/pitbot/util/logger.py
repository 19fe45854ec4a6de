"""
Logging for pitbot.

Every module asks :func:`get_logger` for a named logger. Records go to the
terminal through prompt_toolkit (coloured when stderr is a TTY) and to one
rotating log file per process under ``logs/``.
"""

import logging
from logging.handlers import RotatingFileHandler
import os
import sys
from pathlib import Path
from datetime import datetime
from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

LOGS_DIR: Path = (Path(__file__).parents[3] / "logs").resolve()

LOG_FORMAT: str = "[%(asctime)s] [%(levelname)s] [%(name)s:%(funcName)s:%(lineno)d] %(message)s"
DATE_FORMAT: str = "%Y-%m-%d %H-%M-%S"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 5

LOG_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"

# discord.py-family chatter that would drown out [LEDGER]/[SWEEP] lines
NOISY_LOGGERS = (
    "discord", "discord.gateway", "discord.client", "discord.http",
    "websockets", "aiohttp", "aiosqlite",
)

LOG_FILEPATH: Path | None = None


class ColorFormatter(logging.Formatter):
    """
    Formatter that paints the whole line in its level's ANSI colour.

    Colours come from ``LOG_COLORS``:
    - DEBUG: cyan
    - INFO: green
    - WARNING: yellow
    - ERROR: red
    - CRITICAL: dark red (256-colour)

    Levels without an entry are returned unchanged.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        color = LOG_COLORS.get(record.levelname)
        if not color:
            return message
        return f"{color}{message}{RESET_COLOR}"


class PromptToolkitHandler(logging.Handler):
    """
    Console handler that writes through prompt_toolkit.

    ``print_formatted_text(ANSI(...))`` interprets the colour codes added by
    :class:`ColorFormatter` and keeps log lines from tearing an active
    prompt when the bot runs in an interactive terminal.

    Parameters
    ----------
    formatter:
        Optional formatter applied to every record before printing.
    """

    def __init__(self, formatter: logging.Formatter | None = None):
        super().__init__()
        if formatter:
            self.setFormatter(formatter)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def should_use_color() -> bool:
    """Return True when stderr is attached to a terminal."""
    try:
        return sys.stderr.isatty()
    except Exception:
        return False


def console_level() -> int:
    """
    Return the console handler threshold.

    ``PITBOT_LOG_LEVEL`` (e.g. ``DEBUG`` or ``warning``) overrides the default
    of INFO; unknown names fall back to INFO. The log file always records
    DEBUG and above.

    Returns
    -------
    int
        A ``logging`` level number.
    """
    name = os.getenv("PITBOT_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


plain_formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
color_formatter = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT) if should_use_color() else plain_formatter


def get_log_filepath() -> Path:
    """
    Return the log file shared by every logger of this process.

    The name is the start time of the first call, so each run of the bot
    gets its own file next to the previous ones.

    Returns
    -------
    Path
        Path of the session log file inside ``LOGS_DIR`` (created on demand).
    """
    global LOG_FILEPATH

    if LOG_FILEPATH is None:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        LOG_FILEPATH = LOGS_DIR / f"{datetime.now().strftime(DATE_FORMAT)}.log"
    return LOG_FILEPATH


def setup_logger(logger_name: str) -> logging.Logger:
    """
    Configure ``logger_name`` with a console and a file handler.

    The console handler prints at :func:`console_level` through
    :class:`PromptToolkitHandler`; the rotating file handler records
    everything from DEBUG up in :func:`get_log_filepath`. Calling this again
    for the same name returns the already configured logger without adding
    duplicate handlers.

    Parameters
    ----------
    logger_name:
        Name of the logger, usually the module's short name.

    Returns
    -------
    logging.Logger
        The configured logger; it does not propagate to the root logger.
    """
    logger = logging.getLogger(logger_name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG)
    logger.propagate = False

    console_handler = PromptToolkitHandler(formatter=color_formatter)
    console_handler.setLevel(console_level())

    file_handler = RotatingFileHandler(
        get_log_filepath(), maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(plain_formatter)

    logger.addHandler(console_handler)
    logger.addHandler(file_handler)
    return logger


def get_logger(logger_name: str) -> logging.Logger:
    """Retrieve a pitbot logger, configuring it on first use."""
    return setup_logger(logger_name)


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """
    Global exception hook that logs uncaught exceptions.

    Installed as ``sys.excepthook`` by :func:`pitbot.main.main`.
    ``KeyboardInterrupt`` goes to the default hook so Ctrl+C still ends the
    process normally.

    Parameters
    ----------
    exception_type, exception_instance, exception_traceback:
        The triple passed to ``sys.excepthook``.
    """
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    logging.error("Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback))


def silence_noisy_loggers(names=NOISY_LOGGERS) -> None:
    """
    Clamp third-party loggers to ERROR and detach them from the root logger.

    Runs once at import time for ``NOISY_LOGGERS``.

    Parameters
    ----------
    names:
        Logger names to silence.
    """
    for name in names:
        noisy = logging.getLogger(name)
        noisy.setLevel(logging.ERROR)
        noisy.propagate = False
        noisy.handlers = []


silence_noisy_loggers()
