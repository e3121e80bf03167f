"""
Logging configuration shared by the main and post phases.

main.py calls ``setup_logging()`` once; modules just use
``logging.getLogger(__name__)``.

Console level, highest precedence first:

    --debug / --quiet / --verbose  >  K0S_LOG_LEVEL  >  RUNNER_DEBUG=1  >  INFO

Inside a CI runner (``GITHUB_ACTIONS=true``) console records are turned
into workflow commands: warnings become ``::warning::`` annotations and
debug records ``::debug::`` lines, which the runner only shows when step
debugging is on. Errors stay plain; the CLI emits the single ``::error::``
for a failed run.

K0S_LOG_FILE / K0S_LOG_FILE_LEVEL add a detailed file log.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import TextIO

_PLAIN = "%(message)s"
_DETAILED = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d  %(message)s"
_CONSOLE_DATEFMT = "%H:%M:%S"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Chatty libraries kept at WARNING unless we run at DEBUG.
_THIRD_PARTY = ("urllib3", "charset_normalizer")

_ANNOTATIONS = {
    logging.DEBUG: "::debug::",
    logging.WARNING: "::warning::",
}


class RunnerFormatter(logging.Formatter):
    """Formatter that can prefix records with runner workflow commands."""

    def __init__(self, fmt: str, datefmt: str | None = None, annotate: bool = False):
        super().__init__(fmt, datefmt=datefmt)
        self.annotate = annotate

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        if not self.annotate:
            return text
        prefix = _ANNOTATIONS.get(record.levelno)
        if prefix is None:
            return text
        # Workflow commands are single-line.
        escaped = text.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
        return prefix + escaped


def in_runner(environ: dict[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return env.get("GITHUB_ACTIONS", "").lower() == "true"


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env_level: str | None = None,
    runner_debug: str | None = None,
) -> str:
    """Pick the console level name from flags and environment."""
    if debug:
        return "DEBUG"
    if quiet:
        return "ERROR"
    if verbose:
        return "INFO"
    if env_level:
        return env_level
    if runner_debug == "1":
        return "DEBUG"
    return "INFO"


def _level_number(name: str | None) -> int:
    """Level name → numeric level; unknown or empty names mean INFO."""
    value = getattr(logging, (name or "").upper(), None) if name else None
    return value if isinstance(value, int) else logging.INFO


def _console_handler(level: int, stream: TextIO | None, annotate: bool) -> logging.Handler:
    # stdout keeps log lines ordered with the ::group:: markers echoed by click.
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setLevel(level)
    if level <= logging.DEBUG:
        handler.setFormatter(RunnerFormatter(_DETAILED, _CONSOLE_DATEFMT, annotate=annotate))
    else:
        handler.setFormatter(RunnerFormatter(_PLAIN, annotate=annotate))
    return handler


def _file_handler(path: str, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_DETAILED, datefmt=_FILE_DATEFMT))
    return handler


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
    stream: TextIO | None = None,
    annotate: bool | None = None,
) -> None:
    """Configure the root logger for this process.

    Args:
        level: Console level name.
        log_file: Optional log file path.
        log_file_level: File level name; defaults to ``level``.
        quiet_third_party: Hold noisy libraries at WARNING below DEBUG.
        stream: Console stream (default stdout).
        annotate: Emit runner workflow commands; defaults to ``in_runner()``.
    """
    console_level = _level_number(level)
    if annotate is None:
        annotate = in_runner()

    handlers = [_console_handler(console_level, stream, annotate)]
    root_level = console_level

    if log_file:
        file_level = _level_number(log_file_level) if log_file_level else console_level
        handlers.append(_file_handler(log_file, file_level))
        root_level = min(root_level, file_level)

    root = logging.getLogger()
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _THIRD_PARTY:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False
