from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Tuple

from .lib.env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default

_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_CONSOLE_FORMAT = "%(levelname)s: %(message)s"


def _open_log_file(log_path: str) -> Tuple[logging.FileHandler, str]:
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path), log_path
    except OSError:
        # Unprivileged runs cannot write /var/log.
        local = str(Path.cwd() / PATHS.log_fallback_name)
        return logging.FileHandler(local), local


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Send installer logs to ``log_path`` and, optionally, the terminal.

    The file gets timestamps and logger names so a failed install can be
    traced back to the resolution or command that caused it; the console
    only shows level and message. Returns the log file actually opened,
    which is ``./devenv-installer.log`` when ``log_path`` is not writable.
    """

    root = logging.getLogger()
    root.setLevel(level)

    if getattr(root, "_devenv_configured", False):
        return getattr(root, "_devenv_log_path", log_path)

    file_handler, chosen_path = _open_log_file(log_path)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))
    handlers: List[logging.Handler] = [file_handler]

    if also_console:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        handlers.append(console)

    for h in handlers:
        root.addHandler(h)
    setattr(root, "_devenv_handlers", handlers)
    setattr(root, "_devenv_configured", True)
    setattr(root, "_devenv_log_path", chosen_path)

    if chosen_path != log_path:
        logging.getLogger(__name__).warning("Cannot write %s, logging to %s", log_path, chosen_path)
    else:
        logging.getLogger(__name__).info("Logging to %s", chosen_path)
    return chosen_path


def reset_logging() -> None:
    """Drop handlers installed by configure_logging (tests, repeated runs)."""

    root = logging.getLogger()
    if not getattr(root, "_devenv_configured", False):
        return
    for h in getattr(root, "_devenv_handlers", []):
        root.removeHandler(h)
        h.close()
    setattr(root, "_devenv_handlers", [])
    setattr(root, "_devenv_configured", False)
