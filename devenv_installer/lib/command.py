from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def with_sudo(argv: Sequence[str]) -> list[str]:
    """Prefix ``sudo`` unless we already run as root."""
    argv_list = list(argv)
    if hasattr(os, "geteuid") and os.geteuid() == 0:
        return argv_list
    return ["sudo", *argv_list]


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    capture: bool = True,
) -> CmdResult:
    """Run ``argv``, logging it first; raise RuntimeError on failure when ``check``.

    Package managers, makepkg and sudo prompts need the terminal: the
    executor passes ``capture=False`` for installs so their output streams
    straight through instead of being buffered into the result.
    """

    argv_list = list(argv)
    logger.info("Running: %s", fmt_argv(argv_list))

    try:
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE if capture else None,
            stderr=subprocess.PIPE if capture else None,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
        )
    except FileNotFoundError:
        if check:
            raise RuntimeError(f"Command not found: {argv_list[0]}") from None
        return CmdResult(argv=argv_list, returncode=127, stdout="", stderr=f"not found: {argv_list[0]}")

    stdout = p.stdout or ""
    stderr = p.stderr or ""
    if stdout:
        logger.debug("STDOUT %s", stdout.strip())
    if stderr:
        logger.debug("STDERR %s", stderr.strip())

    if check and p.returncode != 0:
        raise RuntimeError(f"Command failed ({p.returncode}): {fmt_argv(argv_list)}\n{stderr}")

    return CmdResult(argv=argv_list, returncode=p.returncode, stdout=stdout, stderr=stderr)
