from __future__ import annotations

import getpass
import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional, Protocol, Sequence

from .command import fmt_argv, run_cmd, with_sudo
from .env import PATHS
from .errors import ExecutionError
from .pkg import (
    PRIVILEGED_SOURCES,
    get_aur_helper,
    install_argv,
    post_install_argv,
    post_install_needs_sudo,
    yay_bootstrap_steps,
)
from .plan import InstallationPlan, InstallBatch, RunPostInstall

logger = logging.getLogger(__name__)

DEFAULT_ENV_FILE = PATHS.env_file


@dataclass(frozen=True)
class ExecutionContext:
    distro: str
    user: str = field(default_factory=getpass.getuser)
    env_file: str = DEFAULT_ENV_FILE


@dataclass
class ExecutionReport:
    installed: List[str] = field(default_factory=list)
    actions_run: List[str] = field(default_factory=list)
    actions_skipped: List[str] = field(default_factory=list)
    environment_written: bool = False


class PlanExecutor(Protocol):
    def install(self, batch: InstallBatch, ctx: ExecutionContext) -> None:
        ...

    def post_install(self, step: RunPostInstall, ctx: ExecutionContext) -> bool:
        ...

    def write_environment(self, env: Mapping[str, str], ctx: ExecutionContext) -> None:
        ...


def render_environment(env: Mapping[str, str]) -> str:
    return "".join(f"{k}={v}\n" for k, v in sorted(env.items()))


class CommandExecutor:
    """Runs plan steps against the real package managers."""

    def __init__(
        self,
        *,
        runner: Callable[..., object] = run_cmd,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self._runner = runner
        self._which = which
        self._aur_helper: Optional[str] = None

    def _run(
        self,
        argv: Sequence[str],
        *,
        sudo: bool,
        input_text: Optional[str] = None,
        cwd: Optional[str] = None,
    ) -> None:
        full = with_sudo(argv) if sudo else list(argv)
        try:
            self._runner(full, input_text=input_text, capture=input_text is not None, cwd=cwd)
        except RuntimeError as e:
            raise ExecutionError(str(e)) from e

    def _make_workdir(self) -> str:
        return tempfile.mkdtemp(prefix="devenv-installer-aur-")

    def _remove_workdir(self, path: str) -> None:
        shutil.rmtree(path, ignore_errors=True)

    def ensure_aur_helper(self) -> str:
        """Return an AUR helper, building yay from the AUR if none is installed."""

        if self._aur_helper is not None:
            return self._aur_helper

        helper = get_aur_helper(self._which)
        if helper is not None:
            logger.info("AUR helper already available: %s", helper)
            self._aur_helper = helper
            return helper

        logger.info("No AUR helper found, installing yay")
        workdir = self._make_workdir()
        try:
            for argv, cwd, sudo in yay_bootstrap_steps(workdir):
                self._run(argv, sudo=sudo, cwd=cwd)
        finally:
            self._remove_workdir(workdir)
        self._aur_helper = "yay"
        return self._aur_helper

    def install(self, batch: InstallBatch, ctx: ExecutionContext) -> None:
        helper = self.ensure_aur_helper() if batch.source == "aur" else None
        argv = install_argv(batch.source, batch.packages, aur_helper=helper)
        logger.info("Installing %s packages: %s", batch.source, " ".join(batch.packages))
        if batch.source == "apt":
            self._run(["apt-get", "update"], sudo=True)
        self._run(argv, sudo=batch.source in PRIVILEGED_SOURCES)

    def post_install(self, step: RunPostInstall, ctx: ExecutionContext) -> bool:
        argv = post_install_argv(step.action_id, user=ctx.user)
        if argv is None:
            logger.warning("Unsupported post-install action %s (%s), skipping", step.action_id, step.owner)
            return False
        self._run(argv, sudo=post_install_needs_sudo(step.action_id))
        return True

    def write_environment(self, env: Mapping[str, str], ctx: ExecutionContext) -> None:
        self._run(["mkdir", "-p", ctx.env_file.rsplit("/", 1)[0]], sudo=True)
        self._run(["tee", ctx.env_file], sudo=True, input_text=render_environment(env))


class DryRunExecutor(CommandExecutor):
    """Logs and records every command instead of running it."""

    def __init__(self, *, which: Callable[[str], Optional[str]] = shutil.which) -> None:
        super().__init__(which=which)
        self.commands: List[List[str]] = []

    def _run(
        self,
        argv: Sequence[str],
        *,
        sudo: bool,
        input_text: Optional[str] = None,
        cwd: Optional[str] = None,
    ) -> None:
        full = with_sudo(argv) if sudo else list(argv)
        self.commands.append(full)
        where = f" (in {cwd})" if cwd else ""
        logger.info("[DRY RUN] Would run: %s%s", fmt_argv(full), where)

    def _make_workdir(self) -> str:
        return "/tmp/devenv-installer-aur"

    def _remove_workdir(self, path: str) -> None:
        pass


def execute_plan(plan: InstallationPlan, executor: PlanExecutor, ctx: ExecutionContext) -> ExecutionReport:
    """Hand a finished plan to an executor, batch by batch, in plan order."""

    report = ExecutionReport()
    for item in plan.batches():
        if isinstance(item, InstallBatch):
            executor.install(item, ctx)
            report.installed.extend(f"{item.source}:{n}" for n in item.packages)
        elif executor.post_install(item, ctx):
            report.actions_run.append(item.action_id)
        else:
            report.actions_skipped.append(item.action_id)

    if plan.environment:
        executor.write_environment(plan.environment, ctx)
        report.environment_written = True

    logger.info(
        "Plan executed: %d packages, %d actions (%d skipped)",
        len(report.installed),
        len(report.actions_run),
        len(report.actions_skipped),
    )
    return report
