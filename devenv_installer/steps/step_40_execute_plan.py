from __future__ import annotations

import getpass
import logging
import os
from dataclasses import asdict
from typing import Any, Dict, Optional

from ..lib.executor import (
    CommandExecutor,
    DryRunExecutor,
    ExecutionContext,
    PlanExecutor,
    execute_plan,
)
from ..lib.plan import InstallationPlan

logger = logging.getLogger(__name__)


def _invoking_user() -> str:
    return os.environ.get("SUDO_USER") or getpass.getuser()


class ExecutePlanStep:
    step_id = "40_execute_plan"

    def __init__(self, *, executor: Optional[PlanExecutor] = None) -> None:
        self.executor = executor

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        exe = state.setdefault("execution", {})

        raw_plan = exe.get("plan")
        if not raw_plan:
            raise RuntimeError("execution.plan missing; nothing to execute")
        plan = InstallationPlan.from_dict(raw_plan)

        dry_run = bool(cfg.get("dry_run", False))
        executor = self.executor
        if executor is None:
            executor = DryRunExecutor() if dry_run else CommandExecutor()

        ctx = ExecutionContext(distro=plan.distro, user=_invoking_user())
        report = execute_plan(plan, executor, ctx)

        exe["report"] = dict(asdict(report), dry_run=dry_run)
        if isinstance(executor, DryRunExecutor):
            exe["report"]["commands"] = [list(c) for c in executor.commands]
        return state
