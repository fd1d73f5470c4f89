from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.facts import FactSnapshot, normalize_preferences
from ..lib.manifests import (
    load_component_lists,
    load_component_registry,
    load_hardware_profiles,
    resolve_data_dir,
)
from ..lib.plan import build
from ..lib.profiles import select_profile
from ..state_store import add_warning

logger = logging.getLogger(__name__)


class BuildPlanStep:
    step_id = "30_build_plan"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        system = state.get("system") or {}
        exe = state.setdefault("execution", {})

        resolution = exe.get("resolution") or {}
        order_names = resolution.get("order")
        if not order_names:
            raise RuntimeError("execution.resolution missing; components were not resolved")

        distro = system.get("distro")
        if not distro:
            raise RuntimeError("system.distro missing")

        data_dir = resolve_data_dir(cfg.get("data_dir"))
        registry = load_component_registry(data_dir)
        order = [registry.lookup(n) for n in order_names]

        lists, malformed = load_component_lists(order, distro, data_dir)
        for fname, bad_lines in malformed.items():
            for bad in bad_lines:
                add_warning(
                    state,
                    {"package_list": fname, "line": bad.line_no, "raw": bad.raw, "reason": bad.reason},
                )

        facts = FactSnapshot.from_dict(system.get("facts") or {})
        profile = select_profile(load_hardware_profiles(data_dir), facts.hardware_profile)

        plan = build(
            order,
            distro,
            lists,
            facts,
            normalize_preferences(cfg.get("preferences") or []),
            profile=profile,
        )
        for w in plan.warnings:
            add_warning(state, {"plan": w})

        exe["plan"] = plan.to_dict()
        return state
