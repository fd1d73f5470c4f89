from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..lib.manifests import load_component_registry, resolve_data_dir
from ..lib.resolver import resolve

logger = logging.getLogger(__name__)


class ResolveComponentsStep:
    step_id = "20_resolve_components"

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}
        exe = state.setdefault("execution", {})

        # A plan from an earlier run must never outlive a new resolution attempt.
        exe.pop("plan", None)
        exe.pop("resolution", None)

        registry = load_component_registry(resolve_data_dir(cfg.get("data_dir")))

        selection: List[str] = []
        preset = cfg.get("preset")
        if preset:
            selection.extend(registry.preset(str(preset)))
        selection.extend(str(c) for c in (cfg.get("components") or []))
        if not selection:
            raise RuntimeError("No components selected (use --component or --preset)")

        resolved = resolve(selection, registry)

        logger.info("=== Dependency Resolution Summary ===")
        for line in resolved.summary_lines():
            logger.info("  - %s", line)

        exe["resolution"] = {
            "selected": list(resolved.selected),
            "order": resolved.names,
            "added": list(resolved.added),
        }
        return state
