from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict

from ..lib.command import run_cmd
from ..lib.distro import SUPPORTED_DISTROS, detect_distro
from ..lib.hwdetect import detect_hardware
from ..lib.manifests import load_hardware_profiles, resolve_data_dir
from ..lib.profiles import select_profile

logger = logging.getLogger(__name__)


class DetectSystemStep:
    step_id = "10_detect_system"

    def __init__(self, *, root: Path = Path("/"), runner: Callable[..., Any] = run_cmd) -> None:
        self.root = root
        self.runner = runner

    def run(self, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = state.get("config") or {}

        distro = str(cfg.get("distro") or "auto").strip().lower()
        if distro == "auto":
            distro = detect_distro(self.root)
        if distro not in SUPPORTED_DISTROS:
            raise RuntimeError(f"Unsupported distribution: {distro} (supported: {', '.join(SUPPORTED_DISTROS)})")

        forced = cfg.get("hardware_profile")
        forced = None if forced in (None, "", "auto") else str(forced)

        facts, why = detect_hardware(
            root=self.root,
            vm_mode=bool(cfg.get("vm_mode", False)),
            forced_profile=forced,
            runner=self.runner,
        )

        # Profiles are declarative: extra facts + packages. They do not execute logic.
        profiles = load_hardware_profiles(resolve_data_dir(cfg.get("data_dir")))
        profile = select_profile(profiles, facts.hardware_profile)
        if profile is not None:
            facts = profile.apply(facts)

        state["system"] = {
            "distro": distro,
            "facts": facts.to_dict(),
            "profile_selection": why,
        }
        logger.info("System: distro=%s profile=%s", distro, facts.hardware_profile)
        return state
