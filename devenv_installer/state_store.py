from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)

STATE_VERSION = "1"


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"yaml", "yml"}:
        return "yaml"
    # Default to JSON for unknown extensions.
    return "json"


def load_state(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    text = p.read_text(encoding="utf-8")
    if _detect_format(p) == "yaml":
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text) if text.strip() else {}

    if not isinstance(data, dict):
        raise ValueError(f"State file must be an object/dict, got {type(data)}")

    logger.debug("Loaded state from %s", p)
    return data


def save_state(path: str, state: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if _detect_format(p) == "yaml":
        p.write_text(yaml.safe_dump(state, sort_keys=False) + "\n", encoding="utf-8")
    else:
        p.write_text(json.dumps(state, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with sane defaults (without overriding user values)."""

    state.setdefault("version", STATE_VERSION)
    state.setdefault("config", {})
    state.setdefault("system", {})
    state.setdefault("execution", {})

    cfg = state["config"]
    # "auto" means: detect from /etc/os-release.
    cfg.setdefault("distro", "auto")
    cfg.setdefault("components", [])
    cfg.setdefault("preset", None)
    # Opt-in tokens such as "gaming"; hardware conditions are never set here.
    cfg.setdefault("preferences", [])
    cfg.setdefault("hardware_profile", "auto")
    cfg.setdefault("vm_mode", False)
    cfg.setdefault("dry_run", False)
    # None means the manifests/ directory shipped with the installer.
    cfg.setdefault("data_dir", None)

    exe = state["execution"]
    exe.setdefault("current_step", None)
    exe.setdefault("completed_steps", [])
    exe.setdefault("errors", [])
    exe.setdefault("warnings", [])

    return state


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    exe = state.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def is_step_completed(state: Dict[str, Any], step_id: str) -> bool:
    exe = state.get("execution") or {}
    completed = exe.get("completed_steps") or []
    return step_id in completed


def add_warning(state: Dict[str, Any], warning: Dict[str, Any]) -> None:
    state.setdefault("execution", {}).setdefault("warnings", []).append(warning)


# Config keys that change what gets resolved or planned. dry_run is not one.
SELECTION_KEYS = (
    "distro",
    "components",
    "preset",
    "preferences",
    "hardware_profile",
    "vm_mode",
    "data_dir",
)


def selection_fingerprint(config: Dict[str, Any]) -> str:
    payload = {k: config.get(k) for k in SELECTION_KEYS}
    blob = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()


def reset_if_selection_changed(state: Dict[str, Any]) -> bool:
    """Drop completed steps and derived results when the selection changed.

    Returns True when a reset happened. The fingerprint of the current
    config is stored either way.
    """

    exe = state.setdefault("execution", {})
    current = selection_fingerprint(state.get("config") or {})
    previous = exe.get("selection_fingerprint")
    exe["selection_fingerprint"] = current
    if previous == current:
        return False
    if previous is None and not exe.get("completed_steps"):
        return False

    logger.info("Selection changed since the last run; replanning from scratch")
    exe["completed_steps"] = []
    for key in ("resolution", "plan", "report"):
        exe.pop(key, None)
    return True
