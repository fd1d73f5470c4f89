from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from . import interactive
from .install_config import load_install_config
from .lib.env import PATHS
from .lib.errors import InstallerError
from .lib.manifests import check_data_dir, load_component_registry, resolve_data_dir
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import run_pipeline
from .state_store import ensure_defaults, load_state, reset_if_selection_changed, save_state
from .steps import BuildPlanStep, DetectSystemStep, ExecutePlanStep, ResolveComponentsStep

logger = logging.getLogger(__name__)


DEFAULT_STATE_PATH = PATHS.state_default


def build_steps():
    return [
        DetectSystemStep(),
        ResolveComponentsStep(),
        BuildPlanStep(),
        ExecutePlanStep(),
    ]


def run(
    *,
    state_path: str = DEFAULT_STATE_PATH,
    log_path: str = DEFAULT_LOG_PATH,
    overrides: Optional[Dict[str, Any]] = None,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    steps: Optional[list] = None,
) -> Dict[str, Any]:
    """Run the installer pipeline, persisting state for resume."""

    actual_log_path = configure_logging(log_path=log_path)

    state = ensure_defaults(load_state(state_path))
    state["config"].update(overrides or {})
    reset_if_selection_changed(state)
    state.setdefault("execution", {}).setdefault("paths", {})["log_path_requested"] = log_path
    state.setdefault("execution", {}).setdefault("paths", {})["log_path_actual"] = actual_log_path

    # Dry runs always replan from scratch and never count as completed work.
    dry_run = bool(state["config"].get("dry_run", False))

    try:
        result = run_pipeline(
            state=state,
            steps=steps if steps is not None else build_steps(),
            start_at=start_at,
            stop_after=stop_after,
            force=force or dry_run,
        )
        state = result.state
        summary = state.setdefault("execution", {}).setdefault("summary", {})
        summary["ran_steps"] = result.ran_steps
        summary["skipped_steps"] = result.skipped_steps
        if dry_run:
            state["execution"]["completed_steps"] = []
        return state
    except Exception as e:
        logger.exception("Installer failed")
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {
                "step": (state.get("execution") or {}).get("current_step"),
                "kind": getattr(e, "kind", type(e).__name__),
                "error": str(e),
            }
        )
        raise
    finally:
        save_state(state_path, state)


def _collect_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.config:
        overrides.update(load_install_config(args.config).as_state_config())
    if args.data_dir:
        overrides["data_dir"] = args.data_dir
    if args.distro:
        overrides["distro"] = args.distro
    if args.component:
        overrides["components"] = list(args.component)
    if args.preset:
        overrides["preset"] = args.preset
    if args.prefer:
        prefs: List[str] = []
        for p in args.prefer:
            prefs.extend(x.strip() for x in p.split(",") if x.strip())
        overrides["preferences"] = prefs
    if args.profile:
        overrides["hardware_profile"] = args.profile
    if args.vm_mode:
        overrides["vm_mode"] = True
    if args.dry_run:
        overrides["dry_run"] = True
    return overrides


def _print_catalogue(args: argparse.Namespace, data_dir: Optional[str]) -> int:
    registry = load_component_registry(resolve_data_dir(data_dir))
    if args.list_components:
        for name, comp in sorted(registry.components.items()):
            deps = f" (requires: {', '.join(comp.dependencies)})" if comp.dependencies else ""
            print(f"{name}: {comp.description or comp.display_name or ''}{deps}")
    if args.list_presets:
        for name, members in sorted(registry.presets.items()):
            print(f"{name}: {' '.join(members)}")
    return 0


def _check_data(data_dir: Optional[str]) -> int:
    report = check_data_dir(resolve_data_dir(data_dir))
    print(f"components={report['components']} presets={report['presets']} profiles={report['profiles']}")
    bad = report["malformed"]
    for fname, lines in sorted(bad.items()):
        for line in lines:
            print(f"{fname}: {line}")
    return 1 if bad else 0


def _ask_selection(overrides: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    registry = load_component_registry(resolve_data_dir(overrides.get("data_dir")))
    return interactive.run_interactive(
        registry,
        ask=interactive.prompt_user,
        preferences=overrides.get("preferences"),
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="devenv-installer",
        description="Resolve, plan and install a desktop development environment (Arch/Ubuntu)",
    )
    p.add_argument("--state", default=DEFAULT_STATE_PATH, help="Path to installer state (json|yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to installer log")
    p.add_argument("--config", default=None, help="YAML install config with component choices")
    p.add_argument("--data-dir", default=None, help="Directory holding component-deps.json and package lists")
    p.add_argument("--distro", choices=["auto", "arch", "ubuntu"], default=None)
    p.add_argument("--component", action="append", default=None, help="Component to install (repeatable)")
    p.add_argument("--preset", default=None, help="Named component preset")
    p.add_argument("--prefer", action="append", default=None, help="Opt-in preference, e.g. gaming (repeatable)")
    p.add_argument("--profile", default=None, help="Force a hardware profile id")
    p.add_argument("--vm-mode", action="store_true", help="Treat the host as a virtual machine")
    p.add_argument("--dry-run", action="store_true", help="Log commands instead of running them")
    p.add_argument(
        "--interactive",
        action="store_true",
        help="Choose components and preferences with yes/no prompts when none are given",
    )
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 30_build_plan)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--force", action="store_true", help="Re-run steps even if marked completed")
    p.add_argument("--list-components", action="store_true", help="List components and exit")
    p.add_argument("--list-presets", action="store_true", help="List presets and exit")
    p.add_argument("--check-data", action="store_true", help="Validate manifests and package lists, then exit")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        overrides = _collect_overrides(args)
        if args.list_components or args.list_presets:
            return _print_catalogue(args, overrides.get("data_dir"))
        if args.check_data:
            return _check_data(overrides.get("data_dir"))
        if args.interactive and not (overrides.get("components") or overrides.get("preset")):
            chosen = _ask_selection(overrides)
            if chosen is None:
                print("Installation cancelled.")
                return 0
            overrides.update(chosen)

        run(
            state_path=args.state,
            log_path=args.log,
            overrides=overrides,
            start_at=args.start_at,
            stop_after=args.stop_after,
            force=args.force,
        )
    except (InstallerError, RuntimeError, ValueError, FileNotFoundError) as e:
        print(f"devenv-installer: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
