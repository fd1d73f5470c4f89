"""
Tests for the step pipeline and the end-to-end installer run.
"""

import json

import pytest

from devenv_installer.lib.errors import ConflictError
from devenv_installer.lib.executor import DryRunExecutor
from devenv_installer.main import run
from devenv_installer.pipeline import run_pipeline
from devenv_installer.steps import (
    BuildPlanStep,
    DetectSystemStep,
    ExecutePlanStep,
    ResolveComponentsStep,
)


class RecordingStep:
    def __init__(self, step_id):
        self.step_id = step_id
        self.runs = 0

    def run(self, state):
        self.runs += 1
        state.setdefault("seen", []).append(self.step_id)
        return state


class TestRunPipeline:
    def _steps(self):
        return [RecordingStep("10_a"), RecordingStep("20_b"), RecordingStep("30_c")]

    def test_runs_in_order(self):
        result = run_pipeline(state={}, steps=self._steps())
        assert result.state["seen"] == ["10_a", "20_b", "30_c"]
        assert result.state["execution"]["completed_steps"] == ["10_a", "20_b", "30_c"]
        assert result.state["execution"]["current_step"] is None

    def test_skips_completed(self):
        state = {"execution": {"completed_steps": ["10_a"]}}
        result = run_pipeline(state=state, steps=self._steps())
        assert result.skipped_steps == ["10_a"]
        assert result.ran_steps == ["20_b", "30_c"]

    def test_force_reruns(self):
        state = {"execution": {"completed_steps": ["10_a"]}}
        result = run_pipeline(state=state, steps=self._steps(), force=True)
        assert result.ran_steps == ["10_a", "20_b", "30_c"]

    def test_start_and_stop(self):
        result = run_pipeline(state={}, steps=self._steps(), start_at="20_b", stop_after="20_b")
        assert result.ran_steps == ["20_b"]

    def test_unknown_bound(self):
        with pytest.raises(ValueError):
            run_pipeline(state={}, steps=self._steps(), stop_after="99_nope")


def _steps(sys_root, executor=None):
    return [
        DetectSystemStep(root=sys_root),
        ResolveComponentsStep(),
        BuildPlanStep(),
        ExecutePlanStep(executor=executor or DryRunExecutor(which=lambda _: None)),
    ]


def _overrides(data_dir, **extra):
    base = {
        "distro": "arch",
        "components": ["wm"],
        "data_dir": str(data_dir),
        "hardware_profile": "generic-nvidia",
    }
    base.update(extra)
    return base


class TestInstallerRun:
    """End-to-end runs against a temporary manifests directory."""

    def test_dry_run(self, tmp_path, data_dir, sys_root):
        state_path = tmp_path / "state.json"
        state = run(
            state_path=str(state_path),
            log_path=str(tmp_path / "install.log"),
            overrides=_overrides(data_dir, dry_run=True),
            steps=_steps(sys_root),
        )

        exe = state["execution"]
        assert exe["resolution"]["order"] == ["base", "terminal", "wm"]
        assert exe["resolution"]["added"] == ["base", "terminal"]
        assert state["system"]["facts"]["gpu_vendors"] == ["nvidia"]

        plan = exe["plan"]
        assert plan["steps"][0]["owner"] == "profile:generic-nvidia"
        names = [s["name"] for s in plan["steps"] if s["type"] == "install"]
        assert "nvidia-settings" in names
        assert "steam" not in names

        report = exe["report"]
        assert report["dry_run"] is True
        assert report["environment_written"] is True
        assert any("hyprland" in cmd for cmd in report["commands"])

        assert {"plan": "unrecognized condition: quantum"} in exe["warnings"]
        assert any(w.get("raw") == "bad::line||x" for w in exe["warnings"])

        assert exe["completed_steps"] == []
        saved = json.loads(state_path.read_text())
        assert saved["execution"]["plan"] == plan

    def test_gaming_preference(self, tmp_path, data_dir, sys_root):
        state = run(
            state_path=str(tmp_path / "state.json"),
            log_path=str(tmp_path / "install.log"),
            overrides=_overrides(data_dir, dry_run=True, preferences=["gaming"]),
            steps=_steps(sys_root),
        )
        names = [s["name"] for s in state["execution"]["plan"]["steps"] if s["type"] == "install"]
        assert "steam" in names

    def test_resume(self, tmp_path, data_dir, sys_root):
        state_path = str(tmp_path / "state.json")
        log_path = str(tmp_path / "install.log")
        first = run(
            state_path=state_path,
            log_path=log_path,
            overrides=_overrides(data_dir),
            stop_after="30_build_plan",
            steps=_steps(sys_root),
        )
        assert "report" not in first["execution"]
        assert first["execution"]["summary"]["ran_steps"] == [
            "10_detect_system",
            "20_resolve_components",
            "30_build_plan",
        ]

        second = run(state_path=state_path, log_path=log_path, steps=_steps(sys_root))
        assert second["execution"]["summary"]["skipped_steps"] == [
            "10_detect_system",
            "20_resolve_components",
            "30_build_plan",
        ]
        assert second["execution"]["summary"]["ran_steps"] == ["40_execute_plan"]
        assert second["execution"]["report"]["installed"][0] == "pacman:nvidia-dkms"

    def test_conflict_blocks_plan(self, tmp_path, data_dir, sys_root):
        state_path = tmp_path / "state.json"
        with pytest.raises(ConflictError):
            run(
                state_path=str(state_path),
                log_path=str(tmp_path / "install.log"),
                overrides=_overrides(data_dir, components=["wm", "other-wm"]),
                steps=_steps(sys_root),
            )
        saved = json.loads(state_path.read_text())
        assert "plan" not in saved["execution"]
        assert saved["execution"]["errors"][-1]["kind"] == "conflict"
        assert saved["execution"]["errors"][-1]["step"] == "20_resolve_components"

    def test_stale_plan_dropped_on_failed_resolution(self, tmp_path, data_dir, sys_root):
        state_path = str(tmp_path / "state.json")
        log_path = str(tmp_path / "install.log")
        run(state_path=state_path, log_path=log_path, overrides=_overrides(data_dir), stop_after="30_build_plan", steps=_steps(sys_root))
        with pytest.raises(ConflictError):
            run(
                state_path=state_path,
                log_path=log_path,
                overrides=_overrides(data_dir, components=["wm", "other-wm"]),
                force=True,
                steps=_steps(sys_root),
            )
        saved = json.loads((tmp_path / "state.json").read_text())
        assert "plan" not in saved["execution"]

    def test_unsupported_distro(self, tmp_path, data_dir, sys_root):
        with pytest.raises(RuntimeError, match="Unsupported"):
            run(
                state_path=str(tmp_path / "state.json"),
                log_path=str(tmp_path / "install.log"),
                overrides=_overrides(data_dir, distro="auto"),
                steps=_steps(sys_root),
            )

    def test_preset_selection(self, tmp_path, data_dir, sys_root):
        state = run(
            state_path=str(tmp_path / "state.json"),
            log_path=str(tmp_path / "install.log"),
            overrides=_overrides(data_dir, components=["docker"], preset="desktop", dry_run=True),
            steps=_steps(sys_root),
        )
        assert state["execution"]["resolution"]["selected"] == ["wm", "editor", "docker"]

    def test_new_selection_replans(self, tmp_path, data_dir, sys_root):
        state_path = str(tmp_path / "state.json")
        log_path = str(tmp_path / "install.log")
        run(state_path=state_path, log_path=log_path, overrides=_overrides(data_dir, components=["editor"]), steps=_steps(sys_root))

        second = run(
            state_path=state_path,
            log_path=log_path,
            overrides=_overrides(data_dir, components=["docker"]),
            steps=_steps(sys_root),
        )
        exe = second["execution"]
        assert exe["resolution"]["selected"] == ["docker"]
        assert exe["summary"]["skipped_steps"] == []
        assert "pacman:docker" in exe["report"]["installed"]

    def test_bare_host_gets_no_profile(self, tmp_path, data_dir, sys_root):
        state = run(
            state_path=str(tmp_path / "state.json"),
            log_path=str(tmp_path / "install.log"),
            overrides=_overrides(data_dir, hardware_profile="auto", dry_run=True),
            steps=_steps(sys_root),
        )
        assert state["system"]["facts"]["gpu_vendors"] == []
        assert state["system"]["facts"]["hardware_profile"] is None
        plan = state["execution"]["plan"]
        assert not any(s["owner"].startswith("profile:") for s in plan["steps"])
        names = [s["name"] for s in plan["steps"] if s["type"] == "install"]
        assert "nvidia-settings" not in names
        assert plan["environment"] == {}
