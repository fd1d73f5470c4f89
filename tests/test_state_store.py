"""
Tests for installer state persistence and defaults.
"""

import json

import pytest

from devenv_installer.state_store import (
    add_warning,
    ensure_defaults,
    is_step_completed,
    load_state,
    mark_step_completed,
    reset_if_selection_changed,
    save_state,
    selection_fingerprint,
)


class TestStateFile:
    def test_missing_is_empty(self, tmp_path):
        assert load_state(str(tmp_path / "nope.json")) == {}

    def test_json_roundtrip(self, tmp_path):
        path = tmp_path / "deep" / "state.json"
        state = ensure_defaults({})
        save_state(str(path), state)
        assert json.loads(path.read_text())["config"]["distro"] == "auto"
        assert load_state(str(path)) == state

    def test_yaml_roundtrip(self, tmp_path):
        path = tmp_path / "state.yaml"
        state = ensure_defaults({"config": {"components": ["kitty"]}})
        save_state(str(path), state)
        assert load_state(str(path))["config"]["components"] == ["kitty"]

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError):
            load_state(str(path))


class TestDefaults:
    def test_user_values_kept(self):
        state = ensure_defaults({"config": {"distro": "arch", "preferences": ["gaming"]}})
        assert state["config"]["distro"] == "arch"
        assert state["config"]["preferences"] == ["gaming"]
        assert state["config"]["dry_run"] is False
        assert state["execution"]["completed_steps"] == []

    def test_completed_steps(self):
        state = ensure_defaults({})
        mark_step_completed(state, "10_detect_system")
        mark_step_completed(state, "10_detect_system")
        assert state["execution"]["completed_steps"] == ["10_detect_system"]
        assert is_step_completed(state, "10_detect_system")
        assert not is_step_completed(state, "20_resolve_components")

    def test_add_warning(self):
        state = {}
        add_warning(state, {"plan": "x"})
        assert state["execution"]["warnings"] == [{"plan": "x"}]


class TestSelectionFingerprint:
    """A changed selection invalidates completed steps."""

    def _done(self, **config):
        state = ensure_defaults({"config": config})
        reset_if_selection_changed(state)
        for step in ("10_detect_system", "20_resolve_components"):
            mark_step_completed(state, step)
        state["execution"]["resolution"] = {"order": ["base"]}
        state["execution"]["plan"] = {"steps": []}
        return state

    def test_same_selection_keeps_progress(self):
        state = self._done(components=["editor"])
        assert not reset_if_selection_changed(state)
        assert is_step_completed(state, "20_resolve_components")

    def test_changed_components_reset(self):
        state = self._done(components=["editor"])
        state["config"]["components"] = ["docker"]
        assert reset_if_selection_changed(state)
        assert state["execution"]["completed_steps"] == []
        assert "resolution" not in state["execution"]
        assert "plan" not in state["execution"]

    def test_changed_preferences_reset(self):
        state = self._done(components=["editor"])
        state["config"]["preferences"] = ["gaming"]
        assert reset_if_selection_changed(state)

    def test_dry_run_flag_ignored(self):
        state = self._done(components=["editor"])
        state["config"]["dry_run"] = True
        assert not reset_if_selection_changed(state)

    def test_fingerprint_stable(self):
        cfg = ensure_defaults({"config": {"components": ["a", "b"]}})["config"]
        assert selection_fingerprint(cfg) == selection_fingerprint(dict(cfg))
        assert selection_fingerprint(cfg) != selection_fingerprint(dict(cfg, components=["b", "a"]))

    def test_legacy_state_with_progress_resets(self):
        state = ensure_defaults({"execution": {"completed_steps": ["10_detect_system"]}})
        assert reset_if_selection_changed(state)
        assert state["execution"]["completed_steps"] == []
