"""
Shared fixtures: small registries, package lists and a throwaway data dir.
"""

import json
from pathlib import Path

import pytest

from devenv_installer.lib.facts import FactSnapshot
from devenv_installer.lib.registry import load_registry
from devenv_installer.logging_utils import reset_logging


REGISTRY_DATA = {
    "categories": {
        "terminal": {"mutually_exclusive": False},
        "wm": {"mutually_exclusive": True},
    },
    "components": {
        "base": {
            "name": "Base",
            "category": "system",
            "packages": {"arch": ["git", "curl"], "ubuntu": ["git", "curl"]},
        },
        "terminal": {
            "name": "Terminal",
            "category": "terminal",
            "packages": {"arch": ["kitty"], "ubuntu": ["kitty"]},
            "dependencies": ["base"],
        },
        "wm": {
            "name": "Window manager",
            "category": "wm",
            "packages": {"arch": ["hyprland", "git"], "ubuntu": ["hyprland"]},
            "dependencies": ["terminal"],
            "conflicts": ["other-wm"],
            "post_install": ["user-service:hypridle.service"],
            "package_lists": {"arch": ["wm-arch.lst"]},
        },
        "other-wm": {
            "name": "Other window manager",
            "category": "wm",
            "packages": {"arch": ["sway"]},
            "dependencies": ["base"],
            "conflicts": ["wm"],
        },
        "editor": {
            "packages": {"arch": ["neovim"], "ubuntu": ["neovim"]},
            "dependencies": ["base"],
        },
        "docker": {
            "packages": {"arch": ["docker"], "ubuntu": ["docker.io"]},
            "dependencies": ["base"],
            "post_install": ["service:docker.service", "group:docker"],
        },
    },
    "presets": {
        "desktop": {"name": "Desktop", "components": ["wm", "editor"]},
    },
}

PROFILES_DATA = {
    "profiles": {
        "generic-nvidia": {
            "name": "NVIDIA GPU",
            "gpu": ["nvidia"],
            "packages": {"arch": ["nvidia-dkms", "git"]},
            "environment_vars": {"GBM_BACKEND": "nvidia-drm"},
        },
        "vm-generic": {
            "name": "Virtual machine",
            "features": {"vm": True},
            "packages": {"arch": ["qemu-guest-agent"]},
        },
    }
}

WM_ARCH_LIST = """\
# --- Session ---
grim
pacman:slurp
kitty

# --- Graphics ---
nvidia-settings|nvidia
vulkan-radeon|amd

# --- Extras ---
steam|gaming
aur:hyprshot
bad::line||x
mystery-pkg|quantum
"""


@pytest.fixture(autouse=True)
def _clean_logging():
    yield
    reset_logging()


@pytest.fixture
def registry_data():
    return json.loads(json.dumps(REGISTRY_DATA))


@pytest.fixture
def registry(registry_data):
    return load_registry(registry_data)


@pytest.fixture
def plain_facts():
    return FactSnapshot()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """A manifests/ layout with a registry, profiles and one package list."""
    root = tmp_path / "manifests"
    (root / "packages").mkdir(parents=True)
    (root / "component-deps.json").write_text(json.dumps(REGISTRY_DATA), encoding="utf-8")
    (root / "hardware-profiles.json").write_text(json.dumps(PROFILES_DATA), encoding="utf-8")
    (root / "packages" / "wm-arch.lst").write_text(WM_ARCH_LIST, encoding="utf-8")
    return root


@pytest.fixture
def sys_root(tmp_path: Path) -> Path:
    """Empty filesystem root for hardware and distro detection."""
    root = tmp_path / "root"
    root.mkdir()
    return root


def _write_file(root: Path, rel: str, text: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture
def write_file():
    return _write_file
