from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from .errors import RegistryLoadError
from .pkglist import MalformedLine, PackageEntry, parse_with_errors
from .profiles import HardwareProfile, load_profiles
from .registry import Component, ComponentRegistry, load_registry

logger = logging.getLogger(__name__)

REGISTRY_FILE = "component-deps.json"
PROFILES_FILE = "hardware-profiles.json"
PACKAGES_DIR = "packages"


def default_data_dir() -> Path:
    # devenv_installer/lib/manifests.py -> devenv_installer -> repo root
    return Path(__file__).resolve().parents[2] / "manifests"


def resolve_data_dir(value: Optional[str]) -> Path:
    return Path(value).expanduser() if value else default_data_dir()


def load_document(path: Path) -> Dict[str, Any]:
    """Load a JSON or YAML mapping, chosen by file suffix."""

    if not path.exists():
        raise RegistryLoadError(f"Manifest not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (ValueError, yaml.YAMLError) as e:
        raise RegistryLoadError(f"Failed to parse {path}: {e}") from e
    if not isinstance(data, dict):
        raise RegistryLoadError(f"Manifest must be a mapping/dict: {path}")
    return data


def load_component_registry(data_dir: Path) -> ComponentRegistry:
    return load_registry(load_document(data_dir / REGISTRY_FILE))


def load_hardware_profiles(data_dir: Path) -> Dict[str, HardwareProfile]:
    path = data_dir / PROFILES_FILE
    if not path.exists():
        logger.warning("No hardware profiles at %s", path)
        return {}
    return load_profiles(load_document(path))


def load_package_list(path: Path) -> Tuple[List[PackageEntry], List[MalformedLine]]:
    if not path.exists():
        raise RegistryLoadError(f"Package list file not found: {path}")
    lines = path.read_text(encoding="utf-8").splitlines()
    entries, malformed = parse_with_errors(lines)
    for bad in malformed:
        logger.warning("%s: %s", path.name, bad)
    return entries, malformed


def load_component_lists(
    components: Sequence[Component], distro: str, data_dir: Path
) -> Tuple[Dict[str, List[PackageEntry]], Dict[str, List[MalformedLine]]]:
    """Package-list entries per component for ``distro``.

    Returns ``(entries_by_component, malformed_by_file)``. A bad line only
    drops itself; a missing file is a load error.
    """

    cache: Dict[str, Tuple[List[PackageEntry], List[MalformedLine]]] = {}
    by_component: Dict[str, List[PackageEntry]] = {}
    malformed: Dict[str, List[MalformedLine]] = {}

    for comp in components:
        entries: List[PackageEntry] = []
        for fname in comp.lists_for(distro):
            if fname not in cache:
                cache[fname] = load_package_list(data_dir / PACKAGES_DIR / fname)
                if cache[fname][1]:
                    malformed[fname] = cache[fname][1]
            entries.extend(cache[fname][0])
        if entries:
            by_component[comp.name] = entries

    return by_component, malformed


def check_data_dir(data_dir: Path, distros: Sequence[str] = ("arch", "ubuntu")) -> Mapping[str, Any]:
    """Load everything under ``data_dir`` and collect problems (for --check-data)."""

    registry = load_component_registry(data_dir)
    profiles = load_hardware_profiles(data_dir)
    malformed: Dict[str, List[str]] = {}
    for distro in distros:
        _, bad = load_component_lists(list(registry.components.values()), distro, data_dir)
        for fname, lines in bad.items():
            malformed[fname] = [str(b) for b in lines]
    return {
        "components": len(registry),
        "presets": len(registry.presets),
        "profiles": len(profiles),
        "malformed": malformed,
    }
