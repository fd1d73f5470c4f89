from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


@dataclass(frozen=True)
class InstallConfig:
    """User choices for one installation, read from YAML.

    Example::

        distro: arch
        preset: developer
        components: [docker]
        preferences: [gaming]
        dry_run: true
    """

    raw: Dict[str, Any]

    @property
    def distro(self) -> Optional[str]:
        v = self.raw.get("distro")
        return str(v).strip().lower() if v else None

    @property
    def components(self) -> List[str]:
        return [str(c) for c in (self.raw.get("components") or [])]

    @property
    def preset(self) -> Optional[str]:
        v = self.raw.get("preset")
        return str(v) if v else None

    @property
    def preferences(self) -> List[str]:
        prefs = self.raw.get("preferences") or []
        if isinstance(prefs, str):
            prefs = prefs.split(",")
        return [str(p).strip() for p in prefs if str(p).strip()]

    @property
    def hardware_profile(self) -> Optional[str]:
        v = self.raw.get("hardware_profile")
        return str(v) if v else None

    @property
    def vm_mode(self) -> Optional[bool]:
        return None if "vm_mode" not in self.raw else bool(self.raw["vm_mode"])

    @property
    def dry_run(self) -> Optional[bool]:
        return None if "dry_run" not in self.raw else bool(self.raw["dry_run"])

    @property
    def data_dir(self) -> Optional[str]:
        v = self.raw.get("data_dir")
        return str(v) if v else None

    def as_state_config(self) -> Dict[str, Any]:
        """Only the keys the file actually sets, in state["config"] shape."""

        out: Dict[str, Any] = {}
        if self.distro:
            out["distro"] = self.distro
        if "components" in self.raw:
            out["components"] = self.components
        if self.preset:
            out["preset"] = self.preset
        if "preferences" in self.raw:
            out["preferences"] = self.preferences
        if self.hardware_profile:
            out["hardware_profile"] = self.hardware_profile
        if self.vm_mode is not None:
            out["vm_mode"] = self.vm_mode
        if self.dry_run is not None:
            out["dry_run"] = self.dry_run
        if self.data_dir:
            out["data_dir"] = self.data_dir
        return out


def load_install_config(path: str) -> InstallConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("install config must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError("install config must contain a mapping/object")

    return InstallConfig(raw=raw)
