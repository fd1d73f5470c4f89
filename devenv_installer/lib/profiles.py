from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from .errors import RegistryLoadError
from .facts import FactSnapshot
from .pkglist import PackageEntry, parse_entry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HardwareProfile:
    """Declarative facts and extra packages for a known machine class.

    Profiles do not execute logic. They widen the fact snapshot and add
    packages to the plan.
    """

    profile_id: str
    name: str = ""
    description: str = ""
    gpu_vendors: FrozenSet[str] = field(default_factory=frozenset)
    features: Mapping[str, bool] = field(default_factory=dict)
    packages_by_distro: Mapping[str, Tuple[PackageEntry, ...]] = field(default_factory=dict)
    environment_vars: Mapping[str, str] = field(default_factory=dict)

    @property
    def owner(self) -> str:
        return f"profile:{self.profile_id}"

    def packages_for(self, distro: str) -> Tuple[PackageEntry, ...]:
        return self.packages_by_distro.get(distro, ())

    def apply(self, facts: FactSnapshot) -> FactSnapshot:
        return replace(
            facts,
            gpu_vendors=facts.gpu_vendors | self.gpu_vendors,
            is_laptop=facts.is_laptop or bool(self.features.get("laptop", False)),
            is_virtual_machine=facts.is_virtual_machine or bool(self.features.get("vm", False)),
            is_asus_hardware=facts.is_asus_hardware or bool(self.features.get("asus", False)),
            hardware_profile=self.profile_id,
        )


def _parse_profile(profile_id: str, raw: Any) -> HardwareProfile:
    if not isinstance(raw, dict):
        raise RegistryLoadError(f"Hardware profile {profile_id} must be an object")

    gpu = raw.get("gpu") or []
    if isinstance(gpu, str):
        gpu = [gpu]

    packages: Dict[str, Tuple[PackageEntry, ...]] = {}
    for distro, specs in (raw.get("packages") or {}).items():
        entries: List[PackageEntry] = []
        for spec in specs or []:
            entry, reason = parse_entry(str(spec))
            if entry is None or entry.condition is not None:
                raise RegistryLoadError(
                    f"profile {profile_id}.packages.{distro}: {reason or 'conditions not allowed'}: {spec!r}"
                )
            entries.append(entry)
        packages[str(distro)] = tuple(entries)

    env = raw.get("environment_vars") or {}
    if not isinstance(env, dict):
        raise RegistryLoadError(f"profile {profile_id}.environment_vars must be a mapping")

    return HardwareProfile(
        profile_id=profile_id,
        name=str(raw.get("name") or profile_id),
        description=str(raw.get("description") or ""),
        gpu_vendors=frozenset(str(g).strip().lower() for g in gpu if str(g).strip()),
        features=MappingProxyType({str(k): bool(v) for k, v in (raw.get("features") or {}).items()}),
        packages_by_distro=MappingProxyType(packages),
        environment_vars=MappingProxyType({str(k): str(v) for k, v in env.items()}),
    )


def load_profiles(data: Mapping[str, Any]) -> Dict[str, HardwareProfile]:
    if not isinstance(data, dict):
        raise RegistryLoadError("Hardware profiles must be a mapping/dict")
    raw = data["profiles"] if isinstance(data.get("profiles"), dict) else data
    profiles = {str(pid): _parse_profile(str(pid), body) for pid, body in raw.items()}
    logger.info("Loaded %d hardware profiles", len(profiles))
    return profiles


def select_profile(
    profiles: Mapping[str, HardwareProfile], profile_id: Optional[str]
) -> Optional[HardwareProfile]:
    if not profile_id:
        return None
    profile = profiles.get(profile_id)
    if profile is None:
        logger.warning("Hardware profile %s not defined, continuing without profile packages", profile_id)
    return profile
