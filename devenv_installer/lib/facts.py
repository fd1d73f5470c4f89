from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, FrozenSet, Iterable, Optional

KNOWN_GPU_VENDORS = ("nvidia", "amd", "intel")


def _norm_set(values: Iterable[Any]) -> FrozenSet[str]:
    return frozenset(str(v).strip().lower() for v in values if str(v).strip())


@dataclass(frozen=True)
class FactSnapshot:
    """Detected properties of the host, gathered once before planning.

    Probing lives in ``lib.hwdetect``; everything downstream only reads this.
    """

    gpu_vendors: FrozenSet[str] = field(default_factory=frozenset)
    is_laptop: bool = False
    is_virtual_machine: bool = False
    is_asus_hardware: bool = False
    capabilities: FrozenSet[str] = field(default_factory=frozenset)
    hardware_profile: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "gpu_vendors", _norm_set(self.gpu_vendors))
        object.__setattr__(self, "capabilities", _norm_set(self.capabilities))

    def has_gpu(self, vendor: str) -> bool:
        return vendor.lower() in self.gpu_vendors

    def with_profile(self, profile_id: Optional[str]) -> "FactSnapshot":
        return replace(self, hardware_profile=profile_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gpu_vendors": sorted(self.gpu_vendors),
            "is_laptop": self.is_laptop,
            "is_virtual_machine": self.is_virtual_machine,
            "is_asus_hardware": self.is_asus_hardware,
            "capabilities": sorted(self.capabilities),
            "hardware_profile": self.hardware_profile,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FactSnapshot":
        return cls(
            gpu_vendors=frozenset(data.get("gpu_vendors") or []),
            is_laptop=bool(data.get("is_laptop", False)),
            is_virtual_machine=bool(data.get("is_virtual_machine", False)),
            is_asus_hardware=bool(data.get("is_asus_hardware", False)),
            capabilities=frozenset(data.get("capabilities") or []),
            hardware_profile=data.get("hardware_profile"),
        )


def normalize_preferences(prefs: Iterable[Any]) -> FrozenSet[str]:
    """User opt-in tokens (``gaming`` and friends), case-insensitive."""
    return _norm_set(prefs)
