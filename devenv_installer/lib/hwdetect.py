from __future__ import annotations

import logging
import os
import re
import shutil
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set, Tuple

from .command import run_cmd
from .facts import KNOWN_GPU_VENDORS, FactSnapshot

logger = logging.getLogger(__name__)

_GPU_VENDOR_MAP = {
    "0x8086": "intel",
    "0x1002": "amd",
    "0x10de": "nvidia",
}

_LSPCI_PATTERNS = {
    "nvidia": re.compile(r"nvidia|geforce|quadro", re.I),
    "amd": re.compile(r"\bamd\b|radeon|\bati\b", re.I),
    "intel": re.compile(r"intel.*(graphics|hd|iris|uhd)", re.I),
}

# SMBIOS chassis types: portable, laptop, notebook, sub notebook.
_LAPTOP_CHASSIS = {"8", "9", "10", "14"}

_VM_MARKERS = ("virtualbox", "vmware", "qemu", "kvm", "xen", "virtual machine")


def _read_text(path: Path) -> Optional[str]:
    try:
        txt = path.read_text(encoding="utf-8", errors="ignore").strip()
        return txt or None
    except OSError:
        return None


def _dmi(root: Path) -> Dict[str, str]:
    dmi = root / "sys/class/dmi/id"
    keys = ("sys_vendor", "product_name", "product_version", "board_vendor", "board_name", "chassis_type")
    return {k: (_read_text(dmi / k) or "") for k in keys}


def lspci_display_lines(runner: Callable[..., Any] = run_cmd) -> list[str]:
    try:
        r = runner(["lspci", "-nn"], check=False)
    except Exception:
        return []
    out = getattr(r, "stdout", "") or ""
    return [ln for ln in out.splitlines() if any(x in ln.lower() for x in ("vga", "3d", "display"))]


def detect_gpu_vendors(root: Path = Path("/"), lspci_lines: Optional[list[str]] = None) -> Set[str]:
    vendors: Set[str] = set()

    drm = root / "sys/class/drm"
    cards = sorted(p for p in drm.glob("card[0-9]*") if p.is_dir()) if drm.exists() else []
    for card in cards:
        vendor_id = _read_text(card / "device" / "vendor")
        if vendor_id and vendor_id.lower() in _GPU_VENDOR_MAP:
            vendors.add(_GPU_VENDOR_MAP[vendor_id.lower()])

    for line in lspci_lines or []:
        for vendor, pat in _LSPCI_PATTERNS.items():
            if pat.search(line):
                vendors.add(vendor)

    return vendors


def detect_laptop(root: Path = Path("/")) -> bool:
    supply = root / "sys/class/power_supply"
    if supply.exists() and any(supply.glob("BAT*")):
        return True
    return _dmi(root)["chassis_type"] in _LAPTOP_CHASSIS


def detect_vm(root: Path = Path("/")) -> bool:
    if (root / "proc/vz").is_dir() or (root / "proc/xen/capabilities").exists() or (root / "sys/bus/vmbus").is_dir():
        return True

    cpuinfo = _read_text(root / "proc/cpuinfo") or ""
    for line in cpuinfo.splitlines():
        if line.startswith("flags") and "hypervisor" in line.split():
            return True

    dmi = _dmi(root)
    text = f"{dmi['sys_vendor']} {dmi['product_name']}".lower()
    return any(m in text for m in _VM_MARKERS)


def detect_asus(root: Path = Path("/")) -> bool:
    dmi = _dmi(root)
    return "asus" in dmi["sys_vendor"].lower() or "asus" in dmi["board_vendor"].lower()


def detect_capabilities(
    root: Path = Path("/"),
    *,
    env: Optional[Dict[str, str]] = None,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> Set[str]:
    env = dict(os.environ) if env is None else env
    caps: Set[str] = set()
    if (root / "dev/dri").exists():
        caps.add("gpu_acceleration")
    if env.get("XDG_SESSION_TYPE") == "wayland" or which("wayland-scanner"):
        caps.add("wayland_support")
    if which("vulkaninfo"):
        caps.add("vulkan_support")
    return caps


def pick_profile(
    facts: FactSnapshot, dmi: Dict[str, str], *, forced_profile: Optional[str] = None
) -> Tuple[Optional[str], Dict[str, Any]]:
    """Rule engine: pick best hardware profile + record why.

    Returns ``None`` when no rule matches.
    """

    if forced_profile:
        return forced_profile, {"confidence": 1.0, "reason": "forced_profile", "evidence": {"forced_profile": forced_profile}}

    if facts.is_virtual_machine:
        return "vm-generic", {"confidence": 0.9, "reason": "virtual_machine", "evidence": {}}

    product = f"{dmi.get('product_name', '')} {dmi.get('board_name', '')}"
    if re.search(r"TUF.*(FX516|Dash.*F15)", product, re.I):
        return "asus-tuf-dash-f15", {
            "confidence": 0.95,
            "reason": "dmi_matches_tuf_dash_f15",
            "evidence": {"product": product.strip()},
        }

    for vendor in KNOWN_GPU_VENDORS:
        if facts.has_gpu(vendor):
            return f"generic-{vendor}", {
                "confidence": 0.75,
                "reason": f"{vendor}_gpu",
                "evidence": {"gpu_vendors": sorted(facts.gpu_vendors)},
            }

    return None, {"confidence": 0.0, "reason": "no_match", "evidence": {"product": product.strip()}}


def detect_facts(
    *,
    root: Path = Path("/"),
    vm_mode: bool = False,
    runner: Callable[..., Any] = run_cmd,
) -> FactSnapshot:
    """Read hardware facts from the running host. Best-effort: a failing read counts as absent."""

    lines = lspci_display_lines(runner) if root == Path("/") else []
    facts = FactSnapshot(
        gpu_vendors=frozenset(detect_gpu_vendors(root, lines)),
        is_laptop=detect_laptop(root),
        is_virtual_machine=vm_mode or detect_vm(root),
        is_asus_hardware=detect_asus(root),
        capabilities=frozenset(detect_capabilities(root)),
    )
    logger.info(
        "Facts: gpu=%s laptop=%s vm=%s asus=%s",
        ",".join(sorted(facts.gpu_vendors)) or "none",
        facts.is_laptop,
        facts.is_virtual_machine,
        facts.is_asus_hardware,
    )
    return facts


def detect_hardware(
    *,
    root: Path = Path("/"),
    vm_mode: bool = False,
    forced_profile: Optional[str] = None,
    runner: Callable[..., Any] = run_cmd,
) -> Tuple[FactSnapshot, Dict[str, Any]]:
    facts = detect_facts(root=root, vm_mode=vm_mode, runner=runner)
    profile, why = pick_profile(facts, _dmi(root), forced_profile=forced_profile)
    logger.info("Hardware profile: %s (%s)", profile or "none", why.get("reason"))
    return facts.with_profile(profile), why
