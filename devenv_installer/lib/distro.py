from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict

logger = logging.getLogger(__name__)

SUPPORTED_DISTROS = ("arch", "ubuntu")

_ID_ALIASES = {
    "arch": "arch",
    "archlinux": "arch",
    "ubuntu": "ubuntu",
}


def _os_release(path: Path) -> Dict[str, str]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    out: Dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            out[key.strip()] = value.strip().strip('"').strip("'")
    return out


def detect_distro(root: Path = Path("/")) -> str:
    """Return ``arch``, ``ubuntu`` or ``unknown``."""

    if (root / "etc/arch-release").exists():
        return "arch"

    rel = _os_release(root / "etc/os-release")
    ident = rel.get("ID", "").lower()
    if ident in _ID_ALIASES:
        return _ID_ALIASES[ident]
    for like in rel.get("ID_LIKE", "").lower().split():
        if like in _ID_ALIASES:
            logger.info("Treating %s as %s (ID_LIKE)", ident or "unknown", _ID_ALIASES[like])
            return _ID_ALIASES[like]

    lsb = root / "etc/lsb-release"
    try:
        if "ubuntu" in lsb.read_text(encoding="utf-8").lower():
            return "ubuntu"
    except OSError:
        pass

    return "unknown"
