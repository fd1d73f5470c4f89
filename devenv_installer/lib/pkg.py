from __future__ import annotations

import logging
import shutil
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .errors import ExecutionError

logger = logging.getLogger(__name__)

AUR_HELPERS = ("yay", "paru", "trizen", "yaourt")


def get_aur_helper(which: Callable[[str], Optional[str]] = shutil.which) -> Optional[str]:
    for helper in AUR_HELPERS:
        if which(helper):
            return helper
    return None


def pacman_install_argv(packages: Sequence[str]) -> List[str]:
    return ["pacman", "-S", "--needed", "--noconfirm", *packages]


def aur_install_argv(packages: Sequence[str], *, helper: str) -> List[str]:
    # AUR helpers refuse to run as root and call sudo themselves.
    return [helper, "-S", "--needed", "--noconfirm", *packages]


YAY_AUR_URL = "https://aur.archlinux.org/yay.git"


def yay_bootstrap_steps(workdir: str) -> List[Tuple[List[str], Optional[str], bool]]:
    """Commands that build yay from the AUR, as ``(argv, cwd, sudo)``.

    makepkg must run as the invoking user; it calls sudo for the final
    pacman install itself.
    """

    build_dir = f"{workdir}/yay"
    return [
        (pacman_install_argv(["base-devel", "git"]), None, True),
        (["git", "clone", YAY_AUR_URL, build_dir], None, False),
        (["makepkg", "-si", "--noconfirm"], build_dir, False),
    ]


def apt_install_argv(packages: Sequence[str]) -> List[str]:
    return ["apt-get", "install", "-y", *packages]


_OTHER_SOURCES: Dict[str, Callable[[Sequence[str]], List[str]]] = {
    "flatpak": lambda pkgs: ["flatpak", "install", "-y", "--noninteractive", "flathub", *pkgs],
    "snap": lambda pkgs: ["snap", "install", *pkgs],
    "cargo": lambda pkgs: ["cargo", "install", *pkgs],
    "pip": lambda pkgs: ["pip", "install", "--user", *pkgs],
    "npm": lambda pkgs: ["npm", "install", "-g", *pkgs],
}

# Sources whose installer must run through sudo.
PRIVILEGED_SOURCES = frozenset({"pacman", "apt", "snap", "npm"})


def install_argv(source: str, packages: Sequence[str], *, aur_helper: Optional[str] = None) -> List[str]:
    """Installer command for a batch of packages from one source."""

    if not packages:
        raise ValueError("install_argv requires at least one package")
    if source == "pacman":
        return pacman_install_argv(packages)
    if source == "apt":
        return apt_install_argv(packages)
    if source == "aur":
        if not aur_helper:
            raise ExecutionError("No AUR helper available (tried: %s)" % ", ".join(AUR_HELPERS))
        return aur_install_argv(packages, helper=aur_helper)
    builder = _OTHER_SOURCES.get(source)
    if builder is None:
        raise ExecutionError(f"Unknown package source: {source}")
    return builder(packages)


def post_install_argv(action_id: str, *, user: str) -> Optional[List[str]]:
    """Command for a ``kind:arg`` post-install action, or None if unsupported."""

    kind, _, arg = action_id.partition(":")
    arg = arg.strip()
    if not arg:
        return None
    if kind == "service":
        return ["systemctl", "enable", "--now", arg]
    if kind == "user-service":
        return ["systemctl", "--user", "enable", "--now", arg]
    if kind == "group":
        return ["usermod", "-aG", arg, user]
    if kind == "shell":
        return ["chsh", "-s", arg, user]
    return None


def post_install_needs_sudo(action_id: str) -> bool:
    return action_id.split(":", 1)[0] in {"service", "group", "shell"}
