from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    state_default: str = "/var/lib/devenv-installer/state.json"
    log_default: str = "/var/log/devenv-installer.log"
    log_fallback_name: str = "devenv-installer.log"
    env_file: str = "/etc/environment.d/90-devenv-installer.conf"


PATHS = Paths()
