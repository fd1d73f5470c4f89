from __future__ import annotations

from typing import Optional, Sequence, Tuple


class InstallerError(Exception):
    pass


class RegistryLoadError(InstallerError):
    """Declarative input (registry, profiles, presets) is unusable."""


class ComponentNotFoundError(InstallerError, KeyError):
    def __init__(self, name: str):
        super().__init__(f"Component not found: {name}")
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])


class ResolutionError(InstallerError):
    """Resolution aborted; no partial plan exists."""

    kind = "resolution"


class CycleError(ResolutionError):
    kind = "cycle"

    def __init__(self, path: Sequence[str]):
        self.path: Tuple[str, ...] = tuple(path)
        super().__init__(f"Circular dependency: {' -> '.join(self.path)}")


class ConflictError(ResolutionError):
    kind = "conflict"

    def __init__(self, first: str, second: str, *, category: Optional[str] = None):
        self.pair: Tuple[str, str] = (first, second)
        self.category = category
        msg = f"Conflict: {first} <-> {second}"
        if category:
            msg += f" (category: {category})"
        super().__init__(msg)


class UnknownComponentError(ResolutionError):
    kind = "unknown_component"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Selected component is not in the registry: {name}")


class ExecutionError(InstallerError):
    pass
