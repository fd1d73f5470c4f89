from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .errors import ComponentNotFoundError, RegistryLoadError
from .pkglist import PackageEntry, parse_entry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Component:
    name: str
    packages_by_distro: Mapping[str, Tuple[PackageEntry, ...]] = field(default_factory=dict)
    dependencies: Tuple[str, ...] = ()
    conflicts: Tuple[str, ...] = ()
    post_install: Tuple[str, ...] = ()
    display_name: Optional[str] = None
    description: str = ""
    category: Optional[str] = None
    hardware_requirements: Tuple[str, ...] = ()
    package_lists: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    def packages_for(self, distro: str) -> Optional[Tuple[PackageEntry, ...]]:
        return self.packages_by_distro.get(distro)

    def lists_for(self, distro: str) -> Tuple[str, ...]:
        return self.package_lists.get(distro, ())

    def conflicts_with(self, other: "Component") -> bool:
        return other.name in self.conflicts or self.name in other.conflicts


class ComponentRegistry:
    """Read-only component catalogue, validated at load time."""

    def __init__(
        self,
        components: Mapping[str, Component],
        *,
        exclusive_categories: Optional[Mapping[str, bool]] = None,
        presets: Optional[Mapping[str, Tuple[str, ...]]] = None,
    ) -> None:
        self._components = MappingProxyType(dict(components))
        self._exclusive = frozenset(k for k, v in (exclusive_categories or {}).items() if v)
        self._presets = MappingProxyType(dict(presets or {}))

    def __contains__(self, name: object) -> bool:
        return name in self._components

    def __iter__(self) -> Iterator[str]:
        return iter(self._components)

    def __len__(self) -> int:
        return len(self._components)

    @property
    def components(self) -> Mapping[str, Component]:
        return self._components

    @property
    def presets(self) -> Mapping[str, Tuple[str, ...]]:
        return self._presets

    def lookup(self, name: str) -> Component:
        try:
            return self._components[name]
        except KeyError:
            raise ComponentNotFoundError(name) from None

    def preset(self, name: str) -> Tuple[str, ...]:
        try:
            return self._presets[name]
        except KeyError:
            raise RegistryLoadError(f"Unknown preset: {name}") from None

    def is_exclusive_category(self, category: Optional[str]) -> bool:
        return category is not None and category in self._exclusive


def _str_list(value: Any, *, where: str) -> Tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list):
        raise RegistryLoadError(f"{where} must be a list")
    out: List[str] = []
    for v in value:
        s = str(v).strip()
        if s:
            out.append(s)
    return tuple(out)


def _parse_packages(name: str, raw: Any) -> Dict[str, Tuple[PackageEntry, ...]]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise RegistryLoadError(f"{name}.packages must be a mapping of distro -> list")

    out: Dict[str, Tuple[PackageEntry, ...]] = {}
    for distro, specs in raw.items():
        entries: List[PackageEntry] = []
        for spec in _str_list(specs, where=f"{name}.packages.{distro}"):
            entry, reason = parse_entry(spec)
            if entry is None:
                raise RegistryLoadError(f"{name}.packages.{distro}: {reason}: {spec!r}")
            if entry.condition is not None:
                raise RegistryLoadError(
                    f"{name}.packages.{distro}: conditions belong in package lists: {spec!r}"
                )
            entries.append(entry)
        out[str(distro)] = tuple(entries)
    return out


def _parse_lists(name: str, raw: Any) -> Dict[str, Tuple[str, ...]]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise RegistryLoadError(f"{name}.package_lists must be a mapping of distro -> list")
    out: Dict[str, Tuple[str, ...]] = {}
    for distro, files in raw.items():
        if isinstance(files, str):
            files = [files]
        out[str(distro)] = _str_list(files, where=f"{name}.package_lists.{distro}")
    return out


def _parse_component(name: str, raw: Any) -> Component:
    if not isinstance(raw, dict):
        raise RegistryLoadError(f"Component {name} must be an object")
    return Component(
        name=name,
        packages_by_distro=MappingProxyType(_parse_packages(name, raw.get("packages"))),
        dependencies=_str_list(raw.get("dependencies"), where=f"{name}.dependencies"),
        conflicts=_str_list(raw.get("conflicts"), where=f"{name}.conflicts"),
        post_install=_str_list(raw.get("post_install"), where=f"{name}.post_install"),
        display_name=raw.get("name"),
        description=str(raw.get("description") or ""),
        category=raw.get("category"),
        hardware_requirements=_str_list(
            raw.get("hardware_requirements"), where=f"{name}.hardware_requirements"
        ),
        package_lists=MappingProxyType(_parse_lists(name, raw.get("package_lists"))),
    )


def load_registry(data: Mapping[str, Any]) -> ComponentRegistry:
    """Build a registry from parsed JSON/YAML.

    Accepts the flat ``{component: {...}}`` layout as well as
    ``{"components": {...}, "categories": {...}, "presets": {...}}``.
    Any dangling dependency or preset member fails the whole load.
    """

    if not isinstance(data, dict):
        raise RegistryLoadError("Component registry must be a mapping/dict")

    if isinstance(data.get("components"), dict):
        raw_components = data["components"]
        raw_categories = data.get("categories") or {}
        raw_presets = data.get("presets") or {}
    else:
        raw_components = data
        raw_categories = {}
        raw_presets = {}

    components: Dict[str, Component] = {}
    for name, raw in raw_components.items():
        components[str(name)] = _parse_component(str(name), raw)

    for comp in components.values():
        for dep in comp.dependencies:
            if dep not in components:
                raise RegistryLoadError(f"Component '{comp.name}' has invalid dependency: '{dep}'")

    if not isinstance(raw_categories, dict):
        raise RegistryLoadError("categories must be a mapping")
    exclusive = {
        str(cat): bool((info or {}).get("mutually_exclusive", False))
        for cat, info in raw_categories.items()
    }

    if not isinstance(raw_presets, dict):
        raise RegistryLoadError("presets must be a mapping")
    presets: Dict[str, Tuple[str, ...]] = {}
    for preset, info in raw_presets.items():
        members = info.get("components") if isinstance(info, dict) else info
        members = _str_list(members, where=f"presets.{preset}.components")
        for m in members:
            if m not in components:
                raise RegistryLoadError(f"Preset '{preset}' references unknown component '{m}'")
        presets[str(preset)] = members

    _warn_one_sided_conflicts(components)
    logger.info("Loaded %d components, %d presets", len(components), len(presets))
    return ComponentRegistry(components, exclusive_categories=exclusive, presets=presets)


def _warn_one_sided_conflicts(components: Mapping[str, Component]) -> None:
    for comp in components.values():
        for other in comp.conflicts:
            peer = components.get(other)
            if peer is not None and comp.name not in peer.conflicts:
                logger.warning(
                    "Component '%s' conflicts with '%s', but '%s' doesn't list '%s' as a conflict",
                    comp.name,
                    other,
                    other,
                    comp.name,
                )
