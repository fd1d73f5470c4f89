from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import (
    AbstractSet,
    Any,
    Dict,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from .conditions import ConditionEvaluator
from .facts import FactSnapshot
from .pkglist import PackageEntry
from .profiles import HardwareProfile
from .registry import Component

logger = logging.getLogger(__name__)

KNOWN_REQUIREMENTS = frozenset({"gpu_acceleration", "wayland_support", "vulkan_support"})


@dataclass(frozen=True)
class InstallPackage:
    entry: PackageEntry
    source: str
    owner: str

    @property
    def key(self) -> Tuple[str, str]:
        return (self.source, self.entry.name)

    def describe(self) -> str:
        return f"install {self.source}:{self.entry.name} ({self.owner})"


@dataclass(frozen=True)
class RunPostInstall:
    action_id: str
    owner: str

    def describe(self) -> str:
        return f"post-install {self.action_id} ({self.owner})"


PlanStep = Union[InstallPackage, RunPostInstall]


@dataclass(frozen=True)
class InstallBatch:
    """Consecutive installs sharing one installer."""

    source: str
    steps: Tuple[InstallPackage, ...]

    @property
    def packages(self) -> List[str]:
        return [s.entry.name for s in self.steps]


@dataclass(frozen=True)
class InstallationPlan:
    distro: str
    steps: Tuple[PlanStep, ...]
    skipped: Tuple[Tuple[str, str, str], ...] = ()  # (owner, entry spec, reason)
    warnings: Tuple[str, ...] = ()
    environment: Mapping[str, str] = field(default_factory=dict)
    hardware_profile: Optional[str] = None

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[PlanStep]:
        return iter(self.steps)

    @property
    def installs(self) -> List[InstallPackage]:
        return [s for s in self.steps if isinstance(s, InstallPackage)]

    @property
    def post_install(self) -> List[RunPostInstall]:
        return [s for s in self.steps if isinstance(s, RunPostInstall)]

    def steps_for(self, owner: str) -> List[PlanStep]:
        return [s for s in self.steps if s.owner == owner]

    def batches(self) -> Iterator[Union[InstallBatch, RunPostInstall]]:
        """Group adjacent same-source installs; plan order is preserved."""

        pending: List[InstallPackage] = []
        for step in self.steps:
            if isinstance(step, InstallPackage):
                if pending and pending[-1].source != step.source:
                    yield InstallBatch(source=pending[0].source, steps=tuple(pending))
                    pending = []
                pending.append(step)
                continue
            if pending:
                yield InstallBatch(source=pending[0].source, steps=tuple(pending))
                pending = []
            yield step
        if pending:
            yield InstallBatch(source=pending[0].source, steps=tuple(pending))

    def to_dict(self) -> Dict[str, Any]:
        steps: List[Dict[str, Any]] = []
        for s in self.steps:
            if isinstance(s, InstallPackage):
                steps.append(
                    {
                        "type": "install",
                        "name": s.entry.name,
                        "source": s.source,
                        "declared_source": s.entry.source,
                        "section": s.entry.section,
                        "condition": s.entry.condition,
                        "owner": s.owner,
                    }
                )
            else:
                steps.append({"type": "post_install", "action": s.action_id, "owner": s.owner})
        return {
            "distro": self.distro,
            "steps": steps,
            "skipped": [list(x) for x in self.skipped],
            "warnings": list(self.warnings),
            "environment": dict(self.environment),
            "hardware_profile": self.hardware_profile,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "InstallationPlan":
        steps: List[PlanStep] = []
        for raw in data.get("steps") or []:
            kind = raw.get("type")
            if kind == "install":
                # Older state files only carry the effective source.
                declared = raw["declared_source"] if "declared_source" in raw else raw.get("source")
                entry = PackageEntry(
                    name=raw["name"],
                    source=declared,
                    section=raw.get("section"),
                    condition=raw.get("condition"),
                )
                steps.append(InstallPackage(entry=entry, source=raw["source"], owner=raw["owner"]))
            elif kind == "post_install":
                steps.append(RunPostInstall(action_id=raw["action"], owner=raw["owner"]))
            else:
                raise ValueError(f"Unknown plan step type: {kind!r}")
        return cls(
            distro=str(data.get("distro") or ""),
            steps=tuple(steps),
            skipped=tuple(tuple(x) for x in data.get("skipped") or []),
            warnings=tuple(data.get("warnings") or []),
            environment=dict(data.get("environment") or {}),
            hardware_profile=data.get("hardware_profile"),
        )


def check_hardware_requirements(component: Component, facts: FactSnapshot) -> List[str]:
    """Unmet requirements for one component, as human-readable warnings."""

    missing: List[str] = []
    for req in component.hardware_requirements:
        if req not in KNOWN_REQUIREMENTS:
            logger.warning("Unknown hardware requirement for %s: %s", component.name, req)
            continue
        if req not in facts.capabilities:
            logger.warning("Hardware requirement not met for %s: %s", component.name, req)
            missing.append(f"{component.name}: {req}")
    return missing


class _PlanWriter:
    def __init__(self, distro: str) -> None:
        self.distro = distro
        self.steps: List[PlanStep] = []
        self.seen: Dict[Tuple[str, str], str] = {}

    def install(self, entry: PackageEntry, owner: str) -> None:
        step = InstallPackage(entry=entry, source=entry.effective_source(self.distro), owner=owner)
        first = self.seen.get(step.key)
        if first is not None:
            logger.debug("Skipping duplicate %s from %s (already owned by %s)", step.key, owner, first)
            return
        self.seen[step.key] = owner
        self.steps.append(step)


def build(
    resolved_order: Sequence[Component],
    distro: str,
    package_lists: Mapping[str, Sequence[PackageEntry]],
    facts: FactSnapshot,
    preferences: AbstractSet[str],
    *,
    profile: Optional[HardwareProfile] = None,
) -> InstallationPlan:
    """Turn a resolved component order into an ordered, deduplicated plan.

    Per component: registry packages for ``distro``, then its package-list
    entries whose condition holds, then its post-install actions. Hardware
    profile packages go first. The first occurrence of a ``(source, name)``
    pair wins; steps are never moved across components.
    """

    evaluator = ConditionEvaluator(facts, preferences)
    writer = _PlanWriter(distro)
    skipped: List[Tuple[str, str, str]] = []
    warnings: List[str] = []

    if profile is not None:
        for entry in profile.packages_for(distro):
            writer.install(entry, profile.owner)

    for comp in resolved_order:
        pkgs = comp.packages_for(distro)
        if pkgs is None:
            logger.info("Component %s has no packages for distro %s", comp.name, distro)
        else:
            for entry in pkgs:
                writer.install(entry, comp.name)

        for entry in package_lists.get(comp.name, ()):
            if evaluator(entry.condition):
                writer.install(entry, comp.name)
            else:
                skipped.append((comp.name, entry.spec(), f"condition '{entry.condition}' is false"))

        for action in comp.post_install:
            writer.steps.append(RunPostInstall(action_id=action, owner=comp.name))

        warnings.extend(check_hardware_requirements(comp, facts))

    for name in sorted(evaluator.unknown_conditions):
        warnings.append(f"unrecognized condition: {name}")

    plan = InstallationPlan(
        distro=distro,
        steps=tuple(writer.steps),
        skipped=tuple(skipped),
        warnings=tuple(warnings),
        environment=dict(profile.environment_vars) if profile is not None else {},
        hardware_profile=profile.profile_id if profile is not None else facts.hardware_profile,
    )
    logger.info(
        "Plan built: %d installs, %d post-install actions, %d skipped by condition",
        len(plan.installs),
        len(plan.post_install),
        len(skipped),
    )
    return plan
