from __future__ import annotations

import heapq
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Set, Tuple

from .errors import ConflictError, CycleError, UnknownComponentError
from .registry import Component, ComponentRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedSet:
    order: Tuple[Component, ...]
    selected: Tuple[str, ...]
    added: Tuple[str, ...]

    @property
    def names(self) -> List[str]:
        return [c.name for c in self.order]

    def summary_lines(self) -> List[str]:
        lines: List[str] = []
        for comp in self.order:
            label = f"{comp.name} ({comp.display_name})" if comp.display_name else comp.name
            tag = "SELECTED" if comp.name in self.selected else "DEPENDENCY"
            lines.append(f"{label} [{tag}]")
        return lines


def _dedup(names: Iterable[str]) -> List[str]:
    out: List[str] = []
    for n in names:
        n = str(n).strip()
        if n and n not in out:
            out.append(n)
    return out


def _expand(selected: List[str], registry: ComponentRegistry) -> Dict[str, int]:
    """Transitive closure of ``selected``.

    Returns component -> rank, where rank is the position of the earliest
    selected component that pulls it in. Raises CycleError on the first
    dependency chain that loops back onto itself.
    """

    rank: Dict[str, int] = {}
    done: Set[str] = set()

    def visit(name: str, stack: List[str], r: int) -> None:
        if name in stack:
            start = stack.index(name)
            raise CycleError(stack[start:] + [name])
        if name not in rank or r < rank[name]:
            rank[name] = r
        if name in done:
            return
        stack.append(name)
        for dep in registry.lookup(name).dependencies:
            visit(dep, stack, r)
        stack.pop()
        done.add(name)

    for r, name in enumerate(selected):
        visit(name, [], r)
    return rank


def _check_conflicts(names: List[str], registry: ComponentRegistry) -> None:
    ordered = sorted(names)
    for i, a in enumerate(ordered):
        ca = registry.lookup(a)
        for b in ordered[i + 1 :]:
            cb = registry.lookup(b)
            if ca.conflicts_with(cb):
                raise ConflictError(a, b)
            if ca.category == cb.category and registry.is_exclusive_category(ca.category):
                raise ConflictError(a, b, category=ca.category)


def _topo_order(rank: Dict[str, int], registry: ComponentRegistry) -> List[str]:
    indegree: Dict[str, int] = {n: 0 for n in rank}
    dependents: Dict[str, List[str]] = {n: [] for n in rank}
    for n in rank:
        for dep in set(registry.lookup(n).dependencies):
            indegree[n] += 1
            dependents[dep].append(n)

    ready: List[Tuple[int, str]] = [(rank[n], n) for n, d in indegree.items() if d == 0]
    heapq.heapify(ready)
    order: List[str] = []
    while ready:
        _, n = heapq.heappop(ready)
        order.append(n)
        for m in dependents[n]:
            indegree[m] -= 1
            if indegree[m] == 0:
                heapq.heappush(ready, (rank[m], m))

    if len(order) != len(rank):
        # _expand rejects cycles first, so this only trips on a broken registry.
        stuck = sorted(n for n, d in indegree.items() if d > 0)
        raise CycleError(stuck)
    return order


def resolve(selected: Iterable[str], registry: ComponentRegistry) -> ResolvedSet:
    """Expand, conflict-check and order a component selection.

    All-or-nothing: raises ``UnknownComponentError``, ``CycleError`` or
    ``ConflictError`` without returning anything partial. Dependencies come
    before dependents; ties go to selection order, then name.
    """

    picks = _dedup(selected)
    for name in picks:
        if name not in registry:
            raise UnknownComponentError(name)

    logger.info("Resolving dependencies for components: %s", " ".join(picks))

    rank = _expand(picks, registry)
    _check_conflicts(list(rank), registry)
    order = _topo_order(rank, registry)

    added = tuple(n for n in order if n not in picks)
    if added:
        logger.info("Added dependencies: %s", " ".join(added))
    logger.info("Dependency resolution complete. Final component list: %s", " ".join(order))

    return ResolvedSet(
        order=tuple(registry.lookup(n) for n in order),
        selected=tuple(picks),
        added=added,
    )
