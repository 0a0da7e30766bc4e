"""
Plan — dependency-ordered sequence of steps.

Pure ordering logic. No I/O, no subprocess.

``Plan.build`` validates the step set and orders it with Kahn's
algorithm. Ready steps are taken in declaration order (a min-heap keyed
on the declaration index), so steps with no ordering constraint between
them keep the order the caller wrote them in.
"""

from __future__ import annotations

import heapq
from collections.abc import Iterable, Iterator, Sequence

from provisioner.core.engine.step import Step
from provisioner.core.errors import CycleDetected, DuplicateName, UnknownPrerequisite


class Plan:
    """An ordered, validated sequence of steps.

    Every step's prerequisites appear before it. Build with
    :meth:`Plan.build`; the constructor trusts its input.
    """

    def __init__(self, steps: Sequence[Step]):
        self._steps: tuple[Step, ...] = tuple(steps)
        self._index: dict[str, int] = {s.name: i for i, s in enumerate(self._steps)}

    # ── Construction ────────────────────────────────────────────

    @classmethod
    def build(cls, steps: Iterable[Step]) -> Plan:
        """Validate and order a set of steps.

        Raises:
            DuplicateName: Two steps share a name.
            UnknownPrerequisite: A prerequisite names no step in the set.
            CycleDetected: The prerequisite graph has a cycle.
        """
        declared = list(steps)
        _check_duplicates(declared)
        by_name = {s.name: s for s in declared}
        _check_references(declared, by_name)
        order = _stable_topological_order(declared)
        return cls([by_name[name] for name in order])

    # ── Access ──────────────────────────────────────────────────

    @property
    def steps(self) -> tuple[Step, ...]:
        return self._steps

    @property
    def names(self) -> list[str]:
        return [s.name for s in self._steps]

    def __iter__(self) -> Iterator[Step]:
        return iter(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def get(self, name: str) -> Step | None:
        """Look up a step by name."""
        i = self._index.get(name)
        return self._steps[i] if i is not None else None

    def index_of(self, name: str) -> int:
        """Position of a step in the plan. Raises KeyError if absent."""
        return self._index[name]

    def dependents_of(self, name: str) -> list[str]:
        """All steps that depend on ``name``, directly or transitively, in plan order."""
        affected = {name}
        result: list[str] = []
        for step in self._steps[self._index[name] + 1:]:
            if step.prerequisites & affected:
                affected.add(step.name)
                result.append(step.name)
        return result

    def subset(self, names: Iterable[str]) -> Plan:
        """A plan of the named steps plus their transitive prerequisites.

        Plan order is preserved.

        Raises:
            UnknownPrerequisite: A requested name is not in the plan.
        """
        wanted = list(names)
        missing = [n for n in wanted if n not in self._index]
        if missing:
            raise UnknownPrerequisite("<selection>", missing)

        keep: set[str] = set()
        stack = list(wanted)
        while stack:
            current = stack.pop()
            if current in keep:
                continue
            keep.add(current)
            stack.extend(self._steps[self._index[current]].prerequisites)

        return Plan([s for s in self._steps if s.name in keep])

    def to_dict(self) -> dict:
        return {
            "total": len(self._steps),
            "steps": [
                {
                    "position": i,
                    "name": s.name,
                    "severity": s.severity.value,
                    "prerequisites": sorted(s.prerequisites),
                    "description": s.description,
                }
                for i, s in enumerate(self._steps)
            ],
        }


# ── Validation helpers ─────────────────────────────────────────


def _check_duplicates(steps: list[Step]) -> None:
    seen: set[str] = set()
    dupes: list[str] = []
    for s in steps:
        if s.name in seen and s.name not in dupes:
            dupes.append(s.name)
        seen.add(s.name)
    if dupes:
        raise DuplicateName(dupes)


def _check_references(steps: list[Step], by_name: dict[str, Step]) -> None:
    for s in steps:
        missing = sorted(dep for dep in s.prerequisites if dep not in by_name)
        if missing:
            raise UnknownPrerequisite(s.name, missing)


def _stable_topological_order(steps: list[Step]) -> list[str]:
    """Kahn's algorithm, taking ready steps in declaration order."""
    position = {s.name: i for i, s in enumerate(steps)}
    in_degree = {s.name: len(s.prerequisites) for s in steps}

    # dep → steps that depend on it
    dependents: dict[str, list[str]] = {s.name: [] for s in steps}
    for s in steps:
        for dep in s.prerequisites:
            dependents[dep].append(s.name)

    ready = [(position[name], name) for name, deg in in_degree.items() if deg == 0]
    heapq.heapify(ready)

    order: list[str] = []
    while ready:
        _, name = heapq.heappop(ready)
        order.append(name)
        for successor in dependents[name]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                heapq.heappush(ready, (position[successor], successor))

    if len(order) < len(steps):
        done = set(order)
        remaining = [s for s in steps if s.name not in done]
        raise CycleDetected(_find_cycle(remaining))

    return order


def _find_cycle(remaining: list[Step]) -> list[str]:
    """Extract one concrete cycle from the steps Kahn could not order.

    Every remaining step has at least one remaining prerequisite, so
    walking prerequisites from any of them must revisit a step.
    """
    by_name = {s.name: s for s in remaining}
    position = {s.name: i for i, s in enumerate(remaining)}

    path: list[str] = []
    on_path: dict[str, int] = {}
    current = remaining[0].name
    while current not in on_path:
        on_path[current] = len(path)
        path.append(current)
        candidates = [d for d in by_name[current].prerequisites if d in by_name]
        current = min(candidates, key=position.__getitem__)

    return path[on_path[current]:] + [current]
