"""Circular dependency detection over the prerequisite graph.

The graph maps each course to the courses it requires. An edge A→B in the
"B requires A" sense is stored here as ``graph[B] = {A, ...}``; following
those edges from a course walks its prerequisite chain.
"""
from __future__ import annotations
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Set

from eligibility.domain.eligibility.enums import CircularDependencySeverity
from eligibility.domain.eligibility.models import CircularDependencyResult

logger = logging.getLogger(__name__)

PrerequisiteGraph = Mapping[str, Iterable[str]]


def _neighbours(graph: PrerequisiteGraph, node: str) -> List[str]:
    return sorted(set(graph.get(node, ())))


def find_cycle_path(graph: PrerequisiteGraph, start: str) -> Optional[List[str]]:
    """First cycle met by a DFS from `start`, as a closed path (first == last).

    Iterative DFS tracking the current visitation stack; an edge back to a
    node on the stack closes a cycle. Neighbours are visited in sorted order
    so the same graph always yields the same path.
    """
    on_stack: Dict[str, int] = {}
    done: Set[str] = set()
    path: List[str] = []
    iterators: List[Iterable[str]] = []

    def push(node: str) -> None:
        on_stack[node] = len(path)
        path.append(node)
        iterators.append(iter(_neighbours(graph, node)))

    push(start)
    while iterators:
        nxt = next(iterators[-1], None)
        if nxt is None:
            node = path.pop()
            iterators.pop()
            del on_stack[node]
            done.add(node)
            continue
        if nxt in on_stack:
            return path[on_stack[nxt]:] + [nxt]
        if nxt not in done:
            push(nxt)
    return None


def reachable(graph: PrerequisiteGraph, start: str) -> Set[str]:
    seen = {start}
    frontier = [start]
    while frontier:
        node = frontier.pop()
        for nxt in _neighbours(graph, node):
            if nxt not in seen:
                seen.add(nxt)
                frontier.append(nxt)
    return seen


def cyclic_components(graph: PrerequisiteGraph, nodes: Iterable[str]) -> List[Set[str]]:
    """Strongly connected components among `nodes` that contain a cycle (iterative Tarjan)."""
    nodes = sorted(set(nodes))
    scope = set(nodes)
    index: Dict[str, int] = {}
    low: Dict[str, int] = {}
    stack: List[str] = []
    on_stack: Set[str] = set()
    components: List[Set[str]] = []
    counter = 0

    for root in nodes:
        if root in index:
            continue
        work = [(root, iter([n for n in _neighbours(graph, root) if n in scope]))]
        index[root] = low[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)
        while work:
            node, it = work[-1]
            nxt = next(it, None)
            if nxt is not None:
                if nxt not in index:
                    index[nxt] = low[nxt] = counter
                    counter += 1
                    stack.append(nxt)
                    on_stack.add(nxt)
                    work.append((nxt, iter([n for n in _neighbours(graph, nxt) if n in scope])))
                elif nxt in on_stack:
                    low[node] = min(low[node], index[nxt])
                continue
            work.pop()
            if work:
                parent = work[-1][0]
                low[parent] = min(low[parent], low[node])
            if low[node] == index[node]:
                component = set()
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.add(member)
                    if member == node:
                        break
                if len(component) > 1 or node in set(graph.get(node, ())):
                    components.append(component)
    return components


def dependents_of(graph: PrerequisiteGraph, courses: Set[str]) -> Set[str]:
    """Courses outside `courses` that transitively require one of them."""
    reverse: Dict[str, Set[str]] = {}
    for course, required in graph.items():
        for r in required:
            reverse.setdefault(r, set()).add(course)
    seen: Set[str] = set()
    frontier = list(courses)
    while frontier:
        node = frontier.pop()
        for dependent in reverse.get(node, ()):
            if dependent not in seen and dependent not in courses:
                seen.add(dependent)
                frontier.append(dependent)
    return seen


def severity_for(cycle_size: int, dependent_count: int) -> CircularDependencySeverity:
    score = cycle_size + dependent_count
    if score <= 2:
        return CircularDependencySeverity.MINOR
    if score <= 4:
        return CircularDependencySeverity.MODERATE
    if score <= 7:
        return CircularDependencySeverity.SEVERE
    return CircularDependencySeverity.CRITICAL


def would_create_cycle(graph: PrerequisiteGraph, course_id: str, required_course_id: str) -> bool:
    """True if making `course_id` require `required_course_id` closes a loop."""
    if course_id == required_course_id:
        return True
    return course_id in reachable(graph, required_course_id)


class CircularDependencyDetector:
    """Detects whether a course's prerequisite chain contains a cycle."""

    def detect(self, graph: PrerequisiteGraph, course_id: str) -> CircularDependencyResult:
        now = datetime.now(timezone.utc)
        path = find_cycle_path(graph, course_id)
        if path is None:
            return CircularDependencyResult(
                id=str(uuid.uuid4()),
                course_id=course_id,
                detection_date=now,
                has_circular_dependency=False,
            )

        components = cyclic_components(graph, reachable(graph, course_id))
        involved: Set[str] = set().union(*components)
        dependents = dependents_of(graph, involved)
        severity = severity_for(len(involved), len(dependents))
        logger.warning(
            "Circular prerequisite dependency reachable from %s: %s (%s)",
            course_id, " -> ".join(path), severity.value,
        )
        return CircularDependencyResult(
            id=str(uuid.uuid4()),
            course_id=course_id,
            detection_date=now,
            has_circular_dependency=True,
            dependency_path=path,
            involved_courses=sorted(involved),
            severity=severity.value,
            resolution_recommendations=self._recommendation(path),
        )

    @staticmethod
    def _recommendation(path: List[str]) -> str:
        if len(path) == 2:
            return f"Remove the requirement of {path[0]} on itself."
        edges = ", ".join(f"{a} requires {b}" for a, b in zip(path, path[1:]))
        return f"Remove one of these prerequisite links to break the cycle: {edges}."
