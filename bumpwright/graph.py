"""Release ordering for workspace members.

When member A requires member B, B has to be versioned first so the new
version can be written into A's manifest before A itself is released.
"""

from __future__ import annotations

from collections import deque
from typing import Mapping, Sequence

from .exceptions import ValidationError


def topo_sort(dependencies: Mapping[str, Sequence[str]]) -> list[str]:
    """Order package names so that every package follows its dependencies.

    Kahn's algorithm over the internal edges only; names outside the mapping
    and self references are ignored. Packages that become ready together are
    taken alphabetically, so the result is deterministic.

    Args:
        dependencies: Map of package name → names it depends on.

    Raises:
        ValidationError: If the internal dependencies form a cycle.

    Example:
        topo_sort({"app": ["core"], "core": [], "cli": ["app"]})
        → ["core", "app", "cli"]
    """
    waiting_on = {
        name: {dep for dep in deps if dep in dependencies and dep != name}
        for name, deps in dependencies.items()
    }
    dependents: dict[str, list[str]] = {name: [] for name in dependencies}
    for name, deps in waiting_on.items():
        for dep in deps:
            dependents[dep].append(name)

    ready = deque(sorted(name for name, deps in waiting_on.items() if not deps))
    order: list[str] = []
    while ready:
        current = ready.popleft()
        order.append(current)
        for dependent in sorted(dependents[current]):
            waiting_on[dependent].discard(current)
            if not waiting_on[dependent]:
                ready.append(dependent)

    if len(order) != len(dependencies):
        stuck = sorted(name for name, deps in waiting_on.items() if deps)
        raise ValidationError(f"Dependency cycle detected involving: {', '.join(stuck)}")
    return order
