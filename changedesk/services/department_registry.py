"""
Department registry — the open set of departments a request can be filed
under.

Kept in process memory and seeded with the default departments on start;
it is not part of the durable schema. Names are unique case-insensitively
and the list is kept sorted. A department still referenced by a change
request cannot be removed.
"""

import threading

DEFAULT_DEPARTMENTS = (
    "Engineering",
    "Marketing",
    "Human Resources",
    "Finance",
    "Operations",
)


class DepartmentRegistry:
    def __init__(self, initial=DEFAULT_DEPARTMENTS):
        self._lock = threading.Lock()
        self._departments = list(initial)

    def names(self) -> list[str]:
        with self._lock:
            return list(self._departments)

    def __contains__(self, name) -> bool:
        with self._lock:
            return name in self._departments

    def add(self, name: str) -> bool:
        """Add a department; False for blank or already-present (any case) names."""
        name = (name or "").strip()
        if not name:
            return False
        with self._lock:
            if any(d.lower() == name.lower() for d in self._departments):
                return False
            self._departments = sorted(self._departments + [name])
        return True

    def delete(self, name: str, in_use: set[str] | frozenset = frozenset()) -> bool:
        """Remove a department; False when unknown or still in use."""
        if name in in_use:
            return False
        with self._lock:
            if name not in self._departments:
                return False
            self._departments = [d for d in self._departments if d != name]
        return True
