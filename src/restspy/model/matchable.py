"""
RestSpy Matchables

Path matchers and the per-port registry that stores them.

A Matchable pairs a regular expression with a stable id. The registry keeps
one ordered list of matchables per port; lookups prefer the most recently
registered match, so registering a second matchable for the same pattern
overrides the first without removing it.
"""

import re
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True, eq=False)
class Matchable:
    """A path pattern with a stable identity."""

    pattern: str
    id: str = field(default_factory=_new_id)
    _regex: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, '_regex', re.compile(self.pattern))

    def matches(self, path: str) -> bool:
        """Check whether the pattern occurs anywhere in the path."""
        return self._regex.search(path) is not None


class MatchableRegistry:
    """
    Ordered per-port collection of matchables.

    Not thread-safe: confine an instance to one thread or guard it with a
    lock owned by the caller.

    Example:
        registry = MatchableRegistry()
        registry.register(Matchable('/users'), 8080)
        registry.register(Matchable('/users/.*'), 8080)

        registry.find_for_endpoint('/users/1', 8080)      # second matchable
        registry.find_all_for_endpoint('/users/1', 8080)  # both, in order
    """

    def __init__(self):
        self._elements: Dict[int, List[Matchable]] = {}

    def register(self, matchable: Matchable, port: int):
        """Append a matchable to the end of the port's list."""
        self._elements.setdefault(port, []).append(matchable)

    def unregister(self, matchable_id: str, port: int):
        """Remove every matchable with this id from the port's list."""
        if port not in self._elements:
            return
        self._elements[port] = [e for e in self._elements[port] if e.id != matchable_id]

    def reset(self, port: int):
        """Remove all matchables registered for a port."""
        if port in self._elements:
            self._elements[port] = []

    def find_for_endpoint(self, path: str, port: int) -> Optional[Matchable]:
        """
        Find the most recently registered matchable for a path.

        Args:
            path: Request path, e.g. '/users/123'
            port: Port the request arrived on

        Returns:
            The last matching matchable, or None
        """
        for element in reversed(self._elements.get(port, [])):
            if element.matches(path):
                return element
        return None

    def find_all_for_endpoint(self, path: str, port: int) -> List[Matchable]:
        """Find every matchable for a path, in registration order."""
        return [e for e in self._elements.get(port, []) if e.matches(path)]

    def all_for_port(self, port: int) -> List[Matchable]:
        """Snapshot of the matchables registered for a port."""
        return list(self._elements.get(port, []))
