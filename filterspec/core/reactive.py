"""
Change notification for Filter instances.

A :class:`Dependency` is a list of zero-argument callbacks that run when
something they depend on changes. A :class:`ChangeNotifier` owns one
dependency for the whole instance plus one per filter name, and batches
notifications: while paused, changes are only recorded, and the outermost
``resume`` fires each touched dependency once.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Dict, Hashable, Iterator, List, Optional

from ..utils.logging import get_logger

logger = get_logger(__name__)

Callback = Callable[[], None]

class _Root:
    """Key of the whole-instance dependency. Never equal to a filter name."""

    def __repr__(self) -> str:
        return "ROOT"


ROOT = _Root()


class Dependency:
    """
    A set of callbacks interested in one piece of state.

    Example:
        >>> dep = Dependency()
        >>> unsubscribe = dep.subscribe(lambda: print("changed"))
        >>> dep.changed()
        changed
        >>> unsubscribe()
    """

    def __init__(self):
        self._callbacks: List[Callback] = []

    def subscribe(self, callback: Callback) -> Callable[[], None]:
        """
        Register a callback.

        Returns:
            A function that removes the callback again
        """
        if not callable(callback):
            raise TypeError("callback must be callable")
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def changed(self) -> None:
        """Call every registered callback, in registration order."""
        for callback in list(self._callbacks):
            callback()

    def __len__(self) -> int:
        return len(self._callbacks)


class ChangeNotifier:
    """
    Batches change notifications using a pause depth counter.

    Nested ``pause``/``resume`` pairs compose; only the outermost
    ``resume`` fires anything.
    """

    def __init__(self):
        self._depth = 0
        self._pending: Dict[Hashable, None] = {}
        self._dependencies: Dict[Hashable, Dependency] = {}

    @property
    def paused(self) -> bool:
        return self._depth > 0

    @property
    def depth(self) -> int:
        return self._depth

    def dependency(self, key: Hashable = ROOT) -> Dependency:
        """Get the dependency for a key, creating it on first use."""
        if key not in self._dependencies:
            self._dependencies[key] = Dependency()
        return self._dependencies[key]

    def pause(self) -> None:
        self._depth += 1

    def resume(self, still_changed: Optional[Callable[[Hashable], bool]] = None) -> None:
        """
        Leave one level of batching.

        Args:
            still_changed: Called with each pending key when the outermost
                batch ends; keys it rejects are dropped without firing
        """
        if self._depth == 0:
            raise RuntimeError("resume() called without matching pause()")

        self._depth -= 1
        if self._depth:
            return

        pending = list(self._pending)
        self._pending.clear()

        for key in pending:
            if still_changed is not None and not still_changed(key):
                continue
            dependency = self._dependencies.get(key)
            if dependency is not None:
                logger.debug(f"Notifying {len(dependency)} subscriber(s) of '{key}'")
                dependency.changed()

    def changed(self, key: Hashable) -> None:
        """Record a change to ``key`` (and the whole instance)."""
        self._pending[key] = None
        self._pending[ROOT] = None
        if not self._depth:
            self.pause()
            self.resume()

    @contextmanager
    def batch(self, still_changed: Optional[Callable[[Hashable], bool]] = None) -> Iterator[None]:
        """Context manager form of ``pause``/``resume``."""
        self.pause()
        try:
            yield
        finally:
            self.resume(still_changed)
