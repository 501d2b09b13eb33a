"""
Per-session view instances.

Views hold client-side state (table sorting, selection, the open panel) that
survives between requests of one session. They are kept in memory, keyed by
user id and view name, and unmounted on logout.
"""

import threading
from typing import Callable, Dict, Tuple, TypeVar

import structlog

logger = structlog.get_logger(__name__)


class BaseView:
    """State owner with a mounted flag. Results arriving after unmount are dropped."""

    def __init__(self):
        self.mounted = True

    def unmount(self) -> None:
        self.mounted = False

    def _discard_late(self, what: str) -> bool:
        if not self.mounted:
            logger.debug("Discarding result for unmounted view", view=type(self).__name__, result=what)
            return True
        return False


V = TypeVar("V", bound=BaseView)


class ViewRegistry:
    def __init__(self):
        self._views: Dict[Tuple[int, str], BaseView] = {}
        self._lock = threading.Lock()

    def get_or_create(self, user_id: int, name: str, factory: Callable[[], V]) -> V:
        key = (user_id, name)
        with self._lock:
            view = self._views.get(key)
            if view is None or not view.mounted:
                view = factory()
                self._views[key] = view
            return view

    def drop(self, user_id: int, name: str) -> None:
        with self._lock:
            view = self._views.pop((user_id, name), None)
        if view is not None:
            view.unmount()

    def unmount_user(self, user_id: int) -> int:
        with self._lock:
            keys = [key for key in self._views if key[0] == user_id]
            views = [self._views.pop(key) for key in keys]
        for view in views:
            view.unmount()
        if views:
            logger.info("Unmounted session views", user_id=user_id, count=len(views))
        return len(views)

    def __len__(self):
        return len(self._views)
