"""Task store backends."""

from boardsync.store.base import FieldWrite, Subscription, TaskStore, ViewModeStore
from boardsync.store.memory import InMemoryTaskStore, InMemoryViewModeStore

__all__ = [
    "FieldWrite",
    "InMemoryTaskStore",
    "InMemoryViewModeStore",
    "Subscription",
    "TaskStore",
    "ViewModeStore",
]
