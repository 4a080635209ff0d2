"""Visibility scoping of board subscriptions (public vs private tasks)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from boardsync.models.task import Task, ViewMode

if TYPE_CHECKING:
    from boardsync.session import SessionContext


class VisibilityPredicate(BaseModel):
    """Filter condition a subscription is scoped by.

    With ``owner_id`` set the predicate is "is_private AND owner == owner_id",
    otherwise it is "NOT is_private" regardless of owner.
    """

    model_config = ConfigDict(frozen=True)

    owner_id: str | None = None

    @property
    def private(self) -> bool:
        return self.owner_id is not None

    def matches(self, task: Task) -> bool:
        if self.private:
            return task.is_private is True and task.owner_id == self.owner_id
        return task.is_private is not True

    def __str__(self) -> str:
        if self.private:
            return f"private(owner={self.owner_id})"
        return "public"


PUBLIC = VisibilityPredicate()


def resolve_predicate(mode: ViewMode, viewer_id: str | None) -> VisibilityPredicate:
    """Pick the predicate for a mode and viewer; guests always see the public board."""
    if mode == ViewMode.PRIVATE and viewer_id:
        return VisibilityPredicate(owner_id=viewer_id)
    return PUBLIC


class VisibilityPolicy:
    """Derives the current visibility predicate from a session context."""

    def __init__(self, session: SessionContext) -> None:
        self._session = session

    def current(self) -> VisibilityPredicate:
        return resolve_predicate(self._session.mode, self._session.viewer_id)
