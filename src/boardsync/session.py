"""Viewer session state: who is looking at the board and in which mode.

The context is created at session start, changed only through
``set_mode`` / ``set_viewer``, and torn down with ``end``. Components that
depend on it (visibility policy, board subscription) register listeners
instead of reading globals.

View mode is persisted per viewer in the board settings store and re-read
on the next ``start``. Guests have no settings row and stay on the public
board.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from boardsync.exceptions import StoreReadFailure
from boardsync.logging import get_logger
from boardsync.models.task import GUEST_OWNER_ID, BoardSettings, ViewMode
from boardsync.store.base import ViewModeStore

logger = get_logger(__name__)

SessionListener = Callable[["SessionContext"], Awaitable[None]]


class SessionContext:
    """Observable viewer identity + view mode."""

    def __init__(
        self,
        viewer_id: str | None = None,
        mode: ViewMode = ViewMode.PUBLIC,
        preferences: ViewModeStore | None = None,
    ) -> None:
        self._viewer_id = viewer_id
        self._mode = mode
        self._preferences = preferences
        self._listeners: list[SessionListener] = []
        self._active = False

    @property
    def viewer_id(self) -> str | None:
        return self._viewer_id

    @property
    def owner_id(self) -> str:
        """Owner stamped on tasks created in this session."""
        return self._viewer_id or GUEST_OWNER_ID

    @property
    def mode(self) -> ViewMode:
        return self._mode

    @property
    def active(self) -> bool:
        return self._active

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        """Register a change listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Begin the session, restoring the viewer's persisted view mode."""
        self._mode = await self._load_mode(default=self._mode)
        self._active = True
        logger.info(f"[Session] Started for {self.owner_id} in {self._mode} mode")

    async def end(self) -> None:
        self._active = False
        self._listeners.clear()
        logger.info(f"[Session] Ended for {self.owner_id}")

    # ------------------------------------------------------------------
    # Changes
    # ------------------------------------------------------------------

    async def set_mode(self, mode: ViewMode) -> None:
        """Switch view mode, persisting it for the viewer first."""
        if not self._viewer_id:
            logger.info("[Session] Guests cannot change the view mode")
            return
        if self._preferences is not None:
            await self._preferences.save_settings(
                BoardSettings(
                    user_id=self._viewer_id,
                    view_mode=mode,
                    last_changed=datetime.now(timezone.utc),
                )
            )
        if mode == self._mode:
            return
        logger.info(f"[Session] Switching from {self._mode} to {mode}")
        self._mode = mode
        await self._notify()

    async def set_viewer(self, viewer_id: str | None) -> None:
        """Change identity (log in / log out) and load that viewer's mode.

        If the new viewer's settings cannot be loaded, the session still
        switches to that viewer on the public board, notifies listeners,
        and then re-raises.

        Raises:
            StoreReadFailure: if the viewer's settings cannot be loaded
        """
        if viewer_id == self._viewer_id:
            return
        self._viewer_id = viewer_id
        self._mode = ViewMode.PUBLIC
        try:
            self._mode = await self._load_mode(default=ViewMode.PUBLIC)
        except StoreReadFailure as e:
            logger.warning(f"[Session] Could not load settings for {self.owner_id}, using public board: {e}")
            await self._notify()
            raise
        logger.info(f"[Session] Viewer is now {self.owner_id} ({self._mode})")
        await self._notify()

    async def _load_mode(self, default: ViewMode) -> ViewMode:
        if not self._viewer_id or self._preferences is None:
            return default
        stored = await self._preferences.load_settings(self._viewer_id)
        return stored.view_mode if stored is not None else default

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            await listener(self)
