"""Server-side model of the browser tracking tag.

The page loads the tag library once, then replays the queued commands.
`BrowserTag` keeps that command queue so the page can pull it through
`drain()`; the storefront never blocks on it.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)

TAG_SCRIPT_URL = "https://connect.facebook.net/en_US/fbevents.js"

Command = dict[str, Any]


class BrowserTag:
    """Queue of tag commands (``init``, ``track``) waiting for the page."""

    def __init__(self, emit: Callable[[Command], None] | None = None):
        self._emit = emit
        self._queue: list[Command] = []
        self.pixel_id: str | None = None

    @property
    def loaded(self) -> bool:
        return self.pixel_id is not None

    def initialize(self, pixel_id: str) -> bool:
        """
        Load the tag for `pixel_id` and queue ``init`` plus a ``PageView``.

        A second call is a no-op, as is a blank pixel id.

        Returns:
            True if this call initialized the tag.
        """
        if not pixel_id or self.loaded:
            return False
        self.pixel_id = pixel_id
        self._push({"command": "init", "args": [pixel_id]})
        self._push({"command": "track", "args": ["PageView"]})
        logger.info("Browser tag initialized: %s", pixel_id)
        return True

    def track(self, event_name: str, data: dict[str, Any] | None = None) -> bool:
        """Queue a track command if the tag is loaded. Never raises."""
        if not self.loaded:
            return False
        try:
            self._push({"command": "track", "args": [event_name, dict(data or {})]})
        except Exception as e:
            logger.warning("Browser track failed for %s: %s", event_name, e)
            return False
        return True

    def _push(self, command: Command) -> None:
        self._queue.append(command)
        if self._emit is not None:
            self._emit(command)

    def drain(self) -> list[Command]:
        """Hand queued commands to the caller and clear the queue."""
        commands, self._queue = self._queue, []
        return commands

    def reset(self) -> None:
        self.pixel_id = None
        self._queue.clear()
