"""Commit notifications handed back to the caller, who persists overrides."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from storyprint.models.layout_settings import Point, Size

logger = logging.getLogger(__name__)


@dataclass
class LayoutCallbacks:
    """Optional listeners. Any of them may be left unset."""

    community_positions_calculated: Callable[[dict[str, Point]], None] | None = None
    workspace_title_position_changed: Callable[[Point], None] | None = None
    workspace_title_size_changed: Callable[[Size], None] | None = None
    section_size_changed: Callable[[str, Size], None] | None = None
    community_position_changed: Callable[[str, Point], None] | None = None
    node_position_changed: Callable[[str, Point], None] | None = None

    def emit(self, name: str, *args) -> bool:
        """Invoke the named callback if set. Returns whether it was called."""
        fn = getattr(self, name)
        if fn is None:
            logger.debug("No listener for %s", name)
            return False
        fn(*args)
        return True
