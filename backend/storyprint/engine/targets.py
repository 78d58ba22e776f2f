"""Identifiers of the things an author can drag or resize."""

from __future__ import annotations

import enum
from dataclasses import dataclass

WORKSPACE_TITLE_KEY = "__workspace_title__"
NODE_PREFIX = "node:"


class TargetKind(enum.Enum):
    SECTION = "section"
    WORKSPACE_TITLE = "workspace_title"
    COMMUNITY = "community"
    NODE = "node"


@dataclass(frozen=True)
class DragTarget:
    kind: TargetKind
    # Community id for sections and communities, node id for nodes
    id: str = ""

    @classmethod
    def section(cls, community_id: str) -> DragTarget:
        return cls(TargetKind.SECTION, community_id)

    @classmethod
    def workspace_title(cls) -> DragTarget:
        return cls(TargetKind.WORKSPACE_TITLE, WORKSPACE_TITLE_KEY)

    @classmethod
    def community(cls, community_id: str) -> DragTarget:
        return cls(TargetKind.COMMUNITY, community_id)

    @classmethod
    def node(cls, node_id: str) -> DragTarget:
        return cls(TargetKind.NODE, node_id)

    @property
    def key(self) -> str:
        """Wire form: community id, the title sentinel, or ``node:<id>``."""
        if self.kind == TargetKind.WORKSPACE_TITLE:
            return WORKSPACE_TITLE_KEY
        if self.kind == TargetKind.NODE:
            return f"{NODE_PREFIX}{self.id}"
        return self.id

    @property
    def is_resizable(self) -> bool:
        return self.kind in (TargetKind.SECTION, TargetKind.WORKSPACE_TITLE)

    @classmethod
    def parse(cls, key: str, *, community_as_section: bool = False) -> DragTarget:
        """Inverse of ``key``. A bare id names a community anchor unless
        ``community_as_section`` is set."""
        if key == WORKSPACE_TITLE_KEY:
            return cls.workspace_title()
        if key.startswith(NODE_PREFIX):
            return cls.node(key[len(NODE_PREFIX):])
        if community_as_section:
            return cls.section(key)
        return cls.community(key)
