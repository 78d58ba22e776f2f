"""Layout cache — solver results keyed by the inputs that can change them."""

from __future__ import annotations

import hashlib
import json
import logging
from collections import OrderedDict

from storyprint.engine.context import BaseLayout
from storyprint.models.requests import LayoutRequest

logger = logging.getLogger(__name__)


def layout_key(
    request: LayoutRequest, width: float, height: float, seed: int | None = None,
) -> str:
    """Digest of graph, community map, canvas size, narrative order, orientation and scatter seed.

    Overrides, display modes, colors and focus are deliberately absent: they
    never require a new simulation.
    """
    payload = {
        "nodes": [n.id for n in request.graph.nodes],
        "edges": [
            (r.id, r.source_id, r.target_id) for r in request.graph.relationships
        ],
        "communities": sorted(request.community_map.items()),
        "orders": sorted(
            (m.community_id, m.order) for m in request.meta_nodes if m.order is not None
        ),
        "canvas": [round(float(width), 3), round(float(height), 3)],
        "orientation": request.settings.layout_orientation.value,
        "seed": seed,
    }
    blob = json.dumps(payload, separators=(",", ":"), default=str)
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()


class LayoutCache:
    """Bounded LRU of BaseLayout objects."""

    def __init__(self, maxsize: int = 8) -> None:
        self.maxsize = max(1, maxsize)
        self._entries: OrderedDict[str, BaseLayout] = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> BaseLayout | None:
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        self._entries.move_to_end(key)
        self.hits += 1
        return entry

    def put(self, key: str, layout: BaseLayout) -> None:
        self._entries[key] = layout
        self._entries.move_to_end(key)
        while len(self._entries) > self.maxsize:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("Layout cache evicted %s", evicted[:12])

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
