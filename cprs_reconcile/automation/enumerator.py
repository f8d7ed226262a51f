"""
Breadth-first enumeration of the CPRS dialog's control tree.

Every pass produces a fresh, immutable ``Snapshot``. Nodes are stored in an
arena (a tuple in enumeration order) indexed by native handle; the whole
snapshot is discarded at the end of the reconciliation cycle that created it.
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from .driver.exceptions import ControlGoneError, EnumerationFailed
from .driver.windows import Bounds, WindowApi

logger = logging.getLogger(__name__)

_CYCLE_IDS = itertools.count(1)


@dataclass(frozen=True, slots=True)
class Rect:
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_bounds(cls, bounds: Bounds) -> "Rect":
        left, top, right, bottom = bounds
        return cls(x=int(left), y=int(top), width=int(right) - int(left), height=int(bottom) - int(top))

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def intersects(self, bounds: Bounds) -> bool:
        left, top, right, bottom = bounds
        return self.x < right and self.right > left and self.y < bottom and self.bottom > top

    def center(self) -> Tuple[int, int]:
        return self.x + self.width // 2, self.y + self.height // 2


@dataclass(frozen=True, slots=True)
class ControlNode:
    """One native control captured during a single enumeration pass."""

    handle: int
    class_name: str
    rect: Rect
    parent_handle: Optional[int]
    visible: bool
    enabled: bool
    text: str


class Snapshot:
    """Immutable arena of ControlNodes for one reconciliation cycle."""

    __slots__ = ("cycle_id", "root_handle", "_nodes", "_index", "_children")

    def __init__(self, cycle_id: int, root_handle: int, nodes: Sequence[ControlNode]) -> None:
        self.cycle_id = cycle_id
        self.root_handle = root_handle
        self._nodes: Tuple[ControlNode, ...] = tuple(nodes)
        self._index: Dict[int, int] = {node.handle: pos for pos, node in enumerate(self._nodes)}
        children: Dict[int, List[ControlNode]] = {}
        for node in self._nodes:
            if node.parent_handle is not None:
                children.setdefault(node.parent_handle, []).append(node)
        self._children = {handle: tuple(kids) for handle, kids in children.items()}

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[ControlNode]:
        return iter(self._nodes)

    def __contains__(self, handle: object) -> bool:
        return handle in self._index

    @property
    def nodes(self) -> Tuple[ControlNode, ...]:
        return self._nodes

    @property
    def root(self) -> Optional[ControlNode]:
        return self.get(self.root_handle)

    def get(self, handle: int) -> Optional[ControlNode]:
        pos = self._index.get(handle)
        return None if pos is None else self._nodes[pos]

    def position(self, node: ControlNode) -> int:
        """Return the enumeration index of ``node`` within this snapshot."""
        return self._index[node.handle]

    def parent(self, node: ControlNode) -> Optional[ControlNode]:
        if node.parent_handle is None:
            return None
        return self.get(node.parent_handle)

    def children(self, node: ControlNode) -> Tuple[ControlNode, ...]:
        return self._children.get(node.handle, ())

    def siblings(self, node: ControlNode) -> Tuple[ControlNode, ...]:
        if node.parent_handle is None:
            return ()
        return tuple(n for n in self._children.get(node.parent_handle, ()) if n.handle != node.handle)

    def ancestors(self, node: ControlNode) -> Iterator[ControlNode]:
        """Yield ancestors nearest-first, stopping at the snapshot root."""
        seen = {node.handle}
        current = self.parent(node)
        while current is not None and current.handle not in seen:
            seen.add(current.handle)
            yield current
            current = self.parent(current)


class WindowTreeEnumerator:
    """Walk the descendants of a root window breadth-first."""

    def __init__(self, window_api: WindowApi) -> None:
        self._api = window_api

    def enumerate(self, root_handle: int) -> Snapshot:
        if not self._api.is_window(root_handle):
            raise EnumerationFailed(f"Root window {root_handle} is not a valid window")
        try:
            root_info = self._api.describe(root_handle)
        except ControlGoneError as exc:
            raise EnumerationFailed(f"Root window {root_handle} vanished before enumeration") from exc

        screen = self._api.screen_bounds()
        nodes: List[ControlNode] = [self._build_node(root_handle, None, root_info, screen)]
        seen = {root_handle}
        skipped = 0
        queue = deque([root_handle])
        while queue:
            parent = queue.popleft()
            try:
                child_handles = self._api.child_handles(parent)
            except ControlGoneError as exc:
                if parent == root_handle:
                    raise EnumerationFailed(f"Root window {root_handle} closed during enumeration") from exc
                logger.warning("Skipping children of vanished window %s: %s", parent, exc)
                skipped += 1
                continue
            for handle in child_handles:
                if handle in seen:
                    continue
                seen.add(handle)
                try:
                    info = self._api.describe(handle)
                except ControlGoneError as exc:
                    logger.warning("Skipping control %s closed mid-enumeration: %s", handle, exc)
                    skipped += 1
                    continue
                nodes.append(self._build_node(handle, parent, info, screen))
                queue.append(handle)

        snapshot = Snapshot(next(_CYCLE_IDS), root_handle, nodes)
        logger.debug(
            "Enumerated %d control(s) under %s (cycle %s, %d skipped)",
            len(snapshot),
            root_handle,
            snapshot.cycle_id,
            skipped,
        )
        return snapshot

    @staticmethod
    def _build_node(handle: int, parent: Optional[int], info, screen: Optional[Bounds]) -> ControlNode:
        rect = Rect.from_bounds(info.bounds)
        visible = bool(info.visible) and not rect.is_empty()
        if visible and screen is not None and not rect.intersects(screen):
            visible = False
        return ControlNode(
            handle=handle,
            class_name=info.class_name,
            rect=rect,
            parent_handle=parent,
            visible=visible,
            enabled=bool(info.enabled),
            text=info.text,
        )
