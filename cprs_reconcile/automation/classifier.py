"""
Data-driven classification of CPRS controls into semantic roles.

CPRS ships several checkbox classes (``TORCheckBox``, ``TCPRSDialogCheckBox``
and friends) that behave identically for our purposes. Rather than model them
as a type hierarchy, a ``ClassificationTable`` maps class names to roles so a
new foreign class can be added through settings instead of code.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Sequence, Tuple, Union

from .enumerator import ControlNode, Snapshot

logger = logging.getLogger(__name__)


class ControlRole(str, enum.Enum):
    CHECKBOX = "checkbox"
    GROUP_CONTAINER = "group_container"
    SCROLL_CONTAINER = "scroll_container"
    BUTTON = "button"
    STATIC_TEXT = "static_text"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Union[str, "ControlRole"]) -> "ControlRole":
        if isinstance(value, ControlRole):
            return value
        key = str(value).strip().lower().replace(" ", "_").replace("-", "_")
        aliases = {"group": cls.GROUP_CONTAINER, "scroll": cls.SCROLL_CONTAINER, "text": cls.STATIC_TEXT}
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError as exc:
            raise ValueError(f"Unknown control role '{value}'") from exc


class Confidence(str, enum.Enum):
    HIGH = "high"
    LOW = "low"


@dataclass(frozen=True, slots=True)
class Classification:
    role: ControlRole
    confidence: Confidence = Confidence.HIGH

    @property
    def is_low_confidence(self) -> bool:
        return self.confidence is Confidence.LOW


UNKNOWN = Classification(ControlRole.UNKNOWN)

DEFAULT_CLASS_ROLES: Dict[str, ControlRole] = {
    "TORCheckBox": ControlRole.CHECKBOX,
    "TCPRSDialogParentCheckBox": ControlRole.CHECKBOX,
    "TCPRSDialogCheckBox": ControlRole.CHECKBOX,
    "TCheckBox": ControlRole.CHECKBOX,
    "TGroupBox": ControlRole.GROUP_CONTAINER,
    "TScrollBox": ControlRole.SCROLL_CONTAINER,
    "TButton": ControlRole.BUTTON,
    "TBitBtn": ControlRole.BUTTON,
    "Button": ControlRole.BUTTON,
    "TStaticText": ControlRole.STATIC_TEXT,
    "TVA508StaticText": ControlRole.STATIC_TEXT,
    "TLabel": ControlRole.STATIC_TEXT,
    "Static": ControlRole.STATIC_TEXT,
}

# Geometry fallback thresholds, in pixels.
_BOX_MIN = 8
_BOX_MAX = 24
_BOX_SKEW = 4
_CAPTION_GAP = 12


@dataclass(frozen=True)
class ClassificationTable:
    """Exact and prefix class-name rules. Matching is case-insensitive."""

    exact: Mapping[str, ControlRole] = field(default_factory=lambda: dict(DEFAULT_CLASS_ROLES))
    prefixes: Sequence[Tuple[str, ControlRole]] = ()

    def __post_init__(self) -> None:
        lowered = {str(name).lower(): ControlRole.parse(role) for name, role in self.exact.items()}
        ordered = sorted(
            ((str(prefix).lower(), ControlRole.parse(role)) for prefix, role in self.prefixes if prefix),
            key=lambda item: len(item[0]),
            reverse=True,
        )
        object.__setattr__(self, "_exact", lowered)
        object.__setattr__(self, "_prefixes", tuple(ordered))

    def lookup(self, class_name: str) -> Optional[ControlRole]:
        key = (class_name or "").lower()
        role = self._exact.get(key)  # type: ignore[attr-defined]
        if role is not None:
            return role
        for prefix, prefix_role in self._prefixes:  # type: ignore[attr-defined]
            if key.startswith(prefix):
                return prefix_role
        return None

    def with_overrides(
        self,
        overrides: Optional[Mapping[str, Union[str, ControlRole]]] = None,
        prefixes: Optional[Mapping[str, Union[str, ControlRole]]] = None,
    ) -> "ClassificationTable":
        exact = dict(self.exact)
        for name, role in (overrides or {}).items():
            exact[str(name)] = ControlRole.parse(role)
        merged_prefixes = list(self.prefixes)
        for prefix, role in (prefixes or {}).items():
            merged_prefixes.append((str(prefix), ControlRole.parse(role)))
        return ClassificationTable(exact=exact, prefixes=tuple(merged_prefixes))


class ControlClassifier:
    """Total, side-effect free mapping of ControlNode to Classification."""

    def __init__(self, table: Optional[ClassificationTable] = None) -> None:
        self.table = table or ClassificationTable()

    def classify(self, node: ControlNode, snapshot: Optional[Snapshot] = None) -> Classification:
        return self.classify_class(node.class_name, node=node, snapshot=snapshot)

    def classify_class(
        self,
        class_name: str,
        *,
        node: Optional[ControlNode] = None,
        snapshot: Optional[Snapshot] = None,
    ) -> Classification:
        role = self.table.lookup(class_name)
        if role is not None:
            return Classification(role)
        if node is not None and snapshot is not None and self._looks_like_checkbox(node, snapshot):
            return Classification(ControlRole.CHECKBOX, Confidence.LOW)
        return UNKNOWN

    def classify_snapshot(self, snapshot: Snapshot) -> Dict[int, Classification]:
        """Classify every node of a snapshot, keyed by handle."""
        return {node.handle: self.classify(node, snapshot) for node in snapshot}

    def adjacent_caption(self, node: ControlNode, snapshot: Snapshot) -> Optional[ControlNode]:
        """Return the StaticText sibling sitting immediately right of ``node`` on the same line."""
        _, center_y = node.rect.center()
        best: Optional[ControlNode] = None
        best_gap: Optional[int] = None
        for sibling in snapshot.siblings(node):
            if self.table.lookup(sibling.class_name) is not ControlRole.STATIC_TEXT:
                continue
            if not sibling.text.strip():
                continue
            if not (sibling.rect.y <= center_y <= sibling.rect.bottom):
                continue
            gap = sibling.rect.x - node.rect.right
            if gap < -2 or gap > _CAPTION_GAP:
                continue
            if best_gap is None or gap < best_gap:
                best, best_gap = sibling, gap
        return best

    def _looks_like_checkbox(self, node: ControlNode, snapshot: Snapshot) -> bool:
        rect = node.rect
        if not node.visible:
            return False
        if not (_BOX_MIN <= rect.width <= _BOX_MAX and _BOX_MIN <= rect.height <= _BOX_MAX):
            return False
        if abs(rect.width - rect.height) > _BOX_SKEW:
            return False
        return self.adjacent_caption(node, snapshot) is not None
