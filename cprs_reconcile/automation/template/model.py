"""
Immutable model of a checkbox template.

A template is loaded once per session and never changes afterwards. Entries
are keyed by their normalised ``(label, group_path)`` and keep the order in
which the author wrote them; that order seeds tie-breaking in the matcher and
the group ordering of the action plan.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional, Sequence, Tuple

from ..driver.exceptions import TemplateInvalid
from ..util import format_path, normalize_label, normalize_path

EntryKey = Tuple[str, Tuple[str, ...]]


@dataclass(frozen=True, slots=True)
class TemplateEntry:
    """Desired state of a single checkbox, identified semantically."""

    label: str
    group_path: Tuple[str, ...]
    desired_state: bool
    ordinal_hint: Optional[int] = None

    @property
    def key(self) -> EntryKey:
        return normalize_label(self.label), normalize_path(self.group_path)

    @property
    def display_name(self) -> str:
        return f"{format_path(self.group_path)} :: {self.label}"


class Template:
    """Read-only, ordered collection of TemplateEntry values."""

    __slots__ = ("version", "source", "_entries", "_by_key", "_group_order")

    def __init__(self, version: int, entries: Sequence[TemplateEntry], source: Optional[Path] = None) -> None:
        self.version = version
        self.source = source
        self._entries: Tuple[TemplateEntry, ...] = tuple(entries)
        self._by_key: Dict[EntryKey, TemplateEntry] = {}
        self._group_order: Dict[Tuple[str, ...], int] = {}
        for entry in self._entries:
            if entry.key in self._by_key:
                raise TemplateInvalid(f"Duplicate template entry for {entry.display_name}")
            self._by_key[entry.key] = entry
            self._group_order.setdefault(entry.key[1], len(self._group_order))

    def __iter__(self) -> Iterator[TemplateEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> Tuple[TemplateEntry, ...]:
        return self._entries

    def get(self, label: str, group_path: Sequence[str]) -> Optional[TemplateEntry]:
        return self._by_key.get((normalize_label(label), normalize_path(group_path)))

    def group_rank(self, group_path: Sequence[str]) -> int:
        """Position of a group in author order; unknown groups sort last."""
        return self._group_order.get(normalize_path(group_path), len(self._group_order))
