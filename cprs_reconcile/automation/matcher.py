"""
Resolve template entries against the checkboxes of a live snapshot.

Matching is purely structural: a checkbox's group path comes from the
captions of its GroupContainer/ScrollContainer ancestors, and its label is its
own caption (or the caption of the static text drawn beside it). Outcomes are
explicit variants; an entry with several candidates is never guessed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from .classifier import Classification, ControlClassifier, ControlRole
from .enumerator import ControlNode, Snapshot
from .template import Template, TemplateEntry
from .util import normalize_label

logger = logging.getLogger(__name__)

_CONTAINER_ROLES = (ControlRole.GROUP_CONTAINER, ControlRole.SCROLL_CONTAINER)


@dataclass(frozen=True, slots=True)
class MatchResult:
    entry: TemplateEntry


@dataclass(frozen=True, slots=True)
class Resolved(MatchResult):
    node: ControlNode


@dataclass(frozen=True, slots=True)
class Ambiguous(MatchResult):
    candidates: Tuple[ControlNode, ...]


@dataclass(frozen=True, slots=True)
class Unresolved(MatchResult):
    pass


@dataclass(frozen=True, slots=True)
class CheckboxCandidate:
    """A matchable checkbox with its derived label, group path and ordinal."""

    node: ControlNode
    label: str
    group_path: Tuple[str, ...]
    ordinal: int


class CheckboxIndex:
    """Checkboxes of one snapshot partitioned by normalised group path."""

    def __init__(self, partitions: Mapping[Tuple[str, ...], List[CheckboxCandidate]]) -> None:
        self._partitions = {key: tuple(items) for key, items in partitions.items()}

    def partition(self, group_key: Tuple[str, ...]) -> Tuple[CheckboxCandidate, ...]:
        return self._partitions.get(group_key, ())

    def groups(self) -> Tuple[Tuple[str, ...], ...]:
        return tuple(sorted(self._partitions))

    def __len__(self) -> int:
        return sum(len(items) for items in self._partitions.values())


class Matcher:
    """Deterministic label/group/ordinal matcher."""

    def __init__(self, classifier: ControlClassifier, *, include_low_confidence: bool = False) -> None:
        self.classifier = classifier
        self.include_low_confidence = include_low_confidence

    def build_index(
        self,
        snapshot: Snapshot,
        classifications: Optional[Mapping[int, Classification]] = None,
    ) -> CheckboxIndex:
        roles = classifications if classifications is not None else self.classifier.classify_snapshot(snapshot)
        partitions: Dict[Tuple[str, ...], List[Tuple[Tuple[int, int, int], ControlNode, str]]] = {}
        for node in snapshot:
            classification = roles.get(node.handle)
            if classification is None or classification.role is not ControlRole.CHECKBOX:
                continue
            if classification.is_low_confidence and not self.include_low_confidence:
                continue
            if not node.visible:
                continue
            label = self._label_for(node, snapshot)
            if not label:
                continue
            group_key = self._group_key(node, snapshot, roles)
            sort_key = (node.rect.y, node.rect.x, snapshot.position(node))
            partitions.setdefault(group_key, []).append((sort_key, node, label))

        indexed: Dict[Tuple[str, ...], List[CheckboxCandidate]] = {}
        for group_key, items in partitions.items():
            items.sort(key=lambda item: item[0])
            indexed[group_key] = [
                CheckboxCandidate(node=node, label=label, group_path=group_key, ordinal=ordinal)
                for ordinal, (_, node, label) in enumerate(items, start=1)
            ]
        logger.debug("Indexed %d checkbox(es) across %d group(s)", sum(map(len, indexed.values())), len(indexed))
        return CheckboxIndex(indexed)

    def match(
        self,
        template: Template,
        snapshot: Snapshot,
        classifications: Optional[Mapping[int, Classification]] = None,
    ) -> List[MatchResult]:
        """Return one MatchResult per template entry, in template order."""
        index = self.build_index(snapshot, classifications)
        return [self.match_entry(entry, index) for entry in template]

    def match_entry(self, entry: TemplateEntry, index: CheckboxIndex) -> MatchResult:
        label_key, group_key = entry.key
        candidates = [c for c in index.partition(group_key) if c.label == label_key]
        if not candidates:
            return Unresolved(entry=entry)
        if len(candidates) == 1:
            return Resolved(entry=entry, node=candidates[0].node)
        if entry.ordinal_hint is not None:
            hits = [c for c in candidates if c.ordinal == entry.ordinal_hint]
            if len(hits) == 1:
                return Resolved(entry=entry, node=hits[0].node)
        return Ambiguous(entry=entry, candidates=tuple(c.node for c in candidates))

    def _label_for(self, node: ControlNode, snapshot: Snapshot) -> str:
        label = normalize_label(node.text)
        if label:
            return label
        caption = self.classifier.adjacent_caption(node, snapshot)
        return normalize_label(caption.text) if caption is not None else ""

    @staticmethod
    def _group_key(
        node: ControlNode,
        snapshot: Snapshot,
        roles: Mapping[int, Classification],
    ) -> Tuple[str, ...]:
        segments: List[str] = []
        for ancestor in snapshot.ancestors(node):
            classification = roles.get(ancestor.handle)
            if classification is None or classification.role not in _CONTAINER_ROLES:
                continue
            caption = normalize_label(ancestor.text)
            if caption:
                segments.append(caption)
        segments.reverse()
        return tuple(segments)
