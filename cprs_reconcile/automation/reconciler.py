"""
Diff resolved checkboxes against the template and build an action plan.

Live state is read from the control while the plan is built rather than
from the snapshot. Before any state is read, each target is re-described by
handle and re-classified; a handle that now belongs to a button, or that hits
the safety exclusion list, is dropped and reported as ``SafetyExcluded``.
Each action carries the role the matcher classified its target with, so
``ActionPlan`` refuses anything that was not matched as a checkbox.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .classifier import UNKNOWN, Classification, ControlClassifier, ControlRole
from .driver.controls import ControlDriver
from .driver.exceptions import ControlGoneError
from .enumerator import Snapshot
from .matcher import MatchResult, Resolved
from .outcome import Outcome, OutcomeRecord
from .plan import ActionPlan, ToggleAction
from .safety import SafetyExclusionList
from .template import Template
from .template.model import EntryKey

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Plan plus the outcomes already decided for resolved entries left out of it."""

    plan: ActionPlan
    decided: Dict[EntryKey, OutcomeRecord] = field(default_factory=dict)


class Reconciler:
    def __init__(
        self,
        classifier: ControlClassifier,
        safety: SafetyExclusionList,
        driver: ControlDriver,
    ) -> None:
        self.classifier = classifier
        self.safety = safety
        self.driver = driver

    def reconcile(
        self,
        template: Template,
        matches: Sequence[MatchResult],
        snapshot: Snapshot,
        classifications: Optional[Mapping[int, Classification]] = None,
    ) -> ReconcileResult:
        roles = classifications if classifications is not None else self.classifier.classify_snapshot(snapshot)
        decided: Dict[EntryKey, OutcomeRecord] = {}
        pending: List[Tuple[Tuple[int, int, int, int], ToggleAction]] = []

        for match in matches:
            if not isinstance(match, Resolved):
                continue
            entry, node = match.entry, match.node

            rule = self.safety.check(node.class_name, node.text)
            if rule is not None:
                decided[entry.key] = self._excluded(entry, f"{node.class_name}: {rule.reason}")
                continue

            try:
                live = self.driver.describe(node.handle)
            except ControlGoneError as exc:
                decided[entry.key] = OutcomeRecord.for_entry(
                    entry, Outcome.ACTION_FAILED, f"control vanished before planning: {exc}"
                )
                continue

            live_role = self.classifier.classify_class(live.class_name).role
            if live_role is ControlRole.BUTTON:
                decided[entry.key] = self._excluded(entry, f"{live.class_name} reclassified as button")
                continue
            rule = self.safety.check(live.class_name, live.text)
            if rule is not None:
                decided[entry.key] = self._excluded(entry, f"{live.class_name}: {rule.reason}")
                continue
            if live.class_name != node.class_name:
                decided[entry.key] = OutcomeRecord.for_entry(
                    entry,
                    Outcome.ACTION_FAILED,
                    f"handle now refers to {live.class_name} (was {node.class_name})",
                )
                continue

            try:
                checked = self.driver.read_checked(node.handle)
            except ControlGoneError as exc:
                decided[entry.key] = OutcomeRecord.for_entry(
                    entry, Outcome.ACTION_FAILED, f"state unreadable: {exc}"
                )
                continue

            if checked == entry.desired_state:
                decided[entry.key] = OutcomeRecord.for_entry(entry, Outcome.NO_ACTION_NEEDED)
                continue
            if not live.enabled:
                decided[entry.key] = OutcomeRecord.for_entry(entry, Outcome.ACTION_FAILED, "control is disabled")
                continue

            action = ToggleAction(
                entry=entry,
                target_handle=node.handle,
                expected_prior_state=checked,
                role=roles.get(node.handle, UNKNOWN).role,
                class_name=node.class_name,
                rect=node.rect,
            )
            order = (
                template.group_rank(entry.group_path),
                node.rect.y,
                node.rect.x,
                snapshot.position(node),
            )
            pending.append((order, action))

        pending.sort(key=lambda item: item[0])
        plan = ActionPlan(action for _, action in pending)
        logger.debug("Planned %d toggle(s); %d resolved entr(ies) need no action", len(plan), len(decided))
        return ReconcileResult(plan=plan, decided=decided)

    @staticmethod
    def _excluded(entry, detail: str) -> OutcomeRecord:
        logger.warning("Safety exclusion for %s: %s", entry.display_name, detail)
        return OutcomeRecord.for_entry(entry, Outcome.SAFETY_EXCLUDED, detail)
