"""
Reconciliation engine: one enumerate -> classify -> match -> diff -> act cycle.

Cycles run strictly one at a time against a single CPRS window. The root
handle is re-resolved at the start of every cycle and the snapshot, matches
and plan are thrown away when the cycle ends; only the template survives
between cycles.
"""

from __future__ import annotations

import contextlib
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .classifier import Classification, ClassificationTable, ControlClassifier
from .driver.controls import ControlDriver
from .driver.exceptions import CycleInProgressError, EnumerationFailed, WindowNotFoundError
from .driver.windows import WindowApi
from .enumerator import Snapshot, WindowTreeEnumerator
from .executor import ExecutorConfig, SafeExecutor
from .failure_tracker import FailureTracker
from .matcher import Ambiguous, Matcher, MatchResult, Resolved, Unresolved
from .outcome import Outcome, OutcomeRecord, OutcomeReport
from .plan import ActionPlan
from .reconciler import Reconciler
from .reporting.allure_helpers import allure_available, attach_report
from .safety import SafetyExclusionList
from .template import Template
from .template.model import EntryKey

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    settle_delay: float = 0.3
    max_retries: int = 2
    retry_backoff: float = 0.25
    backoff_factor: float = 2.0
    include_low_confidence: bool = False
    classification_overrides: Dict[str, str] = field(default_factory=dict)
    classification_prefixes: Dict[str, str] = field(default_factory=dict)
    safety_exclusions: List[Dict[str, Any]] = field(default_factory=list)
    failure_stats_path: Optional[Path] = None
    enable_allure: bool = True

    def executor_config(self) -> ExecutorConfig:
        return ExecutorConfig(
            settle_delay=self.settle_delay,
            max_retries=max(0, int(self.max_retries)),
            retry_backoff=self.retry_backoff,
            backoff_factor=self.backoff_factor,
        )

    def classification_table(self) -> ClassificationTable:
        return ClassificationTable().with_overrides(self.classification_overrides, self.classification_prefixes)


@dataclass
class CyclePlan:
    """Everything computed for a cycle before any input is dispatched."""

    snapshot: Snapshot
    classifications: Mapping[int, Classification]
    matches: Sequence[MatchResult]
    plan: ActionPlan
    decided: Dict[EntryKey, OutcomeRecord]
    started_at: str


class ReconciliationEngine:
    def __init__(
        self,
        template: Template,
        config: Optional[EngineConfig] = None,
        *,
        locator: Callable[[], int],
        window_api: WindowApi,
        driver: ControlDriver,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.template = template
        self.config = config or EngineConfig()
        self._locator = locator
        self.classifier = ControlClassifier(self.config.classification_table())
        self.safety = SafetyExclusionList.from_config(self.config.safety_exclusions)
        self.enumerator = WindowTreeEnumerator(window_api)
        self.matcher = Matcher(self.classifier, include_low_confidence=self.config.include_low_confidence)
        self.reconciler = Reconciler(self.classifier, self.safety, driver)
        self.executor = SafeExecutor(
            driver,
            self.classifier,
            self.safety,
            self.config.executor_config(),
            sleep=sleep,
            should_stop=self.should_stop,
        )
        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._failure_tracker = None
        if self.config.failure_stats_path:
            self._failure_tracker = FailureTracker(Path(self.config.failure_stats_path))
        self._allure_enabled = bool(self.config.enable_allure and allure_available())

    def request_stop(self, clear_only: bool = False) -> None:
        """If clear_only=True, clears previous stop; else sets stop."""
        if clear_only:
            self._stop_event.clear()
        else:
            self._stop_event.set()

    def should_stop(self) -> bool:
        return self._stop_event.is_set()

    def plan_cycle(self) -> CyclePlan:
        """Enumerate, match and diff without dispatching any input."""
        with self._exclusive():
            return self._plan()

    def run_cycle(self) -> OutcomeReport:
        with self._exclusive():
            self._stop_event.clear()
            cycle = self._plan()
            executed = self.executor.execute(cycle.plan)
            report = self.build_report(cycle, executed)
        self._after_cycle(report)
        return report

    def build_report(self, cycle: CyclePlan, executed: Sequence[OutcomeRecord] = ()) -> OutcomeReport:
        """Assemble one record per template entry, in template order."""
        by_key: Dict[EntryKey, OutcomeRecord] = dict(cycle.decided)
        for action, record in zip(cycle.plan, executed):
            by_key[action.entry.key] = record
        records: List[OutcomeRecord] = []
        for match in cycle.matches:
            entry = match.entry
            if isinstance(match, Unresolved):
                records.append(
                    OutcomeRecord.for_entry(entry, Outcome.UNRESOLVED, "no matching checkbox in this group")
                )
            elif isinstance(match, Ambiguous):
                records.append(
                    OutcomeRecord.for_entry(
                        entry, Outcome.AMBIGUOUS, f"{len(match.candidates)} candidate checkboxes"
                    )
                )
            elif isinstance(match, Resolved) and entry.key in by_key:
                records.append(by_key[entry.key])
            else:
                records.append(OutcomeRecord.for_entry(entry, Outcome.ACTION_FAILED, "not attempted"))
        return OutcomeReport(
            cycle_id=cycle.snapshot.cycle_id,
            records=records,
            root_handle=cycle.snapshot.root_handle,
            template_source=str(self.template.source) if self.template.source else None,
            started_at=cycle.started_at,
            finished_at=datetime.now(timezone.utc).isoformat(),
        )

    @contextlib.contextmanager
    def _exclusive(self):
        if not self._cycle_lock.acquire(blocking=False):
            raise CycleInProgressError("A reconciliation cycle is already running against this window")
        try:
            yield
        finally:
            self._cycle_lock.release()

    def _plan(self) -> CyclePlan:
        started_at = datetime.now(timezone.utc).isoformat()
        try:
            root = self._locator()
        except WindowNotFoundError:
            logger.error("Cycle aborted: CPRS window could not be resolved")
            raise
        logger.info("Reconciliation cycle starting against window %s", root)
        try:
            snapshot = self.enumerator.enumerate(root)
        except EnumerationFailed:
            logger.error("Cycle aborted: root window %s is no longer valid", root)
            raise
        classifications = self.classifier.classify_snapshot(snapshot)
        matches = self.matcher.match(self.template, snapshot, classifications)
        result = self.reconciler.reconcile(self.template, matches, snapshot, classifications)
        return CyclePlan(
            snapshot=snapshot,
            classifications=classifications,
            matches=matches,
            plan=result.plan,
            decided=result.decided,
            started_at=started_at,
        )

    def _after_cycle(self, report: OutcomeReport) -> None:
        counts = {name: count for name, count in report.counts().items() if count}
        logger.info("Cycle %s finished: %s", report.cycle_id, counts or "no entries")
        if self._failure_tracker is not None:
            self._failure_tracker.record_report(self._template_name(), report)
        if self._allure_enabled:
            attach_report(f"cycle-{report.cycle_id}", report)

    def _template_name(self) -> str:
        source = self.template.source
        return Path(source).stem if source else "template"

