"""Per-entry failure tracking across cycles using JSON persistence."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from .outcome import OutcomeReport
from .util import format_path

logger = logging.getLogger(__name__)


@dataclass
class FailureTracker:
    path: Path

    def __post_init__(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if self.path.exists():
            try:
                self._stats: Dict[str, Dict[str, Dict[str, int]]] = json.loads(self.path.read_text(encoding="utf-8"))
            except Exception:
                self._stats = {}
        else:
            self._stats = {}

    def record_failure(self, template: str, identifier: str, outcome: str) -> None:
        entry_stats = self._stats.setdefault(template, {}).setdefault(identifier, {})
        entry_stats[outcome] = entry_stats.get(outcome, 0) + 1

    def record_report(self, template: str, report: OutcomeReport) -> None:
        failures = [record for record in report.records if not record.outcome.is_success]
        for record in failures:
            identifier = f"{format_path(record.group_path)} :: {record.label}"
            self.record_failure(template, identifier, record.outcome.value)
        if failures:
            self._flush()

    def counts(self, template: str) -> Dict[str, Dict[str, int]]:
        return {name: dict(values) for name, values in self._stats.get(template, {}).items()}

    def _flush(self) -> None:
        try:
            self.path.write_text(json.dumps(self._stats, indent=2, sort_keys=True), encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not persist failure stats to %s: %s", self.path, exc)
