"""Per-entry outcomes and the cycle outcome report."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from .template import TemplateEntry
from .util import format_path


class Outcome(str, enum.Enum):
    NO_ACTION_NEEDED = "NoActionNeeded"
    APPLIED = "Applied"
    SAFETY_EXCLUDED = "SafetyExcluded"
    STALE_PRECONDITION = "StalePrecondition"
    ACTION_FAILED = "ActionFailed"
    UNRESOLVED = "Unresolved"
    AMBIGUOUS = "Ambiguous"

    @property
    def is_success(self) -> bool:
        return self in (Outcome.NO_ACTION_NEEDED, Outcome.APPLIED)


@dataclass(frozen=True, slots=True)
class OutcomeRecord:
    label: str
    group_path: Tuple[str, ...]
    outcome: Outcome
    detail: str = ""

    @classmethod
    def for_entry(cls, entry: TemplateEntry, outcome: Outcome, detail: str = "") -> "OutcomeRecord":
        return cls(label=entry.label, group_path=entry.group_path, outcome=outcome, detail=detail)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "groupPath": list(self.group_path),
            "outcome": self.outcome.value,
            "detail": self.detail,
        }

    def describe(self) -> str:
        text = f"{format_path(self.group_path)} :: {self.label} -> {self.outcome.value}"
        return f"{text} ({self.detail})" if self.detail else text


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class OutcomeReport:
    """The single externally observed result of a reconciliation cycle."""

    cycle_id: int
    records: List[OutcomeRecord]
    root_handle: Optional[int] = None
    template_source: Optional[str] = None
    started_at: str = field(default_factory=_now)
    finished_at: Optional[str] = None

    def __iter__(self):
        return iter(self.records)

    def __len__(self) -> int:
        return len(self.records)

    def counts(self) -> Dict[str, int]:
        totals = {outcome.value: 0 for outcome in Outcome}
        for record in self.records:
            totals[record.outcome.value] += 1
        return totals

    def by_outcome(self, outcome: Outcome) -> List[OutcomeRecord]:
        return [record for record in self.records if record.outcome is outcome]

    def has_failures(self) -> bool:
        return any(not record.outcome.is_success for record in self.records)

    def outcome_for(self, label: str, group_path: Tuple[str, ...] = ()) -> Optional[Outcome]:
        for record in self.records:
            if record.label == label and tuple(record.group_path) == tuple(group_path):
                return record.outcome
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cycleId": self.cycle_id,
            "rootHandle": self.root_handle,
            "template": self.template_source,
            "startedAt": self.started_at,
            "finishedAt": self.finished_at,
            "counts": self.counts(),
            "records": [record.to_dict() for record in self.records],
        }
