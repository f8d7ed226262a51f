"""
Sequential, verify-after-settle execution of an action plan.

Each action is re-validated immediately before it is dispatched. A single
failed action never aborts the plan: every action ends with exactly one
outcome record, and the full list is returned once all have been attempted.
Cancellation is honoured only between actions.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from .classifier import ControlClassifier, ControlRole
from .driver.controls import ControlDriver
from .driver.exceptions import ControlGoneError
from .outcome import Outcome, OutcomeRecord
from .plan import ActionPlan, ToggleAction
from .safety import SafetyExclusionList

logger = logging.getLogger(__name__)


@dataclass
class ExecutorConfig:
    settle_delay: float = 0.3
    max_retries: int = 2
    retry_backoff: float = 0.25
    backoff_factor: float = 2.0

    def backoff_for(self, attempt: int) -> float:
        return max(0.0, self.retry_backoff) * (max(1.0, self.backoff_factor) ** attempt)


class _Excluded(Exception):
    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class SafeExecutor:
    def __init__(
        self,
        driver: ControlDriver,
        classifier: ControlClassifier,
        safety: SafetyExclusionList,
        config: Optional[ExecutorConfig] = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> None:
        self.driver = driver
        self.classifier = classifier
        self.safety = safety
        self.config = config or ExecutorConfig()
        self._sleep = sleep
        self._should_stop = should_stop or (lambda: False)
        self.dispatch_count = 0

    def execute(self, plan: ActionPlan) -> List[OutcomeRecord]:
        records: List[OutcomeRecord] = []
        actions = plan.actions
        for index, action in enumerate(actions):
            if self._should_stop():
                remaining = len(actions) - index
                logger.info("Cycle cancelled; %d action(s) not attempted", remaining)
                for skipped in actions[index:]:
                    records.append(OutcomeRecord.for_entry(skipped.entry, Outcome.ACTION_FAILED, "cancelled"))
                break
            record = self._apply(action)
            if record.outcome is Outcome.APPLIED:
                logger.info("Applied %s -> %s", action.entry.display_name, "checked" if action.desired_state else "unchecked")
            elif record.outcome is not Outcome.NO_ACTION_NEEDED:
                logger.warning("%s", record.describe())
            records.append(record)
        return records

    def _apply(self, action: ToggleAction) -> OutcomeRecord:
        handle = action.target_handle
        attempt = 0
        dispatched = False
        sent = False
        last_error = ""
        while True:
            try:
                if not dispatched:
                    self._revalidate(action)
                    current = self.driver.read_checked(handle)
                    if sent and current == action.desired_state:
                        return OutcomeRecord.for_entry(action.entry, Outcome.APPLIED, "settled late")
                    if current != action.expected_prior_state:
                        return OutcomeRecord.for_entry(
                            action.entry,
                            Outcome.STALE_PRECONDITION,
                            f"expected {'checked' if action.expected_prior_state else 'unchecked'} before toggling",
                        )
                    sent = True
                    self.driver.toggle(handle)
                    self.dispatch_count += 1
                    dispatched = True
                    self._sleep(self.config.settle_delay)
                state = self.driver.read_checked(handle)
                if state == action.desired_state:
                    detail = f"after {attempt} retr{'y' if attempt == 1 else 'ies'}" if attempt else ""
                    return OutcomeRecord.for_entry(action.entry, Outcome.APPLIED, detail)
                last_error = "state unchanged after settle delay"
                # Re-dispatch only while the control still shows its prior state.
                dispatched = False
            except _Excluded as exc:
                return OutcomeRecord.for_entry(action.entry, Outcome.SAFETY_EXCLUDED, exc.detail)
            except ControlGoneError as exc:
                last_error = str(exc)
            except Exception as exc:  # pragma: no cover - UI timing dependent
                last_error = f"{type(exc).__name__}: {exc}"

            if attempt >= self.config.max_retries:
                return OutcomeRecord.for_entry(
                    action.entry,
                    Outcome.ACTION_FAILED,
                    f"{last_error} (gave up after {attempt + 1} attempt(s))",
                )
            delay = self.config.backoff_for(attempt)
            attempt += 1
            logger.warning(
                "Retrying %s in %.2fs (attempt %d/%d): %s",
                action.entry.display_name,
                delay,
                attempt,
                self.config.max_retries,
                last_error,
            )
            self._sleep(delay)

    def _revalidate(self, action: ToggleAction) -> None:
        live = self.driver.describe(action.target_handle)
        if self.classifier.classify_class(live.class_name).role is ControlRole.BUTTON:
            raise _Excluded(f"{live.class_name} reclassified as button before dispatch")
        rule = self.safety.check(live.class_name, live.text)
        if rule is not None:
            raise _Excluded(f"{live.class_name}: {rule.reason}")
        if live.class_name != action.class_name:
            raise ControlGoneError(f"handle now refers to {live.class_name} (was {action.class_name})")
