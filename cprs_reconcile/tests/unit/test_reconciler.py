from __future__ import annotations

import logging

import pytest

from cprs_reconcile.automation.classifier import Classification, ControlClassifier, ControlRole
from cprs_reconcile.automation.driver.exceptions import UnsafeActionError
from cprs_reconcile.automation.enumerator import WindowTreeEnumerator
from cprs_reconcile.automation.matcher import Matcher
from cprs_reconcile.automation.outcome import Outcome
from cprs_reconcile.automation.reconciler import Reconciler
from cprs_reconcile.automation.safety import SafetyExclusionList
from cprs_reconcile.automation.template import parse_template
from cprs_reconcile.tests.fakes import FakeDesktop, build_reminder_dialog, entry, template_document


@pytest.fixture
def desktop() -> FakeDesktop:
    return FakeDesktop()


def _reconcile(desktop: FakeDesktop, root: int, *entries: dict, safety: SafetyExclusionList | None = None):
    classifier = ControlClassifier()
    template = parse_template(template_document(*entries))
    snapshot = WindowTreeEnumerator(desktop.window_api).enumerate(root)
    matches = Matcher(classifier).match(template, snapshot)
    reconciler = Reconciler(classifier, safety or SafetyExclusionList(), desktop.driver)
    return reconciler.reconcile(template, matches, snapshot), template


def test_matching_state_needs_no_action(desktop: FakeDesktop) -> None:
    handles = build_reminder_dialog(desktop, pain=True)
    result, template = _reconcile(desktop, handles["root"], entry("Pain"), entry("Mobility", desired=False))
    assert len(result.plan) == 0
    assert {record.outcome for record in result.decided.values()} == {Outcome.NO_ACTION_NEEDED}
    assert desktop.toggled == []


def test_plan_reads_state_from_driver(desktop: FakeDesktop) -> None:
    handles = build_reminder_dialog(desktop)
    desktop.windows[handles["pain"]].checked = True
    result, _ = _reconcile(desktop, handles["root"], entry("Pain"), entry("Mobility"))
    assert [a.target_handle for a in result.plan] == [handles["mobility"]]


def test_actions_follow_group_order_then_geometry(desktop: FakeDesktop) -> None:
    handles = build_reminder_dialog(desktop)
    result, _ = _reconcile(
        desktop,
        handles["root"],
        entry("Fall precautions reviewed", ("Education",)),
        entry("Mobility"),
        entry("Fall Risk"),
    )
    assert [a.target_handle for a in result.plan] == [handles["precautions"], handles["fall_risk"], handles["mobility"]]
    action = result.plan.actions[0]
    assert action.role is ControlRole.CHECKBOX
    assert action.expected_prior_state is False
    assert action.desired_state is True
    assert action.class_name == "TCPRSDialogCheckBox"


def test_configured_exclusion_is_reported(desktop: FakeDesktop, caplog: pytest.LogCaptureFixture) -> None:
    handles = build_reminder_dialog(desktop)
    safety = SafetyExclusionList.from_config([{"class_pattern": "TORCheckBox", "reason": "legacy control"}])
    with caplog.at_level(logging.WARNING):
        result, template = _reconcile(desktop, handles["root"], entry("Mobility"), entry("Pain"), safety=safety)
    mobility = result.decided[template.entries[0].key]
    assert mobility.outcome is Outcome.SAFETY_EXCLUDED
    assert "legacy control" in mobility.detail
    assert [a.target_handle for a in result.plan] == [handles["pain"]]
    assert "Safety exclusion" in caplog.text


def test_handle_reclassified_as_button_is_excluded(desktop: FakeDesktop) -> None:
    handles = build_reminder_dialog(desktop)
    desktop.live_overrides[handles["pain"]] = ("TButton", "Pain")
    result, template = _reconcile(desktop, handles["root"], entry("Pain"))
    assert len(result.plan) == 0
    assert result.decided[template.entries[0].key].outcome is Outcome.SAFETY_EXCLUDED


def test_recycled_handle_is_not_acted_on(desktop: FakeDesktop) -> None:
    handles = build_reminder_dialog(desktop)
    desktop.live_overrides[handles["pain"]] = ("TORCheckBox", "Pain")
    result, template = _reconcile(desktop, handles["root"], entry("Pain"))
    record = result.decided[template.entries[0].key]
    assert record.outcome is Outcome.ACTION_FAILED
    assert "handle now refers to TORCheckBox" in record.detail


def test_disabled_checkbox_cannot_change(desktop: FakeDesktop) -> None:
    handles = build_reminder_dialog(desktop)
    desktop.windows[handles["pain"]].enabled = False
    result, template = _reconcile(desktop, handles["root"], entry("Pain"))
    assert result.decided[template.entries[0].key].outcome is Outcome.ACTION_FAILED


def test_unresolved_entries_are_left_to_the_report(desktop: FakeDesktop) -> None:
    handles = build_reminder_dialog(desktop)
    result, _ = _reconcile(desktop, handles["root"], entry("Nonexistent"))
    assert len(result.plan) == 0
    assert result.decided == {}


def test_target_matched_as_button_is_refused_by_the_plan(desktop: FakeDesktop) -> None:
    handles = build_reminder_dialog(desktop)
    classifier = ControlClassifier()
    template = parse_template(template_document(entry("Pain")))
    snapshot = WindowTreeEnumerator(desktop.window_api).enumerate(handles["root"])
    matches = Matcher(classifier).match(template, snapshot)
    roles = dict(classifier.classify_snapshot(snapshot))
    roles[handles["pain"]] = Classification(ControlRole.BUTTON)
    reconciler = Reconciler(classifier, SafetyExclusionList(), desktop.driver)
    with pytest.raises(UnsafeActionError):
        reconciler.reconcile(template, matches, snapshot, roles)
    assert desktop.toggled == []


def test_actions_carry_the_matched_role(desktop: FakeDesktop) -> None:
    handles = build_reminder_dialog(desktop)
    result, _ = _reconcile(desktop, handles["root"], entry("Pain"))
    assert [a.role for a in result.plan] == [ControlRole.CHECKBOX]
