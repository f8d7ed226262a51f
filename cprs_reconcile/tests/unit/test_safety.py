from __future__ import annotations

import pytest

from cprs_reconcile.automation.classifier import ControlRole
from cprs_reconcile.automation.driver.exceptions import UnsafeActionError
from cprs_reconcile.automation.enumerator import Rect
from cprs_reconcile.automation.plan import ActionKind, ActionPlan, ToggleAction
from cprs_reconcile.automation.safety import DEFAULT_SAFETY_RULES, SafetyExclusionList, SafetyRule
from cprs_reconcile.automation.template import TemplateEntry


@pytest.mark.parametrize(
    "class_name, text",
    [
        ("TButton", "Cancel"),
        ("tbitbtn", "Visit Info"),
        ("TCPRSDialogCheckBox", "&Finish"),
        ("TORCheckBox", "Sign"),
        ("TORCheckBox", "Accept..."),
        ("TORCheckBox", "  OK "),
    ],
)
def test_default_rules_protect_submit_controls(class_name: str, text: str) -> None:
    assert SafetyExclusionList().check(class_name, text) is not None


@pytest.mark.parametrize("text", ["Fall risk signed off by nurse", "Pain", "Okay to discharge"])
def test_default_rules_do_not_catch_ordinary_captions(text: str) -> None:
    assert SafetyExclusionList().check("TCPRSDialogCheckBox", text) is None


def test_configured_rules_extend_defaults() -> None:
    exclusions = SafetyExclusionList.from_config(
        [{"class_pattern": "TORCheckBox", "text_pattern": "discharge.*", "reason": "ward policy"}, "ignored"]
    )
    assert exclusions.rules[: len(DEFAULT_SAFETY_RULES)] == DEFAULT_SAFETY_RULES
    rule = exclusions.check("TORCheckBox", "Discharge today")
    assert rule is not None and rule.reason == "ward policy"
    # Both patterns must match
    assert exclusions.check("TCPRSDialogCheckBox", "Discharge today") is None


def test_rule_needs_a_pattern() -> None:
    with pytest.raises(ValueError):
        SafetyRule(reason="empty")


def _action(role: ControlRole, class_name: str = "TCPRSDialogCheckBox") -> ToggleAction:
    return ToggleAction(
        entry=TemplateEntry("Pain", ("Assessments",), True),
        target_handle=0x1010,
        expected_prior_state=False,
        role=role,
        class_name=class_name,
        rect=Rect(0, 0, 100, 17),
    )


def test_plan_only_holds_checkbox_toggles() -> None:
    plan = ActionPlan([_action(ControlRole.CHECKBOX)])
    assert len(plan) == 1
    assert plan.actions[0].kind is ActionKind.TOGGLE
    assert plan.actions[0].desired_state is True
    assert list(ActionKind) == [ActionKind.TOGGLE]


@pytest.mark.parametrize("role", [ControlRole.BUTTON, ControlRole.UNKNOWN, ControlRole.STATIC_TEXT])
def test_plan_refuses_non_checkbox_targets(role: ControlRole) -> None:
    with pytest.raises(UnsafeActionError):
        ActionPlan([_action(role, "TButton")])


def test_toggle_kind_is_not_configurable() -> None:
    with pytest.raises(TypeError):
        ToggleAction(  # type: ignore[call-arg]
            entry=TemplateEntry("Pain", (), True),
            target_handle=1,
            expected_prior_state=False,
            role=ControlRole.CHECKBOX,
            class_name="TORCheckBox",
            rect=Rect(0, 0, 1, 1),
            kind=ActionKind.TOGGLE,
        )
