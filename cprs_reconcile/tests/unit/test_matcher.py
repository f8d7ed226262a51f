from __future__ import annotations

import pytest

from cprs_reconcile.automation.classifier import ControlClassifier
from cprs_reconcile.automation.enumerator import WindowTreeEnumerator
from cprs_reconcile.automation.matcher import Ambiguous, Matcher, Resolved, Unresolved
from cprs_reconcile.automation.template import parse_template
from cprs_reconcile.tests.fakes import FakeDesktop, build_reminder_dialog, entry, template_document


@pytest.fixture
def desktop() -> FakeDesktop:
    return FakeDesktop()


def _match(desktop: FakeDesktop, root: int, *entries: dict, include_low_confidence: bool = False):
    snapshot = WindowTreeEnumerator(desktop.window_api).enumerate(root)
    matcher = Matcher(ControlClassifier(), include_low_confidence=include_low_confidence)
    return matcher.match(parse_template(template_document(*entries)), snapshot), matcher, snapshot


def test_group_path_comes_from_captioned_containers(desktop: FakeDesktop) -> None:
    handles = build_reminder_dialog(desktop)
    results, matcher, snapshot = _match(
        desktop,
        handles["root"],
        entry("Pain"),
        entry("fall precautions REVIEWED", ("education",)),
    )
    assert [type(r) for r in results] == [Resolved, Resolved]
    assert results[0].node.handle == handles["pain"]
    assert results[1].node.handle == handles["precautions"]
    # The blank TScrollBox caption contributes no segment
    assert matcher.build_index(snapshot).groups() == (("assessments",), ("education",))


def test_label_in_wrong_group_is_unresolved(desktop: FakeDesktop) -> None:
    handles = build_reminder_dialog(desktop)
    results, _, _ = _match(desktop, handles["root"], entry("Pain", ("Education",)), entry("Pain", ()))
    assert all(isinstance(r, Unresolved) for r in results)


def test_buttons_never_match(desktop: FakeDesktop) -> None:
    handles = build_reminder_dialog(desktop)
    results, _, _ = _match(desktop, handles["root"], entry("Finish", ()), entry("Cancel", ()))
    assert all(isinstance(r, Unresolved) for r in results)


def _duplicate_labels(desktop: FakeDesktop) -> dict:
    root = desktop.add("TfrmRemDlg", "Reminder Dialog", rect=(0, 0, 600, 400))
    group = desktop.add("TGroupBox", "Education", rect=(10, 10, 500, 300), parent=root)
    # Added out of visual order to prove ordinals follow geometry
    lower = desktop.add("TCPRSDialogCheckBox", "Reviewed", rect=(20, 80, 200, 17), parent=group)
    upper = desktop.add("TCPRSDialogCheckBox", "Reviewed", rect=(20, 40, 200, 17), parent=group)
    return {"root": root, "upper": upper, "lower": lower}


def test_duplicate_labels_are_ambiguous_without_hint(desktop: FakeDesktop) -> None:
    handles = _duplicate_labels(desktop)
    results, _, _ = _match(desktop, handles["root"], entry("Reviewed", ("Education",)))
    assert isinstance(results[0], Ambiguous)
    assert {n.handle for n in results[0].candidates} == {handles["upper"], handles["lower"]}


def test_ordinal_hint_breaks_ties_in_visual_order(desktop: FakeDesktop) -> None:
    handles = _duplicate_labels(desktop)
    results, _, _ = _match(desktop, handles["root"], entry("Reviewed", ("Education",), ordinal=2))
    assert isinstance(results[0], Resolved)
    assert results[0].node.handle == handles["lower"]


def test_out_of_range_ordinal_stays_ambiguous(desktop: FakeDesktop) -> None:
    handles = _duplicate_labels(desktop)
    results, _, _ = _match(desktop, handles["root"], entry("Reviewed", ("Education",), ordinal=5))
    assert isinstance(results[0], Ambiguous)


def test_invisible_checkboxes_are_not_candidates(desktop: FakeDesktop) -> None:
    root = desktop.add("TfrmRemDlg", "Reminder Dialog", rect=(0, 0, 600, 400))
    desktop.add("TCPRSDialogCheckBox", "Pain", rect=(20, 40, 200, 17), parent=root, visible=False)
    results, _, _ = _match(desktop, root, entry("Pain", ()))
    assert isinstance(results[0], Unresolved)


def test_low_confidence_checkboxes_need_opt_in(desktop: FakeDesktop) -> None:
    root = desktop.add("TfrmRemDlg", "Reminder Dialog", rect=(0, 0, 600, 400))
    box = desktop.add("TCPRSOwnerDrawn", "", rect=(20, 40, 13, 13), parent=root)
    desktop.add("TStaticText", "Pain assessed", rect=(36, 38, 150, 17), parent=root)

    results, _, _ = _match(desktop, root, entry("Pain assessed", ()))
    assert isinstance(results[0], Unresolved)

    results, _, _ = _match(desktop, root, entry("Pain assessed", ()), include_low_confidence=True)
    assert isinstance(results[0], Resolved)
    assert results[0].node.handle == box


def test_caption_beside_checkbox_supplies_label(desktop: FakeDesktop) -> None:
    root = desktop.add("TfrmRemDlg", "Reminder Dialog", rect=(0, 0, 600, 400))
    box = desktop.add("TORCheckBox", "", rect=(20, 40, 15, 15), parent=root)
    desktop.add("TVA508StaticText", "Skin intact", rect=(38, 39, 150, 17), parent=root)
    results, _, _ = _match(desktop, root, entry("Skin intact", ()))
    assert isinstance(results[0], Resolved)
    assert results[0].node.handle == box


def test_results_follow_template_order(desktop: FakeDesktop) -> None:
    handles = build_reminder_dialog(desktop)
    results, _, _ = _match(desktop, handles["root"], entry("Mobility"), entry("Missing"), entry("Fall Risk"))
    assert [r.entry.label for r in results] == ["Mobility", "Missing", "Fall Risk"]
    assert [type(r) for r in results] == [Resolved, Unresolved, Resolved]


def test_ordinal_counts_every_checkbox_in_the_group(desktop: FakeDesktop) -> None:
    root = desktop.add("TfrmRemDlg", "Reminder Dialog", rect=(0, 0, 600, 400))
    group = desktop.add("TGroupBox", "Education", rect=(10, 10, 500, 300), parent=root)
    first = desktop.add("TCPRSDialogCheckBox", "Reviewed", rect=(20, 40, 200, 17), parent=group)
    desktop.add("TCPRSDialogCheckBox", "Handout given", rect=(20, 60, 200, 17), parent=group)
    third = desktop.add("TCPRSDialogCheckBox", "Reviewed", rect=(20, 80, 200, 17), parent=group)

    results, _, _ = _match(desktop, root, entry("Reviewed", ("Education",), ordinal=3))
    assert isinstance(results[0], Resolved)
    assert results[0].node.handle == third

    results, _, _ = _match(desktop, root, entry("Reviewed", ("Education",), ordinal=1))
    assert results[0].node.handle == first

    # Ordinal 2 belongs to a different label, so it selects no candidate
    results, _, _ = _match(desktop, root, entry("Reviewed", ("Education",), ordinal=2))
    assert isinstance(results[0], Ambiguous)
