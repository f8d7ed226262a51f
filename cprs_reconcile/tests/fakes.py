"""In-memory stand-ins for the CPRS window tree used across the test suite."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Set, Tuple

from cprs_reconcile.automation.driver.controls import LiveControl
from cprs_reconcile.automation.driver.exceptions import ControlGoneError
from cprs_reconcile.automation.driver.windows import WindowInfo


@dataclass
class FakeWindow:
    handle: int
    class_name: str
    text: str
    rect: Tuple[int, int, int, int]
    parent: Optional[int]
    checked: bool = False
    visible: bool = True
    enabled: bool = True
    children: List[int] = field(default_factory=list)


class FakeDesktop:
    """A mutable window tree shared by FakeWindowApi and FakeControlDriver."""

    def __init__(self, screen: Tuple[int, int, int, int] = (0, 0, 1920, 1080)) -> None:
        self.windows: Dict[int, FakeWindow] = {}
        self.screen = screen
        self._next_handle = 0x1000
        self.toggled: List[int] = []
        # Handles whose state never changes when toggled.
        self.stuck: Set[int] = set()
        # Handles whose toggle only lands after N reads.
        self.lag: Dict[int, int] = {}
        self._pending: Dict[int, int] = {}
        # Live class/text seen by the driver, diverging from the enumerated tree.
        self.live_overrides: Dict[int, Tuple[str, str]] = {}
        self.vanish_on_describe: Set[int] = set()
        self.on_toggle: Optional[Callable[[int], None]] = None
        self.close_on_next_describe: Optional[int] = None
        self.window_api = FakeWindowApi(self)
        self.driver = FakeControlDriver(self)

    def add(
        self,
        class_name: str,
        text: str = "",
        rect: Tuple[int, int, int, int] = (0, 0, 120, 17),
        parent: Optional[int] = None,
        *,
        checked: bool = False,
        visible: bool = True,
        enabled: bool = True,
    ) -> int:
        self._next_handle += 4
        handle = self._next_handle
        self.windows[handle] = FakeWindow(
            handle=handle,
            class_name=class_name,
            text=text,
            rect=rect,
            parent=parent,
            checked=checked,
            visible=visible,
            enabled=enabled,
        )
        if parent is not None:
            self.windows[parent].children.append(handle)
        return handle

    def close(self, handle: int) -> None:
        window = self.windows.pop(handle, None)
        if window is None:
            return
        for child in list(window.children):
            self.close(child)
        if window.parent in self.windows:
            self.windows[window.parent].children.remove(handle)

    def checked(self, handle: int) -> bool:
        return self.windows[handle].checked

    def require(self, handle: int) -> FakeWindow:
        window = self.windows.get(handle)
        if window is None:
            raise ControlGoneError(f"Window {handle} no longer exists")
        return window


class FakeWindowApi:
    def __init__(self, desktop: FakeDesktop) -> None:
        self.desktop = desktop

    def is_window(self, handle: int) -> bool:
        return handle in self.desktop.windows

    def child_handles(self, handle: int) -> List[int]:
        return list(self.desktop.require(handle).children)

    def describe(self, handle: int) -> WindowInfo:
        if handle in self.desktop.vanish_on_describe:
            self.desktop.close(handle)
        window = self.desktop.require(handle)
        x, y, w, h = window.rect
        return WindowInfo(
            class_name=window.class_name,
            text=window.text,
            bounds=(x, y, x + w, y + h),
            visible=window.visible,
            enabled=window.enabled,
        )

    def screen_bounds(self):
        return self.desktop.screen


class FakeControlDriver:
    def __init__(self, desktop: FakeDesktop) -> None:
        self.desktop = desktop

    def describe(self, handle: int) -> LiveControl:
        pending = self.desktop.close_on_next_describe
        if pending is not None:
            self.desktop.close_on_next_describe = None
            self.desktop.close(pending)
        window = self.desktop.require(handle)
        class_name, text = self.desktop.live_overrides.get(handle, (window.class_name, window.text))
        return LiveControl(class_name=class_name, text=text, enabled=window.enabled)

    def read_checked(self, handle: int) -> bool:
        window = self.desktop.require(handle)
        pending = self.desktop._pending
        if handle in pending:
            pending[handle] -= 1
            if pending[handle] <= 0:
                del pending[handle]
                window.checked = not window.checked
        return window.checked

    def toggle(self, handle: int) -> None:
        window = self.desktop.require(handle)
        self.desktop.toggled.append(handle)
        if handle in self.desktop.lag:
            self.desktop._pending[handle] = self.desktop.lag[handle]
        elif handle not in self.desktop.stuck:
            window.checked = not window.checked
        if self.desktop.on_toggle is not None:
            self.desktop.on_toggle(handle)


def build_reminder_dialog(desktop: FakeDesktop, **checked: bool) -> Dict[str, int]:
    """
    Build a CPRS-style reminder dialog and return handles by short name.

    Layout::

        TfrmRemDlg "Reminder Dialog: Falls"
          TScrollBox ""
            TGroupBox "Assessments"
              TCPRSDialogParentCheckBox "Fall Risk"
              TCPRSDialogCheckBox "Pain"
              TORCheckBox "Mobility"
            TGroupBox "Education"
              TCPRSDialogCheckBox "Fall precautions reviewed"
          TButton "&Finish"
          TButton "Cancel"
    """
    handles: Dict[str, int] = {}
    root = handles["root"] = desktop.add("TfrmRemDlg", "Reminder Dialog: Falls", rect=(100, 100, 600, 500))
    scroll = handles["scroll"] = desktop.add("TScrollBox", "", rect=(105, 130, 590, 400), parent=root)
    assessments = handles["assessments"] = desktop.add("TGroupBox", "Assessments", rect=(110, 140, 560, 120), parent=scroll)
    handles["fall_risk"] = desktop.add(
        "TCPRSDialogParentCheckBox", "Fall Risk", rect=(120, 160, 200, 17), parent=assessments,
        checked=checked.get("fall_risk", False),
    )
    handles["pain"] = desktop.add(
        "TCPRSDialogCheckBox", "Pain", rect=(120, 185, 200, 17), parent=assessments,
        checked=checked.get("pain", False),
    )
    handles["mobility"] = desktop.add(
        "TORCheckBox", "Mobility", rect=(120, 210, 200, 17), parent=assessments,
        checked=checked.get("mobility", False),
    )
    education = handles["education"] = desktop.add("TGroupBox", "Education", rect=(110, 270, 560, 80), parent=scroll)
    handles["precautions"] = desktop.add(
        "TCPRSDialogCheckBox", "Fall precautions reviewed", rect=(120, 290, 250, 17), parent=education,
        checked=checked.get("precautions", False),
    )
    handles["finish"] = desktop.add("TButton", "&Finish", rect=(500, 560, 75, 25), parent=root)
    handles["cancel"] = desktop.add("TButton", "Cancel", rect=(585, 560, 75, 25), parent=root)
    return handles


def template_document(*entries: dict, version: int = 1) -> dict:
    return {"version": version, "entries": list(entries)}


def entry(label: str, group_path=("Assessments",), desired: bool = True, ordinal=None) -> dict:
    payload = {"label": label, "groupPath": list(group_path), "desiredState": desired}
    if ordinal is not None:
        payload["ordinalHint"] = ordinal
    return payload
