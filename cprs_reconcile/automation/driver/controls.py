"""
Control-level helpers for reading and toggling CPRS checkboxes.

This module wraps pywinauto's win32 handle wrappers with the small API the
reconciler and executor need: re-describe a handle, read its checked state,
and dispatch a single toggle input. Nothing here can close, confirm or submit
a dialog; the only input primitive is a toggle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from .exceptions import ControlGoneError, PywinautoUnavailableError

try:
    from pywinauto import win32defines  # type: ignore
    from pywinauto.controls.hwndwrapper import HwndWrapper  # type: ignore
    from pywinauto.handleprops import iswindow  # type: ignore
    from pywinauto.win32_element_info import HwndElementInfo  # type: ignore
except Exception:  # pragma: no cover - optional dependency
    win32defines = None  # type: ignore
    HwndWrapper = None  # type: ignore
    HwndElementInfo = None  # type: ignore
    iswindow = None  # type: ignore

try:
    import pyautogui  # type: ignore
except Exception:  # pragma: no cover - optional dependency
    pyautogui = None  # type: ignore

logger = logging.getLogger(__name__)

INPUT_MODES = ("message", "mouse")


@dataclass(frozen=True, slots=True)
class LiveControl:
    """Attributes of a control re-read directly from the live window."""

    class_name: str
    text: str
    enabled: bool = True


class ControlDriver(Protocol):  # pragma: no cover - interface only
    """Protocol describing the live-state surface used during a cycle."""

    def describe(self, handle: int) -> LiveControl:
        ...

    def read_checked(self, handle: int) -> bool:
        ...

    def toggle(self, handle: int) -> None:
        ...


class Win32ControlDriver:
    """ControlDriver backed by pywinauto's win32 HwndWrapper."""

    def __init__(self, input_mode: str = "message") -> None:
        if HwndWrapper is None:
            raise PywinautoUnavailableError(
                "pywinauto is required to drive CPRS controls but is not installed."
            )
        mode = (input_mode or "message").lower()
        if mode not in INPUT_MODES:
            raise ValueError(f"Unsupported input mode '{input_mode}' (expected one of {INPUT_MODES})")
        if mode == "mouse" and pyautogui is None:
            raise PywinautoUnavailableError("pyautogui is required for mouse input mode.")
        self.input_mode = mode

    def _wrapper(self, handle: int):
        if not iswindow(handle):
            raise ControlGoneError(f"Control {handle} no longer exists")
        try:
            return HwndWrapper(HwndElementInfo(handle))
        except Exception as exc:
            raise ControlGoneError(f"Control {handle} could not be wrapped") from exc

    def describe(self, handle: int) -> LiveControl:
        wrapper = self._wrapper(handle)
        try:
            return LiveControl(
                class_name=str(wrapper.class_name()),
                text=str(wrapper.window_text() or ""),
                enabled=bool(wrapper.is_enabled()),
            )
        except Exception as exc:
            raise ControlGoneError(f"Control {handle} vanished while being described") from exc

    def read_checked(self, handle: int) -> bool:
        wrapper = self._wrapper(handle)
        try:
            state = wrapper.send_message(win32defines.BM_GETCHECK)
        except Exception as exc:
            raise ControlGoneError(f"Check state of {handle} could not be read") from exc
        return int(state) == win32defines.BST_CHECKED

    def toggle(self, handle: int) -> None:  # pragma: no cover - UI interaction
        wrapper = self._wrapper(handle)
        if self.input_mode == "mouse":
            rect = wrapper.rectangle()
            x = int(rect.left + rect.width() // 2)
            y = int(rect.top + rect.height() // 2)
            logger.debug("Mouse toggle of %s at (%s, %s)", handle, x, y)
            pyautogui.click(x, y)
            return
        # Returns before any modal prompt the control raises.
        wrapper.post_message(win32defines.BM_CLICK)
