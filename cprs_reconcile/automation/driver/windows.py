"""
Read-only window queries used to walk the CPRS control tree.

The enumerator talks to the foreign process exclusively through the
``WindowApi`` protocol so the walk can be exercised against an in-memory
desktop in tests. ``Win32WindowApi`` is the production implementation backed
by pywin32.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Tuple

from .exceptions import ControlGoneError, PywinautoUnavailableError

try:
    import win32api  # type: ignore
    import win32con  # type: ignore
    import win32gui  # type: ignore
except Exception:  # pragma: no cover - optional dependency
    win32api = None  # type: ignore
    win32con = None  # type: ignore
    win32gui = None  # type: ignore

Bounds = Tuple[int, int, int, int]


@dataclass(frozen=True, slots=True)
class WindowInfo:
    """Raw attributes of a single native window as reported by the OS."""

    class_name: str
    text: str
    bounds: Bounds
    visible: bool
    enabled: bool


class WindowApi(Protocol):  # pragma: no cover - interface only
    """Minimal surface the enumerator needs from the windowing system."""

    def is_window(self, handle: int) -> bool:
        ...

    def child_handles(self, handle: int) -> List[int]:
        ...

    def describe(self, handle: int) -> WindowInfo:
        ...

    def screen_bounds(self) -> Optional[Bounds]:
        ...


class Win32WindowApi:
    """WindowApi implementation over win32gui."""

    def __init__(self) -> None:
        if win32gui is None:
            raise PywinautoUnavailableError(
                "pywin32 is required to enumerate CPRS controls but is not installed."
            )

    def is_window(self, handle: int) -> bool:
        try:
            return bool(win32gui.IsWindow(handle))
        except Exception:
            return False

    def child_handles(self, handle: int) -> List[int]:
        """Return the direct children of ``handle`` in native z-order."""
        if not self.is_window(handle):
            raise ControlGoneError(f"Window {handle} no longer exists")
        handles: List[int] = []
        try:
            child = win32gui.GetWindow(handle, win32con.GW_CHILD)
            while child:
                handles.append(int(child))
                child = win32gui.GetWindow(child, win32con.GW_HWNDNEXT)
        except Exception as exc:
            raise ControlGoneError(f"Children of {handle} could not be listed") from exc
        return handles

    def describe(self, handle: int) -> WindowInfo:
        if not self.is_window(handle):
            raise ControlGoneError(f"Window {handle} no longer exists")
        try:
            return WindowInfo(
                class_name=str(win32gui.GetClassName(handle)),
                text=str(win32gui.GetWindowText(handle) or ""),
                bounds=tuple(int(v) for v in win32gui.GetWindowRect(handle)),  # type: ignore[arg-type]
                visible=bool(win32gui.IsWindowVisible(handle)),
                enabled=bool(win32gui.IsWindowEnabled(handle)),
            )
        except Exception as exc:
            raise ControlGoneError(f"Window {handle} vanished while being described") from exc

    def screen_bounds(self) -> Optional[Bounds]:
        try:
            left = int(win32api.GetSystemMetrics(win32con.SM_XVIRTUALSCREEN))
            top = int(win32api.GetSystemMetrics(win32con.SM_YVIRTUALSCREEN))
            width = int(win32api.GetSystemMetrics(win32con.SM_CXVIRTUALSCREEN))
            height = int(win32api.GetSystemMetrics(win32con.SM_CYVIRTUALSCREEN))
        except Exception:
            return None
        return (left, top, left + width, top + height)
