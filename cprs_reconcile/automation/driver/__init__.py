"""Public exports for the CPRS automation driver."""

from .core import DEFAULT_WINDOW_SPEC, WindowLocator, WindowSpec
from .controls import INPUT_MODES, ControlDriver, LiveControl, Win32ControlDriver
from .exceptions import (
    AutomationError,
    ControlGoneError,
    CycleInProgressError,
    EnumerationFailed,
    PywinautoUnavailableError,
    TemplateInvalid,
    UnsafeActionError,
    WindowNotFoundError,
)
from .windows import Win32WindowApi, WindowApi, WindowInfo

__all__ = [
    "DEFAULT_WINDOW_SPEC",
    "WindowLocator",
    "WindowSpec",
    "INPUT_MODES",
    "ControlDriver",
    "LiveControl",
    "Win32ControlDriver",
    "AutomationError",
    "ControlGoneError",
    "CycleInProgressError",
    "EnumerationFailed",
    "PywinautoUnavailableError",
    "TemplateInvalid",
    "UnsafeActionError",
    "WindowNotFoundError",
    "Win32WindowApi",
    "WindowApi",
    "WindowInfo",
]
