"""Custom exception types for the automation driver layer."""

from __future__ import annotations


class AutomationError(RuntimeError):
    """Base class for automation-related failures."""


class WindowNotFoundError(AutomationError):
    """Raised when the CPRS dialog window cannot be located."""


class PywinautoUnavailableError(AutomationError):
    """Raised when the native Windows stack is not installed but automation is requested."""


class EnumerationFailed(AutomationError):
    """Raised when the root handle is invalid at the start of an enumeration pass."""


class TemplateInvalid(AutomationError):
    """Raised when a checkbox template cannot be loaded or fails validation."""


class ControlGoneError(AutomationError):
    """Raised when a handle no longer refers to a live window."""


class UnsafeActionError(AutomationError):
    """Raised when an action plan would target a button control."""


class CycleInProgressError(AutomationError):
    """Raised when a reconciliation cycle is started while another is running."""
