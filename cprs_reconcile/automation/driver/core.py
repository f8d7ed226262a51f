"""
Core driver utilities for locating the CPRS dialog window.

This module provides a thin shim around pywinauto's win32 backend, supplying
retry-aware root window resolution. The engine asks the locator for a fresh
handle at the start of every reconciliation cycle; nothing is cached between
cycles because native handles can be recycled once a dialog closes.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .exceptions import PywinautoUnavailableError, WindowNotFoundError

try:
    from pywinauto import Desktop  # type: ignore
except Exception:  # pragma: no cover - optional dependency
    Desktop = None  # type: ignore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class WindowSpec:
    """Describes the dialog window we want to reconcile against."""

    title_regex: Optional[str] = None
    class_name: Optional[str] = None

    def to_query(self) -> Dict[str, Any]:
        query: Dict[str, Any] = {}
        if self.title_regex:
            query["title_re"] = self.title_regex
        if self.class_name:
            query["class_name"] = self.class_name
        return query


# CPRS reminder dialogs are Delphi forms; the main chart is "TfrmFrame".
DEFAULT_WINDOW_SPEC = WindowSpec(title_regex=r".*Reminder Dialog.*", class_name=None)


class WindowLocator:
    """Resolve the active CPRS dialog to a native window handle."""

    def __init__(
        self,
        spec: WindowSpec = DEFAULT_WINDOW_SPEC,
        *,
        timeout: float = 12.0,
        retry_interval: float = 0.5,
    ) -> None:
        self.spec = spec
        self.timeout = timeout
        self.retry_interval = retry_interval

    def __call__(self) -> int:
        return self.resolve()

    def resolve(self) -> int:
        """
        Look up the dialog and return its handle.

        Parameters are taken from the locator instance:

        spec:
            Criteria used to find the target window (title regex/class name).
        timeout:
            Overall timeout in seconds when searching for the window.
        retry_interval:
            Delay between successive search attempts.
        """
        if Desktop is None:
            raise PywinautoUnavailableError(
                "pywinauto is required to locate the CPRS window but is not installed."
            )

        deadline = time.monotonic() + max(self.timeout, 0.1)
        last_exc: Optional[Exception] = None
        while time.monotonic() < deadline:
            try:
                desktop = Desktop(backend="win32")
                window = desktop.window(**self.spec.to_query())
                window.wait("exists", timeout=self.retry_interval)
                handle = int(window.wrapper_object().handle)
                logger.debug("Resolved CPRS window %s -> handle %s", self.spec, handle)
                return handle
            except Exception as exc:  # pragma: no cover - UI timing dependent
                last_exc = exc
                time.sleep(self.retry_interval)
        raise WindowNotFoundError(
            f"Unable to locate CPRS window using spec={self.spec}"
        ) from last_exc
