"""Allure reporting helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

from ..outcome import OutcomeReport

try:
    import allure  # type: ignore
except Exception:  # pragma: no cover - optional dependency
    allure = None  # type: ignore


def allure_available() -> bool:
    return allure is not None


def attach_report(name: str, report: OutcomeReport) -> None:
    if allure is None:
        return
    try:
        allure.attach(
            json.dumps(report.to_dict(), indent=2),
            name=name,
            attachment_type=allure.attachment_type.JSON,
        )
    except Exception:
        pass


def attach_file(name: str, path: Path, attachment_type: Optional[str] = None) -> None:
    if allure is None:
        return
    if not path.exists():
        return
    attachment_type = attachment_type or "application/octet-stream"
    try:
        allure.attach(path.read_bytes(), name=name, attachment_type=attachment_type)
    except Exception:
        pass
