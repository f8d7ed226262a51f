# cprs_reconcile/app/settings.py
from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class AppSettings:
    target_window_regex: Optional[str] = r".*Reminder Dialog.*"
    target_window_class: Optional[str] = None
    window_timeout: float = 12.0
    settle_delay: float = 0.3
    max_retries: int = 2
    retry_backoff: float = 0.25
    backoff_factor: float = 2.0
    input_mode: str = "message"
    include_low_confidence: bool = False
    classification_overrides: Dict[str, str] = field(default_factory=dict)
    classification_prefixes: Dict[str, str] = field(default_factory=dict)
    safety_exclusions: List[Dict[str, Any]] = field(default_factory=list)
    write_json_report: bool = True
    write_excel_report: bool = False
    track_failures: bool = True

    @classmethod
    def load(cls, path: Path) -> AppSettings:
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except Exception:
            logger.warning("Ignoring unreadable settings file %s", path)
            return cls()
        if not isinstance(data, dict):
            return cls()
        defaults = cls()
        return cls(
            target_window_regex=data.get("target_window_regex", defaults.target_window_regex),
            target_window_class=data.get("target_window_class", defaults.target_window_class),
            window_timeout=float(data.get("window_timeout", defaults.window_timeout)),
            settle_delay=float(data.get("settle_delay", defaults.settle_delay)),
            max_retries=int(data.get("max_retries", defaults.max_retries)),
            retry_backoff=float(data.get("retry_backoff", defaults.retry_backoff)),
            backoff_factor=float(data.get("backoff_factor", defaults.backoff_factor)),
            input_mode=str(data.get("input_mode", defaults.input_mode)).lower(),
            include_low_confidence=bool(data.get("include_low_confidence", defaults.include_low_confidence)),
            classification_overrides=_string_map(data.get("classification_overrides")),
            classification_prefixes=_string_map(data.get("classification_prefixes")),
            safety_exclusions=[
                dict(item) for item in data.get("safety_exclusions") or [] if isinstance(item, dict)
            ],
            write_json_report=bool(data.get("write_json_report", defaults.write_json_report)),
            write_excel_report=bool(data.get("write_excel_report", defaults.write_excel_report)),
            track_failures=bool(data.get("track_failures", defaults.track_failures)),
        )

    def save(self, path: Path) -> None:
        try:
            path.write_text(json.dumps(asdict(self), indent=2), encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not save settings to %s: %s", path, exc)


def _string_map(raw: Any) -> Dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    return {str(key): str(value) for key, value in raw.items()}
