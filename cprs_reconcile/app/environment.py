# cprs_reconcile/app/environment.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class Paths:
    """Resolved filesystem locations used by the reconciliation tool."""

    data_root: Path
    templates_dir: Path
    reports_dir: Path
    logs_dir: Path

    @property
    def settings_file(self) -> Path:
        return self.data_root / "reconcile_settings.json"

    @property
    def failure_stats_file(self) -> Path:
        return self.reports_dir / "failure_stats.json"

    @property
    def log_file(self) -> Path:
        return self.logs_dir / "cprs_reconcile.log"


def default_data_root() -> Path:
    return Path(__file__).resolve().parents[1] / "data"


def build_default_paths(data_root: Optional[Path] = None) -> Paths:
    """Create the default Paths collection and ensure directories exist."""
    root = Path(data_root) if data_root is not None else default_data_root()
    paths = Paths(
        data_root=root,
        templates_dir=root / "templates",
        reports_dir=root / "reports",
        logs_dir=root / "logs",
    )
    _ensure_dirs(paths.data_root, paths.templates_dir, paths.reports_dir, paths.logs_dir)
    return paths


def _ensure_dirs(*directories: Path) -> None:
    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)
