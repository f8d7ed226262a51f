from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from cprs_reconcile.app.configuration import RuntimeConfig, load_runtime_config
from cprs_reconcile.app.environment import Paths, build_default_paths, default_data_root
from cprs_reconcile.app.settings import AppSettings
from cprs_reconcile.automation.classifier import ClassificationTable, ControlClassifier
from cprs_reconcile.automation.driver import (
    AutomationError,
    EnumerationFailed,
    PywinautoUnavailableError,
    TemplateInvalid,
    Win32ControlDriver,
    Win32WindowApi,
    WindowLocator,
    WindowNotFoundError,
    WindowSpec,
)
from cprs_reconcile.automation.engine import CyclePlan, EngineConfig, ReconciliationEngine
from cprs_reconcile.automation.enumerator import WindowTreeEnumerator
from cprs_reconcile.automation.matcher import Ambiguous, Unresolved
from cprs_reconcile.automation.reporting import write_report_json, write_report_workbook
from cprs_reconcile.automation.template import load_template
from cprs_reconcile.automation.util import format_path

logger = logging.getLogger("cprs_reconcile.cli")

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_TEMPLATE = 2
EXIT_WINDOW = 3
EXIT_OUTCOMES = 4


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="cprs-reconcile", description="CPRS checkbox template reconciliation")
    parser.add_argument("--data-root", type=Path, default=default_data_root(), help="Data directory (defaults to cprs_reconcile/data)")
    parser.add_argument("--config", type=Path, default=None, help="INI file with [runtime] overrides")
    parser.add_argument("--window-regex", help="Title regex of the CPRS dialog to reconcile")
    parser.add_argument("--window-class", help="Window class name of the CPRS dialog")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile_parser = subparsers.add_parser("reconcile", help="Run one reconciliation cycle against the CPRS dialog")
    reconcile_parser.add_argument("template", type=Path, help="Template JSON path (absolute or relative to templates dir)")
    reconcile_parser.add_argument("--dry-run", action="store_true", help="Build the action plan without dispatching input")
    reconcile_parser.add_argument("--report-json", type=Path, help="Write the outcome report to this JSON file")
    reconcile_parser.add_argument("--report-xlsx", type=Path, help="Append the outcome report to this Excel workbook")
    reconcile_parser.add_argument("--strict", action="store_true", help="Exit non-zero when any entry did not succeed")

    validate_parser = subparsers.add_parser("validate-template", help="Validate a template without touching CPRS")
    validate_parser.add_argument("template", type=Path)

    snapshot_parser = subparsers.add_parser("snapshot", help="Print the classified control tree of the CPRS dialog")
    snapshot_parser.add_argument("--json", dest="as_json", action="store_true", help="Emit JSON instead of text")

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(levelname)s %(name)s - %(message)s")
    paths = build_default_paths(args.data_root)
    _setup_file_logging(paths.log_file)

    runtime_cfg = load_runtime_config(config_path=args.config)
    logger.debug("Loaded runtime config overrides: %s", runtime_cfg)
    settings = _load_settings(paths, runtime_cfg)
    if args.window_regex:
        settings.target_window_regex = args.window_regex
    if args.window_class:
        settings.target_window_class = args.window_class

    if args.command == "validate-template":
        return _handle_validate(args.template, paths)
    if args.command == "snapshot":
        return _handle_snapshot(settings, args.as_json)
    if args.command == "reconcile":
        return _handle_reconcile(args, paths, settings)
    parser.print_help()
    return EXIT_USAGE


def _setup_file_logging(log_file: Path) -> None:
    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        if isinstance(handler, logging.FileHandler) and getattr(handler, "baseFilename", None) == str(log_file):
            return
    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_file, maxBytes=1_048_576, backupCount=3, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(asctime)s - %(levelname)s - %(message)s"))
        root_logger.addHandler(file_handler)
    except OSError:
        logging.exception("Failed to initialize file logging")


def _load_settings(paths: Paths, runtime_cfg: RuntimeConfig) -> AppSettings:
    settings = AppSettings.load(paths.settings_file)
    runtime_cfg.apply_to_settings(settings)
    return settings


def _resolve_template_path(template: Path, paths: Paths) -> Path:
    if template.is_absolute() or template.exists():
        return template
    candidate = paths.templates_dir / template
    if candidate.suffix != ".json" and not candidate.exists():
        candidate = candidate.with_suffix(".json")
    return candidate


def _handle_validate(template: Path, paths: Paths) -> int:
    path = _resolve_template_path(template, paths)
    try:
        loaded = load_template(path)
    except TemplateInvalid as exc:
        logger.error("Template %s is invalid: %s", path, exc)
        return EXIT_TEMPLATE
    print(f"{path}: version {loaded.version}, {len(loaded)} entr{'y' if len(loaded) == 1 else 'ies'}")
    for entry in loaded:
        desired = "checked" if entry.desired_state else "unchecked"
        hint = f" #{entry.ordinal_hint}" if entry.ordinal_hint else ""
        print(f"  {entry.display_name}{hint} -> {desired}")
    return EXIT_OK


def _window_spec(settings: AppSettings) -> WindowSpec:
    return WindowSpec(title_regex=settings.target_window_regex, class_name=settings.target_window_class)


def _handle_snapshot(settings: AppSettings, as_json: bool) -> int:
    try:
        locator = WindowLocator(_window_spec(settings), timeout=settings.window_timeout)
        snapshot = WindowTreeEnumerator(Win32WindowApi()).enumerate(locator())
    except (PywinautoUnavailableError, WindowNotFoundError, EnumerationFailed) as exc:
        logger.error("Unable to snapshot CPRS window: %s", exc)
        return EXIT_WINDOW
    table = ClassificationTable().with_overrides(settings.classification_overrides, settings.classification_prefixes)
    classifier = ControlClassifier(table)
    rows: List[Dict[str, Any]] = []
    for node in snapshot:
        classification = classifier.classify(node, snapshot)
        depth = sum(1 for _ in snapshot.ancestors(node))
        rows.append(
            {
                "handle": node.handle,
                "parent": node.parent_handle,
                "depth": depth,
                "class_name": node.class_name,
                "role": classification.role.value,
                "confidence": classification.confidence.value,
                "text": node.text,
                "rect": [node.rect.x, node.rect.y, node.rect.width, node.rect.height],
                "visible": node.visible,
                "enabled": node.enabled,
            }
        )
    if as_json:
        print(json.dumps({"cycleId": snapshot.cycle_id, "root": snapshot.root_handle, "controls": rows}, indent=2))
        return EXIT_OK
    for row in rows:
        flags = "" if row["visible"] else " [hidden]"
        flags += "" if row["enabled"] else " [disabled]"
        print(f"{'  ' * row['depth']}{row['class_name']} ({row['role']}/{row['confidence']}) '{row['text']}'{flags}")
    return EXIT_OK


def _handle_reconcile(args: argparse.Namespace, paths: Paths, settings: AppSettings) -> int:
    template_path = _resolve_template_path(args.template, paths)
    try:
        template = load_template(template_path)
    except TemplateInvalid as exc:
        logger.error("Template %s is invalid: %s", template_path, exc)
        return EXIT_TEMPLATE

    config = EngineConfig(
        settle_delay=settings.settle_delay,
        max_retries=settings.max_retries,
        retry_backoff=settings.retry_backoff,
        backoff_factor=settings.backoff_factor,
        include_low_confidence=settings.include_low_confidence,
        classification_overrides=settings.classification_overrides,
        classification_prefixes=settings.classification_prefixes,
        safety_exclusions=settings.safety_exclusions,
        failure_stats_path=paths.failure_stats_file if settings.track_failures else None,
    )
    try:
        engine = ReconciliationEngine(
            template,
            config,
            locator=WindowLocator(_window_spec(settings), timeout=settings.window_timeout),
            window_api=Win32WindowApi(),
            driver=Win32ControlDriver(settings.input_mode),
        )
        if args.dry_run:
            _print_plan(engine.plan_cycle())
            return EXIT_OK
        report = engine.run_cycle()
    except (WindowNotFoundError, EnumerationFailed, PywinautoUnavailableError) as exc:
        logger.error("Reconciliation aborted: %s", exc)
        return EXIT_WINDOW
    except AutomationError as exc:
        logger.error("Reconciliation failed: %s", exc)
        return EXIT_WINDOW

    for record in report:
        print(record.describe())

    json_path = args.report_json
    if json_path is None and settings.write_json_report:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        json_path = paths.reports_dir / f"{template_path.stem}_{stamp}.json"
    if json_path is not None:
        write_report_json(report, json_path)
    xlsx_path = args.report_xlsx
    if xlsx_path is None and settings.write_excel_report:
        xlsx_path = paths.reports_dir / "outcomes.xlsx"
    if xlsx_path is not None:
        write_report_workbook(report, xlsx_path)

    if args.strict and report.has_failures():
        return EXIT_OUTCOMES
    return EXIT_OK


def _print_plan(cycle: CyclePlan) -> None:
    print(f"Cycle {cycle.snapshot.cycle_id}: {len(cycle.snapshot)} control(s), {len(cycle.plan)} toggle(s) planned")
    for action in cycle.plan:
        target = "checked" if action.desired_state else "unchecked"
        print(f"  TOGGLE {action.entry.display_name} [{action.class_name} #{action.target_handle}] -> {target}")
    for record in cycle.decided.values():
        print(f"  {record.describe()}")
    for match in cycle.matches:
        if isinstance(match, (Unresolved, Ambiguous)):
            print(f"  {format_path(match.entry.group_path)} :: {match.entry.label} -> {type(match).__name__}")


if __name__ == "__main__":
    sys.exit(main())
