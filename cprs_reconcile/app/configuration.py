"""Runtime configuration loading helpers for the reconciliation engine."""

from __future__ import annotations

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .settings import AppSettings

_ENV_PREFIX = "CPRS_RECONCILE_"
_BOOL_TRUE = {"1", "true", "yes", "on"}
_BOOL_FALSE = {"0", "false", "no", "off"}


@dataclass(slots=True)
class RuntimeConfig:
    """Declarative overrides sourced from environment variables or config files."""

    config_source: Optional[Path] = None
    target_window_regex: Optional[str] = None
    target_window_class: Optional[str] = None
    window_timeout: Optional[float] = None
    settle_delay: Optional[float] = None
    max_retries: Optional[int] = None
    retry_backoff: Optional[float] = None
    backoff_factor: Optional[float] = None
    input_mode: Optional[str] = None
    include_low_confidence: Optional[bool] = None
    write_json_report: Optional[bool] = None
    write_excel_report: Optional[bool] = None

    def apply_to_settings(self, settings: AppSettings) -> None:
        """Project runtime overrides onto persisted settings without destroying saved values."""

        if self.target_window_regex is not None:
            settings.target_window_regex = self.target_window_regex
        if self.target_window_class is not None:
            settings.target_window_class = self.target_window_class
        if self.window_timeout is not None:
            settings.window_timeout = self.window_timeout
        if self.settle_delay is not None:
            settings.settle_delay = self.settle_delay
        if self.max_retries is not None:
            settings.max_retries = self.max_retries
        if self.retry_backoff is not None:
            settings.retry_backoff = self.retry_backoff
        if self.backoff_factor is not None:
            settings.backoff_factor = self.backoff_factor
        if self.input_mode is not None:
            settings.input_mode = self.input_mode.lower()
        if self.include_low_confidence is not None:
            settings.include_low_confidence = self.include_low_confidence
        if self.write_json_report is not None:
            settings.write_json_report = self.write_json_report
        if self.write_excel_report is not None:
            settings.write_excel_report = self.write_excel_report


def load_runtime_config(
    env: Mapping[str, str] | None = None,
    config_path: Optional[Path] = None,
) -> RuntimeConfig:
    """Load runtime configuration overrides from environment variables and optional INI files."""

    source_env = os.environ if env is None else env
    config_file = _determine_config_path(source_env, config_path)
    config = RuntimeConfig(config_source=config_file)

    if config_file is not None and config_file.is_file():
        parser = configparser.ConfigParser()
        try:
            parser.read(config_file, encoding="utf-8")
        except configparser.Error:
            parser = None  # pragma: no cover - invalid file handled via env overrides only
        if parser and parser.has_section("runtime"):
            section = parser["runtime"]
            config.target_window_regex = section.get("target_window_regex", config.target_window_regex)
            config.target_window_class = section.get("target_window_class", config.target_window_class)
            config.window_timeout = _get_float(section, "window_timeout", config.window_timeout)
            config.settle_delay = _get_float(section, "settle_delay", config.settle_delay)
            config.max_retries = _get_int(section, "max_retries", config.max_retries)
            config.retry_backoff = _get_float(section, "retry_backoff", config.retry_backoff)
            config.backoff_factor = _get_float(section, "backoff_factor", config.backoff_factor)
            config.input_mode = section.get("input_mode", config.input_mode)
            config.include_low_confidence = _get_bool(section, "include_low_confidence", config.include_low_confidence)
            config.write_json_report = _get_bool(section, "write_json_report", config.write_json_report)
            config.write_excel_report = _get_bool(section, "write_excel_report", config.write_excel_report)

    _apply_env_overrides(config, source_env)
    return config


def _determine_config_path(env: Mapping[str, str], explicit: Optional[Path]) -> Optional[Path]:
    if explicit is not None:
        return explicit
    env_override = env.get(f"{_ENV_PREFIX}CONFIG_FILE")
    if env_override:
        return Path(env_override).expanduser()
    candidates = (
        Path(env[f"{_ENV_PREFIX}ROOT"]) / "cprs_reconcile.ini" if env.get(f"{_ENV_PREFIX}ROOT") else None,
        Path.cwd() / "cprs_reconcile.ini",
        Path.cwd() / "cprs-reconcile.ini",
    )
    for candidate in candidates:
        if candidate and candidate.is_file():
            return candidate
    return None


def _apply_env_overrides(config: RuntimeConfig, env: Mapping[str, str]) -> None:
    config.target_window_regex = env.get(f"{_ENV_PREFIX}WINDOW_REGEX", config.target_window_regex)
    config.target_window_class = env.get(f"{_ENV_PREFIX}WINDOW_CLASS", config.target_window_class)
    config.window_timeout = _get_float(env, f"{_ENV_PREFIX}WINDOW_TIMEOUT", config.window_timeout)
    config.settle_delay = _get_float(env, f"{_ENV_PREFIX}SETTLE_DELAY", config.settle_delay)
    config.max_retries = _get_int(env, f"{_ENV_PREFIX}MAX_RETRIES", config.max_retries)
    config.retry_backoff = _get_float(env, f"{_ENV_PREFIX}RETRY_BACKOFF", config.retry_backoff)
    config.backoff_factor = _get_float(env, f"{_ENV_PREFIX}BACKOFF_FACTOR", config.backoff_factor)
    config.input_mode = env.get(f"{_ENV_PREFIX}INPUT_MODE", config.input_mode)
    config.include_low_confidence = _get_bool(env, f"{_ENV_PREFIX}INCLUDE_LOW_CONFIDENCE", config.include_low_confidence)
    config.write_json_report = _get_bool(env, f"{_ENV_PREFIX}WRITE_JSON_REPORT", config.write_json_report)
    config.write_excel_report = _get_bool(env, f"{_ENV_PREFIX}WRITE_EXCEL_REPORT", config.write_excel_report)


def _get_float(source: Mapping[str, str], key: str, default: Optional[float]) -> Optional[float]:
    raw = source.get(key)
    if raw is None:
        return default
    try:
        return float(str(raw).strip())
    except (TypeError, ValueError):
        return default


def _get_int(source: Mapping[str, str], key: str, default: Optional[int]) -> Optional[int]:
    raw = source.get(key)
    if raw is None:
        return default
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return default


def _get_bool(source: Mapping[str, str], key: str, default: Optional[bool]) -> Optional[bool]:
    raw = source.get(key)
    if raw is None:
        return default
    value = str(raw).strip().lower()
    if value in _BOOL_TRUE:
        return True
    if value in _BOOL_FALSE:
        return False
    return default
