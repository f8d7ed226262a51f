"""Utilities for loading and validating checkbox templates."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, List, Mapping, Optional, Tuple

from ..driver.exceptions import TemplateInvalid
from ..util import normalize_label
from .model import Template, TemplateEntry

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = frozenset({1})


def load_template(path: Path) -> Template:
    """Load a template JSON document from disk."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise TemplateInvalid(f"Template file {path} does not exist") from exc
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise TemplateInvalid(f"Template file {path} could not be read: {exc}") from exc
    template = parse_template(data, source=Path(path))
    logger.info("Loaded template %s (version %s, %d entries)", path, template.version, len(template))
    return template


def parse_template(document: Any, source: Optional[Path] = None) -> Template:
    """
    Validate a decoded template document and build a Template.

    Unknown top-level fields are ignored so newer authoring tools can add
    metadata; an unknown ``version`` is always rejected.
    """
    if not isinstance(document, Mapping):
        raise TemplateInvalid("Template document must be an object")
    version = document.get("version")
    if isinstance(version, bool) or not isinstance(version, int):
        raise TemplateInvalid(f"Template version must be an integer, got {version!r}")
    if version not in SUPPORTED_VERSIONS:
        raise TemplateInvalid(
            f"Unsupported template version {version} (supported: {sorted(SUPPORTED_VERSIONS)})"
        )
    raw_entries = document.get("entries")
    if not isinstance(raw_entries, list):
        raise TemplateInvalid("Template 'entries' must be a list")

    entries: List[TemplateEntry] = []
    for index, raw in enumerate(raw_entries):
        entries.append(_parse_entry(raw, index))
    return Template(version=version, entries=entries, source=source)


def _parse_entry(raw: Any, index: int) -> TemplateEntry:
    where = f"entries[{index}]"
    if not isinstance(raw, Mapping):
        raise TemplateInvalid(f"{where} must be an object")

    label = raw.get("label")
    if not isinstance(label, str) or not normalize_label(label):
        raise TemplateInvalid(f"{where}.label must be a non-empty string")

    group_path = _parse_group_path(raw.get("groupPath", []), where)

    desired = raw.get("desiredState")
    if not isinstance(desired, bool):
        raise TemplateInvalid(f"{where}.desiredState must be true or false")

    ordinal = raw.get("ordinalHint")
    if ordinal is not None:
        if isinstance(ordinal, bool) or not isinstance(ordinal, int) or ordinal < 1:
            raise TemplateInvalid(f"{where}.ordinalHint must be a positive integer")

    return TemplateEntry(label=label, group_path=group_path, desired_state=desired, ordinal_hint=ordinal)


def _parse_group_path(raw: Any, where: str) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, list):
        raise TemplateInvalid(f"{where}.groupPath must be a list of strings")
    segments: List[str] = []
    seen = set()
    for position, segment in enumerate(raw):
        if not isinstance(segment, str) or not normalize_label(segment):
            raise TemplateInvalid(f"{where}.groupPath[{position}] must be a non-empty string")
        key = normalize_label(segment)
        if key in seen:
            raise TemplateInvalid(f"{where}.groupPath repeats segment '{segment}'")
        seen.add(key)
        segments.append(segment)
    return tuple(segments)
