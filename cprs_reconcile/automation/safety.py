"""
Never-act-on rules for submit/finalize controls.

The built-in rules cover the push-button classes and the captions CPRS uses
to finish, sign or accept a dialog. Configuration can add rules but cannot
remove the built-ins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from .util import normalize_label


@dataclass(frozen=True)
class SafetyRule:
    """A class-name and/or caption pattern. Both must match when both are set."""

    class_pattern: Optional[str] = None
    text_pattern: Optional[str] = None
    reason: str = "protected control"

    def __post_init__(self) -> None:
        if not self.class_pattern and not self.text_pattern:
            raise ValueError("A safety rule needs a class_pattern or a text_pattern")
        object.__setattr__(
            self, "_class_re", re.compile(self.class_pattern, re.IGNORECASE) if self.class_pattern else None
        )
        object.__setattr__(
            self, "_text_re", re.compile(self.text_pattern, re.IGNORECASE) if self.text_pattern else None
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SafetyRule":
        return cls(
            class_pattern=data.get("class_pattern") or None,
            text_pattern=data.get("text_pattern") or None,
            reason=str(data.get("reason") or "configured exclusion"),
        )

    def matches(self, class_name: str, text: str) -> bool:
        class_re = self._class_re  # type: ignore[attr-defined]
        text_re = self._text_re  # type: ignore[attr-defined]
        if class_re is not None and not class_re.fullmatch(class_name or ""):
            return False
        if text_re is not None and not text_re.fullmatch(normalize_label(text)):
            return False
        return True


DEFAULT_SAFETY_RULES: Tuple[SafetyRule, ...] = (
    SafetyRule(class_pattern=r"TButton|TBitBtn|TSpeedButton|Button", reason="push button class"),
    SafetyRule(
        text_pattern=r"(finish|submit|sign|accept|finali[sz]e|ok|done|confirm|save)(\s*\.\.\.)?",
        reason="submit/finalize caption",
    ),
)


class SafetyExclusionList:
    """Ordered rules; the built-in defaults always come first."""

    def __init__(self, extra_rules: Iterable[SafetyRule] = ()) -> None:
        self._rules: Tuple[SafetyRule, ...] = DEFAULT_SAFETY_RULES + tuple(extra_rules)

    @classmethod
    def from_config(cls, entries: Optional[Sequence[Mapping[str, Any]]]) -> "SafetyExclusionList":
        rules: List[SafetyRule] = []
        for entry in entries or ():
            if isinstance(entry, Mapping):
                rules.append(SafetyRule.from_dict(entry))
        return cls(rules)

    @property
    def rules(self) -> Tuple[SafetyRule, ...]:
        return self._rules

    def check(self, class_name: str, text: str) -> Optional[SafetyRule]:
        """Return the first rule protecting this control, if any."""
        for rule in self._rules:
            if rule.matches(class_name, text):
                return rule
        return None
