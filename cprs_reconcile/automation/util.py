import re
from typing import Iterable, Tuple

_WHITESPACE = re.compile(r"\s+")
# Delphi captions mark keyboard accelerators with '&'; '&&' is a literal ampersand.
_ACCELERATOR = re.compile(r"&(?!&)")


def normalize_label(text: str) -> str:
    """
    Normalise a caption for comparison: drop accelerator markers, collapse
    whitespace and casefold. Robust against None/empty input.
    """
    if not text:
        return ""
    value = _ACCELERATOR.sub("", str(text)).replace("&&", "&")
    return _WHITESPACE.sub(" ", value).strip().casefold()


def normalize_path(segments: Iterable[str]) -> Tuple[str, ...]:
    """Normalise every segment of a group path."""
    return tuple(normalize_label(segment) for segment in segments)


def format_path(segments: Iterable[str]) -> str:
    """Render a group path for logs and reports, e.g. 'Assessments > Falls'."""
    parts = [str(segment) for segment in segments]
    return " > ".join(parts) if parts else "(root)"
