"""Checkbox template model and loader."""

from .loader import SUPPORTED_VERSIONS, load_template, parse_template
from .model import Template, TemplateEntry

__all__ = [
    "SUPPORTED_VERSIONS",
    "Template",
    "TemplateEntry",
    "load_template",
    "parse_template",
]
