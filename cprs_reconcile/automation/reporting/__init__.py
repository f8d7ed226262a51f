"""Outcome report persistence and Allure attachments."""

from .allure_helpers import allure_available, attach_file, attach_report
from .writers import write_report_json, write_report_workbook

__all__ = [
    "allure_available",
    "attach_file",
    "attach_report",
    "write_report_json",
    "write_report_workbook",
]
