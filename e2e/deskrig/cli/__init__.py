"""Command-line runner for deskrig checks."""

from .main import _run_cli, format_report, main, run_checks

__all__ = ["main", "format_report", "run_checks"]
