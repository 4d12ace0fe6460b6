from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import shlex
import subprocess
import sys
from dataclasses import replace
from typing import Mapping, Optional, Sequence

from ..config import HarnessConfig, load_config
from ..constants import TAG_PANEL
from ..errors import DeskrigError, WindowNotFound
from ..harness import Harness
from ..matrix import Verdict
from ..matrix.evaluators import DEFAULT_EVALUATORS

_STATUS_LABELS = {
    "passed": "PASS",
    "failed": "FAIL",
    "not_applicable": "N/A",
    "unverified": "UNVERIFIED",
}


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="deskrig", description="Drive a desktop app and check platform behavior")
    parser.add_argument("--env-file", type=str, default=None, help="Path to a .env file (default: ./.env)")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List known behavior checks")

    check = sub.add_parser("check", help="Verify the target build exists")
    check.add_argument("--build", action="store_true", help="Run the configured build command if missing")

    run = sub.add_parser("run", help="Launch the target and evaluate behavior checks")
    run.add_argument("names", nargs="*", help="Checks to run (default: all)")
    run.add_argument("--target", type=str, default=None, help="Main script of the target app")
    run.add_argument("--electron", type=str, default=None, help="Electron executable")
    run.add_argument("--build", action="store_true", help="Run the configured build command if missing")
    run.add_argument("--json", action="store_true", help="Print verdicts as JSON instead of a report")

    return parser.parse_args(argv)


def ensure_built(config: HarnessConfig, build: bool = False) -> bool:
    """Return whether the target exists, building it first when asked to."""
    if os.path.exists(config.target_path):
        return True
    if not build or not config.build_command:
        return False

    logging.getLogger("deskrig").info("Building target: %s", config.build_command)
    result = subprocess.run(shlex.split(config.build_command), check=False)
    if result.returncode != 0:
        return False
    return os.path.exists(config.target_path)


def format_report(verdicts: Mapping[str, Verdict]) -> str:
    lines = []
    counts: dict[str, int] = {}
    for name, verdict in verdicts.items():
        counts[verdict.status] = counts.get(verdict.status, 0) + 1
        line = f"{_STATUS_LABELS[verdict.status]:<11}{name}"
        if verdict.reason and verdict.status != "passed":
            line += f"  ({verdict.reason})"
        lines.append(line)
        if verdict.platform_specific:
            for key, value in verdict.platform_specific.items():
                shown = "not observable" if value is None else value
                lines.append(f"{'':<13}{key}: {shown}")

    summary = ", ".join(
        f"{counts.get(status, 0)} {label.lower()}"
        for status, label in (
            ("passed", "passed"),
            ("failed", "failed"),
            ("not_applicable", "not applicable"),
            ("unverified", "unverified"),
        )
    )
    lines.append(summary)
    return "\n".join(lines)


async def run_checks(config: HarnessConfig, names: Sequence[str] = (), verbosity: int = logging.INFO) -> dict[str, Verdict]:
    async with Harness(config, verbosity=verbosity) as harness:
        try:
            await harness.registry.wait_for_window(
                TAG_PANEL, timeout=config.wait_timeout, poll_interval=config.poll_interval
            )
        except WindowNotFound as exc:
            harness.logger.warning("%s", exc)
        return await harness.matrix.evaluate_all(list(names) or None)


async def _run_cli(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    config = load_config(args.env_file)
    verbosity = logging.DEBUG if args.debug else logging.INFO

    if args.command == "list":
        for name in DEFAULT_EVALUATORS:
            print(name)
        return 0

    if args.command == "check":
        if ensure_built(config, build=args.build):
            print(f"Target found: {config.target_path}")
            return 0
        print(f"Target missing: {config.target_path}", file=sys.stderr)
        return 1

    overrides = {}
    if args.target:
        overrides["target_path"] = args.target
    if args.electron:
        overrides["electron_path"] = args.electron
    config = replace(config, **overrides)

    unknown = [name for name in args.names if name not in DEFAULT_EVALUATORS]
    if unknown:
        print(f"Unknown checks: {', '.join(unknown)}", file=sys.stderr)
        return 2

    if not ensure_built(config, build=args.build):
        print(f"Target missing: {config.target_path}", file=sys.stderr)
        return 1

    try:
        verdicts = await run_checks(config, args.names, verbosity)
    except DeskrigError as exc:
        print(f"Session error: {exc}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps([v.to_dict() for v in verdicts.values()], indent=2))
    else:
        print(format_report(verdicts))
    return 1 if any(v.failed for v in verdicts.values()) else 0


def main() -> None:
    sys.exit(asyncio.run(_run_cli()))


if __name__ == "__main__":
    main()
