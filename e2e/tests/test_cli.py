import importlib
import io
import json
import os
import tempfile
import types
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest import mock

from e2e.deskrig.config import HarnessConfig
from e2e.deskrig.errors import LaunchFailed
from e2e.deskrig.matrix import Verdict

cli_main = importlib.import_module("e2e.deskrig.cli.main")


def _verdicts(*verdicts):
    return {v.name: v for v in verdicts}


class FormatReportTests(unittest.TestCase):
    def test_labels_and_summary(self):
        report = cli_main.format_report(
            _verdicts(
                Verdict(name="panel_geometry", passed=True, platform_specific={"vibrancy": None, "taskbar_hidden": True}),
                Verdict(name="panel_position", passed=False, reason="panel at (0, 0), expected (1650, 10)"),
                Verdict.not_applicable("dock_visibility", "dock exists only on macOS"),
                Verdict(name="tray_visibility", verified=False, reason="not observable"),
            )
        )
        lines = report.splitlines()

        self.assertTrue(lines[0].startswith("PASS"))
        self.assertIn("vibrancy: not observable", report)
        self.assertIn("taskbar_hidden: True", report)
        self.assertIn("FAIL       panel_position  (panel at (0, 0), expected (1650, 10))", report)
        self.assertIn("N/A        dock_visibility", report)
        self.assertIn("UNVERIFIED tray_visibility", report)
        self.assertEqual(lines[-1], "1 passed, 1 failed, 1 not applicable, 1 unverified")


class DeskrigCLITests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.target = os.path.join(self._tmp.name, "index.js")
        self.config = HarnessConfig(target_path=self.target, build_command="npm run build")

        patcher = mock.patch.object(cli_main, "load_config", return_value=self.config)
        self.load_config = patcher.start()
        self.addCleanup(patcher.stop)

    def _touch_target(self):
        with open(self.target, "w") as fh:
            fh.write("// built\n")

    async def _run(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = await cli_main._run_cli(list(argv))
        return code, out.getvalue(), err.getvalue()

    async def test_list_prints_every_check(self):
        code, out, _ = await self._run("list")

        self.assertEqual(code, 0)
        self.assertEqual(out.split(), list(cli_main.DEFAULT_EVALUATORS))

    async def test_env_file_forwarded(self):
        await self._run("--env-file", "ci.env", "list")
        self.load_config.assert_called_once_with("ci.env")

    async def test_check_missing_target(self):
        code, _, err = await self._run("check")

        self.assertEqual(code, 1)
        self.assertIn("Target missing", err)

    async def test_check_builds_when_asked(self):
        def fake_build(argv, check):
            self.assertEqual(argv, ["npm", "run", "build"])
            self._touch_target()
            return types.SimpleNamespace(returncode=0)

        with mock.patch.object(cli_main.subprocess, "run", side_effect=fake_build) as run:
            code, out, _ = await self._run("check", "--build")

        self.assertEqual(code, 0)
        self.assertIn("Target found", out)
        run.assert_called_once()

    async def test_failed_build(self):
        with mock.patch.object(cli_main.subprocess, "run", return_value=types.SimpleNamespace(returncode=2)):
            self.assertFalse(cli_main.ensure_built(self.config, build=True))

    async def test_unknown_check_name(self):
        self._touch_target()
        with mock.patch.object(cli_main, "run_checks", new=mock.AsyncMock()) as run_checks:
            code, _, err = await self._run("run", "panel_geometry", "vibes")

        self.assertEqual(code, 2)
        self.assertIn("vibes", err)
        run_checks.assert_not_called()

    async def test_run_passing_checks(self):
        self._touch_target()
        verdicts = _verdicts(Verdict(name="panel_geometry", passed=True), Verdict.not_applicable("dock_visibility", "x"))
        with mock.patch.object(cli_main, "run_checks", new=mock.AsyncMock(return_value=verdicts)) as run_checks:
            code, out, _ = await self._run("run", "--electron", "/opt/electron", "panel_geometry", "dock_visibility")

        self.assertEqual(code, 0)
        self.assertIn("1 passed, 0 failed, 1 not applicable, 0 unverified", out)
        config, names, _ = run_checks.call_args.args
        self.assertEqual(config.electron_path, "/opt/electron")
        self.assertEqual(names, ["panel_geometry", "dock_visibility"])

    async def test_run_failing_check_exit_code(self):
        self._touch_target()
        verdicts = _verdicts(Verdict(name="panel_geometry", passed=False, reason="failed checks: width"))
        with mock.patch.object(cli_main, "run_checks", new=mock.AsyncMock(return_value=verdicts)):
            code, _, _ = await self._run("run")

        self.assertEqual(code, 1)

    async def test_run_json_output(self):
        self._touch_target()
        verdicts = _verdicts(Verdict(name="tray_visibility", verified=False, reason="not observable"))
        with mock.patch.object(cli_main, "run_checks", new=mock.AsyncMock(return_value=verdicts)):
            code, out, _ = await self._run("run", "--json")

        self.assertEqual(code, 0)
        payload = json.loads(out)
        self.assertEqual(payload[0]["name"], "tray_visibility")
        self.assertEqual(payload[0]["status"], "unverified")

    async def test_run_session_error(self):
        self._touch_target()
        with mock.patch.object(cli_main, "run_checks", new=mock.AsyncMock(side_effect=LaunchFailed("exited with status 1", 1))):
            code, _, err = await self._run("run")

        self.assertEqual(code, 1)
        self.assertIn("Session error: exited with status 1", err)

    async def test_run_target_override(self):
        other = os.path.join(self._tmp.name, "other.js")
        code, _, err = await self._run("run", "--target", other)

        self.assertEqual(code, 1)
        self.assertIn(other, err)


if __name__ == "__main__":
    unittest.main()
