from __future__ import annotations

from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path
from unittest.mock import patch
import io
import os
import tempfile
import unittest

from shellkit.cli import COMMAND_NOT_FOUND_STATUS, USAGE_ERROR_STATUS, main
from shellkit.settings import CONFIG_ENV_VAR, ENVIRONMENT_KEYS


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        env_patch = patch.dict(os.environ)
        env_patch.start()
        self.addCleanup(env_patch.stop)
        for name in (CONFIG_ENV_VAR, *ENVIRONMENT_KEYS.values()):
            os.environ.pop(name, None)

    def _main(self, *argv: str) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = main(list(argv))
        return code, out.getvalue(), err.getvalue()

    @unittest.skipUnless(os.name == "posix", "relies on POSIX utilities")
    def test_prints_trimmed_output(self) -> None:
        code, out, err = self._main("--", "printf", "  hello\n\n")
        self.assertEqual(code, 0)
        self.assertEqual(out, "hello\n")
        self.assertEqual(err, "")

    @unittest.skipUnless(os.name == "posix", "relies on POSIX utilities")
    def test_accepts_command_without_separator(self) -> None:
        code, out, _ = self._main("printf", "hi")
        self.assertEqual(code, 0)
        self.assertEqual(out, "hi\n")

    @unittest.skipUnless(os.name == "posix", "relies on POSIX utilities")
    def test_relays_failure_and_exit_code(self) -> None:
        code, out, err = self._main("--", "sh", "-c", "echo boom 1>&2; exit 5")
        self.assertEqual(code, 5)
        self.assertEqual(out, "")
        self.assertIn("Command failed with exit code 5.", err)
        self.assertIn("--- Error Output ---\nboom\n", err)
        self.assertIn("--- Standard Output ---\nNone", err)

    def test_launch_failure_maps_to_command_not_found(self) -> None:
        code, _, err = self._main("--", "shellkit-definitely-not-a-real-binary")
        self.assertEqual(code, COMMAND_NOT_FOUND_STATUS)
        self.assertIn("Command failed with exit code -1.", err)

    def test_dry_run_does_not_execute(self) -> None:
        with patch("shellkit.command_runner.subprocess.run") as mock_run:
            code, out, _ = self._main("--dry-run", "--", "rm", "-rf", "some dir")
        mock_run.assert_not_called()
        self.assertEqual(code, 0)
        self.assertEqual(out, "[DRY] rm -rf 'some dir'\n")

    def test_missing_command_is_usage_error(self) -> None:
        code, _, err = self._main("--")
        self.assertEqual(code, USAGE_ERROR_STATUS)
        self.assertIn("no command given", err)

    def test_bad_config_is_usage_error(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "shellkit.ini"
            path.write_text("[shellkit]\n")
            code, _, err = self._main("--config", str(path), "--", "true")
        self.assertEqual(code, USAGE_ERROR_STATUS)
        self.assertIn("Unsupported configuration file extension", err)

    @unittest.skipUnless(os.name == "posix", "relies on POSIX utilities")
    def test_debug_log_shows_command(self) -> None:
        code, out, _ = self._main("--log", "debug", "--", "printf", "x")
        self.assertEqual(code, 0)
        self.assertIn("[INFO] Running: printf x\n", out)
        self.assertIn("[DEBUG] Exit code 0: printf x\n", out)
        self.assertTrue(out.endswith("x\n"))


if __name__ == "__main__":
    unittest.main()
