from __future__ import annotations

from pathlib import Path
from unittest.mock import patch
import subprocess
import sys
import tempfile
import unittest

from docbuild.command_runner import (
    CommandError,
    CommandTimeoutError,
    RecordingCommandRunner,
    SubprocessCommandRunner,
    format_command,
)


class SubprocessCommandRunnerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = SubprocessCommandRunner()

    def test_captures_output(self) -> None:
        result = self.runner.run([sys.executable, "-c", "print('hello')"])
        self.assertEqual(result.returncode, 0)
        self.assertEqual(result.stdout.strip(), "hello")

    def test_nonzero_exit_raises_when_checked(self) -> None:
        with self.assertRaises(CommandError) as ctx:
            self.runner.run([sys.executable, "-c", "import sys; sys.exit(2)"])
        self.assertEqual(ctx.exception.result.returncode, 2)
        self.assertIn("exit code 2", str(ctx.exception))

    def test_nonzero_exit_returned_when_unchecked(self) -> None:
        result = self.runner.run([sys.executable, "-c", "import sys; sys.exit(3)"], check=False)
        self.assertEqual(result.returncode, 3)

    def test_runs_in_given_directory(self) -> None:
        with tempfile.TemporaryDirectory() as temp:
            result = self.runner.run(
                [sys.executable, "-c", "import os; print(os.getcwd())"],
                cwd=Path(temp),
            )
            self.assertEqual(Path(result.stdout.strip()).resolve(), Path(temp).resolve())

    def test_arguments_are_not_shell_interpreted(self) -> None:
        payload = "a b; echo injected 'quoted' \"double\""
        result = self.runner.run([sys.executable, "-c", "import sys; print(sys.argv[1])", payload])
        self.assertEqual(result.stdout.rstrip("\n"), payload)

    def test_timeout_raises(self) -> None:
        with self.assertRaises(CommandTimeoutError) as ctx:
            self.runner.run([sys.executable, "-c", "import time; time.sleep(10)"], timeout=0.2)
        self.assertIn("timed out", str(ctx.exception))
        self.assertIsInstance(ctx.exception, CommandError)

    def test_launch_does_not_wait(self) -> None:
        with patch("docbuild.command_runner.subprocess.Popen") as popen:
            self.runner.launch(["xdg-open", Path("/tmp/out/html/index.html")], note="open")
        popen.assert_called_once()
        args, kwargs = popen.call_args
        self.assertEqual(args[0], ["xdg-open", "/tmp/out/html/index.html"])
        self.assertIs(kwargs["stdout"], subprocess.DEVNULL)
        popen.return_value.wait.assert_not_called()


class RecordingCommandRunnerTests(unittest.TestCase):
    def test_records_and_formats_commands(self) -> None:
        runner = RecordingCommandRunner()
        runner.run(["appledoc", "-o", "/tmp/my docs"], cwd=Path("/tmp/src"), note="appledoc", stream=True)
        runner.launch(["open", "/tmp/my docs/html/index.html"], note="open")

        records = runner.commands
        self.assertEqual(len(records), 2)
        self.assertTrue(records[0].stream)
        self.assertFalse(records[0].detached)
        self.assertTrue(records[1].detached)

        lines = list(runner.iter_formatted())
        self.assertEqual(lines[0], "[dry-run] appledoc (cwd=/tmp/src) appledoc -o '/tmp/my docs'")
        self.assertEqual(lines[1], "[dry-run] open open '/tmp/my docs/html/index.html'")

    def test_format_command_quotes_metacharacters(self) -> None:
        self.assertEqual(format_command(["echo", "a;b", "|–|"]), "echo 'a;b' '|–|'")


if __name__ == "__main__":
    unittest.main()
