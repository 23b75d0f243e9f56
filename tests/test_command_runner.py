from __future__ import annotations

from pathlib import Path
import sys
import tempfile
import unittest

from core.command_runner import RecordingCommandRunner, SubprocessCommandRunner


class SubprocessCommandRunnerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = SubprocessCommandRunner()

    def test_captures_output(self) -> None:
        result = self.runner.run([sys.executable, "-c", "print('hello')"])
        self.assertEqual(result.returncode, 0)
        self.assertEqual(result.stdout.strip(), "hello")
        self.assertFalse(result.streamed)

    def test_failure_returns_code(self) -> None:
        result = self.runner.run([sys.executable, "-c", "import sys; sys.exit(7)"])
        self.assertEqual(result.returncode, 7)
        self.assertFalse(result.succeeded)

    def test_runs_in_given_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            result = self.runner.run([sys.executable, "-c", "import os; print(os.getcwd())"], cwd=Path(tmp))
            self.assertEqual(Path(result.stdout.strip()).resolve(), Path(tmp).resolve())


class RecordingCommandRunnerTests(unittest.TestCase):
    def test_records_commands(self) -> None:
        runner = RecordingCommandRunner()
        runner.run(["cargo", "build", "--release"], cwd=Path("/src/foo"), stream=True)
        record = next(iter(runner.iter_commands()))
        self.assertEqual(record.command, ["cargo", "build", "--release"])
        self.assertEqual(record.cwd, "/src/foo")
        self.assertTrue(record.stream)
        self.assertEqual(runner.format_command(["rpmbuild", "-D", "_topdir /x"]), "rpmbuild -D '_topdir /x'")

    def test_scripted_response_matches_program_basename(self) -> None:
        runner = RecordingCommandRunner()
        runner.script("rpmbuild", returncode=4, stdout="RPM version 4.18.2")
        result = runner.run(["/usr/bin/rpmbuild", "--version"])
        self.assertEqual(result.returncode, 4)
        self.assertEqual(result.stdout, "RPM version 4.18.2")
        self.assertEqual(runner.run(["cargo", "build"]).returncode, 0)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
