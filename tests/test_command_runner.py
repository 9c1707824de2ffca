from __future__ import annotations

from pathlib import Path
import io
import sys
import unittest

from core.command_runner import (
    CommandError,
    CommandResult,
    RecordingCommandRunner,
    ScriptedResponse,
    SubprocessCommandRunner,
)
from core.console import Console


class CommandResultTests(unittest.TestCase):
    def test_exit_code_and_signal(self) -> None:
        ok = CommandResult(command=["true"], returncode=0, stdout="", stderr="")
        failed = CommandResult(command=["false"], returncode=3, stdout="", stderr="")
        killed = CommandResult(command=["sleep"], returncode=-15, stdout="", stderr="")

        self.assertTrue(ok.succeeded)
        self.assertEqual((failed.exit_code, failed.signal), (3, None))
        self.assertEqual((killed.exit_code, killed.signal), (None, 15))

    def test_error_message_includes_output(self) -> None:
        error = CommandError(CommandResult(command=["cargo", "metadata"], returncode=101, stdout="", stderr="boom"))

        self.assertIn("Command failed with exit code 101: cargo metadata", str(error))
        self.assertIn("stderr: boom", str(error))


class RecordingCommandRunnerTests(unittest.TestCase):
    def test_unscripted_commands_succeed(self) -> None:
        runner = RecordingCommandRunner()

        result = runner.run(["cargo", "build"], cwd=Path("/ws"), note="Compiling", stream=True)

        self.assertEqual(result.returncode, 0)
        record = runner.commands[0]
        self.assertEqual(record.command, ["cargo", "build"])
        self.assertEqual(record.cwd, "/ws")
        self.assertTrue(record.stream)

    def test_responses_are_consumed_in_order(self) -> None:
        seen = []
        runner = RecordingCommandRunner([ScriptedResponse(stdout="first")])
        runner.script(stdout="second", side_effect=lambda record: seen.append(record.command))

        self.assertEqual(runner.run(["a"]).stdout, "first")
        self.assertEqual(runner.run(["b"]).stdout, "second")
        self.assertEqual(runner.run(["c"]).stdout, "")
        self.assertEqual(seen, [["b"]])

    def test_check_raises_on_failure(self) -> None:
        runner = RecordingCommandRunner().script(returncode=1).script(returncode=1)

        with self.assertRaises(CommandError):
            runner.run(["false"])
        self.assertEqual(runner.run(["false"], check=False).returncode, 1)

    def test_scripted_launch_error(self) -> None:
        runner = RecordingCommandRunner().script(error=FileNotFoundError("wasmer"))

        with self.assertRaises(FileNotFoundError):
            runner.run(["wasmer", "publish"])
        self.assertEqual(len(runner.commands), 1)

    def test_describe(self) -> None:
        runner = RecordingCommandRunner()
        runner.run(["wasmer", "publish"], cwd=Path("/bundle"), note="Publishing")

        self.assertEqual(
            runner.describe(),
            ["Publishing (cwd=/bundle) wasmer publish"],
        )


class SubprocessCommandRunnerTests(unittest.TestCase):
    def test_captures_output(self) -> None:
        result = SubprocessCommandRunner().run([sys.executable, "-c", "print('hi')"])

        self.assertEqual(result.stdout.strip(), "hi")

    def test_trace_names_the_step(self) -> None:
        out = io.StringIO()
        runner = SubprocessCommandRunner(Console("trace", stdout=out))

        runner.run([sys.executable, "-c", "pass"], note="Parsing Cargo metadata")

        self.assertTrue(out.getvalue().startswith("[TRACE] Parsing Cargo metadata: "))

    def test_missing_program_raises_os_error(self) -> None:
        with self.assertRaises(OSError):
            SubprocessCommandRunner().run(["definitely-not-a-real-program-wasmer-pack"])

    def test_non_zero_exit_with_check(self) -> None:
        with self.assertRaises(CommandError) as ctx:
            SubprocessCommandRunner().run([sys.executable, "-c", "import sys; sys.exit(4)"])

        self.assertEqual(ctx.exception.result.returncode, 4)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
