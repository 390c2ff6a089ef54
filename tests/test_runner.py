"""Unit tests for runner.py - External command execution."""

import sys
from pathlib import Path

import pytest

from runner import CommandError, run_command


@pytest.mark.asyncio
class TestRunCommand:
    """Tests for run_command."""

    async def test_returns_stdout(self):
        output = await run_command([sys.executable, "-c", "print('hello')"])
        assert output == "hello\n"

    async def test_string_command_is_split(self):
        output = await run_command(f"{sys.executable} -c 'print(\"a b\")'")
        assert output == "a b\n"

    async def test_nonzero_exit(self):
        with pytest.raises(CommandError) as exc_info:
            await run_command(
                [
                    sys.executable,
                    "-c",
                    "import sys; sys.stderr.write('bad things'); sys.exit(3)",
                ]
            )
        error = exc_info.value
        assert error.returncode == 3
        assert "bad things" in error.stderr
        assert "failed with status 3" in str(error)

    async def test_missing_executable(self):
        with pytest.raises(CommandError) as exc_info:
            await run_command(["definitely-not-a-real-command-xyz"])
        assert exc_info.value.returncode is None
        assert "could not run" in str(exc_info.value)

    async def test_runs_in_working_directory(self, tmp_path):
        output = await run_command(
            [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmp_path
        )
        assert Path(output.strip()).resolve() == tmp_path.resolve()

    async def test_undecodable_output(self):
        with pytest.raises(CommandError) as exc_info:
            await run_command(
                [sys.executable, "-c", "import sys; sys.stdout.buffer.write(b'\\xff')"]
            )
        assert exc_info.value.returncode == 0
        assert "not valid UTF-8" in str(exc_info.value)

    async def test_timeout(self):
        with pytest.raises(CommandError) as exc_info:
            await run_command(
                [sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2
            )
        assert "timed out" in str(exc_info.value)


class TestCommandError:
    """Tests for CommandError."""

    def test_message_without_stderr(self):
        error = CommandError("git push", 128)
        assert str(error) == "command 'git push' failed with status 128"
        assert error.command == "git push"

    def test_custom_message(self):
        error = CommandError("git", message="nope")
        assert str(error) == "nope"
