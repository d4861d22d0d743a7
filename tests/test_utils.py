"""Unit tests for utility functions (pgenie.utils).

Tests cover:
- run_command (success, failure, timeout, working directory)
- load_json / save_json (use tmp_path)
- ensure_dir / append_line
- Rich output helpers
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from pgenie.utils import (
    append_line,
    ensure_dir,
    format_command,
    load_json,
    print_error,
    print_success,
    print_warning,
    run_command,
    save_json,
    spinner,
)


# ---------------------------------------------------------------------------
# run_command
# ---------------------------------------------------------------------------


class TestRunCommand:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_successful_command_list(self):
        returncode, stdout, stderr = await run_command([sys.executable, "-c", "print('hello')"])
        assert returncode == 0
        assert stdout == "hello"
        assert stderr == ""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failing_command(self):
        code = "import sys; sys.stderr.write('bad'); sys.exit(3)"
        returncode, _, stderr = await run_command([sys.executable, "-c", code])
        assert returncode == 3
        assert stderr == "bad"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout(self):
        cmd = [sys.executable, "-c", "import time; time.sleep(10)"]
        returncode, stdout, stderr = await run_command(cmd, timeout=1)
        assert returncode == -1
        assert stdout == ""
        assert "timed out after 1s" in stderr

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_runs_in_cwd(self, tmp_path: Path):
        code = "import os; print(os.getcwd())"
        returncode, stdout, _ = await run_command([sys.executable, "-c", code], cwd=tmp_path)
        assert returncode == 0
        assert Path(stdout).resolve() == tmp_path.resolve()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_arguments_are_not_shell_expanded(self):
        code = "import sys; print(sys.argv[1])"
        returncode, stdout, _ = await run_command([sys.executable, "-c", code, "my app; echo $HOME"])
        assert returncode == 0
        assert stdout == "my app; echo $HOME"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_missing_executable_raises(self):
        with pytest.raises(FileNotFoundError):
            await run_command(["definitely-not-a-real-binary-pgenie"])

    @pytest.mark.unit
    def test_format_command(self):
        assert format_command(["npm", "run", "db:migrate"]) == "npm run db:migrate"


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


class TestJson:
    @pytest.mark.unit
    def test_save_then_load(self, tmp_path: Path):
        path = tmp_path / "nested" / "package.json"
        save_json({"name": "app", "scripts": {"dev": "next dev"}}, path)

        raw = path.read_text(encoding="utf-8")
        assert raw.endswith("}\n")
        assert '  "name": "app"' in raw
        assert load_json(path) == {"name": "app", "scripts": {"dev": "next dev"}}

    @pytest.mark.unit
    def test_load_rejects_non_object(self, tmp_path: Path):
        path = tmp_path / "list.json"
        path.write_text("[1, 2]", encoding="utf-8")
        with pytest.raises(ValueError, match="Expected a JSON object"):
            load_json(path)

    @pytest.mark.unit
    def test_load_invalid_json(self, tmp_path: Path):
        path = tmp_path / "bad.json"
        path.write_text("{", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            load_json(path)


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


class TestFileHelpers:
    @pytest.mark.unit
    def test_ensure_dir(self, tmp_path: Path):
        target = tmp_path / "a" / "b"
        assert ensure_dir(target) == target
        assert target.is_dir()
        ensure_dir(target)

    @pytest.mark.unit
    def test_append_line(self, tmp_path: Path):
        path = tmp_path / ".env"
        append_line(path, "A=1")
        append_line(path, "B=2")
        assert path.read_text(encoding="utf-8") == "\nA=1\n\nB=2\n"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


class TestOutputHelpers:
    @pytest.mark.unit
    @pytest.mark.parametrize("helper", [print_success, print_error, print_warning])
    def test_markup_in_message_is_escaped(self, helper):
        with patch("pgenie.utils.console") as mock_console:
            helper("value [red]x[/red]")
        printed = mock_console.print.call_args.args[0]
        assert "\\[red]" in printed

    @pytest.mark.unit
    def test_spinner_yields_status(self):
        with patch("pgenie.utils.console") as mock_console:
            with spinner("Working...") as status:
                assert status is mock_console.status.return_value.__enter__.return_value
        mock_console.status.assert_called_once_with("[bold]Working...[/bold]", spinner="dots")
