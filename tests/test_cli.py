"""Tests for the command-line entry point (pgenie.cli)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from pgenie import __version__
from pgenie.cli import EXIT_ERROR, EXIT_INTERRUPTED, EXIT_OK, build_parser, main, run_generate
from pgenie.config import AnthropicConfig, Config, ProjectSettings
from pgenie.exceptions import ConfigError, GenerationError

pytestmark = pytest.mark.unit


def _handlers(**overrides: AsyncMock):
    commands = {
        "init": (overrides.get("init", AsyncMock(return_value=EXIT_OK)), "initializing project"),
        "generate": (overrides.get("generate", AsyncMock(return_value=EXIT_OK)), "generating schema"),
    }
    return patch.dict("pgenie.cli.COMMANDS", commands)


class TestParser:
    def test_subcommands(self):
        parser = build_parser()
        assert parser.parse_args(["init"]).command == "init"
        args = parser.parse_args(["-C", "app", "generate"])
        assert args.command == "generate"
        assert args.project_dir == "app"

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as excinfo:
            main(["--version"])
        assert excinfo.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_unknown_command(self):
        with pytest.raises(SystemExit) as excinfo:
            main(["migrate"])
        assert excinfo.value.code == 2


class TestMain:
    def test_no_command_prints_help(self, capsys):
        assert main([]) == EXIT_ERROR
        assert "usage: pgenie" in capsys.readouterr().out

    def test_missing_project_dir(self, tmp_path: Path):
        with _handlers(), patch("pgenie.utils.console") as mock_console:
            assert main(["--project-dir", str(tmp_path / "missing"), "generate"]) == EXIT_ERROR
        assert "Project directory not found" in mock_console.print.call_args.args[0]

    def test_success(self, tmp_path: Path):
        handler = AsyncMock(return_value=EXIT_OK)
        with _handlers(generate=handler):
            assert main(["--project-dir", str(tmp_path), "generate"]) == EXIT_OK

        config = handler.await_args.args[0]
        assert isinstance(config, Config)
        assert config.project.project_root == tmp_path

    def test_pgenie_error_exits_one(self, tmp_path: Path):
        handler = AsyncMock(side_effect=GenerationError("Failed to generate schema: HTTP 500"))
        with _handlers(generate=handler), patch("pgenie.utils.console") as mock_console:
            assert main(["-C", str(tmp_path), "generate"]) == EXIT_ERROR

        mock_console.print.assert_called_once_with(
            "[bold red]Error generating schema: Failed to generate schema: HTTP 500[/bold red]"
        )

    def test_error_message_brackets_are_escaped(self, tmp_path: Path):
        handler = AsyncMock(side_effect=ConfigError("bad [value]"))
        with _handlers(init=handler), patch("pgenie.utils.console") as mock_console:
            assert main(["-C", str(tmp_path), "init"]) == EXIT_ERROR
        assert "bad \\[value]" in mock_console.print.call_args.args[0]

    def test_keyboard_interrupt(self, tmp_path: Path):
        with _handlers(init=AsyncMock(side_effect=KeyboardInterrupt)):
            assert main(["-C", str(tmp_path), "init"]) == EXIT_INTERRUPTED

    def test_unexpected_error(self, tmp_path: Path):
        with _handlers(init=AsyncMock(side_effect=RuntimeError("boom"))), \
                patch("pgenie.utils.console") as mock_console:
            assert main(["-C", str(tmp_path), "init"]) == EXIT_ERROR
        assert "Unexpected error initializing project" in mock_console.print.call_args_list[0].args[0]


class TestRunGenerate:
    @pytest.mark.asyncio
    async def test_requires_api_key(self, project_dir: Path):
        config = Config(anthropic=AnthropicConfig(), project=ProjectSettings(project_root=project_dir))
        with pytest.raises(ConfigError, match="ANTHROPIC_API_KEY"):
            await run_generate(config)

    @pytest.mark.asyncio
    async def test_runs_workflow(self, config: Config):
        with patch("pgenie.cli.SchemaUpdateWorkflow") as workflow_cls:
            workflow_cls.return_value.run = AsyncMock()
            assert await run_generate(config) == EXIT_OK
        workflow_cls.return_value.run.assert_awaited_once()
