"""Command-line entry point.

Usage::

    pgenie init
    pgenie generate
    pgenie --project-dir ./my-app generate

Both commands exit 0 on success (or when the user declines a change) and 1
on any error.
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from pathlib import Path

from pgenie import __version__
from pgenie.config import Config
from pgenie.exceptions import PgenieError
from pgenie.generator import SchemaGenerator
from pgenie.initializer import ProjectInitializer
from pgenie.project_files import ProjectFiles
from pgenie.prompts import Prompter
from pgenie.utils import print_error, print_warning
from pgenie.workflow import SchemaUpdateWorkflow

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


async def run_init(config: Config) -> int:
    initializer = ProjectInitializer(config, Prompter())
    await initializer.run()
    return EXIT_OK


async def run_generate(config: Config) -> int:
    generator = SchemaGenerator.from_config(config)
    workflow = SchemaUpdateWorkflow(
        files=ProjectFiles(config.project),
        generator=generator,
        prompter=Prompter(),
    )
    await workflow.run()
    return EXIT_OK


COMMANDS = {
    "init": (run_init, "initializing project"),
    "generate": (run_generate, "generating schema"),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgenie",
        description="Scaffold Drizzle ORM + Neon projects with AI-generated schemas",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  pgenie init\n"
            "  pgenie generate\n"
            "  pgenie --project-dir ./my-app generate\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--project-dir", "-C",
        default=".",
        help="Project root containing package.json (default: current directory)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.add_parser("init", help="Initialize a new project with Drizzle ORM and Neon")
    subparsers.add_parser("generate", help="Generate or update the schema from a prompt")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for ``pgenie`` and ``python -m pgenie``."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_ERROR

    project_dir = Path(args.project_dir)
    if not project_dir.is_dir():
        print_error(f"Error: Project directory not found: {project_dir}")
        return EXIT_ERROR

    handler, action = COMMANDS[args.command]
    try:
        config = Config.from_env(project_dir)
        return asyncio.run(handler(config))
    except PgenieError as exc:
        print_error(f"Error {action}: {exc}")
        return EXIT_ERROR
    except KeyboardInterrupt:
        print_warning("\nAborted.")
        return EXIT_INTERRUPTED
    except Exception as exc:  # noqa: BLE001
        print_error(f"Unexpected error {action}: {exc!r}")
        return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
