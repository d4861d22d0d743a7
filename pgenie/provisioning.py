"""External tool invocation: Neon CLI, package managers and drizzle-kit scripts.

Each call is awaited to completion before the next starts.  Any non-zero
exit, timeout or missing binary raises ``ExternalToolError``; nothing here
retries.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from pgenie.config import PACKAGE_MANAGERS
from pgenie.exceptions import ExternalToolError
from pgenie.utils import format_command, run_command

INSTALL_COMMANDS: dict[str, list[str]] = {
    "npm": ["npm", "install"],
    "yarn": ["yarn", "add"],
    "pnpm": ["pnpm", "add"],
    "bun": ["bun", "add"],
}

RUNTIME_PACKAGES = ["drizzle-orm", "postgres"]
DEV_PACKAGES = ["drizzle-kit"]


class CommandRunner:
    """Runs external commands inside the project directory.

    Args:
        cwd: Working directory for every command.
        timeout: Seconds before a command is killed and reported as failed.
    """

    def __init__(self, cwd: str | Path, timeout: int = 600) -> None:
        self.cwd = Path(cwd)
        self.timeout = timeout

    async def run(self, args: list[str]) -> str:
        """Run *args* and return its stripped stdout.

        Raises:
            ExternalToolError: If the executable is missing, the command times
                out, or it exits non-zero.
        """
        command = format_command(args)
        executable = shutil.which(args[0])
        if executable is None:
            raise ExternalToolError(
                f"{args[0]} is not installed or not on PATH", command=command
            )

        try:
            exit_code, stdout, stderr = await run_command(
                [executable, *args[1:]], cwd=self.cwd, timeout=self.timeout
            )
        except OSError as exc:
            raise ExternalToolError(f"Could not run `{command}`: {exc}", command=command) from exc

        if exit_code != 0:
            detail = stderr or stdout or "no output"
            raise ExternalToolError(
                f"`{command}` failed with exit code {exit_code}: {detail}",
                command=command,
                exit_code=exit_code,
                stderr=stderr,
            )
        return stdout


class NeonCLI:
    """Thin wrapper around ``neonctl``."""

    def __init__(self, runner: CommandRunner, binary: str = "neonctl") -> None:
        self.runner = runner
        self.binary = binary

    async def check_auth(self) -> None:
        """Verify that ``neonctl`` is installed and authenticated."""
        try:
            await self.runner.run([self.binary, "me"])
        except ExternalToolError as exc:
            raise ExternalToolError(
                "Neon CLI is not installed or not configured. "
                "Please install Neon CLI and run `neonctl auth` to configure it.",
                command=exc.command,
                exit_code=exc.exit_code,
                stderr=exc.stderr,
            ) from exc

    async def create_project(self, name: str) -> None:
        """Create a Neon project and make it the CLI's current context."""
        await self.runner.run([self.binary, "projects", "create", "--name", name, "--set-context"])

    async def connection_string(self) -> str:
        """Return the connection string of the current project."""
        output = (await self.runner.run([self.binary, "connection-string"])).strip()
        if not output:
            raise ExternalToolError(
                "neonctl connection-string returned no output",
                command=f"{self.binary} connection-string",
            )
        return output


class PackageManager:
    """Installs packages and runs package.json scripts with the chosen manager."""

    def __init__(self, runner: CommandRunner, name: str) -> None:
        if name not in PACKAGE_MANAGERS:
            raise ValueError(
                f"Unsupported package manager {name!r}; expected one of {', '.join(PACKAGE_MANAGERS)}"
            )
        self.runner = runner
        self.name = name

    async def install(self, packages: list[str], dev: bool = False) -> None:
        args = [*INSTALL_COMMANDS[self.name]]
        if dev:
            args.append("-D")
        await self.runner.run([*args, *packages])

    async def install_drizzle(self) -> None:
        """Install tsx (not needed under bun), drizzle-orm, postgres and drizzle-kit."""
        if self.name != "bun":
            await self.install(["tsx"], dev=True)
        await self.install(RUNTIME_PACKAGES)
        await self.install(DEV_PACKAGES, dev=True)

    async def run_script(self, script: str) -> str:
        """Run a ``package.json`` script, e.g. ``db:generate``."""
        return await self.runner.run([self.name, "run", script])
