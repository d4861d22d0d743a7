"""pgenie configuration.

Typed configuration for the CLI.  Settings use Pydantic v2 models so they are
validated at construction time.  The API key is read once, when the config is
built, and handed to the generator explicitly instead of living in module
state.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from pgenie.exceptions import ConfigError

PACKAGE_MANAGERS: tuple[str, ...] = ("npm", "yarn", "pnpm", "bun")


class AnthropicConfig(BaseModel):
    """Configuration for the Anthropic Messages API."""

    api_key: str = Field(default="", repr=False)
    base_url: str = Field(default="https://api.anthropic.com")
    model: str = Field(default="claude-3-5-sonnet-20241022")
    max_tokens: int = Field(default=8192, ge=1)
    timeout: int = Field(default=120, ge=10, description="Per-request timeout in seconds")


class ProjectSettings(BaseModel):
    """Where the target project lives and how its files are named."""

    project_root: Path = Field(default_factory=Path.cwd)
    manifest_name: str = Field(default="package.json")
    env_file_name: str = Field(default=".env")
    default_db_module_path: str = Field(default="app/lib/db")
    command_timeout: int = Field(
        default=600, ge=10, description="Timeout for each external command in seconds"
    )

    @property
    def manifest_path(self) -> Path:
        """Path to the project's ``package.json``."""
        return self.project_root / self.manifest_name

    @property
    def env_path(self) -> Path:
        """Path to the project's ``.env`` file."""
        return self.project_root / self.env_file_name


class Config(BaseModel):
    """Global pgenie configuration."""

    anthropic: AnthropicConfig = Field(default_factory=AnthropicConfig)
    project: ProjectSettings = Field(default_factory=ProjectSettings)

    def require_api_key(self) -> str:
        """Return the API key or raise ``ConfigError`` if it is not set."""
        if not self.anthropic.api_key:
            raise ConfigError(
                "Please set the ANTHROPIC_API_KEY environment variable to use the AI features."
            )
        return self.anthropic.api_key

    @classmethod
    def from_env(cls, project_root: Path | None = None) -> "Config":
        """Build a ``Config`` from a ``.env`` file and environment variables.

        Recognised variables (all optional):
            ANTHROPIC_API_KEY, ANTHROPIC_BASE_URL, PGENIE_MODEL,
            PGENIE_MAX_TOKENS, PGENIE_TIMEOUT, PGENIE_COMMAND_TIMEOUT.

        Values already present in the environment win over the ``.env`` file.

        Raises:
            ConfigError: If a numeric setting is malformed or out of range.
        """
        root = project_root or Path.cwd()
        load_dotenv(root / ".env", override=False)

        anthropic_kwargs: dict[str, Any] = {}
        if os.environ.get("ANTHROPIC_API_KEY"):
            anthropic_kwargs["api_key"] = os.environ["ANTHROPIC_API_KEY"]
        if os.environ.get("ANTHROPIC_BASE_URL"):
            anthropic_kwargs["base_url"] = os.environ["ANTHROPIC_BASE_URL"]
        if os.environ.get("PGENIE_MODEL"):
            anthropic_kwargs["model"] = os.environ["PGENIE_MODEL"]
        if os.environ.get("PGENIE_MAX_TOKENS"):
            anthropic_kwargs["max_tokens"] = os.environ["PGENIE_MAX_TOKENS"]
        if os.environ.get("PGENIE_TIMEOUT"):
            anthropic_kwargs["timeout"] = os.environ["PGENIE_TIMEOUT"]

        project_kwargs: dict[str, Any] = {"project_root": root}
        if os.environ.get("PGENIE_COMMAND_TIMEOUT"):
            project_kwargs["command_timeout"] = os.environ["PGENIE_COMMAND_TIMEOUT"]

        try:
            return cls(
                anthropic=AnthropicConfig(**anthropic_kwargs),
                project=ProjectSettings(**project_kwargs),
            )
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration in environment: {exc}") from exc
