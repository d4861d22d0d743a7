"""Shared pytest fixtures for the pgenie test suite.

Provides reusable fixtures for:
- A temporary project with ``package.json`` and an existing schema
- A fake text source standing in for the Anthropic API
- Configuration rooted at the temporary project
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from pgenie.anthropic_client import AnthropicResponse
from pgenie.config import AnthropicConfig, Config, ProjectSettings

USERS_SCHEMA = (
    'import { pgTable, serial, varchar } from "drizzle-orm/pg-core";\n'
    "\n"
    'export const users = pgTable("users", {\n'
    '  id: serial("id").primaryKey(),\n'
    '  email: varchar("email", { length: 255 }).notNull().unique(),\n'
    "});\n"
)

POSTS_TABLE = (
    "\n"
    'export const posts = pgTable("posts", {\n'
    '  id: serial("id").primaryKey(),\n'
    '  title: varchar("title", { length: 255 }).notNull(),\n'
    "});\n"
)


# ---------------------------------------------------------------------------
# Fake text source
# ---------------------------------------------------------------------------


class FakeTextSource:
    """Returns canned replies in order and records every prompt it receives."""

    def __init__(self, replies: list[str | AnthropicResponse]) -> None:
        self.replies = list(replies)
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> AnthropicResponse:
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, AnthropicResponse):
            return reply
        return AnthropicResponse(text=reply, model="fake-model")


@pytest.fixture
def users_schema() -> str:
    return USERS_SCHEMA


@pytest.fixture
def schema_with_posts() -> str:
    return USERS_SCHEMA + POSTS_TABLE


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@pytest.fixture
def empty_project(tmp_path: Path) -> Path:
    """A project directory holding only a bare ``package.json``."""
    root = tmp_path / "my-app"
    root.mkdir()
    manifest = {
        "name": "my-app",
        "version": "0.1.0",
        "scripts": {"dev": "next dev", "build": "next build"},
    }
    (root / "package.json").write_text(json.dumps(manifest, indent=2), encoding="utf-8")
    return root


@pytest.fixture
def project_dir(empty_project: Path) -> Path:
    """A project that ``pgenie init`` has already set up."""
    manifest_path = empty_project / "package.json"
    manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
    manifest["scripts"]["db:generate"] = "drizzle-kit generate --config=app/lib/db/config.ts"
    manifest["scripts"]["db:migrate"] = "drizzle-kit migrate --config=app/lib/db/config.ts"
    manifest_path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")

    db_dir = empty_project / "app" / "lib" / "db"
    db_dir.mkdir(parents=True)
    (db_dir / "schema.ts").write_text(USERS_SCHEMA, encoding="utf-8")
    return empty_project


@pytest.fixture
def schema_file(project_dir: Path) -> Path:
    return project_dir / "app" / "lib" / "db" / "schema.ts"


@pytest.fixture
def config(project_dir: Path) -> Config:
    return Config(
        anthropic=AnthropicConfig(api_key="sk-test"),
        project=ProjectSettings(project_root=project_dir),
    )


@pytest.fixture
def text_source_factory() -> type[FakeTextSource]:
    """The ``FakeTextSource`` class, for tests that build their own replies."""
    return FakeTextSource
