"""Schema and seed-script generation with a language model.

``SchemaGenerator`` builds the prompts for Drizzle ORM schema and seed
generation, sends them to a text source (normally ``AnthropicClient``) and
cleans the reply into plain TypeScript.  Any failure of the underlying call
is raised as ``GenerationError``.
"""

from __future__ import annotations

import re
import textwrap
from typing import Protocol

from pgenie.anthropic_client import AnthropicClient, AnthropicResponse
from pgenie.config import Config
from pgenie.exceptions import GenerationError

_FENCE_RE = re.compile(r"```[a-zA-Z]*")

_SCHEMA_INSTRUCTIONS = textwrap.dedent("""\
    INSTRUCTIONS:
    1. Schema Modification Rules:
         - Keep all imports from the existing schema
         - Preserve all existing table and column names unless explicitly requested to change
         - Maintain existing relationships and foreign keys unless changes are required
         - When adding new columns to existing tables, add them at the end of the table definition
         - If adding a non-nullable column to an existing table, make it nullable or provide a default value
         - Preserve any existing indexes, unique constraints, and check constraints

    2. When Adding New Features:
         - Use descriptive table and column names in camelCase
         - Add appropriate indexes for foreign keys and frequently queried fields
         - Include proper relationships using references()
         - Add constraints for data integrity (unique, check, etc.)
         - Add timestamp() columns for created_at/updated_at where appropriate
         - Add appropriate numeric precision for decimal/numeric types

    3. Type Guidelines:
         - Use varchar() with appropriate lengths for short text
         - Use text() for long-form content
         - Use integer() for IDs and standard numbers
         - Use decimal() with proper precision for financial values
         - Use timestamp() for date/time fields
         - Use boolean() for true/false flags
         - Use json() or jsonb() for structured data
         - Use enum() for fixed sets of values

    4. Required Format:
         - Generate only the TypeScript/Drizzle schema code. Make sure to export all tables and types
         - Include all necessary imports
         - Include all table definitions
         - Do not include explanatory comments
         - Do not wrap the response in markdown code blocks
         - Do not include ANY explanatory text before or after the code

    IMPORTANT: Respond with only the schema code, no additional text or formatting.

    Generate the schema now:""")

_SEED_INSTRUCTIONS = textwrap.dedent("""\
    INSTRUCTIONS:
    1. Seed Script Requirements:
         - Include all necessary imports from the schema file
         - Import and use the db client from './index'
         - Use proper Drizzle insert syntax
         - Generate realistic-looking sample data
         - Maintain referential integrity between tables
         - Include at least 5 records per table (unless specified otherwise)
         - Handle foreign key relationships correctly
         - Use batch inserts for better performance

    2. Data Guidelines:
         - Generate realistic names, emails, and content
         - Make sure to use the correct types to match the schema
         - Use varied but plausible dates
         - Create meaningful relationships between records
         - Include edge cases and different scenarios
         - Ensure numeric data is within reasonable ranges
         - Use realistic text lengths for content fields

    3. Required Format:
         - Generate only the TypeScript seed code
         - Do not include any external libraries or dependencies. only use Drizzle and standard libraries
         - Include necessary imports and db client setup
         - Include all insert statements
         - Do not include explanatory comments
         - Do not wrap the response in markdown code blocks
         - Do not include ANY explanatory text before or after the code

    IMPORTANT: Respond with only the seed code, no additional text or formatting.

    Generate the seed script now:""")


class TextSource(Protocol):
    """Anything that can turn a prompt into an ``AnthropicResponse``."""

    async def generate(self, prompt: str) -> AnthropicResponse: ...


def build_schema_prompt(prompt: str, existing_schema: str | None = None) -> str:
    """Assemble the prompt for creating or modifying a Drizzle schema."""
    if existing_schema:
        current = f"CURRENT SCHEMA:\n```typescript\n{existing_schema}\n```\n"
    else:
        current = "This is a new schema with no existing tables."

    return "\n".join([
        "You are a database architect tasked with modifying a Drizzle ORM schema "
        "based on user requirements. Follow these instructions precisely:",
        "",
        current,
        "",
        "USER REQUIREMENTS:",
        prompt,
        "",
        _SCHEMA_INSTRUCTIONS,
    ])


def build_seed_prompt(schema: str, prompt: str) -> str:
    """Assemble the prompt for a seed script matching *schema*."""
    return "\n".join([
        "You are generating a seed script for a Drizzle ORM database. "
        "Use the following schema and requirements:",
        "",
        "SCHEMA:",
        "```typescript",
        schema,
        "```",
        "",
        "USER REQUIREMENTS:",
        prompt,
        "",
        _SEED_INSTRUCTIONS,
    ])


def clean_code_response(text: str) -> str:
    """Strip markdown code fences and surrounding whitespace from a reply.

    Non-empty code always ends with exactly one newline, matching how source
    files are stored on disk. An empty reply stays empty.
    """
    code = _FENCE_RE.sub("", text.strip()).strip()
    return code + "\n" if code else ""


class SchemaGenerator:
    """Generates Drizzle schema and seed source text from natural language.

    Args:
        source: The text source to query.  Tests pass a fake; production code
            uses ``SchemaGenerator.from_config``.
    """

    def __init__(self, source: TextSource) -> None:
        self.source = source

    @classmethod
    def from_config(cls, config: Config) -> "SchemaGenerator":
        """Build a generator backed by ``AnthropicClient``.

        Raises:
            ConfigError: If the API key is not configured.
        """
        client = AnthropicClient(
            api_key=config.require_api_key(),
            base_url=config.anthropic.base_url,
            model=config.anthropic.model,
            max_tokens=config.anthropic.max_tokens,
            timeout=config.anthropic.timeout,
        )
        return cls(client)

    async def _complete(self, prompt: str, what: str) -> str:
        response = await self.source.generate(prompt)
        if not response.success:
            raise GenerationError(f"Failed to generate {what}: {response.error}")
        code = clean_code_response(response.text)
        if not code:
            raise GenerationError(f"Failed to generate {what}: the AI model returned no code")
        return code

    async def generate_schema(self, prompt: str, existing_schema: str | None = None) -> str:
        """Return schema source for *prompt*, modifying *existing_schema* if given."""
        return await self._complete(build_schema_prompt(prompt, existing_schema), "schema")

    async def generate_seed_script(self, schema: str, prompt: str) -> str:
        """Return a seed script that inserts sample data for *schema*."""
        return await self._complete(build_seed_prompt(schema, prompt), "seed script")
