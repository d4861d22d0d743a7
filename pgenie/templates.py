"""Jinja2 template rendering for the scaffolded database module.

Provides the TemplateRenderer class which loads Jinja2 templates from the
``pgenie/templates/`` directory and renders them with project-specific
context data (currently the database module path).
"""

from __future__ import annotations

import asyncio
from pathlib import Path, PurePath
from typing import Any

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Undefined, select_autoescape


_DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "templates"


class TemplateRenderer:
    """Renders ``.j2`` templates for the files written by ``pgenie init``.

    Missing context variables raise instead of rendering as empty strings,
    so a template never writes a half-filled config file.
    """

    def __init__(self, template_dir: str | Path | None = None) -> None:
        if template_dir is None:
            template_dir = _DEFAULT_TEMPLATE_DIR
        self.template_dir = Path(template_dir)
        self.env = Environment(
            loader=FileSystemLoader(str(self.template_dir)),
            autoescape=select_autoescape([]),
            keep_trailing_newline=True,
            undefined=StrictUndefined,
        )
        self.env.filters["posix_path"] = _posix_path_filter

    def render(self, template_path: str, context: dict[str, Any]) -> str:
        """Render a single template with the provided context.

        Args:
            template_path: Path relative to the template directory (e.g.
                ``"config.ts.j2"``).
            context: Dictionary of variables available inside the template.
        """
        template = self.env.get_template(template_path)
        return template.render(**context)

    async def render_to_file(
        self,
        template_path: str,
        output_path: str | Path,
        context: dict[str, Any],
    ) -> Path:
        """Render a template and write the result to *output_path*.

        Parent directories are created automatically.
        """
        content = self.render(template_path, context)
        out = Path(output_path)
        await asyncio.to_thread(_write_file, out, content)
        return out

    def list_templates(self) -> list[str]:
        """Return a sorted list of all ``.j2`` templates."""
        if not self.template_dir.is_dir():
            return []
        return sorted(
            p.relative_to(self.template_dir).as_posix()
            for p in self.template_dir.rglob("*.j2")
        )


def _posix_path_filter(value: str | PurePath) -> str:
    """Render a path with forward slashes and no trailing slash."""
    if isinstance(value, Undefined):
        # StrictUndefined raises UndefinedError here.
        value = str(value)
    return PurePath(value).as_posix().rstrip("/")


def _write_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
