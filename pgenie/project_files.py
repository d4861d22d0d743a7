"""Access to the files of the project being scaffolded.

Covers the ``package.json`` manifest (registering the ``db:*`` scripts and
recovering the database module path from them), the generated schema file,
and the ``.env`` file that receives the connection string.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path, PurePosixPath
from typing import Any

from pgenie.config import ProjectSettings
from pgenie.exceptions import FilesystemError
from pgenie.utils import append_line, load_json, save_json

SCHEMA_FILE = "schema.ts"
SEED_FILE = "seed.ts"
CONFIG_FILE = "config.ts"
INIT_FILE = "index.ts"

_CONFIG_ARG_RE = re.compile(r"--config=(.+?)/config\.ts")


def build_db_scripts(db_module_path: str, package_manager: str) -> dict[str, str]:
    """Return the ``db:*`` script entries for *db_module_path*.

    Bun runs TypeScript natively; every other package manager goes through
    ``tsx``.
    """
    module = PurePosixPath(Path(db_module_path).as_posix())
    config = module / CONFIG_FILE
    seed = module / SEED_FILE
    if package_manager == "bun":
        seed_command = f"bun run {seed}"
    else:
        seed_command = f"npx tsx {seed}"
    return {
        "db:generate": f"drizzle-kit generate --config={config}",
        "db:migrate": f"drizzle-kit migrate --config={config}",
        "db:seed": seed_command,
    }


def _atomic_write(path: Path, content: str) -> None:
    """Write *content* to *path* so readers see the old or the new file, never a mix."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class ProjectFiles:
    """File operations rooted at a project directory."""

    def __init__(self, settings: ProjectSettings) -> None:
        self.settings = settings
        self.root = settings.project_root

    # ------------------------------------------------------------------
    # Manifest
    # ------------------------------------------------------------------

    def load_manifest(self) -> dict[str, Any]:
        """Read and parse ``package.json``.

        Raises:
            FilesystemError: If the manifest is missing, unreadable or not a
                JSON object.
        """
        path = self.settings.manifest_path
        try:
            return load_json(path)
        except FileNotFoundError as exc:
            raise FilesystemError(f"{path.name} not found in {self.root}") from exc
        except (OSError, ValueError) as exc:
            # json.JSONDecodeError is a ValueError
            raise FilesystemError(f"Could not read {path}: {exc}") from exc

    def register_scripts(self, db_module_path: str, package_manager: str) -> dict[str, str]:
        """Add the ``db:generate``, ``db:migrate`` and ``db:seed`` scripts to the manifest.

        Existing scripts and every other manifest key are preserved; entries
        with the same names are overwritten.

        Returns:
            The scripts that were written.
        """
        manifest = self.load_manifest()
        scripts = build_db_scripts(db_module_path, package_manager)
        existing = manifest.get("scripts")
        manifest["scripts"] = {**(existing if isinstance(existing, dict) else {}), **scripts}
        try:
            save_json(manifest, self.settings.manifest_path)
        except OSError as exc:
            raise FilesystemError(f"Could not write {self.settings.manifest_path}: {exc}") from exc
        return scripts

    def find_db_module_path(self) -> Path:
        """Recover the database module directory from the ``db:generate`` script.

        Raises:
            FilesystemError: If the manifest or the script cannot be found.
        """
        manifest = self.load_manifest()
        scripts = manifest.get("scripts")
        generate_script = scripts.get("db:generate", "") if isinstance(scripts, dict) else ""
        match = _CONFIG_ARG_RE.search(generate_script or "")
        if not match:
            raise FilesystemError(
                "Failed to determine database module path: could not find "
                "database module path in package.json scripts. Run `pgenie init` first."
            )
        return self.root / match.group(1)

    # ------------------------------------------------------------------
    # Schema and generated sources
    # ------------------------------------------------------------------

    def schema_path(self) -> Path:
        """Path of ``schema.ts`` inside the database module."""
        return self.find_db_module_path() / SCHEMA_FILE

    def read_schema(self) -> str:
        """Return the current schema source.

        Raises:
            FilesystemError: If the schema file cannot be read or is not UTF-8.
        """
        path = self.schema_path()
        try:
            with path.open(encoding="utf-8", newline="") as handle:
                return handle.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise FilesystemError(f"Failed to read schema from project: {exc}") from exc

    def write_source(self, path: Path, content: str) -> Path:
        """Overwrite *path* with *content* in a single atomic step."""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(path, content)
        except OSError as exc:
            raise FilesystemError(f"Could not write {path}: {exc}") from exc
        return path

    # ------------------------------------------------------------------
    # Environment file
    # ------------------------------------------------------------------

    def append_env(self, key: str, value: str) -> Path:
        """Append ``KEY=value`` to the project's ``.env`` file."""
        path = self.settings.env_path
        try:
            append_line(path, f"{key}={value.strip()}")
        except OSError as exc:
            raise FilesystemError(f"Could not update {path}: {exc}") from exc
        return path

