"""Project initialisation behind ``pgenie init``.

Scaffolds a Drizzle ORM database module backed by a new Neon project:

1. Ask for the project name, package manager and module location.
2. Check the Neon CLI and the Anthropic API key.
3. Install drizzle-orm, postgres, drizzle-kit (and tsx).
4. Create the Neon project and store its connection string in ``.env``.
5. Render ``config.ts`` / ``index.ts`` and register the ``db:*`` scripts.
6. Generate ``schema.ts`` and ``seed.ts`` from a description of the app.
7. Generate and apply the first migration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pgenie.config import PACKAGE_MANAGERS, Config
from pgenie.generator import SchemaGenerator
from pgenie.project_files import CONFIG_FILE, INIT_FILE, SCHEMA_FILE, SEED_FILE, ProjectFiles
from pgenie.prompts import Prompter, non_empty
from pgenie.provisioning import CommandRunner, NeonCLI, PackageManager
from pgenie.templates import TemplateRenderer
from pgenie.utils import ensure_dir, print_success, spinner


@dataclass
class InitResult:
    """What ``ProjectInitializer.run`` set up."""

    project_name: str
    package_manager: str
    db_module_path: Path
    scripts: dict[str, str] = field(default_factory=dict)
    files_written: list[Path] = field(default_factory=list)


class ProjectInitializer:
    """Runs the ``init`` steps in order, each awaited before the next.

    Args:
        config: Global configuration.
        prompter: Source of interactive answers.
        runner: Command runner for neonctl and the package manager.
            Defaults to one rooted at the project directory.
        generator: Schema generator.  Built from *config* after the Neon
            check when omitted, which is also where a missing API key is
            reported.
        renderer: Template renderer for the scaffolded files.
    """

    def __init__(
        self,
        config: Config,
        prompter: Prompter,
        runner: CommandRunner | None = None,
        generator: SchemaGenerator | None = None,
        renderer: TemplateRenderer | None = None,
    ) -> None:
        self.config = config
        self.prompter = prompter
        self.root = config.project.project_root
        self.runner = runner or CommandRunner(self.root, timeout=config.project.command_timeout)
        self.generator = generator
        self.renderer = renderer or TemplateRenderer()
        self.files = ProjectFiles(config.project)
        self.neon = NeonCLI(self.runner)

    async def run(self) -> InitResult:
        project_name = self.prompter.ask_text(
            "What is your project name?",
            default=self.root.resolve().name,
            validate=non_empty,
        )
        package_manager = self.prompter.choose(
            "Which package manager do you use?", PACKAGE_MANAGERS, default=PACKAGE_MANAGERS[0]
        )
        packages = PackageManager(self.runner, package_manager)

        with spinner("Checking Neon CLI installation..."):
            await self.neon.check_auth()
        print_success("Neon CLI is installed and configured")

        generator = self.generator or SchemaGenerator.from_config(self.config)

        module_path = self.prompter.ask_text(
            "Where would you like to store your database module?",
            default=self.config.project.default_db_module_path,
            validate=non_empty,
        ).strip()
        module_dir = self.root / module_path
        result = InitResult(
            project_name=project_name,
            package_manager=package_manager,
            db_module_path=module_dir,
        )

        with spinner("Installing required packages..."):
            await packages.install_drizzle()
        print_success("Packages installed")

        with spinner("Creating Neon project..."):
            await self.neon.create_project(project_name)
            connection_string = await self.neon.connection_string()
            self.files.append_env("DATABASE_URL", connection_string)
        print_success("Neon project created")

        ensure_dir(module_dir)
        context = {"db_module_path": module_path}
        result.files_written.append(
            await self.renderer.render_to_file("config.ts.j2", module_dir / CONFIG_FILE, context)
        )
        result.files_written.append(
            await self.renderer.render_to_file("index.ts.j2", module_dir / INIT_FILE, context)
        )
        result.scripts = self.files.register_scripts(module_path, package_manager)

        description = self.prompter.ask_text("Describe your app and data model", validate=non_empty)

        with spinner("Generating schema..."):
            schema = await generator.generate_schema(description)
            result.files_written.append(self.files.write_source(module_dir / SCHEMA_FILE, schema))
        print_success("Schema generated successfully")

        with spinner("Generating seed script..."):
            seed = await generator.generate_seed_script(schema, description)
            result.files_written.append(self.files.write_source(module_dir / SEED_FILE, seed))
        print_success("Seed script generated successfully")

        with spinner("Running migrations..."):
            await packages.run_script("db:generate")
        print_success("Database schema generated")
        with spinner("Applying migrations..."):
            await packages.run_script("db:migrate")
        print_success("Database migrated")

        print_success(
            f"\nProject initialized successfully! Seed your database with `{package_manager} run db:seed`."
        )
        return result
