"""Schema update workflow behind ``pgenie generate``.

Drives one schema change from prompt to disk::

    IDLE -> PROMPTING -> GENERATING -> REVIEWING
         -> CONFIRMED -> APPLYING -> PERSISTED
         -> DECLINED -> IDLE

Any error moves the workflow to FAILED and propagates to the caller.  The
schema file is only touched in APPLYING, and only with the result of applying
the exact patch the user reviewed to the text it was computed from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from pgenie.diffing import Patch, apply_patch, compute_diff, render_patch
from pgenie.exceptions import MergeConflictError, PgenieError
from pgenie.generator import SchemaGenerator
from pgenie.project_files import ProjectFiles
from pgenie.prompts import Prompter, non_empty
from pgenie.utils import console, print_success, print_warning, spinner


class WorkflowState(str, Enum):
    """States of ``SchemaUpdateWorkflow``."""

    IDLE = "idle"
    PROMPTING = "prompting"
    GENERATING = "generating"
    REVIEWING = "reviewing"
    CONFIRMED = "confirmed"
    APPLYING = "applying"
    PERSISTED = "persisted"
    DECLINED = "declined"
    FAILED = "failed"


@dataclass
class WorkflowResult:
    """Terminal outcome of one workflow run."""

    state: WorkflowState
    patch: Patch | None = None
    path: Path | None = None
    written_text: str | None = None

    @property
    def persisted(self) -> bool:
        return self.state is WorkflowState.PERSISTED


@dataclass
class SchemaUpdateWorkflow:
    """Propose a schema change with the generator and apply it on confirmation.

    Attributes:
        files: Project file access (schema location, reads and writes).
        generator: Produces the candidate schema.
        prompter: Asks for the change description and the confirmation.
        history: Every state the workflow has passed through, in order.
    """

    files: ProjectFiles
    generator: SchemaGenerator
    prompter: Prompter
    state: WorkflowState = WorkflowState.IDLE
    history: list[WorkflowState] = field(default_factory=lambda: [WorkflowState.IDLE])

    def _transition(self, state: WorkflowState) -> None:
        self.state = state
        self.history.append(state)

    async def run(self) -> WorkflowResult:
        """Run the workflow once.

        Returns:
            A ``WorkflowResult`` in state PERSISTED or DECLINED.

        Raises:
            FilesystemError: The manifest or schema file cannot be read or written.
            GenerationError: The generator failed; the schema is untouched.
            MergeConflictError: The reviewed patch did not apply; nothing is written.
        """
        try:
            return await self._run()
        except PgenieError:
            self._transition(WorkflowState.FAILED)
            raise

    async def _run(self) -> WorkflowResult:
        schema_path = self.files.schema_path()
        original = self.files.read_schema()

        self._transition(WorkflowState.PROMPTING)
        request = self.prompter.ask_text(
            "Describe the changes you want to make to your data model",
            validate=non_empty,
        )

        self._transition(WorkflowState.GENERATING)
        with spinner("Generating changes..."):
            candidate = await self.generator.generate_schema(request, existing_schema=original)
        print_success("Changes generated")

        self._transition(WorkflowState.REVIEWING)
        patch = compute_diff(schema_path.name, original, candidate)
        if patch.is_empty:
            print_warning("The generated schema is identical to the current one. Nothing to apply.")
            return self._decline(patch)

        console.print("\n[cyan]Proposed changes:[/cyan]")
        console.print(render_patch(patch))
        console.print(
            f"[green]+{patch.additions}[/green] / [bright_black]-{patch.deletions}[/bright_black] "
            f"lines in {len(patch.hunks)} hunk(s)"
        )

        if not self.prompter.confirm("Would you like to apply these changes?", default=False):
            print_warning("\nOperation cancelled.")
            return self._decline(patch)

        self._transition(WorkflowState.CONFIRMED)
        self._transition(WorkflowState.APPLYING)
        with spinner("Updating schema..."):
            merge = apply_patch(original, patch)
            if not merge.success or merge.text is None:
                raise MergeConflictError(f"Failed to merge changes: {merge.error}")
            self.files.write_source(schema_path, merge.text)

        self._transition(WorkflowState.PERSISTED)
        print_success("Schema updated. Review the changes, generate migrations, and apply them.")
        return WorkflowResult(
            state=WorkflowState.PERSISTED,
            patch=patch,
            path=schema_path,
            written_text=merge.text,
        )

    def _decline(self, patch: Patch) -> WorkflowResult:
        self._transition(WorkflowState.DECLINED)
        self._transition(WorkflowState.IDLE)
        return WorkflowResult(state=WorkflowState.DECLINED, patch=patch)
