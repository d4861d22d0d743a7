"""Exception hierarchy for pgenie.

Every error the CLI reports derives from ``PgenieError`` so the command
entry points can catch them in one place, print them, and exit non-zero.
"""

from __future__ import annotations


class PgenieError(Exception):
    """Base class for all errors surfaced to the user."""


class InputValidationError(PgenieError):
    """Raised when interactive input fails its validation predicate."""


class ConfigError(PgenieError):
    """Raised when required configuration (e.g. the API key) is missing."""


class ExternalToolError(PgenieError):
    """Raised when an external command exits non-zero, times out, or is missing."""

    def __init__(
        self,
        message: str,
        command: str = "",
        exit_code: int | None = None,
        stderr: str = "",
    ) -> None:
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(message)


class GenerationError(PgenieError):
    """Raised when the language model call fails or returns unusable output."""


class MergeConflictError(PgenieError):
    """Raised when a reviewed patch no longer applies to the file it was made for."""


class FilesystemError(PgenieError):
    """Raised when the manifest or schema file is missing or unreadable."""


class PatchFormatError(PgenieError):
    """Raised when unified diff text cannot be parsed."""
