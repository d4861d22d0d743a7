"""Interactive input for the CLI commands.

``Prompter`` wraps ``rich.prompt`` with the three kinds of question pgenie
asks: free text (optionally validated), a single choice from a fixed list,
and a yes/no confirmation.  Validation is a plain callable attached to the
question, so the re-prompt loop does not depend on the UI library.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from rich.console import Console
from rich.prompt import Confirm, Prompt

from pgenie.exceptions import InputValidationError
from pgenie.utils import console as default_console, print_warning

Validator = Callable[[str], str]


def non_empty(value: str) -> str:
    """Accept any input that is not blank."""
    if not value.strip():
        raise InputValidationError("A value is required.")
    return value


class Prompter:
    """Asks the user questions on the terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or default_console

    def ask_text(
        self,
        message: str,
        default: str | None = None,
        validate: Validator | None = None,
    ) -> str:
        """Ask for free text, re-asking until *validate* accepts the answer."""
        while True:
            if default is None:
                answer = Prompt.ask(message, console=self.console)
            else:
                answer = Prompt.ask(message, console=self.console, default=default)
            answer = answer or ""
            if validate is None:
                return answer
            try:
                return validate(answer)
            except InputValidationError as exc:
                print_warning(str(exc))

    def choose(self, message: str, choices: Sequence[str], default: str | None = None) -> str:
        """Ask the user to pick one of *choices*."""
        if default is None:
            return Prompt.ask(message, console=self.console, choices=list(choices))
        return Prompt.ask(message, console=self.console, choices=list(choices), default=default)

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask a yes/no question; pressing Enter takes *default*."""
        return Confirm.ask(message, console=self.console, default=default)
