"""Terminal confirmation for destructive history rewrites."""

from __future__ import annotations

from rich.console import Console
from rich.prompt import Confirm


class ConfirmationPrompt:
    """Yes/no prompt usable as BackupEngine's ``confirm`` callback.

    With ``assume_yes`` the prompt is skipped (``--yes`` on the CLI).
    End of input or an interrupt count as "no".
    """

    def __init__(self, console: Console | None = None, assume_yes: bool = False) -> None:
        self._console = console or Console(stderr=True)
        self._assume_yes = assume_yes

    def __call__(self, question: str) -> bool:
        if self._assume_yes:
            return True
        try:
            return Confirm.ask(question, console=self._console, default=False)
        except (EOFError, KeyboardInterrupt):
            self._console.print()
            return False
