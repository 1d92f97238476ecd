"""Interactive prompts, kept behind a small interface so flows can be tested."""

from __future__ import annotations

from typing import Protocol

import typer

from izcli.exceptions import ConfirmationDeclined


class Prompter(Protocol):
    def prompt(self, text: str, default: str | None = None) -> str: ...

    def prompt_secret(self, text: str) -> str: ...

    def confirm(self, text: str) -> bool: ...


class TyperPrompter:
    """Prompts on the terminal via typer (click)."""

    def prompt(self, text: str, default: str | None = None) -> str:
        return typer.prompt(text, default=default, err=True)

    def prompt_secret(self, text: str) -> str:
        return typer.prompt(text, hide_input=True, err=True)

    def confirm(self, text: str) -> bool:
        return typer.confirm(text, default=False, err=True)


def confirm_delete(prompter: Prompter, kind: str, name: str, force: bool = False) -> None:
    """Ask before deleting something.

    Raises:
        ConfirmationDeclined: If the user does not confirm.
    """
    if force:
        return
    if not prompter.confirm(f"Delete {kind} '{name}'?"):
        raise ConfirmationDeclined()
