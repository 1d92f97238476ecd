"""iz CLI exceptions.

This module provides exception classes for configuration, credential and
login errors, with clear error messages that can be propagated to CLI output.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path


class IzError(Exception):
    """Base exception for all iz CLI errors."""

    pass


class NotFoundError(IzError):
    """A named session, profile, worker or credential does not exist.

    Attributes:
        kind: What was looked up (e.g. "profile", "session", "worker").
        name: The name that was not found.
        available: Names that do exist, when relevant.
    """

    def __init__(
        self,
        kind: str,
        name: str,
        available: Iterable[str] | None = None,
        message: str | None = None,
    ):
        self.kind = kind
        self.name = name
        self.available = sorted(available) if available is not None else None
        if message is None:
            message = f"{kind} '{name}' not found"
            if self.available:
                message += f"; available: {', '.join(self.available)}"
        super().__init__(message)


class ValidationError(IzError):
    """Required input is missing or does not match what is stored.

    The message names the field and the flag or environment variable
    that would supply it.
    """

    pass


class ConfigError(IzError):
    """A persisted config or sessions file could not be read or written.

    Attributes:
        path: The file that failed.
        cause: The underlying I/O or parse error.
    """

    def __init__(self, message: str, path: Path | None = None, cause: Exception | None = None):
        self.path = path
        self.cause = cause
        parts = [message]
        if path is not None:
            parts.append(f"({path})")
        text = " ".join(parts)
        if cause is not None:
            text = f"{text}: {cause}"
        super().__init__(text)


class ConfirmationDeclined(IzError):
    """The user answered "no" to a destructive prompt.

    Not a real failure: the CLI prints "Cancelled" and exits 0.
    """

    def __init__(self) -> None:
        super().__init__("Cancelled")


class LoginError(IzError):
    """Authentication against the server failed.

    The transport or HTTP error is kept as ``__cause__``.
    """

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"login failed: {detail}")


class NoActiveProfileError(IzError):
    """A command needs an active profile but none is selected."""

    def __init__(self) -> None:
        super().__init__(
            "no active profile. Use 'iz profiles use <name>' to select a profile first"
        )
