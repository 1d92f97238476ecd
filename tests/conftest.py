import os
import typing
from pathlib import Path

import pytest
from typer.testing import CliRunner

from izcli.cli import app
from izcli.cli.context import CommandContext


class FakePrompter:
    """Scripted answers for interactive prompts; records what was asked."""

    def __init__(self, answers: typing.Sequence[str] = (), confirm: bool = True):
        self.answers = list(answers)
        self.confirm_answer = confirm
        self.asked: list[str] = []

    def prompt(self, text: str, default: str | None = None) -> str:
        self.asked.append(text)
        if self.answers:
            return self.answers.pop(0)
        return default or ""

    def prompt_secret(self, text: str) -> str:
        self.asked.append(text)
        return self.answers.pop(0)

    def confirm(self, text: str) -> bool:
        self.asked.append(text)
        return self.confirm_answer


@pytest.fixture(scope="function", autouse=True)
def cleared_iz_env_vars(monkeypatch) -> None:
    """Clear IZ_* environment variables for the duration of the test."""
    for var in list(os.environ):
        if var.startswith("IZ_"):
            monkeypatch.delenv(var)


@pytest.fixture(scope="function", autouse=True)
def wide_terminal(monkeypatch) -> None:
    """Keep rich tables on one line per row."""
    monkeypatch.setenv("COLUMNS", "200")


@pytest.fixture(scope="function", autouse=True)
def iz_home(tmp_path, monkeypatch) -> Path:
    """Point the config and sessions files at a temporary home directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setattr(Path, "home", lambda: home)
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    return home


@pytest.fixture
def prompter() -> FakePrompter:
    return FakePrompter()


@pytest.fixture
def invoke(prompter):
    """Run the iz CLI with a scripted prompter."""
    runner = CliRunner()

    def _invoke(args: list[str]):
        obj = CommandContext(prompter=prompter)
        return runner.invoke(app, args, obj=obj)

    return _invoke
