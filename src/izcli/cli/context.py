"""Per-invocation state handed from the root callback to every command."""

from __future__ import annotations

import logging

import typer

from izcli.config import ColorMode, IzSettings, OutputFormat, load_config_file
from izcli.prompter import Prompter, TyperPrompter
from izcli.resolver import (
    ConfigOverrides,
    ResolvedConfig,
    load_config_with_profile,
    log_resolution,
)

logger = logging.getLogger(__name__)


class CommandContext:
    """Flags of this invocation plus the lazily resolved configuration.

    Commands that only edit the stores never trigger resolution, so a
    broken profile can still be repaired or deleted.
    """

    def __init__(
        self,
        profile_name: str | None = None,
        overrides: ConfigOverrides | None = None,
        settings: IzSettings | None = None,
        prompter: Prompter | None = None,
    ) -> None:
        self.profile_name = profile_name
        self.overrides = overrides or ConfigOverrides()
        self.settings = settings or IzSettings()
        self.prompter = prompter or TyperPrompter()
        self._config: ResolvedConfig | None = None

    def resolve(self) -> ResolvedConfig:
        """Resolve (once) the effective configuration.

        Raises:
            IzError: If the stores cannot be read or a selected profile,
                session or worker is missing.
        """
        if self._config is None:
            self._config = load_config_with_profile(
                self.profile_name, self.overrides, self.settings
            )
            log_resolution(self._config, self.settings)
        return self._config

    @property
    def output_format(self) -> OutputFormat:
        return (
            self.overrides.output_format
            or self.settings.output_format
            or load_config_file().output_format
        )

    @property
    def color(self) -> ColorMode:
        return self.overrides.color or self.settings.color or load_config_file().color


def get_context(ctx: typer.Context) -> CommandContext:
    """The CommandContext of this invocation, created on first use."""
    root = ctx.find_root()
    if not isinstance(root.obj, CommandContext):
        root.obj = CommandContext()
    return root.obj
