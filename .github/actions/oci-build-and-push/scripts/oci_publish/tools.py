"""Executable discovery and invocation for the publish steps."""

from __future__ import annotations

import collections.abc as cabc
import logging
import shutil
import typing as typ

from plumbum import local

from cmd_utils import format_command, run_cmd

from .errors import ToolNotFoundError

__all__ = ["REQUIRED_TOOLS", "ToolRunner", "ensure_tools"]

logger = logging.getLogger(__name__)

REQUIRED_TOOLS: tuple[str, ...] = ("docker", "helm", "flux", "git")


def ensure_tools(
    tools: cabc.Iterable[str] = REQUIRED_TOOLS,
    *,
    which: cabc.Callable[[str], str | None] = shutil.which,
) -> dict[str, str]:
    """Return absolute paths for every tool, checking all of them up front.

    Every tool is checked, whether or not the step needing it will run, so a
    misconfigured runner fails before anything is pushed.

    Raises
    ------
    ToolNotFoundError
        Raised listing every tool that could not be found.
    """
    resolved: dict[str, str] = {}
    missing: list[str] = []
    for tool in tools:
        path = which(tool)
        if path is None:
            missing.append(tool)
        else:
            resolved[tool] = path
    if missing:
        raise ToolNotFoundError(missing)
    logger.debug("Resolved tools: %s", resolved)
    return resolved


class ToolRunner:
    """Run resolved tools through :func:`cmd_utils.run_cmd`.

    In dry-run mode each command is printed with a ``[dry-run]`` prefix and
    not executed.
    """

    def __init__(
        self,
        tool_paths: cabc.Mapping[str, str],
        *,
        dry_run: bool = False,
        runner: cabc.Callable[..., object] = run_cmd,
    ) -> None:
        self._tool_paths = dict(tool_paths)
        self.dry_run = dry_run
        self._runner = runner

    def command(self, tool: str, *args: str) -> typ.Any:  # noqa: ANN401
        """Return the bound plumbum command for ``tool args...``."""
        try:
            path = self._tool_paths[tool]
        except KeyError as exc:
            raise ToolNotFoundError([tool]) from exc
        return local[path][list(args)]

    def run(self, tool: str, *args: str) -> None:
        """Run ``tool`` in the foreground, raising on a non-zero exit.

        Raises
        ------
        plumbum.commands.processes.ProcessExecutionError
            Raised when the tool exits with a non-zero status.
        """
        command = self.command(tool, *args)
        if self.dry_run:
            print(f"[dry-run] {format_command(command)}")
            return
        self._runner(command, method="run_fg")
