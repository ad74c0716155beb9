r"""Utilities for running plumbum command invocations.

This module provides :func:`run_cmd`, the single place where the actions in
this repository execute external tools (``git``, ``docker``, ``helm`` and
``flux``). Each invocation is echoed to stderr before execution so CI logs
show the exact command line while stdout stays free for values such as the
generated version. Three strategies are supported: ``call`` (the default,
returning stdout and raising on failure), ``run`` (returning a
:class:`RunResult` regardless of exit status) and ``run_fg`` (streaming output
to the terminal).

Examples
--------
Capture the output of a git query::

    >>> from plumbum import local
    >>> run_cmd(local["git"]["rev-parse", "--short", "HEAD"])
    $ git rev-parse --short HEAD
    'abcd123\n'

Inspect a command that is allowed to fail::

    >>> result = run_cmd(local["git"]["describe", "--tags"], method="run")
    $ git describe --tags
    >>> result.returncode
    128

Stream a long-running build to the job log::

    >>> run_cmd(local["docker"]["buildx", "build", "."], method="run_fg")
    $ docker buildx build .
"""

from __future__ import annotations

import ast
import collections.abc as cabc
import os
import typing as typ

import typer
from plumbum import local
from plumbum.commands.processes import ProcessExecutionError

RunMethod = typ.Literal["call", "run", "run_fg"]


class RunResult(typ.NamedTuple):
    """Structured representation of plumbum ``run`` results."""

    returncode: int
    stdout: str
    stderr: str


@typ.runtime_checkable
class SupportsFormulate(typ.Protocol):
    """Objects that expose a shell representation via ``formulate``."""

    def formulate(self) -> cabc.Sequence[str]:  # pragma: no cover - protocol
        ...


@typ.runtime_checkable
class SupportsWithEnv(SupportsFormulate, typ.Protocol):
    """Commands that support environment overrides via :meth:`with_env`."""

    def with_env(self, **env: str) -> SupportsWithEnv:  # pragma: no cover - protocol
        ...


def _ensure_text(value: str | bytes | None) -> str:
    """Return ``value`` as a decoded ``str`` replacing undecodable bytes."""
    if isinstance(value, str):
        if value.startswith(("b'", 'b"')):
            try:
                literal = ast.literal_eval(value)
            except (SyntaxError, ValueError):
                return value
            if isinstance(literal, bytes):
                return literal.decode("utf-8", errors="replace")
        return value
    if value is None:
        return ""
    return value.decode("utf-8", errors="replace")


def coerce_run_result(result: RunResult | cabc.Sequence[object]) -> RunResult:
    """Normalise *result* into a :class:`RunResult`."""
    if isinstance(result, RunResult):
        return result
    try:
        returncode_obj, stdout_obj, stderr_obj = result  # type: ignore[misc]
    except ValueError as exc:
        msg = "plumbum run() results must unpack into (returncode, stdout, stderr)"
        raise TypeError(msg) from exc
    return RunResult(
        int(typ.cast("int", returncode_obj)),
        _ensure_text(typ.cast("str | bytes | None", stdout_obj)),
        _ensure_text(typ.cast("str | bytes | None", stderr_obj)),
    )


def process_error_to_run_result(exc: ProcessExecutionError) -> RunResult:
    """Convert ``exc`` into a :class:`RunResult` for consistent handling."""
    return RunResult(
        int(exc.retcode),
        _ensure_text(getattr(exc, "stdout", "")),
        _ensure_text(getattr(exc, "stderr", "")),
    )


def format_command(cmd: SupportsFormulate) -> str:
    """Return the display form of *cmd* used when echoing it."""
    return " ".join(str(part) for part in cmd.formulate())


def _runtime_env(env: cabc.Mapping[str, str] | None) -> dict[str, str] | None:
    """Return the environment to apply, or ``None`` to inherit plumbum's."""
    if env is not None:
        return {key: str(value) for key, value in env.items()}
    plumbum_env = {key: str(value) for key, value in local.env.items()}
    merged = plumbum_env | dict(os.environ)
    return None if merged == plumbum_env else merged


def run_cmd(
    cmd: object,
    *,
    method: RunMethod = "call",
    env: cabc.Mapping[str, str] | None = None,
    **run_kwargs: object,
) -> object:
    """Execute ``cmd`` using plumbum semantics after echoing it.

    Parameters
    ----------
    cmd
        A bound plumbum command such as ``local["git"]["status"]``.
    method
        ``call`` returns stdout and raises
        :class:`~plumbum.commands.processes.ProcessExecutionError` on a
        non-zero exit; ``run`` returns a :class:`RunResult` without raising;
        ``run_fg`` streams output and raises on failure.
    env
        Replacement environment for the child process. When omitted, runtime
        changes to :data:`os.environ` are forwarded.
    **run_kwargs
        Extra keyword arguments forwarded to plumbum.

    Raises
    ------
    TypeError
        If ``cmd`` is not a plumbum command.
    ValueError
        If ``method`` is not a known strategy.
    """
    if not isinstance(cmd, SupportsFormulate):
        msg = "run_cmd requires a plumbum command invocation"
        raise TypeError(msg)
    handler = _RUN_HANDLERS.get(method)
    if handler is None:
        msg = f"Unknown run method: {method}"
        raise ValueError(msg)

    typer.echo(f"$ {format_command(cmd)}", err=True)

    prepared: typ.Any = cmd
    runtime_env = _runtime_env(env)
    if runtime_env is not None:
        if not isinstance(cmd, SupportsWithEnv):
            msg = "Command does not support environment overrides"
            raise TypeError(msg)
        prepared = cmd.with_env(**runtime_env)
    return handler(prepared, dict(run_kwargs))


def _call_handler(command: typ.Any, run_kwargs: dict[str, object]) -> object:  # noqa: ANN401
    return command(**run_kwargs)


def _run_handler(command: typ.Any, run_kwargs: dict[str, object]) -> RunResult:  # noqa: ANN401
    run_kwargs.setdefault("retcode", None)
    return coerce_run_result(command.run(**run_kwargs))


def _run_fg_handler(command: typ.Any, run_kwargs: dict[str, object]) -> object:  # noqa: ANN401
    return command.run_fg(**run_kwargs)


_RUN_HANDLERS: dict[RunMethod, cabc.Callable[[typ.Any, dict[str, object]], object]] = {
    "call": _call_handler,
    "run": _run_handler,
    "run_fg": _run_fg_handler,
}


__all__ = [
    "RunMethod",
    "RunResult",
    "SupportsFormulate",
    "coerce_run_result",
    "format_command",
    "process_error_to_run_result",
    "run_cmd",
]
