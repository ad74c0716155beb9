"""Shared helpers for the action entry points.

These cover the GitHub Actions plumbing every script needs: folding dashed
``INPUT-*`` variables into the underscore form cyclopts reads, appending step
outputs to ``GITHUB_OUTPUT`` and printing workflow annotations.
"""

from __future__ import annotations

import os
import sys
import typing as typ
from pathlib import Path

__all__ = [
    "annotate",
    "normalize_input_env",
    "write_outputs",
]

AnnotationLevel = typ.Literal["error", "warning", "notice"]


def normalize_input_env(prefix: str = "INPUT_") -> None:
    """Normalise dashed ``INPUT_`` keys to underscores in ``os.environ``.

    The runner exports ``with: {app-name: demo}`` as ``INPUT_APP-NAME``. The
    underscore spelling wins when both are present; dashed keys are removed
    either way.
    """
    alt_prefix = prefix.replace("_", "-")
    updates: dict[str, str] = {}
    removals: list[str] = []
    for key, value in os.environ.items():
        if not key.startswith((prefix, alt_prefix)) or "-" not in key:
            continue
        normalized = key.replace("-", "_")
        if normalized not in os.environ:
            updates[normalized] = value
        removals.append(key)
    for key, value in updates.items():
        os.environ[key] = value
    for key in removals:
        os.environ.pop(key, None)


def write_outputs(values: typ.Mapping[str, str]) -> bool:
    """Append ``key=value`` lines to ``GITHUB_OUTPUT`` when it is configured.

    Returns ``True`` when the outputs were written.
    """
    output_path = os.environ.get("GITHUB_OUTPUT")
    if not output_path:
        return False
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        for key, value in values.items():
            escaped = value.replace("%", "%25").replace("\n", "%0A")
            handle.write(f"{key}={escaped}\n")
    return True


def annotate(
    level: AnnotationLevel,
    message: str,
    *,
    title: str | None = None,
    stream: typ.TextIO | None = None,
) -> None:
    """Print a GitHub workflow command such as ``::error title=...::msg``."""
    target = stream if stream is not None else sys.stderr
    header = f"::{level} title={title}::" if title else f"::{level}::"
    print(f"{header}{message}", file=target)
