"""Error types shared across the publish helper package."""

from __future__ import annotations

import typing as typ

__all__ = ["ConfigError", "PublishError", "ToolNotFoundError"]


class PublishError(RuntimeError):
    """Raised when the publish pipeline cannot continue."""


class ConfigError(PublishError):
    """Raised when action inputs are missing or invalid."""


class ToolNotFoundError(PublishError):
    """Raised when one or more required executables are not on ``PATH``."""

    def __init__(self, missing: typ.Sequence[str]) -> None:
        self.missing = tuple(missing)
        joined = ", ".join(self.missing)
        super().__init__(f"Required tool(s) not found on PATH: {joined}")
