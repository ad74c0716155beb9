"""Publish helper package for the OCI build-and-push action.

This package validates the action inputs, checks the required tools and runs
the optional image, Helm chart and Flux bundle publish steps in order,
stopping at the first failure.
"""

from __future__ import annotations

from .config import PublishConfig, load_config
from .errors import ConfigError, PublishError, ToolNotFoundError
from .pipeline import PipelineResult, run_pipeline
from .steps import StepOutcome, StepStatus
from .tools import REQUIRED_TOOLS, ToolRunner, ensure_tools

__all__ = [
    "REQUIRED_TOOLS",
    "ConfigError",
    "PipelineResult",
    "PublishConfig",
    "PublishError",
    "StepOutcome",
    "StepStatus",
    "ToolNotFoundError",
    "ToolRunner",
    "ensure_tools",
    "load_config",
    "run_pipeline",
]
