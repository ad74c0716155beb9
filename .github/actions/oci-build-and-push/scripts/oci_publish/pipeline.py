"""Sequential fail-fast runner for the publish steps."""

from __future__ import annotations

import dataclasses
import logging
import typing as typ

import git_utils

from .steps import StepOutcome, StepStatus, iter_steps

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .config import PublishConfig
    from .steps import MetadataProvider
    from .tools import ToolRunner

__all__ = ["PipelineResult", "prepare_work_dir", "run_pipeline"]

logger = logging.getLogger(__name__)

Step = typ.Callable[["PublishConfig", "ToolRunner"], StepOutcome]


@dataclasses.dataclass(slots=True)
class PipelineResult:
    """Outcome of :func:`run_pipeline`."""

    outcomes: list[StepOutcome] = dataclasses.field(default_factory=list)

    @property
    def failed(self) -> StepOutcome | None:
        """Return the failing step, if any."""
        return next((o for o in self.outcomes if o.status is StepStatus.FAILED), None)

    @property
    def exit_code(self) -> int:
        """Return the failing step's exit code, or ``0`` when every step passed."""
        failure = self.failed
        return failure.exit_code if failure is not None else 0

    def artifacts(self) -> dict[str, str]:
        """Map step names to the references they pushed."""
        return {
            outcome.name: outcome.artifact
            for outcome in self.outcomes
            if outcome.status is StepStatus.SUCCEEDED and outcome.artifact
        }


def prepare_work_dir(config: PublishConfig) -> None:
    """Create the working directory with its ``chart`` and ``flux`` subdirectories."""
    for directory in (config.chart_work_dir, config.flux_work_dir):
        directory.mkdir(parents=True, exist_ok=True)


def run_pipeline(
    config: PublishConfig,
    runner: ToolRunner,
    *,
    steps: cabc.Iterable[tuple[str, Step]] | None = None,
    metadata: MetadataProvider = git_utils.collect_metadata,
) -> PipelineResult:
    """Run each publish step in order, stopping at the first failure.

    Parameters
    ----------
    config
        Validated action configuration.
    runner
        Executes the external tools.
    steps
        Ordered ``(name, step)`` pairs. Defaults to image, chart and Flux
        bundle.
    metadata
        Supplies git metadata for the Flux bundle; only called when that step
        runs.

    Returns
    -------
    PipelineResult
        The outcomes of every step that was attempted. Steps after a failure
        are not attempted and do not appear.
    """
    prepare_work_dir(config)
    result = PipelineResult()
    for name, step in steps if steps is not None else iter_steps(metadata):
        outcome = step(config, runner)
        result.outcomes.append(outcome)
        if outcome.status is StepStatus.SKIPPED:
            logger.info("Skipping %s step: %s", name, outcome.reason)
        elif outcome.status is StepStatus.FAILED:
            logger.error("%s step failed: %s", name, outcome.reason)
            break
        else:
            logger.info("Published %s: %s", name, outcome.artifact)
    return result
