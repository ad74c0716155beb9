"""The three optional publish steps.

Each step takes the resolved :class:`~oci_publish.config.PublishConfig` and a
:class:`~oci_publish.tools.ToolRunner` and returns a :class:`StepOutcome`.
A step whose input is absent reports ``skipped``; a tool exiting non-zero is
reported as ``failed`` with that tool's exit status.
"""

from __future__ import annotations

import dataclasses
import enum
import functools
import logging
import shutil
import typing as typ
from pathlib import Path

import yaml
from plumbum.commands.processes import ProcessExecutionError

from git_utils import GitMetadata, GitQueryError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .config import PublishConfig
    from .tools import ToolRunner

__all__ = [
    "StepOutcome",
    "StepStatus",
    "iter_steps",
    "publish_chart",
    "publish_flux_bundle",
    "publish_image",
]

logger = logging.getLogger(__name__)

MetadataProvider = typ.Callable[[], GitMetadata]


class StepStatus(enum.StrEnum):
    """Result of a single publish step."""

    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclasses.dataclass(slots=True, frozen=True)
class StepOutcome:
    """Outcome of one publish step."""

    name: str
    status: StepStatus
    exit_code: int = 0
    reason: str = ""
    artifact: str | None = None

    @classmethod
    def succeeded(cls, name: str, artifact: str) -> StepOutcome:
        return cls(name, StepStatus.SUCCEEDED, artifact=artifact)

    @classmethod
    def skipped(cls, name: str, reason: str) -> StepOutcome:
        return cls(name, StepStatus.SKIPPED, reason=reason)

    @classmethod
    def failed(cls, name: str, exit_code: int, reason: str) -> StepOutcome:
        # Exit status 0 is reserved for success.
        return cls(name, StepStatus.FAILED, exit_code=exit_code or 1, reason=reason)

    @property
    def ok(self) -> bool:
        """Return ``True`` unless the step failed."""
        return self.status is not StepStatus.FAILED


def _failure(name: str, exc: ProcessExecutionError) -> StepOutcome:
    argv = " ".join(str(part) for part in exc.argv)
    return StepOutcome.failed(
        name, int(exc.retcode), f"{argv} exited with status {exc.retcode}"
    )


def publish_image(config: PublishConfig, runner: ToolRunner) -> StepOutcome:
    """Build the container image and push it with ``docker buildx``."""
    name = "image"
    if config.dockerfile is None:
        return StepOutcome.skipped(name, "no dockerfile configured")
    try:
        runner.run(
            "docker",
            "buildx",
            "build",
            "--file",
            str(config.dockerfile),
            "--tag",
            config.image_ref,
            "--push",
            str(config.build_context),
        )
    except ProcessExecutionError as exc:
        return _failure(name, exc)
    return StepOutcome.succeeded(name, config.image_ref)


def chart_name(chart_dir: Path) -> str:
    """Return the chart name declared in ``Chart.yaml``.

    Falls back to the directory name when the manifest is missing or has no
    ``name``; ``helm lint`` reports malformed charts itself.
    """
    manifest = chart_dir / "Chart.yaml"
    try:
        data = yaml.safe_load(manifest.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError):
        return chart_dir.name
    if isinstance(data, dict) and isinstance(data.get("name"), str) and data["name"]:
        return data["name"]
    return chart_dir.name


def _packaged_chart(config: PublishConfig, name: str) -> Path | None:
    """Locate the archive ``helm package`` wrote into the chart work dir."""
    expected = config.chart_work_dir / f"{name}-{config.version}.tgz"
    if expected.is_file() or config.dry_run:
        return expected
    candidates = sorted(
        config.chart_work_dir.glob("*.tgz"), key=lambda path: path.stat().st_mtime_ns
    )
    return candidates[-1] if candidates else None


def publish_chart(config: PublishConfig, runner: ToolRunner) -> StepOutcome:
    """Lint, package and push the application's Helm chart.

    The stages run in order and stop at the first failure, so a chart that
    fails ``helm lint`` is never packaged or pushed.
    """
    name = "chart"
    chart_dir = config.chart_path
    if chart_dir is None:
        return StepOutcome.skipped(name, "no chart directory configured")

    packaged_name = chart_name(chart_dir)
    try:
        runner.run("helm", "lint", str(chart_dir))
        runner.run(
            "helm",
            "package",
            str(chart_dir),
            "--version",
            config.version,
            "--app-version",
            config.version,
            "--destination",
            str(config.chart_work_dir),
        )
        archive = _packaged_chart(config, packaged_name)
        if archive is None:
            return StepOutcome.failed(
                name, 1, f"helm package produced no archive in {config.chart_work_dir}"
            )
        runner.run("helm", "push", str(archive), config.chart_repository)
    except ProcessExecutionError as exc:
        return _failure(name, exc)
    return StepOutcome.succeeded(
        name, f"{config.chart_repository}/{packaged_name}:{config.version}"
    )


def _stage_bundle(source: Path, destination: Path) -> None:
    """Replace *destination* with a copy of the manifests in *source*."""
    if destination.exists():
        shutil.rmtree(destination)
    shutil.copytree(source, destination)
    logger.info("Staged Flux bundle '%s' -> '%s'", source, destination)


def publish_flux_bundle(
    config: PublishConfig,
    runner: ToolRunner,
    *,
    metadata: MetadataProvider,
) -> StepOutcome:
    """Copy the Flux manifests, push them as an OCI artifact and tag it.

    The bundle is pushed to ``oci://<registry>/flux/<app>`` at the short
    commit hash, then tagged with the version and the optional extra tag.
    *metadata* is only called when the step runs; the git details it returns
    are attached to the artifact as its source and revision. Dry runs leave
    the work directory untouched.
    """
    name = "flux"
    if config.flux_dir is None:
        return StepOutcome.skipped(name, "no flux directory configured")

    if config.dry_run:
        logger.info("Dry run: not staging Flux bundle from '%s'", config.flux_dir)
    else:
        try:
            _stage_bundle(config.flux_dir, config.flux_bundle_dir)
        except (OSError, shutil.Error) as exc:
            return StepOutcome.failed(name, 1, f"cannot stage Flux bundle: {exc}")
    try:
        details = metadata()
    except GitQueryError as exc:
        return StepOutcome.failed(name, exc.returncode, str(exc))
    source = details.remote_url or "unknown"
    pushed = f"{config.flux_repository}:{details.short_sha}"
    logger.info("Flux bundle source=%s revision=%s", source, details.revision)
    tags = [config.version]
    if config.flux_tag:
        tags.append(config.flux_tag)
    try:
        runner.run(
            "flux",
            "push",
            "artifact",
            pushed,
            f"--path={config.flux_bundle_dir}",
            f"--source={source}",
            f"--revision={details.revision}",
        )
        for tag in tags:
            runner.run("flux", "tag", "artifact", pushed, f"--tag={tag}")
    except ProcessExecutionError as exc:
        return _failure(name, exc)
    return StepOutcome.succeeded(name, config.flux_artifact)


def iter_steps(
    metadata: MetadataProvider,
) -> cabc.Iterator[tuple[str, typ.Callable[[PublishConfig, ToolRunner], StepOutcome]]]:
    """Yield the publish steps in execution order."""
    yield "image", publish_image
    yield "chart", publish_chart
    yield "flux", functools.partial(publish_flux_bundle, metadata=metadata)
