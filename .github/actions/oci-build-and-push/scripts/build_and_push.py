#!/usr/bin/env -S uv run --script
# fmt: off
# /// script
# requires-python = ">=3.12"
# dependencies = [
#   "cyclopts>=3.24,<4.0",
#   "plumbum>=1.8,<2.0",
#   "pyyaml>=6.0,<7.0",
#   "syspath-hack>=0.4.0,<0.5.0",
#   "typer>=0.17,<0.18",
# ]
# ///
# fmt: on

"""Command-line entry point for the OCI build-and-push action.

Builds and pushes the container image, packages and pushes the Helm chart and
pushes the Flux bundle, each only when its input is configured.

Examples
--------
Publish an image and chart for ``demo`` to a local registry::

    INPUT_REGISTRY=localhost:5000 INPUT_VERSION=v1.2.0 INPUT_APP_NAME=demo \
    INPUT_DOCKERFILE=Dockerfile INPUT_CHARTS_DIR=charts \
        uv run build_and_push.py

Preview the commands without running them::

    INPUT_DRY_RUN=true INPUT_REGISTRY=localhost:5000 INPUT_VERSION=v1.2.0 \
    INPUT_APP_NAME=demo INPUT_FLUX_DIR=deploy uv run build_and_push.py
"""

from __future__ import annotations

import sys
import typing as typ
from pathlib import Path

import cyclopts
from cyclopts import App
from syspath_hack import prepend_project_root, prepend_to_syspath

_SCRIPT_DIR = Path(__file__).resolve().parent
prepend_to_syspath(_SCRIPT_DIR)
prepend_project_root(start=_SCRIPT_DIR)

from actions_common import annotate, normalize_input_env, write_outputs
from bool_utils import coerce_bool
from oci_publish import (
    PublishError,
    StepStatus,
    ToolRunner,
    ensure_tools,
    load_config,
    run_pipeline,
)

if typ.TYPE_CHECKING:
    from oci_publish import PipelineResult

app: App = App(
    help="Build and push an image, Helm chart and Flux bundle to an OCI registry.",
    config=cyclopts.config.Env("INPUT_", command=False),
)

_OUTPUT_KEYS = {"image": "image", "chart": "chart", "flux": "flux-artifact"}


def _render_summary(result: PipelineResult) -> str:
    """Return a human-readable report of the attempted steps."""
    lines = ["Publish summary:"]
    for outcome in result.outcomes:
        detail = outcome.artifact if outcome.artifact else outcome.reason
        lines.append(f"  - {outcome.name}: {outcome.status} ({detail})")
    return "\n".join(lines)


def _export_outputs(result: PipelineResult) -> None:
    artifacts = result.artifacts()
    values = {
        key: artifacts[name] for name, key in _OUTPUT_KEYS.items() if name in artifacts
    }
    values["status"] = "failed" if result.failed is not None else "succeeded"
    write_outputs(values)


@app.default
def main(  # noqa: PLR0913 - mirrors the action inputs
    *,
    registry: str = "",
    version: str = "",
    app_name: str = "",
    dockerfile: str = "",
    build_context: str = "",
    charts_dir: str = "",
    flux_dir: str = "",
    flux_tag: str = "",
    work_dir: str = "",
    dry_run: str = "false",
) -> None:
    """Publish the configured artefacts for ``app_name`` at ``version``.

    Parameters
    ----------
    registry
        Destination OCI registry root, for example ``ghcr.io/acme``.
    version
        Tag applied to the image, chart and Flux bundle.
    app_name
        Name used for the image, chart directory and bundle.
    dockerfile
        Dockerfile path; enables the image build and push.
    build_context
        Docker build context directory.
    charts_dir
        Parent directory of the ``<app_name>`` chart; enables the chart step.
    flux_dir
        Flux manifest directory; enables the bundle step.
    flux_tag
        Extra tag for the Flux bundle.
    work_dir
        Working build directory.
    dry_run
        When true, print commands instead of running them.

    Raises
    ------
    SystemExit
        Raised with exit code ``1`` when inputs are missing or invalid or a
        tool is unavailable, and with the failing tool's exit code when a
        publish step fails.
    """
    try:
        config = load_config(
            registry=registry,
            version=version,
            app_name=app_name,
            dockerfile=dockerfile,
            build_context=build_context,
            charts_dir=charts_dir,
            flux_dir=flux_dir,
            flux_tag=flux_tag,
            work_dir=work_dir,
            dry_run=coerce_bool(dry_run, default=False, name="dry-run"),
        )
        tool_paths = ensure_tools()
    except (PublishError, ValueError) as exc:
        annotate("error", str(exc), title="Publish Failure")
        raise SystemExit(1) from exc

    result = run_pipeline(config, ToolRunner(tool_paths, dry_run=config.dry_run))
    _export_outputs(result)
    print(_render_summary(result), file=sys.stderr)

    if (failure := result.failed) is not None:
        annotate("error", failure.reason, title=f"{failure.name} step failed")
        raise SystemExit(result.exit_code)
    if all(outcome.status is StepStatus.SKIPPED for outcome in result.outcomes):
        annotate(
            "notice",
            "No dockerfile, charts-dir or flux-dir configured; nothing was published.",
        )


if __name__ == "__main__":
    normalize_input_env()
    app()
