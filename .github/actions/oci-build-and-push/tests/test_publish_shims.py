"""Run the pipeline against cmd-mox shims of the real CLIs."""

from __future__ import annotations

import typing as typ

from plumbum import local

from oci_publish import StepStatus, ToolRunner, ensure_tools, run_pipeline
from oci_publish_conftest import (
    APP_NAME,
    LONG_SHA,
    REGISTRY,
    SHORT_SHA,
    VERSION,
    make_config,
)

from shared_actions_conftest import CMD_MOX_UNSUPPORTED, shim_path

if typ.TYPE_CHECKING:
    from pathlib import Path

    import pytest

    from git_utils import GitMetadata
    from shared_actions_conftest import CmdMox

Expectations = dict[tuple[str, ...], int]


def _handler(
    tool: str, expectations: Expectations
) -> typ.Callable[[object], tuple[str, str, int]]:
    def handle(invocation: object) -> tuple[str, str, int]:
        args = tuple(getattr(invocation, "args", ()))
        exit_code = expectations.pop(args, None)
        if exit_code is None:
            message = f"unexpected {tool} args: {args!r}"
            raise AssertionError(message)
        return "", "", exit_code

    return handle


def _activate(cmd_mox: CmdMox, monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    cmd_mox.replay()
    socket_path = cmd_mox.environment.socket_path
    assert socket_path is not None
    monkeypatch.setenv("CMOX_IPC_SOCKET", str(socket_path))
    monkeypatch.setitem(local.env, "CMOX_IPC_SOCKET", str(socket_path))
    return ensure_tools(("docker", "flux"), which=lambda tool: shim_path(cmd_mox, tool))


@CMD_MOX_UNSUPPORTED
def test_image_and_bundle_publish(
    cmd_mox: CmdMox,
    project: Path,
    monkeypatch: pytest.MonkeyPatch,
    metadata: GitMetadata,
) -> None:
    """The image and Flux bundle commands reach the CLIs as expected."""
    config = make_config(project, charts_dir="")
    pushed = f"oci://{REGISTRY}/flux/{APP_NAME}:{SHORT_SHA}"
    docker_calls: Expectations = {
        (
            "buildx",
            "build",
            "--file",
            str(project / "Dockerfile"),
            "--tag",
            f"{REGISTRY}/images/{APP_NAME}:{VERSION}",
            "--push",
            str(project),
        ): 0,
    }
    flux_calls: Expectations = {
        (
            "push",
            "artifact",
            pushed,
            f"--path={config.flux_bundle_dir}",
            "--source=https://github.com/acme/demo.git",
            f"--revision=main@sha1:{LONG_SHA}",
        ): 0,
        ("tag", "artifact", pushed, f"--tag={VERSION}"): 0,
    }
    cmd_mox.stub("docker").runs(_handler("docker", docker_calls))
    cmd_mox.stub("flux").runs(_handler("flux", flux_calls))
    tool_paths = _activate(cmd_mox, monkeypatch)

    result = run_pipeline(config, ToolRunner(tool_paths), metadata=lambda: metadata)

    assert not docker_calls, "docker expectations must be consumed"
    assert not flux_calls, "flux expectations must be consumed"
    cmd_mox.verify()
    assert result.exit_code == 0
    assert [o.status for o in result.outcomes] == [
        StepStatus.SUCCEEDED,
        StepStatus.SKIPPED,
        StepStatus.SUCCEEDED,
    ]


@CMD_MOX_UNSUPPORTED
def test_failing_build_stops_before_flux(
    cmd_mox: CmdMox,
    project: Path,
    monkeypatch: pytest.MonkeyPatch,
    metadata: GitMetadata,
) -> None:
    """A docker failure surfaces its exit status and nothing else runs."""
    config = make_config(project, charts_dir="")
    docker_calls: Expectations = {
        (
            "buildx",
            "build",
            "--file",
            str(project / "Dockerfile"),
            "--tag",
            f"{REGISTRY}/images/{APP_NAME}:{VERSION}",
            "--push",
            str(project),
        ): 42,
    }
    flux_calls: Expectations = {}
    cmd_mox.stub("docker").runs(_handler("docker", docker_calls))
    cmd_mox.stub("flux").runs(_handler("flux", flux_calls))
    tool_paths = _activate(cmd_mox, monkeypatch)

    result = run_pipeline(config, ToolRunner(tool_paths), metadata=lambda: metadata)

    assert not docker_calls
    assert result.exit_code == 42
    assert [o.name for o in result.outcomes] == ["image"]
    assert not any(inv.command == "flux" for inv in cmd_mox.journal)
