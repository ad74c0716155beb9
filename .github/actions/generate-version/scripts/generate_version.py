#!/usr/bin/env -S uv run --script
# fmt: off
# /// script
# requires-python = ">=3.12"
# dependencies = [
#   "cyclopts>=3.24,<4.0",
#   "plumbum>=1.8,<2.0",
#   "syspath-hack>=0.4.0,<0.5.0",
#   "typer>=0.17,<0.18",
# ]
# ///
# fmt: on

"""Print a sortable development version for the current git checkout.

The version is written to stdout (its only output) and, when running inside
GitHub Actions, to the ``version`` step output.

Examples
--------
Compute the version for the repository in the current directory::

    $ uv run generate_version.py
    v1.2.0-DEV.20250101120000.main.5.sha-abcd123

Query another checkout::

    INPUT_WORKING_DIRECTORY=../service uv run generate_version.py
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import cyclopts
from cyclopts import App
from plumbum.commands import CommandNotFound
from syspath_hack import prepend_project_root, prepend_to_syspath

_SCRIPT_DIR = Path(__file__).resolve().parent
prepend_to_syspath(_SCRIPT_DIR)

from dev_version import VersionInputs, generate_dev_version

prepend_project_root(start=_SCRIPT_DIR)

import git_utils
from actions_common import annotate, normalize_input_env, write_outputs

app: App = App(
    help="Print a sortable development version derived from git metadata.",
    config=cyclopts.config.Env("INPUT_", command=False),
)


def collect_version_inputs(
    repo: Path | None = None, *, now: datetime | None = None
) -> VersionInputs:
    """Query git once for everything a development version needs.

    The short hash is read first: in a repository without commits it fails
    and aborts before any other query runs. The commit count is only queried
    when a release tag exists.

    Raises
    ------
    git_utils.GitQueryError
        If a required git query fails.
    """
    sha = git_utils.short_sha(repo)
    tag = git_utils.nearest_release_tag(repo)
    commits = git_utils.commits_since(tag, repo) if tag else 0
    branch = git_utils.resolve_branch(repo)
    return VersionInputs(
        current_branch=branch,
        last_tag=tag,
        commits_since_tag=commits,
        short_sha=sha,
        now=now or datetime.now(),  # noqa: DTZ005 - local wall-clock time
    )


@app.default
def main(*, working_directory: Path | None = None) -> None:
    """Compute the development version and publish it.

    Parameters
    ----------
    working_directory
        Repository to query. Defaults to the current directory.

    Raises
    ------
    SystemExit
        Raised with exit code ``1`` when git is unavailable or a query fails.
    """
    try:
        inputs = collect_version_inputs(working_directory)
        version = generate_dev_version(inputs)
    except (git_utils.GitQueryError, CommandNotFound, ValueError) as exc:
        annotate("error", str(exc), title="Version Generation Failure")
        raise SystemExit(1) from exc

    write_outputs({"version": version})
    print(version)


if __name__ == "__main__":
    normalize_input_env()
    app()
