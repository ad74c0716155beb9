r"""Read-only git queries used by the delivery actions.

Every query shells out to the ``git`` CLI through :func:`cmd_utils.run_cmd`,
so each command is echoed into the job log. Queries accept an optional
``repo`` directory which is passed to git as ``-C <repo>``; when omitted git
runs against the current working directory.

Examples
--------
Resolve the inputs for a development version::

    >>> nearest_release_tag()
    'v1.2.0'
    >>> commits_since("v1.2.0")
    5
    >>> short_sha()
    'abcd123'

Detached checkouts report no branch::

    >>> current_branch()
    ''
"""

from __future__ import annotations

import dataclasses as dc
import logging
import os
import re
import typing as typ

from plumbum import local
from plumbum.commands.processes import ProcessExecutionError

from cmd_utils import coerce_run_result, process_error_to_run_result, run_cmd

if typ.TYPE_CHECKING:
    from pathlib import Path

__all__ = [
    "RELEASE_TAG_GLOB",
    "GitMetadata",
    "GitQueryError",
    "ci_branch",
    "collect_metadata",
    "commits_since",
    "current_branch",
    "long_sha",
    "nearest_release_tag",
    "remote_origin_url",
    "resolve_branch",
    "short_sha",
]

logger = logging.getLogger(__name__)

RELEASE_TAG_GLOB = "v[0-9]*.[0-9]*.[0-9]*"
# Pre-release (``v1.0.0-rc.1``) and build-metadata tags are not release tags.
_EXCLUDED_TAG_GLOBS = ("*-*", "*+*")
# Glob wildcards also match letters, so described tags are checked again.
_RELEASE_TAG = re.compile(r"^v\d+\.\d+\.\d+$")


class GitQueryError(RuntimeError):
    """Raised when a git query fails.

    Parameters
    ----------
    args : tuple[str, ...]
        The git arguments that failed, without the ``git`` executable.
    returncode : int
        Exit status reported by git.
    stderr : str
        Diagnostic output from git.
    """

    def __init__(self, args: tuple[str, ...], returncode: int, stderr: str) -> None:
        detail = stderr.strip() or "no diagnostic output"
        super().__init__(
            f"git {' '.join(args)} failed with exit code {returncode}: {detail}"
        )
        self.git_args = args
        self.returncode = returncode
        self.stderr = stderr


@dc.dataclass(frozen=True, slots=True)
class GitMetadata:
    """Descriptive metadata attached to pushed artifacts."""

    branch: str
    short_sha: str
    long_sha: str
    remote_url: str

    @property
    def revision(self) -> str:
        """Return the ``<branch>@sha1:<sha>`` revision string Flux expects."""
        if not self.branch:
            return f"sha1:{self.long_sha}"
        return f"{self.branch}@sha1:{self.long_sha}"


def _git(*args: str, repo: Path | None = None) -> typ.Any:  # noqa: ANN401
    """Return a bound plumbum ``git`` command for *args*."""
    prefix = ["-C", str(repo)] if repo is not None else []
    return local["git"][[*prefix, *args]]


def _output(*args: str, repo: Path | None = None) -> str:
    """Run a git query that must succeed and return its stripped stdout."""
    try:
        stdout = run_cmd(_git(*args, repo=repo))
    except ProcessExecutionError as exc:
        result = process_error_to_run_result(exc)
        raise GitQueryError(args, result.returncode, result.stderr) from exc
    return str(stdout).strip()


def nearest_release_tag(repo: Path | None = None) -> str | None:
    """Return the nearest reachable release tag, or ``None`` when none exists.

    Tags are matched against :data:`RELEASE_TAG_GLOB` and reported in full
    (``--abbrev=0``). ``git describe`` exits non-zero when nothing matches,
    which is the expected outcome for repositories without releases.

    Raises
    ------
    GitQueryError
        If the described tag passes the glob but is not ``v<major>.<minor>.<patch>``.
    """
    args = ["describe", "--tags", "--abbrev=0", "--match", RELEASE_TAG_GLOB]
    for pattern in _EXCLUDED_TAG_GLOBS:
        args.extend(["--exclude", pattern])
    result = coerce_run_result(run_cmd(_git(*args, repo=repo), method="run"))
    if result.returncode != 0:
        logger.debug("No release tag found: %s", result.stderr.strip())
        return None
    tag = result.stdout.strip()
    if not tag:
        return None
    if _RELEASE_TAG.fullmatch(tag) is None:
        raise GitQueryError(
            tuple(args), 1, f"'{tag}' is not a v<major>.<minor>.<patch> release tag"
        )
    return tag


def commits_since(tag: str, repo: Path | None = None) -> int:
    """Return the number of commits in ``<tag>..HEAD``."""
    raw = _output("rev-list", "--count", f"{tag}..HEAD", repo=repo)
    try:
        return int(raw)
    except ValueError as exc:
        msg = f"git rev-list returned a non-numeric count: {raw!r}"
        raise GitQueryError(("rev-list", "--count", f"{tag}..HEAD"), 0, msg) from exc


def short_sha(repo: Path | None = None) -> str:
    """Return the abbreviated hash of ``HEAD`` using git's default length."""
    return _output("rev-parse", "--short", "HEAD", repo=repo)


def long_sha(repo: Path | None = None) -> str:
    """Return the full hash of ``HEAD``."""
    return _output("rev-parse", "HEAD", repo=repo)


def current_branch(repo: Path | None = None) -> str:
    """Return the checked-out branch name, or ``""`` for a detached ``HEAD``."""
    return _output("branch", "--show-current", repo=repo)


def ci_branch() -> str:
    """Return the branch GitHub Actions reports, or ``""`` outside a branch build.

    ``actions/checkout`` leaves pull requests on a detached ``HEAD``; the
    runner still exposes the source branch as ``GITHUB_HEAD_REF``.
    """
    if head_ref := os.environ.get("GITHUB_HEAD_REF", "").strip():
        return head_ref
    if os.environ.get("GITHUB_REF_TYPE") == "branch":
        return os.environ.get("GITHUB_REF_NAME", "").strip()
    return ""


def resolve_branch(repo: Path | None = None) -> str:
    """Return the checked-out branch, falling back to :func:`ci_branch`."""
    return current_branch(repo) or ci_branch()


def remote_origin_url(repo: Path | None = None) -> str:
    """Return the ``origin`` remote URL, or ``""`` when no origin is set."""
    result = coerce_run_result(
        run_cmd(
            _git("config", "--get", "remote.origin.url", repo=repo), method="run"
        )
    )
    # git config exits 1 when the key is unset.
    if result.returncode == 1:
        return ""
    if result.returncode != 0:
        raise GitQueryError(
            ("config", "--get", "remote.origin.url"),
            result.returncode,
            result.stderr,
        )
    return result.stdout.strip()


def collect_metadata(repo: Path | None = None) -> GitMetadata:
    """Fetch branch, hashes and remote URL in one pass."""
    return GitMetadata(
        short_sha=short_sha(repo),
        branch=resolve_branch(repo),
        long_sha=long_sha(repo),
        remote_url=remote_origin_url(repo),
    )
