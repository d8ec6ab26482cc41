"""Minimal git helpers
The helpers below provide just enough structure to create or reuse a fix
branch, commit each applied fix, push it, and derive a pull-request link.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from typing import Dict, List, Sequence

from ..errors import GitOperationError, UnparsableRemote

LOGGER = logging.getLogger(__name__)

DEFAULT_REMOTE = "origin"

_GITHUB_REMOTE_RE = re.compile(r"github\.com[/:]([^/]+)/([^/.]+)")


class GitRepository:
    """Lightweight wrapper around ``git`` commands."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()
        if not (self.root / ".git").exists():
            raise GitOperationError(f"Not a git repository: {self.root}")

    @classmethod
    def discover(cls, start: Path | str | None = None) -> "GitRepository":
        """Locate the nearest git repository starting from ``start``."""

        path = Path(start or Path.cwd()).resolve()
        for candidate in (path, *path.parents):
            if (candidate / ".git").exists():
                return cls(candidate)
        raise GitOperationError(f"Unable to locate a git repository from {path}")

    # ------------------------------------------------------------------ git IO
    def _run_git(self, args: Sequence[str], *, check: bool = True) -> subprocess.CompletedProcess[str]:
        command = ["git", *args]
        try:
            process = subprocess.run(
                command,
                cwd=self.root,
                capture_output=True,
                text=False,
                check=False,
            )
        except OSError as error:
            raise GitOperationError(f"Unable to run git: {error}") from error
        stdout = process.stdout.decode("utf-8", errors="replace") if process.stdout else ""
        stderr = process.stderr.decode("utf-8", errors="replace") if process.stderr else ""
        result = subprocess.CompletedProcess(process.args, process.returncode, stdout, stderr)
        if check and result.returncode != 0:
            message = result.stderr.strip() or result.stdout.strip() or "unknown git error"
            raise GitOperationError(f"git {' '.join(args)} failed: {message}")
        return result

    # -------------------------------------------------------------- branches
    def current_branch(self) -> str | None:
        """Return the current branch name or ``None`` when detached."""

        result = self._run_git(["rev-parse", "--abbrev-ref", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        branch = result.stdout.strip()
        if not branch or branch == "HEAD":
            return None
        return branch

    def list_branches(self) -> List[str]:
        """Return the names of all local branches."""

        result = self._run_git(["for-each-ref", "--format=%(refname:short)", "refs/heads/"])
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def branch_exists(self, name: str) -> bool:
        return name in self.list_branches()

    def ensure_branch(self, name: str) -> bool:
        """Check out ``name``, creating it from ``HEAD`` when it does not exist.

        Returns ``True`` when the branch was created by this call.
        """

        if self.branch_exists(name):
            if self.current_branch() != name:
                self._run_git(["checkout", name])
            LOGGER.info("Reusing existing branch %s", name)
            return False
        self._run_git(["checkout", "-b", name])
        LOGGER.info("Created branch %s", name)
        return True

    def head(self) -> str | None:
        result = self._run_git(["rev-parse", "--verify", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def relative_path(self, path: Path | str) -> Path | None:
        """Return ``path`` relative to the repository root, or ``None`` if outside it."""

        try:
            return Path(path).resolve().relative_to(self.root)
        except ValueError:
            return None

    # ----------------------------------------------------------------- commits
    def commit_all(
        self,
        message: str,
        *,
        allow_empty: bool = False,
        exclude: Sequence[Path | str] = (),
    ) -> str | None:
        """Add all changes to the index and create a commit.

        Every pending change in the working tree is staged, not only the file
        that was just fixed.  Paths in ``exclude`` (relative to the repository
        root) are kept out of the index.  Returns the new commit SHA, or
        ``None`` when there was nothing to commit (and ``allow_empty`` is
        ``False``).
        """

        excluded = [Path(item).as_posix() for item in exclude]
        add_args: List[str] = ["add", "--all"]
        if excluded:
            add_args.extend(["--", ".", *(f":(exclude){item}" for item in excluded)])
        self._run_git(add_args, check=True)
        if excluded:
            # drops anything staged for these paths before this call
            self._run_git(["reset", "-q", "--", *excluded], check=False)

        commit_args: List[str] = ["commit", "-m", message]
        if allow_empty:
            commit_args.append("--allow-empty")

        commit = self._run_git(commit_args, check=False)
        if commit.returncode != 0:
            output = commit.stderr.strip() or commit.stdout.strip() or ""
            lowered = output.lower()
            if "nothing to commit" in lowered or "nothing added to commit" in lowered:
                return None
            raise GitOperationError(f"git commit failed: {output}")

        return self.head()

    # -------------------------------------------------------------- remotes
    def remotes(self) -> Dict[str, str]:
        """Return a mapping of remote names to their fetch URLs."""

        remotes: Dict[str, str] = {}
        listing = self._run_git(["remote", "-v"], check=False)
        if listing.returncode != 0:
            return remotes
        for line in listing.stdout.splitlines():
            parts = line.split()
            if len(parts) >= 3 and parts[2] == "(fetch)":
                remotes.setdefault(parts[0], parts[1])
        return remotes

    def remote_url(self, name: str = DEFAULT_REMOTE) -> str:
        url = self.remotes().get(name)
        if not url:
            raise GitOperationError(f"Remote '{name}' is not configured.")
        return url

    def push(
        self,
        branch: str,
        *,
        remote: str = DEFAULT_REMOTE,
        set_upstream: bool = True,
    ) -> None:
        """Push ``branch`` to ``remote``; failures raise without retrying."""

        args: List[str] = ["push"]
        if set_upstream:
            args.append("-u")
        args.extend([remote, branch])
        self._run_git(args, check=True)
        LOGGER.info("Pushed %s to %s", branch, remote)

    def build_pr_link(self, branch: str, *, remote: str = DEFAULT_REMOTE) -> str:
        """Return the GitHub compare URL for ``branch`` based on ``remote``."""

        return build_compare_url(self.remote_url(remote), branch)


def build_compare_url(remote_url: str, branch: str) -> str:
    """Derive ``https://github.com/{owner}/{repo}/compare/{branch}?expand=1``."""

    match = _GITHUB_REMOTE_RE.search(remote_url)
    if match is None:
        raise UnparsableRemote(f"Cannot derive a GitHub repository from remote URL: {remote_url}")
    owner, repo = match.group(1), match.group(2)
    return f"https://github.com/{owner}/{repo}/compare/{branch}?expand=1"


__all__ = ["DEFAULT_REMOTE", "GitRepository", "build_compare_url"]
