"""Git repository abstraction.

Read-only access to a local checkout: tag listing and file contents at an
arbitrary revision. All operations return Result types.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from relnotes.core.result import Err, Ok, Result
from relnotes.platform.process import ProcessError
from relnotes.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0

__all__ = ["GitError", "Repository"]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git command that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the repository root
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        """Check if this is a git repository (.git dir, or file for worktrees)."""
        return (self.path / ".git").exists()

    def tags(self) -> Result[list[str], GitError]:
        """List every tag name, in git's order."""
        result = self._run(["tag", "--list"])
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command="tag --list",
                        message=e.stderr.strip() or "git tag failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok([ln.strip() for ln in stdout.splitlines() if ln.strip()])

    def show(self, revision: str, path: str) -> Result[str, GitError]:
        """Return ``path`` as committed at ``revision`` (``git show rev:path``)."""
        obj = f"{revision}:{path}"
        result = self._run(["show", obj])
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command=f"show {obj}",
                        message=e.stderr.strip() or f"git show {obj} failed",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(stdout)

    def rev_parse(self, ref: str) -> Result[str, GitError]:
        """Resolve ``ref`` to a full commit sha."""
        result = self._run(["rev-parse", "--verify", f"{ref}^{{commit}}"])
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command=f"rev-parse {ref}",
                        message=e.stderr.strip() or f"unknown revision: {ref}",
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(stdout.strip())

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        return run_process(
            ["git", "-C", str(self.path), *args], cwd=self.path, timeout=_GIT_TIMEOUT_SECONDS
        )
