"""Git access for release-note runs.

Usage:
    from relnotes.git import Repository

    repo = Repository(Path("/path/to/client"))
    tags = repo.tags()
    lockfile = repo.show("v1.2.0", "Cargo.lock")
"""

from relnotes.git.repository import GitError, Repository

__all__ = ["GitError", "Repository"]
