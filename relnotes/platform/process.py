"""The one subprocess seam: every ``git`` and ``gh`` call goes through ``run``.

A failure never raises. It comes back as a ``ProcessError`` holding both
captured streams and callers classify it from the text: ``git`` stderr
becomes the hint of a ``revision_not_found``, and ``gh api`` output carries
the HTTP status (``HTTP 429``, ``HTTP 401``, ``HTTP 404``) that decides
between ``rate_limited``, ``auth_failed`` and ``ref_not_found``. A process
that never ran (binary missing, timeout) has returncode -1, which is how a
missing ``gh`` becomes ``gh_missing``.
"""

from __future__ import annotations

import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from relnotes.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A git or gh invocation that did not succeed.

    Attributes:
        command: argv as executed.
        returncode: Exit status, or -1 when the process never ran or timed out.
        stdout: Captured output; gh sometimes puts the JSON error body here.
        stderr: Captured diagnostics, or the OS/timeout message for returncode -1.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        cmd_str = " ".join(self.command[:3])
        if len(self.command) > 3:
            cmd_str += " ..."
        return f"{cmd_str} failed (exit {self.returncode})"

    @property
    def diagnostics(self) -> str:
        """Both streams, lowercased, for matching HTTP status and gh messages."""
        return f"{self.stderr}\n{self.stdout}".lower()


def run(
    cmd: list[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run ``cmd`` to completion and return its stdout.

    ``env`` replaces the child environment wholesale (gh gets ``GH_TOKEN``
    layered onto a copy of ours); None inherits it. An expired ``timeout``
    is reported like a process that never ran.
    """
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=dict(env) if env is not None else None,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout=e.stdout if isinstance(e.stdout, str) else "",
                stderr=f"Command timed out after {timeout}s",
            )
        )
    except OSError as e:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=-1,
                stdout="",
                stderr=str(e),
            )
        )

    if proc.returncode != 0:
        return Err(
            ProcessError(
                command=tuple(cmd),
                returncode=proc.returncode,
                stdout=proc.stdout,
                stderr=proc.stderr,
            )
        )

    return Ok(proc.stdout)
