from __future__ import annotations

import json
import os
import re
import shutil
from collections.abc import Mapping
from pathlib import Path
from urllib.parse import quote

from relnotes.core.result import Err, Ok, Result
from relnotes.core.structured import StrDict, as_obj_list, as_str_dict, get_int, get_str, get_table
from relnotes.platform.process import ProcessError
from relnotes.platform.process import run as run_process
from relnotes.release.changes import Change
from relnotes.release.errors import ReleaseError
from relnotes.services.release.timeouts import (
    GH_COMPARE_MAX_PAGES,
    GH_COMPARE_PAGE_SIZE,
    GH_TIMEOUT_SECONDS,
)

# Squash merges end with "(#123)"; merge commits start with "Merge pull request #123".
_SQUASH_RE = re.compile(r"\(#(\d+)\)\s*$")
_MERGE_RE = re.compile(r"^Merge pull request #(\d+)\b")


def classify_gh_error(error: ProcessError, *, message: str, subject: str) -> ReleaseError:
    """Map a failed ``gh api`` call onto the release error taxonomy."""
    text = error.diagnostics
    hint = error.stderr.strip() or None

    if error.returncode == -1 and ("no such file" in text or "not found: 'gh'" in text):
        return ReleaseError(
            kind="gh_missing",
            message="gh: missing",
            hint="Install GitHub CLI: https://cli.github.com/",
            subject=subject,
        )
    if "http 429" in text or "rate limit" in text:
        return ReleaseError(kind="rate_limited", message=message, hint=hint, subject=subject)
    if "http 401" in text or "bad credentials" in text or "gh auth login" in text:
        return ReleaseError(
            kind="auth_failed",
            message=message,
            hint=hint or "Run: gh auth login, or set GITHUB_TOKEN",
            subject=subject,
        )
    if "http 404" in text or "http 422" in text or "no commit found" in text:
        return ReleaseError(kind="ref_not_found", message=message, hint=hint, subject=subject)
    return ReleaseError(kind="provider_failed", message=message, hint=hint, subject=subject)


def ensure_gh_available() -> Result[None, ReleaseError]:
    if shutil.which("gh") is None:
        return Err(
            ReleaseError(
                kind="gh_missing",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def pull_number_from_message(message: str) -> int | None:
    lines = message.strip().splitlines()
    if not lines:
        return None
    subject = lines[0].strip()
    m = _MERGE_RE.match(subject) or _SQUASH_RE.search(subject)
    return int(m.group(1)) if m else None


def _ref(ref: str) -> str:
    return quote(ref, safe="")


class GhChangeSource:
    """Merged pull requests between two refs, read through ``gh api``.

    The compare endpoint lists the commits in ``from_ref...to_ref``. A
    commit subject that names a pull request is resolved to that pull
    request; any other commit is looked up through the pull requests GitHub
    associates with it. Only merged ones are kept, once per number.

    Args:
        workspace_root: Working directory for the ``gh`` process.
        token: Passed to gh as ``GH_TOKEN``; None keeps gh's own login.
        base_env: Environment the token is layered onto (defaults to ours).
    """

    def __init__(
        self,
        *,
        workspace_root: Path,
        token: str | None = None,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self._workspace_root = workspace_root
        self._env: dict[str, str] | None = None
        if token:
            self._env = {**(base_env if base_env is not None else os.environ), "GH_TOKEN": token}

    def api_json(self, endpoint: str, *, subject: str) -> Result[object, ReleaseError]:
        result = run_process(
            ["gh", "api", "-H", "Accept: application/vnd.github+json", endpoint],
            cwd=self._workspace_root,
            env=self._env,
            timeout=GH_TIMEOUT_SECONDS,
        )
        if isinstance(result, Err):
            return Err(
                classify_gh_error(result.error, message=f"gh api failed: {endpoint}", subject=subject)
            )

        try:
            obj: object = json.loads(result.value)
        except json.JSONDecodeError as e:
            return Err(
                ReleaseError(
                    kind="invalid_payload",
                    message=f"gh api returned invalid JSON: {e}",
                    hint=endpoint,
                    subject=subject,
                )
            )
        return Ok(obj)

    def compare_commits(
        self, repo: str, from_ref: str, to_ref: str
    ) -> Result[list[tuple[str, str]], ReleaseError]:
        """``(sha, message)`` of every commit in ``from_ref...to_ref``, following pagination.

        A range longer than ``GH_COMPARE_MAX_PAGES`` pages is an error rather
        than a truncated list.
        """
        subject = f"{repo}@{from_ref}...{to_ref}"
        out: list[tuple[str, str]] = []
        listed = 0
        total = 0
        for page in range(1, GH_COMPARE_MAX_PAGES + 1):
            endpoint = (
                f"repos/{repo}/compare/{_ref(from_ref)}...{_ref(to_ref)}"
                f"?per_page={GH_COMPARE_PAGE_SIZE}&page={page}"
            )
            obj = self.api_json(endpoint, subject=subject)
            if isinstance(obj, Err):
                return obj

            data = as_str_dict(obj.value)
            commits = as_obj_list(data.get("commits")) if data is not None else None
            if data is None or commits is None:
                return Err(
                    ReleaseError(
                        kind="invalid_payload",
                        message=f"unexpected compare payload: {repo}",
                        hint=endpoint,
                        subject=subject,
                    )
                )

            for item in commits:
                d = as_str_dict(item)
                sha = get_str(d, "sha") if d is not None else None
                commit_tbl = get_table(d, "commit") if d is not None else None
                msg = get_str(commit_tbl, "message") if commit_tbl is not None else None
                if sha is not None:
                    out.append((sha, msg or ""))

            listed += len(commits)
            total = get_int(data, "total_commits") or 0
            if not commits or len(commits) < GH_COMPARE_PAGE_SIZE or listed >= total:
                break

        if listed < total:
            return Err(
                ReleaseError(
                    kind="provider_failed",
                    message=f"compare exceeds {GH_COMPARE_MAX_PAGES} pages",
                    hint=f"listed {listed} of {total} commits; split the release range",
                    subject=subject,
                )
            )
        return Ok(out)

    def pull_request(self, repo: str, number: int) -> Result[Change | None, ReleaseError]:
        """Fetch one pull request; None if it was closed without merging."""
        endpoint = f"repos/{repo}/pulls/{number}"
        obj = self.api_json(endpoint, subject=f"{repo}#{number}")
        if isinstance(obj, Err):
            return obj

        data = as_str_dict(obj.value)
        if data is None or get_str(data, "title") is None:
            return Err(
                ReleaseError(
                    kind="invalid_payload",
                    message=f"unexpected pull request payload: {repo}#{number}",
                    hint=endpoint,
                )
            )
        return Ok(_merged_change(repo, data, number))

    def commit_pull_requests(self, repo: str, sha: str) -> Result[list[Change], ReleaseError]:
        """Merged pull requests GitHub associates with a commit.

        Covers rebase merges and squash commits whose subject lost the
        ``(#N)`` suffix.
        """
        endpoint = f"repos/{repo}/commits/{sha}/pulls"
        obj = self.api_json(endpoint, subject=f"{repo}@{sha[:10]}")
        if isinstance(obj, Err):
            return obj

        items = as_obj_list(obj.value)
        if items is None:
            return Err(
                ReleaseError(
                    kind="invalid_payload",
                    message=f"unexpected commit pulls payload: {repo}@{sha[:10]}",
                    hint=endpoint,
                )
            )

        changes: list[Change] = []
        for item in items:
            data = as_str_dict(item)
            number = get_int(data, "number") if data is not None else None
            if data is None or number is None:
                continue
            change = _merged_change(repo, data, number)
            if change is not None:
                changes.append(change)
        return Ok(changes)

    def fetch(
        self, repo: str, from_ref: str, to_ref: str
    ) -> Result[tuple[Change, ...], ReleaseError]:
        commits = self.compare_commits(repo, from_ref, to_ref)
        if isinstance(commits, Err):
            return commits

        numbers: list[int] = []
        found: dict[int, Change] = {}
        for sha, msg in commits.value:
            n = pull_number_from_message(msg)
            if n is not None:
                if n not in numbers:
                    numbers.append(n)
                continue

            associated = self.commit_pull_requests(repo, sha)
            if isinstance(associated, Err):
                return associated
            for change in associated.value:
                found.setdefault(change.id, change)

        for n in numbers:
            if n in found:
                continue
            pr = self.pull_request(repo, n)
            if isinstance(pr, Err):
                return pr
            if pr.value is not None:
                found[n] = pr.value

        # ISO-8601 UTC timestamps order lexically.
        changes = sorted(found.values(), key=lambda c: (c.merged_at or "", c.id))
        return Ok(tuple(changes))


def _merged_change(repo: str, data: StrDict, number: int) -> Change | None:
    merged_at = get_str(data, "merged_at")
    if merged_at is None:
        return None
    return Change(
        id=get_int(data, "number") or number,
        title=get_str(data, "title") or "",
        labels=_labels(data),
        repo=repo,
        merged_at=merged_at,
        url=get_str(data, "html_url"),
    )


def _labels(data: StrDict) -> frozenset[str]:
    out: set[str] = set()
    for item in as_obj_list(data.get("labels")) or []:
        label = as_str_dict(item)
        name = get_str(label, "name") if label is not None else None
        if name is not None:
            out.add(name)
    return frozenset(out)
