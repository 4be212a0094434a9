"""Error types for the release-note bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

ReleaseErrorKind = Literal[
    "invalid_tag",
    "insufficient_history",
    "revision_not_found",
    "invalid_manifest",
    "dependency_not_pinned",
    "ref_not_found",
    "rate_limited",
    "auth_failed",
    "gh_missing",
    "invalid_payload",
    "provider_failed",
    "runtime_version_not_found",
    "missing_release_input",
    "template_failed",
    "invalid_config",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload.

    ``subject`` names what the failure is about (a repository, ``repo@ref``,
    a manifest path or a release input field) so the CLI can report it.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
    subject: str | None = None

    @property
    def retryable(self) -> bool:
        return self.kind == "rate_limited"

    def pretty(self) -> str:
        text = self.message
        if self.subject and self.subject not in text:
            text = f"{text} [{self.subject}]"
        if self.hint:
            return f"{text} (hint: {self.hint})"
        return text
