"""Release-note run orchestration.

One run, all or nothing:

1. pick the previous release tag of the client repository
2. read the dependency pin from the lockfile at both releases
3. fetch merged changes of the client and of the dependency ranges
4. merge, classify, and assemble the release context

The lockfile reads and the client fetch are independent and run on a small
thread pool; the dependency fetch starts once its range is known. The first
failure ends the run without waiting for a fetch still in flight.
"""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from threading import Event
from time import sleep
from typing import TypeVar

from relnotes.core.result import Err, Ok, Result
from relnotes.git.repository import Repository
from relnotes.output.console import ConsoleProtocol
from relnotes.release.changes import Change, ChangeSource, merge
from relnotes.release.classify import classify
from relnotes.release.context import ReleaseContext, ReleaseInputs, build_release_context
from relnotes.release.errors import ReleaseError
from relnotes.release.lockfile import read_pinned_version, resolve_dependency_range
from relnotes.release.semver import VersionSeries
from relnotes.services.release.config import Settings
from relnotes.services.release.gh import GhChangeSource
from relnotes.services.release.runtime import read_runtime_version
from relnotes.services.release.timeouts import (
    RATE_LIMIT_BASE_DELAY_SECONDS,
    RATE_LIMIT_RETRY_ATTEMPTS,
)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ReleaseRun:
    context: ReleaseContext
    changes: tuple[Change, ...]
    warnings: tuple[str, ...] = ()


def retry_rate_limited(
    op: Callable[[], Result[T, ReleaseError]],
    *,
    attempts: int = RATE_LIMIT_RETRY_ATTEMPTS,
    base_delay: float = RATE_LIMIT_BASE_DELAY_SECONDS,
    on_retry: Callable[[ReleaseError, float], None] | None = None,
    stop: Event | None = None,
) -> Result[T, ReleaseError]:
    """Run ``op``, retrying only ``rate_limited`` failures with exponential backoff.

    Once ``stop`` is set the last result is returned instead of retrying.
    """
    attempts = max(1, attempts)
    for attempt in range(attempts):
        result = op()
        if isinstance(result, Ok) or not result.error.retryable or attempt == attempts - 1:
            return result
        if stop is not None and stop.is_set():
            return result

        delay = base_delay * (2**attempt)
        if on_retry is not None:
            on_retry(result.error, delay)
        sleep(delay)
        if stop is not None and stop.is_set():
            return result

    raise AssertionError("unreachable")


def _current_revision(
    repo: Repository, version: str, tags: list[str], console: ConsoleProtocol
) -> Result[str, ReleaseError]:
    """The target tag, or the checked-out commit when the tag does not exist yet."""
    if version in tags:
        return Ok(version)

    head = repo.rev_parse("HEAD")
    if isinstance(head, Err):
        return Err(
            ReleaseError(
                kind="revision_not_found",
                message=f"{version} is not tagged and HEAD cannot be resolved",
                hint=head.error.message,
                subject=version,
            )
        )
    console.warning(f"{version} is not tagged yet; using HEAD ({head.value[:10]})")
    return Ok(head.value)


def generate_release_context(
    settings: Settings,
    *,
    console: ConsoleProtocol,
    repo: Repository | None = None,
    source: ChangeSource | None = None,
) -> Result[ReleaseRun, ReleaseError]:
    config = settings.config
    repo = repo or Repository(settings.checkout)
    source = source or GhChangeSource(workspace_root=settings.workspace, token=settings.token)
    warnings: list[str] = []

    def warn(message: str) -> None:
        warnings.append(message)
        console.warning(message)

    def on_retry(error: ReleaseError, delay: float) -> None:
        console.info(f"rate limited on {error.subject}; retrying in {delay:.0f}s")

    tags = repo.tags()
    if isinstance(tags, Err):
        return Err(
            ReleaseError(
                kind="revision_not_found",
                message=f"cannot list tags in {repo.path}",
                hint=tags.error.message,
                subject=str(repo.path),
            )
        )

    series = VersionSeries(tags.value, settings.version)
    previous = series.select_before(series.current())
    if isinstance(previous, Err):
        return previous
    if (ambiguity := previous.value.warning()) is not None:
        warn(ambiguity)
    prev_tag = previous.value.tag
    console.info(f"{config.repos.primary}: {prev_tag} -> {settings.version}")

    current_rev = _current_revision(repo, settings.version, tags.value, console)
    if isinstance(current_rev, Err):
        return current_rev
    cur_rev = current_rev.value

    dep = config.dependency
    stop = Event()
    pool = ThreadPoolExecutor(max_workers=3, thread_name_prefix="relnotes")
    try:
        primary_future = pool.submit(
            retry_rate_limited,
            lambda: source.fetch(config.repos.primary, prev_tag, cur_rev),
            on_retry=on_retry,
            stop=stop,
        )
        pin_futures = [
            pool.submit(
                read_pinned_version,
                repo,
                rev,
                lockfile=dep.lockfile,
                name=dep.name,
                table=dep.table,
            )
            for rev in (prev_tag, cur_rev)
        ]

        pins: list[str] = []
        for future in pin_futures:
            pin = future.result()
            if isinstance(pin, Err):
                return pin
            pins.append(pin.value)

        dep_range = resolve_dependency_range(
            name=dep.name,
            previous_version=pins[0],
            current_version=pins[1],
            resolution=dep.resolution(),
        )
        console.info(
            f"{config.repos.dependency}: {dep_range.previous_ref} -> {dep_range.current_ref}"
        )

        secondary: Result[tuple[Change, ...], ReleaseError] = Ok(())
        if dep_range.changed:
            secondary = retry_rate_limited(
                lambda: source.fetch(
                    config.repos.dependency, dep_range.previous_ref, dep_range.current_ref
                ),
                on_retry=on_retry,
            )
            if isinstance(secondary, Err):
                return secondary

        primary = primary_future.result()
    finally:
        # A failed run returns without waiting out the other fetch's backoff.
        stop.set()
        pool.shutdown(wait=False, cancel_futures=True)

    if isinstance(primary, Err):
        return primary

    changes = merge(primary.value, secondary.value, config.repos.dependency_prefix)
    classification = classify(changes, config.rules())

    runtime = settings.runtime
    if not runtime:
        runtime_version = read_runtime_version(repo, cur_rev, config.runtime_source)
        if isinstance(runtime_version, Err):
            return runtime_version
        runtime = runtime_version.value.identifier

    context = build_release_context(
        version=settings.version,
        previous_version=prev_tag,
        dependency=dep_range,
        classification=classification,
        inputs=ReleaseInputs(
            rustc=settings.rustc,
            wasm_toolchain=settings.wasm_toolchain,
            runtime=runtime,
            artifacts=settings.artifacts,
        ),
    )
    if isinstance(context, Err):
        return context

    console.success(f"{len(changes)} changes, priority {context.value.overall_priority}")
    return Ok(ReleaseRun(context=context.value, changes=changes, warnings=tuple(warnings)))
