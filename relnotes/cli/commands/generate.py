from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import NoReturn

import typer

from relnotes.cli.context import CLIContext, build_context
from relnotes.core.errors import ErrorCode
from relnotes.core.result import Err
from relnotes.release.changes import Change
from relnotes.release.classify import Priority
from relnotes.release.errors import ReleaseError
from relnotes.services.release.gh import ensure_gh_available
from relnotes.services.release.pipeline import ReleaseRun, generate_release_context
from relnotes.services.release.render import render_release_notes


def release_error_code(kind: str) -> ErrorCode:
    if kind in {"gh_missing", "auth_failed"}:
        return ErrorCode.ENV_ERROR
    if kind in {"rate_limited", "provider_failed", "invalid_payload", "ref_not_found"}:
        return ErrorCode.NETWORK_ERROR
    if kind in {"revision_not_found", "invalid_manifest", "runtime_version_not_found"}:
        return ErrorCode.IO_ERROR
    return ErrorCode.USER_ERROR


def exit_release(ctx: CLIContext, error: ReleaseError) -> NoReturn:
    ctx.console.error(f"{error.kind}: {error.pretty()}")
    raise typer.Exit(code=int(release_error_code(error.kind)))


def _run(ctx: CLIContext) -> ReleaseRun:
    available = ensure_gh_available()
    if isinstance(available, Err):
        exit_release(ctx, available.error)

    result = generate_release_context(ctx.settings, console=ctx.console)
    if isinstance(result, Err):
        exit_release(ctx, result.error)
    return result.value


def _jsonable(value: object) -> object:
    if isinstance(value, Change):
        return {
            "id": value.id,
            "display_id": value.display_id,
            "title": value.title,
            "labels": sorted(value.labels),
            "repo": value.repo,
            "merged_at": value.merged_at,
            "url": value.url,
        }
    if isinstance(value, Mapping):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Priority):
        return str(value)
    return value


_WORKSPACE = typer.Option(
    Path("."), "--workspace", envvar="GITHUB_WORKSPACE", help="Directory holding the checkout"
)
_VERSION = typer.Option(
    ..., "--version-tag", envvar="GITHUB_REF", help="Target version (v1.2.3 or refs/tags/v1.2.3)"
)
_TOKEN = typer.Option(None, "--token", envvar="GITHUB_TOKEN", help="GitHub token for gh")
_RUSTC = typer.Option(None, "--rustc", envvar="RUSTC", help="rustc version used for the build")
_WASM = typer.Option(
    None, "--wasm-toolchain", envvar="WASM_BUILD_TOOLCHAIN", help="Runtime build toolchain"
)
_RUNTIME = typer.Option(None, "--runtime", help="Runtime identifier (read from source if unset)")
_ARTIFACT = typer.Option([], "--artifact", help="Build artifact reference (name=ref)")
_CONFIG = typer.Option(None, "--config", help="Config file (default: <workspace>/relnotes.toml)")


def generate(
    workspace: Path = _WORKSPACE,
    version: str = _VERSION,
    token: str | None = _TOKEN,
    rustc: str | None = _RUSTC,
    wasm_toolchain: str | None = _WASM,
    runtime: str | None = _RUNTIME,
    artifact: list[str] = _ARTIFACT,
    config: Path | None = _CONFIG,
    template: Path | None = typer.Option(None, "--template", help="Jinja2 template file"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the note to a file"),
) -> None:
    """Render the release note for a version."""
    ctx = build_context(
        workspace=workspace,
        version=version,
        token=token,
        rustc=rustc,
        wasm_toolchain=wasm_toolchain,
        runtime=runtime,
        artifacts=artifact,
        config_path=config,
    )
    run = _run(ctx)

    if template is None and ctx.settings.config.template is not None:
        template = ctx.settings.checkout / ctx.settings.config.template

    rendered = render_release_notes(run.context, template)
    if isinstance(rendered, Err):
        exit_release(ctx, rendered.error)

    if output is None:
        typer.echo(rendered.value, nl=False)
        return

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(rendered.value, encoding="utf-8")
    except OSError as e:
        ctx.console.error(f"failed to write {output}: {e}")
        raise typer.Exit(code=int(ErrorCode.IO_ERROR))
    ctx.console.success(f"wrote {output}")


def context(
    workspace: Path = _WORKSPACE,
    version: str = _VERSION,
    token: str | None = _TOKEN,
    rustc: str | None = _RUSTC,
    wasm_toolchain: str | None = _WASM,
    runtime: str | None = _RUNTIME,
    artifact: list[str] = _ARTIFACT,
    config: Path | None = _CONFIG,
) -> None:
    """Print the template context for a version as JSON."""
    ctx = build_context(
        workspace=workspace,
        version=version,
        token=token,
        rustc=rustc,
        wasm_toolchain=wasm_toolchain,
        runtime=runtime,
        artifacts=artifact,
        config_path=config,
    )
    run = _run(ctx)
    payload = _jsonable(run.context.as_template_vars())
    typer.echo(json.dumps(payload, indent=2, sort_keys=True))
