from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

import typer

from relnotes.core.errors import ErrorCode
from relnotes.core.result import Err
from relnotes.output.console import ConsoleProtocol, RichConsole
from relnotes.services.release.config import (
    CONFIG_FILENAME,
    Settings,
    load_config,
    load_config_or_default,
)

_TAG_REF_PREFIX = "refs/tags/"


@dataclass(frozen=True, slots=True)
class CLIContext:
    settings: Settings
    console: ConsoleProtocol


def normalize_version(ref: str) -> str:
    """Accept ``refs/tags/v1.2.0`` (as CI exposes it) as well as ``v1.2.0``."""
    ref = ref.strip()
    if ref.startswith(_TAG_REF_PREFIX):
        return ref[len(_TAG_REF_PREFIX) :]
    return ref


def parse_artifacts(items: list[str]) -> Mapping[str, str]:
    out: dict[str, str] = {}
    for item in items:
        if "=" not in item:
            typer.echo(f"error: invalid --artifact (expected name=ref): {item}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))
        name, ref = item.split("=", 1)
        out[name.strip()] = ref.strip()
    return MappingProxyType(out)


def build_context(
    *,
    workspace: Path,
    version: str,
    token: str | None,
    rustc: str | None,
    wasm_toolchain: str | None,
    runtime: str | None,
    artifacts: list[str],
    config_path: Path | None,
) -> CLIContext:
    try:
        root = workspace.expanduser().resolve()
    except OSError as e:
        typer.echo(f"error: invalid --workspace: {e}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    if not root.is_dir():
        typer.echo(f"error: workspace '{root}' is not a directory", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    if config_path is not None:
        config = load_config(config_path)
    else:
        config = load_config_or_default(root / CONFIG_FILENAME)
    if isinstance(config, Err):
        typer.echo(f"error: {config.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    settings = Settings(
        workspace=root,
        version=normalize_version(version),
        token=token or None,
        rustc=rustc,
        wasm_toolchain=wasm_toolchain,
        runtime=runtime,
        artifacts=parse_artifacts(artifacts),
        config=config.value,
    )
    return CLIContext(settings=settings, console=RichConsole())
