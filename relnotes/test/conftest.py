from __future__ import annotations

import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest


class GitRepoBuilder:
    """Builds a throwaway git repository commit by commit."""

    def __init__(self, path: Path) -> None:
        self.path = path
        path.mkdir(parents=True, exist_ok=True)
        self.git("init", "-q")

    def git(self, *args: str) -> str:
        proc = subprocess.run(
            [
                "git",
                "-c",
                "user.name=Release Bot",
                "-c",
                "user.email=release@example.com",
                "-c",
                "commit.gpgsign=false",
                "-c",
                "tag.gpgsign=false",
                *args,
            ],
            cwd=self.path,
            capture_output=True,
            text=True,
            check=True,
        )
        return proc.stdout

    def commit(self, files: dict[str, str], message: str = "update") -> None:
        for rel, content in files.items():
            target = self.path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        self.git("add", "-A")
        self.git("commit", "-q", "-m", message)

    def tag(self, name: str) -> None:
        self.git("tag", name)


@pytest.fixture
def git_repo(tmp_path: Path) -> Callable[[str], GitRepoBuilder]:
    def make(name: str = "repo") -> GitRepoBuilder:
        return GitRepoBuilder(tmp_path / name)

    return make


def cargo_lock(**pins: str) -> str:
    """A minimal Cargo.lock pinning ``name=version`` packages."""
    blocks = ["version = 3", ""]
    for name, version in pins.items():
        blocks.append("[[package]]")
        blocks.append(f'name = "{name.replace("_", "-")}"')
        blocks.append(f'version = "{version}"')
        blocks.append("")
    return "\n".join(blocks)


def runtime_source(spec_name: str, spec_version: int) -> str:
    return (
        "pub const VERSION: RuntimeVersion = RuntimeVersion {\n"
        f'\tspec_name: create_runtime_str!("{spec_name}"),\n'
        f'\timpl_name: create_runtime_str!("{spec_name}"),\n'
        "\tauthoring_version: 3,\n"
        f"\tspec_version: {spec_version},\n"
        "\timpl_version: 0,\n"
        "};\n"
    )


@pytest.fixture
def lockfile_text() -> Callable[..., str]:
    return cargo_lock


@pytest.fixture
def runtime_text() -> Callable[[str, int], str]:
    return runtime_source
