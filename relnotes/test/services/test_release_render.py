from __future__ import annotations

from pathlib import Path
from types import MappingProxyType

from relnotes.core.result import Err, Ok
from relnotes.release.changes import Change
from relnotes.release.classify import classify
from relnotes.release.context import ReleaseContext, ReleaseInputs, build_release_context
from relnotes.release.lockfile import DependencyRange
from relnotes.services.release.render import render_release_notes


def _context(*, artifacts: dict[str, str] | None = None) -> ReleaseContext:
    changes = [
        Change(id=1, title="Add [tracing] RPC", labels=frozenset({"B5-clientnoteworthy"})),
        Change(
            id=9,
            title="Weights update",
            labels=frozenset({"B7-runtimenoteworthy", "C9-critical"}),
            prefix="substrate#",
        ),
    ]
    result = build_release_context(
        version="v1.2.0",
        previous_version="v1.1.0",
        dependency=DependencyRange("sp-runtime", "3.0.0", "4.0.0", "v3.0.0", "v4.0.0"),
        classification=classify(changes),
        inputs=ReleaseInputs(
            rustc="rustc 1.51.0",
            wasm_toolchain="nightly-2021-01-13",
            runtime="thales-40",
            artifacts=MappingProxyType(artifacts or {}),
        ),
    )
    assert isinstance(result, Ok)
    return result.value


def test_default_template() -> None:
    result = render_release_notes(_context(artifacts={"wasm": "thales.compact.wasm"}))

    assert isinstance(result, Ok)
    text = result.value
    assert text.startswith("thales-40 (v1.2.0)")
    assert "from v1.1.0 to v1.2.0" in text
    assert "sp-runtime changes from v3.0.0 to v4.0.0" in text
    assert "Upgrade priority: Critical" in text
    assert "- Weights update (substrate#9)" in text
    assert "- Add [tracing] RPC (#1)" in text
    assert "- wasm: thales.compact.wasm" in text
    assert "## Changes" not in text


def test_custom_template(tmp_path: Path) -> None:
    template = tmp_path / "release.md.j2"
    template.write_text(
        "{{ version }} {{ release_priority }}\n"
        "{% for c in runtime_changes %}{{ c.display_id }} {% endfor %}\n",
        encoding="utf-8",
    )

    result = render_release_notes(_context(), template)

    # trim_blocks eats the newline after endfor.
    assert result == Ok("v1.2.0 critical\nsubstrate#9 ")


def test_undefined_variable_is_an_error(tmp_path: Path) -> None:
    template = tmp_path / "release.md.j2"
    template.write_text("{{ polkadot_version }}\n", encoding="utf-8")

    result = render_release_notes(_context(), template)

    assert isinstance(result, Err)
    assert result.error.kind == "template_failed"
    assert "polkadot_version" in result.error.message


def test_missing_template(tmp_path: Path) -> None:
    result = render_release_notes(_context(), tmp_path / "nope.md.j2")
    assert isinstance(result, Err)
    assert result.error.kind == "template_failed"
    assert "not found" in result.error.message
