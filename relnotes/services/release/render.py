"""Release note rendering with Jinja2.

Templates receive ``ReleaseContext.as_template_vars()``. Undefined names are
errors: a note with a silently blank section is worse than no note.
"""

from __future__ import annotations

from pathlib import Path

from jinja2 import (
    Environment,
    FileSystemLoader,
    PackageLoader,
    StrictUndefined,
    TemplateError,
    TemplateNotFound,
)

from relnotes.core.result import Err, Ok, Result
from relnotes.release.context import ReleaseContext
from relnotes.release.errors import ReleaseError

DEFAULT_TEMPLATE = "release.md.j2"


def _env(loader: FileSystemLoader | PackageLoader) -> Environment:
    return Environment(
        loader=loader,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
    )


def render_release_notes(
    context: ReleaseContext,
    template_path: Path | None = None,
) -> Result[str, ReleaseError]:
    """Render ``context`` through ``template_path`` (or the bundled template)."""
    if template_path is None:
        env = _env(PackageLoader("relnotes", "templates"))
        name = DEFAULT_TEMPLATE
    else:
        env = _env(FileSystemLoader(str(template_path.parent)))
        name = template_path.name

    subject = str(template_path) if template_path is not None else DEFAULT_TEMPLATE
    try:
        template = env.get_template(name)
        return Ok(template.render(**context.as_template_vars()))
    except TemplateNotFound:
        return Err(
            ReleaseError(
                kind="template_failed",
                message=f"template not found: {subject}",
                subject=subject,
            )
        )
    except TemplateError as e:
        return Err(
            ReleaseError(
                kind="template_failed",
                message=f"failed to render {subject}: {e}",
                subject=subject,
            )
        )
