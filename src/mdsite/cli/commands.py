"""CLI command implementations"""

from pathlib import Path
from typing import Annotated, Optional

import typer

from mdsite.config import Settings, load_config
from mdsite.core.errors import BuildError
from mdsite.core.loader import ContentSource, build_site
from mdsite.core.models import Err
from mdsite.core.pipeline import Pipeline
from mdsite.core.render import load_templates
from mdsite.core.writer import url_path_for
from mdsite.log import setup_logging


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling, then set up logging."""
    try:
        settings = load_config(overrides=overrides)
    except ValueError as e:
        _fail(str(e))
    setup_logging(settings.log_level, settings.log_file)
    if not Path(settings.content_dir).exists():
        _fail(f"content directory not found: {settings.content_dir}")
    return settings


def _pipeline(settings: Settings) -> Pipeline:
    try:
        templates = load_templates(settings.templates_dir)
    except OSError as e:
        _fail(f"Cannot read templates from {settings.templates_dir}", e)
    return Pipeline(settings, templates)


def build_cmd(
    content: Annotated[Optional[str], typer.Argument(help="Content directory (default: content_dir setting)")] = None,
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    templates: Annotated[Optional[str], typer.Option("--templates-dir", help="Directory of <layout>.html templates")] = None,
    strict: Annotated[Optional[bool], typer.Option("--strict/--no-strict", help="Abort on first bad document")] = None,
    workers: Annotated[Optional[int], typer.Option("--workers", help="Parallel render workers")] = None,
    clean: Annotated[Optional[bool], typer.Option("--clean/--no-clean", help="Remove previous output first")] = None,
    ):
    """Run the full pipeline: load -> render -> write."""
    settings = _settings(overrides={
        "content_dir": content, "output_dir": out, "templates_dir": templates,
        "strict": strict, "workers": workers, "clean": clean,
    })
    pipeline = _pipeline(settings)
    try:
        report = pipeline.run()
    except BuildError as e:
        _fail("Build failed", e)

    for path in report.written:
        typer.echo(f"  {path}")
    for e in report.skipped:
        typer.echo(f"  skipped: {e}", err=True)
    typer.echo(
        f"Build complete - {len(report.written)} written, "
        f"{len(report.skipped)} skipped, digest {report.digest[:12]}"
    )


def check_cmd(
    content: Annotated[Optional[str], typer.Argument(help="Content directory (default: content_dir setting)")] = None,
    templates: Annotated[Optional[str], typer.Option("--templates-dir", help="Directory of <layout>.html templates")] = None,
    ):
    """Load and render every document without writing; report all problems."""
    settings = _settings(overrides={"content_dir": content, "templates_dir": templates, "strict": False})
    try:
        report = _pipeline(settings).run(write=False)
    except BuildError as e:
        _fail("Check failed", e)

    for e in report.skipped:
        typer.echo(f"  {e}")
    if report.skipped:
        typer.echo(f"{len(report.skipped)} problem(s) found.")
        raise typer.Exit(1)
    typer.echo("No problems found.")


def list_cmd(
    content: Annotated[Optional[str], typer.Argument(help="Content directory (default: content_dir setting)")] = None,
    ):
    """List documents in site order: kind, date, URL path, source."""
    settings = _settings(overrides={"content_dir": content})
    docs, bad = [], []
    for result in ContentSource(Path(settings.content_dir), settings.default_layout):
        if isinstance(result, Err):
            bad.append(result.error)
        else:
            docs.append(result.value)

    for doc in build_site(docs):
        date = doc.date.isoformat() if doc.date else "-"
        typer.echo(f"{doc.kind.value:<5} {date:<10} /{url_path_for(doc)}  {doc.rel_path}")
    for e in bad:
        typer.echo(f"  invalid: {e}", err=True)
    if not docs and not bad:
        typer.echo("No documents found.")
        raise typer.Exit(1)
