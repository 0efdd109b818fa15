"""Pipeline step functions and the Idle -> Loading -> Rendering -> Writing -> Done state machine"""

import logging
import shutil
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from mdsite.config import Settings
from mdsite.core.errors import (
    BuildCancelled,
    BuildError,
    DocumentError,
    MarkdownSyntaxError,
    UnknownLayoutError,
)
from mdsite.core.loader import ContentSource, build_site
from mdsite.core.models import BuildReport, BuildState, Document, Err, Ok, RenderedPage, Result
from mdsite.core.render import TemplateSet, render_document
from mdsite.core.utils.hashing import tree_digest
from mdsite.core.writer import (
    PathLocks,
    check_collisions,
    commit_output,
    output_path,
    prepare_output,
    write_page,
)


logger = logging.getLogger(__name__)

# Errors that only spoil one document; skippable when strict is off.
SKIPPABLE = (DocumentError, UnknownLayoutError, MarkdownSyntaxError)


def _settle(error: BuildError, strict: bool, errors: list[BuildError]) -> None:
    if strict:
        raise error
    logger.warning("skipping %s", error)
    errors.append(error)


def run_load(
    content_dir: Path,
    strict: bool = True,
    default_layout: str = 'page',
    ) -> tuple[list[Document], list[BuildError]]:
    """Load and order every document. Returns (site, skipped errors)."""
    documents, errors = [], []
    for result in ContentSource(Path(content_dir), default_layout):
        if isinstance(result, Err):
            _settle(result.error, strict, errors)
        else:
            documents.append(result.value)
    site = build_site(documents)
    logger.info("loaded %d document(s) from %s", len(site), content_dir)
    return site, errors


def _render_one(doc: Document, templates: TemplateSet, parser_config: str) -> Result[RenderedPage, BuildError]:
    try:
        return Ok(render_document(doc, templates, parser_config))
    except SKIPPABLE as e:
        return Err(e)


def run_render(
    site: list[Document],
    templates: TemplateSet,
    parser_config: str = 'gfm-like',
    strict: bool = True,
    workers: int = 1,
    ) -> tuple[list[RenderedPage], list[BuildError]]:
    """Render documents in site order; workers > 1 renders on a thread pool.

    Results are collected in site order, so the first error reported in strict
    mode is the same for serial and parallel runs.
    """
    if workers > 1 and len(site) > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda d: _render_one(d, templates, parser_config), site))
    else:
        results = [_render_one(d, templates, parser_config) for d in site]

    pages, errors = [], []
    for result in results:
        if isinstance(result, Err):
            _settle(result.error, strict, errors)
        else:
            pages.append(result.value)
    logger.info("rendered %d page(s)", len(pages))
    return pages, errors


def run_write(
    pages: list[RenderedPage],
    output_dir: Path,
    content_dir: Path,
    clean: bool = True,
    ) -> list[Path]:
    """Write all pages into a staging directory, then swap it in as output_dir.

    Any WriteError aborts the build and leaves the previous output untouched.
    """
    output_dir = Path(output_dir)
    check_collisions(pages, output_dir)
    stage = prepare_output(output_dir, Path(content_dir), clean)
    locks = PathLocks()
    try:
        for page in pages:
            write_page(page, stage, locks)
        commit_output(stage, output_dir)
    finally:
        if stage.exists():
            shutil.rmtree(stage, ignore_errors=True)
    written = [output_path(output_dir, page.url_path) for page in pages]
    logger.info("wrote %d page(s) to %s", len(written), output_dir)
    return written


class Pipeline:
    """One build of a content directory with an explicit, immutable template set."""

    def __init__(self, settings: Settings, templates: TemplateSet):
        self.settings = settings
        self.templates = templates
        self.state = BuildState.idle
        self.report = BuildReport(state=self.state)

    def _enter(self, state: BuildState, cancel: Optional[threading.Event]) -> None:
        if cancel is not None and cancel.is_set():
            raise BuildCancelled(f"build cancelled before {state.value}")
        logger.debug("%s -> %s", self.state.value, state.value)
        self.state = self.report.state = state

    def run(self, cancel: Optional[threading.Event] = None, write: bool = True) -> BuildReport:
        """Run every stage; on a fatal error the state becomes failed and the error propagates.

        With write=False the pipeline stops after rendering (a dry run).
        """
        s = self.settings
        content_dir, output_dir = Path(s.content_dir), Path(s.output_dir)
        self.state = BuildState.idle
        self.report = BuildReport(state=self.state)
        try:
            self._enter(BuildState.loading, cancel)
            site, load_errors = run_load(content_dir, s.strict, s.default_layout)
            self.report.skipped.extend(load_errors)

            self._enter(BuildState.rendering, cancel)
            pages, render_errors = run_render(site, self.templates, s.parser_config, s.strict, s.workers)
            self.report.skipped.extend(render_errors)

            if write:
                self._enter(BuildState.writing, cancel)
                self.report.written = run_write(pages, output_dir, content_dir, s.clean)
                self.report.digest = tree_digest(output_dir)
        except Exception:
            self.state = self.report.state = BuildState.failed
            raise
        self.state = self.report.state = BuildState.done
        return self.report


def run_build(settings: Settings, templates: TemplateSet, cancel: Optional[threading.Event] = None) -> BuildReport:
    """Convenience wrapper: run a fresh Pipeline once."""
    return Pipeline(settings, templates).run(cancel)

