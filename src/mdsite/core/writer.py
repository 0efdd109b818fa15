"""Writing rendered pages into an output tree that mirrors URL paths"""

import logging
import os
import shutil
import tempfile
import threading
from pathlib import Path
from typing import Optional

from mdsite.core.errors import WriteError
from mdsite.core.models import Document, DocumentKind, RenderedPage
from mdsite.core.utils.slug import slugify


logger = logging.getLogger(__name__)

INDEX_FILE = 'index.html'


def url_path_for(doc: Document) -> str:
    """Posts: YYYY/MM/DD/<slug>. Pages: slugified path relative to the content root.

    A page stem of ``index`` maps to its parent directory, so ``index.md`` at the
    root maps to the empty path (the site root).
    """
    if doc.kind is DocumentKind.post:
        return f"{doc.date:%Y/%m/%d}/{doc.slug}"
    parts = [slugify(p) for p in doc.rel_path.parent.parts]
    if doc.rel_path.stem != 'index':
        parts.append(doc.slug)
    return '/'.join(p for p in parts if p)


def output_path(output_root: Path, url_path: str) -> Path:
    """<output_root>/<url_path>/index.html"""
    return Path(output_root).joinpath(*[p for p in url_path.split('/') if p], INDEX_FILE)


def check_collisions(pages: list[RenderedPage], output_root: Path) -> None:
    """Raise WriteError if two pages map to the same output file."""
    seen: dict[Path, RenderedPage] = {}
    for page in pages:
        dest = output_path(output_root, page.url_path)
        if dest in seen:
            raise WriteError(
                f"output path {dest} also produced by {seen[dest].source}", page.source)
        seen[dest] = page


class PathLocks:
    """Exclusive per-path locks, owned by a single write pass."""

    def __init__(self):
        self._locks: dict[Path, threading.Lock] = {}
        self._guard = threading.Lock()

    def __call__(self, path: Path) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(path, threading.Lock())

    def __len__(self) -> int:
        return len(self._locks)


def prepare_output(output_root: Path, content_root: Path, clean: bool = True) -> Path:
    """Create an empty staging directory beside output_root and return it.

    Pages are written into the stage and only swapped into place by
    commit_output, so a failed build leaves the previous site untouched. With
    clean=False the stage starts as a copy of the current output.
    """
    output_root = Path(output_root).resolve()
    content_root = Path(content_root).resolve()
    if output_root == content_root or output_root in content_root.parents:
        raise WriteError(f"output directory contains the content directory {content_root}", output_root)
    if output_root.exists() and not output_root.is_dir():
        raise WriteError("output path exists and is not a directory", output_root)
    stage = None
    try:
        output_root.parent.mkdir(parents=True, exist_ok=True)
        stage = Path(tempfile.mkdtemp(dir=output_root.parent, prefix=f'.{output_root.name}-'))
        os.chmod(stage, 0o755)
        if not clean and output_root.exists():
            shutil.copytree(output_root, stage, dirs_exist_ok=True)
    except OSError as e:
        if stage is not None:
            shutil.rmtree(stage, ignore_errors=True)
        raise WriteError(f"cannot prepare output directory: {e}", output_root) from e
    return stage


def commit_output(stage: Path, output_root: Path) -> None:
    """Swap a fully written stage into place as output_root."""
    output_root = Path(output_root).resolve()
    backup = stage.with_name(f'{stage.name}-old')
    moved = False
    try:
        if output_root.exists():
            os.replace(output_root, backup)
            moved = True
        os.replace(stage, output_root)
    except OSError as e:
        if moved and not output_root.exists():
            os.replace(backup, output_root)
        raise WriteError(f"cannot replace output directory: {e.strerror or e}", output_root) from e
    if moved:
        shutil.rmtree(backup, ignore_errors=True)
    logger.info("published %s", output_root)


def write_page(page: RenderedPage, output_root: Path, locks: Optional[PathLocks] = None) -> Path:
    """Write page atomically under an exclusive per-path lock. Returns the written path."""
    dest = output_path(output_root, page.url_path)
    locks = locks if locks is not None else PathLocks()
    with locks(dest):
        tmp = None
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=dest.parent, prefix='.', suffix='.tmp')
            with os.fdopen(fd, 'w', encoding='utf-8', newline='') as fh:
                fh.write(page.html)
            os.chmod(tmp, 0o644)
            os.replace(tmp, dest)
        except OSError as e:
            if tmp is not None and os.path.exists(tmp):
                os.unlink(tmp)
            raise WriteError(f"cannot write {dest}: {e.strerror or e}", page.source or dest) from e
    logger.debug("wrote %s", dest)
    return dest
