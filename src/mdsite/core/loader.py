"""Content loading: file discovery, front matter splitting, Document construction"""

import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterator, Optional

import yaml

from mdsite.core.errors import DocumentError, InvalidDateError, MalformedFrontMatterError
from mdsite.core.models import Document, DocumentKind, Err, Ok, Result


logger = logging.getLogger(__name__)

MD_EXTENSIONS = {'.md', '.markdown'}
DATE_PREFIX_RE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})-(.+)$')
REQUIRED_KEYS = ('layout', 'title')
_OPEN = '---'
_CLOSE = {'---', '...'}


def discover_files(path: Path) -> list[Path]:
    """Return sorted markdown files under path, or [path] if a single file."""
    if path.is_file():
        return [path] if path.suffix in MD_EXTENSIONS else []
    return sorted(p for p in path.rglob('*') if p.is_file() and p.suffix in MD_EXTENSIONS)


def _normalize(value: Any) -> Any:
    """Convert YAML date/datetime values to ISO strings, recursively."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_normalize(v) for v in value]
    return value


def _opens_front_matter(text: str) -> bool:
    first = text.split("\n", 1)[0]
    return first.rstrip() == _OPEN


def split_front_matter(text: str, path: Optional[Path] = None) -> Result[tuple[dict[str, Any], str], MalformedFrontMatterError]:
    """Split a leading ``---`` block from the body.

    Returns Ok((front_matter, body)) or Err(MalformedFrontMatterError). Text that
    does not open with ``---`` is all body. An opening delimiter with no closing
    one is an error rather than body text.
    """
    if not _opens_front_matter(text):
        return Ok(({}, text))

    lines = text.split('\n')
    end = next((i for i in range(1, len(lines)) if lines[i].rstrip() in _CLOSE), None)
    if end is None:
        return Err(MalformedFrontMatterError("front matter opened with '---' but never closed", path))

    try:
        fm = yaml.safe_load('\n'.join(lines[1:end])) or {}
    except yaml.YAMLError as e:
        return Err(MalformedFrontMatterError(f"invalid YAML front matter: {e}", path))
    if not isinstance(fm, dict):
        return Err(MalformedFrontMatterError(
            f"front matter must be a mapping, got {type(fm).__name__}", path))
    return Ok((_normalize(fm), '\n'.join(lines[end + 1:])))


def emit_source(doc: Document) -> str:
    """Serialize a Document back to front matter + body text readable by split_front_matter."""
    if not doc.front_matter:
        return doc.body
    header = yaml.dump(doc.front_matter, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return f"---\n{header}---\n{doc.body}"


def _parse_date(value: Any, path: Path) -> date:
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise InvalidDateError(f"invalid date {value!r}: {e}", path) from e


def _classify(path: Path, fm: dict[str, Any]) -> tuple[DocumentKind, Optional[date]]:
    """Decide post/page and the publish date from the filename prefix or front matter."""
    m = DATE_PREFIX_RE.match(path.stem)
    if m:
        return DocumentKind.post, _parse_date('-'.join(m.groups()[:3]), path)
    if fm.get('layout') == 'post':
        if 'date' not in fm:
            raise InvalidDateError("post has no YYYY-MM-DD- filename prefix and no 'date' key", path)
        return DocumentKind.post, _parse_date(fm['date'], path)
    return DocumentKind.page, None


def load_document(path: Path, root: Path, default_layout: str = 'page') -> Result[Document, DocumentError]:
    """Read one file into a Document. Bad input is returned as Err; I/O errors propagate."""
    try:
        text = path.read_text(encoding='utf-8-sig')
    except UnicodeDecodeError as e:
        return Err(DocumentError(f"not valid UTF-8: {e.reason} at byte {e.start}", path))
    split = split_front_matter(text, path)
    if isinstance(split, Err):
        return split
    fm, body = split.value
    has_fm = _opens_front_matter(text)

    try:
        kind, published = _classify(path, fm)
    except InvalidDateError as e:
        return Err(e)

    if has_fm:
        missing = [k for k in REQUIRED_KEYS if not fm.get(k)]
        if missing:
            return Err(MalformedFrontMatterError(f"missing required key(s): {', '.join(missing)}", path))
    elif kind is DocumentKind.post:
        return Err(MalformedFrontMatterError("posts require front matter with layout and title", path))

    rel = path.relative_to(root) if path != root and root in path.parents else Path(path.name)
    doc = Document(
        path=path,
        rel_path=rel,
        front_matter=fm,
        body=body,
        kind=kind,
        date=published,
        default_layout=default_layout,
    )
    if not doc.slug:
        return Err(DocumentError(f"cannot derive a URL slug from {doc.stem!r}", path))
    return Ok(doc)


class ContentSource:
    """Lazy, restartable sequence of load results for every markdown file under root.

    Each iteration walks the directory again, so edits between iterations are seen.
    """

    def __init__(self, root: Path, default_layout: str = 'page'):
        self.root = Path(root)
        self.default_layout = default_layout

    def __iter__(self) -> Iterator[Result[Document, DocumentError]]:
        base = self.root if self.root.is_dir() else self.root.parent
        for p in discover_files(self.root):
            logger.debug("loading %s", p)
            yield load_document(p, base, self.default_layout)


def _site_key(doc: Document) -> tuple:
    if doc.kind is DocumentKind.post:
        # newest first: negate the ordinal so ties still sort by slug ascending
        return (0, -doc.date.toordinal(), doc.slug, '')
    return (1, 0, '', doc.rel_path.as_posix())


def build_site(documents) -> list[Document]:
    """Order documents: posts newest first, then pages by path."""
    return sorted(documents, key=_site_key)
