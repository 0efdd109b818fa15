"""Data models for the load -> render -> write pipeline"""

from dataclasses import dataclass, field
import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Generic, Optional, TypeVar, Union

from mdsite.core.utils.slug import slugify


T = TypeVar('T')
E = TypeVar('E', bound=Exception)


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E


Result = Union[Ok[T], Err[E]]


class BuildState(str, Enum):
    idle      = "idle"
    loading   = "loading"
    rendering = "rendering"
    writing   = "writing"
    done      = "done"
    failed    = "failed"


class DocumentKind(str, Enum):
    post = "post"
    page = "page"


@dataclass(frozen=True)
class Document:
    """A loaded source file. Immutable once created."""
    path:         Path              # source file
    rel_path:     Path              # path relative to the content root
    front_matter: dict[str, Any]
    body:         str
    kind:         DocumentKind = DocumentKind.page
    date:         Optional[datetime.date] = None
    default_layout: str = "page"

    @property
    def layout(self) -> str:
        return str(self.front_matter.get('layout') or self.default_layout)

    @property
    def title(self) -> str:
        return str(self.front_matter.get('title') or self.stem)

    @property
    def stem(self) -> str:
        """Filename stem with any YYYY-MM-DD- prefix removed."""
        stem = self.path.stem
        if self.kind is DocumentKind.post and self.date is not None and stem[:10] == self.date.isoformat():
            stem = stem[11:]
        return stem

    @property
    def slug(self) -> str:
        return slugify(str(self.front_matter.get('slug') or self.stem))

    @property
    def tags(self) -> list[str]:
        """Tags as a list; a comma-separated string is split."""
        raw = self.front_matter.get('tags')
        if raw is None:
            return []
        if isinstance(raw, str):
            return [t.strip() for t in raw.split(',') if t.strip()]
        if isinstance(raw, (list, tuple)):
            return [str(t) for t in raw]
        return [str(raw)]


@dataclass(frozen=True)
class RenderedPage:
    url_path: str
    html:     str
    source:   Optional[Path] = None


@dataclass
class BuildReport:
    """Outcome of a pipeline run."""
    state:   BuildState
    written: list[Path] = field(default_factory=list)
    skipped: list[Exception] = field(default_factory=list)
    digest:  Optional[str] = None
