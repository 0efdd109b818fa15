"""Rendering: template registry, markdown-it expansion, placeholder substitution"""

import html
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Mapping, Optional

from markdown_it import MarkdownIt
from pydantic import BaseModel, ConfigDict

from mdsite.core.errors import MarkdownSyntaxError, UnknownLayoutError
from mdsite.core.models import Document, RenderedPage
from mdsite.core.writer import url_path_for


logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r'\{(title|content|tags|date|url)\}')
TEMPLATE_SUFFIX = '.html'

DEFAULT_TEMPLATES: dict[str, str] = {
    'page': (
        '<!doctype html>\n'
        '<html>\n<head>\n<meta charset="utf-8">\n<title>{title}</title>\n</head>\n'
        '<body>\n<main>\n<h1>{title}</h1>\n{content}</main>\n</body>\n</html>\n'
    ),
    'post': (
        '<!doctype html>\n'
        '<html>\n<head>\n<meta charset="utf-8">\n<title>{title}</title>\n</head>\n'
        '<body>\n<article>\n<h1>{title}</h1>\n<time datetime="{date}">{date}</time>\n'
        '{content}{tags}</article>\n</body>\n</html>\n'
    ),
}


class TemplateSet(BaseModel):
    """Immutable mapping of layout name -> template string."""
    model_config = ConfigDict(frozen=True)

    templates: dict[str, str]

    @classmethod
    def from_mapping(cls, templates: Mapping[str, str]) -> "TemplateSet":
        return cls(templates=dict(templates))

    @classmethod
    def from_dir(cls, path: Path, base: Optional[Mapping[str, str]] = None) -> "TemplateSet":
        """Load every <layout>.html under path, layered over base (if given)."""
        if not Path(path).is_dir():
            raise FileNotFoundError(f"templates directory not found: {path}")
        templates = dict(base or {})
        for p in sorted(Path(path).glob(f'*{TEMPLATE_SUFFIX}')):
            templates[p.stem] = p.read_text(encoding='utf-8')
        return cls(templates=templates)

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self.templates))

    def get(self, layout: str, path: Optional[Path] = None) -> str:
        try:
            return self.templates[layout]
        except KeyError:
            raise UnknownLayoutError(layout, path, self.names) from None


@lru_cache(maxsize=None)
def _make_parser(preset: str) -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    return MarkdownIt(preset, options_update={"linkify": False})


def _fence_closed(token, lines: list[str]) -> bool:
    """True if the fence token's last mapped line is a valid closing marker."""
    start, end = token.map
    if end - start < 2:
        return False
    closing = lines[end - 1].lstrip(' \t>').rstrip()
    char, size = token.markup[0], len(token.markup)
    return len(closing) >= size and closing == char * len(closing)


def check_fences(tokens: list, source: str, path: Optional[Path] = None) -> None:
    """Raise MarkdownSyntaxError for the first fenced code block that is never closed."""
    # line numbers in token.map count \n-terminated lines only
    lines = source.replace('\r\n', '\n').replace('\r', '\n').split('\n')
    for tok in tokens:
        if tok.type == 'fence' and tok.map and not _fence_closed(tok, lines):
            raise MarkdownSyntaxError(
                f"unterminated code fence {tok.markup!r}", path, line=tok.map[0] + 1)


def render_markdown(source: str, parser_config: str = 'gfm-like', path: Optional[Path] = None) -> str:
    """Markdown -> HTML. Only an unterminated code fence is fatal."""
    md = _make_parser(parser_config)
    env: dict = {}
    tokens = md.parse(source, env)
    check_fences(tokens, source, path)
    return md.renderer.render(tokens, md.options, env)


def render_tags(tags: list[str]) -> str:
    if not tags:
        return ''
    items = ''.join(f'<li>{html.escape(t)}</li>' for t in tags)
    return f'<ul class="tags">{items}</ul>\n'


def fill_template(template: str, values: Mapping[str, str]) -> str:
    """Single-pass placeholder substitution; inserted values are never rescanned."""
    return PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], template)


def render_document(doc: Document, templates: TemplateSet, parser_config: str = 'gfm-like') -> RenderedPage:
    """Render a Document through the template named by its layout."""
    template = templates.get(doc.layout, doc.path)
    url_path = url_path_for(doc)
    values = {
        'title':   html.escape(doc.title),
        'content': render_markdown(doc.body, parser_config, doc.path),
        'tags':    render_tags(doc.tags),
        'date':    doc.date.isoformat() if doc.date else '',
        'url':     f'/{url_path}/' if url_path else '/',
    }
    logger.debug("rendered %s with layout %r", doc.path, doc.layout)
    return RenderedPage(url_path=url_path, html=fill_template(template, values), source=doc.path)


def load_templates(templates_dir: Optional[str] = None) -> TemplateSet:
    """Built-in templates, overridden by any <layout>.html files in templates_dir."""
    if templates_dir is None:
        return TemplateSet.from_mapping(DEFAULT_TEMPLATES)
    return TemplateSet.from_dir(Path(templates_dir), base=DEFAULT_TEMPLATES)
