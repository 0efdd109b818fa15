"""Integration tests for the load -> render -> write pipeline.

Each test builds the canonical content tree from tests/conftest.py with the
built-in templates and asserts stable output. Read top-to-bottom as a
reference for what a build produces with default settings.

Canonical tree (content/)
-------------------------
    _posts/2022-04-03-example.md     layout: post, tags [rust, lua]
    _posts/2021-01-01-first-post.md  layout: post
    contact.md                       layout: page
    notes.md                         no front matter

Output tree (_site/)
--------------------
    2022/04/03/example/index.html
    2021/01/01/first-post/index.html
    contact/index.html
    notes/index.html
"""

import errno
import os

import pytest

from mdsite.config import Settings
from mdsite.core.errors import WriteError
from mdsite.core.pipeline import run_build
from mdsite.core.render import load_templates
from mdsite.core.utils.hashing import tree_digest


def _build(content_dir, output_dir, **kw):
    settings = Settings(content_dir=str(content_dir), output_dir=str(output_dir), **kw)
    return run_build(settings, load_templates())


def test_build_post_html(content_dir, output_dir):
    """The post page carries title, date, rendered body and tag list."""
    _build(content_dir, output_dir)
    html = (output_dir / "2022" / "04" / "03" / "example" / "index.html").read_text()
    assert "<title>Example</title>" in html
    assert '<time datetime="2022-04-03">2022-04-03</time>' in html
    assert "<h1>Interop</h1>" in html
    assert "<p>Calling Lua from Rust.</p>" in html
    assert '<ul class="tags"><li>rust</li><li>lua</li></ul>' in html


def test_build_plain_page(content_dir, output_dir):
    """A file without front matter renders as a page titled by its stem."""
    _build(content_dir, output_dir)
    html = (output_dir / "notes" / "index.html").read_text()
    assert "<title>notes</title>" in html
    assert "<p>Just a body, no front matter.</p>" in html


def test_build_is_idempotent(content_dir, output_dir):
    """Two builds of unchanged input produce byte-identical output trees."""
    first = _build(content_dir, output_dir)
    digest = tree_digest(output_dir)
    second = _build(content_dir, output_dir)
    assert first.digest == second.digest == digest


def test_parallel_build_matches_serial(content_dir, tmp_path):
    """workers > 1 writes the same tree as a serial build."""
    serial = _build(content_dir, tmp_path / "serial", workers=1)
    parallel = _build(content_dir, tmp_path / "parallel", workers=4)
    assert serial.digest == parallel.digest


def test_clean_build_removes_stale_pages(content_dir, output_dir):
    """Deleting a source removes its page on the next build."""
    _build(content_dir, output_dir)
    (content_dir / "contact.md").unlink()
    _build(content_dir, output_dir)
    assert not (output_dir / "contact").exists()
    assert (output_dir / "notes" / "index.html").exists()


def test_custom_templates_dir(content_dir, output_dir, tmp_path):
    """Templates from a directory replace the built-ins for their layout."""
    templates_dir = tmp_path / "templates"
    templates_dir.mkdir()
    (templates_dir / "page.html").write_text("<main data-url=\"{url}\">{title}</main>")
    settings = Settings(content_dir=str(content_dir), output_dir=str(output_dir))
    run_build(settings, load_templates(str(templates_dir)))
    assert (output_dir / "contact" / "index.html").read_text() == '<main data-url="/contact/">Contact</main>'


def test_failed_write_keeps_previous_site(content_dir, output_dir, monkeypatch):
    """A disk error on the second page leaves the previous build intact and no staging dirs."""
    _build(content_dir, output_dir)
    before = tree_digest(output_dir)
    (content_dir / "contact.md").write_text("---\nlayout: page\ntitle: Changed\n---\n\nNew text.\n")

    real_replace = os.replace
    calls = []

    def failing_replace(src, dst):
        calls.append(dst)
        if len(calls) == 2:
            raise OSError(errno.ENOSPC, "No space left on device")
        return real_replace(src, dst)

    monkeypatch.setattr(os, "replace", failing_replace)
    with pytest.raises(WriteError, match="No space left"):
        _build(content_dir, output_dir)
    monkeypatch.undo()

    assert tree_digest(output_dir) == before
    assert len(list(output_dir.rglob("index.html"))) == 4
    assert [p.name for p in output_dir.parent.iterdir() if p.name.startswith(".")] == []


def test_unicode_file_names_keep_their_urls(content_dir, output_dir):
    """Non-ASCII stems become non-ASCII URL segments instead of colliding with the root."""
    (content_dir / "index.md").write_text("---\nlayout: page\ntitle: Home\n---\n\nHi.\n")
    (content_dir / "连络.md").write_text("---\nlayout: page\ntitle: Contact\n---\n\nHi.\n")
    (content_dir / "_posts" / "2022-04-03-日本語.md").write_text(
        "---\nlayout: post\ntitle: Japanese\n---\n\nHi.\n")
    _build(content_dir, output_dir)
    assert (output_dir / "index.html").exists()
    assert (output_dir / "连络" / "index.html").exists()
    assert (output_dir / "2022" / "04" / "03" / "日本語" / "index.html").exists()
