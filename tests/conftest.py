"""Root test configuration: a canonical content tree shared by pipeline and CLI tests"""

import logging
import os

import pytest


POST_MD = """\
---
layout: post
title: Example
tags: [rust, lua]
---

# Interop

Calling Lua from Rust.
"""

OLDER_POST_MD = """\
---
layout: post
title: First Post
---

Hello.
"""

ABOUT_MD = """\
---
layout: page
title: Contact
---

Write to me.
"""

PLAIN_MD = "Just a body, no front matter.\n"


@pytest.fixture(name="content_dir")
def content_dir_fixture(tmp_path):
    """content/ with two posts, a page and a page without front matter."""
    root = tmp_path / "content"
    (root / "_posts").mkdir(parents=True)
    (root / "_posts" / "2022-04-03-example.md").write_text(POST_MD)
    (root / "_posts" / "2021-01-01-first-post.md").write_text(OLDER_POST_MD)
    (root / "contact.md").write_text(ABOUT_MD)
    (root / "notes.md").write_text(PLAIN_MD)
    return root


@pytest.fixture(name="output_dir")
def output_dir_fixture(tmp_path):
    return tmp_path / "_site"


@pytest.fixture(autouse=True)
def isolate_env(tmp_path, monkeypatch):
    """Run each test from a clean tmp directory with no MDSITE_* variables set."""
    for name in list(os.environ):
        if name.startswith("MDSITE_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers the CLI installs so they do not outlive the runner's streams."""
    yield
    logging.getLogger("mdsite").handlers.clear()
