"""Unit tests for core/utils/slug.py"""

import pytest

from mdsite.core.utils.slug import slugify


@pytest.mark.parametrize("text,expected", [
    ("Hello World", "hello-world"),
    ("my_file_name", "my-file-name"),
    ("  leading and trailing  ", "leading-and-trailing"),
    ("multiple---hyphens", "multiple-hyphens"),
    ("Special! Ch@rs#", "special-chrs"),
    ("Café Crème", "café-crème"),
    ("连络", "连络"),
    ("!!!", ""),
    ("", ""),
])
def test_slugify_basic(text, expected):
    """slugify converts text to a lowercase hyphenated slug."""
    assert slugify(text) == expected


def test_slugify_is_stable_on_slugs():
    """An existing slug passes through unchanged."""
    assert slugify("already-slugified") == "already-slugified"
