"""Slug generation for URL path segments"""

import re


def slugify(text: str) -> str:
    """Convert text to a lowercase, hyphen-separated slug; non-ASCII letters are kept."""
    text = re.sub(r'[^\w\s-]', '', text.lower())
    text = re.sub(r'[\s_]+', '-', text)
    return re.sub(r'-+', '-', text).strip('-')
