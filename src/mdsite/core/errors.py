"""Build error taxonomy; every error carries the offending file path"""

from pathlib import Path
from typing import Optional


class BuildError(Exception):
    """Base class for all pipeline failures."""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.message = message
        self.path = path
        super().__init__(f"{path}: {message}" if path is not None else message)


class DocumentError(BuildError):
    """Bad input document; skippable in best-effort mode."""


class MalformedFrontMatterError(DocumentError):
    """Front matter is unterminated, not valid YAML, or missing required keys."""


class InvalidDateError(DocumentError):
    """A filename or front-matter date is not a valid calendar date."""


class UnknownLayoutError(BuildError):
    """Document references a layout with no registered template."""

    def __init__(self, layout: str, path: Optional[Path] = None, known: tuple[str, ...] = ()):
        self.layout = layout
        self.known = known
        msg = f"unknown layout {layout!r}"
        if known:
            msg += f" (known: {', '.join(known)})"
        super().__init__(msg, path)


class MarkdownSyntaxError(BuildError):
    """Unterminated fenced code block."""

    def __init__(self, message: str, path: Optional[Path] = None, line: Optional[int] = None):
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message, path)


class WriteError(BuildError):
    """Filesystem failure while writing output. Always fatal."""


class BuildCancelled(BuildError):
    """Cancel requested between pipeline stages."""
