"""
Shared checks and helpers for book exporters.
"""

import re
from datetime import datetime
from typing import Optional

from core.ebook_generator.exceptions import ConversionError
from core.ebook_generator.models import ChapterContent, GeneratedBook


DEFAULT_PUBLISHER = "School of Standard Publisher"

_LEADING_H1_RE = re.compile(r"^\s*#\s+(?P<title>[^\n]*)\n?")


def validate_book(book: GeneratedBook) -> None:
    """Raise ConversionError unless the book can be exported."""
    if not isinstance(book, GeneratedBook):
        raise ConversionError(f"Expected GeneratedBook, got {type(book).__name__}")
    if not isinstance(book.title, str) or not book.title.strip():
        raise ConversionError("Book has no title")
    if not book.chapters:
        raise ConversionError("Book has no chapters")
    for i, chapter in enumerate(book.chapters):
        if not isinstance(chapter, ChapterContent):
            raise ConversionError(f"Chapter {i + 1} is not a ChapterContent")
        if not isinstance(chapter.title, str) or not chapter.title.strip():
            raise ConversionError(f"Chapter {i + 1} has no title")
        if not isinstance(chapter.content, str):
            raise ConversionError(f"Chapter {i + 1} content is not text")


def escape_raw_html(text: str) -> str:
    """Neutralize raw HTML tags in Markdown so they render as text."""
    return text.replace("<", "&lt;")


def strip_title_heading(content: str, title: str) -> str:
    """Drop a leading '# Title' line that repeats the chapter title."""
    match = _LEADING_H1_RE.match(content)
    if match and match.group("title").strip().lower() == title.strip().lower():
        return content[match.end():]
    return content


def safe_filename(title: str, extension: str) -> str:
    """Lowercase filename with non-alphanumerics replaced by underscores."""
    stem = re.sub(r"[^a-z0-9]", "_", title.lower()) or "book"
    return f"{stem}.{extension}"


def copyright_line(author: str, year: Optional[int] = None) -> str:
    year = year or datetime.now().year
    return f"© {year} {author}. All rights reserved."
