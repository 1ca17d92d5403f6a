"""
Book exporters: DOCX, EPUB and an HTML print view.
"""

from typing import Optional

from core.ebook_generator.config import ExportFormat
from core.ebook_generator.models import CoverImage, GeneratedBook
from core.export.book_data import DEFAULT_PUBLISHER, safe_filename
from core.export.docx_exporter import DocxExporter, DocBlock, BlockType, TextSpan, markdown_to_blocks
from core.export.epub_exporter import EpubExporter
from core.export.html_exporter import HtmlExporter


MEDIA_TYPES = {
    ExportFormat.DOCX: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ExportFormat.EPUB: "application/epub+zip",
    ExportFormat.HTML: "text/html; charset=utf-8",
}


def export_book(
    book: GeneratedBook,
    fmt: ExportFormat,
    author: str,
    publisher: str = DEFAULT_PUBLISHER,
    language: str = "en",
    cover: Optional[CoverImage] = None,
) -> bytes:
    """Export ``book`` in the requested format. Raises ConversionError on bad data."""
    fmt = ExportFormat(fmt)
    if fmt == ExportFormat.DOCX:
        return DocxExporter(publisher=publisher).export(book, author, cover=cover)
    if fmt == ExportFormat.EPUB:
        return EpubExporter(language=language, publisher=publisher).export(book, author, cover=cover)
    return HtmlExporter(publisher=publisher).export(book, author, cover=cover)


__all__ = [
    "MEDIA_TYPES",
    "export_book",
    "safe_filename",
    "DocxExporter",
    "DocBlock",
    "BlockType",
    "TextSpan",
    "markdown_to_blocks",
    "EpubExporter",
    "HtmlExporter",
]
