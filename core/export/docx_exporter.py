#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
DOCX Exporter

Converts a generated book to a Word document in two passes:

1. Markdown -> intermediate DocBlock list (inspectable, no python-docx)
2. DocBlock list -> python-docx Document -> bytes

Supported Markdown subset: '#', '##', '###' headings, '- ' / '* ' list
items, and inline bold (**text**, __text__) / italic (*text*, _text_).
"""

import io
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt, RGBColor

from core.ebook_generator.exceptions import ConversionError
from core.ebook_generator.models import CoverImage, GeneratedBook
from core.export.book_data import (
    DEFAULT_PUBLISHER,
    copyright_line,
    strip_title_heading,
    validate_book,
)

logger = logging.getLogger(__name__)


# Double-delimited spans must be tried before single-delimited ones
INLINE_RE = re.compile(r"(\*\*.*?\*\*|__.*?__|\*.*?\*|_.*?_)")
HEADING_RE = re.compile(r"^(#{1,6})\s+(.*)$")


class BlockType(str, Enum):
    TITLE = "title"
    SUBTITLE = "subtitle"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST_ITEM = "list_item"
    PAGE_BREAK = "page_break"


@dataclass
class TextSpan:
    """A run of text with inline formatting"""
    text: str
    bold: bool = False
    italic: bool = False


@dataclass
class DocBlock:
    """One block-level element of the document"""
    kind: BlockType
    spans: List[TextSpan] = field(default_factory=list)
    level: int = 0  # heading level (1-3)
    centered: bool = False
    muted: bool = False

    @property
    def text(self) -> str:
        return "".join(s.text for s in self.spans)

    @classmethod
    def plain(cls, kind: BlockType, text: str, **kwargs) -> "DocBlock":
        return cls(kind=kind, spans=[TextSpan(text)], **kwargs)


def parse_inline(text: str) -> List[TextSpan]:
    """Split a line into plain, bold and italic spans."""
    spans = []
    for part in INLINE_RE.split(text):
        if not part:
            continue
        if len(part) >= 4 and (
            (part.startswith("**") and part.endswith("**"))
            or (part.startswith("__") and part.endswith("__"))
        ):
            inner, bold, italic = part[2:-2], True, False
        elif len(part) >= 2 and (
            (part.startswith("*") and part.endswith("*"))
            or (part.startswith("_") and part.endswith("_"))
        ):
            inner, bold, italic = part[1:-1], False, True
        else:
            inner, bold, italic = part, False, False
        if inner:
            spans.append(TextSpan(inner, bold=bold, italic=italic))
    return spans


def markdown_to_blocks(markdown_text: str) -> List[DocBlock]:
    """Parse the supported Markdown subset into DocBlocks. Blank lines are dropped."""
    blocks = []
    for line in markdown_text.splitlines():
        stripped = line.strip()
        if not stripped:
            continue

        heading = HEADING_RE.match(stripped)
        if heading:
            level = min(len(heading.group(1)), 3)
            blocks.append(DocBlock.plain(BlockType.HEADING, heading.group(2).strip(), level=level))
        elif stripped.startswith("- ") or stripped.startswith("* "):
            blocks.append(DocBlock(BlockType.LIST_ITEM, parse_inline(stripped[2:].strip())))
        else:
            blocks.append(DocBlock(BlockType.PARAGRAPH, parse_inline(stripped)))
    return blocks


class DocxExporter:
    """
    Builds the full book layout:

    - Title page (title, subtitle, author, publisher)
    - Copyright page
    - Table of contents
    - One section per chapter, page break between chapters
    """

    def __init__(self, publisher: str = DEFAULT_PUBLISHER):
        self.publisher = publisher

    def build_blocks(self, book: GeneratedBook, author: str, year: Optional[int] = None) -> List[DocBlock]:
        validate_book(book)
        blocks: List[DocBlock] = []

        # Title page
        blocks.append(DocBlock.plain(BlockType.TITLE, book.title, centered=True))
        if book.subtitle:
            blocks.append(DocBlock.plain(BlockType.SUBTITLE, book.subtitle, centered=True))
        blocks.append(DocBlock.plain(BlockType.PARAGRAPH, f"By {author}", centered=True))
        blocks.append(DocBlock.plain(BlockType.PARAGRAPH, self.publisher, centered=True, muted=True))
        blocks.append(DocBlock(BlockType.PAGE_BREAK))

        # Copyright page
        blocks.append(DocBlock.plain(BlockType.PARAGRAPH, copyright_line(author, year)))
        blocks.append(DocBlock.plain(BlockType.PARAGRAPH, f"Published by {self.publisher}."))
        blocks.append(DocBlock(BlockType.PAGE_BREAK))

        # Table of contents
        blocks.append(DocBlock.plain(BlockType.HEADING, "Table of Contents", level=1, centered=True))
        for i, chapter in enumerate(book.chapters, start=1):
            blocks.append(DocBlock.plain(BlockType.PARAGRAPH, f"Chapter {i}: {chapter.title}"))
        blocks.append(DocBlock(BlockType.PAGE_BREAK))

        # Chapters
        last = len(book.chapters) - 1
        for i, chapter in enumerate(book.chapters):
            blocks.append(DocBlock.plain(BlockType.PARAGRAPH, f"Chapter {i + 1}", centered=True))
            blocks.append(DocBlock.plain(BlockType.HEADING, chapter.title, level=1, centered=True))
            blocks.extend(markdown_to_blocks(strip_title_heading(chapter.content, chapter.title)))
            if i < last:
                blocks.append(DocBlock(BlockType.PAGE_BREAK))

        return blocks

    def render(
        self,
        blocks: List[DocBlock],
        title: str = "",
        author: str = "",
        subject: str = "",
        cover: Optional[CoverImage] = None,
    ) -> bytes:
        """Render DocBlocks to .docx bytes."""
        doc = Document()
        props = doc.core_properties
        props.title = title
        props.author = author
        props.subject = subject

        style = doc.styles["Normal"]
        style.font.name = "Times New Roman"
        style.font.size = Pt(12)

        if cover is not None:
            try:
                doc.add_picture(io.BytesIO(cover.data), width=Inches(5.5))
            except Exception as e:
                raise ConversionError(f"Cover image could not be embedded: {e}")
            doc.paragraphs[-1].alignment = WD_ALIGN_PARAGRAPH.CENTER
            doc.add_page_break()

        for block in blocks:
            if block.kind == BlockType.PAGE_BREAK:
                doc.add_page_break()
                continue

            if block.kind == BlockType.TITLE:
                para = doc.add_heading(level=0)
            elif block.kind == BlockType.SUBTITLE:
                para = doc.add_paragraph(style="Subtitle")
            elif block.kind == BlockType.HEADING:
                para = doc.add_heading(level=block.level)
            elif block.kind == BlockType.LIST_ITEM:
                para = doc.add_paragraph(style="List Bullet")
            else:
                para = doc.add_paragraph()

            for span in block.spans:
                run = para.add_run(span.text)
                if span.bold:
                    run.bold = True
                if span.italic:
                    run.italic = True
                if block.muted:
                    run.font.color.rgb = RGBColor(0x88, 0x88, 0x88)

            if block.centered:
                para.alignment = WD_ALIGN_PARAGRAPH.CENTER

        buffer = io.BytesIO()
        doc.save(buffer)
        return buffer.getvalue()

    def export(
        self,
        book: GeneratedBook,
        author: str,
        output_path: Optional[Path] = None,
        cover: Optional[CoverImage] = None,
    ) -> bytes:
        """
        Export a book to DOCX.

        Returns the document bytes; also writes them to ``output_path`` when
        given. Nothing is written if conversion fails.
        """
        blocks = self.build_blocks(book, author)
        data = self.render(blocks, title=book.title, author=author, subject=book.subtitle, cover=cover)

        if output_path is not None:
            output_path = Path(output_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(data)
            logger.info(f"DOCX created: {output_path}")
        return data
