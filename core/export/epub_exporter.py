#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
EPUB Exporter

Exports a generated book to an EPUB 2 package.
"""

import io
import zipfile
import uuid
import html
import logging
from pathlib import Path
from typing import Optional, List
from dataclasses import dataclass
from datetime import datetime

import markdown

from core.ebook_generator.exceptions import ConversionError
from core.ebook_generator.models import CoverImage, GeneratedBook
from core.export.book_data import DEFAULT_PUBLISHER, escape_raw_html, strip_title_heading, validate_book

logger = logging.getLogger(__name__)


MARKDOWN_EXTENSIONS = ["extra", "sane_lists"]

XHTML_DOCTYPE = (
    '<!DOCTYPE html PUBLIC "-//W3C//DTD XHTML 1.1//EN" '
    '"http://www.w3.org/TR/xhtml11/DTD/xhtml11.dtd">'
)

IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}


@dataclass
class EpubPage:
    """A content page in the package (title page, contents or chapter)."""
    item_id: str
    href: str  # relative to OEBPS/
    title: str
    body: str  # XHTML body markup


@dataclass
class EpubMetadata:
    """EPUB metadata."""
    title: str = "Untitled"
    author: str = "Anonymous"
    language: str = "en"
    identifier: str = ""
    publisher: str = DEFAULT_PUBLISHER
    description: str = ""
    date: str = ""

    def __post_init__(self):
        if not self.identifier:
            self.identifier = f"urn:uuid:{uuid.uuid4()}"
        if not self.date:
            self.date = datetime.now().strftime("%Y-%m-%d")


class EpubExporter:
    """
    Exports a GeneratedBook to EPUB.

    EPUB structure:
    - mimetype (stored, first entry)
    - META-INF/container.xml
    - OEBPS/
        - content.opf (package document)
        - toc.ncx (navigation)
        - Styles/style.css
        - Text/title.xhtml, Text/toc.xhtml, Text/chapterN.xhtml
        - Images/cover.* (optional)
    """

    def __init__(self, language: str = "en", publisher: str = DEFAULT_PUBLISHER):
        self.language = language
        self.publisher = publisher

    def export(
        self,
        book: GeneratedBook,
        author: str,
        output_path: Optional[Path] = None,
        cover: Optional[CoverImage] = None,
    ) -> bytes:
        """
        Export a book to EPUB.

        Returns the package bytes; also writes them to ``output_path`` when
        given. Nothing is written if conversion fails.
        """
        validate_book(book)
        metadata = EpubMetadata(
            title=book.title,
            author=author,
            language=self.language,
            publisher=self.publisher,
            description=book.description,
        )

        pages = self.build_pages(book, author)
        cover_href = None
        if cover is not None:
            ext = IMAGE_EXTENSIONS.get(cover.mime_type)
            if ext is None:
                raise ConversionError(f"Unsupported cover image type: {cover.mime_type}")
            cover_href = f"Images/cover.{ext}"

        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, 'w', zipfile.ZIP_DEFLATED) as epub:
            # mimetype must be first and uncompressed
            epub.writestr('mimetype', 'application/epub+zip', compress_type=zipfile.ZIP_STORED)

            # Container
            epub.writestr('META-INF/container.xml', self._generate_container())

            # Content
            epub.writestr('OEBPS/content.opf', self._generate_opf(pages, metadata, cover, cover_href))
            epub.writestr('OEBPS/toc.ncx', self._generate_ncx(pages, metadata))
            epub.writestr('OEBPS/Styles/style.css', self._generate_css())

            for page in pages:
                epub.writestr(f'OEBPS/{page.href}', self._generate_page_xhtml(page))

            if cover is not None:
                epub.writestr(f'OEBPS/{cover_href}', cover.data)

        data = buffer.getvalue()
        if output_path is not None:
            output_path = Path(output_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(data)
            logger.info(f"EPUB created: {output_path}")
        return data

    def build_pages(self, book: GeneratedBook, author: str) -> List[EpubPage]:
        """Title page, contents page, then one page per chapter, in reading order."""
        pages = [
            EpubPage(
                item_id="item0",
                href="Text/title.xhtml",
                title=book.title,
                body=self._title_body(book, author),
            ),
            EpubPage(
                item_id="item1",
                href="Text/toc.xhtml",
                title="Table of Contents",
                body=self._toc_body(book),
            ),
        ]
        for i, chapter in enumerate(book.chapters, start=1):
            pages.append(EpubPage(
                item_id=f"item{i + 1}",
                href=f"Text/chapter{i}.xhtml",
                title=chapter.title,
                body=self._chapter_body(i, chapter.title, chapter.content),
            ))
        return pages

    def _title_body(self, book: GeneratedBook, author: str) -> str:
        subtitle = f"<h2>{html.escape(book.subtitle)}</h2>" if book.subtitle else ""
        return f'''<div class="title-page">
<h1>{html.escape(book.title)}</h1>
{subtitle}
<h3>By {html.escape(author)}</h3>
<p class="publisher">{html.escape(self.publisher)}</p>
</div>'''

    def _toc_body(self, book: GeneratedBook) -> str:
        links = "\n".join(
            f'<p><a href="chapter{i}.xhtml">Chapter {i}: {html.escape(ch.title)}</a></p>'
            for i, ch in enumerate(book.chapters, start=1)
        )
        return f"<h1>Table of Contents</h1>\n{links}"

    def _chapter_body(self, number: int, title: str, content: str) -> str:
        try:
            body_html = markdown.markdown(
                escape_raw_html(strip_title_heading(content, title)),
                extensions=MARKDOWN_EXTENSIONS,
                output_format="xhtml",
            )
        except Exception as e:
            raise ConversionError(f"Chapter {number} could not be rendered: {e}")
        return f'''<div class="chapter-head">
<p class="chapter-number">Chapter {number}</p>
<h1>{html.escape(title)}</h1>
</div>
{body_html}'''

    def _generate_container(self) -> str:
        """Generate META-INF/container.xml."""
        return '''<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="OEBPS/content.opf" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>'''

    def _generate_opf(
        self,
        pages: List[EpubPage],
        meta: EpubMetadata,
        cover: Optional[CoverImage],
        cover_href: Optional[str],
    ) -> str:
        """Generate OEBPS/content.opf. Spine follows manifest order."""
        items = [
            '<item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>',
            '<item id="style" href="Styles/style.css" media-type="text/css"/>',
        ]
        spine = []
        for page in pages:
            items.append(f'<item id="{page.item_id}" href="{page.href}" media-type="application/xhtml+xml"/>')
            spine.append(f'<itemref idref="{page.item_id}"/>')

        cover_meta = ""
        if cover is not None:
            items.append(f'<item id="cover-image" href="{cover_href}" media-type="{cover.mime_type}"/>')
            cover_meta = '<meta name="cover" content="cover-image"/>'

        description = ""
        if meta.description:
            description = f"<dc:description>{html.escape(meta.description)}</dc:description>"

        return f'''<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" unique-identifier="BookId" version="2.0">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
    <dc:title>{html.escape(meta.title)}</dc:title>
    <dc:creator opf:role="aut">{html.escape(meta.author)}</dc:creator>
    <dc:language>{html.escape(meta.language)}</dc:language>
    <dc:identifier id="BookId" opf:scheme="UUID">{html.escape(meta.identifier)}</dc:identifier>
    <dc:publisher>{html.escape(meta.publisher)}</dc:publisher>
    <dc:date>{meta.date}</dc:date>
    {description}
    {cover_meta}
  </metadata>
  <manifest>
    {chr(10).join(items)}
  </manifest>
  <spine toc="ncx">
    {chr(10).join(spine)}
  </spine>
</package>'''

    def _generate_ncx(self, pages: List[EpubPage], meta: EpubMetadata) -> str:
        """Generate OEBPS/toc.ncx (EPUB2 navigation)."""
        nav_points = []
        for order, page in enumerate(pages, start=1):
            label = "Title Page" if order == 1 else page.title
            nav_points.append(f'''
    <navPoint id="navPoint-{order}" playOrder="{order}">
      <navLabel><text>{html.escape(label)}</text></navLabel>
      <content src="{page.href}"/>
    </navPoint>''')

        return f'''<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <head>
    <meta name="dtb:uid" content="{html.escape(meta.identifier)}"/>
    <meta name="dtb:depth" content="1"/>
    <meta name="dtb:totalPageCount" content="0"/>
    <meta name="dtb:maxPageNumber" content="0"/>
  </head>
  <docTitle><text>{html.escape(meta.title)}</text></docTitle>
  <navMap>
    {''.join(nav_points)}
  </navMap>
</ncx>'''

    def _generate_page_xhtml(self, page: EpubPage) -> str:
        """Generate a content page. Pages live in Text/, so the stylesheet is ../Styles/."""
        return f'''<?xml version="1.0" encoding="utf-8"?>
{XHTML_DOCTYPE}
<html xmlns="http://www.w3.org/1999/xhtml" xml:lang="{self.language}">
<head>
  <title>{html.escape(page.title)}</title>
  <link rel="stylesheet" type="text/css" href="../Styles/style.css"/>
</head>
<body>
{page.body}
</body>
</html>'''

    def _generate_css(self) -> str:
        """Generate stylesheet."""
        return '''
body {
  font-family: "Times New Roman", serif;
  font-size: 1em;
  line-height: 1.6;
  margin: 1em;
}

h1, h2, h3 {
  color: #333;
  text-align: center;
  margin-top: 1.5em;
  margin-bottom: 0.5em;
}

p {
  margin-bottom: 1em;
  text-align: justify;
}

ul, ol {
  margin: 1em 0;
  padding-left: 2em;
}

.title-page {
  text-align: center;
  margin-top: 30%;
}

.publisher {
  text-align: center;
  color: #888;
}

.chapter-head {
  text-align: center;
  margin-bottom: 2em;
}

.chapter-number {
  text-align: center;
  text-transform: uppercase;
  font-size: 0.8em;
  color: #666;
}
'''
