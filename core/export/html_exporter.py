"""
HTML Print View

Renders a generated book as one self-contained HTML document laid out for
printing: cover, copyright, contents, chapters and back cover, each starting
on a new page.
"""

import html
import logging
from pathlib import Path
from typing import Optional

import markdown

from core.ebook_generator.exceptions import ConversionError
from core.ebook_generator.models import CoverImage, GeneratedBook
from core.export.book_data import (
    DEFAULT_PUBLISHER,
    copyright_line,
    escape_raw_html,
    strip_title_heading,
    validate_book,
)

logger = logging.getLogger(__name__)


DISCLAIMER = (
    "The information provided is for educational and entertainment purposes only. "
    "The author and publisher assume no responsibility for errors, omissions, or "
    "contrary interpretation of the subject matter herein."
)

PRINT_CSS = """
@page { size: A4; margin: 2cm; }
body { font-family: Georgia, "Times New Roman", serif; color: #1e293b; margin: 0; }
.page { min-height: 25.7cm; padding: 2cm; box-sizing: border-box; }
.page-break { page-break-after: always; break-after: page; }
.title-page { display: flex; flex-direction: column; justify-content: center; align-items: center; text-align: center; }
.cover { max-width: 300px; margin-bottom: 3em; }
.cover img { width: 100%; }
.title-page h1 { font-size: 3em; margin-bottom: 0.4em; }
.subtitle { font-size: 1.5em; font-style: italic; color: #c2410c; }
.written-by { text-transform: uppercase; letter-spacing: 0.3em; font-size: 0.8em; color: #64748b; margin-top: 3em; }
.author { font-size: 1.8em; font-weight: bold; }
.printed-by { margin-top: 4em; font-size: 0.75em; text-transform: uppercase; letter-spacing: 0.2em; color: #94a3b8; }
.copyright { display: flex; flex-direction: column; justify-content: flex-end; font-size: 0.9em; color: #64748b; }
.toc-entry { border-bottom: 1px dotted #cbd5e1; padding: 0.4em 0; }
.toc-entry .ch { font-family: sans-serif; font-weight: bold; color: #ea580c; margin-right: 0.8em; }
.chapter-head { text-align: center; margin-bottom: 2.5em; }
.chapter-number { text-transform: uppercase; letter-spacing: 0.2em; color: #f97316; font-weight: bold; font-size: 0.85em; }
.chapter-body { text-align: justify; line-height: 1.7; }
.back-cover { background: #020617; color: #cbd5e1; text-align: center; display: flex; flex-direction: column; justify-content: center; align-items: center; -webkit-print-color-adjust: exact; print-color-adjust: exact; }
.back-cover h3 { color: #f97316; font-size: 2em; }
.back-cover .copy { max-width: 28em; text-align: justify; }
@media print { .page { padding: 0; } }
"""


def _md(text: str) -> str:
    return markdown.markdown(escape_raw_html(text), extensions=["extra", "sane_lists"])


class HtmlExporter:
    """Print-ready HTML rendering of a book."""

    def __init__(self, publisher: str = DEFAULT_PUBLISHER):
        self.publisher = publisher

    def render(self, book: GeneratedBook, author: str, cover: Optional[CoverImage] = None) -> str:
        validate_book(book)
        esc = html.escape
        sections = []

        cover_html = ""
        if cover is not None:
            cover_html = f'<div class="cover"><img src="{cover.to_data_url()}" alt="Book Cover"/></div>'
        sections.append(f'''<section class="page page-break title-page">
{cover_html}
<h1>{esc(book.title)}</h1>
<p class="subtitle">{esc(book.subtitle)}</p>
<p class="written-by">Written By</p>
<p class="author">{esc(author)}</p>
<p class="printed-by">Printed by {esc(self.publisher)}</p>
</section>''')

        sections.append(f'''<section class="page page-break copyright">
<p>{esc(copyright_line(author))}</p>
<p>{esc(DISCLAIMER)}</p>
<p>Printed by {esc(self.publisher)}.</p>
</section>''')

        entries = "\n".join(
            f'<div class="toc-entry"><span class="ch">CH {i}</span>{esc(ch.title)}</div>'
            for i, ch in enumerate(book.chapters, start=1)
        )
        sections.append(f'''<section class="page page-break toc">
<h2>Table of Contents</h2>
{entries}
</section>''')

        for i, chapter in enumerate(book.chapters, start=1):
            try:
                body = _md(strip_title_heading(chapter.content, chapter.title))
            except Exception as e:
                raise ConversionError(f"Chapter {i} could not be rendered: {e}")
            sections.append(f'''<article class="page page-break chapter" id="chapter-{i}">
<div class="chapter-head">
<p class="chapter-number">Chapter {i}</p>
<h2>{esc(chapter.title)}</h2>
</div>
<div class="chapter-body">
{body}
</div>
</article>''')

        if book.back_cover_copy:
            back_copy = _md(book.back_cover_copy)
        else:
            back_copy = f"<p>Thank you for reading.</p><p>Published by {esc(self.publisher)}</p>"
        sections.append(f'''<section class="page back-cover">
<h3>{esc(book.title)}</h3>
<div class="copy">
{back_copy}
</div>
<p class="printed-by">{esc(self.publisher)}</p>
</section>''')

        return f'''<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8"/>
<title>{esc(book.title)}</title>
<style>{PRINT_CSS}</style>
</head>
<body>
{chr(10).join(sections)}
</body>
</html>'''

    def export(
        self,
        book: GeneratedBook,
        author: str,
        output_path: Optional[Path] = None,
        cover: Optional[CoverImage] = None,
    ) -> bytes:
        data = self.render(book, author, cover).encode("utf-8")
        if output_path is not None:
            output_path = Path(output_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_bytes(data)
            logger.info(f"HTML print view created: {output_path}")
        return data
