"""
Unit tests for core/export/html_exporter.py (print view)
"""
import pytest

from core.ebook_generator.exceptions import ConversionError
from core.ebook_generator.models import BookOutline, ChapterContent, ChapterOutline, CoverImage, GeneratedBook
from core.export.html_exporter import HtmlExporter


def make_book(back_cover_copy="Everything you need to **grow**."):
    chapters = [
        ChapterContent("Soil", "# Soil\n\nHealthy soil is alive."),
        ChapterContent("Light & Shade", "Plants need _light_."),
    ]
    outline = BookOutline(
        title="Urban Gardening",
        subtitle="Grow Anywhere",
        back_cover_copy=back_cover_copy,
        chapters=[ChapterOutline(c.title) for c in chapters],
    )
    return GeneratedBook(outline=outline, chapters=chapters)


class TestHtmlExporter:

    def test_sections_in_reading_order(self):
        page = HtmlExporter().render(make_book(), "Jordan Lee")

        positions = [
            page.index('class="page page-break title-page"'),
            page.index('class="page page-break copyright"'),
            page.index('class="page page-break toc"'),
            page.index('id="chapter-1"'),
            page.index('id="chapter-2"'),
            page.index('class="page back-cover"'),
        ]
        assert positions == sorted(positions)

    def test_title_page(self):
        page = HtmlExporter(publisher="Acme Press").render(make_book(), "Jordan Lee")
        assert "<h1>Urban Gardening</h1>" in page
        assert '<p class="author">Jordan Lee</p>' in page
        assert "Printed by Acme Press" in page
        assert "All rights reserved." in page

    def test_toc_entries(self):
        page = HtmlExporter().render(make_book(), "A")
        assert '<span class="ch">CH 1</span>Soil' in page
        assert '<span class="ch">CH 2</span>Light &amp; Shade' in page

    def test_chapter_body_rendered_once(self):
        page = HtmlExporter().render(make_book(), "A")
        assert "<em>light</em>" in page
        assert page.count("<h2>Soil</h2>") == 1
        assert "<h1>Soil</h1>" not in page

    def test_back_cover_copy(self):
        page = HtmlExporter().render(make_book(), "A")
        assert "<strong>grow</strong>" in page

    def test_back_cover_fallback(self):
        page = HtmlExporter().render(make_book(back_cover_copy=""), "A")
        assert "Thank you for reading." in page

    def test_cover_embedded_as_data_url(self):
        cover = CoverImage(data=b"abc", mime_type="image/png")
        page = HtmlExporter().render(make_book(), "A", cover=cover)
        assert 'src="data:image/png;base64,YWJj"' in page

    def test_print_css(self):
        page = HtmlExporter().render(make_book(), "A")
        assert "page-break-after: always" in page
        assert "@page" in page

    def test_export_bytes(self, tmp_path):
        out = tmp_path / "print.html"
        data = HtmlExporter().export(make_book(), "A", output_path=out)
        assert data.startswith(b"<!DOCTYPE html>")
        assert out.read_bytes() == data

    def test_invalid_book(self):
        with pytest.raises(ConversionError):
            HtmlExporter().render(GeneratedBook(outline=BookOutline(title="T")), "A")

    def test_raw_html_in_model_output_is_escaped(self):
        book = make_book(back_cover_copy='<img src=x onerror="alert(1)"> Buy it.')
        book.chapters[0].content = "# Soil\n\n<script>alert(1)</script>\n\n> Water early."
        page = HtmlExporter().render(book, "A")

        assert "<script>alert" not in page
        assert "<img src=x" not in page
        assert "&lt;script" in page
        assert "&lt;img src=x" in page
        assert "<blockquote>" in page
