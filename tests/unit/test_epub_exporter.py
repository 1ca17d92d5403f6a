"""
Unit tests for core/export/epub_exporter.py
"""
import io
import re
import zipfile

import pytest

from core.ebook_generator.exceptions import ConversionError
from core.ebook_generator.models import BookOutline, ChapterContent, ChapterOutline, CoverImage, GeneratedBook
from core.export.epub_exporter import EpubExporter


def make_book(count=3, title="Urban Gardening"):
    chapters = [
        ChapterContent(f"Chapter {i + 1} Title", f"# Chapter {i + 1} Title\n\nText for **part {i + 1}**.\n\n- a\n- b")
        for i in range(count)
    ]
    outline = BookOutline(
        title=title,
        subtitle="Grow Anywhere",
        description="A practical guide.",
        chapters=[ChapterOutline(c.title) for c in chapters],
    )
    return GeneratedBook(outline=outline, chapters=chapters)


def open_epub(data):
    return zipfile.ZipFile(io.BytesIO(data))


@pytest.fixture
def epub():
    return open_epub(EpubExporter().export(make_book(), "Jordan Lee"))


class TestPackageStructure:

    def test_mimetype_first_and_stored(self, epub):
        first = epub.infolist()[0]
        assert first.filename == "mimetype"
        assert first.compress_type == zipfile.ZIP_STORED
        assert epub.read("mimetype") == b"application/epub+zip"

    def test_required_files(self, epub):
        names = epub.namelist()
        for name in (
            "META-INF/container.xml",
            "OEBPS/content.opf",
            "OEBPS/toc.ncx",
            "OEBPS/Styles/style.css",
            "OEBPS/Text/title.xhtml",
            "OEBPS/Text/toc.xhtml",
            "OEBPS/Text/chapter1.xhtml",
            "OEBPS/Text/chapter3.xhtml",
        ):
            assert name in names

    def test_manifest_has_one_page_per_chapter_plus_front_matter(self, epub):
        opf = epub.read("OEBPS/content.opf").decode()
        xhtml_items = re.findall(r'<item id="([^"]+)" href="([^"]+)" media-type="application/xhtml\+xml"', opf)
        assert len(xhtml_items) == 5
        assert [href for _, href in xhtml_items] == [
            "Text/title.xhtml",
            "Text/toc.xhtml",
            "Text/chapter1.xhtml",
            "Text/chapter2.xhtml",
            "Text/chapter3.xhtml",
        ]

    def test_spine_follows_manifest_order(self, epub):
        opf = epub.read("OEBPS/content.opf").decode()
        manifest_ids = re.findall(r'<item id="(item\d+)"', opf)
        spine_ids = re.findall(r'<itemref idref="([^"]+)"', opf)
        assert spine_ids == manifest_ids

    def test_ncx_play_order(self, epub):
        ncx = epub.read("OEBPS/toc.ncx").decode()
        orders = [int(n) for n in re.findall(r'playOrder="(\d+)"', ncx)]
        assert orders == [1, 2, 3, 4, 5]
        assert "<text>Title Page</text>" in ncx
        assert "<text>Chapter 2 Title</text>" in ncx

    def test_pages_link_stylesheet(self, epub):
        page = epub.read("OEBPS/Text/chapter1.xhtml").decode()
        assert 'href="../Styles/style.css"' in page


class TestContent:

    def test_chapter_markdown_rendered(self, epub):
        page = epub.read("OEBPS/Text/chapter2.xhtml").decode()
        assert "<strong>part 2</strong>" in page
        assert "<li>a</li>" in page
        # The duplicate '# Title' line is not rendered twice
        assert page.count("Chapter 2 Title</h1>") == 1

    def test_metadata(self, epub):
        opf = epub.read("OEBPS/content.opf").decode()
        assert "<dc:title>Urban Gardening</dc:title>" in opf
        assert "Jordan Lee</dc:creator>" in opf
        assert "<dc:language>en</dc:language>" in opf
        assert "<dc:description>A practical guide.</dc:description>" in opf

    def test_special_characters_escaped(self):
        data = EpubExporter().export(make_book(title="Salt & <Pepper>"), "O'Brien & Co")
        with open_epub(data) as epub:
            opf = epub.read("OEBPS/content.opf").decode()
            title_page = epub.read("OEBPS/Text/title.xhtml").decode()
        assert "<dc:title>Salt &amp; &lt;Pepper&gt;</dc:title>" in opf
        assert "<h1>Salt &amp; &lt;Pepper&gt;</h1>" in title_page
        assert "O&#x27;Brien &amp; Co" in title_page

    def test_raw_html_in_chapter_is_escaped(self):
        book = make_book(1)
        book.chapters[0].content = "Text <script>alert(1)</script> and <br> here."
        data = EpubExporter().export(book, "A")
        with open_epub(data) as epub:
            page = epub.read("OEBPS/Text/chapter1.xhtml").decode()
        assert "<script>" not in page
        assert "&lt;script" in page
        assert "&lt;br" in page

    def test_language_and_publisher(self):
        data = EpubExporter(language="vi", publisher="Acme Press").export(make_book(1), "A")
        with open_epub(data) as epub:
            opf = epub.read("OEBPS/content.opf").decode()
            page = epub.read("OEBPS/Text/chapter1.xhtml").decode()
        assert "<dc:language>vi</dc:language>" in opf
        assert "<dc:publisher>Acme Press</dc:publisher>" in opf
        assert 'xml:lang="vi"' in page


class TestCover:

    def test_cover_in_manifest(self):
        cover = CoverImage(data=b"jpegdata", mime_type="image/jpeg")
        with open_epub(EpubExporter().export(make_book(), "A", cover=cover)) as epub:
            opf = epub.read("OEBPS/content.opf").decode()
            assert epub.read("OEBPS/Images/cover.jpg") == b"jpegdata"
        assert '<item id="cover-image" href="Images/cover.jpg" media-type="image/jpeg"/>' in opf
        assert '<meta name="cover" content="cover-image"/>' in opf

    def test_unsupported_cover_type(self):
        cover = CoverImage(data=b"x", mime_type="image/tiff")
        with pytest.raises(ConversionError):
            EpubExporter().export(make_book(), "A", cover=cover)


class TestExportFile:

    def test_writes_output_path(self, tmp_path):
        out = tmp_path / "books" / "garden.epub"
        data = EpubExporter().export(make_book(), "A", output_path=out)
        assert out.read_bytes() == data

    def test_invalid_book_writes_nothing(self, tmp_path):
        book = GeneratedBook(outline=BookOutline(title="Empty"), chapters=[])
        out = tmp_path / "empty.epub"
        with pytest.raises(ConversionError):
            EpubExporter().export(book, "A", output_path=out)
        assert not out.exists()
