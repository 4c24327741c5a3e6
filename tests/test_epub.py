"""Tests for the EPUB front end.

WHY: EPUB input goes through two conversions (XHTML → markdown →
tokens) and a container format with its own failure modes. Each step
can lose text, mangle chapter titles, or let a malformed book through.

HOW: Small books are written to tmp_path with the make_epub fixture (two
chapters, NCX + nav table of contents), then parsed and exported. The
XHTML → markdown conversion is checked on literal snippets.
"""

import pytest

from rsvp_reader.core.errors import DocumentIOError, DocumentParseError
from rsvp_reader.core.ir import StyleKind
from rsvp_reader.parsers import parser_for
from rsvp_reader.parsers.epub import (
    EpubParser,
    _chapter_title,
    sanitize_filename,
    xhtml_to_markdown,
)


CHAPTERS = [
    ("Chapter One", "chap_01.xhtml", "<p>Hello <b>world</b>.</p><p>More text follows.</p>"),
    ("Chapter Two", "chap_02.xhtml", "<p>Second chapter <em>body</em> here.</p>"),
]


@pytest.fixture
def book_path(make_epub):
    return make_epub("book.epub", CHAPTERS)


class TestParseFile:
    def test_chapters_become_sections(self, book_path):
        document = EpubParser().parse_file(book_path)
        assert [s.title for s in document.sections] == ["Chapter One", "Chapter Two"]
        assert document.sections[-1].token_end == len(document.tokens)

    def test_inline_styles_survive(self, book_path):
        document = EpubParser().parse_file(book_path)
        words = {t.word: t for t in document.tokens}
        assert words["world"].style.kind is StyleKind.BOLD
        assert words["body"].style.kind is StyleKind.ITALIC

    def test_navigation_document_skipped(self, book_path):
        markdown = EpubParser().book_markdown(book_path)
        assert markdown.count("# Chapter") == 2
        assert "Hello **world**." in markdown

    def test_registry_lookup(self, book_path):
        assert isinstance(parser_for(book_path), EpubParser)

    def test_blank_chapter_skipped(self, make_epub):
        path = make_epub("blank.epub", [
            ("Empty", "empty.xhtml", "<p>   </p>"),
            ("Real", "real.xhtml", "<p>Real words.</p>"),
        ])
        document = EpubParser().parse_file(path)
        assert [s.title for s in document.sections] == ["Real"]


class TestFailures:
    def test_parser_error_names_chapter(self, make_epub):
        path = make_epub("broken.epub", [
            ("Fine", "fine.xhtml", "<p>ok</p>"),
            ("Broken", "broken.xhtml", "<parsererror>bad markup</parsererror><p>text</p>"),
        ])
        with pytest.raises(DocumentParseError, match="Broken"):
            EpubParser().parse_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(DocumentIOError):
            EpubParser().parse_file(tmp_path / "missing.epub")

    def test_not_a_zip(self, tmp_path):
        path = tmp_path / "fake.epub"
        path.write_text("not an epub", encoding="utf-8")
        with pytest.raises(DocumentParseError):
            EpubParser().parse_file(path)

    def test_parse_str_unsupported(self):
        with pytest.raises(DocumentParseError):
            EpubParser().parse_str("<p>text</p>")


class TestExportChapters:
    def test_writes_numbered_files(self, book_path, tmp_path):
        out_dir, count = EpubParser().export_chapters(book_path, tmp_path / "out")

        assert count == 2
        assert out_dir == tmp_path / "out" / "Test Book"
        names = sorted(p.name for p in out_dir.iterdir())
        assert names == ["01-Chapter One.md", "02-Chapter Two.md"]
        content = (out_dir / "01-Chapter One.md").read_text(encoding="utf-8")
        assert content == "Hello **world**.\n\nMore text follows.\n"

    def test_unsafe_title_characters_replaced(self, make_epub, tmp_path):
        path = make_epub("odd.epub", [("???", "odd.xhtml", "<p>words</p>")])
        out_dir, count = EpubParser().export_chapters(path, tmp_path)
        assert count == 1
        assert [p.name for p in out_dir.iterdir()] == ["01-___.md"]


class TestSanitizeFilename:
    @pytest.mark.parametrize("name, expected", [
        ("Book: A Story", "Book_ A Story"),
        ("Test/File\\Name", "Test_File_Name"),
        ("plain-name_1", "plain-name_1"),
        ("  padded  ", "padded"),
    ])
    def test_sanitize(self, name, expected):
        assert sanitize_filename(name) == expected


class TestChapterTitle:
    TOC = [("chap11.xhtml", "Eleven"), ("Text/1.xhtml#start", "One")]

    @pytest.mark.parametrize("item_name, expected", [
        ("chap11.xhtml", "Eleven"),
        ("OEBPS/chap11.xhtml", "Eleven"),
        ("1.xhtml", "One"),
        ("Text/1.xhtml", "One"),
        ("11.xhtml", None),
        ("hap11.xhtml", None),
    ])
    def test_matches_whole_path_segments(self, item_name, expected):
        assert _chapter_title(item_name, self.TOC) == expected

    def test_suffix_of_longer_name_does_not_match(self):
        assert _chapter_title("1.xhtml", [("chap11.xhtml", "Eleven")]) is None


class TestXhtmlToMarkdown:
    @pytest.mark.parametrize("xhtml, expected", [
        ("<p>Hello <strong>world</strong>!</p>", "Hello **world**!"),
        ("<p>a <em>b</em> c</p>", "a *b* c"),
        ("<h2>Part <i>two</i></h2>", "## Part *two*"),
        ("<p>see <a href='https://x.org'>this</a></p>", "see [this](https://x.org)"),
        ("<p>run <code>ls -la</code></p>", "run `ls -la`"),
        ("<p>x<!-- hidden --> y</p>", "x y"),
        ("<p>line<br/>break</p>", "line break"),
        ("<blockquote><p>quoted</p></blockquote>", "> quoted"),
        ("<p>pic <img src='a.png'/> gone</p>", "pic gone"),
    ])
    def test_inline_and_blocks(self, xhtml, expected):
        assert xhtml_to_markdown(xhtml) == expected

    def test_paragraphs_separated(self):
        assert xhtml_to_markdown("<p>one</p><p>two</p>") == "one\n\ntwo"

    def test_nested_list(self):
        xhtml = "<ul><li>one</li><li>two<ul><li>nested</li></ul></li></ul>"
        assert xhtml_to_markdown(xhtml) == "- one\n- two\n   - nested"

    def test_ordered_list(self):
        assert xhtml_to_markdown("<ol><li>a</li><li>b</li></ol>") == "1. a\n2. b"

    def test_table(self):
        xhtml = (
            "<table><tr><th>A</th><th>B</th></tr>"
            "<tr><td>1</td><td>2</td></tr></table>"
        )
        assert xhtml_to_markdown(xhtml) == "| A | B |\n|---|---|\n| 1 | 2 |"

    def test_pre_becomes_fence(self):
        assert xhtml_to_markdown("<pre>x = 1\n</pre>") == "```\nx = 1\n```"

    def test_script_and_style_dropped(self):
        xhtml = "<html><head><style>p {}</style></head><body><script>x()</script><p>kept</p></body></html>"
        assert xhtml_to_markdown(xhtml) == "kept"
