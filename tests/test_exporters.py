"""Tests for the exporters (timed JSON, plain text) and their registry.

WHY: Exports are how tokenizer and timing behaviour get inspected
outside the terminal. A JSON dump that silently drifts from the schema,
or a text export that drops words, defeats that purpose.

HOW: Export the shared sample documents and check the parsed JSON and
the plain text line by line. The JSON schema is exercised directly with
jsonschema for the failure cases.
"""

import json

import jsonschema
import pytest

from rsvp_reader.core.stream import build_timed_stream
from rsvp_reader.exporters import EXPORTERS
from rsvp_reader.exporters.base import BaseExporter
from rsvp_reader.exporters.plain_text import PlainTextExporter, runs
from rsvp_reader.exporters.timed_json import TimedJsonExporter, _get_schema, build_document


def _export(exporter, document, wpm=300):
    stream = build_timed_stream(document.tokens, wpm)
    outputs = exporter.export(stream, document.sections, "sample.md", wpm)
    assert len(outputs) == 1
    return outputs[0]


class TestRegistry:
    def test_keys(self):
        assert set(EXPORTERS) == {"timed_json", "plain_text"}

    @pytest.mark.parametrize("key", ["timed_json", "plain_text"])
    def test_values_are_exporter_classes(self, key):
        exporter = EXPORTERS[key]()
        assert isinstance(exporter, BaseExporter)
        assert exporter.name


class TestTimedJson:
    def test_output_metadata(self, sample_document):
        output = _export(TimedJsonExporter(), sample_document)
        assert output.suffix == "-timed.json"
        assert output.media_type == "application/json"

    def test_document_fields(self, sample_document):
        data = json.loads(_export(TimedJsonExporter(), sample_document).content)

        assert data["source"] == "sample.md"
        assert data["wpm"] == 300
        assert len(data["tokens"]) == len(sample_document.tokens)
        assert [t["index"] for t in data["tokens"]] == list(range(len(data["tokens"])))
        assert data["total_duration_ms"] == sum(t["duration_ms"] for t in data["tokens"])
        assert [s["title"] for s in data["sections"]] == ["Getting Started", "Lists"]
        assert data["sections"][-1]["token_end"] == len(data["tokens"])

    def test_token_fields(self, sample_document):
        data = json.loads(_export(TimedJsonExporter(), sample_document).content)
        by_word = {t["word"]: t for t in data["tokens"]}

        assert by_word["Getting"]["block"] == {"kind": "heading", "level": 1}
        assert by_word["Getting"]["parent"] is None
        assert by_word["bold"]["style"] == "bold"
        assert by_word["link"]["url"] == "https://example.com"
        assert "url" not in by_word["bold"]
        assert by_word["This"]["block"] == {"kind": "paragraph"}
        assert by_word["This"]["hint"]["is_block_start"] is True
        assert by_word["Value"]["hint"]["table_column"] == 1
        assert by_word["Value"]["block"] == {"kind": "table_cell", "level": 1}

    def test_callout_block(self, parse_md):
        document = parse_md("> [!warning] mind the gap")
        data = json.loads(_export(TimedJsonExporter(), document).content)
        assert data["tokens"][0]["block"] == {"kind": "callout", "callout": "warning"}

    def test_wpm_changes_durations(self, sample_document):
        slow = json.loads(_export(TimedJsonExporter(), sample_document, 150).content)
        fast = json.loads(_export(TimedJsonExporter(), sample_document, 600).content)
        assert slow["total_duration_ms"] > fast["total_duration_ms"]

    def test_empty_document_valid(self, parse_md):
        data = json.loads(_export(TimedJsonExporter(), parse_md("")).content)
        assert data["tokens"] == []
        assert data["total_duration_ms"] == 0

    def test_schema_rejects_short_duration(self, sample_document):
        stream = build_timed_stream(sample_document.tokens, 300)
        document = build_document(stream, sample_document.sections, "x.md", 300)
        document["tokens"][0]["duration_ms"] = 10
        with pytest.raises(jsonschema.ValidationError):
            jsonschema.validate(instance=document, schema=_get_schema())

    def test_schema_rejects_unknown_field(self, sample_document):
        stream = build_timed_stream(sample_document.tokens, 300)
        document = build_document(stream, sample_document.sections, "x.md", 300)
        document["extra"] = True
        with pytest.raises(jsonschema.ValidationError):
            jsonschema.validate(instance=document, schema=_get_schema())


class TestPlainText:
    def test_output_metadata(self, sample_document):
        output = _export(PlainTextExporter(), sample_document)
        assert output.suffix == "-reading.txt"
        assert output.media_type == "text/plain"

    def test_sample_document(self, sample_document):
        content = _export(PlainTextExporter(), sample_document).content
        assert content == (
            "# Getting Started\n\n"
            "This is bold and italic text with a link inside.\n\n"
            "## Lists\n\n"
            "- First item\n\n"
            "- Second item with more words\n\n"
            "> A quoted line of text.\n\n"
            "| Name | Value |\n\n"
            "| alpha | one |\n\n"
            "| beta | two |\n"
        )

    def test_hyphen_fragments_rejoined(self, parse_md):
        content = _export(PlainTextExporter(), parse_md("a well-known fact")).content
        assert content == "a well-known fact\n"

    def test_nested_prefixes(self, parse_md):
        document = parse_md("- outer\n  - inner\n\n> > deep\n\n> [!tip] hint here")
        lines = _export(PlainTextExporter(), document).content.split("\n\n")
        assert lines[0] == "- outer"
        assert lines[1] == "  - inner"
        assert lines[2] == "> > deep"
        assert lines[3].rstrip("\n") == "> [!tip] hint here"

    def test_skipped_content_absent(self, parse_md):
        document = parse_md("keep\n\n```\ndrop me\n```\n\n![alt](x.png)")
        assert _export(PlainTextExporter(), document).content == "keep\n"

    def test_empty_document(self, parse_md):
        assert _export(PlainTextExporter(), parse_md("")).content == ""

    def test_runs_follow_line_anchors(self, timed_stream):
        stream = timed_stream("# Head\n\n- one two\n- three")
        assert [[t.token.word for t in run] for run in runs(stream)] == [
            ["Head"], ["one", "two"], ["three"],
        ]

    def test_consecutive_paragraphs_stay_separate(self, parse_md):
        content = _export(PlainTextExporter(), parse_md("a\n\nb")).content
        assert content == "a\n\nb\n"

    def test_long_paragraph_is_one_run(self, timed_stream):
        stream = timed_stream(" ".join(f"w{i}" for i in range(600)))
        assert len(runs(stream)) == 1
