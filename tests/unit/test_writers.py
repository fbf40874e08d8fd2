"""Unit tests for solrkeeper.io.writers.

Covers:
- JsonWriter: valid JSON envelope, metadata header, version field stripped
- CsvWriter: header from first document, schema drift drops extra columns
- XmlWriter: metadata block, one <doc> per document, entity escaping
- make_writer: format selection and UnsupportedFormat
- finalize() is idempotent and always yields a complete artifact
"""

from __future__ import annotations

import csv
import io
import json
import xml.etree.ElementTree as ET

import pytest

from solrkeeper.errors import UnsupportedFormat
from solrkeeper.io.writers import (
    CsvWriter,
    JsonWriter,
    WriterContext,
    XmlWriter,
    make_writer,
    render_xml_doc,
    xml_name,
)
from solrkeeper.models.document import Document


def _context(fmt: str, excluded=("_version_",)) -> WriterContext:
    return WriterContext(
        engine="local",
        query="*:*",
        format=fmt,
        batch_size=3,
        fields_excluded=list(excluded),
        timestamp="2024-01-15T12:00:00Z",
    )


def _write_all(writer, raw_docs):
    writer.write_metadata_header()
    for raw in raw_docs:
        writer.write_document(Document.from_raw(raw))
    writer.finalize()


# ── JSON ─────────────────────────────────────────────────────────────────────────

class TestJsonWriter:
    def test_output_parses_and_counts_match(self, sample_docs):
        sink = io.StringIO()
        writer = JsonWriter(sink, _context("json"))
        _write_all(writer, sample_docs)

        data = json.loads(sink.getvalue())
        assert len(data["response"]["docs"]) == len(sample_docs) == writer.documents_written

    def test_metadata_header(self):
        sink = io.StringIO()
        _write_all(JsonWriter(sink, _context("json")), [])

        meta = json.loads(sink.getvalue())["backup_metadata"]
        assert meta == {
            "engine": "local",
            "timestamp": "2024-01-15T12:00:00Z",
            "query": "*:*",
            "format": "json",
            "batch_size": 3,
            "fields_excluded": ["_version_"],
        }

    def test_empty_export_is_valid(self):
        sink = io.StringIO()
        _write_all(JsonWriter(sink, _context("json")), [])
        assert json.loads(sink.getvalue())["response"]["docs"] == []

    def test_version_field_removed(self, sample_docs):
        sink = io.StringIO()
        _write_all(JsonWriter(sink, _context("json")), sample_docs)
        docs = json.loads(sink.getvalue())["response"]["docs"]
        assert all("_version_" not in doc for doc in docs)
        assert docs[0] == {"id": "1", "title": "Dune", "tags": ["scifi", "classic"]}

    def test_version_field_kept_without_exclusion(self, sample_docs):
        sink = io.StringIO()
        _write_all(JsonWriter(sink, _context("json", excluded=())), sample_docs)
        docs = json.loads(sink.getvalue())["response"]["docs"]
        assert docs[0]["_version_"] == 101

    def test_documents_are_compact(self):
        sink = io.StringIO()
        _write_all(JsonWriter(sink, _context("json")), [{"id": "1", "t": "x"}])
        assert '{"id":"1","t":"x"}' in sink.getvalue()

    def test_finalize_twice_writes_once(self):
        sink = io.StringIO()
        writer = JsonWriter(sink, _context("json"))
        writer.finalize()
        writer.finalize()
        assert sink.getvalue().count("]}}") == 1

    def test_unfinalized_output_is_truncated(self):
        """Without finalize() the envelope stays open (partial run on disk)."""
        sink = io.StringIO()
        writer = JsonWriter(sink, _context("json"))
        writer.write_metadata_header()
        writer.write_document(Document.from_raw({"id": "1"}))
        with pytest.raises(json.JSONDecodeError):
            json.loads(sink.getvalue())


# ── CSV ──────────────────────────────────────────────────────────────────────────

class TestCsvWriter:
    def _rows(self, sink):
        return list(csv.reader(io.StringIO(sink.getvalue())))

    def test_header_and_row_count(self, sample_docs):
        sink = io.StringIO()
        writer = CsvWriter(sink, _context("csv"))
        _write_all(writer, sample_docs)

        rows = self._rows(sink)
        assert rows[0] == ["id", "title", "tags"]
        assert len(rows) - 1 == len(sample_docs) == writer.documents_written

    def test_values_flattened(self):
        sink = io.StringIO()
        _write_all(
            CsvWriter(sink, _context("csv")),
            [{"id": "1", "tags": ["a", "b"], "author": {"name": "O. Butler"}}],
        )
        rows = self._rows(sink)
        assert rows == [["id", "tags", "author.name"], ["1", "a, b", "O. Butler"]]

    def test_schema_drift_drops_extra_columns(self):
        """Header comes from the first document only; later extra fields are dropped."""
        sink = io.StringIO()
        writer = CsvWriter(sink, _context("csv"))
        _write_all(writer, [{"id": "1", "a": "x"}, {"id": "2", "a": "y", "extra": "lost"}])

        rows = self._rows(sink)
        assert rows[0] == ["id", "a"]
        assert rows[2] == ["2", "y"]
        assert all(len(row) == len(rows[0]) for row in rows)
        assert writer.dropped_columns == {"extra"}

    def test_missing_columns_left_empty(self):
        sink = io.StringIO()
        _write_all(CsvWriter(sink, _context("csv")), [{"id": "1", "a": "x"}, {"id": "2"}])
        assert self._rows(sink)[2] == ["2", ""]

    def test_column_order_follows_header_not_later_docs(self):
        sink = io.StringIO()
        _write_all(CsvWriter(sink, _context("csv")), [{"id": "1", "a": "x"}, {"a": "y", "id": "2"}])
        assert self._rows(sink)[2] == ["2", "y"]

    def test_values_with_commas_and_quotes_are_quoted(self):
        sink = io.StringIO()
        _write_all(CsvWriter(sink, _context("csv")), [{"id": "1", "title": 'He said "hi", twice'}])
        assert self._rows(sink)[1] == ["1", 'He said "hi", twice']

    def test_version_field_not_a_column(self, sample_docs):
        sink = io.StringIO()
        _write_all(CsvWriter(sink, _context("csv")), sample_docs)
        assert "_version_" not in self._rows(sink)[0]

    def test_empty_export_writes_nothing(self):
        sink = io.StringIO()
        _write_all(CsvWriter(sink, _context("csv")), [])
        assert sink.getvalue() == ""


# ── XML ──────────────────────────────────────────────────────────────────────────

class TestXmlWriter:
    def test_scenario_doc_rendering(self):
        doc = Document.from_raw({"id": "1", "tag": ["a", "b"]})
        assert render_xml_doc(doc) == "<doc><id>1</id><tag>a, b</tag></doc>"

    def test_document_is_well_formed(self, sample_docs):
        sink = io.StringIO()
        writer = XmlWriter(sink, _context("xml"))
        _write_all(writer, sample_docs)

        root = ET.fromstring(sink.getvalue().encode("utf-8"))
        assert root.tag == "backup"
        assert root.find("metadata/engine").text == "local"
        assert root.find("metadata/batch_size").text == "3"
        docs = root.findall("documents/doc")
        assert len(docs) == len(sample_docs) == writer.documents_written

    def test_entities_escaped(self, sample_docs):
        sink = io.StringIO()
        _write_all(XmlWriter(sink, _context("xml")), sample_docs)

        text = sink.getvalue()
        assert "<title>Ulysses &amp; Co &lt;draft&gt;</title>" in text
        root = ET.fromstring(text.encode("utf-8"))
        assert root.findall("documents/doc")[2].find("title").text == "Ulysses & Co <draft>"

    def test_quotes_escaped(self):
        doc = Document.from_raw({"q": "it's \"quoted\""})
        assert render_xml_doc(doc) == "<doc><q>it&apos;s &quot;quoted&quot;</q></doc>"

    def test_query_in_metadata_escaped(self):
        sink = io.StringIO()
        context = WriterContext(engine="e", query="a:1 && b:<2>", format="xml", batch_size=1)
        _write_all(XmlWriter(sink, context), [])
        root = ET.fromstring(sink.getvalue().encode("utf-8"))
        assert root.find("metadata/query").text == "a:1 && b:<2>"

    def test_nested_document_becomes_child_elements(self):
        doc = Document.from_raw({"author": {"name": "Morrison"}})
        assert render_xml_doc(doc) == "<doc><author><name>Morrison</name></author></doc>"

    def test_version_field_removed(self, sample_docs):
        sink = io.StringIO()
        _write_all(XmlWriter(sink, _context("xml")), sample_docs)
        assert "_version_" not in sink.getvalue()

    def test_control_characters_dropped(self):
        doc = Document.from_raw({"t": "bell\x07here"})
        assert render_xml_doc(doc) == "<doc><t>bellhere</t></doc>"

    def test_invalid_field_names_sanitized(self):
        assert xml_name("title") == "title"
        assert xml_name("1st") == "_1st"
        assert xml_name("has space") == "has_space"

    def test_empty_export_is_well_formed(self):
        sink = io.StringIO()
        _write_all(XmlWriter(sink, _context("xml")), [])
        root = ET.fromstring(sink.getvalue().encode("utf-8"))
        assert root.findall("documents/doc") == []


# ── make_writer ──────────────────────────────────────────────────────────────────

class TestMakeWriter:
    @pytest.mark.parametrize(
        "fmt,cls", [("json", JsonWriter), ("csv", CsvWriter), ("xml", XmlWriter), ("XML", XmlWriter)]
    )
    def test_selects_writer(self, fmt, cls):
        assert isinstance(make_writer(fmt, io.StringIO(), _context(fmt.lower())), cls)

    def test_unknown_format_raises(self):
        with pytest.raises(UnsupportedFormat, match="parquet"):
            make_writer("parquet", io.StringIO(), _context("parquet"))
