"""Streaming export writers for SolrKeeper.

Three encodings share one interface (FormatWriter):

    write_metadata_header()   once, before any document
    write_document(doc)       once per document, in server order
    finalize()                closes the envelope; idempotent

Every writer holds at most one document (plus, for CSV, the header row) in
memory, so memory use does not grow with the size of the export. Writers
write text to an already-open stream; they never open or close files.
"""

from __future__ import annotations

import csv
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Set, TextIO
from xml.sax.saxutils import escape

from config.defaults import SUPPORTED_FORMATS
from solrkeeper.errors import UnsupportedFormat
from solrkeeper.models.document import Document, ListValue, NestedValue, ScalarValue, Value
from solrkeeper.utils.flatten import flatten_document, join_list, scalar_to_text

logger = logging.getLogger(__name__)

# Quote entities on top of saxutils' default & < >
_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}

# Characters XML 1.0 cannot carry at all, even escaped
_XML_ILLEGAL_CHARS = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")

_XML_NAME_RE = re.compile(r"^[A-Za-z_][\w.\-]*$")


@dataclass(frozen=True)
class WriterContext:
    """Run facts every writer may embed in its header."""

    engine: str
    query: str
    format: str
    batch_size: int
    fields_excluded: List[str] = field(default_factory=list)
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
    )

    def header_fields(self) -> Dict[str, Any]:
        return {
            "engine": self.engine,
            "timestamp": self.timestamp,
            "query": self.query,
            "format": self.format,
            "batch_size": self.batch_size,
        }


class FormatWriter(Protocol):
    """Capability shared by every export encoding."""

    documents_written: int

    def write_metadata_header(self) -> None:
        ...

    def write_document(self, doc: Document) -> None:
        ...

    def finalize(self) -> None:
        ...


class JsonWriter:
    """Streams ``{"backup_metadata": {...}, "response": {"docs": [...]}}``."""

    def __init__(self, sink: TextIO, context: WriterContext) -> None:
        self.sink = sink
        self.context = context
        self.documents_written = 0
        self._header_written = False
        self._finalized = False

    def write_metadata_header(self) -> None:
        if self._header_written:
            return
        metadata = dict(self.context.header_fields())
        metadata["fields_excluded"] = list(self.context.fields_excluded)
        self.sink.write('{"backup_metadata": ')
        self.sink.write(json.dumps(metadata, ensure_ascii=False, indent=2))
        self.sink.write(', "response": {"docs": [')
        self._header_written = True

    def write_document(self, doc: Document) -> None:
        self.write_metadata_header()
        doc = doc.without(self.context.fields_excluded)
        if self.documents_written:
            self.sink.write(",")
        self.sink.write(json.dumps(doc.to_raw(), ensure_ascii=False, separators=(",", ":")))
        self.documents_written += 1

    def finalize(self) -> None:
        if self._finalized:
            return
        self.write_metadata_header()
        self.sink.write("]}}\n")
        self.sink.flush()
        self._finalized = True


class CsvWriter:
    """Streams flattened documents as CSV rows.

    The header row is the flattened key list of the *first* document. Later
    documents are projected onto that header: missing columns are empty,
    columns the first document lacked are dropped.
    """

    def __init__(self, sink: TextIO, context: WriterContext) -> None:
        self.sink = sink
        self.context = context
        self.documents_written = 0
        self.header: Optional[List[str]] = None
        self.dropped_columns: Set[str] = set()
        self._writer = csv.writer(sink)
        self._finalized = False

    def write_metadata_header(self) -> None:
        # CSV carries no metadata block; the run record lives in the metadata file
        return

    def write_document(self, doc: Document) -> None:
        flat = flatten_document(doc.without(self.context.fields_excluded))
        if self.header is None:
            self.header = list(flat.keys())
            self._writer.writerow(self.header)

        extra = [key for key in flat if key not in self.dropped_columns and key not in self.header]
        for key in extra:
            logger.warning("CSV column %r is not in the header row; values dropped", key)
            self.dropped_columns.add(key)

        self._writer.writerow([scalar_to_text(flat.get(key)) for key in self.header])
        self.documents_written += 1

    def finalize(self) -> None:
        if self._finalized:
            return
        self.sink.flush()
        self._finalized = True


def xml_text(text: str) -> str:
    """Entity-escape text for an XML text node."""
    return escape(_XML_ILLEGAL_CHARS.sub("", text), _XML_ENTITIES)


def xml_name(name: str) -> str:
    """Return name if it is a usable element name, else a sanitized form."""
    if _XML_NAME_RE.match(name):
        return name
    cleaned = re.sub(r"[^\w.\-]", "_", name)
    if not cleaned or not re.match(r"[A-Za-z_]", cleaned[0]):
        cleaned = f"_{cleaned}"
    return cleaned


class XmlWriter:
    """Streams ``<backup><metadata/><documents><doc/>...</documents></backup>``.

    Each document is written on one line; each field becomes a child element
    named after the field.
    """

    def __init__(self, sink: TextIO, context: WriterContext) -> None:
        self.sink = sink
        self.context = context
        self.documents_written = 0
        self._header_written = False
        self._finalized = False

    def write_metadata_header(self) -> None:
        if self._header_written:
            return
        self.sink.write('<?xml version="1.0" encoding="UTF-8"?>\n')
        self.sink.write("<backup>\n")
        self.sink.write("  <metadata>\n")
        for key, value in self.context.header_fields().items():
            self.sink.write(f"    <{key}>{xml_text(str(value))}</{key}>\n")
        self.sink.write("  </metadata>\n")
        self.sink.write("  <documents>\n")
        self._header_written = True

    def write_document(self, doc: Document) -> None:
        self.write_metadata_header()
        doc = doc.without(self.context.fields_excluded)
        self.sink.write(f"    {render_xml_doc(doc)}\n")
        self.documents_written += 1

    def finalize(self) -> None:
        if self._finalized:
            return
        self.write_metadata_header()
        self.sink.write("  </documents>\n")
        self.sink.write("</backup>\n")
        self.sink.flush()
        self._finalized = True


def render_xml_doc(doc: Document) -> str:
    """Render one document as a single ``<doc>`` element."""
    return f"<doc>{_render_xml_fields(doc)}</doc>"


def _render_xml_fields(doc: Document) -> str:
    return "".join(_render_xml_field(key, value) for key, value in doc)


def _render_xml_field(key: str, value: Value) -> str:
    name = xml_name(key)
    if isinstance(value, ScalarValue):
        body = xml_text(scalar_to_text(value.value))
    elif isinstance(value, ListValue):
        body = xml_text(join_list(value))
    elif isinstance(value, NestedValue):
        body = _render_xml_fields(value.document)
    else:
        raise TypeError(f"Unknown document value variant: {type(value).__name__}")
    return f"<{name}>{body}</{name}>"


_WRITERS = {
    "json": JsonWriter,
    "csv": CsvWriter,
    "xml": XmlWriter,
}


def make_writer(fmt: str, sink: TextIO, context: WriterContext) -> FormatWriter:
    """Select the writer for an export format.

    Args:
        fmt: One of SUPPORTED_FORMATS (case-insensitive).
        sink: Open text stream (opened with ``newline=""``).
        context: Run facts for the metadata header.

    Raises:
        UnsupportedFormat: If no writer exists for fmt.
    """
    writer_cls = _WRITERS.get((fmt or "").lower())
    if writer_cls is None:
        raise UnsupportedFormat(fmt, SUPPORTED_FORMATS)
    return writer_cls(sink, context)
