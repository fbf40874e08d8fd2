"""Document data model for SolrKeeper.

A Solr document is an ordered mapping of field name to Value, where Value is
one of three tagged variants:

- ScalarValue: a string, number, boolean or null
- ListValue:   an ordered list of scalars (multi-valued Solr fields)
- NestedValue: a child Document (nested/child documents, JSON facets)

Consumers dispatch on the variant class instead of probing raw dicts.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple, Union

Scalar = Union[str, int, float, bool, None]

_SCALAR_TYPES = (str, int, float, bool, type(None))


@dataclass(frozen=True)
class ScalarValue:
    """A single-valued field."""

    value: Scalar


@dataclass(frozen=True)
class ListValue:
    """A multi-valued field. Elements keep their server order."""

    items: Tuple[Scalar, ...]


@dataclass(frozen=True)
class NestedValue:
    """A field whose value is itself a document."""

    document: "Document"


Value = Union[ScalarValue, ListValue, NestedValue]


def _coerce_scalar(item: Any) -> Scalar:
    """Return item unchanged if scalar; otherwise its compact JSON text."""
    if isinstance(item, _SCALAR_TYPES):
        return item
    return json.dumps(item, ensure_ascii=False, separators=(",", ":"))


def _value_from_raw(raw: Any) -> Value:
    if isinstance(raw, dict):
        return NestedValue(Document.from_raw(raw))
    if isinstance(raw, (list, tuple)):
        return ListValue(tuple(_coerce_scalar(item) for item in raw))
    return ScalarValue(_coerce_scalar(raw))


def _value_to_raw(value: Value) -> Any:
    if isinstance(value, ScalarValue):
        return value.value
    if isinstance(value, ListValue):
        return list(value.items)
    if isinstance(value, NestedValue):
        return value.document.to_raw()
    raise TypeError(f"Unknown document value variant: {type(value).__name__}")


@dataclass(frozen=True)
class Document:
    """An immutable, ordered Solr document."""

    fields: Tuple[Tuple[str, Value], ...] = ()

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "Document":
        """Build a Document from one parsed JSON object of `response.docs`.

        Args:
            raw: Field name to JSON value mapping, in server order.

        Returns:
            Document with every value wrapped in its tagged variant.

        Raises:
            TypeError: If raw is not a mapping.
        """
        if not isinstance(raw, dict):
            raise TypeError(f"Document must be a JSON object, got {type(raw).__name__}")
        return cls(tuple((str(key), _value_from_raw(val)) for key, val in raw.items()))

    def to_raw(self) -> Dict[str, Any]:
        """Return the plain dict form, suitable for json.dumps."""
        return {key: _value_to_raw(value) for key, value in self.fields}

    def without(self, names: Iterable[str]) -> "Document":
        """Return a copy with the given top-level fields removed."""
        drop = set(names)
        if not drop:
            return self
        return Document(tuple((key, value) for key, value in self.fields if key not in drop))

    def get(self, name: str) -> Optional[Value]:
        for key, value in self.fields:
            if key == name:
                return value
        return None

    def keys(self) -> Tuple[str, ...]:
        return tuple(key for key, _ in self.fields)

    def __iter__(self) -> Iterator[Tuple[str, Value]]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)
