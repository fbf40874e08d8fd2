"""Document flattening for tabular export formats.

Turns a nested Document into a single-level mapping with dotted keys:

    {"a": {"b": 1}}        -> {"a.b": 1}
    {"tags": ["x", "y"]}   -> {"tags": "x, y"}

List joining is lossy: if an element itself contains ", " the original
element boundaries cannot be recovered from the flattened value.
"""

from __future__ import annotations

from typing import Dict

from solrkeeper.models.document import (
    Document,
    ListValue,
    NestedValue,
    Scalar,
    ScalarValue,
    Value,
)

LIST_SEPARATOR = ", "
KEY_SEPARATOR = "."


def scalar_to_text(value: Scalar) -> str:
    """Render a scalar the way CSV cells and XML text nodes show it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def join_list(value: ListValue) -> str:
    return LIST_SEPARATOR.join(scalar_to_text(item) for item in value.items)


def flatten_document(doc: Document, prefix: str = "") -> Dict[str, Scalar]:
    """Flatten a Document into an ordered dotted-key mapping.

    Args:
        doc: Document to flatten.
        prefix: Key prefix for recursive calls.

    Returns:
        Dict in the document's field order. Scalars are returned unchanged,
        lists as one joined string, nested documents as dotted keys.
    """
    flat: Dict[str, Scalar] = {}
    for key, value in doc:
        name = f"{prefix}{KEY_SEPARATOR}{key}" if prefix else key
        flat.update(_flatten_value(name, value))
    return flat


def _flatten_value(name: str, value: Value) -> Dict[str, Scalar]:
    if isinstance(value, ScalarValue):
        return {name: value.value}
    if isinstance(value, ListValue):
        return {name: join_list(value)}
    if isinstance(value, NestedValue):
        return flatten_document(value.document, prefix=name)
    raise TypeError(f"Unknown document value variant: {type(value).__name__}")
