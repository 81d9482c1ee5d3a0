"""Escaping for serialized attributes and text."""

from typing import Any


def escape_attribute(value: Any) -> str:
    """Escape a value for use inside a double-quoted attribute.

    Escapes: & < > "
    """
    s = str(value)
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
    )


def escape_text(value: Any) -> str:
    """Escape a value for use as element text content (@text)."""
    s = "" if value is None else str(value)
    return (
        s.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace("\u00a0", "&nbsp;")
    )
