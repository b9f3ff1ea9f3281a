"""Quoting of fields in tab separated output."""

from __future__ import annotations

_COMMA = "\t"
_SPECIAL = '"\r\n'
_LATIN1_SPACES = frozenset("\t\n\v\f\r \x85\xa0")


def _is_space(ch: str) -> bool:
    if ord(ch) < 0x100:
        return ch in _LATIN1_SPACES
    return ch.isspace()


def field_needs_quotes(field: str) -> bool:
    """Tell whether a field must be enclosed in quotes.

    Fields holding the separator, a quote or a line break, the field
    ``\\.`` and fields starting with white space must be quoted.
    """
    if not field:
        return False
    if field == "\\." or _COMMA in field or any(c in field for c in _SPECIAL):
        return True
    return _is_space(field[0])


def csv_escape(field: str) -> str:
    """Return the field quoted if it needs to be, otherwise unchanged."""
    if not field_needs_quotes(field):
        return field
    return '"' + field.replace('"', '""') + '"'