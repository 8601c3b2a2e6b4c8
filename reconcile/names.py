"""Normalization of raw name strings into ParsedName records."""

import re
from typing import Any

from reconcile import ParsedName

# Matches any sequence of whitespace (including Unicode whitespace like U+00A0)
_WHITESPACE_RE = re.compile(r'\s+')


def normalize_whitespace(value: str) -> str:
    """Normalize whitespace in a string value.

    Collapses any sequence of whitespace (including Unicode whitespace)
    into a single space and strips leading/trailing whitespace.

    Args:
        value: Raw string value.

    Returns:
        Normalized string.
    """
    return _WHITESPACE_RE.sub(' ', value).strip()


def _normalize(raw: Any) -> str:
    if not isinstance(raw, str):
        return ''
    return normalize_whitespace(raw).upper()


def parse_comma_or_space_name(raw: Any) -> ParsedName:
    """Parse a name in "LAST, FIRST MIDDLE" or "LAST FIRST MIDDLE" form.

    With a comma, everything before the first comma is the last name and
    everything after it the first name (middle names stay part of it).
    Without a comma the first word is the last name and the remaining
    words form the first name. A single word becomes the first name.

    Args:
        raw: Name string from the school file.

    Returns:
        Parsed name; all-empty for empty or non-string input.
    """
    normalized = _normalize(raw)
    if not normalized:
        return ParsedName.empty()

    last, comma, first = normalized.partition(',')
    if comma:
        return ParsedName(
            first_name=first.strip(),
            last_name=last.strip(),
            full_name=normalized,
        )

    parts = normalized.split(' ')
    if len(parts) >= 2:
        return ParsedName(
            first_name=' '.join(parts[1:]),
            last_name=parts[0],
            full_name=normalized,
        )
    return ParsedName(first_name=normalized, last_name='', full_name=normalized)


def parse_first_space_last(raw: Any) -> ParsedName:
    """Parse a name in "FIRST LAST" form, where the last name may be several words.

    e.g. "Fabiola Murillo Martinez" -> first FABIOLA, last MURILLO MARTINEZ.
    """
    normalized = _normalize(raw)
    if not normalized:
        return ParsedName.empty()

    first, _, last = normalized.partition(' ')
    return ParsedName(first_name=first, last_name=last, full_name=normalized)


def _cell_to_name(value: Any) -> str:
    if value is None:
        return ''
    return normalize_whitespace(str(value)).upper()


def parse_separate_columns(last_raw: Any, first_raw: Any) -> ParsedName:
    """Build a ParsedName from separate last/first name cells.

    The full name is synthesized as "LAST, FIRST" for display.
    """
    last = _cell_to_name(last_raw)
    first = _cell_to_name(first_raw)
    if last and first:
        full_name = f'{last}, {first}'
    else:
        full_name = last or first
    return ParsedName(first_name=first, last_name=last, full_name=full_name)
