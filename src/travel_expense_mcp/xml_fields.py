"""Best-effort field extraction from legacy Concur XML payloads.

The v1.1 expense and image v1.0 endpoints return small, flat XML documents.
Only named leaf fields are read; a field that is missing or malformed yields
``None`` rather than an error.
"""

from __future__ import annotations

import re
from html import unescape
from typing import Iterable


def _leaf_pattern(tag: str) -> re.Pattern[str]:
    name = re.escape(tag)
    return re.compile(rf"<(?:\w+:)?{name}(?:\s[^>]*)?>([^<]*)</(?:\w+:)?{name}>")


def _block_pattern(tag: str) -> re.Pattern[str]:
    name = re.escape(tag)
    return re.compile(rf"<(?:\w+:)?{name}(?:\s[^>]*)?>([\s\S]*?)</(?:\w+:)?{name}>")


def extract_field(xml: str, tag: str) -> str | None:
    """Return the text of the first ``<tag>`` leaf, or ``None``."""
    match = _leaf_pattern(tag).search(xml or "")
    if match is None:
        return None
    return unescape(match.group(1))


def extract_blocks(xml: str, tag: str) -> list[str]:
    """Return the inner XML of every ``<tag>`` element."""
    return _block_pattern(tag).findall(xml or "")


def extract_record(xml: str, fields: Iterable[str]) -> dict[str, str]:
    """Collect the named leaf fields present in ``xml``."""
    record: dict[str, str] = {}
    for field in fields:
        value = extract_field(xml, field)
        if value is not None:
            record[field] = value
    return record


def extract_records(xml: str, tag: str, fields: Iterable[str]) -> list[dict[str, str]]:
    """Collect named fields from each ``<tag>`` block, skipping empty blocks."""
    field_names = tuple(fields)
    records = []
    for block in extract_blocks(xml, tag):
        record = extract_record(block, field_names)
        if record:
            records.append(record)
    return records
