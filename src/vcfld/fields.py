from __future__ import annotations

from typing import Iterator, List, Optional, Tuple


def split_field(field: str, sep: str) -> Iterator[str]:
    """Lazily yield the sub-fields of ``field`` separated by ``sep``.

    A field without ``sep`` is yielded whole, and a trailing separator yields a
    final empty sub-field, matching ``str.split``.
    """
    if len(sep) != 1:
        raise ValueError(f"Separator must be a single character, got {sep!r}")
    start = 0
    while True:
        idx = field.find(sep, start)
        if idx < 0:
            yield field[start:]
            return
        yield field[start:idx]
        start = idx + 1


def split_columns(line: str) -> List[str]:
    """Split a VCF data line into its tab/whitespace separated columns."""
    return line.split()


def split_key_value(subfield: str) -> Tuple[str, Optional[str]]:
    """Split an INFO sub-field into ``(key, value)``; flags have value ``None``."""
    key, eq, value = subfield.partition("=")
    if not eq:
        return key, None
    return key, value
