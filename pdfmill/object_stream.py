"""Objects stored inside compressed object streams."""

from __future__ import annotations

import re
from typing import Any

from .objects import ObjectTypeError, ParseError, PdfError, Stream
from .parser import direct_object

_NUMBER = re.compile(r"\+?[0-9]+")
_U32 = 0xFFFFFFFF


def _require_int(stream: Stream, key: bytes) -> int:
    value = stream.dict[key]
    if not isinstance(value, int) or isinstance(value, bool):
        raise ObjectTypeError(f"/{key.decode()} must be an integer")
    return value


def _index_number(token: str) -> int | None:
    if not _NUMBER.fullmatch(token):
        return None
    value = int(token)
    return value if value <= _U32 else None


def parse_object_stream(stream: Stream) -> dict[tuple[int, int], Any]:
    """Decompress an object stream and return its objects keyed by (number, 0).

    Index pairs that cannot be read and objects that cannot be parsed are
    skipped.
    """
    stream.decompress()
    content = stream.content
    if not content:
        return {}

    first = max(0, _require_int(stream, b"First"))
    _require_int(stream, b"N")
    if first > len(content):
        raise ParseError(first)
    try:
        index_text = content[:first].decode("utf-8")
    except UnicodeDecodeError:
        raise PdfError("object stream index is not valid UTF-8") from None

    numbers = [_index_number(token) for token in index_text.split()]
    pairs = iter(numbers[: len(numbers) // 2 * 2])

    objects: dict[tuple[int, int], Any] = {}
    for number, relative in zip(pairs, pairs):
        if number is None or relative is None:
            continue
        offset = first + relative
        if offset > len(content):
            continue
        try:
            objects[(number, 0)] = direct_object(content[offset:])
        except ParseError:
            continue
    return dict(sorted(objects.items()))