"""Parsers for PDF file syntax and for page content streams.

Every internal parser takes the input bytes and a position and returns the
parsed value together with the position just after it.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

from .objects import (
    Dictionary,
    HeaderError,
    Name,
    ObjectIdMismatchError,
    ParseError,
    PdfError,
    PdfString,
    Reference,
    Stream,
    StringFormat,
    XrefError,
)
from .xref import NormalEntry, Xref, XrefType, decode_xref_stream

MAX_BRACKET = 100
"""Deepest nesting of parentheses accepted inside a literal string."""

Resolver = Callable[[Reference], Any]

_WHITESPACE = frozenset(b" \t\n\r\0\x0c")
_DELIMITERS = frozenset(b"()<>[]{}/%")
_DIGITS = frozenset(b"0123456789")
_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")
_OCT_DIGITS = frozenset(b"01234567")
_LINE_ENDS = frozenset(b"\r\n")
_LITERAL_SPECIAL = frozenset(b"()\\\r\n")
_CONTENT_SPACE = frozenset(b" \t\r\n")
_OPERATOR_CHARS = frozenset(b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz*'\"")
_ESCAPES = {ord("n"): 0x0A, ord("r"): 0x0D, ord("t"): 0x09, ord("b"): 0x08, ord("f"): 0x0C}

_U16 = 0xFFFF
_U32 = 0xFFFFFFFF
_U64 = 0xFFFFFFFFFFFFFFFF
_I64_MIN = -(1 << 63)
_I64_MAX = (1 << 63) - 1


class _NoMatch(Exception):
    """The parser does not apply at this position."""


class _Abort(Exception):
    """A failure that no alternative may recover from."""


@dataclass
class Operation:
    """One content stream operator with its operands."""

    operator: str
    operands: list = field(default_factory=list)


@dataclass
class Content:
    """A decoded content stream."""

    operations: list[Operation] = field(default_factory=list)


def _as_bytes(data: Any) -> bytes:
    return data if isinstance(data, bytes) else bytes(data)


def _tag(data: bytes, pos: int, literal: bytes) -> int:
    if data.startswith(literal, pos):
        return pos + len(literal)
    raise _NoMatch


def _skip(data: bytes, pos: int, chars: frozenset) -> int:
    end = len(data)
    while pos < end and data[pos] in chars:
        pos += 1
    return pos


def _eol(data: bytes, pos: int) -> int:
    if data.startswith(b"\r\n", pos):
        return pos + 2
    if pos < len(data) and data[pos] in _LINE_ENDS:
        return pos + 1
    raise _NoMatch


def _comment(data: bytes, pos: int) -> int:
    pos = _tag(data, pos, b"%")
    end = len(data)
    while pos < end and data[pos] not in _LINE_ENDS:
        pos += 1
    return _eol(data, pos)


def _space(data: bytes, pos: int) -> int:
    while True:
        following = _skip(data, pos, _WHITESPACE)
        if following == pos:
            try:
                following = _comment(data, pos)
            except _NoMatch:
                return pos
        pos = following


def _digits(data: bytes, pos: int) -> int:
    end = _skip(data, pos, _DIGITS)
    if end == pos:
        raise _NoMatch
    return end


def _unsigned(data: bytes, pos: int, limit: int) -> tuple[int, int]:
    end = _digits(data, pos)
    value = int(data[pos:end])
    if value > limit:
        raise _NoMatch
    return value, end


def _integer(data: bytes, pos: int) -> tuple[int, int]:
    start = pos
    if pos < len(data) and data[pos] in b"+-":
        pos += 1
    end = _digits(data, pos)
    value = int(data[start:end])
    if not _I64_MIN <= value <= _I64_MAX:
        raise _NoMatch
    return value, end


def _real(data: bytes, pos: int) -> tuple[float, int]:
    start = pos
    if pos < len(data) and data[pos] in b"+-":
        pos += 1
    if pos < len(data) and data[pos] in _DIGITS:
        pos = _skip(data, pos, _DIGITS)
        pos = _tag(data, pos, b".")
        pos = _skip(data, pos, _DIGITS)
    else:
        pos = _tag(data, pos, b".")
        pos = _digits(data, pos)
    return float(data[start:pos].decode("ascii")), pos


def _hex_pair(data: bytes, pos: int) -> tuple[int, int]:
    pair = data[pos : pos + 2]
    if len(pair) == 2 and all(c in _HEX_DIGITS for c in pair):
        return int(pair, 16), pos + 2
    raise _NoMatch


def _oct_char(data: bytes, pos: int) -> tuple[int, int]:
    end = pos
    while end < len(data) and end - pos < 3 and data[end] in _OCT_DIGITS:
        end += 1
    if end == pos:
        raise _NoMatch
    # Overflow beyond one byte is ignored, as the format requires.
    return int(data[pos:end], 8) & 0xFF, end


def _name(data: bytes, pos: int) -> tuple[Name, int]:
    pos = _tag(data, pos, b"/")
    out = bytearray()
    while pos < len(data):
        c = data[pos]
        if c == 0x23:
            try:
                value, pos = _hex_pair(data, pos + 1)
            except _NoMatch:
                break
            out.append(value)
        elif c not in _WHITESPACE and c not in _DELIMITERS:
            out.append(c)
            pos += 1
        else:
            break
    return Name(bytes(out)), pos


def _escape_sequence(data: bytes, pos: int) -> tuple[bytes, int]:
    pos = _tag(data, pos, b"\\")
    if pos < len(data) and data[pos] in _OCT_DIGITS:
        value, pos = _oct_char(data, pos)
        return bytes([value]), pos
    try:
        return b"", _eol(data, pos)
    except _NoMatch:
        pass
    if pos >= len(data):
        raise _NoMatch
    c = data[pos]
    return bytes([_ESCAPES.get(c, c)]), pos + 1


def _inner_literal(data: bytes, pos: int, depth: int) -> tuple[bytes, int]:
    out = bytearray()
    end = len(data)
    while pos < end:
        c = data[pos]
        if c not in _LITERAL_SPECIAL:
            stop = pos
            while stop < end and data[stop] not in _LITERAL_SPECIAL:
                stop += 1
            out += data[pos:stop]
            pos = stop
        elif c == 0x5C:
            try:
                chunk, pos = _escape_sequence(data, pos)
            except _NoMatch:
                break
            out += chunk
        elif c in _LINE_ENDS:
            stop = _eol(data, pos)
            out += data[pos:stop]
            pos = stop
        elif c == 0x28:
            try:
                nested, pos = _nested_literal(data, pos, depth)
            except _NoMatch:
                break
            out += nested
        else:
            break
    return bytes(out), pos


def _nested_literal(data: bytes, pos: int, depth: int) -> tuple[bytes, int]:
    if depth == 0:
        raise _NoMatch
    pos = _tag(data, pos, b"(")
    inner, pos = _inner_literal(data, pos, depth - 1)
    pos = _tag(data, pos, b")")
    return b"(" + inner + b")", pos


def _literal_string(data: bytes, pos: int) -> tuple[PdfString, int]:
    pos = _tag(data, pos, b"(")
    inner, pos = _inner_literal(data, pos, MAX_BRACKET)
    pos = _tag(data, pos, b")")
    return PdfString(inner, StringFormat.LITERAL), pos


def _hex_string(data: bytes, pos: int) -> tuple[PdfString, int]:
    pos = _tag(data, pos, b"<")
    out = bytearray()
    high = True
    while True:
        probe = _skip(data, pos, _WHITESPACE)
        if probe >= len(data) or data[probe] not in _HEX_DIGITS:
            break
        nibble = int(data[probe : probe + 1], 16)
        if high:
            out.append(nibble << 4)
        else:
            out[-1] |= nibble
        high = not high
        pos = probe + 1
    pos = _skip(data, pos, _WHITESPACE)
    pos = _tag(data, pos, b">")
    return PdfString(bytes(out), StringFormat.HEXADECIMAL), pos


def _null(data: bytes, pos: int) -> tuple[None, int]:
    return None, _tag(data, pos, b"null")


def _boolean(data: bytes, pos: int) -> tuple[bool, int]:
    if data.startswith(b"true", pos):
        return True, pos + 4
    if data.startswith(b"false", pos):
        return False, pos + 5
    raise _NoMatch


def _array(data: bytes, pos: int) -> tuple[list, int]:
    pos = _tag(data, pos, b"[")
    pos = _space(data, pos)
    items = []
    while True:
        try:
            item, pos = _direct_object(data, pos)
        except _NoMatch:
            break
        items.append(item)
    pos = _tag(data, pos, b"]")
    return items, pos


def _dictionary(data: bytes, pos: int) -> tuple[Dictionary, int]:
    pos = _tag(data, pos, b"<<")
    pos = _space(data, pos)
    result = Dictionary()
    while True:
        try:
            key, following = _name(data, pos)
            following = _space(data, following)
            value, following = _direct_object(data, following)
        except _NoMatch:
            break
        result[key] = value
        pos = following
    pos = _tag(data, pos, b">>")
    return result, pos


def _object_id(data: bytes, pos: int) -> tuple[tuple[int, int], int]:
    number, pos = _unsigned(data, pos, _U32)
    pos = _space(data, pos)
    generation, pos = _unsigned(data, pos, _U16)
    pos = _space(data, pos)
    return (number, generation), pos


def _reference(data: bytes, pos: int) -> tuple[Reference, int]:
    (number, generation), pos = _object_id(data, pos)
    pos = _tag(data, pos, b"R")
    return Reference(number, generation), pos


_DIRECT_PARSERS = (
    _null,
    _boolean,
    _reference,
    _real,
    _integer,
    _name,
    _literal_string,
    _hex_string,
    _array,
    _dictionary,
)

_OPERAND_PARSERS = tuple(parser for parser in _DIRECT_PARSERS if parser is not _reference)


def _first_match(parsers: tuple, data: bytes, pos: int) -> tuple[Any, int]:
    for parser in parsers:
        try:
            return parser(data, pos)
        except _NoMatch:
            continue
    raise _NoMatch


def _direct_object(data: bytes, pos: int) -> tuple[Any, int]:
    value, pos = _first_match(_DIRECT_PARSERS, data, pos)
    return value, _space(data, pos)


def _stream_length(dictionary: Dictionary, resolve: Optional[Resolver]) -> Optional[int]:
    value = dictionary.get(b"Length")
    if isinstance(value, Reference):
        if resolve is None:
            return None
        try:
            value = resolve(value)
        except PdfError:
            return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def _stream(data: bytes, pos: int, resolve: Optional[Resolver]) -> tuple[Stream, int]:
    dictionary, pos = _dictionary(data, pos)
    pos = _space(data, pos)
    pos = _tag(data, pos, b"stream")
    pos = _eol(data, pos)
    length = _stream_length(dictionary, resolve)
    if length is None:
        return Stream.with_position(dictionary, pos), pos
    if length < 0:
        raise _Abort
    end = pos + length
    if end > len(data):
        raise _NoMatch
    following = end
    try:
        following = _eol(data, following)
    except _NoMatch:
        pass
    following = _tag(data, following, b"endstream")
    return Stream(dictionary, data[pos:end]), following


def _object(data: bytes, pos: int, resolve: Optional[Resolver]) -> tuple[Any, int]:
    try:
        value, pos = _stream(data, pos, resolve)
    except _NoMatch:
        value, pos = _first_match(_DIRECT_PARSERS, data, pos)
    return value, _space(data, pos)


def _whole(parser: Callable, data: Any) -> Any:
    data = _as_bytes(data)
    try:
        value, pos = parser(data, 0)
    except (_NoMatch, _Abort):
        raise ParseError(0) from None
    if pos != len(data):
        raise ParseError(pos)
    return value


def parse_real(data: bytes) -> float:
    """Parse a real number that makes up the whole input."""
    return _whole(_real, data)


def parse_integer(data: bytes) -> int:
    """Parse an integer that makes up the whole input."""
    return _whole(_integer, data)


def parse_name(data: bytes) -> Name:
    """Parse a name object, ``/`` included, that makes up the whole input."""
    return _whole(_name, data)


def parse_literal_string(data: bytes) -> PdfString:
    """Parse a parenthesised string that makes up the whole input."""
    return _whole(_literal_string, data)


def parse_hex_string(data: bytes) -> PdfString:
    """Parse a hexadecimal string that makes up the whole input."""
    return _whole(_hex_string, data)


def direct_object(data: bytes) -> Any:
    """Parse the direct object at the start of ``data``; trailing bytes are ignored."""
    data = _as_bytes(data)
    try:
        value, _ = _direct_object(data, 0)
    except _NoMatch:
        raise ParseError(0) from None
    return value


def indirect_object(
    data: bytes,
    offset: int,
    expected_id: Optional[tuple[int, int]] = None,
    resolve: Optional[Resolver] = None,
) -> tuple[tuple[int, int], Any]:
    """Parse ``N G obj ... endobj`` at ``offset``.

    ``resolve`` looks up an indirect stream length; a stream whose length is
    unknown is returned empty with ``start_position`` set to the absolute
    position of its data in ``data``.
    """
    data = _as_bytes(data)
    if offset > len(data):
        raise ParseError(offset)
    try:
        pos = _space(data, offset)
        object_id, pos = _object_id(data, pos)
        pos = _tag(data, pos, b"obj")
        pos = _space(data, pos)
    except _NoMatch:
        raise ParseError(offset) from None
    if expected_id is not None and tuple(expected_id) != object_id:
        raise ObjectIdMismatchError(f"expected object {tuple(expected_id)}, found {object_id}")
    try:
        value, pos = _object(data, pos, resolve)
        pos = _space(data, pos)
        if data.startswith(b"endobj", pos):
            pos += 6
        _space(data, pos)
    except (_NoMatch, _Abort):
        raise ParseError(offset) from None
    return object_id, value


def header(data: bytes) -> str:
    """Return the version from the ``%PDF-`` header line."""
    data = _as_bytes(data)
    try:
        pos = _tag(data, 0, b"%PDF-")
        end = pos
        while end < len(data) and data[end] not in _LINE_ENDS:
            end += 1
        _eol(data, end)
        return data[pos:end].decode("utf-8")
    except (_NoMatch, UnicodeDecodeError):
        raise HeaderError() from None


def _xref_line_end(data: bytes, pos: int) -> int:
    for ending in (b" \r", b" \n", b"\r\n"):
        if data.startswith(ending, pos):
            return pos + 2
    raise _NoMatch


def _xref_entry(data: bytes, pos: int) -> tuple[tuple[int, int, bool], int]:
    offset, pos = _unsigned(data, pos, _U32)
    pos = _tag(data, pos, b" ")
    generation, pos = _unsigned(data, pos, _U32)
    pos = _tag(data, pos, b" ")
    if pos >= len(data) or data[pos] not in b"nf":
        raise _NoMatch
    in_use = data[pos] == ord("n")
    pos = _xref_line_end(data, pos + 1)
    return (offset, generation, in_use), pos


def _xref_section(data: bytes, pos: int) -> tuple[tuple[int, list], int]:
    start, pos = _unsigned(data, pos, _U64)
    pos = _tag(data, pos, b" ")
    _, pos = _unsigned(data, pos, _U32)
    if data.startswith(b" ", pos):
        pos += 1
    pos = _eol(data, pos)
    entries = []
    while True:
        try:
            entry, pos = _xref_entry(data, pos)
        except _NoMatch:
            break
        entries.append(entry)
    return (start, entries), pos


def _xref_table(data: bytes, pos: int) -> tuple[Xref, int]:
    pos = _tag(data, pos, b"xref")
    pos = _eol(data, pos)
    xref = Xref(0, XrefType.CROSS_REFERENCE_TABLE)
    sections = 0
    while True:
        try:
            (start, entries), pos = _xref_section(data, pos)
        except _NoMatch:
            break
        sections += 1
        for index, (offset, generation, in_use) in enumerate(entries):
            if in_use and generation <= _U16:
                xref.insert((start + index) & _U32, NormalEntry(offset, generation))
    if not sections:
        raise _NoMatch
    return xref, _space(data, pos)


def _trailer(data: bytes, pos: int) -> tuple[Dictionary, int]:
    pos = _tag(data, pos, b"trailer")
    pos = _space(data, pos)
    trailer, pos = _dictionary(data, pos)
    return trailer, _space(data, pos)


def parse_xref_table(data: bytes) -> Xref:
    """Parse a cross-reference table at the start of ``data``."""
    data = _as_bytes(data)
    try:
        xref, _ = _xref_table(data, 0)
    except _NoMatch:
        raise XrefError("parse") from None
    return xref


def xref_and_trailer(data: bytes, resolve: Optional[Resolver] = None) -> tuple[Xref, Dictionary]:
    """Parse a cross-reference table with its trailer, or a cross-reference stream."""
    data = _as_bytes(data)
    try:
        xref, pos = _xref_table(data, 0)
        trailer, _ = _trailer(data, pos)
    except _NoMatch:
        pass
    else:
        size = trailer.get(b"Size")
        if not isinstance(size, int) or isinstance(size, bool):
            raise PdfError("invalid trailer")
        xref.size = size & _U32
        return xref, trailer

    try:
        _, value = indirect_object(data, 0, None, resolve)
    except PdfError:
        raise PdfError("invalid trailer") from None
    if not isinstance(value, Stream):
        raise XrefError("parse")
    return decode_xref_stream(value)


def xref_start(data: bytes) -> int:
    """Parse ``startxref``, the offset and ``%%EOF``; return the offset."""
    data = _as_bytes(data)
    try:
        pos = _tag(data, 0, b"startxref")
        pos = _eol(data, pos)
        value, pos = _integer(data, pos)
        pos = _eol(data, pos)
        _tag(data, pos, b"%%EOF")
    except _NoMatch:
        raise XrefError("start") from None
    return value


def _operator(data: bytes, pos: int) -> tuple[str, int]:
    end = _skip(data, pos, _OPERATOR_CHARS)
    if end == pos:
        raise _NoMatch
    return data[pos:end].decode("ascii"), end


def _operation(data: bytes, pos: int) -> tuple[Operation, int]:
    while True:
        try:
            pos = _comment(data, pos)
        except _NoMatch:
            break
    operands = []
    while True:
        try:
            operand, pos = _first_match(_OPERAND_PARSERS, data, pos)
        except _NoMatch:
            break
        operands.append(operand)
        pos = _skip(data, pos, _CONTENT_SPACE)
    operator, pos = _operator(data, pos)
    return Operation(operator, operands), _skip(data, pos, _CONTENT_SPACE)


def parse_content(data: bytes) -> Content:
    """Parse a content stream; parsing stops at the first unreadable operation."""
    data = _as_bytes(data)
    pos = _skip(data, 0, _CONTENT_SPACE)
    operations = []
    while True:
        try:
            operation, pos = _operation(data, pos)
        except _NoMatch:
            break
        operations.append(operation)
    return Content(operations)