"""Serialising a Document to PDF bytes."""

from __future__ import annotations

import enum
import math
from decimal import Decimal
from os import PathLike
from pathlib import Path
from typing import Any, BinaryIO, Union

from .document import Document
from .objects import (
    Dictionary,
    Name,
    ObjectTypeError,
    PdfError,
    PdfString,
    Reference,
    Stream,
    StringFormat,
    type_name,
)
from .xref import (
    CompressedEntry,
    FreeEntry,
    NormalEntry,
    UnusableFreeEntry,
    Xref,
    XrefSection,
    XrefType,
)

_SKIPPED_TYPES = frozenset({"ObjStm", "XRef", "Linearized"})
_NAME_ESCAPED = frozenset(b" \t\n\r\x0c()<>[]{}/%#")


class XRefStreamFilter(enum.Enum):
    """Encoding applied to the data of a written cross-reference stream."""

    ASCII_HEX_DECODE = "ASCIIHexDecode"
    FLATE_DECODE = "FlateDecode"
    NONE = "None"


_XREF_STREAM_FILTER = XRefStreamFilter.NONE


def _is_int(obj: Any) -> bool:
    return isinstance(obj, int) and not isinstance(obj, bool)


def _needs_separator(obj: Any) -> bool:
    return obj is None or isinstance(obj, (bool, int, float, Reference))


def _needs_end_separator(obj: Any) -> bool:
    return _needs_separator(obj) or isinstance(obj, (Name, Stream))


def _format_real(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _write_name(out: bytearray, name: bytes) -> None:
    out += b"/"
    for byte in name:
        if byte in _NAME_ESCAPED or not 33 <= byte <= 126:
            out += b"#%02X" % byte
        else:
            out.append(byte)


def _write_string(out: bytearray, string: PdfString) -> None:
    text = string.value
    if string.format is StringFormat.HEXADECIMAL:
        out += b"<" + text.hex().upper().encode("ascii") + b">"
        return
    # Backslashes, carriage returns and unbalanced parentheses are escaped.
    escaped: set[int] = set()
    open_parens: list[int] = []
    for index, byte in enumerate(text):
        if byte == 0x28:
            open_parens.append(index)
        elif byte == 0x29:
            if open_parens:
                open_parens.pop()
            else:
                escaped.add(index)
        elif byte in (0x5C, 0x0D):
            escaped.add(index)
    escaped.update(open_parens)
    out += b"("
    for index, byte in enumerate(text):
        if index in escaped:
            out += b"\\"
            out.append(0x72 if byte == 0x0D else byte)
        else:
            out.append(byte)
    out += b")"


def _write_array(out: bytearray, array: list) -> None:
    out += b"["
    for position, item in enumerate(array):
        if position and _needs_separator(item):
            out += b" "
        _write_object(out, item)
    out += b"]"


def _write_dictionary(out: bytearray, dictionary: Dictionary) -> None:
    out += b"<<"
    for key, value in dictionary.items():
        _write_name(out, key)
        if _needs_separator(value):
            out += b" "
        _write_object(out, value)
    out += b">>"


def _write_stream(out: bytearray, stream: Stream) -> None:
    _write_dictionary(out, stream.dict)
    out += b"stream\n"
    out += stream.content
    out += b"\nendstream"


def _write_object(out: bytearray, obj: Any) -> None:
    if obj is None:
        out += b"null"
    elif isinstance(obj, bool):
        out += b"true" if obj else b"false"
    elif isinstance(obj, int):
        out += str(obj).encode("ascii")
    elif isinstance(obj, float):
        out += _format_real(obj).encode("ascii")
    elif isinstance(obj, Name):
        _write_name(out, obj)
    elif isinstance(obj, PdfString):
        _write_string(out, obj)
    elif isinstance(obj, Reference):
        out += f"{obj.id} {obj.generation} R".encode("ascii")
    elif isinstance(obj, list):
        _write_array(out, obj)
    elif isinstance(obj, Dictionary):
        _write_dictionary(out, obj)
    elif isinstance(obj, Stream):
        _write_stream(out, obj)
    else:
        raise ObjectTypeError(f"not a PDF object: {obj!r}")


def serialize_object(obj: Any) -> bytes:
    """Return the PDF syntax for a single object."""
    out = bytearray()
    _write_object(out, obj)
    return bytes(out)


def _write_indirect_object(out: bytearray, number: int, generation: int, obj: Any, xref: Xref) -> None:
    xref.insert(number, NormalEntry(len(out), generation))
    out += f"{number} {generation} obj\n".encode("ascii")
    if _needs_separator(obj):
        out += b" "
    _write_object(out, obj)
    if _needs_end_separator(obj):
        out += b" "
    out += b"\nendobj\n"


def _write_xref_table(out: bytearray, xref: Xref) -> None:
    out += b"xref\n"
    section = XrefSection(0)
    section.add_unusable_free_entry()
    for number in range(1, xref.size):
        if section.is_empty():
            section = XrefSection(number)
        entry = xref.get(number)
        if entry is None:
            if not section.is_empty():
                out += section.to_table()
                section = XrefSection(number)
        elif isinstance(entry, (CompressedEntry, UnusableFreeEntry)):
            section.add_unusable_free_entry()
        else:
            section.add_entry(entry)
    out += section.to_table()


def _write_trailer(out: bytearray, document: Document) -> None:
    document.trailer[b"Size"] = document.max_id + 1
    out += b"trailer\n"
    _write_dictionary(out, document.trailer)


def _xref_stream_data(xref: Xref, stream_filter: XRefStreamFilter) -> tuple[bytes, int, list]:
    sections: list[XrefSection] = []
    section = XrefSection(0)
    for number in range(1, xref.size + 1):
        if section.is_empty():
            section = XrefSection(number)
        entry = xref.get(number)
        if entry is not None:
            section.add_entry(entry)
        elif not section.is_empty():
            sections.append(section)
            section = XrefSection(number)
    if not section.is_empty():
        sections.append(section)

    data = bytearray()
    index: list[int] = []
    for section in sections:
        index += [section.starting_id, len(section.entries)]
        for number, entry in enumerate(section.entries, start=section.starting_id):
            if isinstance(entry, FreeEntry):
                data += b"\x00" + number.to_bytes(4, "big") + b"\x00\x00"
            elif isinstance(entry, UnusableFreeEntry):
                data += b"\x00" + number.to_bytes(4, "big") + (65535).to_bytes(2, "big")
            elif isinstance(entry, NormalEntry):
                data += b"\x01" + entry.offset.to_bytes(4, "big") + entry.generation.to_bytes(2, "big")
            elif isinstance(entry, CompressedEntry):
                data += b"\x02" + entry.container.to_bytes(4, "big") + entry.index.to_bytes(2, "big")

    length = len(data)
    if stream_filter is XRefStreamFilter.ASCII_HEX_DECODE:
        data = bytearray(data.hex().upper().encode("ascii"))
    return bytes(data), length, index


def _write_xref_stream(out: bytearray, document: Document, xref: Xref, start: int) -> None:
    document.max_id += 1
    number = document.max_id
    xref.insert(number, NormalEntry(start, 0))
    trailer = document.trailer
    trailer[b"Type"] = Name(b"XRef")
    trailer[b"Size"] = document.max_id + 1
    trailer[b"W"] = [1, 4, 2]
    data, length, index = _xref_stream_data(xref, _XREF_STREAM_FILTER)
    trailer[b"Index"] = index
    if _XREF_STREAM_FILTER is XRefStreamFilter.ASCII_HEX_DECODE:
        trailer[b"Filter"] = Name(b"ASCIIHexDecode")
    else:
        trailer.pop(b"Filter", None)
    trailer[b"Length"] = length

    stream = Stream.with_position(trailer.copy(), 0)
    stream.content = data
    stream.start_position = None
    _write_indirect_object(out, number, 0, stream, xref)


def _is_skipped(obj: Any) -> bool:
    try:
        return type_name(obj) in _SKIPPED_TYPES
    except PdfError:
        return False


def _render(document: Document) -> bytes:
    out = bytearray()
    xref = Xref(document.max_id + 1, document.reference_table.cross_reference_type)
    out += f"%PDF-{document.version}\n".encode("utf-8")
    for (number, generation), obj in sorted(document.objects.items()):
        if not _is_skipped(obj):
            _write_indirect_object(out, number, generation, obj, xref)

    start = len(out)
    if xref.cross_reference_type is XrefType.CROSS_REFERENCE_TABLE:
        _write_xref_table(out, xref)
        _write_trailer(out, document)
    else:
        _write_xref_stream(out, document, xref, start)
    out += f"\nstartxref\n{start}\n%%EOF".encode("ascii")
    return bytes(out)


def save_to(document: Document, target: BinaryIO) -> None:
    """Write ``document`` as PDF to a writable binary file object.

    The trailer's /Size is updated; writing a cross-reference stream also
    allocates a new object number for it.
    """
    target.write(_render(document))


def save(document: Document, path: Union[str, PathLike]) -> Path:
    """Write ``document`` as PDF to ``path`` and return the path."""
    destination = Path(path)
    with destination.open("wb") as handle:
        save_to(document, handle)
    return destination