import zlib

import pytest

from pdfmill.objects import Dictionary, Name, Stream, XrefError
from pdfmill.xref import (
    CompressedEntry,
    FreeEntry,
    NormalEntry,
    UnusableFreeEntry,
    Xref,
    XrefSection,
    XrefType,
    decode_xref_stream,
    format_xref_entry,
)


def _row(kind: int, second: int, third: int) -> bytes:
    return bytes([kind]) + second.to_bytes(2, "big") + third.to_bytes(1, "big")


def _xref_stream(content: bytes, **extra) -> Stream:
    dictionary = Dictionary({"Type": "XRef", "Size": 3, "W": [1, 2, 1]})
    for key, value in extra.items():
        dictionary[key] = value
    return Stream(dictionary, content)


def test_insert_get_and_max_id():
    xref = Xref(0, XrefType.CROSS_REFERENCE_TABLE)
    assert xref.max_id() == 0
    xref.insert(5, NormalEntry(100, 0))
    xref.insert(2, CompressedEntry(7, 1))
    assert xref.get(5) == NormalEntry(100, 0)
    assert xref.get(3) is None
    assert xref.max_id() == 5


def test_merge_keeps_existing_entries():
    first = Xref(3)
    first.insert(1, NormalEntry(10))
    second = Xref(3)
    second.insert(1, NormalEntry(99))
    second.insert(2, NormalEntry(20))
    first.merge(second)
    assert first.get(1) == NormalEntry(10)
    assert first.get(2) == NormalEntry(20)


def test_clear_removes_entries():
    xref = Xref(2)
    xref.insert(1, FreeEntry())
    xref.clear()
    assert xref.entries == {}
    assert xref.max_id() == 0


def test_format_entries_are_twenty_bytes():
    assert format_xref_entry(NormalEntry(17, 0)) == b"0000000017 00000 n \n"
    assert format_xref_entry(UnusableFreeEntry()) == b"0000000000 65535 f \n"
    assert format_xref_entry(FreeEntry()) == b"0000000000 00000 f \n"
    assert format_xref_entry(CompressedEntry(4, 2)) == format_xref_entry(UnusableFreeEntry())
    assert len(format_xref_entry(NormalEntry(153238, 3))) == 20


def test_section_to_table():
    section = XrefSection(0)
    assert section.is_empty()
    assert section.to_table() == b""
    section.add_unusable_free_entry()
    section.add_entry(NormalEntry(9, 0))
    assert not section.is_empty()
    table = section.to_table()
    lines = table.splitlines(keepends=True)
    assert lines[0] == b"0 2\n"
    assert lines[1] == format_xref_entry(UnusableFreeEntry())
    assert lines[2] == format_xref_entry(NormalEntry(9, 0))


def test_decode_xref_stream_entries():
    content = _row(0, 0, 255) + _row(1, 300, 2) + _row(2, 7, 4)
    xref, trailer = decode_xref_stream(_xref_stream(content))
    assert xref.cross_reference_type is XrefType.CROSS_REFERENCE_STREAM
    assert xref.size == 3
    assert xref.get(0) is None
    assert xref.get(1) == NormalEntry(300, 2)
    assert xref.get(2) == CompressedEntry(7, 4)
    assert b"W" not in trailer and b"Length" not in trailer
    assert trailer[b"Type"] == Name("XRef")


def test_decode_xref_stream_uses_index():
    content = _row(1, 10, 0) + _row(1, 20, 0)
    stream = _xref_stream(content, Index=[4, 1, 9, 1])
    xref, trailer = decode_xref_stream(stream)
    assert xref.get(4) == NormalEntry(10, 0)
    assert xref.get(9) == NormalEntry(20, 0)
    assert b"Index" not in trailer


def test_decode_flate_compressed_stream():
    raw = _row(1, 42, 0) + _row(1, 84, 0) + _row(2, 1, 0)
    dictionary = Dictionary({"Size": 3, "W": [1, 2, 1], "Filter": "FlateDecode"})
    xref, trailer = decode_xref_stream(Stream(dictionary, zlib.compress(raw)))
    assert xref.get(0) == NormalEntry(42, 0)
    assert xref.get(1) == NormalEntry(84, 0)
    assert xref.get(2) == CompressedEntry(1, 0)
    assert b"Filter" not in trailer


def test_zero_width_type_field_means_normal():
    content = (5).to_bytes(2, "big") + (6).to_bytes(2, "big")
    dictionary = Dictionary({"Size": 2, "W": [0, 2, 0]})
    xref, _ = decode_xref_stream(Stream(dictionary, content))
    assert xref.get(0) == NormalEntry(5, 0)
    assert xref.get(1) == NormalEntry(6, 0)


def test_missing_widths_is_an_error():
    stream = Stream(Dictionary({"Size": 1}), b"\x01\x00\x00\x00")
    with pytest.raises(XrefError):
        decode_xref_stream(stream)


def test_negative_width_is_an_error():
    stream = Stream(Dictionary({"Size": 1, "W": [1, -2, 1]}), b"\x01\x00\x00\x00")
    with pytest.raises(XrefError):
        decode_xref_stream(stream)


def test_missing_size_is_an_error():
    stream = Stream(Dictionary({"W": [1, 2, 1]}), _row(1, 1, 0))
    with pytest.raises(XrefError):
        decode_xref_stream(stream)


def test_truncated_content_is_an_error():
    stream = _xref_stream(_row(1, 1, 0) + b"\x01")
    with pytest.raises(XrefError):
        decode_xref_stream(stream)