import zlib

import pytest

from pdfmill.document import Document
from pdfmill.objects import (
    Dictionary,
    Name,
    ObjectNotFoundError,
    PdfString,
    Reference,
    Stream,
)


def test_get_object_of_added_objects():
    doc = Document()
    first = doc.add_object(PdfString("test"))
    second = doc.add_object(Stream(Dictionary(), b"stream"))
    assert doc.get_object(first) == PdfString("test")
    assert doc.get_object(second).content == b"stream"


def test_add_object_numbers_increase():
    doc = Document()
    ids = [doc.add_object(value) for value in (1, 2, 3)]
    assert [object_id.id for object_id in ids] == [1, 2, 3]
    assert all(object_id.generation == 0 for object_id in ids)
    assert doc.max_id == 3


def test_get_missing_object_raises():
    doc = Document()
    with pytest.raises(ObjectNotFoundError):
        doc.get_object((7, 0))


def test_change_producer_direct_info():
    doc = Document()
    doc.trailer[b"Info"] = Dictionary()
    doc.change_producer("pdfmill")
    assert doc.trailer[b"Info"][b"Producer"] == PdfString("pdfmill")


def test_change_producer_referenced_info():
    doc = Document()
    info_id = doc.add_object(Dictionary())
    doc.trailer[b"Info"] = info_id
    doc.change_producer("maker")
    assert doc.get_object(info_id)[b"Producer"].text == "maker"


def test_change_producer_without_info_is_noop():
    doc = Document()
    doc.change_producer("maker")
    assert b"Info" not in doc.trailer


def test_compress_and_decompress_round_trip():
    doc = Document()
    content = b"0 0 m 100 100 l S\n" * 50
    stream_id = doc.add_object(Stream(Dictionary(), content))
    doc.compress()
    stream = doc.get_object(stream_id)
    assert stream.dict[b"Filter"] == Name("FlateDecode")
    assert zlib.decompress(stream.content) == content
    assert stream.dict[b"Length"] == len(stream.content)
    doc.decompress()
    assert stream.content == content
    assert b"Filter" not in stream.dict


def test_compress_respects_allows_compression():
    doc = Document()
    content = b"A" * 1000
    stream_id = doc.add_object(Stream(Dictionary(), content, allows_compression=False))
    doc.compress()
    assert doc.get_object(stream_id).content == content


def test_delete_object_removes_references():
    doc = Document()
    target = doc.add_object(42)
    other = doc.add_object(7)
    array_id = doc.add_object([target, other, target])
    holder = Dictionary()
    holder[b"A"] = target
    holder[b"B"] = target
    holder[b"C"] = other
    dict_id = doc.add_object(holder)

    removed = doc.delete_object(target)

    assert removed == 42
    assert tuple(target) not in doc.objects
    assert doc.get_object(array_id) == [other, target]
    assert list(doc.get_object(dict_id).keys()) == [b"C"]


def test_delete_missing_object_returns_none():
    doc = Document()
    assert doc.delete_object((5, 0)) is None


def test_delete_zero_length_streams():
    doc = Document()
    empty = doc.add_object(Stream(Dictionary(), b""))
    full = doc.add_object(Stream(Dictionary(), b"data"))
    page = Dictionary()
    page[b"Contents"] = [empty, full]
    page_id = doc.add_object(page)

    deleted = doc.delete_zero_length_streams()

    assert deleted == [tuple(empty)]
    assert tuple(empty) not in doc.objects
    assert tuple(full) in doc.objects
    assert doc.get_object(page_id)[b"Contents"] == [full]


def test_change_content_stream_drops_old_filter():
    doc = Document()
    params = Dictionary()
    params[b"Filter"] = Name("LZWDecode")
    params[b"DecodeParms"] = Dictionary()
    stream_id = doc.add_object(Stream(params, b"old"))
    doc.change_content_stream(stream_id, b"BT ET")
    stream = doc.get_object(stream_id)
    assert stream.content == b"BT ET"
    assert b"Filter" not in stream.dict
    assert b"DecodeParms" not in stream.dict


def test_change_content_stream_compresses_large_content():
    doc = Document()
    stream_id = doc.add_object(Stream(Dictionary(), b""))
    content = b"q 1 0 0 1 0 0 cm Q\n" * 40
    doc.change_content_stream(stream_id, content)
    stream = doc.get_object(stream_id)
    assert stream.filters() == ["FlateDecode"]
    assert stream.decompressed_content() == content


def test_extract_stream_writes_decoded_content(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    doc = Document()
    content = b"x" * 500
    stream_id = doc.add_object(Stream(Dictionary(), content))
    doc.compress()
    path = doc.extract_stream(stream_id, True)
    assert (tmp_path / path).read_bytes() == content
    raw = doc.extract_stream(stream_id, False)
    assert (tmp_path / raw).read_bytes() == doc.get_object(stream_id).content


def test_extract_stream_missing_creates_empty_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    doc = Document()
    path = doc.extract_stream(Reference(9, 0), True)
    assert path.name == "(9, 0).bin"
    assert (tmp_path / path).read_bytes() == b""