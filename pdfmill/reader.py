"""Loading PDF files into a Document."""

from __future__ import annotations

import logging
from collections.abc import Callable
from os import PathLike
from pathlib import Path
from typing import Any, BinaryIO, Optional, Union

from .document import Document
from .object_stream import parse_object_stream
from .objects import (
    ObjectNotFoundError,
    ObjectTypeError,
    ParseError,
    PdfError,
    Reference,
    Stream,
    XrefError,
)
from .parser import header, indirect_object, xref_and_trailer, xref_start
from .xref import NormalEntry

log = logging.getLogger(__name__)

ObjectId = tuple[int, int]
FilterFunc = Callable[[ObjectId, Any], Optional[tuple[ObjectId, Any]]]
"""Called with each loaded object; return None to drop it, or an (id, object) pair to keep it."""

_EOF_MARKER = b"%%EOF"
_STARTXREF = b"startxref"
_TAIL_WINDOW = 512
_STARTXREF_LOOKBACK = 25


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class Reader:
    """Reads a complete PDF file held in memory into a Document."""

    def __init__(self, buffer: bytes) -> None:
        self.buffer = bytes(buffer)
        self.document = Document()

    def read(self, filter_func: Optional[FilterFunc] = None) -> Document:
        """Parse the whole buffer and return the document.

        ``filter_func`` sees every object, including those inside object
        streams; objects for which it returns None are left out.
        """
        buffer = self.buffer
        version = header(buffer)

        start = self._xref_start()
        if start > len(buffer):
            raise XrefError("start")
        document = self.document
        document.xref_start = start

        xref, trailer = xref_and_trailer(buffer[start:], self.get_object)

        # Earlier cross-reference sections of linearized or incrementally updated files.
        seen: set[int] = set()
        prev = trailer.pop(b"Prev", None)
        while _is_int(prev) and prev not in seen:
            seen.add(prev)
            if prev < 0 or prev > len(buffer):
                raise XrefError("prev_start")
            prev_xref, prev_trailer = xref_and_trailer(buffer[prev:], self.get_object)
            xref.merge(prev_xref)

            # Cross-reference stream of a hybrid-reference file.
            stream_start = trailer.pop(b"XRefStm", None)
            if _is_int(stream_start):
                if stream_start < 0 or stream_start > len(buffer):
                    raise XrefError("stream_start")
                stream_xref, _ = xref_and_trailer(buffer[stream_start:], self.get_object)
                xref.merge(stream_xref)

            prev = prev_trailer.pop(b"Prev", None)

        entry_count = xref.max_id() + 1
        if xref.size != entry_count:
            log.warning(
                "Size entry of trailer dictionary is %d, correct value is %d.", xref.size, entry_count
            )
            xref.size = entry_count

        document.version = version
        document.max_id = xref.size - 1
        document.trailer = trailer
        document.reference_table = xref

        objects: dict[ObjectId, Any] = {}
        from_object_streams: list[tuple[ObjectId, Any]] = []
        zero_length: list[ObjectId] = []

        for number in sorted(xref.entries):
            entry = xref.entries[number]
            if not isinstance(entry, NormalEntry):
                continue
            try:
                object_id, obj = self._read_object(entry.offset, None)
            except PdfError as exc:
                log.error("Object load error: %s", exc)
                continue
            if filter_func is not None:
                kept = filter_func(object_id, obj)
                if kept is None:
                    continue
                obj = kept[1]
            if isinstance(obj, Stream):
                if obj.dict.type_is(b"ObjStm"):
                    try:
                        contained = parse_object_stream(obj)
                    except PdfError:
                        continue
                    pairs = list(contained.items())
                    if filter_func is not None:
                        pairs = [
                            kept for kept in (filter_func(cid, cobj) for cid, cobj in pairs) if kept is not None
                        ]
                    from_object_streams.extend(pairs)
                elif not obj.content:
                    zero_length.append(object_id)
            objects[tuple(object_id)] = obj

        # Objects from object streams never replace directly stored ones.
        for object_id, obj in from_object_streams:
            objects.setdefault(tuple(object_id), obj)
        document.objects = dict(sorted(objects.items()))

        for object_id in zero_length:
            try:
                self._fill_stream(object_id)
            except PdfError:
                continue

        return document

    def get_object(self, id: ObjectId) -> Any:
        """Read the object ``id`` at the offset the cross-reference table gives."""
        offset = self._offset(id)
        _, obj = self._read_object(offset, tuple(id))
        return obj

    def _offset(self, id: ObjectId) -> int:
        number, generation = tuple(id)
        entry = self.document.reference_table.get(number)
        if isinstance(entry, NormalEntry) and entry.generation == generation:
            return entry.offset
        raise ObjectNotFoundError(f"object {(number, generation)} not found")

    def _read_object(self, offset: int, expected_id: Optional[ObjectId]) -> tuple[ObjectId, Any]:
        if offset > len(self.buffer):
            raise ParseError(offset)
        return indirect_object(self.buffer, offset, expected_id, self.get_object)

    def _stream_length(self, object_id: ObjectId) -> int:
        stream = self.document.get_object(object_id)
        if not isinstance(stream, Stream):
            raise ObjectTypeError("expected a stream")
        value = stream.dict[b"Length"]
        if isinstance(value, Reference):
            value = self.document.get_object(value)
        if not _is_int(value):
            raise ObjectTypeError("stream length must be an integer")
        return value

    def _fill_stream(self, object_id: ObjectId) -> None:
        length = self._stream_length(object_id)
        stream = self.document.get_object(object_id)
        start = stream.start_position
        if start is None:
            raise ObjectNotFoundError("stream has no recorded data position")
        if length < 0:
            raise PdfError("Negative stream length.")
        end = start + length
        if end > len(self.buffer):
            raise PdfError("Stream extends after document end.")
        stream.set_content(self.buffer[start:end])

    def _xref_start(self) -> int:
        buffer = self.buffer
        eof = buffer.rfind(_EOF_MARKER, max(0, len(buffer) - _TAIL_WINDOW))
        if eof <= _STARTXREF_LOOKBACK:
            raise XrefError("start")
        position = buffer.rfind(_STARTXREF, eof - _STARTXREF_LOOKBACK)
        if position < 0:
            raise XrefError("start")
        start = xref_start(buffer[position:])
        if start < 0:
            raise XrefError("start")
        return start


def load(path: Union[str, PathLike], filter_func: Optional[FilterFunc] = None) -> Document:
    """Load a PDF document from a file."""
    return Reader(Path(path).read_bytes()).read(filter_func)


def load_from(source: BinaryIO) -> Document:
    """Load a PDF document from a readable binary file object."""
    return Reader(source.read()).read(None)


def load_mem(buffer: bytes) -> Document:
    """Load a PDF document from bytes in memory."""
    return Reader(buffer).read(None)