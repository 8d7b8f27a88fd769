"""Cross-reference tables and streams."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Union

from .objects import Dictionary, Stream, XrefError

_U32 = 0xFFFFFFFF
_U16 = 0xFFFF


class XrefType(enum.Enum):
    """How cross-reference data is stored in a file."""

    CROSS_REFERENCE_STREAM = "stream"
    CROSS_REFERENCE_TABLE = "table"


@dataclass(frozen=True)
class FreeEntry:
    """A free entry with generation 0."""


@dataclass(frozen=True)
class UnusableFreeEntry:
    """A free entry that can never be reused (generation 65535)."""


@dataclass(frozen=True)
class NormalEntry:
    """An object stored directly in the file at a byte offset."""

    offset: int
    generation: int = 0


@dataclass(frozen=True)
class CompressedEntry:
    """An object stored inside an object stream."""

    container: int
    index: int


XrefEntry = Union[FreeEntry, UnusableFreeEntry, NormalEntry, CompressedEntry]


@dataclass
class Xref:
    """The cross-reference entries of a document, keyed by object number."""

    size: int = 0
    cross_reference_type: XrefType = XrefType.CROSS_REFERENCE_TABLE
    entries: dict[int, XrefEntry] = field(default_factory=dict)

    def get(self, id: int) -> XrefEntry | None:
        """Return the entry for object number ``id``, or None."""
        return self.entries.get(id)

    def insert(self, id: int, entry: XrefEntry) -> None:
        """Set the entry for object number ``id``."""
        self.entries[id] = entry

    def merge(self, other: "Xref") -> None:
        """Add the entries of ``other`` that are not present yet."""
        for id, entry in other.entries.items():
            self.entries.setdefault(id, entry)

    def clear(self) -> None:
        """Remove every entry."""
        self.entries.clear()

    def max_id(self) -> int:
        """Return the highest object number, or 0 when empty."""
        return max(self.entries, default=0)


def format_xref_entry(entry: XrefEntry) -> bytes:
    """Return the 20-byte cross-reference table line for ``entry``."""
    if isinstance(entry, NormalEntry):
        offset, generation, kind = entry.offset, entry.generation, "n"
    elif isinstance(entry, FreeEntry):
        offset, generation, kind = 0, 0, "f"
    elif isinstance(entry, (UnusableFreeEntry, CompressedEntry)):
        offset, generation, kind = 0, 65535, "f"
    else:
        raise TypeError(f"not a cross-reference entry: {entry!r}")
    return f"{offset:010d} {generation:05d} {kind} \n".encode("ascii")


@dataclass
class XrefSection:
    """A run of consecutive entries starting at ``starting_id``."""

    starting_id: int
    entries: list[XrefEntry] = field(default_factory=list)

    def add_entry(self, entry: XrefEntry) -> None:
        """Append an entry."""
        self.entries.append(entry)

    def add_unusable_free_entry(self) -> None:
        """Append an unusable free entry."""
        self.add_entry(UnusableFreeEntry())

    def is_empty(self) -> bool:
        """Tell whether the section has no entries."""
        return not self.entries

    def to_table(self) -> bytes:
        """Render the section as cross-reference table text; empty if no entries."""
        if self.is_empty():
            return b""
        header = f"{self.starting_id} {len(self.entries)}\n".encode("ascii")
        return header + b"".join(format_xref_entry(entry) for entry in self.entries)


def _integer_array(value: Any) -> list[int]:
    if not isinstance(value, list):
        raise XrefError("parse")
    if any(not isinstance(item, int) or isinstance(item, bool) for item in value):
        raise XrefError("parse")
    return list(value)


class _FieldReader:
    def __init__(self, data: bytes) -> None:
        self._data = data
        self._position = 0

    def read(self, width: int) -> int:
        end = self._position + width
        if end > len(self._data):
            raise XrefError("parse")
        value = 0
        for byte in self._data[self._position : end]:
            value = ((value << 8) + byte) & _U32
        self._position = end
        return value


def decode_xref_stream(stream: Stream) -> tuple[Xref, Dictionary]:
    """Decode a cross-reference stream into its entries and trailer dictionary."""
    stream.decompress()
    trailer = stream.dict
    size = trailer.get(b"Size")
    if not isinstance(size, int) or isinstance(size, bool):
        raise XrefError("parse")
    xref = Xref(size & _U32, XrefType.CROSS_REFERENCE_STREAM)

    try:
        index = _integer_array(trailer.get(b"Index"))
    except XrefError:
        index = [0, size]
    widths = _integer_array(trailer.get(b"W"))
    if len(widths) < 3 or any(width < 0 for width in widths[:3]):
        raise XrefError("parse")
    type_width, second_width, third_width = widths[:3]

    reader = _FieldReader(stream.content)
    for start, count in zip(index[0::2], index[1::2]):
        for offset in range(max(count, 0)):
            number = (start + offset) & _U32
            entry_type = reader.read(type_width) if type_width else 1
            if entry_type == 0:
                reader.read(second_width)
                reader.read(third_width)
            elif entry_type == 1:
                position = reader.read(second_width)
                generation = reader.read(third_width) & _U16 if third_width else 0
                xref.insert(number, NormalEntry(position, generation))
            elif entry_type == 2:
                container = reader.read(second_width)
                position_in_stream = reader.read(third_width) & _U16
                xref.insert(number, CompressedEntry(container, position_in_stream))

    for key in (b"Length", b"W", b"Index"):
        trailer.pop(key, None)
    return xref, trailer