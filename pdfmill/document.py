"""An in-memory PDF document and the edits that can be made to it."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .objects import (
    Dictionary,
    ObjectNotFoundError,
    PdfError,
    PdfString,
    Reference,
    Stream,
)
from .xref import Xref, XrefType

ObjectId = tuple[int, int]


def _walk(obj: Any, action: Callable[[Any], None]) -> None:
    """Apply ``action`` to ``obj`` and then to every object nested in it."""
    action(obj)
    if isinstance(obj, list):
        children = list(obj)
    elif isinstance(obj, Dictionary):
        children = list(obj.values())
    elif isinstance(obj, Stream):
        children = [obj.dict]
    else:
        return
    for child in children:
        _walk(child, action)


@dataclass
class Document:
    """A PDF document: its objects keyed by (number, generation) plus a trailer."""

    version: str = "1.4"
    objects: dict[ObjectId, Any] = field(default_factory=dict)
    trailer: Dictionary = field(default_factory=Dictionary)
    reference_table: Xref = field(default_factory=lambda: Xref(0, XrefType.CROSS_REFERENCE_TABLE))
    max_id: int = 0
    xref_start: int = 0

    def add_object(self, obj: Any) -> Reference:
        """Store ``obj`` under a new object number and return its id."""
        self.max_id += 1
        object_id = Reference(self.max_id, 0)
        self.objects[object_id] = obj
        return object_id

    def get_object(self, id: ObjectId) -> Any:
        """Return the object with id ``id``."""
        try:
            return self.objects[tuple(id)]
        except KeyError:
            raise ObjectNotFoundError(f"object {tuple(id)} not found") from None

    def _traverse(self, action: Callable[[Any], None]) -> None:
        _walk(self.trailer, action)
        for obj in list(self.objects.values()):
            _walk(obj, action)

    def change_producer(self, producer: str) -> None:
        """Set /Producer in the document information dictionary, if there is one."""
        info = self.trailer.get(b"Info")
        if isinstance(info, Reference):
            info = self.objects.get(tuple(info))
        if isinstance(info, Dictionary):
            info[b"Producer"] = PdfString(producer)

    def compress(self) -> None:
        """Compress every stream that allows it, skipping any that fail."""
        for obj in self.objects.values():
            if isinstance(obj, Stream) and obj.allows_compression:
                try:
                    obj.compress()
                except PdfError:
                    continue

    def decompress(self) -> None:
        """Undo the filters of every stream that can be decoded."""
        for obj in self.objects.values():
            if isinstance(obj, Stream):
                obj.decompress()

    def delete_object(self, id: ObjectId) -> Any:
        """Remove an object and the references to it; return it, or None if absent.

        In arrays the first reference to the object is removed; in
        dictionaries every entry that refers to it is removed.
        """
        target = tuple(id)

        def refers(item: Any) -> bool:
            return isinstance(item, Reference) and tuple(item) == target

        def action(obj: Any) -> None:
            if isinstance(obj, list):
                for index, item in enumerate(obj):
                    if refers(item):
                        del obj[index]
                        break
            elif isinstance(obj, Dictionary):
                for key in [key for key, value in obj.items() if refers(value)]:
                    del obj[key]

        self._traverse(action)
        return self.objects.pop(target, None)

    def delete_zero_length_streams(self) -> list[ObjectId]:
        """Delete every stream with empty content and return their ids."""
        ids = [
            object_id
            for object_id, obj in self.objects.items()
            if isinstance(obj, Stream) and not obj.content
        ]
        for object_id in ids:
            self.delete_object(object_id)
        return ids

    def change_content_stream(self, stream_id: ObjectId, content: bytes) -> None:
        """Replace a stream's content with plain bytes and compress it."""
        stream = self.objects.get(tuple(stream_id))
        if isinstance(stream, Stream):
            stream.set_plain_content(content)
            try:
                stream.compress()
            except PdfError:
                pass

    def extract_stream(self, stream_id: ObjectId, decompress: bool) -> Path:
        """Write a stream's content to ``(number, generation).bin`` in the current directory.

        With ``decompress`` the decoded content is written when decoding
        succeeds. The file is created, empty, when there is no such stream.
        """
        number, generation = tuple(stream_id)
        path = Path(f"({number}, {generation}).bin")
        stream = self.objects.get((number, generation))
        data = b""
        if isinstance(stream, Stream):
            data = stream.content
            if decompress:
                try:
                    data = stream.decompressed_content()
                except PdfError:
                    data = stream.content
        with path.open("wb") as handle:
            handle.write(data)
        return path