"""PDF object model: names, strings, references, dictionaries and streams.

PDF values map onto Python values as follows: null is ``None``, booleans are
``bool``, integers are ``int``, reals are ``float``, arrays are ``list``.
Names, strings, references, dictionaries and streams have their own types.
"""

from __future__ import annotations

import enum
import logging
import zlib
from collections.abc import Iterator, MutableMapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, NamedTuple

log = logging.getLogger(__name__)

_INFLATE_CHUNK = 64 * 1024
_LZW_CLEAR = 256
_LZW_END = 257
_LZW_MAX_WIDTH = 12


class PdfError(Exception):
    """Base class of every error raised by this package."""


class ObjectTypeError(PdfError, TypeError):
    """An object does not have the type an operation needs."""

    def __init__(self, message: str = "object has an unexpected type") -> None:
        super().__init__(message)


class DictKeyError(PdfError, KeyError):
    """A dictionary has no entry for the requested key."""


class ParseError(PdfError):
    """Input could not be parsed at the given offset."""

    def __init__(self, offset: int) -> None:
        self.offset = offset
        super().__init__(f"parse error at offset {offset}")


class XrefError(PdfError):
    """The cross-reference data is missing or broken.

    ``kind`` is one of ``"start"``, ``"prev_start"``, ``"stream_start"`` or
    ``"parse"``.
    """

    def __init__(self, kind: str = "parse") -> None:
        self.kind = kind
        super().__init__(f"invalid cross-reference data ({kind})")


class HeaderError(PdfError):
    """The file does not start with a PDF header."""

    def __init__(self, message: str = "missing or invalid PDF header") -> None:
        super().__init__(message)


class ObjectNotFoundError(PdfError, LookupError):
    """A requested object does not exist."""

    def __init__(self, message: str = "object not found") -> None:
        super().__init__(message)


class ObjectIdMismatchError(PdfError):
    """An indirect object carries a different id than expected."""

    def __init__(self, message: str = "object id mismatch") -> None:
        super().__init__(message)


class Name(bytes):
    """A PDF name object; text is stored as UTF-8."""

    __slots__ = ()

    def __new__(cls, value: bytes | str = b"") -> "Name":
        if isinstance(value, str):
            value = value.encode("utf-8")
        return super().__new__(cls, value)

    def __repr__(self) -> str:
        return f"Name({bytes(self)!r})"

    @property
    def text(self) -> str:
        """The name decoded as UTF-8."""
        return self.decode("utf-8")


class StringFormat(enum.Enum):
    """How a string object is written out."""

    LITERAL = "literal"
    HEXADECIMAL = "hexadecimal"


@dataclass(frozen=True)
class PdfString:
    """A PDF string object: raw bytes plus the format it is written in."""

    value: bytes
    format: StringFormat = StringFormat.LITERAL

    def __post_init__(self) -> None:
        raw = self.value.encode("utf-8") if isinstance(self.value, str) else bytes(self.value)
        object.__setattr__(self, "value", raw)

    @property
    def text(self) -> str:
        """The bytes decoded as UTF-8, replacing invalid sequences."""
        return self.value.decode("utf-8", errors="replace")


class Reference(NamedTuple):
    """A reference to an indirect object: object number and generation."""

    id: int
    generation: int = 0

    def __str__(self) -> str:
        return f"{self.id} {self.generation} R"


def _key(key: Any) -> bytes:
    if isinstance(key, str):
        return key.encode("utf-8")
    if isinstance(key, (bytes, bytearray)):
        return bytes(key)
    raise TypeError(f"dictionary keys must be bytes or str, not {type(key).__name__}")


def _value(value: Any) -> Any:
    if isinstance(value, str):
        return Name(value)
    return value


def _name_str(obj: Any) -> str:
    if not isinstance(obj, Name):
        raise ObjectTypeError("expected a name")
    try:
        return obj.decode("utf-8")
    except UnicodeDecodeError:
        raise ObjectTypeError("name is not valid UTF-8") from None


def _kind(obj: Any) -> str:
    if obj is None:
        return "null"
    if isinstance(obj, bool):
        return "boolean"
    if isinstance(obj, int):
        return "integer"
    if isinstance(obj, float):
        return "real"
    if isinstance(obj, Name):
        return "name"
    if isinstance(obj, PdfString):
        return "string"
    if isinstance(obj, Reference):
        return "reference"
    if isinstance(obj, list):
        return "array"
    if isinstance(obj, Dictionary):
        return "dictionary"
    if isinstance(obj, Stream):
        return "stream"
    raise ObjectTypeError(f"not a PDF object: {obj!r}")


class Dictionary(MutableMapping):
    """An insertion-ordered PDF dictionary keyed by name bytes.

    ``str`` keys are encoded as UTF-8 and ``str`` values are stored as names.
    """

    __slots__ = ("_items",)
    __hash__ = None  # type: ignore[assignment]

    def __init__(self, items: Any = (), /, **kwargs: Any) -> None:
        self._items: dict[bytes, Any] = {}
        self.update(items, **kwargs)

    def __getitem__(self, key: Any) -> Any:
        name = _key(key)
        try:
            return self._items[name]
        except KeyError:
            raise DictKeyError(name) from None

    def __setitem__(self, key: Any, value: Any) -> None:
        self._items[_key(key)] = _value(value)

    def __delitem__(self, key: Any) -> None:
        name = _key(key)
        try:
            del self._items[name]
        except KeyError:
            raise DictKeyError(name) from None

    def __contains__(self, key: object) -> bool:
        try:
            return _key(key) in self._items
        except TypeError:
            return False

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dictionary):
            return NotImplemented
        return list(self._items.items()) == list(other._items.items())

    def __repr__(self) -> str:
        return f"Dictionary({self._items!r})"

    def __str__(self) -> str:
        return format_object(self)

    def copy(self) -> "Dictionary":
        """Return a shallow copy."""
        return Dictionary(self)

    def type_name(self) -> str:
        """Return the /Type name, or "Linearized" for a linearization dictionary."""
        value = self._items.get(b"Type")
        if isinstance(value, Name):
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError:
                pass
        if b"Linearized" in self._items:
            return "Linearized"
        raise DictKeyError(b"Type")

    def type_is(self, type_name: bytes | str) -> bool:
        """Tell whether /Type is a name equal to ``type_name``."""
        value = self._items.get(b"Type")
        return isinstance(value, Name) and bytes(value) == _key(type_name)

    def font_encoding(self) -> str:
        """Return the /Encoding name, defaulting to StandardEncoding."""
        value = self._items.get(b"Encoding")
        if isinstance(value, Name):
            try:
                return value.decode("utf-8")
            except UnicodeDecodeError:
                pass
        return "StandardEncoding"

    def merge(self, other: "Dictionary") -> None:
        """Combine with ``other``; the result holds exactly the keys of ``other``.

        Where both hold a key, dictionaries merge recursively, arrays are
        concatenated, two numbers, strings or references become an array of
        both, and an existing null, boolean, name or stream is kept.
        """
        merged: dict[bytes, Any] = {}
        for key, value in other.items():
            if key not in self._items:
                merged[key] = value
                continue
            old = self._items[key]
            old_kind, new_kind = _kind(old), _kind(value)
            if old_kind == new_kind == "dictionary":
                combined = old.copy()
                combined.merge(value)
                merged[key] = combined
            elif old_kind == new_kind == "array":
                merged[key] = old + value
            elif old_kind == new_kind and old_kind in ("integer", "real", "string", "reference"):
                merged[key] = [old, value]
            elif old_kind in ("null", "boolean", "name", "stream"):
                merged[key] = old
            elif new_kind == "array":
                merged[key] = [old, *value]
            else:
                merged[key] = [value, old]
        self._items = merged


class Stream:
    """A stream object: a dictionary plus raw content bytes."""

    __slots__ = ("dict", "content", "allows_compression", "start_position")

    def __init__(
        self, dict: Dictionary | None = None, content: bytes = b"", *, allows_compression: bool = True
    ) -> None:
        self.dict = Dictionary() if dict is None else dict
        self.content = bytes(content)
        self.allows_compression = allows_compression
        self.start_position: int | None = None
        self.dict[b"Length"] = len(self.content)

    @classmethod
    def with_position(cls, dict: Dictionary, position: int) -> "Stream":
        """Create an empty stream whose data starts at ``position`` in the file."""
        stream = cls.__new__(cls)
        stream.dict = dict
        stream.content = b""
        stream.allows_compression = True
        stream.start_position = position
        return stream

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Stream):
            return NotImplemented
        return (
            self.dict == other.dict
            and self.content == other.content
            and self.allows_compression == other.allows_compression
            and self.start_position == other.start_position
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"Stream(dict={self.dict!r}, content=<{len(self.content)} bytes>, "
            f"allows_compression={self.allows_compression}, start_position={self.start_position})"
        )

    def filter(self) -> str:
        """Return the first filter name."""
        names = self.filters()
        if not names:
            raise ObjectNotFoundError("stream has an empty filter list")
        return names[0]

    def filters(self) -> list[str]:
        """Return the filter names in decoding order."""
        value = self.dict[b"Filter"]
        if isinstance(value, Name):
            return [_name_str(value)]
        if isinstance(value, list):
            return [_name_str(item) for item in value]
        raise ObjectTypeError("/Filter must be a name or an array of names")

    def set_content(self, content: bytes) -> None:
        """Replace the content and update /Length."""
        self.content = bytes(content)
        self.dict[b"Length"] = len(self.content)

    def set_plain_content(self, content: bytes) -> None:
        """Replace the content with unfiltered bytes, dropping any filter."""
        self.dict.pop(b"DecodeParms", None)
        self.dict.pop(b"Filter", None)
        self.dict[b"Length"] = len(content)
        self.content = bytes(content)

    def compress(self) -> None:
        """Flate-compress an unfiltered stream when that saves space."""
        if b"Filter" in self.dict:
            return
        compressed = zlib.compress(self.content, 9)
        if len(compressed) + 19 < len(self.content):
            self.dict[b"Filter"] = Name(b"FlateDecode")
            self.set_content(compressed)

    def decompressed_content(self) -> bytes:
        """Return the content with all filters undone.

        Raises ObjectTypeError for image streams, for unsupported filters and
        for an empty filter list.
        """
        params = self.dict.get(b"DecodeParms")
        if not isinstance(params, Dictionary):
            params = None
        names = self.filters()
        subtype = self.dict.get(b"Subtype")
        if isinstance(subtype, Name) and subtype == b"Image":
            raise ObjectTypeError("image streams are not decoded")
        if not names:
            raise ObjectTypeError("stream has no filters")

        data = self.content
        for name in names:
            if name == "FlateDecode":
                data = _apply_predictor(_inflate(data), params)
            elif name == "LZWDecode":
                early_change = _int_param(params, b"EarlyChange", 1) != 0
                data = _apply_predictor(_lzw_decode(data, early_change), params)
            else:
                raise ObjectTypeError(f"unsupported filter {name}")
        return data

    def decompress(self) -> None:
        """Undo all filters in place; leave the stream unchanged if that fails."""
        try:
            data = self.decompressed_content()
        except PdfError:
            return
        self.dict.pop(b"DecodeParms", None)
        self.dict.pop(b"Filter", None)
        self.set_content(data)


def _int_param(params: Dictionary | None, key: bytes, default: int) -> int:
    if params is None:
        return default
    value = params.get(key)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return default


def _inflate(data: bytes) -> bytes:
    if not data:
        return b""
    decoder = zlib.decompressobj()
    out = bytearray()
    try:
        for start in range(0, len(data), _INFLATE_CHUNK):
            out += decoder.decompress(data[start : start + _INFLATE_CHUNK])
        out += decoder.flush()
    except zlib.error as exc:
        log.warning("%s", exc)
    return bytes(out)


def _lzw_decode(data: bytes, early_change: bool) -> bytes:
    out = bytearray()
    initial = [bytes([value]) for value in range(256)] + [b"", b""]
    table = list(initial)
    width = 9
    previous: bytes | None = None
    buffer = 0
    bit_count = 0
    for byte in data:
        buffer = (buffer << 8) | byte
        bit_count += 8
        while bit_count >= width:
            bit_count -= width
            code = (buffer >> bit_count) & ((1 << width) - 1)
            buffer &= (1 << bit_count) - 1
            if code == _LZW_CLEAR:
                table = list(initial)
                width = 9
                previous = None
                continue
            if code == _LZW_END:
                return bytes(out)
            if code < len(table):
                entry = table[code]
            elif code == len(table) and previous is not None:
                entry = previous + previous[:1]
            else:
                log.warning("invalid LZW code %d", code)
                return bytes(out)
            out += entry
            if previous is not None and len(table) < (1 << _LZW_MAX_WIDTH):
                table.append(previous + entry[:1])
            previous = entry
            if len(table) + int(early_change) >= (1 << width) and width < _LZW_MAX_WIDTH:
                width += 1
    return bytes(out)


def _apply_predictor(data: bytes, params: Dictionary | None) -> bytes:
    if params is None:
        return data
    predictor = _int_param(params, b"Predictor", 1)
    if 10 <= predictor <= 15:
        columns = max(1, _int_param(params, b"Columns", 1))
        colors = max(1, _int_param(params, b"Colors", 1))
        bits = max(8, _int_param(params, b"BitsPerComponent", 8))
        data = _png_unfilter(data, colors * bits // 8, columns)
    return data


def _paeth(left: int, up: int, up_left: int) -> int:
    estimate = left + up - up_left
    distances = (abs(estimate - left), abs(estimate - up), abs(estimate - up_left))
    if distances[0] <= distances[1] and distances[0] <= distances[2]:
        return left
    if distances[1] <= distances[2]:
        return up
    return up_left


def _png_unfilter(data: bytes, bytes_per_pixel: int, pixels_per_row: int) -> bytes:
    stride = bytes_per_pixel * pixels_per_row
    out = bytearray()
    previous = bytes(stride)
    for start in range(0, len(data), stride + 1):
        kind = data[start]
        row = bytearray(data[start + 1 : start + 1 + stride])
        for i, value in enumerate(row):
            left = row[i - bytes_per_pixel] if i >= bytes_per_pixel else 0
            up = previous[i]
            up_left = previous[i - bytes_per_pixel] if i >= bytes_per_pixel else 0
            if kind == 0:
                continue
            if kind == 1:
                row[i] = (value + left) & 0xFF
            elif kind == 2:
                row[i] = (value + up) & 0xFF
            elif kind == 3:
                row[i] = (value + (left + up) // 2) & 0xFF
            elif kind == 4:
                row[i] = (value + _paeth(left, up, up_left)) & 0xFF
            else:
                raise PdfError(f"unknown PNG predictor filter type {kind}")
        out += row
        previous = bytes(row) + bytes(stride - len(row))
    return bytes(out)


def _format_real(value: float) -> str:
    if value != value:
        return "NaN"
    if value in (float("inf"), float("-inf")):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def type_name(obj: Any) -> str:
    """Return the /Type of a dictionary or of a stream's dictionary."""
    if isinstance(obj, Dictionary):
        return obj.type_name()
    if isinstance(obj, Stream):
        return obj.dict.type_name()
    raise ObjectTypeError("only dictionaries and streams have a type name")


def format_object(obj: Any) -> str:
    """Render an object as readable PDF-like text."""
    kind = _kind(obj)
    if kind == "null":
        return "null"
    if kind == "boolean":
        return "true" if obj else "false"
    if kind == "integer":
        return str(obj)
    if kind == "real":
        return _format_real(obj)
    if kind == "name":
        return "/" + obj.decode("utf-8", errors="replace")
    if kind == "string":
        if obj.format is StringFormat.HEXADECIMAL:
            return f"<{obj.value.hex()}>"
        return f"({obj.text})"
    if kind == "array":
        return "[" + " ".join(format_object(item) for item in obj) + "]"
    if kind == "dictionary":
        entries = "".join(
            f"/{key.decode('utf-8', errors='replace')} {format_object(value)}" for key, value in obj.items()
        )
        return f"<<{entries}>>"
    if kind == "stream":
        return f"{format_object(obj.dict)}stream...endstream"
    return str(obj)