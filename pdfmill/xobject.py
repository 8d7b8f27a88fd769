"""Builders for external objects placed on pages."""

from __future__ import annotations

from collections.abc import Iterable

from .objects import Dictionary, Name, PdfError, Stream


def form(bounding_box: Iterable[float], matrix: Iterable[float], content: bytes) -> Stream:
    """Build a form XObject stream, compressed when that saves space."""
    dictionary = Dictionary()
    dictionary[b"Type"] = Name("XObject")
    dictionary[b"Subtype"] = Name("Form")
    dictionary[b"BBox"] = [float(value) for value in bounding_box]
    dictionary[b"Matrix"] = [float(value) for value in matrix]
    xobject = Stream(dictionary, content)
    try:
        xobject.compress()
    except PdfError:
        pass
    return xobject