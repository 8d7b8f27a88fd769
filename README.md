# pdfmill

A pure-Python library for reading, modifying and writing PDF documents.
It works at the level of PDF objects: dictionaries, arrays, names, strings,
streams and indirect references, together with the cross-reference data
that ties a file together. It has no dependencies outside the standard
library.

## Installation

```
pip install pdfmill
```

## Modules

- `pdfmill.objects`: the object model (`Name`, `PdfString`, `StringFormat`,
  `Reference`, `Dictionary`, `Stream`), `format_object`, `type_name` and the
  error classes, all derived from `PdfError`.
- `pdfmill.xref`: cross-reference entries (`NormalEntry`, `CompressedEntry`,
  `FreeEntry`, `UnusableFreeEntry`), `Xref`, `XrefSection`,
  `format_xref_entry` and `decode_xref_stream`.
- `pdfmill.parser`: parsers for file syntax (`direct_object`,
  `indirect_object`, `header`, `xref_and_trailer`, `xref_start`, ...) and for
  content streams (`parse_content`, `Content`, `Operation`).
- `pdfmill.object_stream`: `parse_object_stream` for compressed object streams.
- `pdfmill.document`: the in-memory `Document`.
- `pdfmill.xobject`: `form`, a builder for form XObjects.
- `pdfmill.reader`: `Reader`, `load`, `load_from`, `load_mem`.
- `pdfmill.writer`: `serialize_object`, `save`, `save_to`.

PDF values map onto Python values: null is `None`, booleans are `bool`,
integers are `int`, reals are `float` and arrays are `list`.

## Loading a document

```python
from pdfmill.reader import load, load_mem

doc = load("input.pdf")
print(doc.version)

with open("input.pdf", "rb") as fh:
    doc = load_mem(fh.read())
```

`load` also accepts a `filter_func(object_id, obj)` that is called for every
object read, including those inside object streams. Return `None` to drop
the object, or an `(id, obj)` pair to keep it; the returned object is the
one stored. Loading raises `HeaderError` when the file has no `%PDF-`
header and `XrefError` when the cross-reference data cannot be found or
read; both are subclasses of `PdfError`.

## Objects

```python
from pdfmill.objects import Dictionary, Name, PdfString, Reference, Stream

page = Dictionary()
page["Type"] = Name(b"Page")
page["Parent"] = Reference(1, 0)
print(page.type_name())      # "Page"

data = b"0 0 m 100 100 l S\n" * 50
stream = Stream(Dictionary(), data)
stream.compress()            # adds /Filter /FlateDecode, since it saves space
print(stream.filters())      # ['FlateDecode']
assert stream.decompressed_content() == data
```

`Stream.compress` only compresses an unfiltered stream, and only when the
result is smaller. `decompressed_content` and `decompress` handle the
`FlateDecode` and `LZWDecode` filters, including PNG predictors given in
`DecodeParms`; other filters and image streams raise `ObjectTypeError`.

## Editing a document

```python
from pdfmill.document import Document
from pdfmill.objects import Dictionary, PdfString

doc = Document()
obj_id = doc.add_object(PdfString(b"hello"))
info_id = doc.add_object(Dictionary())
doc.trailer["Info"] = info_id
doc.change_producer("pdfmill")
doc.compress()
doc.delete_zero_length_streams()
doc.delete_object(obj_id)
```

`Document` also offers `get_object`, `decompress`, `change_content_stream`
and `extract_stream`, which writes a stream's bytes to
`(number, generation).bin` in the current directory.

Form XObjects can be built with
`pdfmill.xobject.form(bounding_box, matrix, content)`.

## Parsing content streams

```python
from pdfmill.parser import parse_content

content = parse_content(b"BT /F1 12 Tf (Hello) Tj ET")
for op in content.operations:
    print(op.operator, op.operands)
```

Parsing stops at the first operation that cannot be read.

## Saving

```python
import io
from pdfmill.writer import save, save_to

save(doc, "output.pdf")

buffer = io.BytesIO()
save_to(doc, buffer)
```

Documents read with a cross-reference stream are written back with one;
others get a classic cross-reference table and trailer. Saving updates the
trailer's `/Size`. Object streams, cross-reference streams and
linearization dictionaries in the document are not written out.

## What it does not do

pdfmill works with objects, not with pages. It has no page-tree helpers,
no text extraction or replacement, no outline or table-of-contents reading,
no image embedding and no incremental (append-only) saving. There is no
command-line tool.

## Running the tests

```
pip install pdfmill[test]
pytest
```