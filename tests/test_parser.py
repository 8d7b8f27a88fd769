import pytest

from pdfmill.objects import (
    Dictionary,
    HeaderError,
    Name,
    ObjectIdMismatchError,
    ObjectNotFoundError,
    ParseError,
    PdfError,
    PdfString,
    Reference,
    Stream,
    StringFormat,
    XrefError,
)
from pdfmill.parser import (
    MAX_BRACKET,
    Content,
    Operation,
    direct_object,
    header,
    indirect_object,
    parse_content,
    parse_hex_string,
    parse_integer,
    parse_literal_string,
    parse_name,
    parse_real,
    parse_xref_table,
    xref_and_trailer,
    xref_start,
)
from pdfmill.xref import CompressedEntry, NormalEntry, XrefType

BIG_GENERATION = b"""xref
0 1
0000000000 65536 f 
0 16
0000000000 65535 f 
0000153238 00000 n 
0000000019 00000 n 
0000000313 00000 n 
0000000333 00000 n 
0000145531 00000 n 
0000153407 00000 n 
0000145554 00000 n 
0000152303 00000 n 
0000152324 00000 n 
0000152514 00000 n 
0000152880 00000 n 
0000153106 00000 n 
0000153139 00000 n 
0000153532 00000 n 
0000153629 00000 n 
trailer
<</Size 16/Root 14 0 R
/Info 15 0 R
/ID [ <9DDC4B621B3F485FF5ED0F57D00A028F>
<9DDC4B621B3F485FF5ED0F57D00A028F> ]
/DocChecksum /2BCC3C7DE26E6BF3573E4A6E8362221F
>>
startxref
153804
%%EOF
"""

CONTENT = b"""
2 J
BT
/F1 12 Tf
0 Tc
0 Tw
72.5 712 TD
[(Unencoded streams can be read easily) 65 (,) ] TJ
0 -14 TD
[(b) 20 (ut generally tak) 10 (e more space than \\311)] TJ
T* (encoded streams.) Tj
\t\t"""


@pytest.mark.parametrize(
    "text, expected",
    [(b"0.12", 0.12), (b"-.12", -0.12), (b"10.", 10.0)],
)
def test_parse_real_number(text, expected):
    assert parse_real(text) == pytest.approx(expected)


def test_parse_real_rejects_integer():
    with pytest.raises(ParseError):
        parse_real(b"12")


def test_parse_integer():
    assert parse_integer(b"-42") == -42
    assert parse_integer(b"+7") == 7


def test_parse_integer_overflow():
    with pytest.raises(ParseError):
        parse_integer(b"9223372036854775808")


@pytest.mark.parametrize(
    "text, expected",
    [
        (b"()", b""),
        (b"(text())", b"text()"),
        (b"(text\r\n\\\\(nested\\t\\b\\f))", b"text\r\n\\(nested\t\x08\x0c)"),
        (b"(text\\0\\53\\053\\0053)", b"text\x00++\x053"),
        (b"(text line\\\n())", b"text line()"),
    ],
)
def test_parse_string(text, expected):
    result = parse_literal_string(text)
    assert result.value == expected
    assert result.format is StringFormat.LITERAL


def test_literal_string_nesting_limit():
    deepest = b"(" * (MAX_BRACKET + 1) + b")" * (MAX_BRACKET + 1)
    assert parse_literal_string(deepest).value == b"(" * MAX_BRACKET + b")" * MAX_BRACKET
    with pytest.raises(ParseError):
        parse_literal_string(b"(" * (MAX_BRACKET + 2) + b")" * (MAX_BRACKET + 2))


def test_unterminated_literal_string():
    with pytest.raises(ParseError):
        parse_literal_string(b"(abc\\")


@pytest.mark.parametrize(
    "text, expected",
    [(b"/ABC#5f", b"ABC\x5f"), (b"/#cb#ce#cc#e5", b"\xcb\xce\xcc\xe5")],
)
def test_parse_name(text, expected):
    assert parse_name(text) == Name(expected)


def test_parse_name_stops_at_bad_hex():
    with pytest.raises(ParseError):
        parse_name(b"/A#zz")


def test_hex_partial():
    assert parse_hex_string(b"<901FA>") == PdfString(b"\x90\x1f\xa0", StringFormat.HEXADECIMAL)


def test_hex_separated():
    assert parse_hex_string(b"<9 01F A>").value == b"\x90\x1f\xa0"


def test_parse_content():
    content = parse_content(CONTENT)
    operators = [operation.operator for operation in content.operations]
    assert operators == ["J", "BT", "Tf", "Tc", "Tw", "TD", "TJ", "TD", "TJ", "T*", "Tj"]
    assert content.operations[2] == Operation("Tf", [Name(b"F1"), 12])
    assert content.operations[6].operands == [
        [PdfString(b"Unencoded streams can be read easily"), 65, PdfString(b",")]
    ]
    assert content.operations[8].operands[0][-1] == PdfString(b"e more space than \xc9")


def test_content_with_comments():
    data = b"""0.5 0.5 0.5 setrgbcolor
% This is a comment
100 100 moveto
(Hello, world!) show
% Another comment
"""
    out = parse_content(data)
    assert len(out.operations) == 3
    assert out.operations[2].operands == [PdfString(b"Hello, world!")]


def test_empty_content():
    assert parse_content(b"") == Content([])


def test_big_generation_value():
    xref = parse_xref_table(BIG_GENERATION)
    assert len(xref.entries) == 15
    assert xref.get(1) == NormalEntry(153238, 0)
    assert xref.get(0) is None


def test_xref_table_requires_keyword():
    with pytest.raises(XrefError):
        parse_xref_table(b"trailer\n<<>>")


def test_xref_and_trailer_table():
    xref, trailer = xref_and_trailer(BIG_GENERATION)
    assert xref.size == 16
    assert xref.cross_reference_type is XrefType.CROSS_REFERENCE_TABLE
    assert trailer[b"Root"] == Reference(14, 0)


def test_xref_and_trailer_without_size():
    with pytest.raises(PdfError, match="trailer"):
        xref_and_trailer(b"xref\n0 1\n0000000000 65535 f \ntrailer\n<</Root 1 0 R>>\n")


def test_xref_and_trailer_stream():
    entries = b"\x00\x00\x00\x00" + b"\x01\x00\x0a\x00" + b"\x02\x00\x05\x01"
    data = (
        b"5 0 obj\n<</Type/XRef/Size 3/W [1 2 1]/Length 12>>stream\n"
        + entries
        + b"\nendstream\nendobj\n"
    )
    xref, trailer = xref_and_trailer(data)
    assert xref.cross_reference_type is XrefType.CROSS_REFERENCE_STREAM
    assert xref.get(1) == NormalEntry(10, 0)
    assert xref.get(2) == CompressedEntry(5, 1)
    assert trailer[b"Type"] == Name(b"XRef")
    assert b"W" not in trailer and b"Length" not in trailer


def test_xref_and_trailer_non_stream_object():
    with pytest.raises(XrefError):
        xref_and_trailer(b"1 0 obj\n42\nendobj\n")


def test_xref_and_trailer_garbage():
    with pytest.raises(PdfError, match="trailer"):
        xref_and_trailer(b"garbage")


def test_direct_object_dictionary():
    value = direct_object(b"<</Type/Page/Count 3/Kids[1 0 R]>>")
    expected = Dictionary({b"Type": Name(b"Page"), b"Count": 3, b"Kids": [Reference(1, 0)]})
    assert value == expected


def test_direct_object_values():
    assert direct_object(b"null") is None
    assert direct_object(b"true") is True
    assert direct_object(b"12 0 R") == Reference(12, 0)
    assert direct_object(b"[1 2.5 (x)]") == [1, 2.5, PdfString(b"x")]


def test_direct_object_ignores_trailing_bytes():
    assert direct_object(b"42 (hi)") == 42


def test_direct_object_failure():
    with pytest.raises(ParseError):
        direct_object(b")")


def test_indirect_object_with_stream():
    data = b"junk1 0 obj\n<</Length 5>>stream\nhello\nendstream\nendobj\n"
    object_id, value = indirect_object(data, 4, (1, 0))
    assert object_id == (1, 0)
    assert isinstance(value, Stream)
    assert value.content == b"hello"
    assert value.dict[b"Length"] == 5


def test_indirect_object_id_mismatch():
    data = b"1 0 obj\n42\nendobj\n"
    with pytest.raises(ObjectIdMismatchError):
        indirect_object(data, 0, (2, 0))


def test_indirect_object_unresolved_length():
    data = b"xx3 0 obj\n<</Length 4 0 R>>stream\nabc\nendstream\nendobj\n"

    def missing(reference):
        raise ObjectNotFoundError()

    _, value = indirect_object(data, 2, None, missing)
    assert value.content == b""
    assert value.start_position == data.index(b"abc")


def test_indirect_object_resolved_length():
    data = b"3 0 obj\n<</Length 4 0 R>>stream\nabc\nendstream\nendobj\n"
    seen = []

    def resolve(reference):
        seen.append(reference)
        return 3

    _, value = indirect_object(data, 0, None, resolve)
    assert value.content == b"abc"
    assert seen == [Reference(4, 0)]


def test_indirect_object_negative_length():
    data = b"3 0 obj\n<</Length -1>>stream\nabc\nendstream\nendobj\n"
    with pytest.raises(ParseError):
        indirect_object(data, 0)


def test_indirect_object_bad_offset():
    with pytest.raises(ParseError):
        indirect_object(b"1 0 obj 1 endobj", 100)


def test_header():
    assert header(b"%PDF-1.5\n%\xe2\xe3\xcf\xd3\n") == "1.5"
    with pytest.raises(HeaderError):
        header(b"garbage")


def test_xref_start():
    assert xref_start(b"startxref\n153804\n%%EOF\n") == 153804
    with pytest.raises(XrefError):
        xref_start(b"startxref 12")