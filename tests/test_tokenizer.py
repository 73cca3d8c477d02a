from geopdf.processors.tokenizer import PdfName, PdfString, Token, TokenType, decode_name, iter_tokens


def _values(data: bytes):
    return [(t.type, t.value) for t in iter_tokens(data)]


def test_numbers_and_operator() -> None:
    assert _values(b"1 -2.5 .5 +3 0 0 cm") == [
        (TokenType.NUMBER, 1.0),
        (TokenType.NUMBER, -2.5),
        (TokenType.NUMBER, 0.5),
        (TokenType.NUMBER, 3.0),
        (TokenType.NUMBER, 0.0),
        (TokenType.NUMBER, 0.0),
        (TokenType.OPERATOR, b"cm"),
    ]


def test_malformed_number_becomes_zero() -> None:
    tokens = list(iter_tokens(b"1-2 -- 5 l"))
    assert [t.value for t in tokens] == [1.0, -2.0, 0.0, 0.0, 5.0, b"l"]


def test_lone_sign_and_dot_keep_operand_count() -> None:
    tokens = list(iter_tokens(b"0 0 m . + l"))
    assert [t.value for t in tokens] == [0.0, 0.0, b"m", 0.0, 0.0, b"l"]


def test_name_escapes_are_decoded() -> None:
    (token,) = list(iter_tokens(b"/Name#20x"))
    assert token.type == TokenType.NAME
    assert isinstance(token.value, PdfName)
    assert token.value == "Name x"
    assert repr(token.value) == "/Name x"


def test_decode_name_reads_bytes_as_latin1() -> None:
    assert decode_name(b"Caf\xe9") == "Caf\u00e9"
    assert decode_name("Plain") == "Plain"


def test_literal_string_with_nested_parentheses() -> None:
    tokens = list(iter_tokens(b"(a(b)c) Tj"))
    assert tokens[0] == Token(TokenType.STRING, PdfString(b"a(b)c"))
    assert tokens[1] == Token(TokenType.OPERATOR, b"Tj")


def test_escaped_parenthesis_does_not_close_string() -> None:
    tokens = list(iter_tokens(rb"(a\)b) Tj"))
    assert tokens[0].value == b"a)b"
    assert tokens[1].value == b"Tj"


def test_unterminated_string_runs_to_end() -> None:
    tokens = list(iter_tokens(b"(never closed 0 0 m"))
    assert tokens == [Token(TokenType.STRING, PdfString(b"never closed 0 0 m"))]


def test_hex_string_and_dictionary_delimiters() -> None:
    assert [t.type for t in iter_tokens(b"<41> << /MCID 3 >> [1 2]")] == [
        TokenType.STRING,
        TokenType.DICT_START,
        TokenType.NAME,
        TokenType.NUMBER,
        TokenType.DICT_END,
        TokenType.ARRAY_START,
        TokenType.NUMBER,
        TokenType.NUMBER,
        TokenType.ARRAY_END,
    ]


def test_comments_are_skipped() -> None:
    assert [t.value for t in iter_tokens(b"% header\n1 w")] == [1.0, b"w"]


def test_keywords_come_out_as_operators() -> None:
    tokens = list(iter_tokens(b"true false null"))
    assert [t.type for t in tokens] == [TokenType.OPERATOR] * 3
    assert [t.value for t in tokens] == [b"true", b"false", b"null"]


def test_inline_image_data_is_skipped() -> None:
    data = b"BI /W 1 /H 1 ID \x00\xff(]> EI Q"
    ops = [t.value for t in iter_tokens(data) if t.type == TokenType.OPERATOR]
    assert ops == [b"BI", b"EI", b"Q"]


def test_tokenizing_is_restartable() -> None:
    data = b"q 1 0 0 1 5 5 cm 0 0 m 10 10 l S Q"
    assert list(iter_tokens(data)) == list(iter_tokens(data))


def test_empty_input() -> None:
    assert list(iter_tokens(b"")) == []


def test_final_operator_without_trailing_whitespace() -> None:
    assert [t.value for t in iter_tokens(b"0 0 10 10 re f")][-1] == b"f"


def test_procedure_braces_are_ignored() -> None:
    assert [t.value for t in iter_tokens(b"{ 1 w }")] == [1.0, b"w"]


def test_inline_image_without_end_stops_tokenizing() -> None:
    tokens = list(iter_tokens(b"q BI /W 1 ID \x00\x01\x02 0 0 m"))
    ops = [t.value for t in tokens if t.type == TokenType.OPERATOR]
    assert ops == [b"q", b"BI", b"EI"]
