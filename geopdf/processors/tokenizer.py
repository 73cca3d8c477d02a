"""
Content Stream Tokenizer

Splits raw content-stream bytes into operands and operators on top of
pdfminer's content lexer. The lexer is made lenient where pdfminer drops
input: malformed numbers become 0.0 and an unterminated string runs to the end
of the data, so one bad token never aborts a page.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Union

from pdfminer.pdfinterp import PDFContentParser
from pdfminer.pdftypes import PDFStream
from pdfminer.psparser import (
    KEYWORD_ARRAY_BEGIN,
    KEYWORD_ARRAY_END,
    KEYWORD_DICT_BEGIN,
    KEYWORD_DICT_END,
    KEYWORD_PROC_BEGIN,
    KEYWORD_PROC_END,
    PSEOF,
    PSKeyword,
    PSLiteral,
)

from geopdf.constants.pdf_operators import (
    KEYWORD_FALSE,
    KEYWORD_TRUE,
    OP_END_INLINE_IMAGE,
    OP_INLINE_IMAGE_DATA,
)

logger = logging.getLogger(__name__)


class TokenType(str, Enum):
    NUMBER = "number"
    NAME = "name"
    STRING = "string"
    ARRAY_START = "array_start"
    ARRAY_END = "array_end"
    DICT_START = "dict_start"
    DICT_END = "dict_end"
    OPERATOR = "operator"


class PdfName(str):
    """A PDF name without its leading slash."""

    def __repr__(self) -> str:
        return f"/{str.__str__(self)}"


class PdfString(bytes):
    """Bytes of a literal or hex string."""


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: Any = None


_DELIMITER_TOKENS = {
    KEYWORD_ARRAY_BEGIN: Token(TokenType.ARRAY_START),
    KEYWORD_ARRAY_END: Token(TokenType.ARRAY_END),
    KEYWORD_DICT_BEGIN: Token(TokenType.DICT_START),
    KEYWORD_DICT_END: Token(TokenType.DICT_END),
}


def decode_name(name: Union[str, bytes]) -> str:
    """
    Resource-dictionary key for a lexed name.

    #xx escapes are already resolved by the lexer (PDF spec 7.3.5); names that
    are not valid UTF-8 come back as bytes and are read as Latin-1.
    """
    if isinstance(name, bytes):
        return name.decode("latin-1")
    return name


class _ContentLexer(PDFContentParser):
    """pdfminer content lexer over a single in-memory stream."""

    def __init__(self, data: bytes):
        # Trailing whitespace flushes a final operator on every pdfminer release
        super().__init__([PDFStream({}, data + b"\n")])

    def _parse_number(self, s: bytes, i: int) -> int:
        return self._number_or_zero(super()._parse_number, s, i)

    def _parse_float(self, s: bytes, i: int) -> int:
        return self._number_or_zero(super()._parse_float, s, i)

    def _number_or_zero(self, parse, s: bytes, i: int) -> int:
        pending = len(self._tokens)
        end = parse(s, i)
        if self._parse1 == self._parse_main and len(self._tokens) == pending:
            logger.debug(f"Malformed numeric token {self._curtoken!r}, using 0.0")
            self._add_token(0.0)
        return end

    @property
    def in_string(self) -> bool:
        return self._parse1 == self._parse_string

    @property
    def token_start(self) -> int:
        return self._curtokenpos


def _to_token(value: Any) -> Token:
    if isinstance(value, bool):
        return Token(TokenType.OPERATOR, KEYWORD_TRUE if value else KEYWORD_FALSE)
    if isinstance(value, (int, float)):
        return Token(TokenType.NUMBER, float(value))
    if isinstance(value, PSLiteral):
        return Token(TokenType.NAME, PdfName(decode_name(value.name)))
    if isinstance(value, bytes):
        return Token(TokenType.STRING, PdfString(value))
    return Token(TokenType.OPERATOR, value.name)


def iter_tokens(data: bytes) -> Iterator[Token]:
    """
    Lazily tokenize content-stream bytes.

    Each call starts a fresh lexer, so the same buffer can be tokenized any
    number of times.
    """
    lexer = _ContentLexer(data)
    while True:
        try:
            pos, value = lexer.nexttoken()
        except PSEOF:
            if lexer.in_string:
                yield Token(TokenType.STRING, PdfString(data[lexer.token_start + 1:]))
            return

        if value is KEYWORD_PROC_BEGIN or value is KEYWORD_PROC_END:
            continue
        if isinstance(value, PSKeyword) and value in _DELIMITER_TOKENS:
            yield _DELIMITER_TOKENS[value]
            continue

        token = _to_token(value)
        if token.value != OP_INLINE_IMAGE_DATA:
            yield token
            continue

        # Binary image data runs up to a standalone EI keyword
        yield Token(TokenType.OPERATOR, OP_END_INLINE_IMAGE)
        try:
            lexer.get_inline_data(pos + len(b"ID "))
        except PSEOF:
            logger.debug("Inline image without EI, skipping to end of stream")
            return
