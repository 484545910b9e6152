"""Tokenizer shared by the command parser and the expression evaluator."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Union

from jcscript.errors import JcScriptError


class TokenType(Enum):
    NUMBER = "number"
    STRING = "string"
    IDENT = "ident"
    HEX = "hex"          # #rrggbb colour literal
    OP = "op"            # + - * /
    LPAREN = "("
    RPAREN = ")"
    COMMA = ","
    DOT = "."
    EQUALS = "="
    OTHER = "other"      # any other character, lenient mode only


@dataclass(frozen=True)
class Token:
    type: TokenType
    text: str
    pos: int
    value: Union[int, float, str, None] = None

    def is_word(self, word: str) -> bool:
        """True for an identifier spelled exactly `word`."""
        return self.type is TokenType.IDENT and self.text == word


class TokenizeError(JcScriptError):
    """The text contains a character no token can start with."""

    def __init__(self, text: str, pos: int):
        super().__init__(f"Unexpected character {text[pos]!r} at column {pos + 1}")
        self.pos = pos


_TOKEN_RE = re.compile(r"""
    (?P<ws>\s+)
  | (?P<number>\d+(?:\.\d+)?|\.\d+)
  | (?P<string>"[^"]*")
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<hex>\#[0-9A-Fa-f]+)
  | (?P<op>[-+*/])
  | (?P<punct>[(),.=])
""", re.VERBOSE)

_PUNCT = {
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    ',': TokenType.COMMA,
    '.': TokenType.DOT,
    '=': TokenType.EQUALS,
}


def parse_number(text: str) -> Union[int, float]:
    """Integer when the literal has no fractional part."""
    if '.' in text:
        return float(text)
    return int(text)


def tokenize(text: str, strict: bool = True) -> List[Token]:
    """Split a line of script text into tokens.

    With strict=False a character outside the token alphabet becomes a
    one-character OTHER token instead of an error, so free text such as an
    unquoted `say` message can still be sliced from the line.

    Raises:
        TokenizeError: on any character outside the token alphabet (strict only)
    """
    tokens: List[Token] = []
    pos = 0
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None:
            if strict:
                raise TokenizeError(text, pos)
            tokens.append(Token(TokenType.OTHER, text[pos], pos, text[pos]))
            pos += 1
            continue
        kind = m.lastgroup
        lexeme = m.group()
        if kind == 'number':
            tokens.append(Token(TokenType.NUMBER, lexeme, pos, parse_number(lexeme)))
        elif kind == 'string':
            tokens.append(Token(TokenType.STRING, lexeme, pos, lexeme[1:-1]))
        elif kind == 'ident':
            tokens.append(Token(TokenType.IDENT, lexeme, pos, lexeme))
        elif kind == 'hex':
            tokens.append(Token(TokenType.HEX, lexeme, pos, lexeme))
        elif kind == 'op':
            tokens.append(Token(TokenType.OP, lexeme, pos, lexeme))
        elif kind == 'punct':
            tokens.append(Token(_PUNCT[lexeme], lexeme, pos, lexeme))
        pos = m.end()
    return tokens
