"""Tokenizer for Go source files.

Only as much of Go as the struct parser needs. Semicolons are inserted at
line ends following the Go specification, so the parser can treat a newline
after a field declaration like an explicit ``;``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import List


class GoTokenType(Enum):
    # Keywords
    PACKAGE = auto()
    IMPORT = auto()
    TYPE = auto()
    STRUCT = auto()
    INTERFACE = auto()
    FUNC = auto()
    VAR = auto()
    CONST = auto()
    MAP = auto()
    CHAN = auto()

    # Delimiters
    LBRACE = auto()
    RBRACE = auto()
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    SEMICOLON = auto()
    COMMA = auto()
    DOT = auto()
    STAR = auto()
    EQUALS = auto()
    OTHER = auto()

    # Literals
    IDENT = auto()
    NUMBER = auto()
    STRING_LIT = auto()

    # Special
    EOF = auto()


_KEYWORDS = {
    "package": GoTokenType.PACKAGE,
    "import": GoTokenType.IMPORT,
    "type": GoTokenType.TYPE,
    "struct": GoTokenType.STRUCT,
    "interface": GoTokenType.INTERFACE,
    "func": GoTokenType.FUNC,
    "var": GoTokenType.VAR,
    "const": GoTokenType.CONST,
    "map": GoTokenType.MAP,
    "chan": GoTokenType.CHAN,
}

_SINGLE = {
    "{": GoTokenType.LBRACE,
    "}": GoTokenType.RBRACE,
    "(": GoTokenType.LPAREN,
    ")": GoTokenType.RPAREN,
    "[": GoTokenType.LBRACKET,
    "]": GoTokenType.RBRACKET,
    ";": GoTokenType.SEMICOLON,
    ",": GoTokenType.COMMA,
    ".": GoTokenType.DOT,
    "*": GoTokenType.STAR,
    "=": GoTokenType.EQUALS,
}

# A newline after one of these ends the statement.
_SEMICOLON_AFTER = {
    GoTokenType.IDENT,
    GoTokenType.NUMBER,
    GoTokenType.STRING_LIT,
    GoTokenType.RPAREN,
    GoTokenType.RBRACKET,
    GoTokenType.RBRACE,
}


@dataclass
class GoToken:
    type: GoTokenType
    value: str
    line: int
    col: int


def tokenize_go(text: str) -> List[GoToken]:
    """Tokenize a Go source string into a list of tokens."""
    tokens: List[GoToken] = []
    i = 0
    line = 1
    col = 1
    n = len(text)

    def end_of_line() -> None:
        if tokens and tokens[-1].type in _SEMICOLON_AFTER:
            tokens.append(GoToken(GoTokenType.SEMICOLON, "\n", line, col))

    while i < n:
        ch = text[i]

        # Whitespace
        if ch in (" ", "\t", "\r"):
            i += 1
            col += 1
            continue

        if ch == "\n":
            end_of_line()
            i += 1
            line += 1
            col = 1
            continue

        # Single-line comment
        if ch == "/" and i + 1 < n and text[i + 1] == "/":
            while i < n and text[i] != "\n":
                i += 1
            continue

        # Multi-line comment; one spanning lines acts like a newline
        if ch == "/" and i + 1 < n and text[i + 1] == "*":
            i += 2
            col += 2
            saw_newline = False
            while i < n:
                if text[i] == "\n":
                    if not saw_newline:
                        end_of_line()
                    saw_newline = True
                    line += 1
                    col = 1
                    i += 1
                elif text[i] == "*" and i + 1 < n and text[i + 1] == "/":
                    i += 2
                    col += 2
                    break
                else:
                    col += 1
                    i += 1
            continue

        # Interpreted, raw and rune literals
        if ch in ('"', "`", "'"):
            start = i
            start_col = col
            i += 1
            col += 1
            while i < n and text[i] != ch:
                if text[i] == "\\" and ch != "`":
                    i += 1
                    col += 1
                if i < n and text[i] == "\n":
                    line += 1
                    col = 0
                i += 1
                col += 1
            i += 1  # closing quote
            col += 1
            tokens.append(GoToken(GoTokenType.STRING_LIT, text[start:i], line, start_col))
            continue

        if ch in _SINGLE:
            tokens.append(GoToken(_SINGLE[ch], ch, line, col))
            i += 1
            col += 1
            continue

        # Number (also hex, floats and the like; value is not interpreted)
        if ch.isdigit():
            start = i
            start_col = col
            while i < n and (text[i].isalnum() or text[i] in "._"):
                i += 1
                col += 1
            tokens.append(GoToken(GoTokenType.NUMBER, text[start:i], line, start_col))
            continue

        # Identifier / keyword
        if ch.isalpha() or ch == "_":
            start = i
            start_col = col
            while i < n and (text[i].isalnum() or text[i] == "_"):
                i += 1
                col += 1
            word = text[start:i]
            tok_type = _KEYWORDS.get(word, GoTokenType.IDENT)
            tokens.append(GoToken(tok_type, word, line, start_col))
            continue

        # Operators the struct parser does not care about (&, :, <-, ...)
        tokens.append(GoToken(GoTokenType.OTHER, ch, line, col))
        i += 1
        col += 1

    end_of_line()
    tokens.append(GoToken(GoTokenType.EOF, "", line, col))
    return tokens
