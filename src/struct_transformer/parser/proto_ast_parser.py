"""Recursive descent parser for protobuf (.proto) files.

Consumes a token stream from proto_tokenizer and produces proto AST nodes.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from struct_transformer.options import option_name

from .proto_ast import ProtoEnum, ProtoField, ProtoFile, ProtoMessage
from .proto_tokenizer import ProtoToken, ProtoTokenType

_LABELS = {
    ProtoTokenType.REPEATED,
    ProtoTokenType.OPTIONAL,
    ProtoTokenType.REQUIRED,
}


class ProtoParseError(Exception):
    """Raised when the parser encounters unexpected input."""

    def __init__(self, message: str, token: ProtoToken | None = None):
        if token:
            super().__init__(f"Line {token.line}:{token.col}: {message}")
        else:
            super().__init__(message)


class ProtoParser:
    """Recursive descent parser for .proto files."""

    def __init__(self, tokens: List[ProtoToken]):
        self._tokens = tokens
        self._pos = 0

    # -- public API --

    def parse(self) -> ProtoFile:
        """Parse the full token stream into a ProtoFile AST."""
        result = ProtoFile()

        while not self._at_end():
            tt = self._peek().type

            if tt == ProtoTokenType.MESSAGE:
                result.messages.append(self._parse_message())
            elif tt == ProtoTokenType.ENUM:
                result.enums.append(self._parse_enum())
            elif tt == ProtoTokenType.PACKAGE:
                self._advance()
                result.package = self._expect(ProtoTokenType.IDENT).value
                self._expect(ProtoTokenType.SEMICOLON)
            elif tt == ProtoTokenType.IMPORT:
                self._advance()
                if self._peek().value in ("public", "weak"):
                    self._advance()
                result.imports.append(self._expect(ProtoTokenType.STRING_LIT).value)
                self._expect(ProtoTokenType.SEMICOLON)
            elif tt == ProtoTokenType.OPTION:
                name, value = self._parse_option()
                result.options[name] = value
            elif tt in (ProtoTokenType.SYNTAX, ProtoTokenType.EDITION):
                self._skip_statement()
            elif tt in (ProtoTokenType.SERVICE, ProtoTokenType.EXTEND):
                self._skip_block()
            else:
                # Skip any unrecognised top-level token
                self._advance()

        return result

    # -- message parsing --

    def _parse_message(self) -> ProtoMessage:
        """Parse: MESSAGE IDENT LBRACE body RBRACE"""
        self._expect(ProtoTokenType.MESSAGE)
        msg = ProtoMessage(name=self._expect_word().value)
        self._expect(ProtoTokenType.LBRACE)
        self._parse_message_body(msg)
        self._expect(ProtoTokenType.RBRACE)
        return msg

    def _parse_message_body(self, msg: ProtoMessage) -> None:
        """Parse the contents between { and } of a message into ``msg``."""
        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tok = self._peek()
            tt = tok.type

            if tt == ProtoTokenType.MESSAGE and self._starts_block():
                msg.nested_messages.append(self._parse_message())
            elif tt == ProtoTokenType.ENUM and self._starts_block():
                msg.enums.append(self._parse_enum())
            elif tt == ProtoTokenType.ONEOF and self._starts_block():
                self._parse_oneof(msg)
            elif tt == ProtoTokenType.OPTION:
                name, value = self._parse_option()
                msg.options[name] = value
            elif tt in (ProtoTokenType.RESERVED, ProtoTokenType.EXTENSIONS):
                self._skip_statement()
            elif tt == ProtoTokenType.EXTEND:
                self._skip_block()
            elif tt == ProtoTokenType.SEMICOLON:
                self._advance()
            elif tt in _LABELS:
                label = self._advance().value
                msg.fields.append(self._parse_field(label=label))
            elif tok.is_word:
                msg.fields.append(self._parse_field())
            else:
                self._advance()

    def _parse_oneof(self, msg: ProtoMessage) -> None:
        """Parse: ONEOF IDENT LBRACE field* RBRACE; arms join msg.fields."""
        self._expect(ProtoTokenType.ONEOF)
        name = self._expect_word().value
        msg.oneofs.append(name)
        self._expect(ProtoTokenType.LBRACE)

        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type
            if tt == ProtoTokenType.OPTION:
                self._skip_statement()
            elif tt == ProtoTokenType.SEMICOLON:
                self._advance()
            else:
                msg.fields.append(self._parse_field(oneof=name))

        self._expect(ProtoTokenType.RBRACE)

    def _parse_field(self, *, label: str = "", oneof: Optional[str] = None) -> ProtoField:
        """Parse: type name EQUALS NUMBER [options] SEMICOLON

        The type is either a (dotted) name or ``map<K, V>``.
        """
        is_map = False
        if self._peek().value == "map" and self._peek_at(1).type == ProtoTokenType.LANGLE:
            self._advance()  # map
            self._advance()  # <
            key = self._expect_word().value
            self._expect(ProtoTokenType.COMMA)
            value = self._expect_word().value
            self._expect(ProtoTokenType.RANGLE)
            type_name = f"map<{key},{value}>"
            is_map = True
        else:
            type_name = self._expect_word().value

        name_tok = self._expect_word()
        self._expect(ProtoTokenType.EQUALS)
        num_tok = self._expect(ProtoTokenType.NUMBER)
        if self._peek().type == ProtoTokenType.LBRACKET:
            self._skip_group(ProtoTokenType.LBRACKET, ProtoTokenType.RBRACKET)
        self._expect(ProtoTokenType.SEMICOLON)

        try:
            number = int(num_tok.value, 0)
        except ValueError:
            raise ProtoParseError(f"Invalid field number {num_tok.value!r}", num_tok)

        return ProtoField(
            type_name=type_name,
            field_name=name_tok.value,
            field_number=number,
            label=label,
            is_map=is_map,
            oneof=oneof,
        )

    # -- enum parsing --

    def _parse_enum(self) -> ProtoEnum:
        """Parse: ENUM IDENT LBRACE (IDENT EQUALS NUMBER [options] ;)* RBRACE"""
        self._expect(ProtoTokenType.ENUM)
        enum = ProtoEnum(name=self._expect_word().value)
        self._expect(ProtoTokenType.LBRACE)

        while not self._at_end() and self._peek().type != ProtoTokenType.RBRACE:
            tt = self._peek().type
            if tt in (ProtoTokenType.OPTION, ProtoTokenType.RESERVED):
                self._skip_statement()
            elif tt == ProtoTokenType.SEMICOLON:
                self._advance()
            else:
                name = self._expect_word().value
                self._expect(ProtoTokenType.EQUALS)
                num_tok = self._expect(ProtoTokenType.NUMBER)
                if self._peek().type == ProtoTokenType.LBRACKET:
                    self._skip_group(ProtoTokenType.LBRACKET, ProtoTokenType.RBRACKET)
                self._expect(ProtoTokenType.SEMICOLON)
                enum.values[name] = int(num_tok.value, 0)

        self._expect(ProtoTokenType.RBRACE)
        return enum

    # -- options --

    def _parse_option(self) -> Tuple[str, str]:
        """Parse: OPTION name EQUALS constant SEMICOLON

        Names like ``(transformer.go_struct)`` are returned without the
        transformer package; aggregate values are skipped and read as "".
        """
        self._expect(ProtoTokenType.OPTION)
        parts: List[str] = []
        while not self._at_end() and self._peek().type != ProtoTokenType.EQUALS:
            parts.append(self._advance().value)
        if not parts:
            raise ProtoParseError("Expected option name", self._peek())
        self._expect(ProtoTokenType.EQUALS)

        tok = self._peek()
        if tok.type == ProtoTokenType.LBRACE:
            self._skip_group(ProtoTokenType.LBRACE, ProtoTokenType.RBRACE)
            value = ""
        elif tok.type == ProtoTokenType.STRING_LIT:
            value = ""
            while self._peek().type == ProtoTokenType.STRING_LIT:
                value += self._advance().value
        elif tok.type in (ProtoTokenType.NUMBER, ProtoTokenType.IDENT):
            value = self._advance().value
        else:
            raise ProtoParseError(f"Unexpected option value {tok.value!r}", tok)
        self._expect(ProtoTokenType.SEMICOLON)

        return option_name("".join(parts)), value

    # -- skip helpers --

    def _skip_statement(self) -> None:
        """Skip tokens until (and including) the next semicolon."""
        while not self._at_end():
            tok = self._advance()
            if tok.type == ProtoTokenType.SEMICOLON:
                return

    def _skip_block(self) -> None:
        """Skip a keyword + IDENT + braced block (e.g. service, extend)."""
        self._advance()  # keyword
        # Skip until opening brace
        while not self._at_end() and self._peek().type != ProtoTokenType.LBRACE:
            self._advance()
        self._skip_group(ProtoTokenType.LBRACE, ProtoTokenType.RBRACE)

    def _skip_group(self, opener: ProtoTokenType, closer: ProtoTokenType) -> None:
        """Skip a balanced group starting at the current opener token."""
        if self._peek().type != opener:
            return
        self._advance()
        depth = 1
        while not self._at_end() and depth > 0:
            tok = self._advance()
            if tok.type == opener:
                depth += 1
            elif tok.type == closer:
                depth -= 1

    # -- token helpers --

    def _starts_block(self) -> bool:
        """True when the keyword at point is followed by ``name {``."""
        return self._peek_at(1).is_word and self._peek_at(2).type == ProtoTokenType.LBRACE

    def _peek(self) -> ProtoToken:
        return self._tokens[self._pos]

    def _peek_at(self, offset: int) -> ProtoToken:
        idx = self._pos + offset
        if idx < len(self._tokens):
            return self._tokens[idx]
        return self._tokens[-1]  # EOF

    def _advance(self) -> ProtoToken:
        tok = self._tokens[self._pos]
        if tok.type != ProtoTokenType.EOF:
            self._pos += 1
        return tok

    def _expect(self, expected: ProtoTokenType) -> ProtoToken:
        tok = self._peek()
        if tok.type != expected:
            raise ProtoParseError(
                f"Expected {expected.name}, got {tok.type.name} ({tok.value!r})",
                tok,
            )
        return self._advance()

    def _expect_word(self) -> ProtoToken:
        tok = self._peek()
        if not tok.is_word:
            raise ProtoParseError(
                f"Expected IDENT, got {tok.type.name} ({tok.value!r})",
                tok,
            )
        return self._advance()

    def _at_end(self) -> bool:
        return self._tokens[self._pos].type == ProtoTokenType.EOF
