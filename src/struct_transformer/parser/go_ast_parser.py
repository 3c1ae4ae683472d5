"""Recursive descent parser for Go source files.

Consumes a token stream from go_tokenizer and produces Go AST nodes. Only
type declarations are parsed; functions, variables, constants and imports
are skipped.
"""

from __future__ import annotations

from typing import List, Optional, Union

from .go_ast import GoFieldDecl, GoFile, GoStructType, GoTypeAlias
from .go_tokenizer import GoToken, GoTokenType

_OPENERS = {GoTokenType.LBRACE, GoTokenType.LPAREN, GoTokenType.LBRACKET}
_CLOSERS = {GoTokenType.RBRACE, GoTokenType.RPAREN, GoTokenType.RBRACKET}


class GoParseError(Exception):
    def __init__(self, message: str, token: GoToken | None = None):
        if token:
            super().__init__(f"Line {token.line}:{token.col}: {message}")
        else:
            super().__init__(message)


class GoParser:
    """Recursive descent parser for Go type declarations."""

    def __init__(self, tokens: List[GoToken]):
        self._tokens = tokens
        self._pos = 0

    # -- public API --

    def parse(self) -> GoFile:
        """Parse the full token stream into a GoFile AST."""
        result = GoFile()

        while not self._at_end():
            tt = self._peek().type

            if tt == GoTokenType.PACKAGE:
                self._advance()
                result.package = self._expect(GoTokenType.IDENT).value
            elif tt == GoTokenType.TYPE:
                for decl in self._parse_type_decl():
                    if isinstance(decl, GoStructType):
                        result.structs.append(decl)
                    elif decl is not None:
                        result.type_aliases.append(decl)
            elif tt == GoTokenType.FUNC:
                self._skip_func()
            elif tt in (GoTokenType.IMPORT, GoTokenType.VAR, GoTokenType.CONST):
                self._advance()
                if self._peek().type == GoTokenType.LPAREN:
                    self._skip_group()
                else:
                    self._skip_statement()
            else:
                self._advance()

        return result

    # -- type declarations --

    def _parse_type_decl(self) -> List[Union[GoStructType, GoTypeAlias, None]]:
        """Parse: TYPE spec | TYPE ( spec; spec; ... )"""
        self._expect(GoTokenType.TYPE)

        if self._peek().type != GoTokenType.LPAREN:
            return [self._parse_type_spec()]

        self._advance()  # consume LPAREN
        specs: List[Union[GoStructType, GoTypeAlias, None]] = []
        while not self._at_end() and self._peek().type != GoTokenType.RPAREN:
            if self._peek().type == GoTokenType.SEMICOLON:
                self._advance()
                continue
            specs.append(self._parse_type_spec())
        self._expect(GoTokenType.RPAREN)
        return specs

    def _parse_type_spec(self) -> Union[GoStructType, GoTypeAlias, None]:
        """Parse: IDENT [type params] [=] type"""
        name = self._expect(GoTokenType.IDENT).value

        if self._is_type_params():
            self._skip_group()
        self._consume_if(GoTokenType.EQUALS)

        if self._peek().type == GoTokenType.STRUCT:
            self._advance()
            self._expect(GoTokenType.LBRACE)
            fields = self._parse_struct_body()
            self._expect(GoTokenType.RBRACE)
            self._consume_if(GoTokenType.SEMICOLON)
            return GoStructType(name=name, fields=fields)

        existing = self._parse_type()
        self._consume_if(GoTokenType.SEMICOLON)
        return GoTypeAlias(name=name, existing_type=existing)

    def _is_type_params(self) -> bool:
        """True for ``[T any]`` after a type name, False for ``[N]T`` arrays."""
        return (
            self._peek().type == GoTokenType.LBRACKET
            and self._peek_at(1).type == GoTokenType.IDENT
            and self._peek_at(2).type not in (GoTokenType.RBRACKET, GoTokenType.DOT)
        )

    # -- struct parsing --

    def _parse_struct_body(self) -> List[GoFieldDecl]:
        """Parse the field declarations between { and } of a struct."""
        fields: List[GoFieldDecl] = []

        while not self._at_end() and self._peek().type != GoTokenType.RBRACE:
            tt = self._peek().type

            if tt == GoTokenType.SEMICOLON:
                self._advance()
                continue

            if tt == GoTokenType.STAR or self._is_embedded_field():
                type_name = self._parse_type()
                fields.append(
                    GoFieldDecl(
                        names=[type_name.lstrip("*").rsplit(".", 1)[-1]],
                        type_name=type_name,
                        tag=self._parse_tag(),
                        is_embedded=True,
                    )
                )
            elif tt == GoTokenType.IDENT:
                names = [self._advance().value]
                while self._consume_if(GoTokenType.COMMA):
                    names.append(self._expect(GoTokenType.IDENT).value)
                type_name = self._parse_type()
                fields.append(GoFieldDecl(names=names, type_name=type_name, tag=self._parse_tag()))
            else:
                raise GoParseError(
                    f"Unexpected {tt.name} ({self._peek().value!r}) in struct body",
                    self._peek(),
                )

            if self._peek().type != GoTokenType.RBRACE:
                self._expect(GoTokenType.SEMICOLON)

        return fields

    def _is_embedded_field(self) -> bool:
        if self._peek().type != GoTokenType.IDENT:
            return False
        next_tt = self._peek_at(1).type
        return next_tt in (
            GoTokenType.DOT,
            GoTokenType.SEMICOLON,
            GoTokenType.STRING_LIT,
            GoTokenType.RBRACE,
        )

    def _parse_tag(self) -> str:
        tok = self._consume_if(GoTokenType.STRING_LIT)
        return tok.value if tok else ""

    # -- type expressions --

    def _parse_type(self) -> str:
        """Parse a type expression and return its canonical text."""
        tok = self._peek()
        tt = tok.type

        if tt == GoTokenType.STAR:
            self._advance()
            return "*" + self._parse_type()

        if tt == GoTokenType.LBRACKET:
            self._advance()
            if self._consume_if(GoTokenType.RBRACKET):
                return "[]" + self._parse_type()
            length = []
            while not self._at_end() and self._peek().type != GoTokenType.RBRACKET:
                length.append(self._advance().value)
            self._expect(GoTokenType.RBRACKET)
            return "[" + "".join(length) + "]" + self._parse_type()

        if tt == GoTokenType.MAP:
            self._advance()
            self._expect(GoTokenType.LBRACKET)
            key = self._parse_type()
            self._expect(GoTokenType.RBRACKET)
            return f"map[{key}]{self._parse_type()}"

        if tt == GoTokenType.CHAN:
            self._advance()
            while self._peek().type == GoTokenType.OTHER:
                self._advance()  # <- direction
            return "chan " + self._parse_type()

        if tt == GoTokenType.FUNC:
            self._advance()
            self._skip_group()
            if self._peek().type == GoTokenType.LPAREN:
                self._skip_group()
            elif self._peek().type not in (
                GoTokenType.SEMICOLON,
                GoTokenType.STRING_LIT,
                GoTokenType.RBRACE,
                GoTokenType.RPAREN,
                GoTokenType.COMMA,
            ):
                self._parse_type()
            return "func()"

        if tt in (GoTokenType.STRUCT, GoTokenType.INTERFACE):
            self._advance()
            self._skip_group()
            return tok.value + "{}"

        if tt == GoTokenType.LPAREN:
            self._advance()
            inner = self._parse_type()
            self._expect(GoTokenType.RPAREN)
            return inner

        name = self._expect(GoTokenType.IDENT).value
        if self._consume_if(GoTokenType.DOT):
            name += "." + self._expect(GoTokenType.IDENT).value
        if self._peek().type == GoTokenType.LBRACKET and self._peek_at(1).type != GoTokenType.RBRACKET:
            # Generic instantiation: Name[T]
            self._advance()
            args = [self._parse_type()]
            while self._consume_if(GoTokenType.COMMA):
                args.append(self._parse_type())
            self._expect(GoTokenType.RBRACKET)
            name += "[" + ", ".join(args) + "]"
        return name

    # -- skip helpers --

    def _skip_func(self) -> None:
        """Skip a function or method declaration including its body."""
        self._expect(GoTokenType.FUNC)
        if self._peek().type == GoTokenType.LPAREN:
            self._skip_group()  # receiver
        self._consume_if(GoTokenType.IDENT)
        if self._peek().type == GoTokenType.LBRACKET:
            self._skip_group()  # type params
        if self._peek().type == GoTokenType.LPAREN:
            self._skip_group()  # params
        if self._peek().type == GoTokenType.LPAREN:
            self._skip_group()  # results
        elif self._peek().type not in (GoTokenType.LBRACE, GoTokenType.SEMICOLON, GoTokenType.EOF):
            self._parse_type()
        if self._peek().type == GoTokenType.LBRACE:
            self._skip_group()
        self._consume_if(GoTokenType.SEMICOLON)

    def _skip_group(self) -> None:
        """Skip a balanced (...), [...] or {...} group."""
        if self._peek().type not in _OPENERS:
            return
        self._advance()
        depth = 1
        while not self._at_end() and depth > 0:
            tok = self._advance()
            if tok.type in _OPENERS:
                depth += 1
            elif tok.type in _CLOSERS:
                depth -= 1

    def _skip_statement(self) -> None:
        """Skip to the end of a statement, stepping over nested groups."""
        while not self._at_end():
            tt = self._peek().type
            if tt in _OPENERS:
                self._skip_group()
                continue
            self._advance()
            if tt == GoTokenType.SEMICOLON:
                return

    # -- token helpers --

    def _peek(self) -> GoToken:
        return self._tokens[self._pos]

    def _peek_at(self, offset: int) -> GoToken:
        idx = self._pos + offset
        if idx < len(self._tokens):
            return self._tokens[idx]
        return self._tokens[-1]  # EOF

    def _advance(self) -> GoToken:
        tok = self._tokens[self._pos]
        if tok.type != GoTokenType.EOF:
            self._pos += 1
        return tok

    def _expect(self, expected: GoTokenType) -> GoToken:
        tok = self._peek()
        if tok.type != expected:
            raise GoParseError(
                f"Expected {expected.name}, got {tok.type.name} ({tok.value!r})",
                tok,
            )
        return self._advance()

    def _consume_if(self, expected: GoTokenType) -> Optional[GoToken]:
        if self._peek().type == expected:
            return self._advance()
        return None

    def _at_end(self) -> bool:
        return self._tokens[self._pos].type == GoTokenType.EOF
