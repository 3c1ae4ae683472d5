"""Build the domain struct catalog from Go model sources."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List

from struct_transformer.errors import ErrorKind, TransformError
from struct_transformer.models import DomainField, DomainStruct, StructCatalog

from .go_ast import GoFile
from .go_ast_parser import GoParseError, GoParser
from .go_tokenizer import tokenize_go

logger = logging.getLogger(__name__)


def parse_go_source(text: str, source_file: str = "") -> List[DomainStruct]:
    """Parse Go source text and return its struct declarations."""
    ast = GoParser(tokenize_go(text)).parse()
    return transform_go(ast, source_file)


def transform_go(ast: GoFile, source_file: str) -> List[DomainStruct]:
    """Transform a GoFile AST into DomainStruct objects.

    Type declarations naming another struct of the same file
    (``type Account User``) get a copy of that struct's fields.
    """
    structs: Dict[str, DomainStruct] = {}
    for node in ast.structs:
        fields: List[DomainField] = []
        for decl in node.fields:
            for name in decl.names:
                fields.append(DomainField(name=name, type_name=decl.type_name))
        structs[node.name] = DomainStruct(name=node.name, fields=fields, source_file=source_file)

    for alias in ast.type_aliases:
        target = structs.get(alias.existing_type)
        if target is not None and alias.name not in structs:
            structs[alias.name] = DomainStruct(
                name=alias.name,
                fields=list(target.fields),
                source_file=source_file,
            )

    return list(structs.values())


def _go_files(path: Path) -> List[Path]:
    if path.is_file():
        return [path]
    return sorted(
        p for p in path.glob("*.go")
        if p.is_file() and not p.name.endswith("_test.go")
    )


def parse_go_models(path: str) -> StructCatalog:
    """Parse a Go file, or every non-test .go file of a directory.

    Raises a FATAL TransformError if the path does not exist or a file
    cannot be parsed.
    """
    root = Path(path)
    if not root.exists():
        raise TransformError(f"models path {path} does not exist", ErrorKind.FATAL)

    catalog: StructCatalog = {}
    for go_file in _go_files(root):
        try:
            text = go_file.read_text(encoding="utf-8")
            structs = parse_go_source(text, source_file=str(go_file))
        except (OSError, UnicodeDecodeError, GoParseError) as e:
            raise TransformError(f"{go_file}: {e}", ErrorKind.FATAL) from e
        for s in structs:
            catalog[s.name] = s
        logger.debug("parsed %s: %d struct(s)", go_file, len(structs))

    return catalog
