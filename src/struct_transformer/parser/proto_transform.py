"""Transform proto AST nodes into the application's SchemaFile models."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from struct_transformer.catalog import WELL_KNOWN_MESSAGES
from struct_transformer.models import (
    FieldKind,
    SchemaField,
    SchemaFile,
    SchemaMessage,
    TypeSymbol,
)
from struct_transformer.naming import go_camel_case

from .proto_ast import ProtoEnum, ProtoField, ProtoFile, ProtoMessage
from .proto_ast_parser import ProtoParser
from .proto_tokenizer import tokenize_proto

logger = logging.getLogger(__name__)

# Proto scalar types; any other field type is a message or enum reference.
PROTO_PRIMITIVES = {
    "int32", "sint32", "sfixed32", "uint32", "fixed32",
    "int64", "sint64", "sfixed64", "uint64", "fixed64",
    "float", "double", "bool", "string", "bytes",
}


def parse_proto_text(text: str) -> ProtoFile:
    """Parse .proto source text into a ProtoFile AST."""
    return ProtoParser(tokenize_proto(text)).parse()


def _qualify(package: str, name: str) -> str:
    return f"{package}.{name}" if package else name


def collect_symbols(ast: ProtoFile) -> List[TypeSymbol]:
    """List every message and enum declared in the file, nested ones included."""
    symbols: List[TypeSymbol] = []

    def visit_enum(enum: ProtoEnum, scope: str) -> None:
        relative = f"{scope}.{enum.name}" if scope else enum.name
        symbols.append(TypeSymbol(
            full_name=_qualify(ast.package, relative),
            kind=FieldKind.ENUM,
            go_name=go_camel_case(relative),
            package=ast.package,
        ))

    def visit_message(msg: ProtoMessage, scope: str) -> None:
        relative = f"{scope}.{msg.name}" if scope else msg.name
        symbols.append(TypeSymbol(
            full_name=_qualify(ast.package, relative),
            kind=FieldKind.MESSAGE,
            go_name=go_camel_case(relative),
            package=ast.package,
        ))
        for enum in msg.enums:
            visit_enum(enum, relative)
        for nested in msg.nested_messages:
            visit_message(nested, relative)

    for enum in ast.enums:
        visit_enum(enum, "")
    for msg in ast.messages:
        visit_message(msg, "")
    return symbols


def resolve_type(
    type_name: str,
    scope: str,
    kinds: Dict[str, FieldKind],
) -> Optional[str]:
    """Resolve a type reference the way protoc does: innermost scope first.

    ``scope`` is the full name of the enclosing message. Returns the full
    name without a leading dot, or None when nothing matches.
    """
    if type_name.startswith("."):
        full = type_name[1:]
        return full if full in kinds else None

    parts = scope.split(".") if scope else []
    while True:
        candidate = ".".join(parts + [type_name])
        if candidate in kinds:
            return candidate
        if not parts:
            return None
        parts.pop()


def transform_proto(
    ast: ProtoFile,
    file_name: str,
    kinds: Dict[str, FieldKind],
) -> SchemaFile:
    """Transform a ProtoFile AST into a SchemaFile.

    ``kinds`` maps the full name of every known message and enum (all files
    of the run) to its kind. Nested messages are flattened: the parent
    message appears first, followed by its nested messages.
    """
    result = SchemaFile(
        name=file_name,
        package=ast.package,
        options=dict(ast.options),
        enums=[s for s in collect_symbols(ast) if s.kind is FieldKind.ENUM],
    )
    for msg_node in ast.messages:
        result.messages.extend(_transform_message(msg_node, ast.package, "", kinds))
    return result


def _transform_message(
    node: ProtoMessage,
    package: str,
    scope: str,
    kinds: Dict[str, FieldKind],
) -> List[SchemaMessage]:
    relative = f"{scope}.{node.name}" if scope else node.name
    full_name = _qualify(package, relative)

    msg = SchemaMessage(
        name=node.name,
        full_name=full_name,
        go_name=go_camel_case(relative),
        fields=[_transform_field(f, node, full_name, kinds) for f in node.fields],
        oneofs=list(node.oneofs),
        options=dict(node.options),
    )

    result = [msg]
    for nested in node.nested_messages:
        result.extend(_transform_message(nested, package, relative, kinds))
    return result


def _transform_field(
    node: ProtoField,
    message: ProtoMessage,
    scope: str,
    kinds: Dict[str, FieldKind],
) -> SchemaField:
    oneof_index = message.oneofs.index(node.oneof) if node.oneof is not None else None

    if node.is_map:
        kind, type_name = FieldKind.MAP, node.type_name
    elif node.type_name in PROTO_PRIMITIVES:
        kind, type_name = FieldKind.SCALAR, node.type_name
    else:
        resolved = resolve_type(node.type_name, scope, kinds)
        if resolved is None:
            logger.debug("%s.%s: unresolved type %s", scope, node.field_name, node.type_name)
            kind, type_name = FieldKind.MESSAGE, node.type_name.lstrip(".")
        else:
            kind, type_name = kinds[resolved], resolved

    return SchemaField(
        name=node.field_name,
        number=node.field_number,
        kind=kind,
        type_name=type_name,
        is_repeated=node.is_repeated,
        oneof_index=oneof_index,
    )


def parse_proto_files(paths: Sequence[str], root: str = "") -> List[SchemaFile]:
    """Parse .proto files and resolve field types across all of them.

    File names are reported relative to ``root`` when it is given, the way
    protoc names files in a plugin request.
    """
    asts: List[tuple] = []
    for path in paths:
        text = Path(path).read_text(encoding="utf-8")
        name = Path(path).relative_to(root).as_posix() if root else Path(path).as_posix()
        asts.append((name, parse_proto_text(text)))

    kinds: Dict[str, FieldKind] = {name: FieldKind.MESSAGE for name in WELL_KNOWN_MESSAGES}
    for _, ast in asts:
        for symbol in collect_symbols(ast):
            kinds[symbol.full_name] = symbol.kind

    return [transform_proto(ast, name, kinds) for name, ast in asts]
