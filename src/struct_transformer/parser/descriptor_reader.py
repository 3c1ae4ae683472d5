"""Read protoc FileDescriptorProtos into the application's SchemaFile models."""

from __future__ import annotations

from typing import List, Set

from google.protobuf import descriptor_pb2 as d2

from struct_transformer.models import (
    FieldKind,
    SchemaField,
    SchemaFile,
    SchemaMessage,
    TypeSymbol,
)
from struct_transformer.naming import go_camel_case
from struct_transformer.options import read_descriptor_options

_SCALAR_TYPES = {
    d2.FieldDescriptorProto.TYPE_DOUBLE: "double",
    d2.FieldDescriptorProto.TYPE_FLOAT: "float",
    d2.FieldDescriptorProto.TYPE_INT64: "int64",
    d2.FieldDescriptorProto.TYPE_UINT64: "uint64",
    d2.FieldDescriptorProto.TYPE_INT32: "int32",
    d2.FieldDescriptorProto.TYPE_FIXED64: "fixed64",
    d2.FieldDescriptorProto.TYPE_FIXED32: "fixed32",
    d2.FieldDescriptorProto.TYPE_BOOL: "bool",
    d2.FieldDescriptorProto.TYPE_STRING: "string",
    d2.FieldDescriptorProto.TYPE_BYTES: "bytes",
    d2.FieldDescriptorProto.TYPE_UINT32: "uint32",
    d2.FieldDescriptorProto.TYPE_SFIXED32: "sfixed32",
    d2.FieldDescriptorProto.TYPE_SFIXED64: "sfixed64",
    d2.FieldDescriptorProto.TYPE_SINT32: "sint32",
    d2.FieldDescriptorProto.TYPE_SINT64: "sint64",
}


def _qualify(package: str, name: str) -> str:
    return f"{package}.{name}" if package else name


def read_file(fd: d2.FileDescriptorProto) -> SchemaFile:
    """Convert one FileDescriptorProto; nested messages follow their parent."""
    result = SchemaFile(
        name=fd.name,
        package=fd.package,
        options=read_descriptor_options(fd.options) if fd.HasField("options") else {},
    )

    for enum in fd.enum_type:
        result.enums.append(_enum_symbol(enum.name, fd.package))
    for desc in fd.message_type:
        _read_message(desc, fd.package, "", result)
    return result


def _enum_symbol(relative: str, package: str) -> TypeSymbol:
    return TypeSymbol(
        full_name=_qualify(package, relative),
        kind=FieldKind.ENUM,
        go_name=go_camel_case(relative),
        package=package,
    )


def _map_entries(desc: d2.DescriptorProto, full_name: str) -> Set[str]:
    return {
        f"{full_name}.{n.name}"
        for n in desc.nested_type
        if n.options.map_entry
    }


def _read_message(
    desc: d2.DescriptorProto,
    package: str,
    scope: str,
    out: SchemaFile,
) -> None:
    relative = f"{scope}.{desc.name}" if scope else desc.name
    full_name = _qualify(package, relative)
    map_entries = _map_entries(desc, full_name)

    # Synthetic oneofs of proto3 optional fields are not unions.
    synthetic = {
        f.oneof_index
        for f in desc.field
        if f.HasField("oneof_index") and f.proto3_optional
    }
    real_oneofs: List[int] = [i for i in range(len(desc.oneof_decl)) if i not in synthetic]

    fields: List[SchemaField] = []
    for f in desc.field:
        type_name = f.type_name.lstrip(".")
        if f.type in _SCALAR_TYPES:
            kind, type_name = FieldKind.SCALAR, _SCALAR_TYPES[f.type]
        elif f.type == d2.FieldDescriptorProto.TYPE_ENUM:
            kind = FieldKind.ENUM
        elif type_name in map_entries:
            kind = FieldKind.MAP
        else:
            kind = FieldKind.MESSAGE

        oneof_index = None
        if f.HasField("oneof_index") and f.oneof_index not in synthetic:
            oneof_index = real_oneofs.index(f.oneof_index)

        fields.append(SchemaField(
            name=f.name,
            number=f.number,
            kind=kind,
            type_name=type_name,
            is_repeated=f.label == d2.FieldDescriptorProto.LABEL_REPEATED and kind is not FieldKind.MAP,
            oneof_index=oneof_index,
        ))

    out.messages.append(SchemaMessage(
        name=desc.name,
        full_name=full_name,
        go_name=go_camel_case(relative),
        fields=fields,
        oneofs=[desc.oneof_decl[i].name for i in real_oneofs],
        options=read_descriptor_options(desc.options) if desc.HasField("options") else {},
    ))

    for enum in desc.enum_type:
        out.enums.append(_enum_symbol(f"{relative}.{enum.name}", package))
    for nested in desc.nested_type:
        if nested.options.map_entry:
            continue
        _read_message(nested, package, relative, out)
