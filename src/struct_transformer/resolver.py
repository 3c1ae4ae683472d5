"""Map the fields of a schema message onto the fields of its domain struct.

For each schema field the resolver finds the domain field by name and picks
the converter to use in each direction. A field that cannot be mapped is
reported as a FieldMiss instead of failing the message.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from struct_transformer.errors import ErrorKind, TransformError
from struct_transformer.models import (
    DomainField,
    DomainStruct,
    FieldKind,
    FieldMapping,
    FieldMiss,
    MessageOption,
    MessageOptionList,
    SchemaField,
    SchemaMessage,
    StructCatalog,
    TypeSymbol,
    collapse_fn_name,
    converter_name,
    expand_fn_name,
    normalize,
)
from struct_transformer.naming import go_camel_case, struct_name

logger = logging.getLogger(__name__)

# Proto scalar type -> Go type generated by protoc-gen-go
PROTO_TO_GO: Dict[str, str] = {
    "double": "float64",
    "float": "float32",
    "int32": "int32",
    "sint32": "int32",
    "sfixed32": "int32",
    "int64": "int64",
    "sint64": "int64",
    "sfixed64": "int64",
    "uint32": "uint32",
    "fixed32": "uint32",
    "uint64": "uint64",
    "fixed64": "uint64",
    "bool": "bool",
    "string": "string",
    "bytes": "[]byte",
}

GO_NUMERIC = {
    "int", "int8", "int16", "int32", "int64",
    "uint", "uint8", "uint16", "uint32", "uint64", "uintptr",
    "float32", "float64", "byte", "rune",
}
GO_BUILTINS = GO_NUMERIC | {"string", "bool", "error", "any"}

_WRAPPERS = {
    "DoubleValue": "float64",
    "FloatValue": "float32",
    "Int64Value": "int64",
    "UInt64Value": "uint64",
    "Int32Value": "int32",
    "UInt32Value": "uint32",
    "BoolValue": "bool",
    "StringValue": "string",
    "BytesValue": "[]byte",
}


def _well_known_conversions() -> Dict[Tuple[str, str], Tuple[str, str]]:
    table = {
        ("google.protobuf.Timestamp", "time.Time"): ("TimestampToTime", "TimeToTimestamp"),
        ("google.protobuf.Timestamp", "*time.Time"): ("TimestampToTimePtr", "TimePtrToTimestamp"),
        ("google.protobuf.Duration", "time.Duration"): ("DurationToTimeDuration", "TimeDurationToDuration"),
    }
    for wrapper, go_type in _WRAPPERS.items():
        title = "Bytes" if go_type == "[]byte" else go_type[:1].upper() + go_type[1:]
        key = f"google.protobuf.{wrapper}"
        table[(key, go_type)] = (f"{wrapper}To{title}", f"{title}To{wrapper}")
        if go_type != "[]byte":
            table[(key, "*" + go_type)] = (f"{wrapper}To{title}Ptr", f"{title}PtrTo{wrapper}")
    return table


# (schema message, domain type) -> helper converters living in the helper package
WELL_KNOWN_CONVERSIONS = _well_known_conversions()


class _Unsupported(Exception):
    """A single field cannot be converted; becomes a FieldMiss."""


@dataclass(frozen=True)
class FieldResolution:
    mapping: Optional[FieldMapping] = None
    miss: Optional[FieldMiss] = None

    @property
    def ok(self) -> bool:
        return self.mapping is not None


@dataclass(frozen=True)
class ResolvedMessage:
    target: str
    fields: Tuple[FieldMapping, ...]
    misses: Tuple[FieldMiss, ...]


@dataclass(frozen=True)
class ResolveContext:
    """Per-file lookups shared by every message of the file."""

    messages: MessageOptionList
    structs: StructCatalog
    symbols: Dict[str, TypeSymbol]
    package: str
    repo_pref: str
    proto_pref: str


def relative_name(full_name: str, package: str) -> str:
    if package and full_name.startswith(package + "."):
        return full_name[len(package) + 1:]
    return full_name


def target_struct_name(full_name: str, package: str, messages: MessageOptionList) -> str:
    """Domain struct for a message: go_struct option, else the message name."""
    opt = messages.get(full_name, MessageOption())
    return opt.target_name or struct_name(relative_name(full_name, package))


def find_domain_field(struct: DomainStruct, go_name: str) -> DomainField:
    """Find the domain field for a Go field name.

    An exact match wins; otherwise the single field with the same normalized
    name (UserId matches UserID) is used.
    """
    for f in struct.fields:
        if f.name == go_name:
            return f

    candidates = [f for f in struct.fields if normalize(f.name) == normalize(go_name)]
    if len(candidates) == 1:
        return candidates[0]
    if not candidates:
        raise _Unsupported(f"struct {struct.name} has no field {go_name}")
    raise _Unsupported(
        f"struct {struct.name} has ambiguous fields for {go_name}: "
        f"{[f.name for f in candidates]}"
    )


def resolve_message(message: SchemaMessage, ctx: ResolveContext) -> ResolvedMessage:
    """Resolve every field of ``message`` against its domain struct.

    Raises a RECOVERABLE TransformError if the domain struct does not exist.
    """
    target = target_struct_name(message.full_name, ctx.package, ctx.messages)
    struct = ctx.structs.get(target)
    if struct is None:
        raise TransformError(
            f"message {message.name} skipped: struct {target} not found in models",
            ErrorKind.RECOVERABLE,
        )

    fields: List[FieldMapping] = []
    misses: List[FieldMiss] = []
    for schema_field in message.fields:
        result = resolve_field(message, schema_field, struct, ctx)
        if result.ok:
            fields.append(result.mapping)
        else:
            miss = replace(result.miss, position=len(fields))
            logger.warning("%s: %s", message.full_name, miss)
            misses.append(miss)

    return ResolvedMessage(target=target, fields=tuple(fields), misses=tuple(misses))


def resolve_field(
    message: SchemaMessage,
    schema_field: SchemaField,
    struct: DomainStruct,
    ctx: ResolveContext,
) -> FieldResolution:
    proto_go_name = go_camel_case(schema_field.name)
    try:
        domain_field = find_domain_field(struct, proto_go_name)
        forward, reverse, use_package, union = _conversion(
            schema_field, domain_field.type_name, ctx
        )
        oneof_name = oneof_wrapper = zero = ""
        if schema_field.oneof_index is not None:
            oneof_name = go_camel_case(message.oneofs[schema_field.oneof_index])
            oneof_wrapper = f"{message.go_name}_{proto_go_name}"
            zero = _zero_value(schema_field, domain_field.type_name)
        element_wise = (
            schema_field.is_repeated
            and schema_field.kind in (FieldKind.SCALAR, FieldKind.ENUM)
            and bool(forward)
        )
    except _Unsupported as e:
        return FieldResolution(miss=FieldMiss(schema_field.name, str(e)))

    return FieldResolution(
        mapping=FieldMapping(
            proto_name=schema_field.name,
            proto_go_name=proto_go_name,
            go_name=domain_field.name,
            proto_to_go=forward,
            go_to_proto=reverse,
            use_package=use_package,
            oneof_name=oneof_name,
            oneof_wrapper=oneof_wrapper,
            zero_value=zero,
            union_message=union,
            element_wise=element_wise,
        )
    )


def _conversion(
    schema_field: SchemaField,
    domain_type: str,
    ctx: ResolveContext,
) -> Tuple[str, str, bool, str]:
    """Return (forward, reverse, use_package, union_message) for a field."""
    if schema_field.kind is FieldKind.MAP:
        raise _Unsupported("map fields are not supported")
    if schema_field.kind is FieldKind.SCALAR:
        return _scalar_conversion(schema_field, domain_type, ctx) + (False, "")
    if schema_field.kind is FieldKind.ENUM:
        return _enum_conversion(schema_field, domain_type, ctx) + (False, "")
    return _message_conversion(schema_field, domain_type, ctx)


def _is_local_named(go_type: str) -> bool:
    return go_type.isidentifier() and go_type not in GO_BUILTINS


def _element_type(schema_field: SchemaField, domain_type: str) -> str:
    """Domain type of a single value: the slice element for repeated fields."""
    if not schema_field.is_repeated:
        return domain_type
    if not domain_type.startswith("[]"):
        raise _Unsupported(f"repeated {schema_field.type_name} needs a slice, got {domain_type}")
    return domain_type[2:]


def _scalar_conversion(
    schema_field: SchemaField,
    domain_type: str,
    ctx: ResolveContext,
) -> Tuple[str, str]:
    go_type = PROTO_TO_GO[schema_field.type_name]
    element = _element_type(schema_field, domain_type)

    if element == go_type:
        return "", ""
    if element in GO_NUMERIC and go_type in GO_NUMERIC:
        return element, go_type
    if {element, go_type} == {"string", "[]byte"}:
        return element, go_type
    if _is_local_named(element):
        return f"{ctx.repo_pref}.{element}", go_type
    label = ("repeated " if schema_field.is_repeated else "") + schema_field.type_name
    raise _Unsupported(f"cannot convert {label} to {domain_type}")


def _enum_conversion(
    schema_field: SchemaField,
    domain_type: str,
    ctx: ResolveContext,
) -> Tuple[str, str]:
    symbol = ctx.symbols.get(schema_field.type_name)
    if symbol is None:
        raise _Unsupported(f"unknown enum {schema_field.type_name}")
    if symbol.package != ctx.package:
        raise _Unsupported(f"enum {schema_field.type_name} is declared in another package")
    element = _element_type(schema_field, domain_type)

    proto_type = f"{ctx.proto_pref}.{symbol.go_name}"
    if element in GO_NUMERIC:
        return element, proto_type
    if _is_local_named(element):
        return f"{ctx.repo_pref}.{element}", proto_type
    raise _Unsupported(f"cannot convert enum {schema_field.type_name} to {domain_type}")


def _message_conversion(
    schema_field: SchemaField,
    domain_type: str,
    ctx: ResolveContext,
) -> Tuple[str, str, bool, str]:
    type_name = schema_field.type_name

    element = domain_type
    if schema_field.is_repeated:
        if not domain_type.startswith("[]"):
            raise _Unsupported(f"repeated {type_name} needs a slice, got {domain_type}")
        element = domain_type[2:]
    elif domain_type.startswith("[]"):
        raise _Unsupported(f"{type_name} is not repeated, got {domain_type}")

    helpers = WELL_KNOWN_CONVERSIONS.get((type_name, element))
    if helpers is not None:
        forward, reverse = helpers
        if schema_field.is_repeated:
            forward, reverse = forward + "List", reverse + "List"
        return forward, reverse, True, ""

    symbol = ctx.symbols.get(type_name)
    if symbol is None or symbol.package == "google.protobuf":
        raise _Unsupported(f"cannot convert {type_name} to {domain_type}")

    other_package = symbol.package != ctx.package
    opt = ctx.messages.get(type_name, MessageOption())

    if opt.oneof_decl and domain_type == "string":
        return (
            collapse_fn_name(symbol.go_name),
            expand_fn_name(symbol.go_name),
            other_package,
            type_name,
        )

    target = target_struct_name(type_name, symbol.package, ctx.messages)
    is_ptr = element.startswith("*")
    if element.lstrip("*") != target:
        raise _Unsupported(f"type {domain_type} does not match struct {target}")

    forward = converter_name("Pb", target, dst_ptr=is_ptr, is_list=schema_field.is_repeated)
    reverse = converter_name(target, "Pb", src_ptr=is_ptr, is_list=schema_field.is_repeated)
    return forward, reverse, other_package, ""


def _zero_value(schema_field: SchemaField, domain_type: str) -> str:
    """Zero value of a oneof arm's domain type, used to detect an unset arm."""
    if schema_field.is_repeated:
        raise _Unsupported("repeated fields cannot be oneof arms")
    if domain_type.startswith(("*", "[]", "map[")):
        return "nil"
    if schema_field.kind is FieldKind.MESSAGE:
        raise _Unsupported(f"oneof message field needs a pointer, got {domain_type}")
    if domain_type in GO_NUMERIC:
        return "0"
    if domain_type == "string":
        return '""'
    if domain_type == "bool":
        return "false"
    raise _Unsupported(f"oneof field cannot use named type {domain_type}")
