from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from struct_transformer.models import (
    FieldKind,
    MessageOption,
    MessageOptionList,
    SchemaFile,
    SchemaMessage,
    TypeSymbol,
)
from struct_transformer.options import GO_STRUCT, get_string_option

logger = logging.getLogger(__name__)

# Field names of the only union shape that collapses into a single value:
# a migration of an int64 identifier to a string one.
INT64_VALUE = "int64_value"
STRING_VALUE = "string_value"

# Well-known types referenced without a declaration in the input files.
WELL_KNOWN_MESSAGES = (
    "google.protobuf.Timestamp",
    "google.protobuf.Duration",
    "google.protobuf.DoubleValue",
    "google.protobuf.FloatValue",
    "google.protobuf.Int64Value",
    "google.protobuf.UInt64Value",
    "google.protobuf.Int32Value",
    "google.protobuf.UInt32Value",
    "google.protobuf.BoolValue",
    "google.protobuf.StringValue",
    "google.protobuf.BytesValue",
)


def classify_oneof(message: SchemaMessage) -> str:
    """Return the oneof name if the message is a collapsible value union.

    Only a message with exactly one oneof group and exactly the two fields
    int64_value and string_value qualifies; any other shape gives "".
    """
    if len(message.oneofs) != 1 or len(message.fields) != 2:
        return ""
    names = {f.name for f in message.fields}
    if names != {INT64_VALUE, STRING_VALUE}:
        return ""
    return message.oneofs[0]


def collect_all_messages(files: Iterable[SchemaFile]) -> MessageOptionList:
    """Collect options for every message of every file in the request.

    The result covers messages without transformer options too: a field of
    any message may reference them.
    """
    messages: MessageOptionList = {}
    for f in files:
        for m in f.messages:
            target = get_string_option(m.options, GO_STRUCT) or ""
            oneof = classify_oneof(m)
            if oneof:
                logger.debug("message %s: oneof %r collapses to string", m.full_name, oneof)
            messages[m.full_name] = MessageOption(target_name=target, oneof_decl=oneof)
    return messages


def build_symbol_table(files: Iterable[SchemaFile]) -> Dict[str, TypeSymbol]:
    """Index the messages and enums of all files by full name."""
    symbols: Dict[str, TypeSymbol] = {}
    for name in WELL_KNOWN_MESSAGES:
        symbols[name] = TypeSymbol(
            full_name=name,
            kind=FieldKind.MESSAGE,
            go_name=name.rsplit(".", 1)[1],
            package="google.protobuf",
        )
    for f in files:
        for m in f.messages:
            symbols[m.full_name] = TypeSymbol(
                full_name=m.full_name,
                kind=FieldKind.MESSAGE,
                go_name=m.go_name,
                package=f.package,
            )
        for e in f.enums:
            symbols[e.full_name] = e
    return symbols


def dump(messages: MessageOptionList) -> List[str]:
    """Render the catalog as comment lines for debug output."""
    lines = ["// message catalog:"]
    for key in sorted(messages):
        opt = messages[key]
        lines.append(
            f"//   {key}: target={opt.target_name or '-'} oneof={opt.oneof_decl or '-'}"
        )
    return lines
