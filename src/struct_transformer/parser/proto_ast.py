"""AST node definitions for protobuf (.proto) files."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class ProtoField:
    """A field declaration: [label] Type name = number [options];

    Map fields carry ``map<K,V>`` as their type name and ``is_map``.
    """

    type_name: str
    field_name: str
    field_number: int
    label: str = ""
    is_map: bool = False
    oneof: Optional[str] = None

    @property
    def is_repeated(self) -> bool:
        return self.label == "repeated"


@dataclass
class ProtoEnum:
    name: str
    values: Dict[str, int] = field(default_factory=dict)


@dataclass
class ProtoMessage:
    """A message definition, possibly containing nested messages."""

    name: str
    fields: List[ProtoField] = field(default_factory=list)
    oneofs: List[str] = field(default_factory=list)
    nested_messages: List[ProtoMessage] = field(default_factory=list)
    enums: List[ProtoEnum] = field(default_factory=list)
    options: Dict[str, str] = field(default_factory=dict)


@dataclass
class ProtoFile:
    """Top-level parsed representation of a .proto file."""

    package: str = ""
    imports: List[str] = field(default_factory=list)
    options: Dict[str, str] = field(default_factory=dict)
    messages: List[ProtoMessage] = field(default_factory=list)
    enums: List[ProtoEnum] = field(default_factory=list)
