from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Dict, List, Optional, Tuple, Union

from struct_transformer.naming import go_camel_case


def normalize(name: str) -> str:
    """Remove underscores and convert to uppercase for comparison."""
    return name.replace("_", "").upper()


class FieldKind(Enum):
    SCALAR = auto()
    ENUM = auto()
    MESSAGE = auto()
    MAP = auto()


# -- schema side --


@dataclass
class SchemaField:
    name: str
    number: int
    kind: FieldKind
    type_name: str
    is_repeated: bool = False
    oneof_index: Optional[int] = None


@dataclass
class SchemaMessage:
    name: str
    full_name: str
    go_name: str
    fields: List[SchemaField] = field(default_factory=list)
    oneofs: List[str] = field(default_factory=list)
    options: Dict[str, str] = field(default_factory=dict)


@dataclass
class SchemaFile:
    name: str
    package: str = ""
    messages: List[SchemaMessage] = field(default_factory=list)
    enums: List[TypeSymbol] = field(default_factory=list)
    options: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TypeSymbol:
    """A message or enum visible to field type resolution."""

    full_name: str
    kind: FieldKind
    go_name: str
    package: str = ""


# -- domain side --


@dataclass
class DomainField:
    name: str
    type_name: str


@dataclass
class DomainStruct:
    name: str
    fields: List[DomainField] = field(default_factory=list)
    source_file: str = ""


StructCatalog = Dict[str, DomainStruct]


# -- engine records --


@dataclass(frozen=True)
class MessageOption:
    target_name: str = ""
    oneof_decl: str = ""


MessageOptionList = Dict[str, MessageOption]


@dataclass(frozen=True)
class FieldMapping:
    proto_name: str
    proto_go_name: str
    go_name: str
    proto_to_go: str = ""
    go_to_proto: str = ""
    use_package: bool = False
    # Set for arms of a oneof that is passed through as plain fields.
    oneof_name: str = ""
    oneof_wrapper: str = ""
    zero_value: str = ""
    union_message: str = ""
    # Repeated scalar or enum whose elements are cast one by one.
    element_wise: bool = False

    def prefixed(self, prefix: str) -> FieldMapping:
        """Return a copy whose converters are qualified with ``prefix``.

        Already qualified converters are left as they are.
        """
        if not prefix or not self.use_package:
            return self
        return replace(
            self,
            proto_to_go=_qualify(prefix, self.proto_to_go),
            go_to_proto=_qualify(prefix, self.go_to_proto),
        )


def _qualify(prefix: str, expr: str) -> str:
    if not expr or expr.startswith(prefix + "."):
        return expr
    return f"{prefix}.{expr}"


@dataclass(frozen=True)
class FieldMiss:
    proto_name: str
    reason: str
    # Number of mapped fields declared before this one.
    position: int = 0

    def __str__(self) -> str:
        return f"field {self.proto_name!r} skipped: {self.reason}"


@dataclass(frozen=True)
class FieldView:
    """One field as seen by a single render pass."""

    src_name: str
    src_access: str
    dst_name: str
    convert: str
    oneof_name: str = ""
    oneof_wrapper: str = ""
    zero_value: str = ""
    element_wise: bool = False

    @property
    def in_literal(self) -> bool:
        return not self.oneof_wrapper and not self.element_wise

    @property
    def value(self) -> str:
        if self.convert:
            return f"{self.convert}({self.src_access})"
        return self.src_access


@dataclass(frozen=True)
class TransformView:
    """Template input for one conversion direction."""

    src: str
    src_pref: str
    src_fn: str
    src_pointer: str
    dst: str
    dst_pref: str
    dst_fn: str
    dst_pointer: str
    src_is_proto: bool
    fields: Tuple[FieldView, ...]
    misses: Tuple[FieldMiss, ...] = ()

    @property
    def src_type(self) -> str:
        return f"{self.src_pointer}{self.src_pref}.{self.src}"

    @property
    def dst_type(self) -> str:
        return f"{self.dst_pointer}{self.dst_pref}.{self.dst}"

    @property
    def src_value_type(self) -> str:
        return f"{self.src_pref}.{self.src}"

    @property
    def dst_value_type(self) -> str:
        return f"{self.dst_pref}.{self.dst}"

    @property
    def literal_fields(self) -> Tuple[FieldView, ...]:
        return tuple(f for f in self.fields if f.in_literal)

    @property
    def literal_entries(self) -> Tuple[Union[FieldView, FieldMiss], ...]:
        """Literal fields with each miss placed where its field is declared."""
        entries: List[Union[FieldView, FieldMiss]] = []
        for i, f in enumerate(self.fields):
            entries.extend(m for m in self.misses if m.position == i)
            if f.in_literal:
                entries.append(f)
        entries.extend(m for m in self.misses if m.position >= len(self.fields))
        return tuple(entries)

    @property
    def oneof_fields(self) -> Tuple[FieldView, ...]:
        return tuple(f for f in self.fields if f.oneof_wrapper)

    @property
    def assigned_fields(self) -> Tuple[FieldView, ...]:
        """Fields set after the literal: oneof arms and element-wise copies."""
        return tuple(f for f in self.fields if not f.in_literal)

    def converter(self, src_ptr: bool = False, dst_ptr: bool = False, is_list: bool = False) -> str:
        return converter_name(self.src_fn, self.dst_fn, src_ptr, dst_ptr, is_list)


def converter_name(
    src_fn: str,
    dst_fn: str,
    src_ptr: bool = False,
    dst_ptr: bool = False,
    is_list: bool = False,
) -> str:
    """Name of a generated converter, e.g. PbToUserPtrList or UserPtrToPb."""
    return "".join([
        src_fn,
        "Ptr" if src_ptr else "",
        "To",
        dst_fn,
        "Ptr" if dst_ptr else "",
        "List" if is_list else "",
    ])


@dataclass(frozen=True)
class MessageTransformRecord:
    src: str
    src_pref: str
    src_fn: str
    src_pointer: str
    dst: str
    dst_pref: str
    dst_fn: str
    dst_pointer: str
    fields: Tuple[FieldMapping, ...] = ()
    misses: Tuple[FieldMiss, ...] = ()

    def with_prefix(self, prefix: str) -> MessageTransformRecord:
        return replace(self, fields=tuple(f.prefixed(prefix) for f in self.fields))

    def forward(self) -> TransformView:
        """Schema to domain: reads getters, assigns domain fields."""
        return TransformView(
            src=self.src,
            src_pref=self.src_pref,
            src_fn=self.src_fn,
            src_pointer=self.src_pointer,
            dst=self.dst,
            dst_pref=self.dst_pref,
            dst_fn=self.dst_fn,
            dst_pointer=self.dst_pointer,
            src_is_proto=True,
            fields=tuple(
                FieldView(
                    src_name=f.proto_go_name,
                    src_access=f"src.Get{f.proto_go_name}()",
                    dst_name=f.go_name,
                    convert=f.proto_to_go,
                    element_wise=f.element_wise,
                )
                for f in self.fields
            ),
            misses=self.misses,
        )

    def reverse(self) -> TransformView:
        """Domain to schema: every role of the forward view inverted."""
        return TransformView(
            src=self.dst,
            src_pref=self.dst_pref,
            src_fn=self.dst_fn,
            src_pointer=self.dst_pointer,
            dst=self.src,
            dst_pref=self.src_pref,
            dst_fn=self.src_fn,
            dst_pointer=self.src_pointer,
            src_is_proto=False,
            fields=tuple(
                FieldView(
                    src_name=f.go_name,
                    src_access=f"src.{f.go_name}",
                    dst_name=f.proto_go_name,
                    convert=f.go_to_proto,
                    oneof_name=f.oneof_name,
                    oneof_wrapper=f.oneof_wrapper,
                    zero_value=f.zero_value,
                    element_wise=f.element_wise,
                )
                for f in self.fields
            ),
            misses=self.misses,
        )


def collapse_fn_name(message_go_name: str) -> str:
    return f"Pb{message_go_name}ToString"


def expand_fn_name(message_go_name: str) -> str:
    return f"StringToPb{message_go_name}"


@dataclass(frozen=True)
class UnionRecord:
    """Collapse/expand input for one int64-or-string oneof message."""

    message: str
    pref: str
    oneof_name: str

    @property
    def oneof_go_name(self) -> str:
        return go_camel_case(self.oneof_name)

    @property
    def collapse_fn(self) -> str:
        return collapse_fn_name(self.message)

    @property
    def expand_fn(self) -> str:
        return expand_fn_name(self.message)
