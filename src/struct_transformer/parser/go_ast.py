"""AST node definitions for Go source files."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass
class GoFieldDecl:
    """A struct field line: ``A, B Type `tag``` or an embedded ``*pkg.Type``."""

    names: List[str]
    type_name: str
    tag: str = ""
    is_embedded: bool = False


@dataclass
class GoStructType:
    """type Name struct { ... }"""

    name: str
    fields: List[GoFieldDecl] = field(default_factory=list)


@dataclass
class GoTypeAlias:
    """type Name Other, or type Name = Other."""

    name: str
    existing_type: str


@dataclass
class GoFile:
    """Top-level parsed representation of a Go source file."""

    package: str = ""
    structs: List[GoStructType] = field(default_factory=list)
    type_aliases: List[GoTypeAlias] = field(default_factory=list)
