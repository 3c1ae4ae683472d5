import os
import tempfile

import pytest

from struct_transformer.errors import ErrorKind, TransformError
from struct_transformer.parser.go_ast_parser import GoParseError
from struct_transformer.parser.go_parser import parse_go_models, parse_go_source
from struct_transformer.parser.go_tokenizer import GoTokenType, tokenize_go


def _fields(struct) -> dict:
    return {f.name: f.type_name for f in struct.fields}


class TestTokenizer:
    def test_semicolon_inserted_at_line_end(self):
        tokens = tokenize_go("type A struct {\n\tID int64\n}\n")
        types = [t.type for t in tokens]
        assert types == [
            GoTokenType.TYPE, GoTokenType.IDENT, GoTokenType.STRUCT, GoTokenType.LBRACE,
            GoTokenType.IDENT, GoTokenType.IDENT, GoTokenType.SEMICOLON,
            GoTokenType.RBRACE, GoTokenType.SEMICOLON,
            GoTokenType.EOF,
        ]

    def test_no_semicolon_after_opening_brace(self):
        tokens = tokenize_go("struct {\n")
        assert [t.type for t in tokens] == [GoTokenType.STRUCT, GoTokenType.LBRACE, GoTokenType.EOF]

    def test_comments_skipped(self):
        tokens = tokenize_go("// comment\nID /* inline */ int64 // trailing\n")
        assert [t.value for t in tokens if t.type == GoTokenType.IDENT] == ["ID", "int64"]

    def test_raw_string_tag(self):
        tokens = tokenize_go('`json:"id"`')
        assert tokens[0].type == GoTokenType.STRING_LIT
        assert tokens[0].value == '`json:"id"`'


class TestSimpleStruct:
    def test_fields_and_types(self):
        src = """\
package models

// User is a domain user.
type User struct {
\tID        int64
\tName      string `json:"name"`
\tEmail     *string
\tTags      []string
\tCreatedAt time.Time
\tLabels    map[string]string
\tScores    [3]int
}
"""
        structs = parse_go_source(src, "models.go")
        assert len(structs) == 1
        user = structs[0]
        assert user.name == "User"
        assert user.source_file == "models.go"
        assert _fields(user) == {
            "ID": "int64",
            "Name": "string",
            "Email": "*string",
            "Tags": "[]string",
            "CreatedAt": "time.Time",
            "Labels": "map[string]string",
            "Scores": "[3]int",
        }

    def test_field_order_preserved(self):
        src = "package m\ntype A struct {\n\tZ int\n\tA int\n\tM int\n}\n"
        assert [f.name for f in parse_go_source(src)[0].fields] == ["Z", "A", "M"]

    def test_multiple_names_per_line(self):
        src = "package m\ntype Point struct {\n\tX, Y float64\n}\n"
        assert _fields(parse_go_source(src)[0]) == {"X": "float64", "Y": "float64"}

    def test_single_line_struct(self):
        src = "package m\ntype P struct { X int; Y int }\n"
        assert _fields(parse_go_source(src)[0]) == {"X": "int", "Y": "int"}

    def test_nested_struct_types(self):
        src = """\
package m

type Order struct {
\tItems   []*Item
\tAddress Address
\tNext    *Order
}
"""
        assert _fields(parse_go_source(src)[0]) == {
            "Items": "[]*Item",
            "Address": "Address",
            "Next": "*Order",
        }


class TestDeclarations:
    def test_grouped_type_declaration(self):
        src = """\
package m

type (
\tA struct {
\t\tX int
\t}
\tB struct {
\t\tY string
\t}
\tID int64
)
"""
        structs = parse_go_source(src)
        assert [s.name for s in structs] == ["A", "B"]

    def test_embedded_fields(self):
        src = """\
package m

type Base struct {
\tID int64
}

type User struct {
\tBase
\t*sync.Mutex
\tName string
}
"""
        user = [s for s in parse_go_source(src) if s.name == "User"][0]
        assert _fields(user) == {"Base": "Base", "Mutex": "*sync.Mutex", "Name": "string"}

    def test_functions_imports_and_vars_skipped(self):
        src = """\
package m

import (
\t"time"
)

var zero = User{}

const limit = 10

func (u *User) Valid() bool {
\treturn u.Name != ""
}

func New(name string) (*User, error) {
\treturn &User{Name: name}, nil
}

type User struct {
\tName    string
\tCreated time.Time
}
"""
        structs = parse_go_source(src)
        assert [s.name for s in structs] == ["User"]
        assert _fields(structs[0]) == {"Name": "string", "Created": "time.Time"}

    def test_struct_alias_copies_fields(self):
        src = """\
package m

type User struct {
\tName string
}

type Account User
"""
        structs = {s.name: s for s in parse_go_source(src)}
        assert _fields(structs["Account"]) == {"Name": "string"}

    def test_generic_struct(self):
        src = "package m\ntype Page[T any] struct {\n\tItems []T\n\tTotal int\n}\n"
        page = parse_go_source(src)[0]
        assert page.name == "Page"
        assert _fields(page) == {"Items": "[]T", "Total": "int"}

    def test_func_and_chan_fields(self):
        src = "package m\ntype H struct {\n\tOn func(int) error\n\tC chan string\n\tAny interface{}\n}\n"
        assert _fields(parse_go_source(src)[0]) == {
            "On": "func()",
            "C": "chan string",
            "Any": "interface{}",
        }


class TestErrors:
    def test_syntax_error_has_position(self):
        src = "package m\ntype A struct {\n\t= int\n}\n"
        with pytest.raises(GoParseError, match=r"Line 3:2"):
            parse_go_source(src)


class TestParseGoModels:
    def setup_method(self):
        self.work_dir = tempfile.mkdtemp()

    def teardown_method(self):
        for name in os.listdir(self.work_dir):
            os.unlink(os.path.join(self.work_dir, name))
        os.rmdir(self.work_dir)

    def _write(self, name: str, content: str) -> str:
        path = os.path.join(self.work_dir, name)
        with open(path, "w") as f:
            f.write(content)
        return path

    def test_single_file(self):
        path = self._write("models.go", "package m\ntype A struct {\n\tX int\n}\n")
        catalog = parse_go_models(path)
        assert list(catalog) == ["A"]
        assert catalog["A"].source_file == path

    def test_directory_skips_test_files(self):
        self._write("a.go", "package m\ntype A struct {\n\tX int\n}\n")
        self._write("b.go", "package m\ntype B struct {\n\tY int\n}\n")
        self._write("a_test.go", "package m\ntype Fixture struct {\n\tZ int\n}\n")
        self._write("notes.txt", "type Bogus struct {}")
        catalog = parse_go_models(self.work_dir)
        assert sorted(catalog) == ["A", "B"]

    def test_missing_path_is_fatal(self):
        with pytest.raises(TransformError) as exc_info:
            parse_go_models(os.path.join(self.work_dir, "missing.go"))
        assert exc_info.value.kind is ErrorKind.FATAL

    def test_parse_error_is_fatal(self):
        path = self._write("bad.go", "package m\ntype A struct {\n\t= int\n}\n")
        with pytest.raises(TransformError) as exc_info:
            parse_go_models(path)
        assert exc_info.value.kind is ErrorKind.FATAL
        assert "bad.go" in str(exc_info.value)
