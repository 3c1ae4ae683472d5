import os
import shutil
import tempfile

import pytest

from struct_transformer.models import FieldKind
from struct_transformer.parser.proto_ast_parser import ProtoParseError
from struct_transformer.parser.proto_transform import (
    parse_proto_files,
    parse_proto_text,
    resolve_type,
)


def _write_temp_proto(directory: str, name: str, content: str) -> str:
    path = os.path.join(directory, name)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as f:
        f.write(content)
    return path


class TestProtoAst:
    def test_package_imports_and_options(self):
        proto = """\
syntax = "proto3";

package shop.v1;

import "google/protobuf/timestamp.proto";
import public "transformer/options.proto";

option go_package = "example.com/shop/v1;shopv1";
option (transformer.go_models_file_path) = "models/";
option (transformer.go_repo_package) = "repo";
"""
        ast = parse_proto_text(proto)
        assert ast.package == "shop.v1"
        assert ast.imports == ["google/protobuf/timestamp.proto", "transformer/options.proto"]
        assert ast.options == {
            "go_package": "example.com/shop/v1;shopv1",
            "go_models_file_path": "models/",
            "go_repo_package": "repo",
        }

    def test_fields_labels_and_numbers(self):
        proto = """\
message Order {
    int64 id = 1;
    repeated string tags = 2;
    optional string note = 3 [deprecated = true];
    map<string, int32> counts = 4;
    reserved 5, 6;
    Item item = 0x7;
}
"""
        msg = parse_proto_text(proto).messages[0]
        assert [f.field_name for f in msg.fields] == ["id", "tags", "note", "counts", "item"]
        assert msg.fields[1].is_repeated
        assert msg.fields[2].label == "optional"
        assert msg.fields[3].is_map
        assert msg.fields[3].type_name == "map<string,int32>"
        assert msg.fields[4].field_number == 7

    def test_nested_messages_enums_and_oneofs(self):
        proto = """\
message Outer {
    option (transformer.go_struct) = "OuterModel";

    enum State {
        STATE_UNKNOWN = 0;
        STATE_ACTIVE = 1;
    }

    message Inner {
        string value = 1;
    }

    oneof choice {
        string text = 1;
        Inner inner = 2;
    }
    State state = 3;
}
"""
        msg = parse_proto_text(proto).messages[0]
        assert msg.options == {"go_struct": "OuterModel"}
        assert msg.enums[0].name == "State"
        assert msg.enums[0].values == {"STATE_UNKNOWN": 0, "STATE_ACTIVE": 1}
        assert msg.nested_messages[0].name == "Inner"
        assert msg.oneofs == ["choice"]
        assert [f.oneof for f in msg.fields] == ["choice", "choice", None]

    def test_services_and_extends_skipped(self):
        proto = """\
service Shop {
    rpc Get(GetRequest) returns (GetResponse) {
        option (google.api.http) = { get: "/v1/shop" };
    }
}

extend google.protobuf.MessageOptions {
    string label = 50000;
}

message GetRequest {}
"""
        ast = parse_proto_text(proto)
        assert [m.name for m in ast.messages] == ["GetRequest"]

    def test_keyword_as_field_name(self):
        msg = parse_proto_text("message M { string message = 1; int32 option = 2; }").messages[0]
        assert [f.field_name for f in msg.fields] == ["message", "option"]

    def test_parse_error_has_position(self):
        with pytest.raises(ProtoParseError, match=r"Line 2:"):
            parse_proto_text("message M {\n    string name = ;\n}\n")


class TestResolveType:
    def test_innermost_scope_first(self):
        kinds = {
            "pkg.Inner": FieldKind.MESSAGE,
            "pkg.Outer": FieldKind.MESSAGE,
            "pkg.Outer.Inner": FieldKind.MESSAGE,
        }
        assert resolve_type("Inner", "pkg.Outer", kinds) == "pkg.Outer.Inner"
        assert resolve_type("Inner", "pkg.Other", kinds) == "pkg.Inner"

    def test_fully_qualified(self):
        kinds = {"pkg.Inner": FieldKind.MESSAGE}
        assert resolve_type(".pkg.Inner", "pkg.Outer", kinds) == "pkg.Inner"
        assert resolve_type(".other.Inner", "pkg.Outer", kinds) is None

    def test_unknown(self):
        assert resolve_type("Missing", "pkg.Outer", {}) is None


class TestParseProtoFiles:
    def setup_method(self):
        self.work_dir = tempfile.mkdtemp()

    def teardown_method(self):
        shutil.rmtree(self.work_dir)

    def test_schema_file_model(self):
        path = _write_temp_proto(self.work_dir, "shop/order.proto", """\
syntax = "proto3";
package shop;

import "google/protobuf/timestamp.proto";

option (transformer.go_models_file_path) = "models.go";

enum Status {
    STATUS_UNKNOWN = 0;
}

message Order {
    int64 id = 1;
    Status status = 2;
    repeated Line lines = 3;
    google.protobuf.Timestamp created_at = 4;
    map<string, string> labels = 5;

    message Line {
        string sku = 1;
    }
}
""")
        files = parse_proto_files([path], root=self.work_dir)
        assert len(files) == 1
        sf = files[0]
        assert sf.name == "shop/order.proto"
        assert sf.package == "shop"
        assert sf.options == {"go_models_file_path": "models.go"}
        assert [e.full_name for e in sf.enums] == ["shop.Status"]

        assert [m.full_name for m in sf.messages] == ["shop.Order", "shop.Order.Line"]
        order, line = sf.messages
        assert line.go_name == "Order_Line"

        kinds = {f.name: (f.kind, f.type_name, f.is_repeated) for f in order.fields}
        assert kinds["id"] == (FieldKind.SCALAR, "int64", False)
        assert kinds["status"] == (FieldKind.ENUM, "shop.Status", False)
        assert kinds["lines"] == (FieldKind.MESSAGE, "shop.Order.Line", True)
        assert kinds["created_at"] == (FieldKind.MESSAGE, "google.protobuf.Timestamp", False)
        assert kinds["labels"][0] is FieldKind.MAP

    def test_types_resolved_across_files(self):
        common = _write_temp_proto(self.work_dir, "common.proto", """\
package common;
message Money {
    int64 units = 1;
}
""")
        order = _write_temp_proto(self.work_dir, "order.proto", """\
package shop;
import "common.proto";
message Order {
    common.Money total = 1;
}
""")
        files = parse_proto_files([common, order], root=self.work_dir)
        field = files[1].messages[0].fields[0]
        assert field.kind is FieldKind.MESSAGE
        assert field.type_name == "common.Money"

    def test_oneof_indexes(self):
        path = _write_temp_proto(self.work_dir, "id.proto", """\
package ids;
message Identifier {
    oneof value {
        int64 int64_value = 1;
        string string_value = 2;
    }
}
""")
        msg = parse_proto_files([path], root=self.work_dir)[0].messages[0]
        assert msg.oneofs == ["value"]
        assert [f.oneof_index for f in msg.fields] == [0, 0]
