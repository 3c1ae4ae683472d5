from google.protobuf import descriptor_pb2 as d2

from struct_transformer.models import FieldKind
from struct_transformer.options import EXTENSIONS, read_descriptor_options
from struct_transformer.parser.descriptor_reader import read_file

F = d2.FieldDescriptorProto


def _make_file() -> d2.FileDescriptorProto:
    fd = d2.FileDescriptorProto(name="shop/order.proto", package="shop", syntax="proto3")
    fd.options.Extensions[EXTENSIONS["go_models_file_path"]] = "models/"
    fd.options.Extensions[EXTENSIONS["go_repo_package"]] = "repo"

    fd.enum_type.add(name="Status").value.add(name="STATUS_UNKNOWN", number=0)

    order = fd.message_type.add(name="Order")
    order.options.Extensions[EXTENSIONS["go_struct"]] = "OrderModel"
    order.field.add(name="id", number=1, type=F.TYPE_INT64, label=F.LABEL_OPTIONAL)
    order.field.add(name="status", number=2, type=F.TYPE_ENUM, type_name=".shop.Status",
                    label=F.LABEL_OPTIONAL)
    order.field.add(name="lines", number=3, type=F.TYPE_MESSAGE, type_name=".shop.Order.Line",
                    label=F.LABEL_REPEATED)
    order.field.add(name="labels", number=4, type=F.TYPE_MESSAGE,
                    type_name=".shop.Order.LabelsEntry", label=F.LABEL_REPEATED)
    order.field.add(name="note", number=5, type=F.TYPE_STRING, label=F.LABEL_OPTIONAL,
                    oneof_index=0, proto3_optional=True)
    order.field.add(name="email", number=6, type=F.TYPE_STRING, label=F.LABEL_OPTIONAL, oneof_index=1)
    order.oneof_decl.add(name="_note")
    order.oneof_decl.add(name="contact")

    line = order.nested_type.add(name="Line")
    line.field.add(name="sku", number=1, type=F.TYPE_STRING, label=F.LABEL_OPTIONAL)
    line.enum_type.add(name="Kind").value.add(name="KIND_UNKNOWN", number=0)

    entry = order.nested_type.add(name="LabelsEntry")
    entry.options.map_entry = True
    entry.field.add(name="key", number=1, type=F.TYPE_STRING, label=F.LABEL_OPTIONAL)
    entry.field.add(name="value", number=2, type=F.TYPE_STRING, label=F.LABEL_OPTIONAL)
    return fd


class TestOptions:
    def test_file_options(self):
        fd = _make_file()
        assert read_descriptor_options(fd.options) == {
            "go_models_file_path": "models/",
            "go_repo_package": "repo",
        }

    def test_message_options(self):
        fd = _make_file()
        assert read_descriptor_options(fd.message_type[0].options) == {"go_struct": "OrderModel"}

    def test_survives_serialization(self):
        fd = _make_file()
        parsed = d2.FileDescriptorProto.FromString(fd.SerializeToString())
        assert read_file(parsed).options["go_models_file_path"] == "models/"


class TestReadFile:
    def test_file_level(self):
        sf = read_file(_make_file())
        assert sf.name == "shop/order.proto"
        assert sf.package == "shop"
        assert sf.options == {"go_models_file_path": "models/", "go_repo_package": "repo"}
        assert [e.full_name for e in sf.enums] == ["shop.Status", "shop.Order.Line.Kind"]
        assert sf.enums[1].go_name == "Order_Line_Kind"

    def test_nested_messages_flattened_without_map_entries(self):
        sf = read_file(_make_file())
        assert [m.full_name for m in sf.messages] == ["shop.Order", "shop.Order.Line"]
        assert sf.messages[0].options == {"go_struct": "OrderModel"}
        assert sf.messages[1].go_name == "Order_Line"

    def test_field_kinds(self):
        order = read_file(_make_file()).messages[0]
        fields = {f.name: f for f in order.fields}

        assert fields["id"].kind is FieldKind.SCALAR
        assert fields["id"].type_name == "int64"
        assert fields["status"].kind is FieldKind.ENUM
        assert fields["status"].type_name == "shop.Status"
        assert fields["lines"].kind is FieldKind.MESSAGE
        assert fields["lines"].is_repeated
        assert fields["labels"].kind is FieldKind.MAP
        assert not fields["labels"].is_repeated

    def test_proto3_optional_is_not_a_oneof(self):
        order = read_file(_make_file()).messages[0]
        fields = {f.name: f for f in order.fields}

        assert order.oneofs == ["contact"]
        assert fields["note"].oneof_index is None
        assert fields["email"].oneof_index == 0
