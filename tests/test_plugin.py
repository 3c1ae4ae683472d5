import shutil
import tempfile
from pathlib import Path

from google.protobuf import descriptor_pb2 as d2
from google.protobuf.compiler import plugin_pb2

from struct_transformer.options import EXTENSIONS
from struct_transformer.plugin import process_request

F = d2.FieldDescriptorProto

FOO_MODELS = """\
package models

type FooModel struct {
\tID   int64
\tName string
}
"""


def _make_foo_file(name: str = "foo/foo.proto", models: str = "models.go") -> d2.FileDescriptorProto:
    fd = d2.FileDescriptorProto(name=name, package="foo", syntax="proto3")
    fd.options.Extensions[EXTENSIONS["go_models_file_path"]] = models
    msg = fd.message_type.add(name="Foo")
    msg.options.Extensions[EXTENSIONS["go_struct"]] = "FooModel"
    msg.field.add(name="id", number=1, type=F.TYPE_INT64, label=F.LABEL_OPTIONAL)
    msg.field.add(name="name", number=2, type=F.TYPE_STRING, label=F.LABEL_OPTIONAL)
    return fd


def _make_request(files, parameter: str = "", to_generate=None) -> plugin_pb2.CodeGeneratorRequest:
    request = plugin_pb2.CodeGeneratorRequest(parameter=parameter)
    request.proto_file.extend(files)
    request.file_to_generate.extend(to_generate or [f.name for f in files])
    # Round trip through bytes like protoc does
    return plugin_pb2.CodeGeneratorRequest.FromString(request.SerializeToString())


class TestProcessRequest:
    def setup_method(self):
        self.work_dir = tempfile.mkdtemp()
        Path(self.work_dir, "models.go").write_text(FOO_MODELS)

    def teardown_method(self):
        shutil.rmtree(self.work_dir)

    def test_generates_file(self):
        request = _make_request([_make_foo_file()], f"models-base-dir={self.work_dir}")
        response = process_request(request)

        assert response.error == ""
        assert response.supported_features & plugin_pb2.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL
        assert [f.name for f in response.file] == ["foo/foo_transformer.go"]
        content = response.file[0].content
        assert "// source file: foo/foo.proto\n" in content
        assert "\npackage transform\n" in content
        assert "func PbToFooModel(src *pb1.Foo) repo1.FooModel {" in content
        assert "\t\tID: src.GetId(),\n" in content

    def test_parameters(self):
        parameter = f"package=conv,use-package-in-path=true,models-base-dir={self.work_dir}"
        response = process_request(_make_request([_make_foo_file()], parameter))
        assert response.file[0].name == "foo/conv/foo_transformer.go"
        assert "\npackage conv\n" in response.file[0].content

    def test_only_requested_files(self):
        dep = d2.FileDescriptorProto(name="dep.proto", package="dep")
        dep.message_type.add(name="Dep")
        request = _make_request(
            [dep, _make_foo_file()],
            f"models-base-dir={self.work_dir}",
            to_generate=["foo/foo.proto"],
        )
        response = process_request(request)
        assert [f.name for f in response.file] == ["foo/foo_transformer.go"]

    def test_skipped_file_is_not_an_error(self):
        plain = d2.FileDescriptorProto(name="plain.proto", package="plain")
        plain.message_type.add(name="Plain")
        response = process_request(_make_request([plain]))
        assert response.error == ""
        assert len(response.file) == 0

    def test_fatal_error_keeps_other_files(self):
        bad = _make_foo_file(name="bad/bad.proto", models="missing.go")
        request = _make_request([bad, _make_foo_file()], f"models-base-dir={self.work_dir}")
        response = process_request(request)

        assert "bad/bad.proto" in response.error
        assert [f.name for f in response.file] == ["foo/foo_transformer.go"]

    def test_unknown_parameter(self):
        response = process_request(_make_request([_make_foo_file()], "colour=blue"))
        assert "unknown parameter 'colour'" in response.error
        assert len(response.file) == 0
