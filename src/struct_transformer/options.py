"""Custom transformer options and the readers for them.

The options live in the ``transformer`` proto package (see
``proto/transformer/options.proto``). The extensions are registered in the
protobuf default descriptor pool on import, so request descriptors parsed
afterwards carry them as regular extensions.
"""

from __future__ import annotations

from typing import Dict, Optional

from google.protobuf import descriptor_pb2, descriptor_pool

OPTIONS_PACKAGE = "transformer"
OPTIONS_FILE = "transformer/options.proto"

# File options
GO_MODELS_FILE_PATH = "go_models_file_path"
GO_REPO_PACKAGE = "go_repo_package"
GO_PROTOBUF_PACKAGE = "go_protobuf_package"
# Message options
GO_STRUCT = "go_struct"

DEFAULT_REPO_PACKAGE = "repo1"
DEFAULT_PROTOBUF_PACKAGE = "pb1"

_FILE_EXTENSIONS = {
    GO_REPO_PACKAGE: 51231,
    GO_PROTOBUF_PACKAGE: 51232,
    GO_MODELS_FILE_PATH: 51233,
}
_MESSAGE_EXTENSIONS = {
    GO_STRUCT: 51234,
}


def _options_file_proto() -> descriptor_pb2.FileDescriptorProto:
    fdp = descriptor_pb2.FileDescriptorProto(
        name=OPTIONS_FILE,
        package=OPTIONS_PACKAGE,
        syntax="proto2",
        dependency=["google/protobuf/descriptor.proto"],
    )
    for extendee, extensions in (
        (".google.protobuf.FileOptions", _FILE_EXTENSIONS),
        (".google.protobuf.MessageOptions", _MESSAGE_EXTENSIONS),
    ):
        for name, number in extensions.items():
            fdp.extension.add(
                name=name,
                number=number,
                label=descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL,
                type=descriptor_pb2.FieldDescriptorProto.TYPE_STRING,
                extendee=extendee,
            )
    return fdp


def _register() -> Dict[str, object]:
    pool = descriptor_pool.Default()
    try:
        pool.FindFileByName(OPTIONS_FILE)
    except KeyError:
        pool.AddSerializedFile(_options_file_proto().SerializeToString())
    return {
        name: pool.FindExtensionByName(f"{OPTIONS_PACKAGE}.{name}")
        for name in list(_FILE_EXTENSIONS) + list(_MESSAGE_EXTENSIONS)
    }


EXTENSIONS = _register()


def read_descriptor_options(options) -> Dict[str, str]:
    """Collect transformer extensions set on a FileOptions/MessageOptions."""
    result: Dict[str, str] = {}
    if options is None:
        return result
    for name, ext in EXTENSIONS.items():
        if ext.containing_type.full_name != options.DESCRIPTOR.full_name:
            continue
        if options.HasExtension(ext):
            result[name] = options.Extensions[ext]
    return result


def option_name(raw: str) -> str:
    """Map an option name as written in .proto text to its short key.

    ``(transformer.go_struct)`` and ``transformer.go_struct`` both give
    ``go_struct``; other options keep their full name.
    """
    name = raw.strip("()")
    prefix = OPTIONS_PACKAGE + "."
    if name.startswith(prefix):
        return name[len(prefix):]
    return name


def get_string_option(options: Dict[str, str], name: str) -> Optional[str]:
    """Return the named option or None when it is not present."""
    return options.get(name)
