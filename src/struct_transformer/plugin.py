"""protoc plugin entry point: protoc-gen-struct-transformer.

protoc writes a CodeGeneratorRequest to stdin and reads a
CodeGeneratorResponse from stdout, so nothing else may be written there.
"""

from __future__ import annotations

import logging
import sys
from typing import List

from google.protobuf.compiler import plugin_pb2

from struct_transformer.config import GeneratorConfig
from struct_transformer.generator.file_generator import generate
from struct_transformer.parser.descriptor_reader import read_file

logger = logging.getLogger(__name__)


def process_request(request: plugin_pb2.CodeGeneratorRequest) -> plugin_pb2.CodeGeneratorResponse:
    """Generate transformer files for every file_to_generate of the request."""
    response = plugin_pb2.CodeGeneratorResponse()
    response.supported_features = plugin_pb2.CodeGeneratorResponse.FEATURE_PROTO3_OPTIONAL

    try:
        config = GeneratorConfig.from_parameter(request.parameter)
    except ValueError as e:
        response.error = f"invalid parameter {request.parameter!r}: {e}"
        return response

    if config.debug:
        logging.getLogger("struct_transformer").setLevel(logging.DEBUG)

    files = [read_file(fd) for fd in request.proto_file]
    errors: List[str] = []
    for result in generate(files, request.file_to_generate, config):
        if result.failed:
            errors.append(f"{result.file_name}: {result.error}")
        elif not result.skipped:
            response.file.add(name=result.path, content=result.content)

    if errors:
        response.error = "\n".join(errors)
    return response


def main():
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
    )

    request = plugin_pb2.CodeGeneratorRequest()
    request.ParseFromString(sys.stdin.buffer.read())

    response = process_request(request)
    sys.stdout.buffer.write(response.SerializeToString())


if __name__ == "__main__":
    main()
