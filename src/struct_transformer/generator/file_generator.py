"""Assemble one generated Go file per schema file.

``process_file`` runs the whole chain for a single file: models path
option, Go struct catalog, field resolution, rendering and the header.
``generate`` runs it for every requested file and keeps going after a file
fails, so callers get every file that could be produced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from struct_transformer.catalog import build_symbol_table, collect_all_messages, dump
from struct_transformer.config import GeneratorConfig
from struct_transformer.errors import ErrorKind, TransformError, file_skipped
from struct_transformer.generator.go_transformer_generator import generate_body
from struct_transformer.models import (
    FieldKind,
    MessageOption,
    MessageOptionList,
    MessageTransformRecord,
    SchemaFile,
    TypeSymbol,
    UnionRecord,
)
from struct_transformer.options import (
    DEFAULT_PROTOBUF_PACKAGE,
    DEFAULT_REPO_PACKAGE,
    GO_MODELS_FILE_PATH,
    GO_PROTOBUF_PACKAGE,
    GO_REPO_PACKAGE,
    get_string_option,
)
from struct_transformer.parser.go_parser import parse_go_models
from struct_transformer.resolver import ResolveContext, resolve_message
from struct_transformer.version import VERSION

logger = logging.getLogger(__name__)

HEADER = "// Code generated by protoc-gen-struct-transformer, version: {version}. DO NOT EDIT.\n"
OUTPUT_SUFFIX = "_transformer.go"
# Imported by the collapse helpers of int64-or-string unions.
UNION_IMPORT = '\nimport "strconv"\n'


def file_header(src_file_name: str, src_package: str, dst_package: str) -> str:
    return (
        HEADER.format(version=VERSION)
        + f"// source file: {src_file_name}\n"
        + f"// source package: {src_package}\n"
        + f"\npackage {dst_package}\n"
    )


def output_path(file_name: str, package_name: str, use_package_in_path: bool) -> str:
    """foo/bar.proto -> foo/bar_transformer.go, or foo/<package>/bar_transformer.go."""
    path = PurePosixPath(file_name)
    directory = path.parent
    if use_package_in_path:
        directory = directory / package_name
    return (directory / (path.stem + OUTPUT_SUFFIX)).as_posix()


def _has_models_path(schema_file: SchemaFile) -> bool:
    option_path = get_string_option(schema_file.options, GO_MODELS_FILE_PATH)
    return option_path is not None and bool(option_path.strip())


def adopted_unions(
    files: Sequence[SchemaFile],
    messages: MessageOptionList,
    symbols: Dict[str, TypeSymbol],
) -> Dict[str, str]:
    """Map unions declared in files without output to the file emitting their helpers.

    ``files`` are the files being generated, in order. A union declared in
    one of them with a models path gets its helpers there. Any other union
    is adopted by the first such file of the same package with a field of
    that type, so each union is emitted once per run.
    """
    generated = [f for f in files if _has_models_path(f)]
    declared = {m.full_name for f in generated for m in f.messages}

    adopted: Dict[str, str] = {}
    for schema_file in generated:
        for message in schema_file.messages:
            for schema_field in message.fields:
                name = schema_field.type_name
                if schema_field.kind is not FieldKind.MESSAGE or name in declared or name in adopted:
                    continue
                symbol = symbols.get(name)
                if symbol is None or symbol.package != schema_file.package:
                    continue
                if messages.get(name, MessageOption()).oneof_decl:
                    adopted[name] = schema_file.name
    return adopted


def _models_path(schema_file: SchemaFile, config: GeneratorConfig) -> str:
    option_path = get_string_option(schema_file.options, GO_MODELS_FILE_PATH)
    if option_path is None:
        raise file_skipped(schema_file.name)
    if not option_path.strip():
        raise TransformError(
            f"file {schema_file.name}: empty {GO_MODELS_FILE_PATH} option",
            ErrorKind.FATAL,
        )
    return config.models_path(option_path)


def process_file(
    schema_file: SchemaFile,
    messages: MessageOptionList,
    symbols: Dict[str, TypeSymbol],
    config: GeneratorConfig,
    adopted: Sequence[str] = (),
) -> Tuple[str, str]:
    """Generate the transformer source for one schema file.

    ``adopted`` names unions declared in files without output whose helpers
    go into this file. Returns (output path, content). Raises TransformError:
    SKIPPED when the file has no models path option, FATAL when it cannot be
    generated.
    """
    structs = parse_go_models(_models_path(schema_file, config))

    repo_pref = get_string_option(schema_file.options, GO_REPO_PACKAGE) or DEFAULT_REPO_PACKAGE
    proto_pref = get_string_option(schema_file.options, GO_PROTOBUF_PACKAGE) or DEFAULT_PROTOBUF_PACKAGE
    ctx = ResolveContext(
        messages=messages,
        structs=structs,
        symbols=symbols,
        package=schema_file.package,
        repo_pref=repo_pref,
        proto_pref=proto_pref,
    )

    records: List[MessageTransformRecord] = []
    unions: List[UnionRecord] = []
    skipped: List[str] = []
    for message in schema_file.messages:
        opt = messages.get(message.full_name, MessageOption())
        if opt.oneof_decl:
            unions.append(UnionRecord(message=message.go_name, pref=proto_pref, oneof_name=opt.oneof_decl))
            if opt.target_name:
                note = f"message {message.name} collapses to string: go_struct {opt.target_name} ignored"
                logger.warning("%s: %s", schema_file.name, note)
                skipped.append(f"// {note}\n")
            continue

        try:
            resolved = resolve_message(message, ctx)
        except TransformError as e:
            if not e.is_recoverable:
                raise
            logger.warning("%s: %s", schema_file.name, e)
            skipped.append(f"// {e}\n")
            continue

        records.append(MessageTransformRecord(
            src=message.go_name,
            src_pref=proto_pref,
            src_fn="Pb",
            src_pointer="*",
            dst=resolved.target,
            dst_pref=repo_pref,
            dst_fn=resolved.target,
            dst_pointer="",
            fields=resolved.fields,
            misses=resolved.misses,
        ))

    for full_name in adopted:
        unions.append(UnionRecord(
            message=symbols[full_name].go_name,
            pref=proto_pref,
            oneof_name=messages[full_name].oneof_decl,
        ))

    lines: List[str] = [file_header(schema_file.name, schema_file.package, config.package_name)]
    if unions:
        lines.append(UNION_IMPORT)
    if config.debug:
        lines.append("\n" + "\n".join(dump(messages)) + "\n")
    if skipped:
        lines.append("\n" + "".join(skipped))
    lines.append(generate_body(records, unions, config.helper_package))

    path = output_path(schema_file.name, config.package_name, config.use_package_in_path)
    return path, "".join(lines)


@dataclass
class FileResult:
    file_name: str
    path: str = ""
    content: str = ""
    error: Optional[TransformError] = None

    @property
    def skipped(self) -> bool:
        return self.error is not None and self.error.kind is ErrorKind.SKIPPED

    @property
    def failed(self) -> bool:
        return self.error is not None and self.error.kind is ErrorKind.FATAL


def generate(
    files: Sequence[SchemaFile],
    files_to_generate: Iterable[str],
    config: GeneratorConfig,
) -> List[FileResult]:
    """Generate every requested file.

    The message catalog and symbol table cover all ``files``, so fields may
    reference messages of files that are not generated themselves.
    """
    files_to_generate = list(files_to_generate)
    messages = collect_all_messages(files)
    symbols = build_symbol_table(files)
    by_name = {f.name: f for f in files}
    adopted = adopted_unions(
        [by_name[n] for n in files_to_generate if n in by_name], messages, symbols
    )

    results: List[FileResult] = []
    for name in files_to_generate:
        schema_file = by_name.get(name)
        if schema_file is None:
            results.append(FileResult(
                file_name=name,
                error=TransformError(f"file {name} not found in request", ErrorKind.FATAL),
            ))
            continue

        try:
            path, content = process_file(
                schema_file, messages, symbols, config,
                [u for u, owner in adopted.items() if owner == name],
            )
        except TransformError as e:
            if e.kind is ErrorKind.SKIPPED:
                logger.info("%s", e)
            else:
                logger.error("%s: %s", name, e)
            results.append(FileResult(file_name=name, error=e))
            continue

        logger.info("generated %s", path)
        results.append(FileResult(file_name=name, path=path, content=content))

    return results
