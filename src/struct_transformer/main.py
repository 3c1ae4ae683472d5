from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List

from struct_transformer.config import DEFAULT_PACKAGE, GeneratorConfig
from struct_transformer.generator.file_generator import generate
from struct_transformer.parser.proto_ast_parser import ProtoParseError
from struct_transformer.parser.proto_transform import parse_proto_files
from struct_transformer.version import version_string


def _find_files(working_path: str, extensions: List[str]) -> List[str]:
    """Recursively find files with given extensions under working_path."""
    results = []
    for ext in extensions:
        results.extend(str(p) for p in Path(working_path).rglob(f"*{ext}"))
    return sorted(results)


def run(working_path: str, out_dir: str, config: GeneratorConfig) -> int:
    """Main pipeline: parse, resolve, generate, write.

    Returns the number of files that failed.
    """
    # 1. Find input files
    proto_files = _find_files(working_path, [".proto"])
    if not proto_files:
        print(f"No .proto files found under {working_path}")
        sys.exit(1)

    print(f"Found {len(proto_files)} proto file(s)")

    # 2. Parse all files; names are relative to the working path like protoc's
    try:
        schema_files = parse_proto_files(proto_files, root=working_path)
    except (OSError, ProtoParseError) as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)

    for sf in schema_files:
        print(f"  Parsed {sf.name}: {len(sf.messages)} message(s)")

    # 3. Generate
    results = generate(schema_files, [sf.name for sf in schema_files], config)

    # 4. Write
    failed = 0
    for result in results:
        if result.skipped:
            print(f"  Skipped {result.file_name}")
        elif result.failed:
            failed += 1
            print(f"  FAILED {result.file_name}: {result.error}", file=sys.stderr)
        else:
            target = Path(out_dir) / result.path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(result.content, encoding="utf-8")
            print(f"  Generated: {target}")

    print("Done!" if not failed else f"Done with {failed} failed file(s)")
    return failed


def main():
    parser = argparse.ArgumentParser(
        description="Generate Go converters between protobuf messages and domain structs",
    )
    parser.add_argument(
        "--working-path",
        required=True,
        help="Path to scan for .proto files",
    )
    parser.add_argument(
        "--package",
        default=DEFAULT_PACKAGE,
        help="Go package name of the generated files",
    )
    parser.add_argument(
        "--helper-package",
        default="",
        help="Package alias for converters generated elsewhere",
    )
    parser.add_argument(
        "--out",
        default="",
        help="Output directory (default: the working path)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Dump the message catalog into generated files",
    )
    parser.add_argument(
        "--use-package-in-path",
        action="store_true",
        help="Write files under a directory named after --package",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    parser.add_argument("--version", action="version", version=version_string())

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
    )

    config = GeneratorConfig(
        package_name=args.package,
        helper_package=args.helper_package,
        debug=args.debug,
        use_package_in_path=args.use_package_in_path,
        # go_models_file_path options are relative to the proto tree
        models_base_dir=str(Path(args.working_path).resolve()),
    )
    failed = run(args.working_path, args.out or args.working_path, config)
    sys.exit(1 if failed else 0)
