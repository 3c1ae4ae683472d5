"""Generator version information, written into every generated file header."""

VERSION = "0.4.0"
BUILD_TIME = "<build_time>"


def version_string() -> str:
    return f"version: {VERSION}\nbuild-time: {BUILD_TIME}\n"
