"""Error kinds shared by the generator stages.

Callers branch on ``TransformError.kind`` instead of on exception classes:

- SKIPPED: the file carries no models path option and produces no output.
- RECOVERABLE: a message or field could not be mapped; it becomes a comment
  in the generated code and processing continues.
- FATAL: the current file cannot be generated at all.
"""

from __future__ import annotations

from enum import Enum, auto


class ErrorKind(Enum):
    SKIPPED = auto()
    RECOVERABLE = auto()
    FATAL = auto()


class TransformError(Exception):
    """Raised by generator stages; ``kind`` decides how far it propagates."""

    def __init__(self, message: str, kind: ErrorKind = ErrorKind.FATAL):
        super().__init__(message)
        self.kind = kind

    @property
    def is_recoverable(self) -> bool:
        return self.kind is ErrorKind.RECOVERABLE


def file_skipped(file_name: str) -> TransformError:
    return TransformError(
        f"file {file_name} skipped: no go_models_file_path option",
        ErrorKind.SKIPPED,
    )
