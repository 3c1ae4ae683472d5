from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from jinja2 import Environment, FileSystemLoader, TemplateError

from struct_transformer.errors import ErrorKind, TransformError
from struct_transformer.models import MessageTransformRecord, UnionRecord

logger = logging.getLogger(__name__)

MESSAGES_TEMPLATE = "messages.go.j2"
ONEOF_TEMPLATE = "oneof.go.j2"


def _get_template_env() -> Environment:
    template_dir = Path(__file__).parent.parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(template_dir)),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def prefix_fields(records: Sequence[MessageTransformRecord], prefix: str) -> List[MessageTransformRecord]:
    """Qualify converters of fields marked use_package with the helper package.

    Returns new records; applying it twice gives the same result as once.
    """
    if not prefix:
        return list(records)
    return [r.with_prefix(prefix) for r in records]


def render_messages(records: Sequence[MessageTransformRecord]) -> str:
    """Render the forward and reverse converters of every record, in order."""
    env = _get_template_env()
    try:
        template = env.get_template(MESSAGES_TEMPLATE)
        parts: List[str] = []
        for record in records:
            logger.debug("rendering %s <-> %s", record.src, record.dst)
            parts.append(template.render(view=record.forward()))
            parts.append(template.render(view=record.reverse()))
    except TemplateError as e:
        raise TransformError(f"template {MESSAGES_TEMPLATE}: {e}", ErrorKind.FATAL) from e
    return "".join(parts)


def render_unions(unions: Sequence[UnionRecord]) -> str:
    """Render collapse/expand helpers; appended after all message converters."""
    if not unions:
        return ""
    env = _get_template_env()
    try:
        template = env.get_template(ONEOF_TEMPLATE)
        return "".join(template.render(union=u) for u in unions)
    except TemplateError as e:
        raise TransformError(f"template {ONEOF_TEMPLATE}: {e}", ErrorKind.FATAL) from e


def generate_body(
    records: Sequence[MessageTransformRecord],
    unions: Sequence[UnionRecord],
    helper_package: str,
) -> str:
    """Emit the converter pairs, then the union helpers, as one body."""
    prefixed = prefix_fields(records, helper_package)
    return render_messages(prefixed) + render_unions(unions)
