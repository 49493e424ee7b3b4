"""Turn extracted error locations + messages into batch-local ErrorNodes."""

from __future__ import annotations

import logging

from faultline.severity import classify
from faultline.types.core import Severity
from faultline.types.errors import ErrorLocation, ErrorNode

logger = logging.getLogger("faultline.nodes")

KNOWN_ERROR_TYPES: tuple[str, ...] = (
    "SyntaxError",
    "TypeError",
    "ReferenceError",
    "ImportError",
    "RuntimeError",
    "CompileError",
    "NullPointerException",
    "NameError",
    "AttributeError",
    "KeyError",
)

UNKNOWN_MESSAGE = "Unknown error"


def extract_error_type(message: str) -> str | None:
    """First known error type name mentioned in the message (case-insensitive)."""
    lower = (message or "").lower()
    for error_type in KNOWN_ERROR_TYPES:
        if error_type.lower() in lower:
            return error_type
    return None


def build_error_nodes(
    locations: list[ErrorLocation],
    messages: list[str],
    error_types: list[str | None] | None = None,
) -> list[ErrorNode]:
    """Build one ErrorNode per location, ids ``error_<index>`` in batch order.

    Messages and types are matched by index; a missing message becomes
    "Unknown error" and a missing type is extracted from the message. Severity
    comes from the location when pre-assigned, otherwise from the classifier.
    """
    nodes: list[ErrorNode] = []
    for index, location in enumerate(locations):
        if not isinstance(location, ErrorLocation):
            logger.warning(f"Skipping malformed error record at index {index}: {location!r}")
            continue

        message = messages[index] if index < len(messages) and messages[index] else UNKNOWN_MESSAGE
        error_type = None
        if error_types is not None and index < len(error_types):
            error_type = error_types[index]
        if not error_type:
            error_type = extract_error_type(message)

        severity = location.severity or classify(message, error_type)
        nodes.append(
            ErrorNode(
                error_id=f"error_{index}",
                location=location,
                message=message,
                severity=severity,
                error_type=error_type,
            )
        )

    logger.debug(f"Built {len(nodes)} error nodes from {len(locations)} locations")
    return nodes


def location_from_mapping(record: dict) -> ErrorLocation | None:
    """Build an ErrorLocation from a loosely-shaped record, or None if invalid.

    Accepts ``file``/``file_path``, ``line``/``line_number``,
    ``column``/``column_number``, ``function``/``function_name`` and an
    optional ``severity`` name.
    """
    file_path = record.get("file_path") or record.get("file") or ""
    line = record.get("line_number", record.get("line"))
    column = record.get("column_number", record.get("column"))
    function = record.get("function_name") or record.get("function")
    raw_severity = record.get("severity")

    severity = None
    if raw_severity:
        try:
            severity = Severity(str(raw_severity).upper())
        except ValueError:
            logger.warning(f"Ignoring unknown severity {raw_severity!r} for {file_path}")

    try:
        return ErrorLocation(
            file_path=str(file_path),
            line_number=int(line) if line is not None else None,
            column_number=int(column) if column is not None else None,
            function_name=function,
            severity=severity,
        )
    except (TypeError, ValueError) as e:
        logger.warning(f"Skipping invalid error record {record!r}: {e}")
        return None
