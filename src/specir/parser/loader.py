"""Read an OpenAPI document from disk or stdin into a plain ``dict``.

The compiler works on already-parsed data, so this is the only place that
deals with bytes and formats. JSON and YAML are both accepted; the file
extension picks the parser when it is conclusive, otherwise JSON is tried
before YAML. Remote documents are refused rather than fetched.

Example::

    >>> document = load_spec("petstore.yaml")
    >>> validate_openapi_version(document)
    '3.0.3'
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import yaml

from specir.exceptions import SpecParseError

_FORMAT_BY_EXTENSION = {
    ".json": "json",
    ".yaml": "yaml",
    ".yml": "yaml",
}


def load_spec(source: str) -> dict[str, Any]:
    """Return the document at *source*, a file path or ``-`` for stdin.

    Raises:
        SpecParseError: For URLs, unreadable or empty input, and content
            that is not a JSON/YAML mapping.
    """
    if source == "-":
        return _load_from_stdin()
    if source.startswith(("http://", "https://")):
        raise SpecParseError(
            f"Remote documents are not fetched: {source}. "
            "Download the document and pass the local path instead."
        )
    return _load_from_file(source)


def _load_from_stdin() -> dict[str, Any]:
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise SpecParseError(f"Failed to read from stdin: {exc}") from exc
    if not content.strip():
        raise SpecParseError("No input received from stdin")
    return parse_content(content)


def _load_from_file(path: str) -> dict[str, Any]:
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecParseError(f"Document not found: {path}")
    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Failed to read {path}: {exc}") from exc
    if not content.strip():
        raise SpecParseError(f"Document is empty: {path}")
    return parse_content(content, hint=_FORMAT_BY_EXTENSION.get(file_path.suffix.lower(), ""))


def parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse *content* as a JSON or YAML mapping.

    Args:
        content: Raw text.
        hint: ``"json"`` or ``"yaml"`` to use one parser only; anything
            else tries JSON, then YAML.

    Raises:
        SpecParseError: If no parser accepts the text, or the top-level
            value is not a mapping.
    """
    errors: list[str] = []

    if hint != "yaml":
        try:
            return _mapping(json.loads(content))
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise SpecParseError(f"Invalid JSON: {exc}") from exc
            errors.append(f"JSON error: {exc}")

    try:
        return _mapping(yaml.safe_load(content))
    except yaml.YAMLError as exc:
        errors.append(f"YAML error: {exc}")

    raise SpecParseError(
        "Failed to parse document as JSON or YAML" + "".join(f"\n  {e}" for e in errors)
    )


def _mapping(value: Any) -> dict[str, Any]:
    if not isinstance(value, dict):
        got = "empty document" if value is None else type(value).__name__
        raise SpecParseError(f"Document must be a JSON/YAML object (got {got})")
    return value


def validate_openapi_version(document: dict[str, Any]) -> str:
    """Return the ``openapi`` version of *document*, which must be 3.x.

    Raises:
        SpecParseError: For Swagger 2.x documents, a missing ``openapi``
            field, or any other major version.
    """
    if "swagger" in document:
        raise SpecParseError(
            f"Swagger {document['swagger']} is not supported. "
            "Only OpenAPI 3.x documents can be compiled. "
            "Consider converting with https://converter.swagger.io"
        )

    version = document.get("openapi")
    if version is None:
        raise SpecParseError("Missing 'openapi' field. Is this an OpenAPI 3.x document?")
    if not str(version).startswith("3."):
        raise SpecParseError(
            f"Unsupported OpenAPI version: {version}. "
            "Only OpenAPI 3.x documents can be compiled."
        )
    return str(version)
