"""Builders for small inline OpenAPI documents used across the test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from specir.compiler import SchemaResolver, TypeRegistry
from specir.models import CompilerOptions
from specir.parser.refs import RefResolver


FIXTURES_DIR = Path(__file__).parent / "fixtures"


def make_document(
    paths: Optional[dict[str, Any]] = None,
    schemas: Optional[dict[str, Any]] = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build a minimal OpenAPI 3.0 document around *paths* and *schemas*."""
    document: dict[str, Any] = {
        "openapi": "3.0.3",
        "info": {"title": "Test", "version": "1.0.0"},
        "paths": paths or {},
    }
    if schemas is not None:
        document["components"] = {"schemas": schemas}
    document.update(extra)
    return document


def resolver_for(
    document: dict[str, Any],
    options: Optional[CompilerOptions] = None,
) -> SchemaResolver:
    """A schema resolver over *document* with its component names reserved."""
    options = options or CompilerOptions()
    resolver = SchemaResolver(
        RefResolver(document, options.import_mapping), TypeRegistry(), options
    )
    resolver.register_components(document.get("components"))
    return resolver


def ok_response(schema: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    """A ``200`` responses object, with JSON content when *schema* is given."""
    response: dict[str, Any] = {"description": "OK"}
    if schema is not None:
        response["content"] = {"application/json": {"schema": schema}}
    return {"200": response}


def reversed_keys(value: Any) -> Any:
    """Copy *value* with the insertion order of every mapping reversed."""
    if isinstance(value, dict):
        return {key: reversed_keys(value[key]) for key in reversed(list(value))}
    if isinstance(value, list):
        return [reversed_keys(item) for item in value]
    return value
