"""OpenAPI document access -- load documents and dereference ``$ref`` pointers.

Typical usage::

    from specir.parser import load_spec, validate_openapi_version

    document = load_spec("petstore.yaml")
    validate_openapi_version(document)

Sub-modules:

* :mod:`~specir.parser.loader` -- I/O layer (file, stdin) plus format
  detection and OpenAPI version validation.
* :mod:`~specir.parser.refs` -- JSON-pointer dereferencing used by the
  compiler.
"""

from specir.parser.loader import load_spec, parse_content, validate_openapi_version
from specir.parser.refs import RefResolver

__all__ = ["load_spec", "parse_content", "validate_openapi_version", "RefResolver"]
