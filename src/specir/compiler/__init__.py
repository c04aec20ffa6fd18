"""OpenAPI-document-to-IR compiler.

Typical usage::

    from specir.compiler import compile_spec

    compiled = compile_spec(document)

Sub-modules:

* :mod:`~specir.compiler.naming` -- identifier normalization.
* :mod:`~specir.compiler.schema` -- schema resolution and type synthesis.
* :mod:`~specir.compiler.params` -- parameter descriptors and serialization defaults.
* :mod:`~specir.compiler.path_rules` -- path templates and default operation IDs.
* :mod:`~specir.compiler.content` -- request bodies and responses.
* :mod:`~specir.compiler.operations` -- operation assembly and the entry point.
"""

from specir.compiler.operations import Compiler, compile_spec
from specir.compiler.schema import SchemaResolver, TypeRegistry

__all__ = ["Compiler", "SchemaResolver", "TypeRegistry", "compile_spec"]
