"""specir -- Compile OpenAPI 3.x documents into a code-generation IR.

This package walks a parsed OpenAPI document and produces a deterministic,
fully name-resolved intermediate representation: a flat list of operations
(parameters, bodies, responses, security) and a flat list of named types.
A rendering stage turns the IR into source code; that stage is not part of
this package.

Typical workflow::

    specir compile openapi.yaml -o ir.json     # dump the IR as JSON
    specir operations openapi.yaml             # list the compiled operations

Modules:
    app: Typer application and CLI entry point.
    compiler: The document-to-IR compiler.
    parser: Document loading and ``$ref`` dereferencing.
    models: Pydantic IR and option models.
    config: Compiler options files.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
