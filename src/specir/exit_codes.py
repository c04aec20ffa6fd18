"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~specir.exceptions.SpecirError` subclass.
Build scripts can inspect the exit code to tell a broken document apart
from a broken invocation without parsing stderr.

Example::

    $ specir compile petstore.yaml
    $ echo $?
    8   # EXIT_DOCUMENT_ERROR -- an unresolved $ref or similar
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_SPEC_PARSE_ERROR = 7
"""The OpenAPI document could not be read, parsed, or has an unsupported version."""

EXIT_DOCUMENT_ERROR = 8
"""The document is internally inconsistent (dangling reference, bad parameter location, ...)."""

EXIT_NAMING_ERROR = 9
"""No legal, collision-free identifier could be produced for a name."""
