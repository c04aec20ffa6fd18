"""Exception hierarchy for specir.

All exceptions inherit from :class:`SpecirError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specir.exit_codes`.
The top-level handler in :func:`specir.app.main` catches ``SpecirError``
and exits with the appropriate code.

Subclass hierarchy::

    SpecirError (exit 1)
    +-- InvalidUsageError   (exit 2)
    +-- SpecParseError      (exit 7)
    +-- DocumentError       (exit 8)
    +-- NamingError         (exit 9)
    +-- ConfigError         (exit 1)

Compilation is fail-fast: the first :class:`DocumentError` or
:class:`NamingError` aborts the whole run and no partial IR is returned.
"""

from __future__ import annotations

from typing import Optional

from specir.exit_codes import (
    EXIT_DOCUMENT_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NAMING_ERROR,
    EXIT_SPEC_PARSE_ERROR,
)


class SpecirError(Exception):
    """Base exception for all specir errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SpecirError):
    """Raised for invalid CLI arguments."""

    exit_code = EXIT_INVALID_USAGE


class SpecParseError(SpecirError):
    """Raised when the OpenAPI document cannot be loaded or has an unsupported version."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class _LocatedError(SpecirError):
    """A compilation error that can name the document location at fault.

    ``pointer`` is a JSON pointer into the source document, such as
    ``#/paths/~1pets/get``. Sub-steps raise without one where they do not
    know their position; the operation assembler fills it in via :meth:`at`.
    """

    def __init__(self, message: str, pointer: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.pointer = pointer

    def at(self, pointer: str) -> "_LocatedError":
        """Attach *pointer* unless a more specific one is already set."""
        if self.pointer is None:
            self.pointer = pointer
        return self

    def __str__(self) -> str:
        if self.pointer:
            return f"{self.pointer}: {self.message}"
        return self.message


class DocumentError(_LocatedError):
    """Raised when the document is inconsistent.

    Covers unresolved references, path-parameter mismatches, unsupported
    parameter locations and incompatible composition members.
    """

    exit_code = EXIT_DOCUMENT_ERROR


class NamingError(_LocatedError):
    """Raised when a name normalizes to nothing or no free spelling is left."""

    exit_code = EXIT_NAMING_ERROR


class ConfigError(SpecirError):
    """Raised for unreadable or invalid compiler options files."""

    exit_code = EXIT_GENERIC_FAILURE
