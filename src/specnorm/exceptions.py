"""Exception hierarchy for specnorm.

All exceptions inherit from :class:`SpecnormError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`specnorm.exit_codes`.
Failures of a normalization run are :class:`ParseError` subclasses and also
carry an :class:`ErrorKind` tag, which is what
:func:`specnorm.normalizer.normalize` reports to callers in its tagged
:class:`~specnorm.models.NormalizationResult`.

Subclass hierarchy::

    SpecnormError (exit 1)
    +-- ParseError                     (exit 7)
    |   +-- MalformedDocumentError     (exit 7)
    |   +-- StructuralMismatchError    (exit 8)
    |   +-- UnresolvableReferenceError (exit 9)
    |   +-- UnsupportedSpecTypeError   (exit 2)
    +-- ConfigError                    (exit 1)

Cyclic references are not errors: the resolver truncates them and
normalization continues.
"""

from __future__ import annotations

import enum

from specnorm.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_MALFORMED_DOCUMENT,
    EXIT_STRUCTURAL_MISMATCH,
    EXIT_UNRESOLVABLE_REFERENCE,
    EXIT_UNSUPPORTED_SPEC_TYPE,
)


class ErrorKind(str, enum.Enum):
    """Category of a failed normalization run."""

    MALFORMED_DOCUMENT = "MalformedDocument"
    STRUCTURAL_MISMATCH = "StructuralMismatch"
    UNRESOLVABLE_REFERENCE = "UnresolvableReference"
    UNSUPPORTED_SPEC_TYPE = "UnsupportedSpecType"


class SpecnormError(Exception):
    """Base exception for all specnorm errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`specnorm.exit_codes`. The CLI entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ParseError(SpecnormError):
    """Base class for errors that abort a normalization run.

    No partial :class:`~specnorm.models.ParsedSpec` is ever produced once
    one of these has been raised.
    """

    exit_code = EXIT_MALFORMED_DOCUMENT
    kind: ErrorKind = ErrorKind.MALFORMED_DOCUMENT


class MalformedDocumentError(ParseError):
    """Raised when the input is not a well-formed JSON or YAML value."""

    exit_code = EXIT_MALFORMED_DOCUMENT
    kind = ErrorKind.MALFORMED_DOCUMENT


class StructuralMismatchError(ParseError):
    """Raised when the document lacks the minimal shape for its declared type."""

    exit_code = EXIT_STRUCTURAL_MISMATCH
    kind = ErrorKind.STRUCTURAL_MISMATCH


class UnresolvableReferenceError(ParseError):
    """Raised when a ``$ref`` cannot be located, including failed external fetches."""

    exit_code = EXIT_UNRESOLVABLE_REFERENCE
    kind = ErrorKind.UNRESOLVABLE_REFERENCE


ResolutionError = UnresolvableReferenceError


class UnsupportedSpecTypeError(ParseError):
    """Raised for a declared spec type the engine does not accept."""

    exit_code = EXIT_UNSUPPORTED_SPEC_TYPE
    kind = ErrorKind.UNSUPPORTED_SPEC_TYPE


class ConfigError(SpecnormError):
    """Raised for configuration problems (unreadable or invalid config files)."""

    exit_code = EXIT_GENERIC_FAILURE
