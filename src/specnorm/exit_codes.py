"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific failure category and is referenced by the
corresponding :class:`~specnorm.exceptions.SpecnormError` subclass.
Shell wrappers and CI jobs can inspect the exit code of ``specnorm normalize``
to tell a broken document from a dangling reference without parsing stderr.

Example::

    $ specnorm normalize broken.yaml
    $ echo $?
    9   # EXIT_UNRESOLVABLE_REFERENCE -- a $ref points nowhere
"""

EXIT_SUCCESS = 0
"""The document was normalized successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_UNSUPPORTED_SPEC_TYPE = 2
"""The declared spec type is not one the engine accepts."""

EXIT_MALFORMED_DOCUMENT = 7
"""The input is not a well-formed JSON or YAML value."""

EXIT_STRUCTURAL_MISMATCH = 8
"""The document lacks the minimal shape expected for its declared type."""

EXIT_UNRESOLVABLE_REFERENCE = 9
"""A ``$ref`` pointer could not be located or its document could not be fetched."""
