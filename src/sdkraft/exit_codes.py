"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~sdkraft.exceptions.SdkraftError` subclass.
CI scripts and shell wrappers can inspect the exit code to tell a bad
input document apart from a generated artifact that failed validation
without parsing stderr.

Example::

    $ sdkraft generate petstore.yaml -o ./out
    $ echo $?
    4   # EXIT_VALIDATION_FAILED -- some artifacts were not written
"""

EXIT_SUCCESS = 0
"""Generation completed and every artifact was written."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_INPUT = 2
"""The command was invoked with invalid arguments or an unusable input document."""

EXIT_PARSING_FAILED = 3
"""The API document could not be loaded or parsed."""

EXIT_VALIDATION_FAILED = 4
"""Generation finished, but one or more entities or artifacts failed validation."""

EXIT_TEMPLATE_ERROR = 5
"""A template could not be loaded, rendered, or formatted."""

EXIT_FILESYSTEM_ERROR = 6
"""The output tree could not be created or written."""

EXIT_GENERATION_FAILED = 7
"""A generation stage failed unexpectedly."""
