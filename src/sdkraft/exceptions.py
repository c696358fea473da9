"""Exception hierarchy for sdkraft.

All exceptions inherit from :class:`SdkraftError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`sdkraft.exit_codes`.
The top-level error handler in :func:`sdkraft.app.main` catches
``SdkraftError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Per-entity problems found while generating (a model with an invalid name,
an artifact that breaks a naming rule) are *not* raised one by one; they
are collected as findings and surface together in a single
:class:`ValidationFailedError` at the end of the run.

Subclass hierarchy::

    SdkraftError (exit 1)
    +-- InvalidInputError      (exit 2)
    +-- ParsingFailedError     (exit 3)
    +-- ValidationFailedError  (exit 4)
    +-- TemplateError          (exit 5)
    +-- FileSystemError        (exit 6)
    +-- GenerationFailedError  (exit 7)
    +-- ConfigError            (exit 1)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from sdkraft.exit_codes import (
    EXIT_FILESYSTEM_ERROR,
    EXIT_GENERATION_FAILED,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_INPUT,
    EXIT_PARSING_FAILED,
    EXIT_TEMPLATE_ERROR,
    EXIT_VALIDATION_FAILED,
)

if TYPE_CHECKING:
    from sdkraft.generator.report import ValidationReport


class SdkraftError(Exception):
    """Base exception for all sdkraft errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`sdkraft.exit_codes`. The entry point catches
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


class InvalidInputError(SdkraftError):
    """Raised for invalid CLI arguments or a document that is not a usable OpenAPI 3.x spec."""

    exit_code = EXIT_INVALID_INPUT


class ParsingFailedError(SdkraftError):
    """Raised when the API document cannot be read or is neither JSON nor YAML."""

    exit_code = EXIT_PARSING_FAILED


class ValidationFailedError(SdkraftError):
    """Raised at the end of a run whose validation report is non-empty.

    The message carries the finding count and one line per finding; the
    full :class:`~sdkraft.generator.report.ValidationReport` is kept on
    :attr:`report` for callers that want structured access.

    Args:
        message: Summary message including every finding.
        report: The aggregated report of the run.
    """

    exit_code = EXIT_VALIDATION_FAILED

    def __init__(self, message: str, report: Optional[ValidationReport] = None):
        super().__init__(message)
        self.report = report


class TemplateError(SdkraftError):
    """Raised when a template is missing, fails to render, or produces unformattable code."""

    exit_code = EXIT_TEMPLATE_ERROR


class FileSystemError(SdkraftError):
    """Raised when the output directory tree cannot be created or a file cannot be written."""

    exit_code = EXIT_FILESYSTEM_ERROR


class GenerationFailedError(SdkraftError):
    """Raised when a generation stage fails for a reason other than validation."""

    exit_code = EXIT_GENERATION_FAILED


class ConfigError(SdkraftError):
    """Raised for configuration problems (unreadable file, invalid YAML/JSON, bad values)."""

    exit_code = EXIT_GENERIC_FAILURE
