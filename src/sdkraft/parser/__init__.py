"""OpenAPI parser -- load, validate, resolve ``$ref`` pointers, and normalise.

This sub-package turns a raw OpenAPI 3.x document (JSON or YAML, local file,
remote URL or stdin) into the :class:`~sdkraft.models.APIDocument` consumed
by the generation pipeline.

Typical usage::

    from sdkraft.parser import parse_document

    document, findings = parse_document("petstore.yaml")

Sub-modules:

* :mod:`~sdkraft.parser.loader` -- I/O layer plus format detection and
  OpenAPI version validation.
* :mod:`~sdkraft.parser.validator` -- structural document checks.
* :mod:`~sdkraft.parser.resolver` -- ``$ref`` resolution that keeps named
  schema references intact.
* :mod:`~sdkraft.parser.schema` -- raw schema -> :class:`~sdkraft.models.SchemaNode`.
* :mod:`~sdkraft.parser.extractor` -- raw document ->
  :class:`~sdkraft.models.APIDocument`.
"""

from __future__ import annotations

from sdkraft.models import APIDocument, ValidationFinding
from sdkraft.parser.extractor import extract_document
from sdkraft.parser.loader import load_spec, validate_openapi_version
from sdkraft.parser.validator import validate_document


def parse_document(source: str) -> tuple[APIDocument, list[ValidationFinding]]:
    """Load, check and normalise the document at *source*.

    Returns:
        The document and the non-fatal ``Schema`` findings of the check.

    Raises:
        ParsingFailedError: If the source cannot be read or parsed.
        InvalidInputError: If the document is not a usable OpenAPI 3.x spec.
    """
    raw = load_spec(source)
    version = validate_openapi_version(raw)
    findings = validate_document(raw)
    return extract_document(raw, version), findings


__all__ = [
    "extract_document",
    "load_spec",
    "parse_document",
    "validate_document",
    "validate_openapi_version",
]
