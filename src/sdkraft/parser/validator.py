"""Structural checks on a raw OpenAPI document before generation.

Two kinds of problems are distinguished:

* **Fatal** -- the document cannot describe an SDK at all (no ``info``, no
  ``paths``). These raise :class:`~sdkraft.exceptions.InvalidInputError`.
* **Per-entity** -- one operation without ``responses``, one component
  schema that is not an object. These are returned as ``Schema`` findings
  and generation carries on with everything else.
"""

from __future__ import annotations

import logging
from typing import Any

from sdkraft.exceptions import InvalidInputError
from sdkraft.models import FindingCategory, HTTPMethod, ValidationFinding

logger = logging.getLogger(__name__)


def validate_document(spec: dict[str, Any]) -> list[ValidationFinding]:
    """Check the document and return its non-fatal findings.

    Args:
        spec: Raw document whose version was already accepted by
            :func:`~sdkraft.parser.loader.validate_openapi_version`.

    Returns:
        ``Schema`` findings in document order (empty when clean).

    Raises:
        InvalidInputError: If ``info`` or ``paths`` is missing or malformed.
    """
    info = spec.get("info")
    if not isinstance(info, dict):
        raise InvalidInputError("Document has no 'info' object")
    if not info.get("title"):
        logger.warning("Document info has no title")

    paths = spec.get("paths")
    if not isinstance(paths, dict):
        raise InvalidInputError("Document has no 'paths' object")

    findings: list[ValidationFinding] = []

    for path, path_item in paths.items():
        if not isinstance(path_item, dict):
            findings.append(_finding(f"paths.{path}", "path item must be an object"))
            continue
        for method in HTTPMethod:
            operation = path_item.get(method.value)
            if operation is None:
                continue
            where = f"{method.value.upper()} {path}"
            if not isinstance(operation, dict):
                findings.append(_finding(where, "operation must be an object"))
            elif not operation.get("responses"):
                findings.append(_finding(where, "operation declares no responses"))

    schemas = (spec.get("components") or {}).get("schemas") or {}
    if not isinstance(schemas, dict):
        findings.append(_finding("components.schemas", "must be an object"))
        return findings
    for name, schema in schemas.items():
        if not isinstance(schema, dict):
            findings.append(
                _finding(f"components.schemas.{name}", "schema must be an object")
            )

    logger.debug("Document validation produced %d findings", len(findings))
    return findings


def _finding(path: str, message: str) -> ValidationFinding:
    return ValidationFinding(
        category=FindingCategory.SCHEMA, path=path, messages=(message,)
    )
