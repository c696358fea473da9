"""Load OpenAPI documents from a URL, local file, or stdin.

This module handles all I/O for fetching raw OpenAPI documents and turning
them into Python dictionaries. JSON and YAML are both accepted, with the
format picked from the file extension or the HTTP ``content-type`` and
content-based detection as a fallback.

The two public functions are:

* :func:`load_spec` -- Load and parse a document from any supported source.
* :func:`validate_openapi_version` -- Check and return the ``openapi``
  version string, rejecting Swagger 2.x and anything that is not 3.x.

After loading, the raw dict is checked by
:func:`~sdkraft.parser.validator.validate_document` and then converted by
:func:`~sdkraft.parser.extractor.extract_document`.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

import httpx
import yaml

from sdkraft.exceptions import InvalidInputError, ParsingFailedError

logger = logging.getLogger(__name__)

_SUFFIX_HINTS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}


def load_spec(source: str) -> dict[str, Any]:
    """Load an OpenAPI document from URL, file path, or stdin (``-``).

    Args:
        source: A URL (http/https), file path, or ``-`` for stdin.

    Returns:
        The parsed document as a dictionary.

    Raises:
        ParsingFailedError: If the source cannot be read or parsed.
    """
    if source == "-":
        content, hint = _read_stdin(), ""
        origin = "stdin"
    elif source.startswith(("http://", "https://")):
        content, hint = _read_url(source)
        origin = source
    else:
        content, hint = _read_file(source)
        origin = source

    logger.debug("Loaded %d characters from %s", len(content), origin)
    return _parse_content(content, hint=hint)


def _read_stdin() -> str:
    try:
        content = sys.stdin.read()
    except OSError as exc:
        raise ParsingFailedError(f"Failed to read from stdin: {exc}") from exc

    if not content.strip():
        raise ParsingFailedError("No input received from stdin")
    return content


def _read_url(url: str) -> tuple[str, str]:
    """Fetch a document over HTTP and return ``(content, format_hint)``."""
    try:
        response = httpx.get(url, timeout=30.0, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise ParsingFailedError(
            f"HTTP {exc.response.status_code} fetching document from {url}"
        ) from exc
    except httpx.RequestError as exc:
        raise ParsingFailedError(f"Failed to fetch document from {url}: {exc}") from exc

    content_type = response.headers.get("content-type", "")
    hint = ""
    if "json" in content_type:
        hint = "json"
    elif "yaml" in content_type or "yml" in content_type:
        hint = "yaml"
    return response.text, hint


def _read_file(path: str) -> tuple[str, str]:
    """Read a local document and return ``(content, format_hint)``."""
    file_path = Path(path)
    if not file_path.is_file():
        raise ParsingFailedError(f"Document not found: {path}")

    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ParsingFailedError(f"Failed to read document {path}: {exc}") from exc

    if not content.strip():
        raise ParsingFailedError(f"Document is empty: {path}")

    return content, _SUFFIX_HINTS.get(file_path.suffix.lower(), "")


def _parse_content(content: str, hint: str = "") -> dict[str, Any]:
    """Parse content as JSON or YAML.

    JSON is tried first (unless hinted as YAML) because it is stricter and
    every JSON document is also valid YAML.

    Raises:
        ParsingFailedError: If the content is neither, or is not a mapping.
    """
    json_error: Exception | None = None

    if hint != "yaml":
        try:
            return _require_mapping(json.loads(content))
        except json.JSONDecodeError as exc:
            if hint == "json":
                raise ParsingFailedError(f"Invalid JSON: {exc}") from exc
            json_error = exc

    try:
        return _require_mapping(yaml.safe_load(content))
    except yaml.YAMLError as exc:
        msg = "Failed to parse document as JSON or YAML"
        if json_error:
            msg += f"\n  JSON error: {json_error}"
        msg += f"\n  YAML error: {exc}"
        raise ParsingFailedError(msg) from exc


def _require_mapping(result: Any) -> dict[str, Any]:
    if not isinstance(result, dict):
        found = type(result).__name__ if result is not None else "empty document"
        raise ParsingFailedError(f"Document must be a JSON/YAML object (got {found})")
    return result


def validate_openapi_version(spec: dict[str, Any]) -> str:
    """Validate and return the OpenAPI version string.

    Args:
        spec: The parsed document.

    Returns:
        The version string (e.g. ``'3.0.3'``, ``'3.1.0'``).

    Raises:
        InvalidInputError: For Swagger 2.x, a missing ``openapi`` field, or
            a major version other than 3.
    """
    if "swagger" in spec:
        raise InvalidInputError(
            f"Swagger {spec['swagger']} is not supported. "
            "Only OpenAPI 3.0.x and 3.1.x are supported."
        )

    openapi_version = spec.get("openapi")
    if openapi_version is None:
        raise InvalidInputError(
            "Missing 'openapi' field. Is this an OpenAPI 3.x document?"
        )

    version_str = str(openapi_version)
    if not version_str.startswith("3."):
        raise InvalidInputError(
            f"Unsupported OpenAPI version: {version_str}. "
            "Only OpenAPI 3.0.x and 3.1.x are supported."
        )
    if not version_str.startswith(("3.0.", "3.1.")):
        logger.warning("OpenAPI %s is newer than 3.1; continuing anyway", version_str)
    return version_str
