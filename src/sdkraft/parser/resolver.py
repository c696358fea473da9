"""Resolve ``$ref`` JSON Reference pointers in OpenAPI documents.

Parameters, request bodies, responses and other reusable components are
inlined so the extractor sees plain objects. References to named schemas
(``#/components/schemas/<Name>``) are deliberately kept: each named schema
becomes a model of its own, and every other place that mentions it should
point at that model rather than carry a copy of its shape. Keeping those
references also makes recursive schemas terminate.

Only **internal** references (those starting with ``#/``) are supported.
External file or URL references raise
:class:`~sdkraft.exceptions.ParsingFailedError`. Any other cycle is detected
with a ``seen`` set and left unresolved at the cycle point.
"""

from __future__ import annotations

import copy
from typing import Any, Optional

from sdkraft.exceptions import ParsingFailedError

SCHEMA_REF_PREFIX = "#/components/schemas/"


def resolve_refs(spec: dict[str, Any]) -> dict[str, Any]:
    """Return a deep copy of *spec* with every non-schema ``$ref`` inlined.

    Args:
        spec: The raw OpenAPI document, as returned by
            :func:`~sdkraft.parser.loader.load_spec`.

    Raises:
        ParsingFailedError: If a ``$ref`` is external or points to a path
            that does not exist in the document.

    Example::

        raw = load_spec("petstore.yaml")
        resolved = resolve_refs(raw)
        # resolved["paths"]["/pets"]["get"]["parameters"] now holds the
        # inlined parameter objects, while
        # {"$ref": "#/components/schemas/Pet"} entries are left in place.
    """
    root = copy.deepcopy(spec)
    return _deep_resolve(root, root, seen=None)


def schema_ref_name(ref: str) -> Optional[str]:
    """Return ``Name`` for ``#/components/schemas/Name``, else ``None``."""
    if not ref.startswith(SCHEMA_REF_PREFIX):
        return None
    name = ref[len(SCHEMA_REF_PREFIX):]
    if "/" in name:
        # points inside a schema rather than at one
        return None
    return _unescape(name)


def _unescape(segment: str) -> str:
    # RFC 6901 JSON Pointer escaping
    return segment.replace("~1", "/").replace("~0", "~")


def _resolve_ref(ref: str, root: dict[str, Any]) -> Any:
    """Look up a single ``#/...`` pointer in *root*."""
    if not ref.startswith("#/"):
        raise ParsingFailedError(
            f"External $ref not supported: {ref}. "
            "Only internal references (#/...) are handled."
        )

    current: Any = root
    for raw_segment in ref[2:].split("/"):
        segment = _unescape(raw_segment)
        if isinstance(current, dict):
            if segment not in current:
                raise ParsingFailedError(
                    f"Cannot resolve $ref '{ref}': key '{segment}' not found"
                )
            current = current[segment]
        elif isinstance(current, list):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError) as exc:
                raise ParsingFailedError(
                    f"Cannot resolve $ref '{ref}': invalid array index '{segment}'"
                ) from exc
        else:
            raise ParsingFailedError(
                f"Cannot resolve $ref '{ref}': cannot navigate into {type(current).__name__}"
            )
    return current


def _deep_resolve(obj: Any, root: dict[str, Any], seen: set[str] | None = None) -> Any:
    """Recursively resolve ``$ref`` pointers within *obj*.

    ``seen`` holds the references on the current resolution stack; a copy
    is made per branch so sibling references do not interfere.
    """
    if seen is None:
        seen = set()

    if isinstance(obj, dict):
        ref = obj.get("$ref")
        if isinstance(ref, str):
            if schema_ref_name(ref) is not None:
                _resolve_ref(ref, root)  # dangling schema refs still fail here
                return dict(obj)
            if ref in seen:
                return obj
            resolved = _resolve_ref(ref, root)
            return _deep_resolve(resolved, root, seen | {ref})

        return {key: _deep_resolve(value, root, seen) for key, value in obj.items()}

    if isinstance(obj, list):
        return [_deep_resolve(item, root, seen) for item in obj]

    return obj
