"""Normalise raw JSON Schema objects into :class:`~sdkraft.models.SchemaNode`.

OpenAPI 3.0 and 3.1 spell the same shapes in several ways. This module folds
them into one form so the type resolver only has to deal with a single
``kind`` per node:

* 3.1 type arrays (``["string", "null"]``) become the first non-null type
  with ``nullable`` set; 3.0's ``nullable: true`` maps to the same flag.
* A missing ``type`` is inferred from ``properties`` (object) or ``items``
  (array).
* ``allOf`` parts are merged into one object; named parts are looked up in
  the document's component schemas.
* ``oneOf`` / ``anyOf`` collapse to their first non-null variant.
* An array without ``items`` gets an untyped item node.
* ``additionalProperties: <schema>`` keeps the value schema;
  ``true``/``false`` carry no value type.
"""

from __future__ import annotations

from typing import Any, Optional

from sdkraft.models import SchemaNode
from sdkraft.parser.resolver import schema_ref_name


def to_schema_node(
    raw: Any,
    components: Optional[dict[str, Any]] = None,
) -> SchemaNode:
    """Convert a raw schema object into a :class:`SchemaNode`.

    Args:
        raw: The schema dict (may contain unresolved schema ``$ref``\\ s).
        components: ``components.schemas`` of the document, used to merge
            named ``allOf`` parts.

    Returns:
        The normalised node. Anything that is not a dict yields an untyped
        node.
    """
    return _convert(raw, components or {}, frozenset())


def _convert(raw: Any, components: dict[str, Any], stack: frozenset[str]) -> SchemaNode:
    if not isinstance(raw, dict):
        return SchemaNode()

    ref = raw.get("$ref")
    if isinstance(ref, str):
        name = schema_ref_name(ref)
        return SchemaNode(ref=name, description=raw.get("description"))

    if raw.get("allOf"):
        return _merge_all_of(raw, components, stack)

    for key in ("oneOf", "anyOf"):
        variants = raw.get(key)
        if variants:
            non_null = [v for v in variants if not _is_null_schema(v)]
            node = _convert(non_null[0], components, stack) if non_null else SchemaNode()
            if len(non_null) < len(variants):
                node = node.model_copy(update={"nullable": True})
            return node

    kind, nullable = _kind_of(raw)

    items: Optional[SchemaNode] = None
    if kind == "array":
        items = _convert(raw.get("items"), components, stack)

    additional: Optional[SchemaNode] = None
    extra = raw.get("additionalProperties")
    if isinstance(extra, dict):
        additional = _convert(extra, components, stack)

    properties = {
        name: _convert(prop, components, stack)
        for name, prop in (raw.get("properties") or {}).items()
    }

    return SchemaNode(
        kind=kind,
        format=raw.get("format"),
        description=raw.get("description"),
        items=items,
        properties=properties,
        required=[str(r) for r in raw.get("required", []) or []],
        additional_properties=additional,
        enum=raw.get("enum"),
        example=raw.get("example"),
        default=raw.get("default"),
        min_length=raw.get("minLength"),
        max_length=raw.get("maxLength"),
        pattern=raw.get("pattern"),
        nullable=nullable or bool(raw.get("nullable", False)),
    )


def _kind_of(raw: dict[str, Any]) -> tuple[str, bool]:
    """Return ``(kind, nullable)`` for a schema dict."""
    type_value = raw.get("type")
    nullable = False
    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        nullable = len(non_null) < len(type_value)
        type_value = non_null[0] if non_null else None

    if isinstance(type_value, str):
        return type_value, nullable
    if "properties" in raw or "additionalProperties" in raw:
        return "object", nullable
    if "items" in raw:
        return "array", nullable
    return "", nullable


def _is_null_schema(raw: Any) -> bool:
    return isinstance(raw, dict) and raw.get("type") == "null"


def _merge_all_of(
    raw: dict[str, Any],
    components: dict[str, Any],
    stack: frozenset[str],
) -> SchemaNode:
    """Flatten ``allOf`` into a single object node.

    A single-part ``allOf`` is just that part (the common way of attaching a
    description to a ``$ref``).
    """
    parts = list(raw["allOf"])
    if len(parts) == 1 and not raw.get("properties"):
        node = _convert(parts[0], components, stack)
        if raw.get("description"):
            node = node.model_copy(update={"description": raw["description"]})
        return node

    properties: dict[str, SchemaNode] = {}
    required: list[str] = []
    own = {k: v for k, v in raw.items() if k != "allOf"}
    for part in [*parts, own]:
        ref = part.get("$ref") if isinstance(part, dict) else None
        if isinstance(ref, str):
            name = schema_ref_name(ref)
            if name is None or name in stack or name not in components:
                continue
            part_node = _convert(components[name], components, stack | {name})
        else:
            part_node = _convert(part, components, stack)
        properties.update(part_node.properties)
        required.extend(r for r in part_node.required if r not in required)

    return SchemaNode(
        kind="object",
        description=raw.get("description"),
        properties=properties,
        required=required,
    )
