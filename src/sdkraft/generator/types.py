"""Resolve schema nodes to Python type annotations.

:func:`resolve_type` is the only place that decides how a schema shape is
spelled in the generated code. It is a pure function of its input: the same
node always yields the same :class:`~sdkraft.models.TypeDescriptor`, so it is
safe to call from any thread without locking.

**Resolution order** (first match wins):

1. A reference to a named schema resolves to that model's class name and
   imports it from ``.models.<module>``.
2. A known ``format`` resolves through :data:`FORMAT_TYPES` regardless of
   the declared type (``date-time`` is ``datetime`` even on a ``string``).
3. Otherwise the ``kind`` decides: arrays become ``list[T]``, objects with
   an additional-properties schema become ``dict[str, V]``, objects with
   named properties are flagged ``nested`` (they need a model of their
   own), other objects are ``dict[str, Any]``, and the four primitives map
   through :data:`KIND_TYPES`.
4. Anything unrecognised resolves to ``Any``. Resolution never fails.

``Any`` and ``Optional`` are imported by every generated module, so they
never appear in a descriptor's imports.
"""

from __future__ import annotations

from typing import Any, Optional

from sdkraft.generator.naming import to_pascal_case, to_snake_case
from sdkraft.models import SchemaNode, TypeDescriptor

ANY_TYPE = "Any"
OPEN_MAPPING = "dict[str, Any]"

# format -> (annotation, imports)
FORMAT_TYPES: dict[str, tuple[str, tuple[str, ...]]] = {
    "int32": ("int", ()),
    "int64": ("int", ()),
    "float": ("float", ()),
    "double": ("float", ()),
    "byte": ("bytes", ()),
    "binary": ("bytes", ()),
    "date": ("date", ("datetime.date",)),
    "date-time": ("datetime", ("datetime.datetime",)),
    "password": ("str", ()),
    "email": ("str", ()),
    "uuid": ("str", ()),
    "uri": ("str", ()),
    "hostname": ("str", ()),
    "ipv4": ("str", ()),
    "ipv6": ("str", ()),
}

KIND_TYPES: dict[str, str] = {
    "string": "str",
    "number": "float",
    "integer": "int",
    "boolean": "bool",
}

_ZERO_VALUES: dict[str, str] = {
    "str": '""',
    "int": "0",
    "float": "0.0",
    "bool": "False",
    "bytes": 'b""',
}

_EXAMPLE_VALUES: dict[str, str] = {
    "str": '"example"',
    "int": "1",
    "float": "1.0",
    "bool": "True",
    "bytes": 'b"example"',
    "date": '"2024-01-01"',
    "datetime": '"2024-01-01T00:00:00Z"',
}


def model_import(name: str) -> str:
    """Import identifier of the model class generated for schema *name*."""
    class_name = to_pascal_case(name)
    return f".models.{to_snake_case(class_name)}.{class_name}"


def resolve_type(node: SchemaNode) -> TypeDescriptor:
    """Map *node* to its target type and the imports that type needs.

    Args:
        node: A normalised schema node.

    Returns:
        The resolved descriptor.

    Example::

        >>> resolve_type(SchemaNode(kind="array", items=SchemaNode(kind="string", format="date-time")))
        TypeDescriptor(name='list[datetime]', imports=('datetime.datetime',), nested=False, ref=None)
    """
    if node.ref:
        class_name = to_pascal_case(node.ref)
        if not class_name:
            return TypeDescriptor(name=ANY_TYPE)
        return TypeDescriptor(name=class_name, imports=(model_import(node.ref),), ref=node.ref)

    if node.format and node.format in FORMAT_TYPES:
        name, imports = FORMAT_TYPES[node.format]
        return TypeDescriptor(name=name, imports=imports)

    if node.kind == "array":
        item = resolve_type(node.items or SchemaNode())
        return TypeDescriptor(name=f"list[{item.name}]", imports=item.imports)

    if node.kind == "object":
        if node.additional_properties is not None:
            value = resolve_type(node.additional_properties)
            return TypeDescriptor(name=f"dict[str, {value.name}]", imports=value.imports)
        if node.properties:
            return TypeDescriptor(name=OPEN_MAPPING, nested=True)
        return TypeDescriptor(name=OPEN_MAPPING)

    primitive = KIND_TYPES.get(node.kind)
    if primitive is not None:
        return TypeDescriptor(name=primitive)

    return TypeDescriptor(name=ANY_TYPE)


def merge_imports(*groups: tuple[str, ...]) -> tuple[str, ...]:
    """Concatenate import groups, keeping first occurrences in order."""
    seen: dict[str, None] = {}
    for group in groups:
        for item in group:
            seen.setdefault(item, None)
    return tuple(seen)


def optional(type_name: str) -> str:
    """Wrap *type_name* in ``Optional[...]`` unless it already admits ``None``."""
    if type_name in (ANY_TYPE, "None") or type_name.startswith("Optional["):
        return type_name
    return f"Optional[{type_name}]"


def zero_value(descriptor: TypeDescriptor) -> str:
    """Python literal for the empty value of a type (``None`` for models)."""
    if descriptor.name in _ZERO_VALUES:
        return _ZERO_VALUES[descriptor.name]
    if descriptor.name.startswith("list["):
        return "[]"
    if descriptor.name.startswith("dict["):
        return "{}"
    return "None"


def example_value(node: SchemaNode, descriptor: TypeDescriptor) -> str:
    """Python literal used as sample data in generated tests.

    The schema's own ``example`` wins, then the first enum value; otherwise
    a placeholder matching the resolved type is used.
    """
    literal = _literal(node.example)
    if literal is not None:
        return literal
    if node.enum:
        literal = _literal(node.enum[0])
        if literal is not None:
            return literal
    if descriptor.name in _EXAMPLE_VALUES:
        return _EXAMPLE_VALUES[descriptor.name]
    if descriptor.name.startswith("list["):
        return "[]"
    if descriptor.name.startswith("dict["):
        return "{}"
    return "None"


def _literal(value: Any) -> Optional[str]:
    """``repr`` of JSON-compatible scalars and containers, else ``None``."""
    if value is None:
        return None
    if isinstance(value, (bool, int, float, str)):
        return repr(value)
    if isinstance(value, (list, dict)) and _is_plain(value):
        return repr(value)
    return None


def _is_plain(value: Any) -> bool:
    if value is None or isinstance(value, (bool, int, float, str)):
        return True
    if isinstance(value, list):
        return all(_is_plain(item) for item in value)
    if isinstance(value, dict):
        return all(isinstance(k, str) and _is_plain(v) for k, v in value.items())
    return False


_FORMAT_SAMPLES: dict[str, Any] = {
    "int32": 1,
    "int64": 1,
    "float": 1.0,
    "double": 1.0,
    "byte": "ZXhhbXBsZQ==",
    "binary": "example",
    "date": "2024-01-01",
    "date-time": "2024-01-01T00:00:00Z",
    "email": "user@example.com",
    "uuid": "00000000-0000-0000-0000-000000000000",
    "uri": "https://example.com",
    "hostname": "example.com",
    "ipv4": "127.0.0.1",
    "ipv6": "::1",
}

_KIND_SAMPLES: dict[str, Any] = {
    "string": "example",
    "integer": 1,
    "number": 1.0,
    "boolean": True,
}


class _NoSample(Exception):
    """No literal satisfies the node's constraints."""


def sample_payload(node: Optional[SchemaNode], schemas: dict[str, SchemaNode]) -> Any:
    """Smallest JSON value that validates against *node*.

    Named references are followed through *schemas*; only required
    properties are filled in. A reference cycle yields ``None`` at the
    point where it closes. A string constrained by a ``pattern`` has no
    sample unless the schema gives an ``example`` or ``default``; the whole
    payload is then ``None``.
    """
    try:
        return _sample(node, schemas, frozenset())
    except _NoSample:
        return None


def _sample(
    node: Optional[SchemaNode], schemas: dict[str, SchemaNode], stack: frozenset[str]
) -> Any:
    if node is None:
        return None
    if node.example is not None:
        return node.example
    if node.default is not None:
        return node.default
    if node.ref:
        if node.ref in stack or node.ref not in schemas:
            return None
        return _sample(schemas[node.ref], schemas, stack | {node.ref})
    if node.enum:
        return node.enum[0]
    if node.pattern:
        raise _NoSample(node.pattern)
    if node.format in _FORMAT_SAMPLES:
        return _sized(node, _FORMAT_SAMPLES[node.format])
    if node.kind == "array":
        return []
    if node.kind == "object" or node.properties:
        return {
            name: _sample(prop, schemas, stack)
            for name, prop in node.properties.items()
            if name in node.required
        }
    return _sized(node, _KIND_SAMPLES.get(node.kind))


def _sized(node: SchemaNode, value: Any) -> Any:
    """Pad or cut a string sample to the node's length bounds."""
    if not isinstance(value, str):
        return value
    low = node.min_length or 0
    high = node.max_length
    if high is not None and high < low:
        raise _NoSample(f"minLength {low} > maxLength {high}")
    if len(value) < low:
        value = value + "x" * (low - len(value))
    if high is not None and len(value) > high:
        value = value[:high]
    return value


def sample_literal(
    node: Optional[SchemaNode],
    schemas: dict[str, SchemaNode],
) -> str:
    """:func:`sample_payload` as Python source (``"None"`` when not expressible)."""
    return _literal(sample_payload(node, schemas)) or "None"
