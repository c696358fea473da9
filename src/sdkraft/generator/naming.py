"""Identifier conversions shared by the data builders, renderer and validator.

The generated SDK follows PEP 8 naming: ``PascalCase`` classes,
``lower_snake`` modules, functions, fields and parameters, and
``UPPER_SNAKE`` constants. Every conversion here is pure and deterministic,
so the builders (which produce names) and the artifact validator (which
checks them) always agree on what a canonical name looks like.
"""

from __future__ import annotations

import keyword
import re

# Words are runs of letters (a leading capital plus lowercase, or an
# all-caps acronym) with any trailing digits, or bare digit runs.
_WORD_RE = re.compile(r"[A-Z]+(?=[A-Z][a-z])\d*|[A-Z]?[a-z]+\d*|[A-Z]+\d*|\d+")

_SNAKE_RE = re.compile(r"^[a-z][a-z0-9]*(_[a-z0-9]+)*_?$")
_PASCAL_RE = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
_UPPER_SNAKE_RE = re.compile(r"^[A-Z][A-Z0-9]*(_[A-Z0-9]+)*$")
_INVALID_IDENT_RE = re.compile(r"[^a-zA-Z0-9_]")

# Attributes of pydantic's BaseModel that a generated field must not shadow,
# and the type names generated annotations are spelled with.
_RESERVED_FIELD_NAMES = frozenset(
    {
        "construct",
        "copy",
        "dict",
        "json",
        "parse_obj",
        "parse_raw",
        "schema",
        "schema_json",
        "validate",
        "model_config",
        "model_fields",
        "bool",
        "bytes",
        "date",
        "datetime",
        "float",
        "int",
        "list",
        "str",
    }
)


def split_words(name: str) -> list[str]:
    """Split *name* into words at separators and case boundaries.

    Example::

        >>> split_words("petId")
        ['pet', 'Id']
        >>> split_words("X-Request-ID")
        ['X', 'Request', 'ID']
        >>> split_words("HTTPServer2")
        ['HTTP', 'Server2']
    """
    return _WORD_RE.findall(name)


def to_pascal_case(name: str) -> str:
    """Convert *name* to ``PascalCase``.

    Each word keeps its first character uppercased and the rest lowercased,
    so acronyms are normalised (``HTTPServer`` -> ``HttpServer``). Returns an
    empty string when *name* has no letters or digits.
    """
    return "".join(word[0].upper() + word[1:].lower() for word in split_words(name))


def to_camel_case(name: str) -> str:
    """Convert *name* to ``camelCase``."""
    pascal = to_pascal_case(name)
    return pascal[:1].lower() + pascal[1:]


def to_snake_case(name: str) -> str:
    """Convert *name* to ``lower_snake`` (``GetPetsByPetId`` -> ``get_pets_by_pet_id``)."""
    return "_".join(word.lower() for word in split_words(name))


def to_upper_snake_case(name: str) -> str:
    """Convert *name* to ``UPPER_SNAKE`` for enum members and constants."""
    return to_snake_case(name).upper()


def sanitize_identifier(name: str) -> str:
    """Convert a wire name to a valid, PEP 8 Python identifier.

    Applies the following transformations in order:

    1. CamelCase boundaries are split with underscores (``petId`` becomes
       ``pet_id``).
    2. The string is lowercased.
    3. Hyphens, dots and any other invalid characters become underscores.
    4. Consecutive and leading/trailing underscores are collapsed.
    5. An empty result defaults to ``"value"``.
    6. A leading digit gets an underscore prefix.
    7. Python keywords, pydantic ``BaseModel`` attributes and the builtin
       type names used in annotations get a trailing underscore
       (``"class"`` becomes ``"class_"``, ``"date"`` becomes ``"date_"``).

    Example::

        >>> sanitize_identifier("petId")
        'pet_id'
        >>> sanitize_identifier("X-Request-ID")
        'x_request_id'
        >>> sanitize_identifier("class")
        'class_'
    """
    result = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    result = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", result)
    result = result.lower()
    result = _INVALID_IDENT_RE.sub("_", result)
    result = re.sub(r"_+", "_", result).strip("_")
    if not result:
        result = "value"
    if result[0].isdigit():
        result = f"_{result}"
    if keyword.iskeyword(result) or result in _RESERVED_FIELD_NAMES:
        result = f"{result}_"
    return result


def is_identifier(name: str) -> bool:
    """Whether *name* is usable as a Python name (identifier, not a keyword)."""
    return name.isidentifier() and not keyword.iskeyword(name)


def is_snake_case(name: str) -> bool:
    """Whether *name* is canonical ``lower_snake`` (a single trailing ``_`` is allowed)."""
    return bool(_SNAKE_RE.match(name)) and not keyword.iskeyword(name)


def is_pascal_case(name: str) -> bool:
    """Whether *name* is canonical ``PascalCase``."""
    return bool(_PASCAL_RE.match(name))


def is_upper_snake_case(name: str) -> bool:
    """Whether *name* is an ``UPPER_SNAKE`` constant name."""
    return bool(_UPPER_SNAKE_RE.match(name))


def is_dunder(name: str) -> bool:
    """Whether *name* is a ``__dunder__`` name."""
    return len(name) > 4 and name.startswith("__") and name.endswith("__")
