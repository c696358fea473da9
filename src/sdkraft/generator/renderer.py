"""Render generation records into formatted Python source.

:class:`TemplateRenderer` owns everything template-related for one run:

* the Jinja2 :class:`~jinja2.Environment` and the fixed template set, all
  loaded up front (a missing or broken template is fatal before anything
  is generated);
* a :class:`FunctionRegistry` of helpers exposed to the templates. The
  registry belongs to the renderer instance, so two renderers never see
  each other's custom functions;
* a :class:`RenderCache` keyed by a SHA-256 digest of the template name and
  the serialised input, so rendering the same record twice returns the
  cached bytes without running the template or the formatter again.

Python output is normalised with `black <https://black.readthedocs.io>`_;
code that black cannot parse is reported as a
:class:`~sdkraft.exceptions.TemplateError` for that artifact.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

import black
import jinja2
from pydantic import BaseModel

from sdkraft.exceptions import TemplateError
from sdkraft.generator.naming import (
    to_camel_case,
    to_pascal_case,
    to_snake_case,
    to_upper_snake_case,
)
from sdkraft.generator.types import optional

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"

TEMPLATES: dict[str, str] = {
    "model": "model.py.j2",
    "operation": "operation.py.j2",
    "client": "client.py.j2",
    "package_init": "package_init.py.j2",
    "models_init": "models_init.py.j2",
    "operations_init": "operations_init.py.j2",
    "serialization": "serialization.py.j2",
    "operation_test": "operation_test.py.j2",
    "test_helpers": "conftest.py.j2",
}
"""Logical template name -> file under :data:`TEMPLATE_DIR`."""


# ---------------------------------------------------------------------------
# Template functions
# ---------------------------------------------------------------------------


def import_line(identifier: str, depth: int = 1, package: Optional[str] = None) -> str:
    """Turn an import identifier into a ``from ... import ...`` statement.

    Identifiers starting with ``.`` are relative to the generated package
    root; *depth* is how many packages below the root the importing module
    lives. With *package* set the import is made absolute instead, for
    modules outside the package such as the generated tests.

    Example::

        >>> import_line(".models.pet.Pet", depth=1)
        'from ..models.pet import Pet'
        >>> import_line("datetime.datetime")
        'from datetime import datetime'
    """
    module, _, name = identifier.rpartition(".")
    if identifier.startswith("."):
        if package:
            module = package + module
        else:
            module = "." * (depth + 1) + module.lstrip(".")
    return f"from {module} import {name}"


def docstring(text: Optional[str]) -> str:
    """Make *text* safe to place between triple double quotes."""
    if not text:
        return ""
    cleaned = text.strip().replace("\\", "\\\\").replace('"""', '\\"\\"\\"')
    if cleaned.endswith('"'):
        cleaned += " "
    return cleaned


def quote(value: Any) -> str:
    """Python string literal for *value*."""
    return json.dumps(str(value), ensure_ascii=False)


def _div(a: Any, b: Any) -> Any:
    if isinstance(a, int) and isinstance(b, int):
        return a // b
    return a / b


class FunctionRegistry:
    """Named helpers available to every template of one renderer.

    Each name can be registered once; registering it again raises
    :class:`~sdkraft.exceptions.TemplateError` so a custom helper can never
    silently replace a built-in one.
    """

    def __init__(self) -> None:
        self._functions: dict[str, Callable[..., Any]] = {}

    def register(self, name: str, func: Callable[..., Any]) -> None:
        """Add *func* under *name*.

        Raises:
            TemplateError: If *name* is already registered.
        """
        if name in self._functions:
            raise TemplateError(f"Template function '{name}' is already registered")
        self._functions[name] = func

    def __contains__(self, name: object) -> bool:
        return name in self._functions

    def __len__(self) -> int:
        return len(self._functions)

    def as_dict(self) -> dict[str, Callable[..., Any]]:
        """Copy of the registered functions."""
        return dict(self._functions)


def default_registry() -> FunctionRegistry:
    """A registry holding the built-in template helpers."""
    registry = FunctionRegistry()
    builtins: dict[str, Callable[..., Any]] = {
        # case conversion
        "pascal": to_pascal_case,
        "camel": to_camel_case,
        "snake": to_snake_case,
        "upper_snake": to_upper_snake_case,
        "lower": lambda s: str(s).lower(),
        "upper": lambda s: str(s).upper(),
        # string predicates and helpers
        "has_prefix": lambda s, prefix: str(s).startswith(prefix),
        "has_suffix": lambda s, suffix: str(s).endswith(suffix),
        "contains": lambda s, sub: sub in s,
        "trim_prefix": lambda s, prefix: str(s)[len(prefix):] if str(s).startswith(prefix) else str(s),
        "trim_suffix": lambda s, suffix: str(s)[: -len(suffix)] if suffix and str(s).endswith(suffix) else str(s),
        "join": lambda items, sep=", ": sep.join(str(i) for i in items),
        "replace": lambda s, old, new: str(s).replace(old, new),
        "quote": quote,
        # arithmetic
        "add": lambda a, b: a + b,
        "sub": lambda a, b: a - b,
        "mul": lambda a, b: a * b,
        "div": _div,
        # code helpers
        "import_line": import_line,
        "docstring": docstring,
        "optional": optional,
    }
    for name, func in builtins.items():
        registry.register(name, func)
    return registry


# ---------------------------------------------------------------------------
# Render cache
# ---------------------------------------------------------------------------


class _ReadWriteLock:
    """Many concurrent readers or one writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writing or self._readers:
                self._cond.wait()
            self._writing = True
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


class RenderCache:
    """Write-once mapping of cache key -> rendered bytes for one run."""

    def __init__(self) -> None:
        self._lock = _ReadWriteLock()
        self._entries: dict[str, bytes] = {}
        self._stats_lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    @staticmethod
    def key(template: str, payload: str) -> str:
        """Cache key for a template and its serialised input."""
        return hashlib.sha256(f"{template}|{payload}".encode("utf-8")).hexdigest()

    def get(self, key: str) -> Optional[bytes]:
        """Return the cached bytes for *key*, counting a hit or a miss."""
        with self._lock.read():
            value = self._entries.get(key)
        with self._stats_lock:
            if value is None:
                self.misses += 1
            else:
                self.hits += 1
        return value

    def put(self, key: str, value: bytes) -> bytes:
        """Store *value* unless *key* is present; return the stored bytes."""
        with self._lock.write():
            return self._entries.setdefault(key, value)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)


def _serialise(value: Any) -> Any:
    """JSON-compatible form of a render input, used for cache keys."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {str(k): _serialise(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [_serialise(v) for v in value]
        return sorted(items, key=repr) if isinstance(value, (set, frozenset)) else items
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return repr(value)


# ---------------------------------------------------------------------------
# Renderer
# ---------------------------------------------------------------------------


def format_python(source: str, line_length: int = 88) -> str:
    """Format *source* with black.

    Raises:
        TemplateError: If black cannot parse the source.
    """
    try:
        return black.format_str(source, mode=black.Mode(line_length=line_length))
    except black.InvalidInput as exc:
        raise TemplateError(f"Rendered code is not valid Python: {exc}") from exc


class TemplateRenderer:
    """Load the template set once and render records through it.

    Args:
        template_dir: Directory holding the templates in :data:`TEMPLATES`.
        registry: Template helpers; defaults to :func:`default_registry`.
        line_length: Line length handed to black.
        format_code: Run black on the output (disable to inspect raw
            template output).

    Raises:
        TemplateError: If any template is missing or fails to compile.
    """

    def __init__(
        self,
        template_dir: Path = TEMPLATE_DIR,
        registry: Optional[FunctionRegistry] = None,
        line_length: int = 88,
        format_code: bool = True,
    ) -> None:
        self._registry = registry or default_registry()
        self._line_length = line_length
        self._format_code = format_code
        self._cache = RenderCache()
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
            undefined=jinja2.StrictUndefined,
            autoescape=False,
        )
        self._env.globals.update(self._registry.as_dict())
        self._templates = self._load_templates(template_dir)

    def _load_templates(self, template_dir: Path) -> dict[str, jinja2.Template]:
        templates: dict[str, jinja2.Template] = {}
        for name, filename in TEMPLATES.items():
            try:
                templates[name] = self._env.get_template(filename)
            except jinja2.TemplateNotFound as exc:
                raise TemplateError(
                    f"Required template '{name}' not found ({template_dir / filename})"
                ) from exc
            except jinja2.TemplateSyntaxError as exc:
                raise TemplateError(
                    f"Template '{name}' failed to compile at line {exc.lineno}: {exc.message}"
                ) from exc
        logger.debug("Loaded %d templates from %s", len(templates), template_dir)
        return templates

    @property
    def registry(self) -> FunctionRegistry:
        """The helpers available to this renderer's templates."""
        return self._registry

    def register_function(self, name: str, func: Callable[..., Any]) -> None:
        """Expose *func* to the templates under *name*.

        Raises:
            TemplateError: If *name* is already registered.
        """
        self._registry.register(name, func)
        self._env.globals[name] = func

    def render(self, template: str, record: Optional[BaseModel] = None, **context: Any) -> bytes:
        """Render *record* (plus *context*) with *template* and return UTF-8 bytes.

        Results are cached per run; the same inputs always yield the same
        bytes.

        Raises:
            TemplateError: If the template is unknown, fails to render, or
                produces code black cannot parse.
        """
        if template not in self._templates:
            raise TemplateError(f"Unknown template '{template}'")

        payload = json.dumps(
            {"record": _serialise(record), "context": _serialise(context)},
            sort_keys=True,
            separators=(",", ":"),
        )
        key = self._cache.key(template, payload)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            text = self._templates[template].render(record=record, **context)
        except jinja2.TemplateError as exc:
            raise TemplateError(f"Template '{template}' failed to render: {exc}") from exc

        if self._format_code:
            text = format_python(text, self._line_length)
        return self._cache.put(key, text.encode("utf-8"))

    def cache_stats(self) -> dict[str, int]:
        """Hit/miss counters and entry count of the render cache."""
        return {
            "hits": self._cache.hits,
            "misses": self._cache.misses,
            "entries": len(self._cache),
        }
