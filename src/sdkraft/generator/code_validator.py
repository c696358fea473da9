"""Static checks on rendered Python before it is written to disk.

Every artifact is parsed with :mod:`ast`; a syntax error yields a single
message. Otherwise all naming and structure problems in the module are
collected into one ``GeneratedCode`` finding, so a reviewer sees the whole
picture for a file at once.
"""

from __future__ import annotations

import ast
import logging
from pathlib import Path
from typing import Optional, Union

from sdkraft.generator.naming import (
    is_dunder,
    is_identifier,
    is_pascal_case,
    is_snake_case,
    is_upper_snake_case,
    sanitize_identifier,
)
from sdkraft.models import FindingCategory, ValidationFinding

logger = logging.getLogger(__name__)

FIELD_KEYWORDS = frozenset(
    {
        "default",
        "default_factory",
        "alias",
        "description",
        "title",
        "examples",
        "min_length",
        "max_length",
        "pattern",
        "ge",
        "gt",
        "le",
        "lt",
    }
)
"""Keyword arguments a generated ``Field(...)`` may use."""

MAX_RELATIVE_LEVEL = 2


class CodeValidator:
    """Validate generated modules.

    Args:
        package_name: Configured package name; must be ``lower_snake``.
        max_param_length: Longest parameter name accepted.
    """

    def __init__(self, package_name: str, max_param_length: int = 40) -> None:
        self._package_name = package_name
        self._max_param_length = max_param_length

    def validate(
        self, path: Union[str, Path], content: Union[str, bytes]
    ) -> Optional[ValidationFinding]:
        """Check one artifact.

        Args:
            path: Path of the artifact, used for the module name and the
                finding's location.
            content: The rendered source.

        Returns:
            ``None`` when the artifact is clean, otherwise one finding with
            every problem found.
        """
        location = str(path)
        try:
            tree = ast.parse(content, filename=location)
        except SyntaxError as exc:
            return ValidationFinding(
                category=FindingCategory.GENERATED_CODE,
                path=location,
                messages=(f"syntax error at line {exc.lineno}: {exc.msg}",),
            )

        messages: list[str] = []
        self._check_module_name(Path(path), messages)
        self._check_imports(tree, messages)
        self._check_module_names(tree, messages)
        for node in ast.walk(tree):
            if isinstance(node, ast.ClassDef):
                self._check_class(node, messages)
            elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                self._check_function(node, messages)
        for parent in ast.walk(tree):
            if isinstance(parent, ast.ClassDef):
                self._check_methods(parent, messages)

        if not messages:
            return None
        logger.debug("%s failed validation: %s", location, "; ".join(messages))
        return ValidationFinding(
            category=FindingCategory.GENERATED_CODE,
            path=location,
            messages=tuple(messages),
        )

    # ------------------------------------------------------------------ #
    # Module level
    # ------------------------------------------------------------------ #

    def _check_module_name(self, path: Path, messages: list[str]) -> None:
        if not is_snake_case(self._package_name):
            messages.append(f"package name {self._package_name!r} is not lower_snake")
        stem = path.stem
        if stem == "__init__":
            return
        if stem.endswith("_test"):
            stem = stem[: -len("_test")]
        if not is_snake_case(stem):
            messages.append(f"module name {path.stem!r} is not lower_snake")

    def _check_imports(self, tree: ast.Module, messages: list[str]) -> None:
        seen: set[tuple[str, str]] = set()
        for node in ast.walk(tree):
            if isinstance(node, ast.ImportFrom):
                module = "." * node.level + (node.module or "")
                if node.level > MAX_RELATIVE_LEVEL:
                    messages.append(f"import from {module!r} climbs more than {MAX_RELATIVE_LEVEL} levels")
                if node.module is not None and not _dotted(node.module):
                    messages.append(f"malformed import path {module!r}")
                pairs = [(module, alias.name) for alias in node.names]
            elif isinstance(node, ast.Import):
                pairs = []
                for alias in node.names:
                    if not _dotted(alias.name):
                        messages.append(f"malformed import path {alias.name!r}")
                    pairs.append(("", alias.name))
            else:
                continue
            for pair in pairs:
                if pair in seen:
                    source = f"{pair[0]}.{pair[1]}" if pair[0] else pair[1]
                    messages.append(f"duplicate import {source!r}")
                seen.add(pair)

    def _check_module_names(self, tree: ast.Module, messages: list[str]) -> None:
        for stmt in tree.body:
            for name in _assigned_names(stmt):
                if name.startswith("_") and not is_dunder(name):
                    continue
                if not (is_pascal_case(name) or is_upper_snake_case(name) or is_dunder(name)):
                    messages.append(
                        f"module-level name {name!r} is neither PascalCase, UPPER_SNAKE nor a dunder"
                    )

    # ------------------------------------------------------------------ #
    # Classes
    # ------------------------------------------------------------------ #

    def _check_class(self, node: ast.ClassDef, messages: list[str]) -> None:
        if not node.name.startswith("_") and not is_pascal_case(node.name):
            messages.append(f"class {node.name!r} is not PascalCase")

        is_enum = any(_base_name(base).endswith("Enum") for base in node.bases)
        for stmt in node.body:
            if is_enum:
                for name in _assigned_names(stmt):
                    if not is_upper_snake_case(name):
                        messages.append(f"enum member {node.name}.{name} is not UPPER_SNAKE")
                continue
            if isinstance(stmt, ast.AnnAssign) and isinstance(stmt.target, ast.Name):
                field = stmt.target.id
                if not field.startswith("_") and not is_snake_case(field):
                    messages.append(f"field {node.name}.{field} is not lower_snake")
                if _is_field_call(stmt.value):
                    self._check_field_call(node.name, field, stmt.value, messages)
            elif isinstance(stmt, ast.Assign):
                for name in _assigned_names(stmt):
                    if not name.startswith("_") and not is_snake_case(name):
                        messages.append(f"class attribute {node.name}.{name} is not lower_snake")

    def _check_field_call(
        self, owner: str, field: str, call: ast.Call, messages: list[str]
    ) -> None:
        where = f"{owner}.{field}"
        for keyword in call.keywords:
            if keyword.arg is None:
                messages.append(f"{where}: Field(...) uses ** expansion")
            elif keyword.arg not in FIELD_KEYWORDS:
                messages.append(f"{where}: unknown Field argument {keyword.arg!r}")
            elif keyword.arg == "alias":
                value = keyword.value
                if not (isinstance(value, ast.Constant) and isinstance(value.value, str) and value.value):
                    messages.append(f"{where}: alias must be a non-empty string literal")
                elif sanitize_identifier(value.value) != field:
                    messages.append(
                        f"{where}: alias {value.value!r} does not correspond to the field name"
                    )

    def _check_methods(self, node: ast.ClassDef, messages: list[str]) -> None:
        for stmt in node.body:
            if not isinstance(stmt, (ast.FunctionDef, ast.AsyncFunctionDef)):
                continue
            decorators = {_base_name(d) for d in stmt.decorator_list}
            if "staticmethod" in decorators:
                continue
            receiver = "cls" if "classmethod" in decorators else "self"
            positional = [*stmt.args.posonlyargs, *stmt.args.args]
            if not positional or positional[0].arg != receiver:
                messages.append(f"method {node.name}.{stmt.name} must take {receiver!r} first")

    # ------------------------------------------------------------------ #
    # Functions
    # ------------------------------------------------------------------ #

    def _check_function(
        self, node: Union[ast.FunctionDef, ast.AsyncFunctionDef], messages: list[str]
    ) -> None:
        public = not node.name.startswith("_") or is_dunder(node.name)
        if public and not is_dunder(node.name) and not is_snake_case(node.name):
            messages.append(f"function {node.name!r} is not lower_snake")
        if public and node.returns is None:
            messages.append(f"function {node.name!r} has no return annotation")

        args = node.args
        params = [*args.posonlyargs, *args.args, *args.kwonlyargs]
        if args.vararg is not None:
            params.append(args.vararg)
        if args.kwarg is not None:
            params.append(args.kwarg)
        for param in params:
            if not is_snake_case(param.arg):
                messages.append(f"parameter {param.arg!r} of {node.name!r} is not lower_snake")
            elif len(param.arg) > self._max_param_length:
                messages.append(
                    f"parameter {param.arg!r} of {node.name!r} exceeds "
                    f"{self._max_param_length} characters"
                )


def _dotted(module: str) -> bool:
    return all(part and is_identifier(part) for part in module.split("."))


def _assigned_names(stmt: ast.stmt) -> list[str]:
    if isinstance(stmt, ast.Assign):
        targets = stmt.targets
    elif isinstance(stmt, ast.AnnAssign):
        targets = [stmt.target]
    else:
        return []
    return [target.id for target in targets if isinstance(target, ast.Name)]


def _base_name(node: ast.expr) -> str:
    if isinstance(node, ast.Name):
        return node.id
    if isinstance(node, ast.Attribute):
        return node.attr
    if isinstance(node, ast.Call):
        return _base_name(node.func)
    return ""


def _is_field_call(node: Optional[ast.expr]) -> bool:
    return isinstance(node, ast.Call) and _base_name(node.func) == "Field"
