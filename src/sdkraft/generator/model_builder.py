"""Turn named schema definitions into template-ready model records.

Every definition in ``components.schemas`` is processed exactly once, and a
problem with one definition never stops the others: it becomes a ``Model``
finding and that definition is left out of rendering.

**Shapes:**

* objects with named properties become pydantic models (``kind=object``);
  inline object properties get a nested model of their own, named after
  the parent and the property (``Pet`` + ``owner`` -> ``PetOwner``);
* string enums become ``str`` :class:`~enum.Enum` classes (``kind=enum``);
* everything else (arrays, primitives, open mappings, references) becomes
  a type alias (``kind=alias``).

References between models are imported for type checking only and resolved
when ``models/__init__.py`` rebuilds every model, so mutually referencing
models do not create import cycles.
"""

from __future__ import annotations

import logging
from typing import Optional

from sdkraft.generator.naming import (
    is_identifier,
    is_pascal_case,
    is_snake_case,
    sanitize_identifier,
    to_pascal_case,
    to_snake_case,
    to_upper_snake_case,
)
from sdkraft.generator.report import ValidationReport
from sdkraft.generator.types import (
    example_value,
    merge_imports,
    optional,
    resolve_type,
    zero_value,
)
from sdkraft.models import (
    EnumMember,
    FindingCategory,
    ModelKind,
    ModelRecord,
    PropertyRecord,
    SchemaNode,
    TypeDescriptor,
)

logger = logging.getLogger(__name__)

# Names every generated model module imports itself.
RESERVED_MODEL_NAMES = frozenset(
    {"Any", "Optional", "BaseModel", "ConfigDict", "Enum", "Field", "TYPE_CHECKING"}
)


def validation_rule(node: SchemaNode, required: bool) -> str:
    """Comma-joined constraint summary of a property.

    Example::

        >>> validation_rule(SchemaNode(kind="string", min_length=1, enum=["a", "b"]), True)
        'required,min=1,oneof=a b'
    """
    rules: list[str] = []
    if required:
        rules.append("required")
    if node.min_length:
        rules.append(f"min={node.min_length}")
    if node.max_length is not None:
        rules.append(f"max={node.max_length}")
    if node.pattern:
        rules.append(f"regexp={node.pattern}")
    if node.enum:
        rules.append("oneof=" + " ".join(str(v) for v in node.enum))
    return ",".join(rules)


class _Draft:
    """Records and problems collected for one top-level definition."""

    def __init__(self) -> None:
        self.records: list[ModelRecord] = []
        self.messages: list[str] = []


class ModelDataBuilder:
    """Build :class:`~sdkraft.models.ModelRecord` objects from schema definitions.

    Args:
        include_validation: Attach validation rules and ``Field``
            constraints to properties.
        include_examples: Compute example literals for properties.
    """

    def __init__(self, include_validation: bool = True, include_examples: bool = True) -> None:
        self._include_validation = include_validation
        self._include_examples = include_examples

    def build(
        self, schemas: dict[str, SchemaNode]
    ) -> tuple[list[ModelRecord], ValidationReport]:
        """Build records for every definition in *schemas*.

        Args:
            schemas: Named definitions in document order.

        Returns:
            ``(records, report)`` -- the renderable records in document order
            (nested models right after their parent) and the ``Model``
            findings of every excluded definition.
        """
        report = ValidationReport()
        seen: dict[str, str] = {}
        accepted: list[tuple[str, list[ModelRecord]]] = []

        for source, node in schemas.items():
            draft = _Draft()
            name = self._claim_name(source, seen, draft)
            if name is not None:
                self._build_definition(name, source, node, seen, draft)
            if draft.messages:
                report.record(FindingCategory.MODEL, source, *draft.messages)
                logger.warning("Model %s excluded: %s", source, "; ".join(draft.messages))
            else:
                accepted.append((source, draft.records))

        accepted = self._drop_dangling(accepted, report)
        records = [record for _, group in accepted for record in group]
        logger.info("Built %d model records from %d definitions", len(records), len(schemas))
        return records, report

    # ------------------------------------------------------------------ #
    # Definitions
    # ------------------------------------------------------------------ #

    def _claim_name(self, source: str, seen: dict[str, str], draft: _Draft) -> Optional[str]:
        """Derive the class name for *source* and reserve it, or record why not."""
        name = to_pascal_case(source)
        if not name:
            draft.messages.append(f"name {source!r} does not produce an identifier")
            return None
        if not is_identifier(name) or not is_pascal_case(name):
            draft.messages.append(f"name {name!r} is not a valid class name")
            return None
        if name in RESERVED_MODEL_NAMES:
            draft.messages.append(f"name {name!r} clashes with a name every model imports")
            return None
        if name in seen:
            draft.messages.append(
                f"duplicate model name {name!r} (already produced by {seen[name]!r})"
            )
            return None
        seen[name] = source
        return name

    def _build_definition(
        self,
        name: str,
        source: str,
        node: SchemaNode,
        seen: dict[str, str],
        draft: _Draft,
    ) -> None:
        if node.enum and node.kind in ("string", "") and all(isinstance(v, str) for v in node.enum):
            draft.records.append(self._build_enum(name, source, node, draft))
        elif node.properties and node.additional_properties is None:
            self._build_object(name, source, node, seen, draft)
        else:
            descriptor = resolve_type(node)
            draft.records.append(
                ModelRecord(
                    name=name,
                    module_name=to_snake_case(name),
                    kind=ModelKind.ALIAS,
                    source=source,
                    description=node.description,
                    alias_type=descriptor.name,
                    imports=merge_imports(
                        tuple(i for i in descriptor.imports if i != _self_import(name))
                    ),
                )
            )

    def _build_enum(self, name: str, source: str, node: SchemaNode, draft: _Draft) -> ModelRecord:
        members: list[EnumMember] = []
        used: set[str] = set()
        for index, value in enumerate(node.enum or []):
            member = to_upper_snake_case(value)
            if not member or not member.isidentifier():
                member = f"VALUE_{member or index}"
            if member in used:
                draft.messages.append(f"enum values map to the same member {member!r}")
                continue
            used.add(member)
            members.append(EnumMember(name=member, value=value))
        return ModelRecord(
            name=name,
            module_name=to_snake_case(name),
            kind=ModelKind.ENUM,
            source=source,
            description=node.description,
            enum_members=tuple(members),
        )

    def _build_object(
        self,
        name: str,
        source: str,
        node: SchemaNode,
        seen: dict[str, str],
        draft: _Draft,
    ) -> None:
        properties: list[PropertyRecord] = []
        imports: tuple[str, ...] = ()
        field_owner: dict[str, str] = {}
        nested: list[ModelRecord] = []
        own_import = _self_import(name)

        for wire_name, prop in node.properties.items():
            descriptor = self._resolve_property(name, source, wire_name, prop, seen, draft, nested)
            if descriptor is None:
                continue
            if not descriptor.name:
                draft.messages.append(f"property {wire_name!r} has no resolvable type")
                continue

            field_name = sanitize_identifier(wire_name)
            if not is_snake_case(field_name):
                draft.messages.append(
                    f"property {wire_name!r} maps to invalid field name {field_name!r}"
                )
                continue
            if field_name in field_owner:
                draft.messages.append(
                    f"properties {field_owner[field_name]!r} and {wire_name!r} "
                    f"both map to field {field_name!r}"
                )
                continue
            field_owner[field_name] = wire_name

            required = wire_name in node.required
            annotation = descriptor.name
            if not required or prop.nullable:
                annotation = optional(annotation)

            properties.append(
                PropertyRecord(
                    name=field_name,
                    wire_name=wire_name,
                    type_name=descriptor.name,
                    annotation=annotation,
                    required=required,
                    description=prop.description,
                    validation=validation_rule(prop, required) if self._include_validation else "",
                    zero_value=zero_value(descriptor),
                    example=example_value(prop, descriptor) if self._include_examples else "None",
                    min_length=prop.min_length if self._include_validation else None,
                    max_length=prop.max_length if self._include_validation else None,
                    pattern=prop.pattern if self._include_validation else None,
                )
            )
            imports = merge_imports(imports, tuple(i for i in descriptor.imports if i != own_import))

        draft.records.append(
            ModelRecord(
                name=name,
                module_name=to_snake_case(name),
                kind=ModelKind.OBJECT,
                source=source,
                description=node.description,
                properties=tuple(properties),
                imports=tuple(i for i in imports if not i.startswith(".")),
                model_imports=tuple(i for i in imports if i.startswith(".")),
            )
        )
        draft.records.extend(nested)

    def _resolve_property(
        self,
        parent: str,
        source: str,
        wire_name: str,
        prop: SchemaNode,
        seen: dict[str, str],
        draft: _Draft,
        nested: list[ModelRecord],
    ) -> Optional[TypeDescriptor]:
        """Resolve a property type, building nested models for inline objects."""
        descriptor = resolve_type(prop)
        inline: Optional[SchemaNode] = None
        suffix = ""
        if descriptor.nested:
            inline = prop
        elif prop.kind == "array" and prop.items is not None and resolve_type(prop.items).nested:
            inline, suffix = prop.items, "Item"
        if inline is None:
            return descriptor

        nested_source = f"{source}.{wire_name}"
        nested_name = self._claim_name(parent + to_pascal_case(wire_name) + suffix, seen, draft)
        if nested_name is None:
            return None
        inner = _Draft()
        self._build_object(nested_name, nested_source, inline, seen, inner)
        if inner.messages:
            draft.messages.extend(f"{wire_name}: {m}" for m in inner.messages)
            return None
        nested.extend(inner.records)

        target = f".models.{to_snake_case(nested_name)}.{nested_name}"
        if suffix:
            return TypeDescriptor(name=f"list[{nested_name}]", imports=(target,))
        return TypeDescriptor(name=nested_name, imports=(target,), ref=nested_name)

    # ------------------------------------------------------------------ #
    # Cross-model consistency
    # ------------------------------------------------------------------ #

    def _drop_dangling(
        self,
        accepted: list[tuple[str, list[ModelRecord]]],
        report: ValidationReport,
    ) -> list[tuple[str, list[ModelRecord]]]:
        """Exclude definitions that reference a model which will not be rendered.

        Runs until stable, since excluding one definition can strand the
        definitions that reference it.
        """
        while True:
            available = {
                _self_import(record.name) for _, group in accepted for record in group
            }
            kept: list[tuple[str, list[ModelRecord]]] = []
            changed = False
            for source, group in accepted:
                missing = sorted(
                    {
                        target.rsplit(".", 1)[-1]
                        for record in group
                        for target in (*record.imports, *record.model_imports)
                        if target.startswith(".models.") and target not in available
                    }
                )
                if missing:
                    report.record(
                        FindingCategory.MODEL,
                        source,
                        *(f"references model {m!r} which was not generated" for m in missing),
                    )
                    changed = True
                else:
                    kept.append((source, group))
            accepted = kept
            if not changed:
                return accepted


def _self_import(name: str) -> str:
    return f".models.{to_snake_case(name)}.{name}"
