"""Turn path/verb definitions into template-ready operation records.

Operations are visited path by path in document order and, within a path,
in the fixed verb order of :class:`~sdkraft.models.HTTPMethod` (GET, POST,
PUT, DELETE, PATCH, HEAD, OPTIONS), so the output is identical for
identical input.

**Naming:** an explicit ``operationId`` is converted to PascalCase.
Otherwise the name is the verb followed by the path segments, with every
``{param}`` segment spelled ``By<Param>``::

    GET /pets/{petId}   ->  GetPetsByPetId  (module get_pets_by_pet_id)

A function name the generated code already binds (``close`` on the client,
``encode``/``decode`` in the operation module) gets a trailing underscore.

**Path placeholders** without a declared ``path`` parameter are added as
required ``str`` arguments so every ``{name}`` in the URL is bound.

**Bodies and responses:** when several media types are declared,
``application/json`` wins, otherwise the lexicographically first one. A
response without content or without a schema is a void (``None``)
response. The return type of the generated function is the type of the
lowest 2xx response.

Problems with one operation become ``Operation`` findings; the operation is
left out and its siblings are built as usual.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import Optional

from sdkraft.generator.model_builder import validation_rule
from sdkraft.generator.naming import (
    is_identifier,
    is_pascal_case,
    is_snake_case,
    sanitize_identifier,
    to_pascal_case,
    to_snake_case,
)
from sdkraft.generator.report import ValidationReport
from sdkraft.generator.types import (
    ANY_TYPE,
    OPEN_MAPPING,
    example_value,
    merge_imports,
    optional,
    resolve_type,
    sample_literal,
    zero_value,
)
from sdkraft.models import (
    APIDocument,
    FindingCategory,
    HTTPMethod,
    OperationDef,
    OperationRecord,
    ParameterDef,
    ParameterLocation,
    ParameterRecord,
    RequestBodyRecord,
    ResponseRecord,
    SchemaNode,
    TypeDescriptor,
)

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"

# Parameter names the operation template uses itself.
_RESERVED_ARGS = frozenset(
    {
        "self",
        "client",
        "body",
        "url",
        "params",
        "headers",
        "response",
        "encode",
        "decode",
        "httpx",
    }
)

# Names the client class and the generated modules already bind.
_RESERVED_FUNCTIONS = frozenset(
    {
        "annotations",
        "close",
        "decode",
        "encode",
        "httpx",
        "pytest",
    }
)

_PLACEHOLDER_RE = re.compile(r"\{([^{}]+)\}")


def operation_name(method: HTTPMethod, path: str, operation_id: Optional[str] = None) -> str:
    """Canonical PascalCase name of an operation.

    Example::

        >>> operation_name(HTTPMethod.GET, "/pets/{petId}")
        'GetPetsByPetId'
        >>> operation_name(HTTPMethod.GET, "/pets", "list_pets")
        'ListPets'
    """
    if operation_id:
        return to_pascal_case(operation_id)

    parts = [to_pascal_case(method.value)]
    for segment in path.split("/"):
        if not segment:
            continue
        if segment.startswith("{") and segment.endswith("}"):
            parts.append("By" + to_pascal_case(segment[1:-1]))
        else:
            parts.append(to_pascal_case(segment))
    return "".join(parts)


def choose_media_type(media_types: Iterable[str]) -> Optional[str]:
    """Pick the media type to generate code for (``None`` if there is none)."""
    candidates = sorted(media_types)
    if not candidates:
        return None
    if JSON_MEDIA_TYPE in candidates:
        return JSON_MEDIA_TYPE
    return candidates[0]


def _status_key(status_code: str) -> tuple[int, str]:
    return (0, status_code.zfill(3)) if status_code.isdigit() else (1, status_code)


def _undeclared_path_params(operation: OperationDef) -> list[ParameterDef]:
    """Required ``string`` parameters for path placeholders nobody declared."""
    declared = {p.name for p in operation.parameters if p.location == ParameterLocation.PATH}
    implicit: list[ParameterDef] = []
    for name in dict.fromkeys(_PLACEHOLDER_RE.findall(operation.path)):
        if name in declared:
            continue
        logger.warning(
            "Path parameter %r of %s %s is not declared; assuming a required string",
            name,
            operation.method.value.upper(),
            operation.path,
        )
        implicit.append(
            ParameterDef(
                name=name,
                location=ParameterLocation.PATH,
                required=True,
                schema_=SchemaNode(kind="string"),
            )
        )
    return implicit


def _flat_type(node: Optional[SchemaNode]) -> TypeDescriptor:
    """Resolve a body/parameter schema; inline objects stay open mappings."""
    if node is None:
        return TypeDescriptor(name=ANY_TYPE)
    descriptor = resolve_type(node)
    if descriptor.nested:
        return TypeDescriptor(name=OPEN_MAPPING)
    return descriptor


class OperationDataBuilder:
    """Build :class:`~sdkraft.models.OperationRecord` objects from a document.

    Args:
        include_examples: Compute example literals for parameters and bodies.
    """

    def __init__(self, include_examples: bool = True) -> None:
        self._include_examples = include_examples

    def build(
        self,
        document: APIDocument,
        available_models: Optional[set[str]] = None,
    ) -> tuple[list[OperationRecord], ValidationReport]:
        """Build records for every operation in *document*.

        Args:
            document: The normalised API document.
            available_models: Import identifiers (``.models.pet.Pet``) of the
                models that were generated. When given, an operation that
                needs any other model is excluded with a finding.

        Returns:
            ``(records, report)`` -- the renderable records in emission order
            and the ``Operation`` findings.
        """
        report = ValidationReport()
        records: list[OperationRecord] = []
        seen: dict[str, str] = {}

        for item in document.paths:
            for method in HTTPMethod:
                operation = item.operations.get(method)
                if operation is None:
                    continue
                where = f"{method.value.upper()} {item.path}"
                try:
                    record, messages = self._build_operation(operation, document, available_models)
                except Exception as exc:
                    logger.exception("Building operation %s failed", where)
                    report.record(FindingCategory.OPERATION, where, f"unexpected error: {exc}")
                    continue

                if record is not None and record.name in seen:
                    messages.append(
                        f"duplicate operation name {record.name!r} (already used by {seen[record.name]})"
                    )
                if messages or record is None:
                    report.record(FindingCategory.OPERATION, where, *messages)
                    logger.warning("Operation %s excluded: %s", where, "; ".join(messages))
                    continue

                seen[record.name] = where
                records.append(record)

        logger.info("Built %d operation records", len(records))
        return records, report

    def _build_operation(
        self,
        operation: OperationDef,
        document: APIDocument,
        available_models: Optional[set[str]],
    ) -> tuple[Optional[OperationRecord], list[str]]:
        messages: list[str] = []

        name = operation_name(operation.method, operation.path, operation.operation_id)
        function_name = to_snake_case(name)
        if not name or not is_pascal_case(name) or not is_identifier(name):
            source = operation.operation_id or operation.path
            messages.append(f"name {source!r} does not produce a valid identifier")
            return None, messages
        if not is_snake_case(function_name):
            messages.append(f"function name {function_name!r} is not a valid identifier")
            return None, messages
        module_name = function_name
        if function_name in _RESERVED_FUNCTIONS:
            function_name = f"{function_name}_"

        parameters, param_imports = self._build_parameters(operation, messages)
        request_body, body_imports = self._build_request_body(operation, document, messages)
        responses = self._build_responses(operation)

        success = next((r for r in responses if r.status_code.startswith("2")), None)
        return_type = success.type_name if success is not None else "None"
        success_status = (
            success.status_code if success is not None and success.status_code.isdigit() else "200"
        )
        success_node = self._success_node(operation, success)
        return_imports = _flat_type(success_node).imports if success_node is not None else ()

        imports = merge_imports(param_imports, body_imports, return_imports)
        if available_models is not None:
            for target in imports:
                if target.startswith(".models.") and target not in available_models:
                    messages.append(
                        f"references model {target.rsplit('.', 1)[-1]!r} which was not generated"
                    )

        effective_security = (
            operation.security if operation.security is not None else document.security
        )

        record = OperationRecord(
            name=name,
            function_name=function_name,
            module_name=module_name,
            method=operation.method,
            path=operation.path,
            summary=operation.summary,
            description=operation.description,
            tags=tuple(operation.tags),
            parameters=tuple(parameters),
            request_body=request_body,
            responses=tuple(responses),
            return_type=return_type,
            success_status=success_status,
            sample_response=sample_literal(success_node, document.schemas),
            imports=imports,
            authentication=any(bool(requirement) for requirement in effective_security),
            deprecated=operation.deprecated,
            has_path_params=any(p.location == ParameterLocation.PATH for p in parameters),
            has_query_params=any(p.location == ParameterLocation.QUERY for p in parameters),
            has_header_params=any(p.location == ParameterLocation.HEADER for p in parameters),
        )
        return record, messages

    def _build_parameters(
        self, operation: OperationDef, messages: list[str]
    ) -> tuple[list[ParameterRecord], tuple[str, ...]]:
        parameters: list[ParameterRecord] = []
        imports: tuple[str, ...] = ()
        used: dict[str, str] = {}
        for param in [*operation.parameters, *_undeclared_path_params(operation)]:
            if param.location == ParameterLocation.COOKIE:
                logger.warning(
                    "Skipping cookie parameter %r of %s %s",
                    param.name,
                    operation.method.value.upper(),
                    operation.path,
                )
                continue

            arg_name = sanitize_identifier(param.name)
            if arg_name in _RESERVED_ARGS:
                arg_name = f"{arg_name}_"
            if not is_snake_case(arg_name):
                messages.append(f"parameter {param.name!r} maps to invalid argument {arg_name!r}")
                continue
            if arg_name in used:
                messages.append(
                    f"parameters {used[arg_name]!r} and {param.name!r} both map to argument {arg_name!r}"
                )
                continue
            used[arg_name] = param.name

            descriptor = _flat_type(param.schema_)
            required = param.required or param.location == ParameterLocation.PATH
            parameters.append(
                ParameterRecord(
                    name=param.name,
                    arg_name=arg_name,
                    location=param.location,
                    type_name=descriptor.name,
                    annotation=descriptor.name if required else optional(descriptor.name),
                    required=required,
                    description=param.description,
                    validation=validation_rule(param.schema_, required),
                    zero_value=zero_value(descriptor),
                    example=(
                        example_value(param.schema_, descriptor) if self._include_examples else "None"
                    ),
                )
            )
            imports = merge_imports(imports, descriptor.imports)
        return parameters, imports

    def _build_request_body(
        self, operation: OperationDef, document: APIDocument, messages: list[str]
    ) -> tuple[Optional[RequestBodyRecord], tuple[str, ...]]:
        body = operation.request_body
        if body is None:
            return None, ()
        media_type = choose_media_type(body.content)
        if media_type is None:
            messages.append("request body declares no media type")
            return None, ()

        node = body.content.get(media_type)
        descriptor = _flat_type(node)
        return (
            RequestBodyRecord(
                type_name=descriptor.name,
                media_type=media_type,
                required=body.required,
                description=body.description,
                example=sample_literal(node, document.schemas) if self._include_examples else "None",
            ),
            descriptor.imports,
        )

    def _build_responses(self, operation: OperationDef) -> list[ResponseRecord]:
        responses: list[ResponseRecord] = []
        for response in sorted(operation.responses, key=lambda r: _status_key(r.status_code)):
            media_type = choose_media_type(response.content)
            node = response.content.get(media_type) if media_type else None
            type_name = "None" if node is None else _flat_type(node).name
            responses.append(
                ResponseRecord(
                    status_code=response.status_code,
                    type_name=type_name,
                    media_type=media_type,
                    description=response.description,
                )
            )
        return responses

    def _success_node(
        self, operation: OperationDef, success: Optional[ResponseRecord]
    ) -> Optional[SchemaNode]:
        """Schema of the response the generated function decodes."""
        if success is None or success.media_type is None:
            return None
        for response in operation.responses:
            if response.status_code == success.status_code:
                return response.content.get(success.media_type)
        return None
