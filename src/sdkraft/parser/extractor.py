"""Build an :class:`~sdkraft.models.APIDocument` from a raw OpenAPI dict.

This module walks the ``$ref``-resolved document (see
:mod:`sdkraft.parser.resolver`) and produces the normalised input of the
generation pipeline: document metadata, every path with its operations in
document order, and every named component schema.

Parameter merging follows the OpenAPI specification: path-level parameters
provide defaults, and operation-level parameters override them when they
share the same ``name`` and ``in`` values. Path parameters are always
required.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sdkraft.models import (
    APIDocument,
    HTTPMethod,
    OperationDef,
    ParameterDef,
    ParameterLocation,
    PathItem,
    RequestBodyDef,
    ResponseDef,
    SchemaNode,
)
from sdkraft.parser.resolver import resolve_refs
from sdkraft.parser.schema import to_schema_node

logger = logging.getLogger(__name__)


def extract_document(raw_spec: dict[str, Any], openapi_version: str) -> APIDocument:
    """Extract an :class:`~sdkraft.models.APIDocument` from a raw document.

    Args:
        raw_spec: The raw OpenAPI dict as returned by
            :func:`~sdkraft.parser.loader.load_spec`.
        openapi_version: The validated version string.

    Returns:
        The normalised document.

    Example::

        raw = load_spec("petstore.yaml")
        version = validate_openapi_version(raw)
        document = extract_document(raw, version)
        for item in document.paths:
            print(item.path, [m.value for m in item.operations])
    """
    spec = resolve_refs(raw_spec)
    components = (spec.get("components") or {}).get("schemas") or {}
    info = spec.get("info") or {}

    schemas = {
        str(name): to_schema_node(schema, components)
        for name, schema in components.items()
        if isinstance(schema, dict)
    }

    return APIDocument(
        openapi_version=openapi_version,
        title=info.get("title", "Untitled API"),
        version=str(info.get("version", "0.0.0")),
        description=info.get("description"),
        servers=[
            server.get("url", "/")
            for server in spec.get("servers") or []
            if isinstance(server, dict)
        ],
        paths=_extract_paths(spec, components),
        schemas=schemas,
        security=spec.get("security") or [],
    )


def _extract_paths(spec: dict[str, Any], components: dict[str, Any]) -> list[PathItem]:
    items: list[PathItem] = []
    for path, path_item in (spec.get("paths") or {}).items():
        if not isinstance(path_item, dict):
            continue

        path_params = path_item.get("parameters") or []
        operations: dict[HTTPMethod, OperationDef] = {}
        for method in HTTPMethod:
            operation = path_item.get(method.value)
            if not isinstance(operation, dict):
                continue
            merged = _merge_parameters(path_params, operation.get("parameters") or [])
            operations[method] = OperationDef(
                path=path,
                method=method,
                operation_id=operation.get("operationId"),
                summary=operation.get("summary"),
                description=operation.get("description"),
                tags=operation.get("tags") or [],
                parameters=_extract_parameters(merged, components),
                request_body=_extract_request_body(operation.get("requestBody"), components),
                responses=_extract_responses(operation.get("responses") or {}, components),
                security=operation.get("security"),
                deprecated=bool(operation.get("deprecated", False)),
            )

        items.append(
            PathItem(
                path=path,
                parameters=_extract_parameters(path_params, components),
                operations=operations,
            )
        )
    return items


def _merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters (operation wins on ``(name, in)``)."""
    op_keys = {(p.get("name", ""), p.get("in", "")) for p in op_params if isinstance(p, dict)}
    merged = [
        p
        for p in path_params
        if isinstance(p, dict) and (p.get("name", ""), p.get("in", "")) not in op_keys
    ]
    merged.extend(p for p in op_params if isinstance(p, dict))
    return merged


def _extract_parameters(
    params_list: list[dict[str, Any]],
    components: dict[str, Any],
) -> list[ParameterDef]:
    parameters: list[ParameterDef] = []
    for param in params_list:
        if not isinstance(param, dict):
            continue
        try:
            location = ParameterLocation(param.get("in", "query"))
        except ValueError:
            logger.warning(
                "Skipping parameter %r with unknown location %r",
                param.get("name"),
                param.get("in"),
            )
            continue

        schema = to_schema_node(param.get("schema"), components)
        if param.get("example") is not None and schema.example is None:
            schema = schema.model_copy(update={"example": param["example"]})

        parameters.append(
            ParameterDef(
                name=str(param.get("name", "")),
                location=location,
                required=location == ParameterLocation.PATH or bool(param.get("required", False)),
                description=param.get("description"),
                deprecated=bool(param.get("deprecated", False)),
                schema=schema,
            )
        )
    return parameters


def _extract_content(
    content: Any,
    components: dict[str, Any],
) -> dict[str, Optional[SchemaNode]]:
    """Map each media type to its schema node (``None`` when it has no schema)."""
    result: dict[str, Optional[SchemaNode]] = {}
    if not isinstance(content, dict):
        return result
    for media_type, media in content.items():
        if isinstance(media, dict) and media.get("schema") is not None:
            result[str(media_type)] = to_schema_node(media["schema"], components)
        else:
            result[str(media_type)] = None
    return result


def _extract_request_body(
    body: Optional[dict[str, Any]],
    components: dict[str, Any],
) -> Optional[RequestBodyDef]:
    if not isinstance(body, dict):
        return None
    return RequestBodyDef(
        required=bool(body.get("required", False)),
        description=body.get("description"),
        content=_extract_content(body.get("content"), components),
    )


def _extract_responses(
    responses: dict[str, Any],
    components: dict[str, Any],
) -> list[ResponseDef]:
    """Extract every declared response; a ``null`` entry becomes a bodiless response."""
    result: list[ResponseDef] = []
    for status_code, response in responses.items():
        if not isinstance(response, dict):
            response = {}
        result.append(
            ResponseDef(
                status_code=str(status_code),
                description=response.get("description"),
                content=_extract_content(response.get("content"), components),
            )
        )
    return result
