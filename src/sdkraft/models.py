"""Canonical Pydantic models shared across all sdkraft modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Configuration models** -- loaded from ``sdkraft.yaml`` / ``config.yaml``:
    :class:`CodeStyle`, :class:`ClientOptions`, :class:`GeneratorOptions`,
    :class:`GeneratedTestsOptions`, and :class:`GeneratorConfig`.

**Parser output models** -- produced by the OpenAPI parser and consumed by
the data builders:
    :class:`SchemaNode`, :class:`HTTPMethod`, :class:`ParameterLocation`,
    :class:`ParameterDef`, :class:`RequestBodyDef`, :class:`ResponseDef`,
    :class:`OperationDef`, :class:`PathItem`, and :class:`APIDocument`.

**Generation records** -- immutable, template-ready data built from the
parser output and rendered into source artifacts:
    :class:`TypeDescriptor`, :class:`PropertyRecord`, :class:`ModelRecord`,
    :class:`ParameterRecord`, :class:`RequestBodyRecord`,
    :class:`ResponseRecord`, :class:`OperationRecord`,
    :class:`ValidationFinding`, and :class:`GenerationResult`.

Generation records are frozen and hold tuples rather than lists, so a record
can be handed to the renderer (and hashed into its cache key) without any
risk of being mutated afterwards.
"""

from __future__ import annotations

import enum
import keyword
import os
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


_PACKAGE_NAME_RE = re.compile(r"^[a-z][a-z0-9_]*$")


# --- Configuration ---


class _CamelModel(BaseModel):
    """Base for config sections: camelCase keys in files, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class CodeStyle(_CamelModel):
    """Style settings for the generated source code."""

    max_line_length: int = Field(
        default=88, description="Line length passed to the code formatter"
    )
    generate_comments: bool = Field(
        default=True, description="Emit docstrings from schema descriptions"
    )
    max_param_length: int = Field(
        default=40, description="Longest parameter name accepted by the artifact validator"
    )

    @field_validator("max_line_length", "max_param_length")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value


class ClientOptions(_CamelModel):
    """Defaults baked into the generated client aggregator."""

    timeout: int = Field(default=30, description="Request timeout in seconds")
    max_retries: int = Field(default=0, description="Transport-level retry attempts")
    base_url: Optional[str] = Field(
        default=None, description="Override the first server URL of the document"
    )

    @field_validator("timeout")
    @classmethod
    def _timeout_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("timeout cannot be negative")
        return value

    @field_validator("max_retries")
    @classmethod
    def _retries_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("max retries cannot be negative")
        return value


class GeneratorOptions(_CamelModel):
    """Switches controlling what the generator emits."""

    include_examples: bool = True
    include_validation: bool = True
    verbose: bool = False
    client_options: ClientOptions = Field(default_factory=ClientOptions)


class GeneratedTestsOptions(_CamelModel):
    """Settings for the optional per-operation test files."""

    generate: bool = True
    framework: str = "pytest"

    @field_validator("framework")
    @classmethod
    def _known_framework(cls, value: str) -> str:
        if value and value != "pytest":
            raise ValueError(f"unsupported test framework '{value}' (only 'pytest')")
        return value or "pytest"


class GeneratorConfig(_CamelModel):
    """Effective configuration for one generation run.

    Loaded by :func:`~sdkraft.config.load_config` and layered with
    environment variables and CLI flags by
    :func:`~sdkraft.config.resolve_config`.

    Example::

        GeneratorConfig(output_dir="./out", package_name="petstore")
    """

    sdk_name: str = Field(default="", description="Human-readable SDK name")
    output_dir: str = Field(default="./generated", description="Root of the output tree")
    package_name: str = Field(default="sdk", description="Python package to generate")
    code_style: CodeStyle = Field(default_factory=CodeStyle)
    generator: GeneratorOptions = Field(default_factory=GeneratorOptions)
    testing: GeneratedTestsOptions = Field(default_factory=GeneratedTestsOptions)

    @field_validator("package_name")
    @classmethod
    def _valid_package_name(cls, value: str) -> str:
        value = value or "sdk"
        if not _PACKAGE_NAME_RE.match(value) or keyword.iskeyword(value):
            raise ValueError(
                f"package name '{value}' must be a lowercase Python identifier"
            )
        return value

    @model_validator(mode="after")
    def _apply_defaults(self) -> GeneratorConfig:
        if not self.output_dir:
            self.output_dir = "./generated"
        self.output_dir = os.path.expandvars(self.output_dir)
        return self

    @property
    def display_name(self) -> str:
        """``sdk_name``, or the output directory's basename when unset."""
        return self.sdk_name or os.path.basename(os.path.normpath(self.output_dir))

    @property
    def package_dir(self) -> str:
        """Directory the generated package is written to."""
        return os.path.join(self.output_dir, self.package_name)


# --- Parser Output Models ---


class SchemaNode(BaseModel):
    """A normalised OpenAPI *Schema Object*.

    ``kind`` is the single JSON Schema type of the node (``""`` when the
    document does not say). References to ``#/components/schemas/<name>``
    are not inlined; they keep the component name in ``ref`` so that
    recursive shapes terminate.
    """

    kind: str = ""
    format: Optional[str] = None
    ref: Optional[str] = None
    description: Optional[str] = None
    items: Optional[SchemaNode] = None
    properties: dict[str, SchemaNode] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)
    additional_properties: Optional[SchemaNode] = None
    enum: Optional[list[Any]] = None
    example: Any = None
    default: Any = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None
    nullable: bool = False


class HTTPMethod(str, enum.Enum):
    """HTTP methods the generator emits operations for, in emission order."""

    GET = "get"
    POST = "post"
    PUT = "put"
    DELETE = "delete"
    PATCH = "patch"
    HEAD = "head"
    OPTIONS = "options"


class ParameterLocation(str, enum.Enum):
    """Locations where an API parameter can appear, per OpenAPI ``in`` field."""

    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"


class ParameterDef(BaseModel):
    """A single parameter declared on a path item or an operation."""

    name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    deprecated: bool = False
    schema_: SchemaNode = Field(default_factory=SchemaNode, alias="schema")

    model_config = {"populate_by_name": True}


class RequestBodyDef(BaseModel):
    """Request body of an operation, keyed by media type."""

    required: bool = False
    description: Optional[str] = None
    content: dict[str, Optional[SchemaNode]] = Field(default_factory=dict)


class ResponseDef(BaseModel):
    """One response of an operation; ``content`` may be empty."""

    status_code: str
    description: Optional[str] = None
    content: dict[str, Optional[SchemaNode]] = Field(default_factory=dict)


class OperationDef(BaseModel):
    """A single operation (one URL path + HTTP method pair).

    ``security`` is ``None`` when the operation does not declare its own
    requirements and therefore inherits the document-level ones.
    """

    path: str
    method: HTTPMethod
    operation_id: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    parameters: list[ParameterDef] = Field(default_factory=list)
    request_body: Optional[RequestBodyDef] = None
    responses: list[ResponseDef] = Field(default_factory=list)
    security: Optional[list[dict[str, list[str]]]] = None
    deprecated: bool = False


class PathItem(BaseModel):
    """A path and the operations declared under it."""

    path: str
    parameters: list[ParameterDef] = Field(default_factory=list)
    operations: dict[HTTPMethod, OperationDef] = Field(default_factory=dict)


class APIDocument(BaseModel):
    """Complete parsed representation of an OpenAPI document.

    Produced by :func:`~sdkraft.parser.extractor.extract_document` and
    consumed by the model and operation data builders. ``paths`` and
    ``schemas`` preserve document order.
    """

    openapi_version: str
    title: str
    version: str
    description: Optional[str] = None
    servers: list[str] = Field(default_factory=list)
    paths: list[PathItem] = Field(default_factory=list)
    schemas: dict[str, SchemaNode] = Field(default_factory=dict)
    security: list[dict[str, list[str]]] = Field(default_factory=list)


# --- Generation Records ---


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class TypeDescriptor(_Record):
    """Resolved target type of a schema node.

    ``imports`` are dotted identifiers; a leading ``.`` means the name lives
    inside the generated package (``.models.pet.Pet``). ``nested`` marks an
    inline object with named properties that needs a model of its own.
    """

    name: str
    imports: tuple[str, ...] = ()
    nested: bool = False
    ref: Optional[str] = None


class PropertyRecord(_Record):
    """One field of a generated model."""

    name: str
    wire_name: str
    type_name: str
    annotation: str
    required: bool = False
    description: Optional[str] = None
    validation: str = ""
    zero_value: str = "None"
    example: str = "None"
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    pattern: Optional[str] = None


class ModelKind(str, enum.Enum):
    """Shape of a generated model module."""

    OBJECT = "object"
    ENUM = "enum"
    ALIAS = "alias"


class EnumMember(_Record):
    """A member of a generated string enum."""

    name: str
    value: str


class ModelRecord(_Record):
    """Template-ready data for one model module."""

    name: str
    module_name: str
    kind: ModelKind = ModelKind.OBJECT
    source: str
    description: Optional[str] = None
    properties: tuple[PropertyRecord, ...] = ()
    imports: tuple[str, ...] = ()
    model_imports: tuple[str, ...] = ()
    enum_members: tuple[EnumMember, ...] = ()
    alias_type: Optional[str] = None


class ParameterRecord(_Record):
    """A path, query, or header parameter of a generated operation."""

    name: str
    arg_name: str
    location: ParameterLocation
    type_name: str
    annotation: str
    required: bool = False
    description: Optional[str] = None
    validation: str = ""
    zero_value: str = "None"
    example: str = "None"


class RequestBodyRecord(_Record):
    """Request body of a generated operation."""

    type_name: str
    media_type: str
    required: bool = False
    description: Optional[str] = None
    example: str = "{}"


class ResponseRecord(_Record):
    """A response of a generated operation; ``type_name`` is ``None`` for void."""

    status_code: str
    type_name: str = "None"
    media_type: Optional[str] = None
    description: Optional[str] = None


class OperationRecord(_Record):
    """Template-ready data for one operation module."""

    name: str
    function_name: str
    module_name: str
    method: HTTPMethod
    path: str
    summary: Optional[str] = None
    description: Optional[str] = None
    tags: tuple[str, ...] = ()
    parameters: tuple[ParameterRecord, ...] = ()
    request_body: Optional[RequestBodyRecord] = None
    responses: tuple[ResponseRecord, ...] = ()
    return_type: str = "None"
    success_status: str = "200"
    sample_response: str = "None"
    imports: tuple[str, ...] = ()
    authentication: bool = False
    deprecated: bool = False
    has_path_params: bool = False
    has_query_params: bool = False
    has_header_params: bool = False


class FindingCategory(str, enum.Enum):
    """Where a validation finding originated."""

    MODEL = "Model"
    OPERATION = "Operation"
    SCHEMA = "Schema"
    GENERATED_CODE = "GeneratedCode"


class ValidationFinding(_Record):
    """Every problem found for one entity or artifact."""

    category: FindingCategory
    path: str
    messages: tuple[str, ...]

    def __str__(self) -> str:
        return f"[{self.category.value}] {self.path}: {'; '.join(self.messages)}"


class GenerationResult(BaseModel):
    """Summary of a clean generation run."""

    output_dir: str
    package_name: str
    files: list[str] = Field(default_factory=list)
    model_count: int = 0
    operation_count: int = 0
    test_count: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
