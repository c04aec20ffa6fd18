"""Canonical Pydantic models shared across all specir modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into two groups:

**Configuration models** -- loaded from a YAML/JSON options file:
    :class:`CompilerOptions`.

**IR models** -- produced by the compiler and consumed by an external
rendering stage:
    :class:`HTTPMethod`, :class:`ParameterLocation`, :class:`SchemaKind`,
    :class:`Schema`, :class:`Property`, :class:`TypeDefinition`,
    :class:`ParameterDefinition`, :class:`SecurityDefinition`,
    :class:`RequestBodyDefinition`, :class:`ResponseDefinition`,
    :class:`OperationDefinition` and :class:`CompiledSpec`.

All models use Pydantic v2. Fields holding a schema are named ``schema_``
and aliased to ``schema``, so the JSON form of the IR (dumped with
``by_alias=True``) reads naturally.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Compiler options ---


class CompilerOptions(BaseModel):
    """Knobs that change which operations are compiled and how types are named.

    Keys may be spelled in kebab-case (as in options files) or snake_case.

    Example::

        CompilerOptions.model_validate({
            "include-tags": ["pets"],
            "import-mapping": {"common.yaml": "common"},
        })
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    include_tags: list[str] = Field(
        default_factory=list,
        alias="include-tags",
        description="Only compile operations carrying one of these tags",
    )
    exclude_tags: list[str] = Field(
        default_factory=list,
        alias="exclude-tags",
        description="Skip operations carrying any of these tags",
    )
    import_mapping: dict[str, str] = Field(
        default_factory=dict,
        alias="import-mapping",
        description="External document -> module prefix of its pre-defined types",
    )
    exclude_schemas: list[str] = Field(
        default_factory=list,
        alias="exclude-schemas",
        description="Component schemas that are defined elsewhere and not emitted",
    )
    response_type_suffix: str = Field(
        default="Response",
        alias="response-type-suffix",
        description="Suffix for synthesized response content type names",
    )


# --- IR enums ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised on OpenAPI path-item objects.

    Values are upper case; operations under one path are compiled in the
    sorted order of these values.
    """

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"


class ParameterLocation(str, enum.Enum):
    """Locations where an API parameter can appear, per OpenAPI ``in`` field."""

    PATH = "path"
    QUERY = "query"
    HEADER = "header"
    COOKIE = "cookie"


class SchemaKind(str, enum.Enum):
    """Shape of a resolved :class:`Schema`."""

    PRIMITIVE = "primitive"
    OBJECT = "object"
    ARRAY = "array"
    ENUM = "enum"
    UNION = "union"
    REFERENCE = "reference"
    MAP = "map"


# --- Schemas and types ---


class EnumValue(BaseModel):
    """One legal value of an enumeration and the identifier naming it."""

    name: str
    value: Any


class Discriminator(BaseModel):
    """Tag property of a union plus the tag value -> member type mapping."""

    property_name: str
    mapping: dict[str, str] = Field(default_factory=dict)


class Property(BaseModel):
    """A field of an object schema."""

    model_config = ConfigDict(populate_by_name=True)

    field_name: str = Field(description="Normalized attribute identifier")
    json_name: str = Field(description="Name on the wire")
    required: bool = False
    description: Optional[str] = None
    schema_: Schema = Field(alias="schema")
    needs_form_tag: bool = False


class Schema(BaseModel):
    """A resolved type descriptor.

    ``type_expr`` is the Python annotation to use wherever this schema is
    referenced. When the schema names another type, ``ref_type`` holds that
    bare name and ``kind`` is :attr:`SchemaKind.REFERENCE`; such a schema
    never carries its own properties.
    """

    kind: SchemaKind
    type_expr: str
    ref_type: Optional[str] = None
    description: Optional[str] = None
    nullable: bool = False
    properties: list[Property] = Field(default_factory=list)
    has_additional_properties: bool = False
    additional_properties_type: Optional[Schema] = None
    items: Optional[Schema] = None
    enum_values: list[EnumValue] = Field(default_factory=list)
    union_elements: list[Schema] = Field(default_factory=list)
    discriminator: Optional[Discriminator] = None
    declaration: Optional[str] = Field(
        default=None, description="Rendered field declarations for object kinds"
    )

    @property
    def is_alias(self) -> bool:
        """Whether this schema refers to a named type instead of describing one."""
        return self.ref_type is not None


class TypeDefinition(BaseModel):
    """A named declaration that must be emitted exactly once."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    schema_: Schema = Field(alias="schema")
    origin: str = Field(
        description=(
            "JSON pointer of a component, or the naming hint it was synthesized "
            "from, escaped as a pointer"
        )
    )


# --- Parameters ---


class ParameterDefinition(BaseModel):
    """A single parameter of an operation with its serialization facts resolved.

    ``style`` and ``explode`` are always set: document values win, otherwise
    the per-location defaults apply (``simple``/``False`` for path and
    header, ``form``/``True`` for query and cookie).
    """

    model_config = ConfigDict(populate_by_name=True)

    param_name: str
    location: ParameterLocation
    required: bool = False
    description: Optional[str] = None
    schema_: Schema = Field(alias="schema")
    style: str
    explode: bool
    content_types: list[str] = Field(default_factory=list)
    is_json: bool = False
    is_pass_through: bool = False
    is_styled: bool = False
    type_name: str = Field(description="Upper camel case identifier")
    variable_name: str = Field(description="Value-level identifier")

    @property
    def needs_form_tag(self) -> bool:
        return self.style == "form"


class SecurityDefinition(BaseModel):
    """A security provider required by an operation, with its scopes."""

    provider_name: str
    scopes: list[str] = Field(default_factory=list)


# --- Request bodies ---


class RequestBodyEncoding(BaseModel):
    """Encoding of one property of a form or multipart body."""

    content_type: Optional[str] = None
    style: Optional[str] = None
    explode: Optional[bool] = None


class RequestBodyDefinition(BaseModel):
    """One content-type variant of an operation's request body.

    A body with an empty ``name_tag`` has an unrecognised content type; it
    has no schema and is passed through as an opaque byte stream.
    """

    model_config = ConfigDict(populate_by_name=True)

    required: bool = False
    content_type: str
    schema_: Optional[Schema] = Field(default=None, alias="schema")
    name_tag: str = ""
    name_variant: str = Field(
        default="",
        description="Normalized content type, set when an earlier variant has the same tag",
    )
    default: bool = False
    encoding: dict[str, RequestBodyEncoding] = Field(default_factory=dict)
    synthesized: bool = Field(
        default=False, description="Body type was synthesized rather than referenced"
    )

    @property
    def suffix(self) -> str:
        """Disambiguating suffix, e.g. ``WithTextBody``; empty for the default body."""
        if self.default:
            return ""
        return "With" + self.name_tag + self.name_variant + "Body"

    @property
    def is_supported(self) -> bool:
        return self.name_tag != ""

    @property
    def is_supported_by_client(self) -> bool:
        return self.name_tag in ("JSON", "Formdata", "Text")

    @property
    def is_fixed_content_type(self) -> bool:
        return "*" not in self.content_type

    @property
    def custom_type(self) -> bool:
        """Whether the body type was synthesized for this operation."""
        return self.schema_ is not None and self.synthesized

    def type_name(self, operation_id: str) -> str:
        """Name of the body type; the registered name once one was synthesized."""
        if self.synthesized and self.schema_ is not None and self.schema_.ref_type:
            return self.schema_.ref_type
        return f"{operation_id}{self.name_tag}{self.name_variant}Body"


# --- Responses ---


class ResponseContentDefinition(BaseModel):
    """One content-type variant of a response."""

    model_config = ConfigDict(populate_by_name=True)

    content_type: str
    name_tag: str = ""
    name_variant: str = ""
    schema_: Optional[Schema] = Field(default=None, alias="schema")

    @property
    def is_supported(self) -> bool:
        return self.name_tag != ""

    @property
    def has_fixed_content_type(self) -> bool:
        return "*" not in self.content_type

    @property
    def name_tag_or_content_type(self) -> str:
        from specir.compiler.naming import to_camel_case

        return self.name_tag or to_camel_case(self.content_type)


class ResponseHeaderDefinition(BaseModel):
    """A response header with its normalized identifier and schema."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    type_name: str
    schema_: Schema = Field(alias="schema")


class ResponseDefinition(BaseModel):
    """A response declared for one status code.

    ``ref`` names a pre-defined response type this response aliases. Within
    one operation no two responses carry the same ``ref``.
    """

    status_code: str
    description: str = ""
    contents: list[ResponseContentDefinition] = Field(default_factory=list)
    headers: list[ResponseHeaderDefinition] = Field(default_factory=list)
    ref: Optional[str] = None

    @property
    def has_fixed_status_code(self) -> bool:
        return self.status_code.isdigit()

    @property
    def is_ref(self) -> bool:
        return self.ref is not None

    @property
    def type_name(self) -> str:
        from specir.compiler.naming import to_camel_case

        return to_camel_case(self.status_code)


# --- Operations ---


class OperationDefinition(BaseModel):
    """A compiled operation (one path template + HTTP method pair).

    Built once by the operation assembler and frozen afterwards.
    """

    model_config = ConfigDict(frozen=True)

    operation_id: str
    method: HTTPMethod
    path: str
    summary: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    path_params: list[ParameterDefinition] = Field(default_factory=list)
    query_params: list[ParameterDefinition] = Field(default_factory=list)
    header_params: list[ParameterDefinition] = Field(default_factory=list)
    cookie_params: list[ParameterDefinition] = Field(default_factory=list)
    body_required: bool = False
    bodies: list[RequestBodyDefinition] = Field(default_factory=list)
    responses: list[ResponseDefinition] = Field(default_factory=list)
    security_definitions: list[SecurityDefinition] = Field(default_factory=list)
    type_definitions: list[TypeDefinition] = Field(default_factory=list)

    def params(self) -> list[ParameterDefinition]:
        """All parameters except path parameters, which are always positional."""
        return [*self.query_params, *self.header_params, *self.cookie_params]

    def all_params(self) -> list[ParameterDefinition]:
        return [*self.params(), *self.path_params]

    @property
    def requires_param_object(self) -> bool:
        return bool(self.params())

    @property
    def has_body(self) -> bool:
        return bool(self.bodies)

    @property
    def summary_as_comment(self) -> str:
        """The summary as Python comment lines, or an empty string."""
        if not self.summary:
            return ""
        return "\n".join("# " + line for line in self.summary.rstrip("\n").split("\n"))


class BoilerplateRequirements(BaseModel):
    """Names of emitted types that need custom (un)marshalling helpers."""

    additional_properties: list[str] = Field(default_factory=list)
    unions: list[str] = Field(default_factory=list)


class CompiledSpec(BaseModel):
    """The complete IR handed to the rendering stage.

    Compiling the same document twice yields byte-identical
    ``model_dump_json(by_alias=True)`` output.
    """

    operations: list[OperationDefinition] = Field(default_factory=list)
    types: list[TypeDefinition] = Field(default_factory=list)
    boilerplate: BoilerplateRequirements = Field(default_factory=BoilerplateRequirements)

    def type_names(self) -> list[str]:
        return [t.name for t in self.types]

    def get_type(self, name: str) -> Optional[TypeDefinition]:
        for type_def in self.types:
            if type_def.name == name:
                return type_def
        return None

    def get_operation(self, operation_id: str) -> Optional[OperationDefinition]:
        for operation in self.operations:
            if operation.operation_id == operation_id:
                return operation
        return None


Property.model_rebuild()
Schema.model_rebuild()
