"""Describe operation parameters and resolve their serialization facts.

Each declared parameter becomes a :class:`~specir.models.ParameterDefinition`
with ``style`` and ``explode`` always filled in. When the document omits
them the per-location defaults apply:

==========  ==========  ===========
Location    Style       Explode
==========  ==========  ===========
path        simple      ``False``
header      simple      ``False``
query       form        ``True``
cookie      form        ``True``
==========  ==========  ===========

A parameter is *styled* when it has a schema (serialized with the style
rules above), *pass-through* when its value is sent verbatim in a declared
content type, and *JSON* when its single content type is a JSON family
type.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from specir.compiler.content import is_media_type_json
from specir.compiler.naming import schema_name_to_type_name, to_variable_name, unique_name
from specir.compiler.schema import SchemaResolver, render_declaration
from specir.exceptions import DocumentError
from specir.models import (
    ParameterDefinition,
    ParameterLocation,
    Property,
    Schema,
    SchemaKind,
    TypeDefinition,
)

logger = logging.getLogger(__name__)

_DEFAULT_STYLES = {
    ParameterLocation.PATH: "simple",
    ParameterLocation.HEADER: "simple",
    ParameterLocation.QUERY: "form",
    ParameterLocation.COOKIE: "form",
}

_DEFAULT_EXPLODE = {
    ParameterLocation.PATH: False,
    ParameterLocation.HEADER: False,
    ParameterLocation.QUERY: True,
    ParameterLocation.COOKIE: True,
}


def default_style(location: ParameterLocation) -> str:
    return _DEFAULT_STYLES[location]


def default_explode(location: ParameterLocation) -> bool:
    return _DEFAULT_EXPLODE[location]


def merge_parameters(shared: Sequence[Any], local: Sequence[Any]) -> list[Any]:
    """Combine path-level and operation-level parameter nodes.

    The result is ``shared`` followed by ``local``. Lookups by name take the
    first match, so a path-level parameter shadows an operation-level one
    of the same name.
    """
    return [*shared, *local]


def describe_parameters(
    params: Sequence[Any],
    path_hint: Sequence[str],
    resolver: SchemaResolver,
) -> list[ParameterDefinition]:
    """Describe every parameter node in *params*.

    Args:
        params: Parameter objects or ``$ref`` objects, in declaration order.
        path_hint: Naming hint prefix; the parameter name is appended to it
            when an inline schema needs a type name.
        resolver: Schema resolver of the current compilation.

    Returns:
        One definition per parameter, in the same order.

    Raises:
        DocumentError: If a parameter has no name, an unknown ``in``
            location, or neither a schema nor content.
    """
    refs = resolver.refs
    definitions: list[ParameterDefinition] = []

    for param_or_ref in params:
        param = refs.deref(param_or_ref)
        if not isinstance(param, dict):
            raise DocumentError(f"Parameter must be an object, got {type(param).__name__}")

        name = param.get("name")
        if not isinstance(name, str) or not name:
            raise DocumentError("Parameter is missing its name")

        try:
            location = ParameterLocation(param.get("in"))
        except ValueError:
            raise DocumentError(
                f"Parameter '{name}' has unsupported location {param.get('in')!r}"
            ) from None

        content = param.get("content") or {}
        if param.get("schema") is None and not content:
            raise DocumentError(f"Parameter '{name}' declares neither a schema nor content")

        ref = param_or_ref.get("$ref") if isinstance(param_or_ref, dict) else None
        if ref is not None and refs.is_type_reference(ref):
            # A shared component parameter is typed by its component.
            schema = resolver.alias(resolver.type_name_for_ref(ref))
        else:
            schema = _param_schema(param, content, [*path_hint, name], resolver)

        is_json = len(content) == 1 and is_media_type_json(next(iter(content)))
        required = bool(param.get("required", False))
        # Path parameters are always required.
        if location == ParameterLocation.PATH:
            required = True

        explode = param.get("explode")
        definitions.append(
            ParameterDefinition(
                param_name=name,
                location=location,
                required=required,
                description=param.get("description"),
                schema=schema,
                style=param.get("style") or default_style(location),
                explode=default_explode(location) if explode is None else bool(explode),
                content_types=sorted(content),
                is_json=is_json,
                is_pass_through=len(content) > 1 or (len(content) == 1 and not is_json),
                is_styled=param.get("schema") is not None,
                type_name=schema_name_to_type_name(name),
                variable_name=to_variable_name(name),
            )
        )

    return definitions


def _param_schema(
    param: dict[str, Any],
    content: dict[str, Any],
    path: list[str],
    resolver: SchemaResolver,
) -> Schema:
    if param.get("schema") is not None:
        return resolver.resolve(param["schema"], path)
    if len(content) == 1:
        content_type, media = next(iter(content.items()))
        if is_media_type_json(content_type):
            return resolver.resolve((media or {}).get("schema"), path)
    # Pass-through values are sent as the raw string.
    return Schema(kind=SchemaKind.PRIMITIVE, type_expr="str")


def build_params_type(
    operation_id: str,
    params: Sequence[ParameterDefinition],
    resolver: SchemaResolver,
) -> Optional[TypeDefinition]:
    """Synthesize the ``<OperationId>Params`` object holding *params*.

    Returns ``None`` when the operation has no query, header or cookie
    parameters.
    """
    if not params:
        return None

    properties: list[Property] = []
    taken: set[str] = set()
    for param in params:
        field_name = unique_name(param.variable_name, taken)
        taken.add(field_name)
        properties.append(
            Property(
                field_name=field_name,
                json_name=param.param_name,
                required=param.required,
                description=param.description,
                schema=param.schema_,
                needs_form_tag=param.needs_form_tag,
            )
        )

    schema = Schema(kind=SchemaKind.OBJECT, type_expr="object", properties=properties)
    schema.declaration = render_declaration(schema)
    path = [f"{operation_id}Params"]
    alias = resolver.define_type(path, schema)
    logger.debug("Synthesized parameter object %s", alias.ref_type)
    return resolver.registry.get(alias.ref_type)
