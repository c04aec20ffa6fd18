"""Model request bodies and responses, one definition per content type.

Every content type is classified into a family tag:

====================================  ==============
Content type                          Tag
====================================  ==============
``application/json``, ``*+json``      ``JSON``
``multipart/*``                       ``Multipart``
``application/x-www-form-urlencoded``  ``Formdata``
``text/plain``                        ``Text``
anything else                         ``""``
====================================  ==============

Untagged content types get no schema; the rendering stage passes them
through as an opaque byte stream. The JSON body is the *default* body and
gets no name suffix; every other body is suffixed ``With<Tag>Body``. When
several content types share a tag (``application/json`` and
``application/merge-patch+json``), only the first is named by the tag alone;
the others append their normalized content type, and only
``application/json`` (or failing that the first JSON type) is the default.

Inline body and response schemas get a synthesized type named after the
operation (``CreatePetJSONBody``, ``ReadPet200JSONResponse``). A response
that points at a shared ``components/responses`` entry aliases it, but only
the first such response of an operation may use a given alias; the content
of a later one is wrapped in a type of its own.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from specir.compiler.naming import schema_name_to_type_name, to_camel_case
from specir.compiler.schema import SchemaResolver
from specir.models import (
    RequestBodyDefinition,
    RequestBodyEncoding,
    ResponseContentDefinition,
    ResponseDefinition,
    ResponseHeaderDefinition,
    Schema,
    TypeDefinition,
)

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


def is_media_type_json(content_type: str) -> bool:
    """Whether *content_type* belongs to the JSON family.

    Media type parameters are ignored.

    Example::

        >>> is_media_type_json("application/json; charset=utf-8")
        True
        >>> is_media_type_json("application/problem+json")
        True
        >>> is_media_type_json("application/jsonl")
        False
    """
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def classify_content_type(content_type: str) -> str:
    """Return the family tag of *content_type*, or ``""`` when unsupported."""
    if is_media_type_json(content_type):
        return "JSON"
    if content_type.startswith("multipart/"):
        return "Multipart"
    if content_type == FORM_CONTENT_TYPE:
        return "Formdata"
    if content_type == "text/plain":
        return "Text"
    return ""


def name_variants(content_types: list[str]) -> dict[str, str]:
    """Map every supported content type to the name variant it is typed under.

    The first content type of each tag (in sorted order, except that plain
    ``application/json`` always leads the JSON family) gets the empty
    variant; later ones with the same tag are told apart by their
    normalized content type.

    Example::

        >>> name_variants(["application/geo+json", "application/json"])
        {'application/json': '', 'application/geo+json': 'ApplicationgeoJson'}
    """
    ordered = sorted(content_types, key=lambda ct: (not _is_plain_json(ct), ct))
    variants: dict[str, str] = {}
    seen_tags: set[str] = set()
    for content_type in ordered:
        tag = classify_content_type(content_type)
        if not tag:
            continue
        variants[content_type] = to_camel_case(content_type) if tag in seen_tags else ""
        seen_tags.add(tag)
    return variants


def _is_plain_json(content_type: str) -> bool:
    return content_type.split(";", 1)[0].strip().lower() == "application/json"


def generate_body_definitions(
    operation_id: str,
    body_or_ref: Any,
    resolver: SchemaResolver,
) -> tuple[list[RequestBodyDefinition], list[TypeDefinition]]:
    """Describe the request body of an operation.

    Args:
        operation_id: Final operation ID, used to name body types.
        body_or_ref: The ``requestBody`` node (or a ``$ref`` to one), or
            ``None``.
        resolver: Schema resolver of the current compilation.

    Returns:
        ``(bodies, type_definitions)``: one body per content type in sorted
        content-type order, and the types synthesized for them.
    """
    if body_or_ref is None:
        return [], []
    refs = resolver.refs
    body = refs.deref(body_or_ref) or {}
    required = bool(body.get("required", False))
    content = body.get("content") or {}

    bodies: list[RequestBodyDefinition] = []
    type_definitions: list[TypeDefinition] = []
    variants = name_variants(list(content))

    for content_type in sorted(content):
        media = content[content_type] or {}
        tag = classify_content_type(content_type)
        if not tag:
            logger.debug(
                "%s: body content type %s is passed through", operation_id, content_type
            )
            bodies.append(RequestBodyDefinition(required=required, content_type=content_type))
            continue

        variant = variants[content_type]
        definition = RequestBodyDefinition(
            required=required,
            content_type=content_type,
            name_tag=tag,
            name_variant=variant,
            default=tag == "JSON" and not variant,
            encoding=_encoding(media.get("encoding")),
        )
        type_name = definition.type_name(operation_id)
        schema = resolver.resolve(media.get("schema"), [type_name])

        if schema.ref_type is None:
            schema = resolver.define_type([type_name], schema)
            definition.synthesized = True
        elif resolver.synthesized_name([type_name]) == schema.ref_type:
            definition.synthesized = True

        if definition.synthesized:
            if content_type == FORM_CONTENT_TYPE:
                resolver.tag_form_properties(schema.ref_type)
            type_definitions.append(resolver.registry.get(schema.ref_type))

        definition.schema_ = schema
        bodies.append(definition)

    return bodies, type_definitions


def _encoding(encoding: Optional[dict[str, Any]]) -> dict[str, RequestBodyEncoding]:
    result: dict[str, RequestBodyEncoding] = {}
    for name in sorted(encoding or {}):
        entry = encoding[name] or {}
        result[name] = RequestBodyEncoding(
            content_type=entry.get("contentType"),
            style=entry.get("style"),
            explode=entry.get("explode"),
        )
    return result


def generate_response_definitions(
    operation_id: str,
    responses: Optional[dict[str, Any]],
    resolver: SchemaResolver,
    response_type_suffix: str = "Response",
) -> list[ResponseDefinition]:
    """Describe the responses of an operation in sorted status-code order.

    A response that references a ``components/responses`` entry aliases
    that type, unless an earlier status code of the same operation already
    did; later ones get a synthesized type per content type instead.
    """
    refs = resolver.refs
    definitions: list[ResponseDefinition] = []
    used_refs: set[str] = set()

    # YAML reads unquoted status codes as integers.
    responses = {str(code): value for code, value in (responses or {}).items()}

    for status_code in sorted(responses):
        response_or_ref = responses[status_code]
        if response_or_ref is None:
            continue
        response = refs.deref(response_or_ref) or {}
        status_name = to_camel_case(status_code)

        content = response.get("content") or {}
        variants = name_variants(list(content))
        contents: list[ResponseContentDefinition] = []
        for content_type in sorted(content):
            media = content[content_type] or {}
            tag = classify_content_type(content_type)
            if not tag:
                contents.append(ResponseContentDefinition(content_type=content_type))
                continue
            variant = variants[content_type]
            type_name = f"{operation_id}{status_name}{tag}{variant}{response_type_suffix}"
            contents.append(
                ResponseContentDefinition(
                    content_type=content_type,
                    name_tag=tag,
                    name_variant=variant,
                    schema=_named_content_schema(media.get("schema"), type_name, resolver),
                )
            )

        definition = ResponseDefinition(
            status_code=status_code,
            description=response.get("description") or "",
            contents=contents,
            headers=_headers(operation_id, status_name, response.get("headers"), resolver),
        )

        ref = response_or_ref.get("$ref") if isinstance(response_or_ref, dict) else None
        if ref is not None and refs.is_type_reference(ref):
            ref_type = resolver.type_name_for_ref(ref)
            if ref_type in used_refs:
                logger.warning(
                    "%s: response %s also references %s; only the first response "
                    "aliases it",
                    operation_id,
                    status_code,
                    ref_type,
                )
                for content in definition.contents:
                    if content.schema_ is not None:
                        content.schema_ = resolver.define_type(
                            [
                                f"{operation_id}{status_name}{content.name_tag}"
                                f"{content.name_variant}{response_type_suffix}"
                            ],
                            content.schema_,
                        )
            else:
                definition.ref = ref_type
                used_refs.add(ref_type)

        definitions.append(definition)

    return definitions


def _named_content_schema(node: Any, type_name: str, resolver: SchemaResolver) -> Schema:
    schema = resolver.resolve(node, [type_name])
    if schema.ref_type is None:
        schema = resolver.define_type([type_name], schema)
    return schema


def _headers(
    operation_id: str,
    status_name: str,
    headers: Optional[dict[str, Any]],
    resolver: SchemaResolver,
) -> list[ResponseHeaderDefinition]:
    result: list[ResponseHeaderDefinition] = []
    for name in sorted(headers or {}):
        header = resolver.refs.deref(headers[name]) or {}
        schema = resolver.resolve(
            header.get("schema"), [f"{operation_id}{status_name}", "Header", name]
        )
        result.append(
            ResponseHeaderDefinition(
                name=name,
                type_name=schema_name_to_type_name(name),
                schema=schema,
            )
        )
    return result
