"""Tests for specir.compiler.content -- request bodies and responses.

Covers:
- Content-type classification
- One body per content type: default JSON body, suffixes, synthesis
- Form bodies: property tagging and encoding
- Unsupported content types
- Responses: synthesized names, shared response aliases, headers
"""

from __future__ import annotations

import logging
from typing import Any

import pytest

from helpers import make_document, resolver_for
from specir.compiler.content import (
    classify_content_type,
    generate_body_definitions,
    generate_response_definitions,
    is_media_type_json,
    name_variants,
)
from specir.models import CompilerOptions, SchemaKind


PET = {
    "type": "object",
    "required": ["name"],
    "properties": {"name": {"type": "string"}, "tag": {"type": "string"}},
}

ERROR_COMPONENTS = {
    "schemas": {"Error": {"type": "object", "properties": {"code": {"type": "integer"}}}},
    "responses": {
        "Error": {
            "description": "Error",
            "content": {"application/json": {"schema": {"$ref": "#/components/schemas/Error"}}},
        }
    },
}


def body(content: dict[str, Any], required: bool = False) -> dict[str, Any]:
    return {"required": required, "content": content}


# ------------------------------------------------------------------ #
# Classification
# ------------------------------------------------------------------ #


class TestClassification:
    @pytest.mark.parametrize(
        "content_type, tag",
        [
            ("application/json", "JSON"),
            ("application/json; charset=utf-8", "JSON"),
            ("application/merge-patch+json", "JSON"),
            ("multipart/form-data", "Multipart"),
            ("multipart/mixed", "Multipart"),
            ("application/x-www-form-urlencoded", "Formdata"),
            ("text/plain", "Text"),
            ("application/octet-stream", ""),
            ("application/vnd.custom+octet-stream", ""),
            ("text/html", ""),
        ],
    )
    def test_tags(self, content_type: str, tag: str) -> None:
        assert classify_content_type(content_type) == tag

    def test_json_family(self) -> None:
        assert is_media_type_json("Application/JSON")
        assert not is_media_type_json("application/jsonl")

    def test_name_variants(self) -> None:
        assert name_variants(
            [
                "application/merge-patch+json",
                "application/json",
                "multipart/mixed",
                "multipart/form-data",
                "application/octet-stream",
            ]
        ) == {
            "application/json": "",
            "application/merge-patch+json": "ApplicationmergePatchJson",
            "multipart/form-data": "",
            "multipart/mixed": "Multipartmixed",
        }


# ------------------------------------------------------------------ #
# Request bodies
# ------------------------------------------------------------------ #


class TestBodies:
    def test_no_body(self) -> None:
        assert generate_body_definitions("CreatePet", None, resolver_for(make_document())) == ([], [])

    def test_inline_json_body_is_synthesized(self) -> None:
        resolver = resolver_for(make_document())
        bodies, types = generate_body_definitions(
            "CreatePet", body({"application/json": {"schema": PET}}, required=True), resolver
        )
        (definition,) = bodies
        assert definition.default
        assert definition.suffix == ""
        assert definition.required
        assert definition.custom_type
        assert definition.schema_.ref_type == "CreatePetJSONBody"
        assert [t.name for t in types] == ["CreatePetJSONBody"]

    def test_referenced_json_body_aliases(self) -> None:
        resolver = resolver_for(make_document(schemas={"Pet": PET}))
        bodies, types = generate_body_definitions(
            "CreatePet",
            body({"application/json": {"schema": {"$ref": "#/components/schemas/Pet"}}}),
            resolver,
        )
        (definition,) = bodies
        assert definition.schema_.ref_type == "Pet"
        assert not definition.custom_type
        assert types == []

    def test_text_body_wraps_primitive(self) -> None:
        resolver = resolver_for(make_document())
        bodies, types = generate_body_definitions(
            "CreatePet", body({"text/plain": {"schema": {"type": "string"}}}), resolver
        )
        (definition,) = bodies
        assert not definition.default
        assert definition.suffix == "WithTextBody"
        assert definition.schema_.ref_type == "CreatePetTextBody"
        assert types[0].schema_.type_expr == "str"

    def test_form_body_is_tagged(self) -> None:
        resolver = resolver_for(make_document())
        bodies, types = generate_body_definitions(
            "CreatePet",
            body(
                {
                    "application/x-www-form-urlencoded": {
                        "schema": PET,
                        "encoding": {
                            "tag": {"style": "form", "explode": True},
                            "name": {"contentType": "text/plain"},
                        },
                    }
                }
            ),
            resolver,
        )
        (definition,) = bodies
        assert definition.name_tag == "Formdata"
        assert definition.suffix == "WithFormdataBody"
        assert list(definition.encoding) == ["name", "tag"]
        assert definition.encoding["tag"].explode is True
        assert definition.encoding["name"].content_type == "text/plain"
        assert all(p.needs_form_tag for p in types[0].schema_.properties)
        assert 'json_schema_extra={"form": True}' in types[0].schema_.declaration

    def test_referenced_form_body_is_not_tagged(self) -> None:
        resolver = resolver_for(make_document(schemas={"Pet": PET}))
        resolver.emit_components({"schemas": {"Pet": PET}})
        generate_body_definitions(
            "CreatePet",
            body({"application/x-www-form-urlencoded": {"schema": {"$ref": "#/components/schemas/Pet"}}}),
            resolver,
        )
        assert not any(p.needs_form_tag for p in resolver.registry.get("Pet").schema_.properties)

    def test_unsupported_body_is_passed_through(self) -> None:
        resolver = resolver_for(make_document())
        bodies, types = generate_body_definitions(
            "Upload",
            body({"application/octet-stream": {"schema": {"type": "string", "format": "binary"}}}),
            resolver,
        )
        (definition,) = bodies
        assert definition.schema_ is None
        assert not definition.is_supported
        assert not definition.custom_type
        assert types == []

    def test_one_body_per_content_type_in_sorted_order(self) -> None:
        resolver = resolver_for(make_document())
        bodies, _ = generate_body_definitions(
            "CreatePet",
            body(
                {
                    "text/plain": {"schema": {"type": "string"}},
                    "multipart/form-data": {"schema": PET},
                    "application/json": {"schema": PET},
                }
            ),
            resolver,
        )
        assert [b.content_type for b in bodies] == [
            "application/json",
            "multipart/form-data",
            "text/plain",
        ]
        assert [b.default for b in bodies] == [True, False, False]
        assert not bodies[1].is_supported_by_client
        assert bodies[1].schema_.ref_type == "CreatePetMultipartBody"

    def test_body_ref_is_dereferenced(self) -> None:
        document = make_document(
            components={
                "requestBodies": {
                    "PetBody": body({"application/json": {"schema": PET}}, required=True)
                }
            }
        )
        resolver = resolver_for(document)
        bodies, _ = generate_body_definitions(
            "CreatePet", {"$ref": "#/components/requestBodies/PetBody"}, resolver
        )
        assert bodies[0].required
        assert bodies[0].schema_.ref_type == "CreatePetJSONBody"

    def test_json_variants_get_one_default_and_own_types(self) -> None:
        resolver = resolver_for(make_document())
        patch = {"type": "object", "properties": {"name": {"type": "string"}}}
        bodies, types = generate_body_definitions(
            "PatchPet",
            body(
                {
                    "application/merge-patch+json": {"schema": patch},
                    "application/json": {"schema": PET},
                }
            ),
            resolver,
        )
        assert [(b.content_type, b.default, b.schema_.ref_type) for b in bodies] == [
            ("application/json", True, "PatchPetJSONBody"),
            (
                "application/merge-patch+json",
                False,
                "PatchPetJSONApplicationmergePatchJsonBody",
            ),
        ]
        assert bodies[1].suffix == "WithJSONApplicationmergePatchJsonBody"
        assert [t.name for t in types] == [
            "PatchPetJSONBody",
            "PatchPetJSONApplicationmergePatchJsonBody",
        ]
        assert [p.json_name for p in types[1].schema_.properties] == ["name"]

    def test_first_json_type_is_default_without_plain_json(self) -> None:
        resolver = resolver_for(make_document())
        bodies, _ = generate_body_definitions(
            "CreateShape",
            body(
                {
                    "application/vnd.api+json": {"schema": PET},
                    "application/geo+json": {"schema": PET},
                }
            ),
            resolver,
        )
        assert [(b.content_type, b.default, b.name_variant) for b in bodies] == [
            ("application/geo+json", True, ""),
            ("application/vnd.api+json", False, "ApplicationvndApiJson"),
        ]

    def test_type_name_follows_registered_name(self) -> None:
        resolver = resolver_for(make_document(schemas={"CreatePetJSONBody": PET}))
        bodies, types = generate_body_definitions(
            "CreatePet", body({"application/json": {"schema": PET}}), resolver
        )
        assert bodies[0].type_name("CreatePet") == "CreatePetJSONBody2"
        assert [t.name for t in types] == ["CreatePetJSONBody2"]

    def test_wildcard_content_type_is_not_fixed(self) -> None:
        resolver = resolver_for(make_document())
        bodies, _ = generate_body_definitions(
            "Upload", body({"image/*": {}}), resolver
        )
        assert not bodies[0].is_fixed_content_type


# ------------------------------------------------------------------ #
# Responses
# ------------------------------------------------------------------ #


class TestResponses:
    def test_status_codes_sorted(self) -> None:
        responses = {
            "default": {"description": "Error"},
            "404": {"description": "Missing"},
            "200": {"description": "OK"},
        }
        definitions = generate_response_definitions(
            "ReadPet", responses, resolver_for(make_document())
        )
        assert [d.status_code for d in definitions] == ["200", "404", "default"]
        assert definitions[0].has_fixed_status_code
        assert not definitions[2].has_fixed_status_code
        assert definitions[2].type_name == "Default"

    def test_inline_content_is_named(self) -> None:
        resolver = resolver_for(make_document())
        (definition,) = generate_response_definitions(
            "ReadPet",
            {"200": {"description": "OK", "content": {"application/json": {"schema": PET}}}},
            resolver,
        )
        (content,) = definition.contents
        assert content.name_tag == "JSON"
        assert content.schema_.ref_type == "ReadPet200JSONResponse"
        assert resolver.registry.get("ReadPet200JSONResponse").schema_.kind == SchemaKind.OBJECT

    def test_primitive_content_is_named(self) -> None:
        resolver = resolver_for(make_document())
        generate_response_definitions(
            "HealthCheck",
            {"200": {"description": "OK", "content": {"text/plain": {"schema": {"type": "string"}}}}},
            resolver,
        )
        assert resolver.registry.get("HealthCheck200TextResponse").schema_.type_expr == "str"

    def test_json_variants_are_named_apart(self) -> None:
        resolver = resolver_for(make_document())
        api = {"type": "object", "properties": {"data": {"type": "string"}}}
        (definition,) = generate_response_definitions(
            "GetPet",
            {
                "200": {
                    "description": "OK",
                    "content": {
                        "application/vnd.api+json": {"schema": api},
                        "application/json": {"schema": PET},
                    },
                }
            },
            resolver,
        )
        assert [(c.content_type, c.schema_.ref_type) for c in definition.contents] == [
            ("application/json", "GetPet200JSONResponse"),
            ("application/vnd.api+json", "GetPet200JSONApplicationvndApiJsonResponse"),
        ]
        variant = resolver.registry.get("GetPet200JSONApplicationvndApiJsonResponse")
        assert [p.json_name for p in variant.schema_.properties] == ["data"]

    def test_integer_status_codes(self) -> None:
        definitions = generate_response_definitions(
            "ReadPet",
            {
                404: {"description": "Missing"},
                "default": {"description": "Error"},
                200: {"description": "OK"},
            },
            resolver_for(make_document()),
        )
        assert [d.status_code for d in definitions] == ["200", "404", "default"]

    def test_custom_suffix(self) -> None:
        options = CompilerOptions(response_type_suffix="Reply")
        resolver = resolver_for(make_document(), options)
        (definition,) = generate_response_definitions(
            "ReadPet",
            {"200": {"description": "OK", "content": {"application/json": {"schema": PET}}}},
            resolver,
            options.response_type_suffix,
        )
        assert definition.contents[0].schema_.ref_type == "ReadPet200JSONReply"

    def test_unsupported_content(self) -> None:
        (definition,) = generate_response_definitions(
            "Download",
            {"200": {"description": "OK", "content": {"application/octet-stream": {}}}},
            resolver_for(make_document()),
        )
        (content,) = definition.contents
        assert not content.is_supported
        assert content.schema_ is None
        assert content.name_tag_or_content_type == "ApplicationoctetStream"

    def test_shared_response_alias_used_once(self, caplog: pytest.LogCaptureFixture) -> None:
        resolver = resolver_for(make_document(components=ERROR_COMPONENTS))
        error_ref = {"$ref": "#/components/responses/Error"}
        with caplog.at_level(logging.WARNING, logger="specir"):
            definitions = generate_response_definitions(
                "ReadPet", {"404": error_ref, "default": error_ref}, resolver
            )

        assert [d.ref for d in definitions] == ["ErrorResponse", None]
        assert definitions[0].is_ref
        assert "only the first response aliases it" in caplog.text

        fallback = definitions[1].contents[0].schema_.ref_type
        assert fallback == "ReadPetDefaultJSONResponse"
        assert resolver.registry.get(fallback).schema_.ref_type == "Error"
        assert definitions[0].contents[0].schema_.ref_type == "Error"

    def test_headers_sorted(self) -> None:
        resolver = resolver_for(make_document())
        (definition,) = generate_response_definitions(
            "ReadPet",
            {
                "200": {
                    "description": "OK",
                    "headers": {
                        "X-Rate-Limit": {"schema": {"type": "integer"}},
                        "ETag": {"schema": {"type": "string"}},
                        "Meta": {"schema": PET},
                    },
                }
            },
            resolver,
        )
        assert [(h.name, h.type_name) for h in definition.headers] == [
            ("ETag", "ETag"),
            ("Meta", "Meta"),
            ("X-Rate-Limit", "XRateLimit"),
        ]
        assert definition.headers[1].schema_.ref_type == "ReadPet200HeaderMeta"
        assert definition.headers[2].schema_.type_expr == "int"
