"""Assemble operations and drive a whole compilation.

:func:`compile_spec` is the entry point: it turns a parsed OpenAPI
document into a :class:`~specir.models.CompiledSpec`. The work happens in
one pass, in this order:

1. Reserve a type name for every component, then define the component
   types (``components/schemas`` first).
2. Walk ``paths`` in sorted order and, under each path, the HTTP methods in
   sorted order. Operations filtered out by tag are skipped before the
   remaining operations under the path are counted.
3. For every operation: pick its ID, describe its parameters, bodies,
   responses and security requirements.

Any error aborts the whole compilation; no partial result is returned.
Errors raised while compiling an operation carry the JSON pointer of that
operation (e.g. ``#/paths/~1pets/get``).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from specir.compiler.content import generate_body_definitions, generate_response_definitions
from specir.compiler.naming import operation_id_prefix, to_camel_case
from specir.compiler.params import build_params_type, describe_parameters, merge_parameters
from specir.compiler.path_rules import default_operation_id, sort_params_by_path
from specir.compiler.schema import SchemaResolver, TypeRegistry
from specir.exceptions import DocumentError, NamingError
from specir.models import (
    BoilerplateRequirements,
    CompiledSpec,
    CompilerOptions,
    HTTPMethod,
    OperationDefinition,
    ParameterDefinition,
    ParameterLocation,
    SchemaKind,
    SecurityDefinition,
    TypeDefinition,
)
from specir.parser.refs import RefResolver, escape_pointer_segment

logger = logging.getLogger(__name__)

_METHODS = sorted(HTTPMethod, key=lambda m: m.value)


def describe_security(requirements: Optional[list[Any]]) -> list[SecurityDefinition]:
    """Flatten security requirement objects, providers in sorted order."""
    definitions: list[SecurityDefinition] = []
    for requirement in requirements or []:
        for provider in sorted(requirement or {}):
            definitions.append(
                SecurityDefinition(
                    provider_name=provider,
                    scopes=list(requirement[provider] or []),
                )
            )
    return definitions


def filter_by_tags(tags: list[str], options: CompilerOptions) -> bool:
    """Whether an operation with *tags* is compiled under *options*."""
    if options.include_tags and not set(tags) & set(options.include_tags):
        return False
    if options.exclude_tags and set(tags) & set(options.exclude_tags):
        return False
    return True


class Compiler:
    """One compilation of one document.

    Holds the dereferencing service, the type registry and the schema
    resolver, so nothing is shared between compilations.

    Args:
        document: The parsed OpenAPI document.
        options: Compiler options; defaults apply when omitted.
    """

    def __init__(
        self,
        document: dict[str, Any],
        options: Optional[CompilerOptions] = None,
    ) -> None:
        self._document = document
        self._options = options or CompilerOptions()
        self._refs = RefResolver(document, self._options.import_mapping)
        self._registry = TypeRegistry()
        self._resolver = SchemaResolver(self._refs, self._registry, self._options)
        self._operation_ids: set[str] = set()

    def compile(self) -> CompiledSpec:
        components = self._document.get("components") or {}
        try:
            self._resolver.register_components(components)
        except NamingError as exc:
            raise exc.at("#/components")
        self._resolver.emit_components(components)

        operations: list[OperationDefinition] = []
        paths = self._document.get("paths") or {}
        for path in sorted(paths):
            operations.extend(self._compile_path(path, paths[path]))

        types = self._registry.definitions()
        logger.debug("Compiled %d operations and %d types", len(operations), len(types))
        return CompiledSpec(
            operations=operations,
            types=types,
            boilerplate=_boilerplate(types),
        )

    # ------------------------------------------------------------------ #
    # Paths and operations
    # ------------------------------------------------------------------ #

    def _compile_path(self, path: str, path_item: Any) -> list[OperationDefinition]:
        pointer = f"#/paths/{escape_pointer_segment(path)}"
        try:
            path_item = self._refs.deref(path_item)
        except DocumentError as exc:
            raise exc.at(pointer)
        if not isinstance(path_item, dict):
            raise DocumentError("Path item must be an object").at(pointer)

        selected: list[tuple[HTTPMethod, dict[str, Any]]] = []
        for method in _METHODS:
            operation = path_item.get(method.value.lower())
            if not isinstance(operation, dict):
                continue
            if not filter_by_tags(list(operation.get("tags") or []), self._options):
                logger.debug("Skipping %s %s: filtered by tags", method.value, path)
                continue
            selected.append((method, operation))
        if not selected:
            return []

        try:
            # The template itself is the hint, so /pet_list and /pet-list
            # name distinct types.
            hint = path if to_camel_case(path) else "Root"
            shared = describe_parameters(
                path_item.get("parameters") or [], [hint, "Params"], self._resolver
            )
        except (DocumentError, NamingError) as exc:
            raise exc.at(f"{pointer}/parameters")

        operations: list[OperationDefinition] = []
        for method, operation in selected:
            try:
                operations.append(
                    self._compile_operation(path, method, operation, shared, len(selected))
                )
            except (DocumentError, NamingError) as exc:
                raise exc.at(f"{pointer}/{method.value.lower()}")
        return operations

    def _operation_id(
        self,
        path: str,
        method: HTTPMethod,
        operation: dict[str, Any],
        path_op_count: int,
    ) -> str:
        explicit = operation.get("operationId")
        if explicit:
            operation_id = to_camel_case(str(explicit))
            if not operation_id:
                raise NamingError(
                    f"operationId {explicit!r} does not contain any identifier characters"
                )
        else:
            operation_id = default_operation_id(method.value, path, path_op_count)
        operation_id = operation_id_prefix(operation_id) + operation_id

        if operation_id in self._operation_ids:
            raise NamingError(f"Duplicate operation ID '{operation_id}'")
        self._operation_ids.add(operation_id)
        return operation_id

    def _compile_operation(
        self,
        path: str,
        method: HTTPMethod,
        operation: dict[str, Any],
        shared: list[ParameterDefinition],
        path_op_count: int,
    ) -> OperationDefinition:
        operation_id = self._operation_id(path, method, operation, path_op_count)
        logger.debug("Compiling %s %s as %s", method.value, path, operation_id)

        local = describe_parameters(
            operation.get("parameters") or [],
            [f"{operation_id}Params"],
            self._resolver,
        )
        params = merge_parameters(shared, local)

        path_params = sort_params_by_path(
            path,
            _by_location(params, ParameterLocation.PATH),
            lambda p: p.param_name,
        )
        query_params = _first_by_name(_by_location(params, ParameterLocation.QUERY))
        header_params = _first_by_name(_by_location(params, ParameterLocation.HEADER))
        cookie_params = _first_by_name(_by_location(params, ParameterLocation.COOKIE))

        type_definitions: list[TypeDefinition] = []
        params_type = build_params_type(
            operation_id, [*query_params, *header_params, *cookie_params], self._resolver
        )

        body_node = operation.get("requestBody")
        bodies, body_types = generate_body_definitions(
            operation_id, body_node, self._resolver
        )
        type_definitions.extend(body_types)
        if params_type is not None:
            type_definitions.append(params_type)

        responses = generate_response_definitions(
            operation_id,
            operation.get("responses"),
            self._resolver,
            self._options.response_type_suffix,
        )

        # An explicit (even empty) operation-level list replaces the default.
        if "security" in operation:
            security = operation["security"]
        else:
            security = self._document.get("security")

        body_required = False
        if body_node is not None:
            body_required = bool((self._refs.deref(body_node) or {}).get("required", False))

        return OperationDefinition(
            operation_id=operation_id,
            method=method,
            path=path,
            summary=operation.get("summary") or "",
            description=operation.get("description") or "",
            tags=list(operation.get("tags") or []),
            path_params=path_params,
            query_params=query_params,
            header_params=header_params,
            cookie_params=cookie_params,
            body_required=body_required,
            bodies=bodies,
            responses=responses,
            security_definitions=describe_security(security),
            type_definitions=type_definitions,
        )


def compile_spec(
    document: dict[str, Any],
    options: Optional[CompilerOptions] = None,
) -> CompiledSpec:
    """Compile a parsed OpenAPI document into its intermediate representation.

    Args:
        document: The parsed document, as returned by
            :func:`~specir.parser.load_spec`.
        options: Tag filters, import mapping and naming options.

    Returns:
        The operations, the named types and the boilerplate requirements.
        Compiling the same document twice gives identical results.

    Raises:
        DocumentError: If the document is inconsistent.
        NamingError: If no usable or unique identifier can be produced.

    Example::

        document = load_spec("petstore.yaml")
        compiled = compile_spec(document, CompilerOptions(include_tags=["pets"]))
        for operation in compiled.operations:
            print(operation.operation_id, operation.method.value, operation.path)
    """
    return Compiler(document, options).compile()


def _by_location(
    params: list[ParameterDefinition],
    location: ParameterLocation,
) -> list[ParameterDefinition]:
    return [p for p in params if p.location == location]


def _first_by_name(params: list[ParameterDefinition]) -> list[ParameterDefinition]:
    seen: set[str] = set()
    result: list[ParameterDefinition] = []
    for param in params:
        if param.param_name not in seen:
            seen.add(param.param_name)
            result.append(param)
    return result


def _boilerplate(types: list[TypeDefinition]) -> BoilerplateRequirements:
    return BoilerplateRequirements(
        additional_properties=[t.name for t in types if t.schema_.has_additional_properties],
        unions=[t.name for t in types if t.schema_.kind == SchemaKind.UNION],
    )
