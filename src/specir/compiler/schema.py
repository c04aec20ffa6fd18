"""Resolve schema nodes into type descriptors and synthesize named types.

The :class:`SchemaResolver` walks one schema node at a time and returns a
:class:`~specir.models.Schema`. Whenever a node needs a name of its own
(inline objects, arrays, maps and compositions) a type is synthesized from
the caller's naming hint and registered in the :class:`TypeRegistry`; the
caller gets back an alias to it. References to whole components
(``#/components/schemas/Pet``) never synthesize anything: they alias the
component's pre-registered name.

Cycles are harmless. Component names are reserved before any component is
described, and inline types are reserved (and marked as resolving) before
their members are walked, so a node that leads back to a type under
construction finds its name instead of recursing.

Two rules keep the output byte-stable:

* object properties, content maps and component sections are walked in
  sorted key order;
* the registry hands out names in reservation order and never reorders.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

from specir.compiler.naming import (
    ref_path_to_type_name,
    schema_name_to_type_name,
    to_variable_name,
    type_name_from_path,
    unique_name,
)
from specir.exceptions import DocumentError, NamingError
from specir.models import (
    CompilerOptions,
    Discriminator,
    EnumValue,
    Property,
    Schema,
    SchemaKind,
    TypeDefinition,
)
from specir.parser.refs import (
    TYPE_SECTIONS,
    RefResolver,
    component_ref,
    escape_pointer_segment,
    split_ref,
    unescape_pointer_segment,
)

logger = logging.getLogger(__name__)

# Suffix tried first when a component name is already taken by an earlier
# section.
_SECTION_SUFFIXES = {
    "schemas": None,
    "parameters": "Parameter",
    "responses": "Response",
    "requestBodies": "RequestBody",
}

_PRIMITIVE_TYPES = {
    "integer": "int",
    "number": "float",
    "boolean": "bool",
    "string": "str",
}

_STRING_FORMATS = {
    "date-time": "datetime.datetime",
    "date": "datetime.date",
    "uuid": "uuid.UUID",
    "binary": "bytes",
    "byte": "bytes",
}


class TypeRegistry:
    """The set of named types produced by one compilation.

    Names are reserved first (keyed by where they came from, so reserving
    the same origin twice returns the same name) and defined later. The
    registry is the only place names are allocated, which is what keeps
    them unique.
    """

    def __init__(self) -> None:
        self._origins: dict[str, str] = {}
        self._reserved: dict[str, str] = {}
        self._definitions: dict[str, TypeDefinition] = {}
        self._resolving: set[str] = set()

    def reserve(
        self,
        base: str,
        origin: str,
        collision_suffix: Optional[str] = None,
    ) -> str:
        """Reserve a unique name derived from *base* for *origin*.

        Returns the previously reserved name when *origin* was seen before.
        """
        existing = self._origins.get(origin)
        if existing is not None:
            return existing
        name = unique_name(base, self._reserved, collision_suffix)
        if name != base:
            logger.debug("Type name %s is taken, using %s for %s", base, name, origin)
        self._reserved[name] = origin
        self._origins[origin] = name
        return name

    def name_for_origin(self, origin: str) -> Optional[str]:
        return self._origins.get(origin)

    def begin(self, name: str) -> None:
        """Mark *name* as being resolved."""
        self._resolving.add(name)

    def is_resolving(self, name: str) -> bool:
        return name in self._resolving

    def is_defined(self, name: str) -> bool:
        return name in self._definitions

    def define(self, name: str, schema: Schema) -> TypeDefinition:
        """Attach *schema* to the reserved *name*."""
        if name not in self._reserved:
            raise NamingError(f"Type {name!r} was defined without being reserved")
        if name in self._definitions:
            raise NamingError(f"Type {name!r} is defined twice")
        definition = TypeDefinition(name=name, schema=schema, origin=self._reserved[name])
        self._definitions[name] = definition
        self._resolving.discard(name)
        return definition

    def get(self, name: str) -> Optional[TypeDefinition]:
        return self._definitions.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._reserved

    def definitions(self) -> list[TypeDefinition]:
        """Every defined type, in reservation order."""
        return [self._definitions[n] for n in self._reserved if n in self._definitions]


class SchemaResolver:
    """Turns schema nodes into :class:`~specir.models.Schema` descriptors.

    Args:
        refs: Dereferencing service for the document being compiled.
        registry: The registry new types are added to. The resolver is its
            only writer.
        options: Compiler options (import mapping, excluded schemas).
    """

    def __init__(
        self,
        refs: RefResolver,
        registry: TypeRegistry,
        options: Optional[CompilerOptions] = None,
    ) -> None:
        self._refs = refs
        self._registry = registry
        self._options = options or CompilerOptions()
        self._ref_names: dict[str, str] = {}
        self._inline_refs: list[str] = []

    @property
    def registry(self) -> TypeRegistry:
        return self._registry

    @property
    def refs(self) -> RefResolver:
        return self._refs

    # ------------------------------------------------------------------ #
    # Components
    # ------------------------------------------------------------------ #

    def register_components(self, components: Optional[dict[str, Any]]) -> None:
        """Reserve a name for every component that is emitted as a type.

        Sections are processed in a fixed order (schemas, parameters,
        responses, requestBodies) with sorted keys, so a name clash between
        sections always resolves the same way.
        """
        components = components or {}
        for section in TYPE_SECTIONS:
            for key in sorted(components.get(section) or {}):
                ref = component_ref(section, key)
                self._ref_names[ref] = self._registry.reserve(
                    schema_name_to_type_name(key),
                    origin=ref,
                    collision_suffix=_SECTION_SUFFIXES[section],
                )

    def emit_components(self, components: Optional[dict[str, Any]]) -> None:
        """Define the type of every registered component."""
        components = components or {}
        excluded = set(self._options.exclude_schemas)
        for section in TYPE_SECTIONS:
            entries = components.get(section) or {}
            for key in sorted(entries):
                if section == "schemas" and key in excluded:
                    logger.debug("Skipping excluded schema %s", key)
                    continue
                ref = component_ref(section, key)
                name = self._ref_names[ref]
                try:
                    node = self._component_schema_node(section, entries[key])
                    self._registry.begin(name)
                    schema = self._describe_root(node, [name])
                    self._registry.define(name, schema)
                except (DocumentError, NamingError) as exc:
                    raise exc.at(ref)

    def _component_schema_node(self, section: str, node: Any) -> Any:
        """Return the schema node that types a component of *section*."""
        if section == "schemas":
            return node
        node = self._refs.deref(node)
        if not isinstance(node, dict):
            raise DocumentError(f"Component must be an object, got {type(node).__name__}")
        if section == "parameters":
            if node.get("schema") is not None:
                return node["schema"]
            content = node.get("content") or {}
            if len(content) == 1:
                return (next(iter(content.values())) or {}).get("schema")
            return None
        # responses and requestBodies are typed by their first JSON content.
        from specir.compiler.content import is_media_type_json

        content = node.get("content") or {}
        for content_type in sorted(content):
            if is_media_type_json(content_type):
                return (content[content_type] or {}).get("schema")
        return None

    # ------------------------------------------------------------------ #
    # References and aliases
    # ------------------------------------------------------------------ #

    def type_name_for_ref(self, ref: str) -> str:
        """Return the name of the type a component or mapped external *ref* denotes.

        Raises:
            DocumentError: If the reference is dangling, or names an external
                document without an import mapping.
        """
        document, fragment = split_ref(ref)
        if document:
            prefix = self._refs.import_mapping.get(document)
            if prefix is None:
                raise DocumentError(
                    f"External $ref '{ref}' has no import mapping for '{document}'"
                )
            return f"{prefix}.{ref_path_to_type_name(fragment)}"

        name = self._ref_names.get(ref)
        if name is None:
            # Raises for a dangling pointer.
            self._refs.resolve_pointer(ref)
            raise DocumentError(f"$ref '{ref}' does not name an emitted component")
        return name

    def alias(self, name: str) -> Schema:
        """Return a schema that refers to the named type *name*."""
        return Schema(kind=SchemaKind.REFERENCE, type_expr=name, ref_type=name)

    def define_type(self, path: Sequence[str], schema: Schema) -> Schema:
        """Register *schema* under the name derived from *path* and alias it.

        Idempotent: a second call with the same *path* returns the alias to
        the first definition.
        """
        name = self._registry.reserve(type_name_from_path(path), origin=_origin(path))
        if not self._registry.is_defined(name):
            self._registry.define(name, schema)
        return self.alias(name)

    def synthesized_name(self, path: Sequence[str]) -> Optional[str]:
        """Name of the type synthesized for naming hint *path*, if any."""
        return self._registry.name_for_origin(_origin(path))

    def tag_form_properties(self, name: str) -> None:
        """Mark every top-level property of type *name* for form serialization."""
        definition = self._registry.get(name)
        if definition is None:
            return
        schema = definition.schema_
        for prop in schema.properties:
            prop.needs_form_tag = True
        if schema.kind == SchemaKind.OBJECT:
            schema.declaration = render_declaration(schema)

    # ------------------------------------------------------------------ #
    # Resolution
    # ------------------------------------------------------------------ #

    def resolve(self, node: Any, path: Sequence[str]) -> Schema:
        """Resolve *node* into a descriptor, naming it from *path* if needed.

        Args:
            node: A schema object, or ``None`` for "anything".
            path: Hierarchical naming hint, e.g. ``["CreatePet", "Params",
                "tags"]``. Only used when a type must be invented.

        Returns:
            A descriptor that contains no unresolved references.

        Raises:
            DocumentError: On a dangling reference or incompatible
                composition members.
        """
        if node is None:
            return _primitive("Any")
        if not isinstance(node, dict):
            raise DocumentError(
                f"Schema at {_hint(path)} must be an object, got {type(node).__name__}"
            )

        ref = node.get("$ref") or _single_all_of_ref(node)
        if ref is not None:
            schema = self._resolve_ref(ref, path)
        elif _needs_name(node):
            schema = self._named(node, path)
        else:
            schema = self._describe(node, path)

        if _schema_type(node)[1]:
            _apply_nullable(schema)
        if schema.is_alias and isinstance(node.get("description"), str):
            schema.description = node["description"]
        return schema

    def _resolve_ref(self, ref: Any, path: Sequence[str]) -> Schema:
        if not isinstance(ref, str):
            raise DocumentError(f"$ref at {_hint(path)} must be a string")
        if self._refs.is_external(ref) or self._refs.is_type_reference(ref):
            return self.alias(self.type_name_for_ref(ref))

        # A pointer into the middle of a component is described in place.
        if ref in self._inline_refs:
            raise DocumentError(f"Circular inline $ref '{ref}'")
        self._inline_refs.append(ref)
        try:
            return self.resolve(self._refs.resolve_pointer(ref), path)
        finally:
            self._inline_refs.pop()

    def _named(self, node: dict[str, Any], path: Sequence[str]) -> Schema:
        name = self._registry.reserve(type_name_from_path(path), origin=_origin(path))
        if not (self._registry.is_defined(name) or self._registry.is_resolving(name)):
            self._registry.begin(name)
            self._registry.define(name, self._describe(node, path))
            logger.debug("Synthesized type %s", name)
        return self.alias(name)

    def _describe_root(self, node: Any, path: Sequence[str]) -> Schema:
        """Describe a component node under its own name."""
        if node is None:
            return _primitive("Any")
        if not isinstance(node, dict):
            raise DocumentError(f"Schema must be an object, got {type(node).__name__}")
        if "$ref" in node or _single_all_of_ref(node) is not None:
            return self.resolve(node, path)
        schema = self._describe(node, path)
        if _schema_type(node)[1]:
            _apply_nullable(schema)
        return schema

    def _describe(self, node: dict[str, Any], path: Sequence[str]) -> Schema:
        """Describe the shape of *node* itself; nested nodes are resolved."""
        if "allOf" in node:
            return self._describe_all_of(node, path)
        if "oneOf" in node or "anyOf" in node:
            return self._describe_union(node, path)
        if "enum" in node:
            return self._describe_enum(node)

        schema_type = _schema_type(node)[0]
        if schema_type == "array":
            return self._describe_array(node, path)
        if schema_type == "object" or _looks_like_object(node):
            return self._describe_object(node, path)
        return _primitive(_primitive_type_expr(schema_type, node.get("format")), node)

    def _describe_array(self, node: dict[str, Any], path: Sequence[str]) -> Schema:
        items = self.resolve(node.get("items"), [*path, "Item"])
        return Schema(
            kind=SchemaKind.ARRAY,
            type_expr=f"list[{items.type_expr}]",
            items=items,
            description=node.get("description"),
        )

    def _describe_object(self, node: dict[str, Any], path: Sequence[str]) -> Schema:
        required = set(node.get("required") or [])
        properties = [
            self._property(key, prop_node, key in required, path)
            for key, prop_node in sorted((node.get("properties") or {}).items())
        ]
        return self._finish_object(node, properties, path)

    def _finish_object(
        self,
        node: dict[str, Any],
        properties: list[Property],
        path: Sequence[str],
    ) -> Schema:
        _unique_field_names(properties)
        schema = Schema(
            kind=SchemaKind.OBJECT,
            type_expr="object",
            properties=properties,
            description=node.get("description"),
        )

        additional = node.get("additionalProperties")
        if isinstance(additional, dict):
            schema.has_additional_properties = True
            schema.additional_properties_type = self.resolve(
                additional, [*path, "AdditionalProperties"]
            )
        elif additional is True or (additional is None and not properties):
            schema.has_additional_properties = True

        if not properties and schema.has_additional_properties:
            value = schema.additional_properties_type
            schema.kind = SchemaKind.MAP
            schema.type_expr = f"dict[str, {value.type_expr if value else 'Any'}]"
        else:
            schema.declaration = render_declaration(schema)
        return schema

    def _property(
        self,
        key: str,
        prop_node: Any,
        required: bool,
        path: Sequence[str],
    ) -> Property:
        description = prop_node.get("description") if isinstance(prop_node, dict) else None
        return Property(
            field_name=to_variable_name(key),
            json_name=key,
            required=required,
            description=description,
            schema=self.resolve(prop_node, [*path, key]),
        )

    def _describe_enum(self, node: dict[str, Any]) -> Schema:
        values = node["enum"]
        if not isinstance(values, list) or not values:
            raise DocumentError("enum must be a non-empty list")

        schema_type = _schema_type(node)[0] or _infer_enum_type(values)
        enum_values: list[EnumValue] = []
        taken: set[str] = set()
        for index, value in enumerate(values):
            if value is None:
                continue
            try:
                candidate = schema_name_to_type_name(str(value))
            except NamingError:
                candidate = f"Value{index}"
            name = unique_name(candidate, taken)
            taken.add(name)
            enum_values.append(EnumValue(name=name, value=value))

        return Schema(
            kind=SchemaKind.ENUM,
            type_expr=_primitive_type_expr(schema_type, node.get("format")),
            enum_values=enum_values,
            description=node.get("description"),
        )

    # ------------------------------------------------------------------ #
    # Composition
    # ------------------------------------------------------------------ #

    def _describe_all_of(self, node: dict[str, Any], path: Sequence[str]) -> Schema:
        members = node["allOf"]
        if not isinstance(members, list) or not members:
            raise DocumentError(f"allOf at {_hint(path)} must list at least one schema")

        collected: list[Property] = []
        for member in members:
            collected.extend(self._member_properties(member, path, frozenset()))
        if node.get("properties"):
            own = {k: v for k, v in node.items() if k != "allOf"}
            collected.extend(self._member_properties(own, path, frozenset()))

        merged: dict[str, Property] = {}
        for prop in collected:
            existing = merged.get(prop.json_name)
            if existing is None:
                merged[prop.json_name] = prop
            elif existing.schema_.type_expr != prop.schema_.type_expr:
                raise DocumentError(
                    f"allOf members at {_hint(path)} disagree on property "
                    f"'{prop.json_name}': {existing.schema_.type_expr} vs "
                    f"{prop.schema_.type_expr}"
                )
            elif prop.required:
                existing.required = True

        for key in node.get("required") or []:
            if key in merged:
                merged[key].required = True

        return self._finish_object(node, list(merged.values()), path)

    def _member_properties(
        self,
        member: Any,
        path: Sequence[str],
        seen: frozenset[str],
    ) -> list[Property]:
        """Properties an ``allOf`` member contributes to the merged object."""
        if not isinstance(member, dict):
            raise DocumentError(f"allOf member at {_hint(path)} must be an object")

        ref = member.get("$ref")
        if ref is not None:
            if ref in seen:
                raise DocumentError(f"Circular allOf through '{ref}'")
            if self._refs.is_external(ref):
                raise DocumentError(
                    f"Cannot merge properties of external schema '{ref}' in allOf"
                )
            target = self._refs.resolve_pointer(ref)
            # Nested inline types keep the names they get under the component.
            target_path = (
                [self.type_name_for_ref(ref)] if self._refs.is_type_reference(ref) else path
            )
            return self._member_properties(target, target_path, seen | {ref})

        if "allOf" in member:
            properties: list[Property] = []
            for sub in member["allOf"]:
                properties.extend(self._member_properties(sub, path, seen))
            if member.get("properties"):
                own = {k: v for k, v in member.items() if k != "allOf"}
                properties.extend(self._member_properties(own, path, seen))
            return properties

        if not _is_object_like(member):
            raise DocumentError(
                f"allOf member at {_hint(path)} is not an object schema "
                f"and cannot be merged"
            )
        required = set(member.get("required") or [])
        return [
            self._property(key, prop_node, key in required, path)
            for key, prop_node in sorted((member.get("properties") or {}).items())
        ]

    def _describe_union(self, node: dict[str, Any], path: Sequence[str]) -> Schema:
        if "oneOf" in node and "anyOf" in node:
            raise DocumentError(
                f"Schema at {_hint(path)} declares both oneOf and anyOf"
            )
        keyword = "oneOf" if "oneOf" in node else "anyOf"
        members = node[keyword]
        if not isinstance(members, list) or not members:
            raise DocumentError(
                f"{keyword} at {_hint(path)} must list at least one alternative"
            )

        elements = [
            self.resolve(member, [*path, str(index)])
            for index, member in enumerate(members)
        ]
        schema = Schema(
            kind=SchemaKind.UNION,
            type_expr=_union_expr(elements),
            union_elements=elements,
            description=node.get("description"),
        )
        if node.get("discriminator") is not None:
            schema.discriminator = self._discriminator(
                node["discriminator"], members, elements, path
            )
        return schema

    def _discriminator(
        self,
        discriminator: Any,
        members: list[Any],
        elements: list[Schema],
        path: Sequence[str],
    ) -> Discriminator:
        if not isinstance(discriminator, dict) or not discriminator.get("propertyName"):
            raise DocumentError(
                f"discriminator at {_hint(path)} must declare a propertyName"
            )

        implicit: dict[str, str] = {}
        for index, (member, element) in enumerate(zip(members, elements)):
            if element.ref_type is None:
                raise DocumentError(
                    f"Discriminated union member {index} at {_hint(path)} must be "
                    f"a named object type, got {element.type_expr}"
                )
            ref = member.get("$ref") if isinstance(member, dict) else None
            if ref is None:
                if not _is_object_like(member):
                    raise DocumentError(
                        f"Discriminated union member {index} at {_hint(path)} "
                        "is not an object schema"
                    )
                continue
            if self._refs.is_external(ref):
                continue
            target = self._refs.deref(member)
            if not _is_object_like(target):
                raise DocumentError(
                    f"Discriminated union member '{ref}' at {_hint(path)} "
                    "is not an object schema"
                )
            implicit[unescape_pointer_segment(ref.rsplit("/", 1)[-1])] = element.ref_type

        explicit: dict[str, str] = {}
        for value, target_ref in (discriminator.get("mapping") or {}).items():
            if "#" not in target_ref and "/" not in target_ref:
                target_ref = component_ref("schemas", target_ref)
            explicit[value] = self.type_name_for_ref(target_ref)

        mapping = {**implicit, **explicit}
        return Discriminator(
            property_name=discriminator["propertyName"],
            mapping={key: mapping[key] for key in sorted(mapping)},
        )


def render_declaration(schema: Schema) -> str:
    """Render the field declarations of an object schema.

    One pydantic-style line per property, in property order; optional
    fields default to ``None`` and form-tagged fields carry
    ``json_schema_extra={"form": True}``.

    Example::

        petId: int = Field(alias="pet_id")
        name: Optional[str] = Field(default=None, alias="name")
    """
    lines: list[str] = []
    for prop in schema.properties:
        annotation = prop.schema_.type_expr
        args: list[str] = []
        if not prop.required:
            if not annotation.startswith("Optional["):
                annotation = f"Optional[{annotation}]"
            args.append("default=None")
        args.append(f"alias={json.dumps(prop.json_name)}")
        if prop.needs_form_tag:
            args.append('json_schema_extra={"form": True}')
        lines.append(f"{prop.field_name}: {annotation} = Field({', '.join(args)})")
    if schema.has_additional_properties:
        lines.append('model_config = ConfigDict(extra="allow")')
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _origin(path: Sequence[str]) -> str:
    """Registry key of a naming hint: the hint as an escaped pointer.

    Component origins start with ``#``, so the two never meet.
    """
    return "".join("/" + escape_pointer_segment(segment) for segment in path)


def _hint(path: Sequence[str]) -> str:
    return ".".join(path) or "<root>"


def _primitive(type_expr: str, node: Optional[dict[str, Any]] = None) -> Schema:
    return Schema(
        kind=SchemaKind.PRIMITIVE,
        type_expr=type_expr,
        description=node.get("description") if node else None,
    )


def _schema_type(node: dict[str, Any]) -> tuple[Optional[str], bool]:
    """Return ``(type, nullable)`` for *node*.

    Handles OpenAPI 3.1 type arrays (e.g. ``["string", "null"]``) by taking
    the first non-null type.
    """
    type_value = node.get("type")
    nullable = bool(node.get("nullable", False))
    if isinstance(type_value, list):
        non_null = [t for t in type_value if t != "null"]
        nullable = nullable or len(non_null) != len(type_value)
        type_value = non_null[0] if non_null else None
    return type_value, nullable


def _primitive_type_expr(schema_type: Optional[str], fmt: Any) -> str:
    if schema_type == "string" and fmt in _STRING_FORMATS:
        return _STRING_FORMATS[fmt]
    return _PRIMITIVE_TYPES.get(schema_type or "", "Any")


def _infer_enum_type(values: list[Any]) -> Optional[str]:
    present = [v for v in values if v is not None]
    if all(isinstance(v, bool) for v in present):
        return "boolean"
    if all(isinstance(v, int) and not isinstance(v, bool) for v in present):
        return "integer"
    if all(isinstance(v, str) for v in present):
        return "string"
    return None


def _looks_like_object(node: dict[str, Any]) -> bool:
    return _schema_type(node)[0] is None and (
        "properties" in node or "additionalProperties" in node
    )


def _is_object_like(node: Any) -> bool:
    if not isinstance(node, dict):
        return False
    if "allOf" in node:
        return True
    return _schema_type(node)[0] == "object" or _looks_like_object(node)


def _needs_name(node: dict[str, Any]) -> bool:
    if any(keyword in node for keyword in ("allOf", "oneOf", "anyOf")):
        return True
    if "enum" in node:
        return False
    return _schema_type(node)[0] in ("object", "array") or _looks_like_object(node)


def _single_all_of_ref(node: dict[str, Any]) -> Optional[str]:
    """Return the ref of ``allOf: [{$ref: X}]`` wrappers that add nothing else."""
    members = node.get("allOf")
    if (
        isinstance(members, list)
        and len(members) == 1
        and isinstance(members[0], dict)
        and "$ref" in members[0]
        and not node.get("properties")
    ):
        return members[0]["$ref"]
    return None


def _apply_nullable(schema: Schema) -> None:
    schema.nullable = True
    if schema.kind != SchemaKind.OBJECT and not schema.type_expr.startswith("Optional["):
        schema.type_expr = f"Optional[{schema.type_expr}]"


def _union_expr(elements: list[Schema]) -> str:
    exprs: list[str] = []
    for element in elements:
        if element.type_expr not in exprs:
            exprs.append(element.type_expr)
    if len(exprs) == 1:
        return exprs[0]
    return f"Union[{', '.join(exprs)}]"


def _unique_field_names(properties: list[Property]) -> None:
    taken: set[str] = set()
    for prop in properties:
        prop.field_name = unique_name(prop.field_name, taken)
        taken.add(prop.field_name)
