"""Look up ``$ref`` JSON Reference pointers in an OpenAPI document.

Unlike a whole-document inliner, this module never rewrites the document:
the compiler needs to know *that* a node was a reference (so it can alias
the named type instead of synthesizing a new one), and only occasionally
needs the node the reference points at.

Only **internal** references (those starting with ``#/``) can be
dereferenced. External references (``common.yaml#/components/schemas/Pet``)
are accepted only as type aliases, and only when the document they name has
an entry in the import mapping.

The public class is :class:`RefResolver`.
"""

from __future__ import annotations

from typing import Any, Optional

from specir.exceptions import DocumentError

# Component sections whose entries are emitted as named types.
TYPE_SECTIONS = ("schemas", "parameters", "responses", "requestBodies")


def escape_pointer_segment(segment: str) -> str:
    """Escape a key for use inside a JSON pointer (RFC 6901)."""
    return segment.replace("~", "~0").replace("/", "~1")


def unescape_pointer_segment(segment: str) -> str:
    """Undo :func:`escape_pointer_segment`."""
    return segment.replace("~1", "/").replace("~0", "~")


def component_ref(section: str, key: str) -> str:
    """Return the internal reference string for ``components/<section>/<key>``."""
    return f"#/components/{section}/{escape_pointer_segment(key)}"


def split_ref(ref: str) -> tuple[str, str]:
    """Split *ref* into ``(document, fragment)``.

    Example::

        >>> split_ref("common.yaml#/components/schemas/Pet")
        ('common.yaml', '/components/schemas/Pet')
        >>> split_ref("#/components/schemas/Pet")
        ('', '/components/schemas/Pet')
    """
    document, _, fragment = ref.partition("#")
    return document, fragment


class RefResolver:
    """Dereferencing service over one parsed document.

    Args:
        document: The parsed OpenAPI document.
        import_mapping: External document name -> module prefix. References
            into a mapped document alias ``<prefix>.<TypeName>``.
    """

    def __init__(
        self,
        document: dict[str, Any],
        import_mapping: Optional[dict[str, str]] = None,
    ) -> None:
        self._document = document
        self._import_mapping = dict(import_mapping or {})

    @property
    def import_mapping(self) -> dict[str, str]:
        return self._import_mapping

    def is_external(self, ref: str) -> bool:
        return not ref.startswith("#")

    def is_type_reference(self, ref: str) -> bool:
        """Return ``True`` when *ref* names a whole component that is emitted as a type.

        ``#/components/schemas/Pet`` is a type reference;
        ``#/components/schemas/Pet/properties/name`` is not and must be
        dereferenced and described in place.
        """
        _, fragment = split_ref(ref)
        segments = fragment.split("/")
        # ["", "components", <section>, <name>]
        return (
            len(segments) == 4
            and segments[0] == ""
            and segments[1] == "components"
            and segments[2] in TYPE_SECTIONS
        )

    def resolve_pointer(self, ref: str) -> Any:
        """Resolve a single internal ``$ref`` string against the document.

        Handles RFC 6901 escaping (``~0`` for ``~``, ``~1`` for ``/``) and
        list indices.

        Args:
            ref: The ``$ref`` string (e.g., ``"#/components/schemas/Pet"``).

        Returns:
            The value found at the referenced location.

        Raises:
            DocumentError: If the reference is external, or if any segment
                of the pointer does not exist in the document.
        """
        if self.is_external(ref):
            raise DocumentError(
                f"Cannot dereference external $ref '{ref}'; "
                "external documents are only usable as mapped type aliases"
            )

        current: Any = self._document
        fragment = split_ref(ref)[1]
        if fragment in ("", "/"):
            return current

        for segment in fragment[1:].split("/"):
            segment = unescape_pointer_segment(segment)
            if isinstance(current, dict):
                if segment not in current:
                    raise DocumentError(
                        f"Cannot resolve $ref '{ref}': key '{segment}' not found"
                    )
                current = current[segment]
            elif isinstance(current, list):
                try:
                    current = current[int(segment)]
                except (ValueError, IndexError) as exc:
                    raise DocumentError(
                        f"Cannot resolve $ref '{ref}': invalid array index '{segment}'"
                    ) from exc
            else:
                raise DocumentError(
                    f"Cannot resolve $ref '{ref}': "
                    f"cannot navigate into {type(current).__name__}"
                )

        return current

    def deref(self, node: Any) -> Any:
        """Follow a chain of ``$ref`` objects until a concrete node is reached.

        Used for parameters, request bodies, responses, headers and path
        items, where the compiler needs the referenced content rather than a
        type alias.

        Raises:
            DocumentError: On a dangling reference, or a chain of references
                that loops without reaching a concrete node.
        """
        seen: set[str] = set()
        while isinstance(node, dict) and "$ref" in node:
            ref = node["$ref"]
            if not isinstance(ref, str):
                raise DocumentError(f"$ref must be a string, got {type(ref).__name__}")
            if ref in seen:
                raise DocumentError(f"Circular $ref chain through '{ref}'")
            seen.add(ref)
            node = self.resolve_pointer(ref)
        return node
