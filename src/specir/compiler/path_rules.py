"""Path template rules: parameter extraction and default operation IDs.

A path template such as ``/cat/{category}/pet/{id}`` is split on ``/``
into *parts* (the leading empty string is kept, so ``parts[1]`` is always
the first real segment). Two things are derived from it:

1. The left-to-right order of its parameters, used by
   :func:`sort_params_by_path` to reorder declared path parameters.
2. A default operation ID for operations that do not declare one, chosen
   by the first matching rule of :data:`OPERATION_ID_RULES`:

   ======================  ==========================================  ==========================
   Rule                    Matches                                     ``GET /pets/...`` example
   ======================  ==========================================  ==========================
   single resource params  >1 param, ``parts[2:]`` all params          ``get-pets``
   many params             >1 param                                    ``get-pets-{a}-x-{b}``
   collection              exactly one segment                         ``Read-pets`` / ``-List``
   item                    ``parts[2]`` is a param                     ``Read-pets-by-{petId}``
   static                  no params                                   ``Read-pets-owners``
   fallback                anything else                               ``get-pets-owners-{id}``
   ======================  ==========================================  ==========================

   The chosen identifier is camel-cased, so ``Read-pets-by-{petId}``
   becomes ``ReadPetsByPetId``. These names are relied on by existing
   generated code; changing a rule renames operations.
"""

from __future__ import annotations

import re
from typing import Callable, NamedTuple, Sequence, TypeVar

from specir.compiler.naming import to_camel_case
from specir.exceptions import DocumentError

# Matches {name}, {name*}, and the RFC 6570 prefixed forms {.name}, {;name}, {?name}.
_PATH_PARAM_RE = re.compile(r"{[.;?]?([^{}*]+)\*?}")

_VERBS = {
    "GET": "Read",
    "POST": "Create",
    "PUT": "Update",
}

T = TypeVar("T")


def split_path(path: str) -> list[str]:
    """Split *path* on ``/``, keeping the leading empty part."""
    return path.split("/")


def is_path_param(part: str) -> bool:
    return len(part) >= 2 and part[0] == "{" and part[-1] == "}"


def path_param_count(parts: Sequence[str]) -> int:
    return sum(1 for part in parts if is_path_param(part))


def ordered_params_from_path(path: str) -> list[str]:
    """Return parameter names in the order they appear in *path*.

    Example::

        >>> ordered_params_from_path("/cat/{category}/pet/{id}")
        ['category', 'id']
        >>> ordered_params_from_path("/files/{path*}/{.ext}")
        ['path', 'ext']
    """
    return _PATH_PARAM_RE.findall(path)


def replace_path_params(path: str, replacement: str) -> str:
    """Replace every parameter placeholder in *path* with *replacement*."""
    return _PATH_PARAM_RE.sub(replacement, path)


def sort_params_by_path(
    path: str,
    params: Sequence[T],
    name_of: Callable[[T], str],
) -> list[T]:
    """Reorder *params* to follow the placeholders of *path*.

    When a name is declared more than once, the first declaration wins.

    Raises:
        DocumentError: If the template names and the declared names differ.
    """
    template_names = ordered_params_from_path(path)
    declared = {}
    for param in params:
        declared.setdefault(name_of(param), param)

    if set(template_names) != set(declared):
        missing = sorted(set(template_names) - set(declared))
        extra = sorted(set(declared) - set(template_names))
        details = []
        if missing:
            details.append(f"not declared: {', '.join(missing)}")
        if extra:
            details.append(f"not in template: {', '.join(extra)}")
        raise DocumentError(
            f"Path parameters of '{path}' do not match its template ({'; '.join(details)})"
        )

    ordered: list[T] = []
    for name in template_names:
        if declared[name] not in ordered:
            ordered.append(declared[name])
    return ordered


# ---------------------------------------------------------------------------
# Default operation IDs
# ---------------------------------------------------------------------------


class PathShape(NamedTuple):
    """What the operation-ID rules look at."""

    method: str
    parts: list[str]
    param_count: int
    path_op_count: int


def _verb(method: str, resource: str) -> str:
    prefix = _VERBS.get(method)
    if prefix is None:
        return f"{method.lower()}-{resource}"
    return f"{prefix}-{resource}"


def _joined(head: str, parts: Sequence[str]) -> str:
    return "-".join([head, *(part for part in parts if part)])


def _single_resource_with_params(shape: PathShape) -> bool:
    if shape.param_count <= 1:
        return False
    return all(
        is_path_param(part) == (index > 1) for index, part in enumerate(shape.parts)
    )


def _rule_single_resource(shape: PathShape) -> str:
    return f"{shape.method.lower()}-{shape.parts[1]}"


def _rule_many_params(shape: PathShape) -> str:
    return _joined(shape.method.lower(), shape.parts)


def _rule_collection(shape: PathShape) -> str:
    resource = shape.parts[1]
    if shape.method == "GET":
        if resource == "healthz":
            return "Health-Check"
        if shape.path_op_count > 1:
            return f"Read-{resource}-List"
    return _verb(shape.method, resource)


def _rule_item(shape: PathShape) -> str:
    operation_id = _joined(_verb(shape.method, shape.parts[1]), shape.parts[3:])
    if shape.parts[2] != "{id}":
        operation_id += "-by-" + shape.parts[2]
    return operation_id


def _rule_static(shape: PathShape) -> str:
    return _joined(_verb(shape.method, shape.parts[1]), shape.parts[2:])


def _rule_fallback(shape: PathShape) -> str:
    return _joined(shape.method.lower(), shape.parts)


OPERATION_ID_RULES: list[tuple[str, Callable[[PathShape], bool], Callable[[PathShape], str]]] = [
    ("single-resource", _single_resource_with_params, _rule_single_resource),
    ("many-params", lambda s: s.param_count > 1, _rule_many_params),
    ("collection", lambda s: len(s.parts) == 2, _rule_collection),
    ("item", lambda s: len(s.parts) >= 3 and is_path_param(s.parts[2]), _rule_item),
    ("static", lambda s: s.param_count == 0, _rule_static),
    ("fallback", lambda s: True, _rule_fallback),
]


def default_operation_id(method: str, path: str, path_op_count: int = 1) -> str:
    """Synthesize an operation ID for an operation that does not declare one.

    Args:
        method: Upper-case HTTP method, e.g. ``"GET"``.
        path: The path template, e.g. ``"/pets/{petId}"``.
        path_op_count: Number of operations compiled under *path*; a ``GET``
            on a single-segment path becomes a ``...List`` read when
            other operations share it.

    Example::

        >>> default_operation_id("GET", "/pets/{id}")
        'ReadPets'
        >>> default_operation_id("POST", "/pets")
        'CreatePets'
        >>> default_operation_id("GET", "/healthz")
        'HealthCheck'

    Raises:
        DocumentError: If *method* or *path* is empty.
    """
    if not method:
        raise DocumentError("Operation method cannot be empty")
    if not path:
        raise DocumentError("Request path cannot be empty")

    parts = split_path(path)
    shape = PathShape(
        method=method.upper(),
        parts=parts,
        param_count=path_param_count(parts),
        path_op_count=path_op_count,
    )
    for _name, matches, build in OPERATION_ID_RULES:
        if matches(shape):
            return to_camel_case(build(shape))
    raise AssertionError("fallback rule always matches")
