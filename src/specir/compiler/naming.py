"""Turn arbitrary document names into legal, stable Python identifiers.

Every function here is pure: the same input always produces the same
output, which is what lets a ``$ref`` written in one place and the type
declared for its target in another agree on a name.

Two flavours of identifier are produced:

* **type-level** (:func:`schema_name_to_type_name`) -- upper camel case,
  e.g. ``pet-owner`` -> ``PetOwner``.
* **value-level** (:func:`to_variable_name`) -- the same with the first
  character lowered, e.g. ``pet_id`` -> ``petId``.

Both reject names that normalize to the empty string with a
:class:`~specir.exceptions.NamingError`, and both steer clear of Python's
reserved words.
"""

from __future__ import annotations

import keyword
from typing import Iterable, Optional, Sequence

from specir.exceptions import NamingError

# Characters that start a new word. Everything else that is not a letter or
# digit is dropped.
_SEPARATORS = frozenset("-#@!$&=.+:;_~ (){}[]")

_RESERVED = frozenset(keyword.kwlist) | frozenset(keyword.softkwlist)

MAX_SUFFIX_ATTEMPTS = 1000


def to_camel_case(value: str) -> str:
    """Collapse separators and upper-case the first letter of every word.

    Characters that are neither letters, digits nor separators are removed;
    a digit never starts a new word.

    Example::

        >>> to_camel_case("read-pets-by-{petId}")
        'ReadPetsByPetId'
        >>> to_camel_case("application/vnd.api+json")
        'ApplicationvndApiJson'
    """
    result: list[str] = []
    cap_next = True
    for char in value.strip(" "):
        if char.isupper() or char.isdigit():
            result.append(char)
        elif char.islower():
            result.append(char.upper() if cap_next else char)
        cap_next = char in _SEPARATORS
    return "".join(result)


def uppercase_first(value: str) -> str:
    return value[:1].upper() + value[1:]


def lowercase_first(value: str) -> str:
    return value[:1].lower() + value[1:]


def schema_name_to_type_name(name: str) -> str:
    """Convert a schema, parameter or header name into a type-level identifier.

    Args:
        name: The raw name from the document.

    Returns:
        An upper camel case identifier. Names starting with a digit are
        prefixed with ``N``; names equal to a reserved word get a ``Type``
        suffix.

    Raises:
        NamingError: If nothing usable is left after normalization.
    """
    if name == "$":
        return "DollarSign"
    type_name = to_camel_case(name)
    if not type_name:
        raise NamingError(f"Name {name!r} does not contain any identifier characters")
    if type_name[0].isdigit():
        type_name = "N" + type_name
    if type_name in _RESERVED:
        type_name += "Type"
    return type_name


def to_variable_name(name: str) -> str:
    """Convert a document name into a value-level identifier.

    Example::

        >>> to_variable_name("pet_id")
        'petId'
        >>> to_variable_name("ID")
        'id'
        >>> to_variable_name("class")
        'pClass'
    """
    variable = lowercase_first(schema_name_to_type_name(name))
    if variable == "iD":
        variable = "id"
    if variable in _RESERVED:
        variable = "p" + uppercase_first(variable)
    if variable[0].isdigit():
        variable = "n" + variable
    return variable


def type_name_from_path(path: Sequence[str]) -> str:
    """Build a type name from a hierarchical naming hint.

    Example::

        >>> type_name_from_path(["CreatePet", "Params", "tags"])
        'CreatePetParamsTags'
        >>> type_name_from_path(["/pet-list/{id}", "Params", "filter"])
        'PetListIdParamsFilter'

    Different hints may yield the same name; the registry keeps them apart.
    """
    if not path:
        raise NamingError("Cannot name a type from an empty naming hint")
    return schema_name_to_type_name(
        "".join(uppercase_first(to_camel_case(segment)) for segment in path)
    )


def ref_path_to_type_name(ref: str) -> str:
    """Name the type a ``$ref`` to a whole component denotes.

    Example::

        >>> ref_path_to_type_name("#/components/schemas/pet-owner")
        'PetOwner'
        >>> ref_path_to_type_name("common.yaml#/components/schemas/a~1b")
        'Ab'
    """
    last = ref.rsplit("/", 1)[-1]
    return schema_name_to_type_name(last.replace("~1", "/").replace("~0", "~"))


def operation_id_prefix(operation_id: str) -> str:
    """Return the prefix needed to make *operation_id* a legal identifier."""
    if operation_id and operation_id[0].isdigit():
        return "N"
    return ""


def unique_name(
    base: str,
    taken: Iterable[str],
    collision_suffix: Optional[str] = None,
) -> str:
    """Return *base*, or the first free variant of it.

    The section suffix (e.g. ``Response``) is tried first, then numeric
    suffixes starting at 2.

    Raises:
        NamingError: When :data:`MAX_SUFFIX_ATTEMPTS` variants are all taken.
    """
    taken = taken if isinstance(taken, (set, frozenset, dict)) else set(taken)
    if base not in taken:
        return base
    if collision_suffix and base + collision_suffix not in taken:
        return base + collision_suffix
    stem = base + (collision_suffix or "")
    for index in range(2, MAX_SUFFIX_ATTEMPTS + 2):
        candidate = f"{stem}{index}"
        if candidate not in taken:
            return candidate
    raise NamingError(
        f"Could not find a free name for {base!r} after {MAX_SUFFIX_ATTEMPTS} attempts"
    )
