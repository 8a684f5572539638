"""
Symbol-name conventions.

Node IDs are qualified symbol names of the form
``namespace.Type.member(params)``. Owning types and namespaces are
re-derived from an ID by textual prefix splitting, which is only
reliable for IDs that follow this convention: operator names or
nested generic arguments that contain separators are not handled.
"""

import re

GLOBAL_SCOPE = "<global>"

_ANGLE_ARGUMENTS = re.compile(r"<[^<>]*>")
_SQUARE_ARGUMENTS = re.compile(r"\[[^\[\]]*\]")


def normalize_symbol_id(qualified_name: str) -> str:
    """
    Strip generic argument lists from a qualified name.

    Both ``Box<T>`` and ``Box[T]`` spellings collapse to ``Box`` so that
    distinct instantiations of one generic symbol share a node. Nested
    argument lists are removed innermost first.
    """
    result = qualified_name
    for pattern in (_ANGLE_ARGUMENTS, _SQUARE_ARGUMENTS):
        previous = None
        while previous != result:
            previous = result
            result = pattern.sub("", result)
    return result


def strip_parameter_list(element_id: str) -> str:
    """Drop a trailing ``(params)`` suffix, if any."""
    paren = element_id.find("(")
    return element_id[:paren] if paren >= 0 else element_id


def owning_type_id(element_id: str) -> str:
    """
    Derive the owning type of a member ID.

    ``ns.Type.member(int)`` -> ``ns.Type``; an ID with no separator
    belongs to the global scope.
    """
    full = strip_parameter_list(element_id)
    dot = full.rfind(".")
    return full[:dot] if dot >= 0 else GLOBAL_SCOPE


def owning_namespace_id(type_id: str) -> str:
    """``ns.inner.Type`` -> ``ns.inner``; no separator -> global scope."""
    dot = type_id.rfind(".")
    return type_id[:dot] if dot >= 0 else GLOBAL_SCOPE
