"""
Label vocabularies for extracted graphs.

The extractor always builds the same relationships; a schema only
decides which node labels and edge labels spell them. Edge directions
are identical across schemas.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


class NodeLabel:
    """Node labels shared by every schema."""
    PROJECT = "Project"
    FOLDER = "Folder"
    FILE = "File"
    VARIABLE = "Variable"
    METRIC = "Metric"
    SCRIPT = "Script"
    OPERATION = "Operation"
    CONSTRUCTOR = "Constructor"


class EdgeLabel:
    """Edge labels shared by every schema."""
    INCLUDES = "includes"
    CONTAINS = "contains"
    DECLARES = "declares"
    SPECIALIZES = "specializes"
    INVOKES = "invokes"
    INSTANTIATES = "instantiates"
    USES = "uses"
    OVERRIDES = "overrides"
    MEASURES = "measures"
    HAS_SCRIPT = "hasScript"


@dataclass(frozen=True)
class GraphSchema:
    """Spelling of the schema-dependent labels."""

    name: str
    scope_labels: Tuple[str, ...]
    type_labels: Tuple[str, ...]
    operation_labels: Tuple[str, ...]
    constructor_labels: Tuple[str, ...]
    scope_encloses: str
    type_encloses: str
    field_member: str
    operation_member: str
    parameterizes: str
    typed: str
    returns: str


FULL_SCHEMA = GraphSchema(
    name="full",
    scope_labels=("Scope",),
    type_labels=("Type",),
    operation_labels=(NodeLabel.OPERATION,),
    constructor_labels=(NodeLabel.OPERATION, NodeLabel.CONSTRUCTOR),
    scope_encloses="encloses",
    type_encloses="encloses",
    field_member="encapsulates",
    operation_member="encapsulates",
    parameterizes="parameterizes",
    typed="typed",
    returns="returns",
)

COMPACT_SCHEMA = GraphSchema(
    name="compact",
    scope_labels=("Container",),
    type_labels=("Structure",),
    operation_labels=(NodeLabel.OPERATION,),
    constructor_labels=(NodeLabel.CONSTRUCTOR,),
    scope_encloses=EdgeLabel.CONTAINS,
    type_encloses=EdgeLabel.CONTAINS,
    field_member="hasVariable",
    operation_member=EdgeLabel.HAS_SCRIPT,
    parameterizes="hasParameter",
    typed="type",
    returns="returnType",
)

SCHEMAS: Dict[str, GraphSchema] = {
    FULL_SCHEMA.name: FULL_SCHEMA,
    COMPACT_SCHEMA.name: COMPACT_SCHEMA,
}


def get_schema(name: str) -> GraphSchema:
    """Look up a schema by name."""
    try:
        return SCHEMAS[name]
    except KeyError:
        raise ValueError(f"Unknown schema: {name}") from None
