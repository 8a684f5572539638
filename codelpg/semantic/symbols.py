"""
Language-neutral symbol definitions.

Defines the symbol table a semantic-model provider exposes to the
extraction engine: compiled units and their syntax trees, namespaces,
types, operations, fields and parameters. Symbols are compared by
identity; a provider hands out one canonical instance per entity.
"""

import ast
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class TypeKind(Enum):
    """Kinds of type declarations."""
    CLASS = "class"
    ABSTRACT_CLASS = "abstract class"
    INTERFACE = "interface"
    STRUCT = "struct"
    ENUM = "enum"


class MethodKind(Enum):
    """Kinds of operations."""
    METHOD = "method"
    CONSTRUCTOR = "constructor"
    FUNCTION = "function"


class Accessibility(Enum):
    """Declared accessibility of a symbol."""
    PUBLIC = "public"
    PROTECTED = "protected"
    PRIVATE = "private"
    INTERNAL = "internal"
    NOT_APPLICABLE = "not applicable"


@dataclass(eq=False)
class SyntaxTree:
    """A parsed source file."""

    path: str
    module_name: str
    source: str
    root: Any
    is_package: bool = False

    def text_of(self, node: Any) -> str:
        """Source text spanned by a node of this tree."""
        return (ast.get_source_segment(self.source, node) or "").strip()


@dataclass(eq=False)
class CompilationUnit:
    """A group of syntax trees analyzed together."""

    name: str
    root_path: str
    trees: List[SyntaxTree] = field(default_factory=list)


@dataclass(eq=False)
class SyntaxReference:
    """Pointer to the syntax node declaring (or spanning) a symbol."""

    tree: SyntaxTree
    node: Any


@dataclass(eq=False)
class Symbol:
    """Base class for all symbols."""

    name: str
    qualified_name: str
    is_external: bool = False

    def __repr__(self):
        return f"{type(self).__name__}({self.qualified_name!r})"


@dataclass(eq=False, repr=False)
class NamespaceSymbol(Symbol):
    """A namespace; the global namespace has an empty qualified name."""

    parent: Optional["NamespaceSymbol"] = None
    children: Dict[str, "NamespaceSymbol"] = field(default_factory=dict)
    members: Dict[str, Symbol] = field(default_factory=dict)
    declarations: List[SyntaxReference] = field(default_factory=list)

    @property
    def is_global(self) -> bool:
        return self.parent is None

    def child_namespaces(self) -> List["NamespaceSymbol"]:
        return list(self.children.values())


@dataclass(eq=False, repr=False)
class TypeSymbol(Symbol):
    """A named type: class, interface, struct or enum."""

    namespace: Optional[NamespaceSymbol] = None
    container: Optional["TypeSymbol"] = None
    type_kind: TypeKind = TypeKind.CLASS
    accessibility: Accessibility = Accessibility.PUBLIC
    documentation: str = ""
    bases: List["TypeSymbol"] = field(default_factory=list)
    nested: List["TypeSymbol"] = field(default_factory=list)
    members: Dict[str, Symbol] = field(default_factory=dict)
    declarations: List[SyntaxReference] = field(default_factory=list)
    is_root: bool = False

    @property
    def base_type(self) -> Optional["TypeSymbol"]:
        """First base that is not an interface."""
        for base in self.bases:
            if base.type_kind != TypeKind.INTERFACE:
                return base
        return None

    @property
    def interfaces(self) -> List["TypeSymbol"]:
        """Every base other than the base type."""
        base_type = self.base_type
        return [base for base in self.bases if base is not base_type]

    def mro(self) -> List["TypeSymbol"]:
        """Supertypes in depth-first, left-to-right order, without repeats."""
        order: List[TypeSymbol] = []

        def visit(symbol: "TypeSymbol") -> None:
            for base in symbol.bases:
                if base is self or base in order:
                    continue
                order.append(base)
                visit(base)

        visit(self)
        return order

    def find_member(self, name: str) -> Optional[Symbol]:
        """Look a member up on this type, then along its supertypes."""
        if name in self.members:
            return self.members[name]
        for base in self.mro():
            if name in base.members:
                return base.members[name]
        return None


@dataclass(eq=False, repr=False)
class ParameterSymbol(Symbol):
    """A formal parameter of an operation."""

    ordinal: int = 0
    method: Optional["MethodSymbol"] = None
    parameter_type: Optional[TypeSymbol] = None
    annotation: str = ""


@dataclass(eq=False, repr=False)
class MethodSymbol(Symbol):
    """An operation: method, constructor or free function."""

    container: Optional[TypeSymbol] = None
    namespace: Optional[NamespaceSymbol] = None
    method_kind: MethodKind = MethodKind.METHOD
    accessibility: Accessibility = Accessibility.PUBLIC
    documentation: str = ""
    parameters: List[ParameterSymbol] = field(default_factory=list)
    return_type: Optional[TypeSymbol] = None
    returns_void: bool = False
    overridden: Optional["MethodSymbol"] = None
    declaration: Optional[SyntaxReference] = None
    is_abstract: bool = False
    is_static: bool = False
    is_classmethod: bool = False

    @property
    def owner(self) -> Optional[Union[TypeSymbol, NamespaceSymbol]]:
        return self.container or self.namespace


@dataclass(eq=False, repr=False)
class FieldSymbol(Symbol):
    """A field: class attribute, instance attribute or module variable."""

    container: Optional[TypeSymbol] = None
    namespace: Optional[NamespaceSymbol] = None
    accessibility: Accessibility = Accessibility.PUBLIC
    documentation: str = ""
    field_type: Optional[TypeSymbol] = None
    declaration: Optional[SyntaxReference] = None
    initializer: Optional[SyntaxReference] = None
    is_instance: bool = False

    @property
    def owner(self) -> Optional[Union[TypeSymbol, NamespaceSymbol]]:
        return self.container or self.namespace


@dataclass(eq=False, repr=False)
class LocalSymbol(Symbol):
    """A local variable or receiver; never becomes a graph node."""

    tree: Optional[SyntaxTree] = None
    annotation: Any = None
    value: Any = None
    local_type: Optional[TypeSymbol] = None
    is_receiver: bool = False


@dataclass(eq=False, repr=False)
class ExternalSymbol(Symbol):
    """A symbol referenced from, but not declared in, the analyzed sources."""

    is_external: bool = True
