"""
Semantic model module.

Provides the provider contract the extraction engine consumes, the
symbol types it exposes, a registry of language providers, and the
built-in Python provider.
"""

from codelpg.semantic.symbols import (
    Accessibility,
    CompilationUnit,
    ExternalSymbol,
    FieldSymbol,
    LocalSymbol,
    MethodKind,
    MethodSymbol,
    NamespaceSymbol,
    ParameterSymbol,
    Symbol,
    SyntaxReference,
    SyntaxTree,
    TypeKind,
    TypeSymbol,
)
from codelpg.semantic.provider import (
    SemanticModelProvider,
    SyntaxCategory,
    Token,
    TokenCategory,
)
from codelpg.semantic.registry import ProviderRegistry

# Import to trigger registration
from codelpg.semantic.python_provider import PythonSemanticProvider

__all__ = [
    "Accessibility",
    "CompilationUnit",
    "ExternalSymbol",
    "FieldSymbol",
    "LocalSymbol",
    "MethodKind",
    "MethodSymbol",
    "NamespaceSymbol",
    "ParameterSymbol",
    "Symbol",
    "SyntaxReference",
    "SyntaxTree",
    "TypeKind",
    "TypeSymbol",
    "SemanticModelProvider",
    "SyntaxCategory",
    "Token",
    "TokenCategory",
    "ProviderRegistry",
    "PythonSemanticProvider",
]
