"""
Semantic-model provider contract.

The extraction engine never parses source code itself. It drives a
provider that exposes compiled units, syntax trees, the namespace tree
and symbol/type resolution for expressions. Each language plugs in by
subclassing SemanticModelProvider and registering with the
ProviderRegistry.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence

from codelpg.core.config import PipelineConfig, Config
from codelpg.semantic.symbols import (
    CompilationUnit,
    MethodSymbol,
    NamespaceSymbol,
    Symbol,
    SyntaxReference,
    SyntaxTree,
    TypeSymbol,
)

logger = logging.getLogger(__name__)


class SyntaxCategory(Enum):
    """Syntax node categories a provider can enumerate."""
    TYPE_DECLARATION = "type_declaration"
    FIELD_DECLARATION = "field_declaration"
    METHOD_DECLARATION = "method_declaration"
    INVOCATION = "invocation"
    OBJECT_CREATION = "object_creation"
    MEMBER_ACCESS = "member_access"
    IDENTIFIER = "identifier"


class TokenCategory(Enum):
    """Token categories counted by the Halstead calculator."""
    RECEIVER = "receiver"
    IDENTIFIER = "identifier"
    PARAMETER = "parameter"
    LITERAL = "literal"
    KEYWORD = "keyword"
    BINARY = "binary"
    UNARY = "unary"
    POSTFIX = "postfix"
    ASSIGNMENT = "assignment"
    CONDITIONAL = "conditional"


OPERAND_CATEGORIES = frozenset({
    TokenCategory.RECEIVER,
    TokenCategory.IDENTIFIER,
    TokenCategory.PARAMETER,
    TokenCategory.LITERAL,
})


@dataclass
class Token:
    """A lexical element of an operation body."""

    category: TokenCategory
    text: str
    node: Any = None

    @property
    def is_operand(self) -> bool:
        return self.category in OPERAND_CATEGORIES


class SemanticModelProvider(ABC):
    """
    Abstract base class for semantic-model providers.

    A provider is created for one set of source roots and is used by a
    single extraction run. Symbols it returns are canonical: the same
    entity always maps to the same symbol object.
    """

    LANGUAGE: str = "unknown"
    SUPPORTED_EXTENSIONS: List[str] = []

    # Language spelling -> canonical control keyword
    KEYWORD_ALIASES: Dict[str, str] = {}

    def __init__(self, sources: Sequence[str], config: PipelineConfig = None):
        self.sources = [str(source) for source in sources]
        self.config = config or Config.get()

    @abstractmethod
    def units(self) -> List[CompilationUnit]:
        """Compiled units, each holding its syntax trees."""
        pass

    @abstractmethod
    def global_namespace(self) -> NamespaceSymbol:
        """Root of the namespace tree."""
        pass

    @abstractmethod
    def declarations(self, tree: SyntaxTree, category: SyntaxCategory) -> Iterator[Any]:
        """
        Enumerate declaration syntax nodes of a tree.

        Args:
            tree: Syntax tree to search.
            category: One of the *_DECLARATION categories.

        Returns:
            Iterator over syntax nodes. Field declarations are yielded
            once per declared variable.
        """
        pass

    @abstractmethod
    def declared_symbol(self, tree: SyntaxTree, node: Any) -> Optional[Symbol]:
        """Symbol declared by a declaration node, or None."""
        pass

    @abstractmethod
    def body_nodes(self, reference: SyntaxReference, category: SyntaxCategory) -> Iterator[Any]:
        """Syntax nodes of a given category inside a declaration or expression."""
        pass

    @abstractmethod
    def symbol_info(self, tree: SyntaxTree, node: Any) -> Optional[Symbol]:
        """Symbol an expression node resolves to, or None."""
        pass

    @abstractmethod
    def type_info(self, tree: SyntaxTree, node: Any) -> Optional[TypeSymbol]:
        """Static type of an expression node, or None."""
        pass

    @abstractmethod
    def body_statement_count(self, method: MethodSymbol) -> int:
        """Number of top-level statements in the method body; 0 without one."""
        pass

    @abstractmethod
    def halstead_tokens(self, method: MethodSymbol) -> Iterator[Token]:
        """Operator and operand tokens of a method declaration."""
        pass

    def external_types(self) -> List[TypeSymbol]:
        """Types referenced by, but not declared in, the sources."""
        return []

    def canonical_keyword(self, text: str) -> str:
        """Map a language keyword onto the shared control-keyword set."""
        return self.KEYWORD_ALIASES.get(text, text)

    def iter_trees(self) -> Iterator[SyntaxTree]:
        """All syntax trees of all units, in discovery order."""
        for unit in self.units():
            yield from unit.trees
