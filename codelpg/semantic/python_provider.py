"""
Python semantic-model provider.

Builds a semantic model of Python sources using the AST module:
packages and modules become namespaces, classes become types, methods
and module functions become operations, and class attributes, instance
attributes and module variables become fields. Names are resolved
statically through local scopes, module symbol tables, imports and
builtins; attribute accesses are resolved through declared or inferred
types along the method resolution order.
"""

import ast
import builtins
import fnmatch
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from codelpg.core.config import PipelineConfig
from codelpg.core.exceptions import SourceValidationError
from codelpg.semantic.provider import (
    SemanticModelProvider,
    SyntaxCategory,
    Token,
    TokenCategory,
)
from codelpg.semantic.registry import ProviderRegistry
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

logger = logging.getLogger(__name__)

ROOT_TYPE = "builtins.object"

ENUM_BASES = frozenset({
    "enum.Enum", "enum.IntEnum", "enum.Flag", "enum.IntFlag", "enum.StrEnum",
})
PROTOCOL_BASES = frozenset({"typing.Protocol", "typing_extensions.Protocol"})
STRUCT_BASES = frozenset({
    "typing.NamedTuple", "typing.TypedDict", "typing_extensions.TypedDict",
})
ABSTRACT_BASES = frozenset({"abc.ABC"})
ABSTRACT_METACLASSES = frozenset({"abc.ABCMeta"})
# Bases that only mark a class and never become supertypes
MARKER_BASES = frozenset({"typing.Generic"}) | PROTOCOL_BASES

DATACLASS_DECORATORS = frozenset({"dataclasses.dataclass"})
ABSTRACT_DECORATORS = frozenset({"abc.abstractmethod"})
STATIC_DECORATORS = frozenset({"builtins.staticmethod"})
CLASS_DECORATORS = frozenset({"builtins.classmethod"})

UNION_WRAPPERS = frozenset({"typing.Optional", "typing.Union"})
ANNOTATED_WRAPPERS = frozenset({"typing.Annotated", "typing_extensions.Annotated"})
NONE_TYPES = frozenset({"types.NoneType"})

_OPERATOR_SYMBOLS = {
    ast.Add: "+", ast.Sub: "-", ast.Mult: "*", ast.MatMult: "@",
    ast.Div: "/", ast.FloorDiv: "//", ast.Mod: "%", ast.Pow: "**",
    ast.LShift: "<<", ast.RShift: ">>",
    ast.BitOr: "|", ast.BitXor: "^", ast.BitAnd: "&",
    ast.And: "and", ast.Or: "or",
    ast.Eq: "==", ast.NotEq: "!=", ast.Lt: "<", ast.LtE: "<=",
    ast.Gt: ">", ast.GtE: ">=", ast.Is: "is", ast.IsNot: "is not",
    ast.In: "in", ast.NotIn: "not in",
    ast.Invert: "~", ast.Not: "not", ast.UAdd: "+", ast.USub: "-",
}

_KEYWORD_NODES = {
    ast.If: "if",
    ast.For: "for",
    ast.AsyncFor: "for",
    ast.While: "while",
    ast.Try: "try",
    ast.ExceptHandler: "except",
    ast.Break: "break",
    ast.Continue: "continue",
    ast.Return: "return",
    ast.Raise: "raise",
}
if hasattr(ast, "Match"):
    _KEYWORD_NODES[ast.Match] = "match"
if hasattr(ast, "TryStar"):
    _KEYWORD_NODES[ast.TryStar] = "try"

_FUNCTION_NODES = (ast.FunctionDef, ast.AsyncFunctionDef)
_SCOPE_NODES = (ast.FunctionDef, ast.AsyncFunctionDef, ast.Lambda, ast.ClassDef)
_TRY_NODES = (ast.Try, ast.TryStar) if hasattr(ast, "TryStar") else (ast.Try,)


@dataclass
class _ImportBinding:
    """A name bound by an import statement."""

    module: str
    member: Optional[str] = None


@dataclass
class _FunctionScope:
    """Names visible inside one function body."""

    receiver: Optional[str] = None
    receiver_symbol: Optional[Symbol] = None
    names: Dict[str, Symbol] = field(default_factory=dict)
    imports: Dict[str, _ImportBinding] = field(default_factory=dict)


@ProviderRegistry.register
class PythonSemanticProvider(SemanticModelProvider):
    """
    Semantic-model provider for Python source code.

    Every source root passed in becomes one compilation unit. Module
    names are derived from file paths relative to the root, or to its
    parent when the root itself is a package.
    """

    LANGUAGE = "python"
    SUPPORTED_EXTENSIONS = [".py", ".pyw", ".pyi"]
    KEYWORD_ALIASES = {"raise": "throw", "except": "catch", "match": "switch"}

    def __init__(self, sources: Sequence[str], config: PipelineConfig = None):
        super().__init__(sources, config)
        self._loaded = False
        self._units: List[CompilationUnit] = []
        self._global = NamespaceSymbol(name="", qualified_name="")
        self._namespaces: Dict[str, NamespaceSymbol] = {}
        self._types: Dict[str, TypeSymbol] = {}
        self._type_order: List[TypeSymbol] = []
        self._external_type_order: List[TypeSymbol] = []
        self._externals: Dict[str, ExternalSymbol] = {}
        self._methods: List[MethodSymbol] = []
        self._fields: List[FieldSymbol] = []
        self._declared: Dict[ast.AST, Symbol] = {}
        self._parents: Dict[ast.AST, ast.AST] = {}
        self._scopes: Dict[str, Dict[str, Any]] = {}
        self._star_imports: Dict[str, List[str]] = {}
        self._imported_modules: List[str] = []
        self._raw_bases: Dict[TypeSymbol, List[Symbol]] = {}
        self._classified: Set[TypeSymbol] = set()
        self._function_scopes: Dict[ast.AST, _FunctionScope] = {}
        self._field_types: Dict[FieldSymbol, Optional[TypeSymbol]] = {}
        self._local_types: Dict[LocalSymbol, Optional[TypeSymbol]] = {}
        self._inferring: Set[int] = set()
        self.parse_errors: List[Dict[str, Any]] = []

    # ------------------------------------------------------------------
    # Provider contract
    # ------------------------------------------------------------------

    def units(self) -> List[CompilationUnit]:
        self._load()
        return list(self._units)

    def global_namespace(self) -> NamespaceSymbol:
        self._load()
        return self._global

    def declarations(self, tree: SyntaxTree, category: SyntaxCategory) -> Iterator[ast.AST]:
        self._load()
        if category == SyntaxCategory.TYPE_DECLARATION:
            wanted = (ast.ClassDef,)
        elif category == SyntaxCategory.METHOD_DECLARATION:
            wanted = _FUNCTION_NODES
        elif category == SyntaxCategory.FIELD_DECLARATION:
            yield from self._field_targets(tree)
            return
        else:
            raise ValueError(f"Not a declaration category: {category}")

        for node in ast.walk(tree.root):
            if isinstance(node, wanted):
                yield node

    def declared_symbol(self, tree: SyntaxTree, node: ast.AST) -> Optional[Symbol]:
        self._load()
        return self._declared.get(node)

    def body_nodes(self, reference: SyntaxReference, category: SyntaxCategory) -> Iterator[ast.AST]:
        self._load()
        for node in ast.walk(reference.node):
            if category == SyntaxCategory.INVOCATION:
                if isinstance(node, ast.Call):
                    yield node
            elif category == SyntaxCategory.OBJECT_CREATION:
                if isinstance(node, ast.Call) and isinstance(
                    self._resolve(node.func, reference.tree), TypeSymbol
                ):
                    yield node
            elif category == SyntaxCategory.MEMBER_ACCESS:
                if isinstance(node, ast.Attribute):
                    yield node
            elif category == SyntaxCategory.IDENTIFIER:
                if isinstance(node, ast.Name):
                    yield node

    def symbol_info(self, tree: SyntaxTree, node: ast.AST) -> Optional[Symbol]:
        self._load()
        return self._resolve(node, tree)

    def type_info(self, tree: SyntaxTree, node: ast.AST) -> Optional[TypeSymbol]:
        self._load()
        return self._type_of(node, tree)

    def body_statement_count(self, method: MethodSymbol) -> int:
        """
        Count top-level statements of a method body.

        Docstrings and ``...`` placeholders are not statements. Abstract
        methods and protocol members have no real body and count 0.
        """
        if method.declaration is None or method.is_abstract:
            return 0
        if method.container is not None and method.container.type_kind == TypeKind.INTERFACE:
            return 0

        body = list(method.declaration.node.body)
        if body and _is_docstring(body[0]):
            body = body[1:]
        return len([stmt for stmt in body if not _is_ellipsis(stmt)])

    def external_types(self) -> List[TypeSymbol]:
        self._load()
        return list(self._external_type_order)

    def halstead_tokens(self, method: MethodSymbol) -> Iterator[Token]:
        """
        Tokenize a method declaration for Halstead counting.

        Parameters come first (the receiver is not a parameter), then
        every operator and operand found in the declaration, including
        decorators and annotations.
        """
        if method.declaration is None:
            return
        function = method.declaration.node

        receiver = None
        positional = function.args.posonlyargs + function.args.args
        if method.container is not None and not method.is_static and positional:
            receiver = positional[0].arg

        docstring = None
        if function.body and _is_docstring(function.body[0]):
            docstring = function.body[0].value

        for parameter in method.parameters:
            yield Token(TokenCategory.PARAMETER, parameter.name)

        for node in ast.walk(function):
            if isinstance(node, ast.Name):
                if node.id == receiver:
                    yield Token(TokenCategory.RECEIVER, node.id, node)
                else:
                    yield Token(TokenCategory.IDENTIFIER, node.id, node)
            elif isinstance(node, ast.Attribute):
                yield Token(TokenCategory.IDENTIFIER, node.attr, node)
            elif isinstance(node, ast.Constant):
                if node is not docstring:
                    yield Token(TokenCategory.LITERAL, _literal_text(node.value), node)
            elif type(node) in _KEYWORD_NODES:
                yield Token(TokenCategory.KEYWORD, _KEYWORD_NODES[type(node)], node)
            elif hasattr(ast, "match_case") and isinstance(node, ast.match_case):
                keyword = "default" if _is_wildcard_case(node) else "case"
                yield Token(TokenCategory.KEYWORD, keyword, node)
            elif isinstance(node, ast.comprehension):
                yield Token(TokenCategory.KEYWORD, "for", node)
                for condition in node.ifs:
                    yield Token(TokenCategory.KEYWORD, "if", condition)
            elif isinstance(node, ast.BinOp):
                yield Token(TokenCategory.BINARY, _OPERATOR_SYMBOLS[type(node.op)], node)
            elif isinstance(node, ast.BoolOp):
                for _ in range(len(node.values) - 1):
                    yield Token(TokenCategory.BINARY, _OPERATOR_SYMBOLS[type(node.op)], node)
            elif isinstance(node, ast.Compare):
                for op in node.ops:
                    yield Token(TokenCategory.BINARY, _OPERATOR_SYMBOLS[type(op)], node)
            elif isinstance(node, ast.UnaryOp):
                yield Token(TokenCategory.UNARY, _OPERATOR_SYMBOLS[type(node.op)], node)
            elif isinstance(node, ast.Assign):
                for _ in node.targets:
                    yield Token(TokenCategory.ASSIGNMENT, "=", node)
            elif isinstance(node, ast.AugAssign):
                yield Token(TokenCategory.ASSIGNMENT, _OPERATOR_SYMBOLS[type(node.op)] + "=", node)
            elif isinstance(node, ast.AnnAssign):
                if node.value is not None:
                    yield Token(TokenCategory.ASSIGNMENT, "=", node)
            elif isinstance(node, ast.NamedExpr):
                yield Token(TokenCategory.ASSIGNMENT, ":=", node)
            elif isinstance(node, ast.IfExp):
                yield Token(TokenCategory.CONDITIONAL, "if", node)
                yield Token(TokenCategory.CONDITIONAL, "else", node)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load(self) -> None:
        if self._loaded:
            return
        self._loaded = True

        for source in self.sources:
            root = Path(source).resolve()
            if not root.exists():
                raise SourceValidationError(source, "Path does not exist")

            unit = CompilationUnit(name=root.stem, root_path=root.as_posix())
            for path, module_name, is_package in self._discover(root):
                tree = self._parse(path, module_name, is_package)
                if tree is not None:
                    unit.trees.append(tree)
            self._units.append(unit)
            logger.debug(f"Loaded {len(unit.trees)} modules from {root}")

        self._bind()

    def _discover(self, root: Path) -> Iterator[Tuple[Path, str, bool]]:
        """Yield (path, module name, is package) for every source file."""
        if root.is_file():
            if root.name == "__init__.py":
                yield root, root.parent.name, True
            else:
                yield root, root.stem, False
            return

        extensions = tuple(self.config.source.extensions or self.SUPPORTED_EXTENSIONS)
        max_size = self.config.source.max_file_size
        base = root.parent if (root / "__init__.py").exists() else root

        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if not self._is_ignored(d))

            for filename in sorted(filenames):
                if self._is_ignored(filename) or not filename.endswith(extensions):
                    continue

                path = Path(dirpath) / filename
                try:
                    size = path.stat().st_size
                except OSError as e:
                    logger.warning(f"Cannot stat {path}: {e}")
                    continue
                if size > max_size:
                    logger.warning(f"Skipping {path}: file exceeds {max_size} bytes")
                    continue

                parts = list(path.relative_to(base).with_suffix("").parts)
                is_package = parts[-1] == "__init__"
                if is_package:
                    parts = parts[:-1]
                if parts:
                    yield path, ".".join(parts), is_package

    def _is_ignored(self, name: str) -> bool:
        return any(
            fnmatch.fnmatch(name, pattern)
            for pattern in self.config.source.ignore_patterns
        )

    def _parse(self, path: Path, module_name: str, is_package: bool) -> Optional[SyntaxTree]:
        try:
            source = path.read_text(encoding="utf-8", errors="replace")
            root = ast.parse(source, filename=str(path))
        except (SyntaxError, ValueError, OSError) as e:
            logger.warning(f"Skipping unparseable file {path}: {e}")
            self.parse_errors.append({"file": path.as_posix(), "error": str(e)})
            return None

        for node in ast.walk(root):
            for child in ast.iter_child_nodes(node):
                self._parents[child] = node

        return SyntaxTree(
            path=path.as_posix(),
            module_name=module_name,
            source=source,
            root=root,
            is_package=is_package,
        )

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    def _bind(self) -> None:
        trees = [tree for unit in self._units for tree in unit.trees]

        for tree in trees:
            namespace = self._ensure_namespace(tree.module_name)
            namespace.declarations.append(SyntaxReference(tree, tree.root))
            self._scopes.setdefault(tree.module_name, {})

        for tree in trees:
            namespace = self._namespaces[tree.module_name]
            self._declare_body(tree, tree.root.body, namespace, None)

        for symbol in list(self._type_order):
            self._resolve_bases(symbol)
        for method in self._methods:
            self._resolve_signature(method)
        for symbol in list(self._type_order):
            self._classify(symbol)
        for method in self._methods:
            self._resolve_override(method)
        for field_symbol in self._fields:
            field_symbol.field_type = self._field_type(field_symbol)

        # Materialize every imported module so the namespace tree is complete
        for module in self._imported_modules:
            self._namespace(module)
        for scope in self._scopes.values():
            for binding in list(scope.values()):
                if isinstance(binding, _ImportBinding):
                    self._resolve_import(binding, set())

        logger.info(
            f"Bound {len(self._type_order)} types, {len(self._methods)} operations "
            f"and {len(self._fields)} fields in {len(self._scopes)} modules"
        )

    def _declare_body(
        self,
        tree: SyntaxTree,
        body: List[ast.stmt],
        namespace: NamespaceSymbol,
        container: Optional[TypeSymbol],
    ) -> None:
        for stmt in _flatten(body):
            if isinstance(stmt, ast.ClassDef):
                self._declare_type(tree, stmt, namespace, container)
            elif isinstance(stmt, _FUNCTION_NODES):
                self._declare_method(tree, stmt, namespace, container)
            elif isinstance(stmt, (ast.Assign, ast.AnnAssign)):
                targets = stmt.targets if isinstance(stmt, ast.Assign) else [stmt.target]
                for target in targets:
                    for element in _target_elements(target):
                        if not isinstance(element, ast.Name):
                            continue
                        value = stmt.value if element is target else None
                        self._declare_field(tree, element, stmt, namespace, container, value)
            elif container is None and isinstance(stmt, (ast.Import, ast.ImportFrom)):
                self._declare_import(tree, stmt, self._scopes[tree.module_name])

    def _declare_type(
        self,
        tree: SyntaxTree,
        node: ast.ClassDef,
        namespace: NamespaceSymbol,
        container: Optional[TypeSymbol],
    ) -> None:
        owner_name = container.qualified_name if container else namespace.qualified_name
        qualified_name = f"{owner_name}.{node.name}"

        symbol = self._types.get(qualified_name)
        if symbol is None:
            symbol = TypeSymbol(
                name=node.name,
                qualified_name=qualified_name,
                namespace=namespace,
                container=container,
                accessibility=_accessibility(node.name, container),
                documentation=ast.get_docstring(node) or "",
            )
            self._types[qualified_name] = symbol
            self._type_order.append(symbol)
            if container is not None:
                container.nested.append(symbol)
                container.members.setdefault(node.name, symbol)
            else:
                namespace.members.setdefault(node.name, symbol)
                self._scopes[tree.module_name].setdefault(node.name, symbol)

        symbol.declarations.append(SyntaxReference(tree, node))
        self._declared[node] = symbol
        self._declare_body(tree, node.body, namespace, symbol)

        for stmt in _flatten(node.body):
            if isinstance(stmt, _FUNCTION_NODES):
                self._declare_instance_fields(tree, stmt, namespace, symbol)

    def _declare_instance_fields(
        self,
        tree: SyntaxTree,
        function: ast.AST,
        namespace: NamespaceSymbol,
        owner: TypeSymbol,
    ) -> None:
        """Declare attributes assigned through the receiver inside a method."""
        positional = function.args.posonlyargs + function.args.args
        if not positional:
            return
        if any(_dotted_name(d) == "staticmethod" for d in function.decorator_list):
            return
        receiver = positional[0].arg

        for node in _walk_scope(function.body):
            if isinstance(node, ast.Assign):
                targets, value = node.targets, node.value
            elif isinstance(node, ast.AnnAssign):
                targets, value = [node.target], node.value
            else:
                continue

            for target in targets:
                for element in _target_elements(target):
                    if (
                        isinstance(element, ast.Attribute)
                        and isinstance(element.value, ast.Name)
                        and element.value.id == receiver
                    ):
                        initial = value if element is target else None
                        self._declare_field(
                            tree, element, node, namespace, owner, initial, is_instance=True
                        )

    def _declare_field(
        self,
        tree: SyntaxTree,
        target: ast.AST,
        stmt: ast.stmt,
        namespace: NamespaceSymbol,
        container: Optional[TypeSymbol],
        value: Optional[ast.expr],
        is_instance: bool = False,
    ) -> None:
        name = target.id if isinstance(target, ast.Name) else target.attr
        if name.startswith("__") and name.endswith("__"):
            return

        members = container.members if container is not None else namespace.members
        existing = members.get(name)
        if existing is not None:
            if isinstance(existing, FieldSymbol):
                self._declared[target] = existing
            return

        owner_name = container.qualified_name if container else namespace.qualified_name
        symbol = FieldSymbol(
            name=name,
            qualified_name=f"{owner_name}.{name}",
            container=container,
            namespace=namespace,
            accessibility=_accessibility(name, container),
            declaration=SyntaxReference(tree, stmt),
            initializer=SyntaxReference(tree, value) if value is not None else None,
            is_instance=is_instance,
        )
        members[name] = symbol
        if container is None:
            self._scopes[tree.module_name].setdefault(name, symbol)
        self._declared[target] = symbol
        self._fields.append(symbol)

    def _declare_method(
        self,
        tree: SyntaxTree,
        node: ast.AST,
        namespace: NamespaceSymbol,
        container: Optional[TypeSymbol],
    ) -> None:
        members = container.members if container is not None else namespace.members
        existing = members.get(node.name)
        if isinstance(existing, MethodSymbol):
            # Property setters and overload stubs share the first declaration
            self._declared[node] = existing
            return

        if container is None:
            kind = MethodKind.FUNCTION
        elif node.name == "__init__":
            kind = MethodKind.CONSTRUCTOR
        else:
            kind = MethodKind.METHOD

        owner_name = container.qualified_name if container else namespace.qualified_name
        symbol = MethodSymbol(
            name=node.name,
            qualified_name=f"{owner_name}.{node.name}",
            container=container,
            namespace=namespace,
            method_kind=kind,
            accessibility=_accessibility(node.name, container),
            documentation=ast.get_docstring(node) or "",
            declaration=SyntaxReference(tree, node),
        )
        members.setdefault(node.name, symbol)
        if container is None:
            self._scopes[tree.module_name].setdefault(node.name, symbol)
        self._declared[node] = symbol
        self._methods.append(symbol)

    def _declare_import(self, tree: SyntaxTree, stmt: ast.stmt, scope: Dict[str, Any]) -> None:
        if isinstance(stmt, ast.Import):
            for alias in stmt.names:
                self._imported_modules.append(alias.name)
                if alias.asname:
                    scope.setdefault(alias.asname, _ImportBinding(alias.name))
                else:
                    head = alias.name.split(".")[0]
                    scope.setdefault(head, _ImportBinding(head))
            return

        module = _absolute_module(tree, stmt.module, stmt.level)
        for alias in stmt.names:
            if alias.name == "*":
                self._star_imports.setdefault(tree.module_name, []).append(module)
                continue
            scope.setdefault(alias.asname or alias.name, _ImportBinding(module, alias.name))

    def _resolve_bases(self, symbol: TypeSymbol) -> None:
        reference = symbol.declarations[0]
        resolved = []
        for base in reference.node.bases:
            target = self._resolve_expression_name(base, reference.tree, symbol.container)
            if target is not None:
                resolved.append(target)
        self._raw_bases[symbol] = resolved

        for target in resolved:
            if target.qualified_name in MARKER_BASES:
                continue
            base_type = self._as_type(target)
            if base_type is None or base_type is symbol or base_type in symbol.bases:
                continue
            symbol.bases.append(base_type)

    def _resolve_signature(self, method: MethodSymbol) -> None:
        node = method.declaration.node
        tree = method.declaration.tree

        decorators = {
            self._decorator_name(decorator, tree, method.container)
            for decorator in node.decorator_list
        }
        method.is_static = bool(decorators & STATIC_DECORATORS)
        method.is_classmethod = bool(decorators & CLASS_DECORATORS)
        method.is_abstract = bool(decorators & ABSTRACT_DECORATORS)

        arguments = node.args
        positional = arguments.posonlyargs + arguments.args
        if method.container is not None and not method.is_static and positional:
            positional = positional[1:]
        formal = list(positional)
        if arguments.vararg is not None:
            formal.append(arguments.vararg)
        formal.extend(arguments.kwonlyargs)
        if arguments.kwarg is not None:
            formal.append(arguments.kwarg)

        for ordinal, argument in enumerate(formal):
            parameter_type, _ = self._annotation_type(argument.annotation, tree, method.container)
            annotation = ast.unparse(argument.annotation) if argument.annotation is not None else ""
            method.parameters.append(ParameterSymbol(
                name=argument.arg,
                qualified_name=f"{argument.arg}: {annotation}" if annotation else argument.arg,
                ordinal=ordinal,
                method=method,
                parameter_type=parameter_type,
                annotation=annotation,
            ))

        if method.method_kind == MethodKind.CONSTRUCTOR:
            method.return_type = method.container
        else:
            method.return_type, method.returns_void = self._annotation_type(
                node.returns, tree, method.container
            )

    def _classify(self, symbol: TypeSymbol) -> None:
        if symbol in self._classified or symbol.is_external:
            return
        self._classified.add(symbol)
        for base in symbol.bases:
            self._classify(base)

        reference = symbol.declarations[0]
        node = reference.node
        raw_bases = {target.qualified_name for target in self._raw_bases.get(symbol, [])}
        decorators = {
            self._decorator_name(decorator, reference.tree, symbol.container)
            for decorator in node.decorator_list
        }
        metaclass = None
        for keyword in node.keywords:
            if keyword.arg == "metaclass":
                metaclass = self._resolve_expression_name(keyword.value, reference.tree, symbol.container)

        if raw_bases & ENUM_BASES or any(b.type_kind == TypeKind.ENUM for b in symbol.bases):
            symbol.type_kind = TypeKind.ENUM
        elif raw_bases & PROTOCOL_BASES:
            symbol.type_kind = TypeKind.INTERFACE
        elif decorators & DATACLASS_DECORATORS or raw_bases & STRUCT_BASES:
            symbol.type_kind = TypeKind.STRUCT
        elif (
            raw_bases & ABSTRACT_BASES
            or (metaclass is not None and metaclass.qualified_name in ABSTRACT_METACLASSES)
            or any(
                isinstance(member, MethodSymbol) and member.is_abstract
                for member in symbol.members.values()
            )
        ):
            symbol.type_kind = TypeKind.ABSTRACT_CLASS
        else:
            symbol.type_kind = TypeKind.CLASS

    def _resolve_override(self, method: MethodSymbol) -> None:
        if method.container is None or method.method_kind != MethodKind.METHOD:
            return
        for base in method.container.mro():
            candidate = base.members.get(method.name)
            if isinstance(candidate, MethodSymbol):
                method.overridden = candidate
                return

    def _decorator_name(
        self, decorator: ast.expr, tree: SyntaxTree, container: Optional[TypeSymbol]
    ) -> str:
        symbol = self._resolve_expression_name(decorator, tree, container)
        if symbol is not None:
            return symbol.qualified_name
        if isinstance(decorator, ast.Call):
            decorator = decorator.func
        return _dotted_name(decorator) or ""

    # ------------------------------------------------------------------
    # Namespaces and module tables
    # ------------------------------------------------------------------

    def _ensure_namespace(self, qualified_name: str, external: bool = False) -> NamespaceSymbol:
        current = self._global
        parts = qualified_name.split(".") if qualified_name else []
        for index, part in enumerate(parts):
            child = current.children.get(part)
            if child is None:
                child = NamespaceSymbol(
                    name=part,
                    qualified_name=".".join(parts[: index + 1]),
                    is_external=external,
                    parent=current,
                )
                current.children[part] = child
                self._namespaces[child.qualified_name] = child
            current = child
        return current

    def _namespace(self, module: str) -> NamespaceSymbol:
        if not module:
            return self._global
        namespace = self._namespaces.get(module)
        if namespace is None:
            namespace = self._ensure_namespace(module, external=True)
        return namespace

    def _module_member(self, module_name: str, name: str, visiting: Set[Tuple[str, str]]) -> Optional[Symbol]:
        key = (module_name, name)
        if key in visiting:
            return None
        visiting.add(key)

        entry = self._scopes.get(module_name, {}).get(name)
        if isinstance(entry, _ImportBinding):
            return self._resolve_import(entry, visiting)
        if entry is not None:
            return entry

        namespace = self._namespaces.get(module_name)
        if namespace is not None and name in namespace.children:
            return namespace.children[name]

        for star_module in self._star_imports.get(module_name, []):
            if star_module in self._scopes:
                found = self._module_member(star_module, name, visiting)
                if found is not None:
                    return found
        return None

    def _resolve_import(self, binding: _ImportBinding, visiting: Set[Tuple[str, str]]) -> Optional[Symbol]:
        if binding.member is None:
            return self._namespace(binding.module)

        full_name = f"{binding.module}.{binding.member}" if binding.module else binding.member
        submodule = self._namespaces.get(full_name)
        if submodule is not None and not submodule.is_external:
            return submodule
        if binding.module in self._scopes:
            return self._module_member(binding.module, binding.member, visiting)
        source_namespace = self._namespaces.get(binding.module)
        if source_namespace is not None and not source_namespace.is_external:
            return None
        return self._external_member(binding.module, binding.member)

    def _namespace_member(self, namespace: NamespaceSymbol, name: str) -> Optional[Symbol]:
        if namespace.is_external:
            return self._external_member(namespace.qualified_name, name)
        return self._module_member(namespace.qualified_name, name, set())

    def _external_member(self, module: str, name: str) -> Symbol:
        qualified_name = f"{module}.{name}" if module else name
        if qualified_name in self._types:
            return self._types[qualified_name]
        if qualified_name in self._namespaces:
            return self._namespaces[qualified_name]

        symbol = self._externals.get(qualified_name)
        if symbol is None:
            symbol = ExternalSymbol(name=name, qualified_name=qualified_name)
            self._externals[qualified_name] = symbol
        return symbol

    def _builtin(self, name: str) -> Optional[Symbol]:
        if not hasattr(builtins, name):
            return None
        return self._external_member("builtins", name)

    def _as_type(self, symbol: Optional[Symbol]) -> Optional[TypeSymbol]:
        if isinstance(symbol, TypeSymbol):
            return symbol
        if isinstance(symbol, ExternalSymbol):
            return self._external_type(symbol.qualified_name)
        return None

    def _external_type(self, qualified_name: str) -> TypeSymbol:
        symbol = self._types.get(qualified_name)
        if symbol is not None:
            return symbol

        module, _, name = qualified_name.rpartition(".")
        namespace = self._namespace(module)
        symbol = TypeSymbol(
            name=name,
            qualified_name=qualified_name,
            is_external=True,
            namespace=namespace,
            type_kind=_external_kind(qualified_name),
            is_root=qualified_name == ROOT_TYPE,
        )
        namespace.members.setdefault(name, symbol)
        self._types[qualified_name] = symbol
        self._external_type_order.append(symbol)
        return symbol

    # ------------------------------------------------------------------
    # Name and type resolution
    # ------------------------------------------------------------------

    def _resolve(self, node: ast.AST, tree: SyntaxTree) -> Optional[Symbol]:
        if isinstance(node, ast.Name):
            return self._lookup_name(node.id, node, tree)
        if isinstance(node, ast.Attribute):
            return self._resolve_attribute(node, tree)
        if isinstance(node, ast.Call):
            return self._resolve(node.func, tree)
        if isinstance(node, ast.Subscript):
            target = self._resolve(node.value, tree)
            if isinstance(target, TypeSymbol):
                return target
        return None

    def _resolve_attribute(self, node: ast.Attribute, tree: SyntaxTree) -> Optional[Symbol]:
        base = node.value
        if _is_super_call(base):
            owner = self._enclosing_type(node)
            if owner is None:
                return None
            for candidate in owner.mro():
                if node.attr in candidate.members:
                    return candidate.members[node.attr]
            return None

        target = self._resolve(base, tree)
        if isinstance(target, NamespaceSymbol):
            return self._namespace_member(target, node.attr)
        if not isinstance(base, ast.Call):
            # Access through the class object itself
            if isinstance(target, TypeSymbol):
                return target.find_member(node.attr)
            if isinstance(target, ExternalSymbol):
                return self._external_member(target.qualified_name, node.attr)

        owner = self._type_of(base, tree)
        if owner is not None:
            return owner.find_member(node.attr)
        return None

    def _lookup_name(self, name: str, node: ast.AST, tree: SyntaxTree) -> Optional[Symbol]:
        for depth, scope_node in enumerate(self._scope_chain(node)):
            if isinstance(scope_node, ast.ClassDef):
                # Class bodies are only visible to their own statements
                if depth == 0:
                    owner = self._declared.get(scope_node)
                    if isinstance(owner, TypeSymbol) and name in owner.members:
                        return owner.members[name]
                continue

            scope = self._function_scope(scope_node, tree)
            if name == scope.receiver:
                return scope.receiver_symbol
            if name in scope.names:
                return scope.names[name]
            if name in scope.imports:
                return self._resolve_import(scope.imports[name], set())

        found = self._module_member(tree.module_name, name, set())
        if found is not None:
            return found
        return self._builtin(name)

    def _scope_chain(self, node: ast.AST) -> List[ast.AST]:
        """Enclosing function and class nodes, innermost first."""
        chain = []
        current = self._parents.get(node)
        while current is not None:
            if isinstance(current, _SCOPE_NODES):
                chain.append(current)
            current = self._parents.get(current)
        return chain

    def _enclosing_type(self, node: ast.AST) -> Optional[TypeSymbol]:
        for scope_node in self._scope_chain(node):
            symbol = self._declared.get(scope_node)
            if isinstance(symbol, MethodSymbol) and symbol.container is not None:
                return symbol.container
        return None

    def _function_scope(self, function: ast.AST, tree: SyntaxTree) -> _FunctionScope:
        cached = self._function_scopes.get(function)
        if cached is not None:
            return cached

        scope = _FunctionScope()
        self._function_scopes[function] = scope

        method = self._declared.get(function)
        arguments = function.args
        if isinstance(method, MethodSymbol):
            positional = arguments.posonlyargs + arguments.args
            if method.container is not None and not method.is_static and positional:
                scope.receiver = positional[0].arg
                if method.is_classmethod:
                    scope.receiver_symbol = method.container
                else:
                    scope.receiver_symbol = LocalSymbol(
                        name=scope.receiver,
                        qualified_name=f"{method.qualified_name}.{scope.receiver}",
                        tree=tree,
                        local_type=method.container,
                        is_receiver=True,
                    )
            for parameter in method.parameters:
                scope.names[parameter.name] = parameter
        else:
            for argument in _all_arguments(arguments):
                scope.names[argument.arg] = LocalSymbol(
                    name=argument.arg,
                    qualified_name=argument.arg,
                    tree=tree,
                    annotation=argument.annotation,
                )

        body = [function.body] if isinstance(function, ast.Lambda) else function.body
        global_names: Set[str] = set()
        for node in _walk_scope(body):
            if isinstance(node, (ast.Global, ast.Nonlocal)):
                global_names.update(node.names)
            elif isinstance(node, (ast.Import, ast.ImportFrom)):
                self._declare_import(tree, node, scope.imports)
            else:
                for name, value, annotation in _bindings(node):
                    if name not in scope.names:
                        scope.names[name] = LocalSymbol(
                            name=name,
                            qualified_name=name,
                            tree=tree,
                            annotation=annotation,
                            value=value,
                        )

        for name in global_names:
            scope.names.pop(name, None)
        return scope

    def _resolve_expression_name(
        self, expr: ast.expr, tree: SyntaxTree, container: Optional[TypeSymbol] = None
    ) -> Optional[Symbol]:
        """Resolve a dotted name in module (or class body) scope."""
        if isinstance(expr, ast.Subscript):
            expr = expr.value
        if isinstance(expr, ast.Call):
            expr = expr.func
        dotted = _dotted_name(expr)
        if dotted is None:
            return None

        head, *rest = dotted.split(".")
        symbol = container.members.get(head) if container is not None else None
        if symbol is None:
            symbol = self._module_member(tree.module_name, head, set())
        if symbol is None:
            symbol = self._builtin(head)

        for part in rest:
            if isinstance(symbol, NamespaceSymbol):
                symbol = self._namespace_member(symbol, part)
            elif isinstance(symbol, TypeSymbol):
                symbol = symbol.find_member(part)
            elif isinstance(symbol, ExternalSymbol):
                symbol = self._external_member(symbol.qualified_name, part)
            else:
                return None
            if symbol is None:
                return None
        return symbol

    def _annotation_type(
        self,
        annotation: Optional[ast.expr],
        tree: SyntaxTree,
        container: Optional[TypeSymbol] = None,
    ) -> Tuple[Optional[TypeSymbol], bool]:
        """
        Resolve a type annotation.

        Returns:
            Tuple of (type or None, whether the annotation denotes None).
        """
        if annotation is None:
            return None, False

        if isinstance(annotation, ast.Constant):
            if annotation.value is None:
                return None, True
            if not isinstance(annotation.value, str):
                return None, False
            try:
                annotation = ast.parse(annotation.value.strip(), mode="eval").body
            except SyntaxError:
                return None, False
            return self._annotation_type(annotation, tree, container)

        if isinstance(annotation, ast.BinOp) and isinstance(annotation.op, ast.BitOr):
            return self._first_annotation_type([annotation.left, annotation.right], tree, container)

        if isinstance(annotation, ast.Subscript):
            wrapper = self._resolve_expression_name(annotation.value, tree, container)
            wrapper_name = wrapper.qualified_name if wrapper is not None else ""
            if wrapper_name in UNION_WRAPPERS:
                return self._first_annotation_type(_subscript_arguments(annotation), tree, container)
            if wrapper_name in ANNOTATED_WRAPPERS:
                return self._annotation_type(_subscript_arguments(annotation)[0], tree, container)

        symbol = self._resolve_expression_name(annotation, tree, container)
        if symbol is None:
            return None, False
        if symbol.qualified_name in NONE_TYPES:
            return None, True
        return self._as_type(symbol), False

    def _first_annotation_type(
        self,
        arguments: List[ast.expr],
        tree: SyntaxTree,
        container: Optional[TypeSymbol],
    ) -> Tuple[Optional[TypeSymbol], bool]:
        """First non-None member of a union."""
        void = True
        for argument in arguments:
            if isinstance(argument, ast.Constant) and argument.value is None:
                continue
            void = False
            resolved, _ = self._annotation_type(argument, tree, container)
            if resolved is not None:
                return resolved, False
        return None, void

    def _type_of(self, node: ast.AST, tree: SyntaxTree) -> Optional[TypeSymbol]:
        key = id(node)
        if key in self._inferring:
            return None
        self._inferring.add(key)
        try:
            return self._infer_type(node, tree)
        finally:
            self._inferring.discard(key)

    def _infer_type(self, node: ast.AST, tree: SyntaxTree) -> Optional[TypeSymbol]:
        if isinstance(node, ast.Name):
            return self._symbol_type(self._lookup_name(node.id, node, tree))
        if isinstance(node, ast.Attribute):
            return self._symbol_type(self._resolve_attribute(node, tree))
        if isinstance(node, ast.Call):
            if _is_super_call(node):
                owner = self._enclosing_type(node)
                return owner.base_type if owner is not None else None
            callee = self._resolve(node.func, tree)
            if isinstance(callee, TypeSymbol):
                return callee
            if isinstance(callee, MethodSymbol) and callee.method_kind != MethodKind.CONSTRUCTOR:
                return callee.return_type
            return None
        if isinstance(node, ast.Await):
            return self._type_of(node.value, tree)
        return None

    def _symbol_type(self, symbol: Optional[Symbol]) -> Optional[TypeSymbol]:
        if isinstance(symbol, ParameterSymbol):
            return symbol.parameter_type
        if isinstance(symbol, FieldSymbol):
            return self._field_type(symbol)
        if isinstance(symbol, LocalSymbol):
            return self._local_type(symbol)
        return None

    def _field_type(self, field_symbol: FieldSymbol) -> Optional[TypeSymbol]:
        if field_symbol in self._field_types:
            return self._field_types[field_symbol]
        self._field_types[field_symbol] = None

        resolved = None
        declaration = field_symbol.declaration
        if declaration is not None and isinstance(declaration.node, ast.AnnAssign):
            resolved, _ = self._annotation_type(
                declaration.node.annotation, declaration.tree, field_symbol.container
            )
        if resolved is None and field_symbol.initializer is not None:
            resolved = self._type_of(field_symbol.initializer.node, field_symbol.initializer.tree)

        self._field_types[field_symbol] = resolved
        return resolved

    def _local_type(self, local: LocalSymbol) -> Optional[TypeSymbol]:
        if local.is_receiver:
            return local.local_type
        if local in self._local_types:
            return self._local_types[local]
        self._local_types[local] = None

        resolved = None
        if local.annotation is not None:
            resolved, _ = self._annotation_type(local.annotation, local.tree)
        if resolved is None and local.value is not None:
            resolved = self._type_of(local.value, local.tree)

        self._local_types[local] = resolved
        return resolved

    def _field_targets(self, tree: SyntaxTree) -> Iterator[ast.AST]:
        for node in ast.walk(tree.root):
            if isinstance(node, ast.Assign):
                targets = node.targets
            elif isinstance(node, ast.AnnAssign):
                targets = [node.target]
            else:
                continue
            for target in targets:
                for element in _target_elements(target):
                    if isinstance(element, (ast.Name, ast.Attribute)):
                        yield element


def _accessibility(name: str, container: Optional[TypeSymbol]) -> Accessibility:
    """Derive accessibility from Python naming conventions."""
    if name.startswith("__") and name.endswith("__"):
        return Accessibility.PUBLIC
    if name.startswith("__") and container is not None:
        return Accessibility.PRIVATE
    if name.startswith("_"):
        return Accessibility.PROTECTED if container is not None else Accessibility.INTERNAL
    return Accessibility.PUBLIC


def _external_kind(qualified_name: str) -> TypeKind:
    if qualified_name in ENUM_BASES:
        return TypeKind.ENUM
    if qualified_name in PROTOCOL_BASES:
        return TypeKind.INTERFACE
    if qualified_name in STRUCT_BASES:
        return TypeKind.STRUCT
    if qualified_name in ABSTRACT_BASES:
        return TypeKind.ABSTRACT_CLASS
    return TypeKind.CLASS


def _absolute_module(tree: SyntaxTree, module: Optional[str], level: int) -> str:
    """Turn a (possibly relative) import-from module into an absolute name."""
    if not level:
        return module or ""
    parts = tree.module_name.split(".")
    if not tree.is_package:
        parts = parts[:-1]
    if level > 1:
        parts = parts[: max(len(parts) - (level - 1), 0)]
    if module:
        parts.append(module)
    return ".".join(parts)


def _dotted_name(expr: ast.AST) -> Optional[str]:
    parts = []
    while isinstance(expr, ast.Attribute):
        parts.append(expr.attr)
        expr = expr.value
    if not isinstance(expr, ast.Name):
        return None
    parts.append(expr.id)
    return ".".join(reversed(parts))


def _flatten(body: List[ast.stmt]) -> Iterator[ast.stmt]:
    """Statements of a block, looking through conditional and guarded blocks."""
    for stmt in body:
        if isinstance(stmt, ast.If):
            yield from _flatten(stmt.body)
            yield from _flatten(stmt.orelse)
        elif isinstance(stmt, _TRY_NODES):
            yield from _flatten(stmt.body)
            for handler in stmt.handlers:
                yield from _flatten(handler.body)
            yield from _flatten(stmt.orelse)
            yield from _flatten(stmt.finalbody)
        elif isinstance(stmt, (ast.With, ast.AsyncWith)):
            yield from _flatten(stmt.body)
        else:
            yield stmt


def _walk_scope(body: List[ast.AST]) -> Iterator[ast.AST]:
    """Pre-order walk that does not enter nested functions or classes."""
    pending = list(reversed(body))
    while pending:
        node = pending.pop()
        yield node
        if isinstance(node, _SCOPE_NODES):
            continue
        pending.extend(reversed(list(ast.iter_child_nodes(node))))


def _target_elements(target: ast.AST) -> Iterator[ast.AST]:
    if isinstance(target, (ast.Tuple, ast.List)):
        for element in target.elts:
            yield from _target_elements(element)
    elif isinstance(target, ast.Starred):
        yield from _target_elements(target.value)
    else:
        yield target


def _bindings(node: ast.AST) -> Iterator[Tuple[str, Optional[ast.expr], Optional[ast.expr]]]:
    """Local names bound by a node, as (name, value, annotation)."""
    if isinstance(node, ast.Assign):
        for target in node.targets:
            for element in _target_elements(target):
                if isinstance(element, ast.Name):
                    yield element.id, node.value if element is target else None, None
    elif isinstance(node, ast.AnnAssign):
        if isinstance(node.target, ast.Name):
            yield node.target.id, node.value, node.annotation
    elif isinstance(node, ast.AugAssign):
        if isinstance(node.target, ast.Name):
            yield node.target.id, None, None
    elif isinstance(node, (ast.For, ast.AsyncFor, ast.comprehension)):
        for element in _target_elements(node.target):
            if isinstance(element, ast.Name):
                yield element.id, None, None
    elif isinstance(node, (ast.With, ast.AsyncWith)):
        for item in node.items:
            if item.optional_vars is None:
                continue
            for element in _target_elements(item.optional_vars):
                if isinstance(element, ast.Name):
                    value = item.context_expr if element is item.optional_vars else None
                    yield element.id, value, None
    elif isinstance(node, ast.NamedExpr):
        yield node.target.id, node.value, None
    elif isinstance(node, ast.ExceptHandler):
        if node.name:
            yield node.name, None, None
    elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef, ast.ClassDef)):
        yield node.name, None, None


def _all_arguments(arguments: ast.arguments) -> List[ast.arg]:
    result = list(arguments.posonlyargs) + list(arguments.args)
    if arguments.vararg is not None:
        result.append(arguments.vararg)
    result.extend(arguments.kwonlyargs)
    if arguments.kwarg is not None:
        result.append(arguments.kwarg)
    return result


def _subscript_arguments(node: ast.Subscript) -> List[ast.expr]:
    if isinstance(node.slice, ast.Tuple):
        return list(node.slice.elts)
    return [node.slice]


def _is_super_call(node: ast.AST) -> bool:
    return (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id == "super"
    )


def _is_docstring(stmt: ast.stmt) -> bool:
    return (
        isinstance(stmt, ast.Expr)
        and isinstance(stmt.value, ast.Constant)
        and isinstance(stmt.value.value, str)
    )


def _is_ellipsis(stmt: ast.stmt) -> bool:
    return (
        isinstance(stmt, ast.Expr)
        and isinstance(stmt.value, ast.Constant)
        and stmt.value.value is Ellipsis
    )


def _is_wildcard_case(case: Any) -> bool:
    pattern = case.pattern
    return (
        case.guard is None
        and isinstance(pattern, ast.MatchAs)
        and pattern.pattern is None
        and pattern.name is None
    )


def _literal_text(value: Any) -> str:
    if value is Ellipsis:
        return "..."
    if isinstance(value, str):
        return value
    return repr(value)
