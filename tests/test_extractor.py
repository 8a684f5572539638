"""
Integration tests for graph extraction.

Each test writes a small Python codebase to a temporary directory,
runs every extraction phase over it and inspects the resulting graph.
"""

import tempfile
import textwrap
import unittest
from pathlib import Path

from codelpg.core.config import PipelineConfig
from codelpg.core.exceptions import ExtractionError
from codelpg.core.pipeline import StageStatus
from codelpg.extraction import PHASES, GraphExtractor
from codelpg.graph.schema import EdgeLabel, NodeLabel
from codelpg.semantic.python_provider import PythonSemanticProvider
from codelpg.semantic.symbols import MethodSymbol

SCENARIO = '''
class Base:
    pass


class B(Base):
    def M(self):
        self.N()
        self.N()

    def N(self):
        return 1
'''

SHOP = '''
from abc import ABC


class Counter(ABC):
    limit = 10

    def __init__(self, start: int = 0):
        self.count = start

    def bump(self):
        self.count += 1
        return self.count < self.limit


class Registry:
    default = Counter()


def make():
    return Counter()
'''

NEST = '''
class Base:
    def run(self):
        return 0


class Child(Base):
    class Inner:
        pass

    def run(self):
        return 1
'''


class FlakyProvider(PythonSemanticProvider):
    """Provider failing to count statements of one method."""

    def body_statement_count(self, method):
        if method.name == "N":
            raise RuntimeError("cannot count")
        return super().body_statement_count(method)


class HiddenBaseMethodProvider(PythonSemanticProvider):
    """Provider that never reports the declaration of Base.run."""

    def declared_symbol(self, tree, node):
        symbol = super().declared_symbol(tree, node)
        if isinstance(symbol, MethodSymbol) and symbol.qualified_name == "nest.Base.run":
            return None
        return symbol


class ExtractionTestCase(unittest.TestCase):
    """Base class writing sources to a temporary directory."""

    def setUp(self):
        self._tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self._tmpdir.name).resolve()
        self.config = PipelineConfig()

    def tearDown(self):
        self._tmpdir.cleanup()

    def write(self, name, code):
        path = self.root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(code))
        return path

    def extract(self, provider_class=PythonSemanticProvider, name="demo"):
        provider = provider_class([str(self.root)], self.config)
        self.extractor = GraphExtractor(provider, name=name, config=self.config)
        return self.extractor.extract()

    def assertNoDanglingEdges(self, graph):
        for edge in graph.iter_edges():
            self.assertTrue(graph.has_node(edge.source_id), edge)
            self.assertTrue(graph.has_node(edge.target_id), edge)


class TestScenario(ExtractionTestCase):
    """Tests for the namespace A / class A.B scenario."""

    def setUp(self):
        super().setUp()
        self.write("A.py", SCENARIO)
        self.graph = self.extract()

    def test_scope_node(self):
        """Test that the namespace becomes a Scope node."""
        scope = self.graph.find_by_id("A")

        self.assertEqual(scope.labels, ["Scope"])
        self.assertEqual(scope.properties["kind"], "namespace")

    def test_type_nodes(self):
        """Test type nodes and inheritance."""
        self.assertEqual(self.graph.find_by_id("A.B").labels, ["Type"])
        self.assertEqual(self.graph.find_by_id("A.Base").properties["kind"], "class")
        self.assertTrue(self.graph.has_edge("A.B", "A.Base", EdgeLabel.SPECIALIZES))
        self.assertTrue(self.graph.has_edge("A", "A.B", "encloses"))

    def test_operation_nodes(self):
        """Test operation nodes and membership."""
        method = self.graph.find_by_id("A.B.M")

        self.assertEqual(method.labels, [NodeLabel.OPERATION])
        self.assertEqual(method.properties["kind"], "method")
        self.assertEqual(method.properties["qualifiedName"], "A.B.M()")
        self.assertTrue(self.graph.has_node("A.B.N"))
        self.assertTrue(self.graph.has_edge("A.B", "A.B.M", "encapsulates"))

    def test_invokes_weight(self):
        """Test that two calls collapse into one weighted edge."""
        invokes = self.graph.edges_with_label(EdgeLabel.INVOKES)

        self.assertEqual(len(invokes), 1)
        self.assertEqual(invokes[0].key, ("A.B.M", "A.B.N", "invokes"))
        self.assertEqual(invokes[0].weight, 2)

    def test_num_methods(self):
        """Test the methods metric of each type."""
        edge = self.graph.find_edge("A.B", "demo#NumMethods", EdgeLabel.MEASURES)

        self.assertEqual(edge.properties["value"], 2)
        self.assertEqual(edge.weight, 1)
        base = self.graph.find_edge("A.Base", "demo#NumMethods", EdgeLabel.MEASURES)
        self.assertEqual(base.properties["value"], 0)

    def test_num_statements(self):
        """Test the statements metric of each operation."""
        metric = self.graph.find_by_id("demo#NumStatements")

        self.assertEqual(metric.labels, [NodeLabel.METRIC])
        self.assertEqual(metric.properties["qualifiedName"], "Number of Statements")
        m_edge = self.graph.find_edge("A.B.M", "demo#NumStatements", EdgeLabel.MEASURES)
        n_edge = self.graph.find_edge("A.B.N", "demo#NumStatements", EdgeLabel.MEASURES)
        self.assertEqual(m_edge.properties["value"], 2)
        self.assertEqual(n_edge.properties["value"], 1)

    def test_filesystem_nodes(self):
        """Test project, folder and file nodes."""
        file_id = (self.root / "A.py").as_posix()
        folder_id = self.root.as_posix()

        self.assertEqual(self.graph.find_by_id(file_id).properties["simpleName"], "A.py")
        self.assertTrue(self.graph.has_edge(folder_id, file_id, EdgeLabel.CONTAINS))
        self.assertTrue(self.graph.has_edge("demo", folder_id, EdgeLabel.INCLUDES))
        self.assertTrue(self.graph.has_edge(file_id, "A.B", EdgeLabel.DECLARES))
        self.assertEqual(self.graph.find_by_id("demo").labels, [NodeLabel.PROJECT])

    def test_no_dangling_edges(self):
        """Test that the finished graph is closed."""
        self.assertNoDanglingEdges(self.graph)

    def test_all_phases_completed(self):
        """Test that every phase ran without entity errors."""
        state = self.extractor.last_state

        for phase in PHASES:
            self.assertEqual(state.get_stage_status(phase), StageStatus.COMPLETED)
        self.assertEqual(state.errors, [])

    def test_repeated_extraction(self):
        """Test that a second run starts from empty registries."""
        again = self.extractor.extract()

        self.assertEqual(again.node_count, self.graph.node_count)
        self.assertEqual(again.edge_count, self.graph.edge_count)
        self.assertEqual(again.find_edge("A.B.M", "A.B.N", EdgeLabel.INVOKES).weight, 2)


class TestMembersAndUsages(ExtractionTestCase):
    """Tests for fields, constructors, usages and initializer scripts."""

    def setUp(self):
        super().setUp()
        self.write("shop.py", SHOP)

    def test_constructor(self):
        """Test constructor labels and return type."""
        graph = self.extract()
        ctor = graph.find_by_id("shop.Counter.__init__")

        self.assertEqual(ctor.labels, [NodeLabel.OPERATION, NodeLabel.CONSTRUCTOR])
        self.assertEqual(ctor.properties["kind"], "constructor")
        self.assertEqual(ctor.properties["qualifiedName"], "shop.Counter.__init__(start: int)")
        self.assertTrue(graph.has_edge("shop.Counter.__init__", "shop.Counter", "returns"))

    def test_parameters(self):
        """Test parameter variables."""
        graph = self.extract()
        parameter = graph.find_by_id("shop.Counter.__init__:param:start")

        self.assertEqual(parameter.labels, [NodeLabel.VARIABLE])
        self.assertEqual(parameter.properties["kind"], "parameter")
        self.assertEqual(parameter.properties["parameterPosition"], 0)
        self.assertEqual(parameter.properties["visibility"], "public")
        self.assertTrue(graph.has_edge(parameter.id, "shop.Counter.__init__", "parameterizes"))

    def test_fields(self):
        """Test field variables and their owners."""
        graph = self.extract()
        count = graph.find_by_id("shop.Counter.count")

        self.assertEqual(count.properties["kind"], "field")
        self.assertEqual(count.properties["sourceText"], "self.count = start")
        self.assertTrue(graph.has_edge("shop.Counter", "shop.Counter.count", "encapsulates"))
        self.assertTrue(graph.has_edge("shop.Counter", "shop.Counter.limit", "encapsulates"))
        self.assertTrue(graph.has_edge("shop.Registry.default", "shop.Counter", "typed"))

    def test_module_members_owned_by_scope(self):
        """Test that module functions belong to the module scope."""
        graph = self.extract()

        self.assertEqual(graph.find_by_id("shop.make").properties["kind"], "function")
        self.assertTrue(graph.has_edge("shop", "shop.make", "encapsulates"))

    def test_uses(self):
        """Test field usages through the receiver."""
        graph = self.extract()

        self.assertEqual(graph.find_edge("shop.Counter.bump", "shop.Counter.count", EdgeLabel.USES).weight, 2)
        self.assertEqual(graph.find_edge("shop.Counter.bump", "shop.Counter.limit", EdgeLabel.USES).weight, 1)
        self.assertTrue(graph.has_edge("shop.Counter.__init__", "shop.Counter.count", EdgeLabel.USES))

    def test_instantiates(self):
        """Test object creations of known types."""
        graph = self.extract()

        self.assertTrue(graph.has_edge("shop.make", "shop.Counter", EdgeLabel.INSTANTIATES))

    def test_initializer_script(self):
        """Test Script nodes for constructing initializers."""
        graph = self.extract()
        script_id = "shop.Registry.default.initializer"
        script = graph.find_by_id(script_id)

        self.assertEqual(script.labels, [NodeLabel.SCRIPT])
        self.assertEqual(script.properties["kind"], "initializer")
        self.assertEqual(script.properties["sourceText"], "Counter()")
        self.assertTrue(graph.has_edge("shop.Registry.default", script_id, EdgeLabel.HAS_SCRIPT))
        self.assertTrue(graph.has_edge(script_id, "shop.Counter", EdgeLabel.INSTANTIATES))
        self.assertIsNone(graph.find_by_id("shop.Counter.limit.initializer"))

    def test_initializer_scripts_disabled(self):
        """Test that initializer scripts can be switched off."""
        self.config.extraction.field_initializers = False
        graph = self.extract()

        self.assertEqual(graph.find_nodes_with_label(NodeLabel.SCRIPT), [])

    def test_external_symbols_excluded(self):
        """Test that external symbols produce no nodes by default."""
        graph = self.extract()

        self.assertIsNone(graph.find_by_id("abc.ABC"))
        self.assertIsNone(graph.find_by_id("abc"))
        self.assertEqual(graph.edges_with_label(EdgeLabel.SPECIALIZES), [])
        self.assertNoDanglingEdges(graph)

    def test_external_symbols_included(self):
        """Test that the external option adds external scopes and types."""
        self.config.extraction.include_external = True
        graph = self.extract()
        abc_type = graph.find_by_id("abc.ABC")

        self.assertTrue(abc_type.properties["external"])
        self.assertEqual(abc_type.properties["kind"], "abstract class")
        self.assertTrue(graph.find_by_id("abc").properties["external"])
        self.assertTrue(graph.has_edge("shop.Counter", "abc.ABC", EdgeLabel.SPECIALIZES))
        self.assertTrue(graph.has_edge("abc", "abc.ABC", "encloses"))
        self.assertTrue(graph.has_edge("shop.Counter.__init__:param:start", "builtins.int", "typed"))
        self.assertIsNone(graph.find_edge("abc.ABC", "demo#NumMethods", EdgeLabel.MEASURES))

    def test_overrides_and_nested_types(self):
        """Test override edges between methods and enclosure of nested types."""
        self.write("nest.py", NEST)
        graph = self.extract()

        self.assertTrue(graph.has_edge("nest.Child.run", "nest.Base.run", EdgeLabel.OVERRIDES))
        self.assertEqual(len(graph.edges_with_label(EdgeLabel.OVERRIDES)), 1)
        self.assertTrue(graph.has_edge("nest.Child", "nest.Child.Inner", "encloses"))
        self.assertEqual(graph.find_by_id("nest.Child.Inner").labels, ["Type"])

    def test_override_target_without_node(self):
        """Test that overriding a method without a node leaves no edge behind."""
        self.write("nest.py", NEST)
        graph = self.extract(provider_class=HiddenBaseMethodProvider)

        self.assertIsNone(graph.find_by_id("nest.Base.run"))
        self.assertTrue(graph.has_node("nest.Child.run"))
        self.assertEqual(graph.edges_with_label(EdgeLabel.OVERRIDES), [])
        self.assertEqual(self.extractor.last_state.errors, [])
        self.assertNoDanglingEdges(graph)


class TestOptions(ExtractionTestCase):
    """Tests for schema, Halstead folding and layout options."""

    def test_compact_schema(self):
        """Test the compact label vocabulary."""
        self.write("A.py", SCENARIO)
        self.config.extraction.schema = "compact"
        graph = self.extract()

        self.assertEqual(graph.find_by_id("A").labels, ["Container"])
        self.assertEqual(graph.find_by_id("A.B").labels, ["Structure"])
        self.assertTrue(graph.has_edge("A", "A.B", EdgeLabel.CONTAINS))
        self.assertTrue(graph.has_edge("A.B", "A.B.M", EdgeLabel.HAS_SCRIPT))
        self.assertEqual(graph.find_edge("A.B.M", "A.B.N", EdgeLabel.INVOKES).weight, 2)

    def test_halstead_folding(self):
        """Test Halstead records as Metric nodes."""
        self.write("A.py", SCENARIO)
        self.config.extraction.include_halstead = True
        graph = self.extract()

        volume = graph.find_by_id("demo#Halstead.method.volume")
        self.assertEqual(volume.properties["qualifiedName"], "Halstead Volume (method)")
        self.assertTrue(graph.has_edge("A.B.M", "demo#Halstead.method.volume", EdgeLabel.MEASURES))
        self.assertTrue(graph.has_edge("A.B", "demo#Halstead.class.volume", EdgeLabel.MEASURES))
        self.assertTrue(graph.has_edge("A", "demo#Halstead.namespace.volume", EdgeLabel.MEASURES))
        self.assertFalse(graph.has_edge("A.B", "demo#Halstead.method.volume", EdgeLabel.MEASURES))
        self.assertIsNone(graph.find_by_id("demo#Halstead.class.difficulty"))
        self.assertIsNone(graph.find_by_id("demo#Halstead.class.vocabulary"))
        self.assertTrue(graph.has_edge("A.B.M", "demo#Halstead.method.vocabulary", EdgeLabel.MEASURES))
        self.assertNoDanglingEdges(graph)

    def test_halstead_module_with_functions_and_classes(self):
        """Test that a module keeps its function total apart from its class total."""
        self.write("pkg/mod.py", """
            def f(a):
                return a + 1 + 2 + 3 + 4


            class A:
                def m(self):
                    return 1
        """)
        self.config.extraction.include_halstead = True
        graph = self.extract()
        records = {
            (r.element_id, r.element_kind): r
            for r in self.extractor.last_state.data["metrics"]["halstead"]
        }
        functions_total = records[("pkg.mod", "class")]
        classes_total = records[("pkg.mod", "namespace")]
        self.assertNotEqual(functions_total.volume, classes_total.volume)

        class_edge = graph.find_edge("pkg.mod", "demo#Halstead.class.volume", EdgeLabel.MEASURES)
        namespace_edge = graph.find_edge("pkg.mod", "demo#Halstead.namespace.volume", EdgeLabel.MEASURES)

        self.assertAlmostEqual(class_edge.properties["value"], functions_total.volume)
        self.assertAlmostEqual(namespace_edge.properties["value"], classes_total.volume)
        self.assertAlmostEqual(
            namespace_edge.properties["value"], records[("pkg.mod.A", "class")].volume
        )
        self.assertTrue(graph.has_edge("pkg", "demo#Halstead.namespace.volume", EdgeLabel.MEASURES))
        self.assertNoDanglingEdges(graph)

    def test_halstead_disabled_by_default(self):
        """Test that no Halstead metrics are folded in by default."""
        self.write("A.py", SCENARIO)
        graph = self.extract()

        self.assertIsNone(graph.find_by_id("demo#Halstead.method.volume"))

    def test_folder_hierarchy(self):
        """Test nested folders and namespaces."""
        self.write("top.py", "x = 1\n")
        self.write("pkg/__init__.py", "")
        self.write("pkg/mod.py", "def run():\n    return x\n")
        graph = self.extract()
        root_id = self.root.as_posix()
        pkg_id = (self.root / "pkg").as_posix()

        self.assertTrue(graph.has_edge(root_id, pkg_id, EdgeLabel.CONTAINS))
        self.assertTrue(graph.has_edge("demo", root_id, EdgeLabel.INCLUDES))
        self.assertFalse(graph.has_edge("demo", pkg_id, EdgeLabel.INCLUDES))
        self.assertTrue(graph.has_edge("pkg", "pkg.mod", "encloses"))
        self.assertTrue(graph.has_edge("top", "top.x", "encapsulates"))

    def test_default_name(self):
        """Test that the graph is named after the source root."""
        self.write("A.py", SCENARIO)
        graph = self.extract(name=None)

        self.assertEqual(graph.name, self.root.name)
        self.assertTrue(graph.has_node(f"{self.root.name}#NumMethods"))


class TestFailures(ExtractionTestCase):
    """Tests for error handling."""

    def test_entity_failure_is_recovered(self):
        """Test that a failing entity is recorded and skipped."""
        self.write("A.py", SCENARIO)
        graph = self.extract(provider_class=FlakyProvider)
        errors = self.extractor.last_state.errors

        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0]["stage"], "metrics")
        self.assertEqual(errors[0]["entity"], "A.B.N")
        self.assertIsNone(graph.find_edge("A.B.N", "demo#NumStatements", EdgeLabel.MEASURES))
        self.assertIsNotNone(graph.find_edge("A.B.M", "demo#NumStatements", EdgeLabel.MEASURES))

    def test_missing_source_aborts(self):
        """Test that a phase failure raises a single extraction error."""
        provider = PythonSemanticProvider([str(self.root / "absent")], self.config)
        extractor = GraphExtractor(provider, name="demo", config=self.config)

        with self.assertRaises(ExtractionError):
            extractor.extract()
        self.assertEqual(
            extractor.last_state.get_stage_status("filesystem"), StageStatus.FAILED
        )

    def test_unknown_schema(self):
        """Test that an unknown schema is rejected up front."""
        self.config.extraction.schema = "verbose"
        provider = PythonSemanticProvider([str(self.root)], self.config)

        with self.assertRaises(ExtractionError):
            GraphExtractor(provider, config=self.config)


if __name__ == "__main__":
    unittest.main()
