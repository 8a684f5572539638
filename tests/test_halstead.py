"""
Unit tests for Halstead metrics.
"""

import math
import textwrap

import numpy as np
import pytest

from codelpg.core.config import PipelineConfig
from codelpg.core.exceptions import MetricsError
from codelpg.metrics.calculator import HalsteadCalculator
from codelpg.metrics.halstead import AGGREGATE_VOCABULARY, HalsteadMetrics
from codelpg.semantic.provider import SyntaxCategory
from codelpg.semantic.python_provider import PythonSemanticProvider
from codelpg.utils.naming import GLOBAL_SCOPE


def _write(directory, name, code):
    path = directory / name
    path.write_text(textwrap.dedent(code))
    return path


class _BrokenLookupProvider(PythonSemanticProvider):
    """Provider whose lookup fails for the function named ``broken``."""

    def declared_symbol(self, tree, node):
        if getattr(node, "name", None) == "broken":
            raise RuntimeError("lookup failed")
        return super().declared_symbol(tree, node)


class TestHalsteadMetrics:
    """Test derived quantities and aggregation."""

    def test_from_counts(self):
        """Derive measures from basic counts."""
        record = HalsteadMetrics.from_counts("ns.T.m", "method", n1=2, n2=2, N1=2, N2=4)

        assert record.vocabulary == 4
        assert record.length == 6
        assert record.volume == pytest.approx(12.0)
        assert record.difficulty == pytest.approx(2.0)
        assert record.effort == pytest.approx(24.0)
        assert record.estimated_bugs == pytest.approx(12.0 / 3000)

    def test_no_operands(self):
        """Difficulty is zero without operands."""
        record = HalsteadMetrics.from_counts("m", "method", n1=3, n2=0, N1=5, N2=0)

        assert record.difficulty == 0.0
        assert record.effort == 0.0

    def test_empty_body(self):
        """An empty body yields an all-zero record."""
        record = HalsteadMetrics.from_counts("m", "method", 0, 0, 0, 0)

        assert record.volume == 0.0
        assert record.estimated_bugs == 0.0

    def test_aggregation_additivity(self):
        """Aggregates sum length and volume and mark the rest."""
        members = [
            HalsteadMetrics("ns.T.a", "method", length=10, volume=20.0, effort=3.0),
            HalsteadMetrics("ns.T.b", "method", length=5, volume=8.0, effort=4.0),
        ]

        record = HalsteadMetrics.aggregate("ns.T", "class", members)

        assert record.length == 15
        assert record.volume == pytest.approx(28.0)
        assert record.effort == pytest.approx(7.0)
        assert record.vocabulary == AGGREGATE_VOCABULARY
        assert math.isnan(record.difficulty)
        assert record.estimated_bugs == pytest.approx(28.0 / 3000)
        assert record.is_aggregate

    def test_to_dict_replaces_nan(self):
        """Export writes the replacement for NaN."""
        record = HalsteadMetrics.aggregate("ns.T", "class", [])

        exported = record.to_dict()

        assert exported["difficulty"] == -1
        assert exported["vocabulary"] == -1
        assert record.to_dict(nan_replacement=0)["difficulty"] == 0
        assert set(exported) == {
            "id", "kind", "vocabulary", "length", "volume",
            "difficulty", "effort", "estimatedBugs",
        }


class TestHalsteadCalculator:
    """Test Halstead counting over Python sources."""

    @pytest.fixture
    def config(self):
        return PipelineConfig()

    def _calculator(self, path, config):
        return HalsteadCalculator(PythonSemanticProvider([str(path)], config))

    def test_simple_function(self, tmp_path, config):
        """Count operators and operands of a small function."""
        path = _write(tmp_path, "calc.py", '''
            def add(a, b):
                """Add two numbers."""
                return a + b
        ''')

        records = self._calculator(path, config).analyze()
        method = records[0]

        assert method.element_id == "calc.add"
        assert method.element_kind == "method"
        assert (method.distinct_operators, method.distinct_operands) == (2, 2)
        assert (method.total_operators, method.total_operands) == (2, 4)
        assert method.volume == pytest.approx(12.0)

    def test_keyword_aliases(self, tmp_path, config):
        """Python spellings map onto the shared keyword set."""
        path = _write(tmp_path, "errors.py", '''
            def check(value):
                try:
                    if value:
                        raise ValueError(value)
                except ValueError:
                    return None
        ''')
        calculator = self._calculator(path, config)
        provider = calculator.provider
        method = next(
            provider.declared_symbol(tree, node)
            for tree in provider.iter_trees()
            for node in provider.declarations(tree, SyntaxCategory.METHOD_DECLARATION)
        )

        keywords = {
            provider.canonical_keyword(token.text)
            for token in provider.halstead_tokens(method)
            if not token.is_operand
        }

        assert {"try", "if", "throw", "catch", "return"} <= keywords

    def test_type_identifiers_counted_twice(self, tmp_path, config):
        """Identifiers naming a type count as an extra operand."""
        path = _write(tmp_path, "shapes.py", '''
            class Point:
                pass

            def origin():
                return Point()

            def zero():
                return number()

            def number():
                return 0
        ''')

        records = {r.element_id: r for r in self._calculator(path, config).analyze()}

        assert records["shapes.origin"].total_operands == 2
        assert records["shapes.zero"].total_operands == 1

    def test_determinism(self, tmp_path, config):
        """Two independent runs give identical records."""
        path = _write(tmp_path, "loop.py", '''
            def total(items):
                result = 0
                for item in items:
                    result += item if item > 0 else -item
                return result
        ''')

        first = self._calculator(path, config).analyze()
        second = self._calculator(path, config).analyze()

        assert [r.to_dict() for r in first] == [r.to_dict() for r in second]

    def test_aggregation_levels(self, tmp_path, config):
        """Records come methods first, then classes, then namespaces."""
        path = _write(tmp_path, "shop.py", '''
            class Cart:
                def add(self, item):
                    self.items.append(item)

                def clear(self):
                    self.items = []

            class Till:
                def open(self):
                    return True
        ''')

        records = self._calculator(path, config).analyze()
        kinds = [r.element_kind for r in records]

        assert kinds == ["method", "method", "method", "class", "class", "namespace"]
        by_id = {r.element_id: r for r in records}
        cart = by_id["shop.Cart"]
        assert cart.length == by_id["shop.Cart.add"].length + by_id["shop.Cart.clear"].length
        assert np.isnan(cart.difficulty)
        assert by_id["shop"].element_kind == "namespace"
        assert by_id["shop"].volume == pytest.approx(cart.volume + by_id["shop.Till"].volume)

    def test_module_function_aggregates_by_prefix(self, tmp_path, config):
        """Module functions group under their module as if it were a type."""
        path = _write(tmp_path, "tools.py", '''
            def run():
                return 1
        ''')

        records = self._calculator(path, config).analyze()

        assert [(r.element_id, r.element_kind) for r in records] == [
            ("tools.run", "method"),
            ("tools", "class"),
            (GLOBAL_SCOPE, "namespace"),
        ]

    def test_to_dicts(self, tmp_path, config):
        """Records export as property maps."""
        path = _write(tmp_path, "tools.py", '''
            def run():
                return 1
        ''')

        data = HalsteadCalculator.to_dicts(self._calculator(path, config).analyze(), nan_replacement=-1)

        assert data[0]["id"] == "tools.run"
        assert data[1]["difficulty"] == -1

    def test_failed_lookup_skips_only_that_operation(self, tmp_path, config):
        """A symbol lookup failure drops one operation, not the whole run."""
        path = _write(tmp_path, "tools.py", '''
            def broken():
                return 1

            def run():
                return 2
        ''')
        provider = _BrokenLookupProvider([str(path)], config)

        records = HalsteadCalculator(provider).analyze()

        assert [r.element_id for r in records] == ["tools.run", "tools", GLOBAL_SCOPE]

    def test_unloadable_sources(self, tmp_path, config):
        """Sources that cannot be loaded fail the analysis as a whole."""
        calculator = self._calculator(tmp_path / "absent", config)

        with pytest.raises(MetricsError) as excinfo:
            calculator.analyze()

        assert excinfo.value.stage == "Metrics"
        assert excinfo.value.details["reason"] == "Path does not exist"
