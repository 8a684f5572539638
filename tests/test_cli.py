"""
Tests for the command-line interface.
"""

import json
import tempfile
import textwrap
import unittest
from pathlib import Path

from click.testing import CliRunner

from codelpg import __version__
from codelpg.cli import cli
from codelpg.core.config import Config

SOURCE = '''
class Base:
    pass


class B(Base):
    def M(self):
        self.N()
        self.N()

    def N(self):
        return 1
'''


class CliTestCase(unittest.TestCase):
    """Base class with a runner and a small source tree."""

    def setUp(self):
        Config.reset()
        self.runner = CliRunner()
        self._tmpdir = tempfile.TemporaryDirectory()
        self.root = Path(self._tmpdir.name)
        self.src = self.root / "src"
        self.src.mkdir()
        (self.src / "A.py").write_text(textwrap.dedent(SOURCE))

    def tearDown(self):
        self._tmpdir.cleanup()
        Config.reset()

    def invoke(self, *args):
        return self.runner.invoke(cli, list(args), obj={})


class TestExtractCommand(CliTestCase):
    """Tests for the extract command."""

    def test_extract_to_file(self):
        """Test writing the graph document to a file."""
        output = self.root / "out" / "graph.json"

        result = self.invoke("extract", str(self.src), "-o", str(output), "--name", "demo")

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("saved to", result.output)
        with open(output) as f:
            data = json.load(f)
        node_ids = {node["data"]["id"] for node in data["elements"]["nodes"]}
        self.assertIn("A.B", node_ids)
        self.assertIn("demo#NumMethods", node_ids)
        edges = {edge["data"]["id"]: edge["data"] for edge in data["elements"]["edges"]}
        self.assertEqual(edges["A.B.M-invokes-A.B.N"]["properties"]["weight"], 2)

    def test_extract_compact_schema(self):
        """Test the schema option."""
        output = self.root / "graph.json"

        result = self.invoke("extract", str(self.src), "-o", str(output), "--schema", "compact")

        self.assertEqual(result.exit_code, 0, result.output)
        data = json.loads(output.read_text())
        labels = {label for node in data["elements"]["nodes"] for label in node["data"]["labels"]}
        self.assertIn("Structure", labels)
        self.assertNotIn("Type", labels)

    def test_extract_with_halstead(self):
        """Test folding Halstead metrics into the graph."""
        output = self.root / "graph.json"

        result = self.invoke("extract", str(self.src), "-o", str(output), "--name", "demo", "--halstead")

        self.assertEqual(result.exit_code, 0, result.output)
        data = json.loads(output.read_text())
        node_ids = {node["data"]["id"] for node in data["elements"]["nodes"]}
        self.assertIn("demo#Halstead.method.volume", node_ids)

    def test_extract_to_stdout(self):
        """Test writing the graph document to standard output."""
        result = self.invoke("extract", str(self.src))

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('"elements"', result.output)

    def test_extract_missing_source(self):
        """Test that an invalid source exits with an error."""
        result = self.invoke("extract", str(self.root / "absent"))

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Error:", result.output)

    def test_extract_requires_source(self):
        """Test that at least one source is required."""
        result = self.invoke("extract")

        self.assertNotEqual(result.exit_code, 0)


class TestHalsteadCommand(CliTestCase):
    """Tests for the halstead command."""

    def test_halstead_to_file(self):
        """Test writing Halstead records to a file."""
        output = self.root / "halstead.json"

        result = self.invoke("halstead", str(self.src), "-o", str(output))

        self.assertEqual(result.exit_code, 0, result.output)
        records = json.loads(output.read_text())
        self.assertEqual([r["id"] for r in records], ["A.B.M", "A.B.N", "A.B", "A"])
        self.assertEqual(records[2]["difficulty"], -1)

    def test_nan_replacement(self):
        """Test the replacement value option."""
        output = self.root / "halstead.json"

        result = self.invoke("halstead", str(self.src), "-o", str(output), "--nan-replacement", "0")

        self.assertEqual(result.exit_code, 0, result.output)
        records = json.loads(output.read_text())
        self.assertEqual(records[2]["difficulty"], 0)


class TestUtilityCommands(CliTestCase):
    """Tests for init, list-providers and global options."""

    def test_init_and_load(self):
        """Test creating a configuration file and loading it back."""
        config_path = self.root / "config.json"

        result = self.invoke("init", "-o", str(config_path))

        self.assertEqual(result.exit_code, 0, result.output)
        data = json.loads(config_path.read_text())
        self.assertEqual(data["extraction"]["schema"], "full")

        data["extraction"]["schema"] = "compact"
        config_path.write_text(json.dumps(data))
        output = self.root / "graph.json"
        result = self.invoke("--config", str(config_path), "extract", str(self.src), "-o", str(output))

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("Structure", output.read_text())

    def test_list_providers(self):
        """Test listing registered languages."""
        result = self.invoke("list-providers")

        self.assertEqual(result.exit_code, 0)
        self.assertIn("Supported Languages:", result.output)
        self.assertIn("python: .py, .pyw, .pyi", result.output)

    def test_version(self):
        """Test the version option."""
        result = self.invoke("--version")

        self.assertEqual(result.exit_code, 0)
        self.assertIn(__version__, result.output)


if __name__ == "__main__":
    unittest.main()
