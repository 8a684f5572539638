"""
Tests for the extraction engine facade.
"""

import json
import math

import pytest

from codelpg.core.config import PipelineConfig
from codelpg.core.exceptions import (
    LanguageNotSupportedError,
    OutputError,
    SourceValidationError,
)
from codelpg.engine import GraphExtractionEngine, extract_graph
from codelpg.metrics.halstead import HalsteadMetrics
from codelpg.semantic.python_provider import PythonSemanticProvider


@pytest.fixture
def config():
    return PipelineConfig()


@pytest.fixture
def source_dir(tmp_path):
    src = tmp_path / "src"
    src.mkdir()
    (src / "util.py").write_text("def double(x):\n    return x * 2\n")
    return src


class TestProviderCreation:
    """Test source validation and provider lookup."""

    def test_creates_python_provider(self, config, source_dir):
        provider = GraphExtractionEngine(config).create_provider([str(source_dir)])

        assert isinstance(provider, PythonSemanticProvider)
        assert provider.sources == [str(source_dir)]

    def test_no_sources(self, config):
        with pytest.raises(SourceValidationError):
            GraphExtractionEngine(config).create_provider([])

    def test_missing_source(self, config, tmp_path):
        with pytest.raises(SourceValidationError) as excinfo:
            GraphExtractionEngine(config).create_provider([str(tmp_path / "absent")])

        assert excinfo.value.details["path"] == str(tmp_path / "absent")

    def test_unsupported_file(self, config, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")

        with pytest.raises(SourceValidationError):
            GraphExtractionEngine(config).create_provider([str(notes)])

    def test_unknown_language(self, config, source_dir):
        config.source.language = "cobol"

        with pytest.raises(LanguageNotSupportedError):
            GraphExtractionEngine(config).create_provider([str(source_dir)])


class TestEngineOutput:
    """Test extraction and output writing."""

    def test_extract_graph(self, config, source_dir):
        graph = extract_graph([str(source_dir)], name="util", config=config)

        assert graph.name == "util"
        assert graph.has_node("util.double")
        assert graph.has_node("util#NumStatements")

    def test_default_name(self, config, source_dir):
        graph = GraphExtractionEngine(config).extract([str(source_dir)])

        assert graph.name == "src"

    def test_write_to_configured_destination(self, config, source_dir, tmp_path):
        config.output.destination = str(tmp_path / "out" / "graph.json")
        engine = GraphExtractionEngine(config)

        engine.write(engine.extract([str(source_dir)]))

        data = json.loads((tmp_path / "out" / "graph.json").read_text())
        assert set(data["elements"]) == {"nodes", "edges"}

    def test_write_to_stdout(self, config, source_dir, capsys):
        engine = GraphExtractionEngine(config)

        engine.write(engine.extract([str(source_dir)]))

        assert json.loads(capsys.readouterr().out)["elements"]["nodes"]

    def test_write_failure(self, config, source_dir, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        engine = GraphExtractionEngine(config)
        graph = engine.extract([str(source_dir)])

        with pytest.raises(OutputError):
            engine.write(graph, blocker / "graph.json")

    def test_write_records(self, config, tmp_path):
        config.metrics.nan_replacement = 0
        records = [HalsteadMetrics.aggregate("ns.T", "class", [])]
        assert math.isnan(records[0].difficulty)

        GraphExtractionEngine(config).write_records(records, tmp_path / "records.json")

        data = json.loads((tmp_path / "records.json").read_text())
        assert data[0]["id"] == "ns.T"
        assert data[0]["difficulty"] == 0

    def test_halstead(self, config, source_dir):
        records = GraphExtractionEngine(config).halstead([str(source_dir)])

        assert [r.element_kind for r in records] == ["method", "class", "namespace"]
        assert records[0].element_id == "util.double"
