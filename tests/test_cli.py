"""
Tests for the newsgraph command line.

Verifies:
1. build writes wire-format JSON (stdout or file)
2. build merges a previous graph
3. validate exit codes
4. Unreadable input is reported, not raised
"""

import json

import pytest

from newsgraph.cli import main, parse_args
from tests.conftest import make_entity, make_result


@pytest.fixture
def batch_file(tmp_path):
    opec = make_entity("ent-opec", "OPEC")
    batch = {
        "results": [make_result("res-1", [opec]), make_result("res-2", [opec])],
        "relationships": [
            {"source": "Opec", "target": "res-1", "type": "impacts", "strength": 0.8, "confidence": 0.6},
        ],
    }
    path = tmp_path / "batch.json"
    path.write_text(json.dumps(batch), encoding="utf-8")
    return path


class TestParseArgs:
    """Test CLI argument parsing."""

    def test_build_args(self):
        args = parse_args(["build", "in.json", "--max-nodes", "10", "-o", "out.json"])
        assert args.command == "build"
        assert args.max_nodes == 10
        assert args.max_links is None
        assert args.output == "out.json"

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestBuildCommand:
    """Test `newsgraph build`."""

    def test_build_to_stdout(self, batch_file, capsys):
        assert main(["build", str(batch_file)]) == 0
        graph = json.loads(capsys.readouterr().out)

        assert {n["id"] for n in graph["nodes"]} == {"res-1", "res-2", "ent-opec"}
        opec = [n for n in graph["nodes"] if n["id"] == "ent-opec"][0]
        assert opec["sourceCount"] == 2
        assert opec["validTo"] is None
        assert any(l["type"] == "impacts" for l in graph["links"])

    def test_build_with_previous(self, batch_file, tmp_path):
        first = tmp_path / "first.json"
        merged = tmp_path / "merged.json"
        assert main(["build", str(batch_file), "-o", str(first)]) == 0
        assert main(["build", str(batch_file), "--previous", str(first), "-o", str(merged)]) == 0

        graph = json.loads(merged.read_text(encoding="utf-8"))
        opec = [n for n in graph["nodes"] if n["id"] == "ent-opec"][0]
        assert opec["sourceCount"] == 4

    def test_bounds(self, batch_file, capsys):
        assert main(["build", str(batch_file), "--max-nodes", "1"]) == 0
        graph = json.loads(capsys.readouterr().out)
        assert len(graph["nodes"]) == 1
        assert graph["links"] == []

    def test_missing_file(self, tmp_path):
        assert main(["build", str(tmp_path / "nope.json")]) == 2

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        assert main(["build", str(path)]) == 2

    def test_negative_bound(self, batch_file):
        assert main(["build", str(batch_file), "--max-links", "-1"]) == 2


class TestValidateCommand:
    """Test `newsgraph validate`."""

    def test_valid_graph(self, batch_file, tmp_path, capsys):
        out = tmp_path / "graph.json"
        main(["build", str(batch_file), "-o", str(out)])
        assert main(["validate", str(out)]) == 0
        assert "OK" in capsys.readouterr().out

    def test_bound_violation(self, batch_file, tmp_path, capsys):
        out = tmp_path / "graph.json"
        main(["build", str(batch_file), "-o", str(out)])
        assert main(["validate", str(out), "--max-nodes", "1"]) == 1
        assert "exceeds max_nodes=1" in capsys.readouterr().out

    def test_malformed_records_reported(self, tmp_path, capsys):
        path = tmp_path / "graph.json"
        path.write_text(json.dumps({
            "nodes": [{"id": "A", "type": "country", "label": "A", "validFrom": "2024-03-01T00:00:00Z"}],
            "links": [{"source": "A", "target": "A", "type": "causes", "strength": 0.5, "validFrom": "2024-03-01T00:00:00Z"}],
        }), encoding="utf-8")
        assert main(["validate", str(path)]) == 1
        assert "1 malformed" in capsys.readouterr().out
