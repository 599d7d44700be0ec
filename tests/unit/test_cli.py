"""Tests for CLI commands."""
import json
from argparse import Namespace
from unittest.mock import patch

import pytest

from nodeflow.cli import build_parser, cmd_functions, cmd_order, cmd_run, cmd_run_node, main
from nodeflow.runtime import save_snapshot


@pytest.fixture
def flow_file(graph, tmp_path):
    """fetch -> double -> out saved to disk."""
    graph.add_function_node("fetch", node_id="fetch")
    graph.add_function_node("double", node_id="double")
    graph.add_output_node(node_id="out")
    graph.connect("fetch", "double", "input-x")
    graph.connect("double", "out", "input-value")
    path = tmp_path / "flow.json"
    save_snapshot(graph.to_snapshot(), path)
    return str(path)


@pytest.fixture
def cyclic_file(graph, tmp_path):
    graph.add_function_node("echo", node_id="a")
    graph.add_function_node("echo", node_id="b")
    graph.connect("a", "b", "input-in")
    graph.connect("b", "a", "input-in")
    path = tmp_path / "cycle.json"
    save_snapshot(graph.to_snapshot(), path)
    return str(path)


class TestCmdFunctions:
    """Test cmd_functions."""

    def test_lists_by_category(self, capsys):
        """Test the full catalogue is grouped by category."""
        result = cmd_functions(Namespace(group=None))

        assert result == 0
        output = json.loads(capsys.readouterr().out)
        assert "Solana" in output
        assert [f["id"] for f in output["Data"]][0] == "fetch-data"

    def test_lists_group(self, capsys):
        """Test --group restricts the listing."""
        result = cmd_functions(Namespace(group="utilities"))

        assert result == 0
        ids = [f["id"] for f in json.loads(capsys.readouterr().out)]
        assert "mermaid" in ids
        assert "solana-tx-fetch" not in ids

    def test_unknown_group(self, capsys):
        """Test unknown groups are an error."""
        assert cmd_functions(Namespace(group="nope")) == 1
        assert "Unknown group" in capsys.readouterr().err


class TestCmdOrder:
    """Test cmd_order."""

    def test_prints_order(self, registry, flow_file, capsys):
        with patch("nodeflow.cli.build_default_registry", return_value=registry):
            result = cmd_order(Namespace(snapshot=flow_file))

        assert result == 0
        assert json.loads(capsys.readouterr().out) == ["fetch", "double", "out"]

    def test_cycle_reported(self, registry, cyclic_file, capsys):
        with patch("nodeflow.cli.build_default_registry", return_value=registry):
            result = cmd_order(Namespace(snapshot=cyclic_file))

        assert result == 1
        assert "Cycle detected" in capsys.readouterr().err


class TestCmdRun:
    """Test cmd_run and cmd_run_node."""

    @patch("nodeflow.cli.setup_logging")
    def test_run_flow(self, mock_logging, registry, flow_file, capsys):
        with patch("nodeflow.cli.build_default_registry", return_value=registry):
            result = cmd_run(Namespace(snapshot=flow_file))

        assert result == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["status"] == "completed"
        assert summary["nodes"]["out"]["result"] == 2
        mock_logging.assert_called_once()

    @patch("nodeflow.cli.setup_logging")
    def test_run_aborted_on_cycle(self, mock_logging, registry, cyclic_file, capsys):
        with patch("nodeflow.cli.build_default_registry", return_value=registry):
            result = cmd_run(Namespace(snapshot=cyclic_file))

        assert result == 1
        assert json.loads(capsys.readouterr().out)["status"] == "aborted"

    @patch("nodeflow.cli.setup_logging")
    def test_run_node(self, mock_logging, registry, flow_file, capsys):
        with patch("nodeflow.cli.build_default_registry", return_value=registry):
            result = cmd_run_node(Namespace(snapshot=flow_file, node_id="double"))

        assert result == 0
        assert json.loads(capsys.readouterr().out) == {"node_id": "double", "result": 2}

    @patch("nodeflow.cli.setup_logging")
    def test_run_node_failure(self, mock_logging, registry, graph, tmp_path, capsys):
        graph.add_function_node("fail", node_id="fail")
        path = tmp_path / "fail.json"
        save_snapshot(graph.to_snapshot(), path)

        with patch("nodeflow.cli.build_default_registry", return_value=registry):
            result = cmd_run_node(Namespace(snapshot=str(path), node_id="fail"))

        assert result == 1
        assert "rpc unavailable" in capsys.readouterr().err


class TestLoadErrors:
    """Test that unreadable snapshots are reported, not raised."""

    def test_missing_file(self, tmp_path, capsys):
        result = cmd_order(Namespace(snapshot=str(tmp_path / "missing.json")))

        assert result == 1
        assert capsys.readouterr().err.startswith("Error:")

    @patch("nodeflow.cli.setup_logging")
    def test_malformed_snapshot(self, mock_logging, tmp_path, capsys):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"nodes": [{"data": {"functionId": "delay"}}], "edges": []}))

        result = cmd_run(Namespace(snapshot=str(path)))

        assert result == 1
        assert "validation error" in capsys.readouterr().err

    @patch("nodeflow.cli.setup_logging")
    def test_invalid_json(self, mock_logging, tmp_path, capsys):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        assert cmd_run_node(Namespace(snapshot=str(path), node_id="a")) == 1
        assert "Error:" in capsys.readouterr().err


class TestParser:
    """Test argument parsing."""

    def test_run_node_arguments(self):
        args = build_parser().parse_args(["run-node", "flow.json", "double"])

        assert args.snapshot == "flow.json"
        assert args.node_id == "double"
        assert args.func is cmd_run_node

    def test_main_dispatches(self, capsys):
        assert main(["functions", "--group", "solana"]) == 0
        assert "solana-wallet-balance" in capsys.readouterr().out
