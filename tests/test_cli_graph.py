import json
from pathlib import Path

from typer.testing import CliRunner

from workgraph.cli import app

EXAMPLES = Path(__file__).resolve().parents[1] / "examples"

runner = CliRunner()


def test_cli_graph_text():
    r = runner.invoke(app, ["graph", str(EXAMPLES / "basic-scope.yaml")])
    assert r.exit_code == 0, r.output
    assert "Critical path (135 min): A -> B -> C" in r.stdout


def test_cli_graph_json():
    r = runner.invoke(app, ["graph", str(EXAMPLES / "basic-scope.yaml"), "--format", "json"])
    assert r.exit_code == 0
    payload = json.loads(r.stdout)
    levels = {n["id"]: n["level"] for n in payload["graph"]["nodes"]}
    assert levels == {"PRJ-1": 0, "EPC-1": 0, "A": 0, "D": 0, "B": 1, "C": 2}
    assert payload["graph"]["critical_path"]["total_minutes"] == 135


def test_cli_graph_policy_file():
    r = runner.invoke(
        app,
        [
            "graph",
            str(EXAMPLES / "basic-scope.yaml"),
            "--format",
            "json",
            "--policy-file",
            str(EXAMPLES / "uniform-policy.yaml"),
        ],
    )
    assert r.exit_code == 0
    path = json.loads(r.stdout)["graph"]["critical_path"]
    assert path["node_ids"] == ["A", "B", "C", "D"]
    assert path["unestimated_ids"] == ["D"]


def test_cli_graph_policy_from_env():
    r = runner.invoke(
        app,
        ["graph", str(EXAMPLES / "basic-scope.yaml")],
        env={"WORKGRAPH_POLICY_FILE": str(EXAMPLES / "uniform-policy.yaml")},
    )
    assert r.exit_code == 0
    assert "A -> B -> C -> D" in r.stdout


def test_cli_graph_missing_policy_file(tmp_path):
    r = runner.invoke(
        app,
        ["graph", str(EXAMPLES / "basic-scope.yaml"), "--policy-file", str(tmp_path / "nope.yaml")],
    )
    assert r.exit_code == 1
    assert "E_POLICY_FILE_NOT_FOUND" in r.output


def test_cli_graph_cyclic_scope():
    r = runner.invoke(app, ["graph", str(EXAMPLES / "cyclic-scope.json"), "--format", "json"])
    assert r.exit_code == 3
    payload = json.loads(r.stdout)
    assert payload["ok"] is False
    assert payload["graph"]["error"]["cycle"] == ["A", "B", "C", "A"]


def test_cli_graph_dangling_scope():
    r = runner.invoke(app, ["graph", str(EXAMPLES / "dangling-scope.yaml")])
    assert r.exit_code == 0
    assert "Critical path (55 min): Y -> X" in r.stdout
    assert "W_DANGLING_EDGE" in r.output
