import pytest

from workgraph.core.graph.edge_policy import (
    DEFAULT_POLICY,
    EdgePolicy,
    PolicyConfigError,
    load_policy,
    load_policy_file,
)
from workgraph.core.model import DependencyEdge


def test_default_policy_treats_related_as_informational():
    assert DEFAULT_POLICY.is_weight_bearing("depends_on")
    assert DEFAULT_POLICY.is_weight_bearing("blocks")
    assert DEFAULT_POLICY.is_weight_bearing("something_new")
    assert not DEFAULT_POLICY.is_weight_bearing("related")


def test_uniform_policy():
    assert EdgePolicy.uniform().is_weight_bearing("related")


def test_filter_keeps_order():
    edges = [
        DependencyEdge(id="1", from_id="A", to_id="B", kind="related"),
        DependencyEdge(id="2", from_id="A", to_id="C"),
        DependencyEdge(id="3", from_id="B", to_id="C", kind="blocks"),
    ]
    assert [e.id for e in DEFAULT_POLICY.filter(edges)] == ["2", "3"]


def test_load_policy_file(tmp_path):
    p = tmp_path / "policy.yaml"
    p.write_text("informational_kinds: [related, mentions]\n", encoding="utf-8")
    policy = load_policy_file(p)
    assert policy.informational_kinds == frozenset({"related", "mentions"})


def test_load_policy_empty_file_is_default(tmp_path):
    p = tmp_path / "policy.yaml"
    p.write_text("", encoding="utf-8")
    assert load_policy_file(p) == DEFAULT_POLICY


def test_load_policy_none_is_default():
    assert load_policy(None) == DEFAULT_POLICY


@pytest.mark.parametrize(
    "text",
    [
        "- related\n",
        "informational_kinds: related\n",
        "informational_kinds: ['']\n",
        "weights: {}\n",
    ],
)
def test_load_policy_rejects_bad_shapes(tmp_path, text):
    p = tmp_path / "policy.yaml"
    p.write_text(text, encoding="utf-8")
    with pytest.raises(PolicyConfigError):
        load_policy_file(p)


def test_load_policy_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_policy(str(tmp_path / "nope.yaml"))
