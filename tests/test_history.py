"""Tests for the snapshot DAG view."""

import pytest

from securesync.history import IndexHistory

from tests.fixtures.builders import snapshot


@pytest.fixture
def history():
    """
    a - b - c - e
     \\        /
      d ------
    """
    return IndexHistory([
        snapshot("a", created_at=1),
        snapshot("b", parents=("a",), created_at=2),
        snapshot("c", parents=("b",), created_at=3),
        snapshot("d", parents=("a",), created_at=4),
        snapshot("e", parents=("c", "d"), created_at=5),
    ])


class TestIndexHistory:
    def test_nodes(self, history):
        assert len(history) == 5
        assert "c" in history
        assert "zzz" not in history
        assert history.get("b").parent_ids == ["a"]
        assert history.get("zzz") is None

    def test_parents_children(self, history):
        assert history.parents("e") == ["c", "d"]
        assert history.children("a") == ["b", "d"]
        assert history.children("e") == []

    def test_roots_and_heads(self, history):
        assert history.roots() == ["a"]
        assert history.heads() == ["e"]

    def test_ancestors(self, history):
        assert history.ancestors("e") == {"a", "b", "c", "d"}
        assert history.ancestors("a") == set()
        assert history.is_ancestor("a", "e")
        assert not history.is_ancestor("e", "a")
        assert not history.is_ancestor("c", "d")

    def test_merge_base(self, history):
        assert history.merge_base("c", "d") == "a"
        assert history.merge_base("b", "c") == "b"
        assert history.merge_base("e", "d") == "d"

    def test_merge_base_unrelated(self):
        history = IndexHistory([snapshot("x", created_at=1), snapshot("y", created_at=2)])
        assert history.merge_base("x", "y") is None

    def test_branch_chain_follows_first_parent(self, history):
        assert [s.id for s in history.branch_chain("e")] == ["a", "b", "c", "e"]
        assert [s.id for s in history.branch_chain("d")] == ["a", "d"]
        assert history.branch_chain("missing") == []

    def test_recent(self, history):
        assert [s.id for s in history.recent(2)] == ["e", "d"]
        assert len(history.recent()) == 5

    def test_missing_parent_is_root(self):
        history = IndexHistory([snapshot("b", parents=("pruned",), created_at=2)])
        assert history.roots() == ["b"]
        assert history.ancestors("b") == {"pruned"}
