"""
Tests for bounded-size graph pruning.
"""

import pytest

from newsgraph.knowledge_graph.graph_pruner import GraphPruner
from newsgraph.knowledge_graph.models import KnowledgeGraph, LinkType
from newsgraph.knowledge_graph.validation import validate_graph
from tests.conftest import T1, make_link, make_node


def chain_graph(num_nodes, confidence=0.5):
    """n0 - n1 - ... - n{k} chain with RELATED_TO links."""
    nodes = [make_node(f"n{i}", confidence=confidence) for i in range(num_nodes)]
    links = [
        make_link(f"n{i}", f"n{i + 1}", LinkType.RELATED_TO)
        for i in range(num_nodes - 1)
    ]
    return KnowledgeGraph(nodes=nodes, links=links)


class TestGraphPruner:
    """Test GraphPruner."""

    def test_identity_within_bounds(self, simple_graph):
        pruner = GraphPruner(max_nodes=10, max_links=10)
        assert pruner.prune(simple_graph) is simple_graph

    def test_defaults_from_settings(self):
        pruner = GraphPruner()
        assert (pruner.max_nodes, pruner.max_links) == (100, 200)

    def test_negative_bound_rejected(self):
        with pytest.raises(ValueError):
            GraphPruner(max_nodes=-1)

    def test_150_nodes_to_100(self):
        graph = chain_graph(150)
        pruned = GraphPruner(max_nodes=100, max_links=200).prune(graph)

        assert len(pruned.nodes) == 100
        kept = {n.id for n in pruned.nodes}
        dropped = {n.id for n in graph.nodes} - kept
        assert len(dropped) == 50
        for link in pruned.links:
            assert link.source not in dropped
            assert link.target not in dropped
        assert validate_graph(pruned, max_nodes=100, max_links=200) == []

    def test_score_prefers_degree_provenance_confidence(self):
        hub = make_node("hub", confidence=0.1)
        well_sourced = make_node("sourced", source_count=9, confidence=0.1)
        confident = make_node("confident", confidence=1.0)
        leaves = [make_node(f"leaf{i}", confidence=0.1) for i in range(4)]
        links = [make_link("hub", leaf.id, LinkType.RELATED_TO) for leaf in leaves]
        graph = KnowledgeGraph(nodes=leaves + [confident, well_sourced, hub], links=links)

        pruned = GraphPruner(max_nodes=3, max_links=10).prune(graph)
        # hub: 2*4 + 1 + 0.5 = 9.5, sourced: 9 + 0.5 = 9.5, confident: 1 + 5 = 6
        assert {n.id for n in pruned.nodes} == {"hub", "sourced", "confident"}
        assert pruned.links == []

    def test_ties_keep_input_order(self):
        graph = KnowledgeGraph(nodes=[make_node(f"n{i}") for i in range(5)])
        pruned = GraphPruner(max_nodes=3, max_links=10).prune(graph)
        assert [n.id for n in pruned.nodes] == ["n0", "n1", "n2"]

    def test_survivors_keep_input_order(self):
        graph = KnowledgeGraph(nodes=[
            make_node("low", confidence=0.0),
            make_node("high", confidence=1.0),
            make_node("mid", confidence=0.5),
        ])
        pruned = GraphPruner(max_nodes=2, max_links=10).prune(graph)
        assert [n.id for n in pruned.nodes] == ["high", "mid"]

    def test_links_truncated_in_original_order(self):
        graph = chain_graph(6)
        pruned = GraphPruner(max_nodes=10, max_links=2).prune(graph)
        assert len(pruned.nodes) == 6
        assert [(l.source, l.target) for l in pruned.links] == [("n0", "n1"), ("n1", "n2")]

    def test_degree_counts_parallel_links(self):
        graph = KnowledgeGraph(
            nodes=[make_node("a"), make_node("b")],
            links=[make_link("a", "b", LinkType.CAUSES), make_link("b", "a", LinkType.IMPACTS)],
        )
        assert GraphPruner().degrees(graph) == {"a": 2, "b": 2}

    def test_degree_counts_closed_and_reopened_records(self):
        graph = KnowledgeGraph(
            nodes=[make_node("a"), make_node("b")],
            links=[make_link("a", "b", valid_to=T1), make_link("a", "b", valid_from=T1)],
        )
        assert GraphPruner().degrees(graph) == {"a": 2, "b": 2}

    def test_zero_bounds(self, simple_graph):
        pruned = GraphPruner(max_nodes=0, max_links=0).prune(simple_graph)
        assert pruned.nodes == []
        assert pruned.links == []
