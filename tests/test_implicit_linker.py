"""
Tests for implicit co-occurrence linking.
"""

import pytest

from newsgraph.knowledge_graph.implicit_linker import ImplicitLinker
from newsgraph.knowledge_graph.models import LinkType, coerce_results
from newsgraph.knowledge_graph.node_synthesizer import NodeSynthesizer
from tests.conftest import T0, make_entity, make_link, make_result


@pytest.fixture
def linker(settings):
    return ImplicitLinker(settings)


def _prepare(settings, raw_results):
    results = coerce_results(raw_results)
    return results, NodeSynthesizer(settings).synthesize(results, T0)


class TestImplicitLinker:
    """Test ImplicitLinker."""

    def test_co_mention_and_direct_mention(self, linker, settings):
        results, nodes = _prepare(settings, [
            make_result("r1", [make_entity("a"), make_entity("b")]),
        ])
        links = linker.link(results, nodes, T0)

        by_pair = {(l.source, l.target): l for l in links}
        assert set(by_pair) == {("a", "b"), ("r1", "a"), ("r1", "b")}
        assert by_pair[("a", "b")].strength == pytest.approx(0.5)
        assert by_pair[("r1", "a")].strength == pytest.approx(0.7)
        assert all(l.type == LinkType.RELATED_TO for l in links)
        assert all(l.confidence == l.strength for l in links)
        assert all(l.valid_from == T0 and l.source_count == 1 for l in links)

    def test_pair_count(self, linker, settings):
        entities = [make_entity(name) for name in "abcd"]
        results, nodes = _prepare(settings, [make_result("r1", entities)])
        links = linker.link(results, nodes, T0)
        # 4 choose 2 co-mentions + 4 direct mentions
        assert len(links) == 6 + 4

    def test_no_duplicate_undirected_edges(self, linker, settings):
        results, nodes = _prepare(settings, [
            make_result("r1", [make_entity("a"), make_entity("b")]),
            make_result("r2", [make_entity("b"), make_entity("a")]),
        ])
        links = linker.link(results, nodes, T0)
        co_mentions = [l for l in links if {l.source, l.target} == {"a", "b"}]
        assert len(co_mentions) == 1

    def test_existing_link_of_same_type_suppresses(self, linker, settings):
        results, nodes = _prepare(settings, [make_result("r1", [make_entity("a"), make_entity("b")])])
        explicit = [make_link("b", "a", LinkType.RELATED_TO, strength=0.9)]
        links = linker.link(results, nodes, T0, existing_links=explicit)
        assert not any({l.source, l.target} == {"a", "b"} for l in links)

    def test_existing_link_of_other_type_does_not_suppress(self, linker, settings):
        results, nodes = _prepare(settings, [make_result("r1", [make_entity("a"), make_entity("b")])])
        explicit = [make_link("a", "b", LinkType.CAUSES)]
        links = linker.link(results, nodes, T0, existing_links=explicit)
        assert any((l.source, l.target) == ("a", "b") for l in links)

    def test_entity_sharing_result_id_is_not_self_linked(self, linker, settings):
        results, nodes = _prepare(settings, [make_result("r1", [make_entity("r1"), make_entity("a")])])
        links = linker.link(results, nodes, T0)
        assert all(l.source != l.target for l in links)

    def test_result_without_entities(self, linker, settings):
        results, nodes = _prepare(settings, [make_result("r1")])
        assert linker.link(results, nodes, T0) == []
