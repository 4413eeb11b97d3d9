"""
Shared fixtures for knowledge graph tests.

Timestamps are fixed so that validFrom/validTo assertions are exact.
"""

from datetime import datetime, timedelta, timezone

import pytest

from newsgraph.knowledge_graph.models import GraphLink, GraphNode, KnowledgeGraph, LinkType, NodeType
from newsgraph.settings import GraphSettings, reset_settings

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(days=1)
T2 = T0 + timedelta(days=2)


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Never leak the cached settings singleton between tests."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings():
    return GraphSettings()


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def t1():
    return T1


@pytest.fixture
def t2():
    return T2


def make_entity(entity_id, name=None, entity_type="organization", confidence=0.9):
    return {
        "id": entity_id,
        "type": entity_type,
        "name": name or entity_id,
        "confidence": confidence,
    }


def make_result(result_id, entities=(), title=None, relevance=0.8, source=0.9, impact=None):
    result = {
        "id": result_id,
        "type": "article",
        "title": title or f"Headline {result_id}",
        "summary": "",
        "url": f"https://news.example.com/{result_id}",
        "source": "example",
        "publishedAt": "2024-03-01T08:00:00Z",
        "relevanceScore": relevance,
        "sourceScore": source,
        "entities": list(entities),
        "tags": [],
    }
    if impact is not None:
        result["impactScore"] = impact
    return result


def make_node(node_id, node_type=NodeType.ORGANIZATION, valid_from=T0, source_count=1, confidence=0.8, **kwargs):
    return GraphNode(
        id=node_id,
        type=node_type,
        label=kwargs.pop("label", node_id),
        valid_from=valid_from,
        confidence=confidence,
        source_count=source_count,
        **kwargs,
    )


def make_link(source, target, link_type=LinkType.CAUSES, valid_from=T0, strength=0.6, source_count=1, **kwargs):
    return GraphLink(
        source=source,
        target=target,
        type=link_type,
        strength=strength,
        valid_from=valid_from,
        source_count=source_count,
        **kwargs,
    )


@pytest.fixture
def opec_batch():
    """Two results that both mention OPEC; the first also mentions Saudi Arabia."""
    opec = make_entity("ent-opec", "OPEC", confidence=0.95)
    saudi = make_entity("ent-sau", "Saudi Arabia", entity_type="country", confidence=0.9)
    oil = make_entity("ent-oil", "Crude Oil", entity_type="commodity", confidence=0.85)
    return [
        make_result("res-1", [opec, saudi], title="OPEC agrees production cut"),
        make_result("res-2", [opec, oil], title="Oil prices jump after OPEC meeting"),
    ]


@pytest.fixture
def simple_graph():
    """A -causes-> B -impacts-> C, all open."""
    return KnowledgeGraph(
        nodes=[make_node("A"), make_node("B"), make_node("C")],
        links=[
            make_link("A", "B", LinkType.CAUSES),
            make_link("B", "C", LinkType.IMPACTS),
        ],
    )
