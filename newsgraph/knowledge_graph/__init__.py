"""
Knowledge Graph Engine - temporal knowledge graph construction from search results.

Modules:
- models: wire records (results, entities, relationships, nodes, links) and boundary coercion
- node_synthesizer: result/entity to node conversion with provenance
- implicit_linker: co-occurrence links
- relationship_resolver: explicit relationship endpoint resolution
- graph_pruner: bounded-size node/link selection
- temporal_merger: snapshot merge with link closure, plus plain graph union
- graph_builder: pipeline orchestration
- validation: invariant checks
"""

from .graph_builder import GraphBuilder, build_graph
from .graph_pruner import GraphPruner
from .implicit_linker import ImplicitLinker
from .models import (
    Entity,
    EntityType,
    GraphLink,
    GraphNode,
    KnowledgeGraph,
    LinkType,
    NodeType,
    Relationship,
    ResultType,
    SearchResult,
)
from .node_synthesizer import NodeSynthesizer
from .relationship_resolver import RelationshipResolver
from .temporal_merger import TemporalMerger, merge_graphs, merge_temporal_graphs
from .validation import check_graph, validate_graph

__all__ = [
    'GraphBuilder',
    'build_graph',
    'GraphPruner',
    'ImplicitLinker',
    'NodeSynthesizer',
    'RelationshipResolver',
    'TemporalMerger',
    'merge_graphs',
    'merge_temporal_graphs',
    'check_graph',
    'validate_graph',
    'Entity',
    'EntityType',
    'GraphLink',
    'GraphNode',
    'KnowledgeGraph',
    'LinkType',
    'NodeType',
    'Relationship',
    'ResultType',
    'SearchResult',
]
