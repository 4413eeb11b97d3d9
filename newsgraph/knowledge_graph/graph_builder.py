"""
Knowledge graph builder: one batch of results + relationships -> graph.

Pipeline:
1. Validate the batch record-by-record (malformed records are skipped)
2. Synthesize result and entity nodes
3. Resolve explicit relationships into links
4. Derive implicit co-occurrence links (after explicit ones)
5. Prune to max_nodes/max_links
6. Temporal merge into the previous graph, if one is supplied

The build is a pure, synchronous function of its inputs. Data-quality
problems never raise; only contract violations (None arguments, negative
bounds) do.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from ..settings import GraphSettings, get_settings
from .graph_pruner import GraphPruner
from .implicit_linker import ImplicitLinker
from .models import (
    KnowledgeGraph,
    coerce_graph,
    coerce_relationships,
    coerce_results,
    ensure_utc,
    utc_now,
)
from .node_synthesizer import NodeSynthesizer
from .relationship_resolver import RelationshipResolver
from .temporal_merger import TemporalMerger

logger = logging.getLogger(__name__)


class GraphBuilder:
    """
    Orchestrates node synthesis, linking, pruning and temporal merge.

    Usage:
        builder = GraphBuilder(max_nodes=50)
        graph = builder.build(results, relationships, previous_graph=stored)
        print(builder.last_stats)
    """

    def __init__(
        self,
        max_nodes: Optional[int] = None,
        max_links: Optional[int] = None,
        settings: Optional[GraphSettings] = None,
    ) -> None:
        """
        Initialize builder and its stages.

        Args:
            max_nodes: Node bound for the built snapshot (settings default if None)
            max_links: Link bound for the built snapshot (settings default if None)
            settings: Engine settings (cached environment settings if None)

        Raises:
            ValueError: If a bound is negative
        """
        self.settings = settings or get_settings()
        self.synthesizer = NodeSynthesizer(self.settings)
        self.linker = ImplicitLinker(self.settings)
        self.resolver = RelationshipResolver()
        self.pruner = GraphPruner(max_nodes=max_nodes, max_links=max_links, settings=self.settings)
        self.merger = TemporalMerger()
        self.last_stats: Dict[str, Any] = {}

    def build(
        self,
        results: Iterable[Any],
        relationships: Iterable[Any],
        previous_graph: Optional[Any] = None,
        now: Optional[datetime] = None,
    ) -> KnowledgeGraph:
        """
        Build (and optionally merge) a knowledge graph.

        Args:
            results: SearchResult records or JSON-shaped dicts
            relationships: Relationship records or JSON-shaped dicts
            previous_graph: KnowledgeGraph or dict; merged into when given
            now: Timestamp for new records and for closing links (UTC now if None)

        Returns:
            KnowledgeGraph, possibly empty

        Raises:
            TypeError: If results or relationships is None, or the previous
                graph is not a graph/mapping
        """
        if results is None or relationships is None:
            raise TypeError("results and relationships are required (use [] for none)")
        now = ensure_utc(now) or utc_now()

        batch = coerce_results(results)
        rels = coerce_relationships(relationships)
        previous = coerce_graph(previous_graph) if previous_graph is not None else None

        nodes = self.synthesizer.synthesize(
            batch, now, previous_nodes=previous.node_map() if previous is not None else None
        )
        explicit = self.resolver.resolve(rels, batch, nodes, now)
        implicit = self.linker.link(batch, nodes, now, existing_links=explicit)

        candidate = KnowledgeGraph(nodes=list(nodes.values()), links=explicit + implicit)
        snapshot = self.pruner.prune(candidate)

        self.last_stats = {
            'results': len(batch),
            'relationships': len(rels),
            'relationships_resolved': self.resolver.stats['resolved'],
            'relationships_dropped': self.resolver.stats['unresolved'] + self.resolver.stats['self_loops'],
            'explicit_links': len(explicit),
            'implicit_links': len(implicit),
            'candidate_nodes': len(candidate.nodes),
            'candidate_links': len(candidate.links),
            'nodes_pruned': len(candidate.nodes) - len(snapshot.nodes),
            'links_pruned': len(candidate.links) - len(snapshot.links),
            'merged': previous is not None,
        }

        graph = snapshot
        if previous is not None:
            graph = self.merger.merge(previous, snapshot, now=now)
            self.last_stats['links_closed'] = self.merger.stats['links_closed']
            self.last_stats['links_reinforced'] = self.merger.stats['links_reinforced']

        self.last_stats['nodes'] = len(graph.nodes)
        self.last_stats['links'] = len(graph.links)
        logger.info(
            f"Built graph: {self.last_stats['nodes']} nodes, {self.last_stats['links']} links "
            f"from {len(batch)} results and {len(rels)} relationships",
            extra={'graph_stats': self.last_stats},
        )
        return graph


def build_graph(
    results: Iterable[Any],
    relationships: Iterable[Any],
    previous_graph: Optional[Any] = None,
    *,
    max_nodes: Optional[int] = None,
    max_links: Optional[int] = None,
    now: Optional[datetime] = None,
) -> KnowledgeGraph:
    """
    Build a knowledge graph from one batch of results and relationships.

    Convenience wrapper creating a fresh :class:`GraphBuilder` per call, so
    concurrent invocations share no mutable state.
    """
    builder = GraphBuilder(max_nodes=max_nodes, max_links=max_links)
    return builder.build(results, relationships, previous_graph=previous_graph, now=now)
