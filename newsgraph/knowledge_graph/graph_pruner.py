"""
Bounded-size pruning of a candidate knowledge graph.

Nodes are ranked by a composite score of degree (on the unpruned link set),
provenance and confidence; links survive only when both endpoints do, then
are truncated in their original order so explicit relationships (inserted
before implicit co-occurrence links) are favoured.
"""

import logging
from typing import Dict, Optional

from ..settings import GraphSettings, get_settings
from .models import GraphNode, KnowledgeGraph

logger = logging.getLogger(__name__)


class GraphPruner:
    """
    Enforces ``max_nodes``/``max_links`` while preserving referential integrity.

    Usage:
        pruner = GraphPruner(max_nodes=100, max_links=200)
        bounded = pruner.prune(graph)
    """

    def __init__(
        self,
        max_nodes: Optional[int] = None,
        max_links: Optional[int] = None,
        settings: Optional[GraphSettings] = None,
    ) -> None:
        """
        Initialize pruner.

        Args:
            max_nodes: Node bound (settings.max_nodes if None)
            max_links: Link bound (settings.max_links if None)
            settings: Scoring coefficients and default bounds

        Raises:
            ValueError: If a bound is negative
        """
        self.settings = settings or get_settings()
        self.max_nodes = self.settings.max_nodes if max_nodes is None else max_nodes
        self.max_links = self.settings.max_links if max_links is None else max_links
        if self.max_nodes < 0 or self.max_links < 0:
            raise ValueError(f"Graph bounds must be non-negative: max_nodes={self.max_nodes}, max_links={self.max_links}")

    def degrees(self, graph: KnowledgeGraph) -> Dict[str, int]:
        """Count links touching each node (parallel edges counted separately)."""
        nx_graph = graph.to_networkx()
        return {node.id: nx_graph.degree(node.id) for node in graph.nodes}

    def score(self, node: GraphNode, degree: int) -> float:
        s = self.settings
        return (
            s.degree_weight * degree
            + s.source_count_weight * node.source_count
            + s.confidence_weight * node.confidence
        )

    def prune(self, graph: KnowledgeGraph) -> KnowledgeGraph:
        """
        Return a graph satisfying both bounds.

        Identity when the input already fits. Otherwise the top ``max_nodes``
        nodes by score are kept (ties keep input order, surviving nodes keep
        their input order), then links between survivors are truncated to
        ``max_links`` in input order.

        Args:
            graph: Candidate graph

        Returns:
            Bounded graph
        """
        if len(graph.nodes) <= self.max_nodes and len(graph.links) <= self.max_links:
            return graph

        degree = self.degrees(graph)
        ranked = sorted(
            range(len(graph.nodes)),
            key=lambda i: -self.score(graph.nodes[i], degree[graph.nodes[i].id]),
        )
        keep = set(ranked[:self.max_nodes])
        nodes = [node for i, node in enumerate(graph.nodes) if i in keep]
        kept_ids = {node.id for node in nodes}

        links = [
            link for link in graph.links
            if link.source in kept_ids and link.target in kept_ids
        ][:self.max_links]

        logger.info(
            f"Pruned graph from {len(graph.nodes)} nodes/{len(graph.links)} links "
            f"to {len(nodes)} nodes/{len(links)} links"
        )
        return KnowledgeGraph(nodes=nodes, links=links)
