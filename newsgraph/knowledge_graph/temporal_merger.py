"""
Temporal merge of a fresh graph snapshot into a previously stored graph.

This module handles:
1. Node union with provenance accumulation and first-seen validFrom
2. Link reinforcement for (source, target, type) triples seen again
3. Closing (never deleting) links that disappeared from the snapshot
4. Dropping inconsistent links of the previous graph
5. Non-temporal union of two graphs (merge_graphs)

Both entry points are pure: inputs are read, never mutated. Callers that
persist the result must serialize merge-then-persist per logical graph
(e.g. one lock per session), otherwise concurrent merges lose updates.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from .models import GraphLink, GraphNode, KnowledgeGraph, LinkKey, ensure_utc, utc_now

logger = logging.getLogger(__name__)


def _prefer(candidate: GraphLink, held: GraphLink) -> bool:
    """Pick which duplicate of a previous link represents its key: open beats closed, later closure beats earlier."""
    if held.is_open:
        return False
    if candidate.is_open:
        return True
    return candidate.valid_to > held.valid_to


class TemporalMerger:
    """
    Merges snapshots while keeping history.

    Link policy when a triple reappears: strength and confidence come from
    the current snapshot, sourceCount is previous + current, validFrom is
    the previous (first-seen) value and validTo is reset to null. A triple
    that had been closed earlier is re-opened the same way.

    Nodes are never closed: a node that stops being observed stays valid.
    """

    def __init__(self) -> None:
        self.stats: Dict[str, int] = {}

    def merge(
        self,
        previous: KnowledgeGraph,
        current: KnowledgeGraph,
        now: Optional[datetime] = None,
    ) -> KnowledgeGraph:
        """
        Merge ``current`` into ``previous``.

        Args:
            previous: Previously persisted graph (read-only)
            current: Freshly built, pruned snapshot (read-only)
            now: Merge timestamp used to close links (UTC now if None)

        Returns:
            New graph: all nodes, closed previous links followed by current links
        """
        now = ensure_utc(now) or utc_now()
        self.stats = {
            'nodes_new': 0,
            'nodes_reinforced': 0,
            'nodes_retained': 0,
            'links_new': 0,
            'links_reinforced': 0,
            'links_closed': 0,
            'links_history': 0,
            'links_inconsistent': 0,
        }

        previous_nodes = previous.node_map()
        previous_links = self._consistent_links(previous.links, previous_nodes)
        held = self._representatives(previous_links)

        nodes = self._merge_nodes(previous_nodes, current.nodes)

        current_links: Dict[LinkKey, GraphLink] = {}
        for link in current.links:
            if link.source not in nodes or link.target not in nodes:
                self.stats['links_inconsistent'] += 1
                logger.debug(f"Dropping snapshot link {link.key}: endpoint missing")
                continue
            if link.key in current_links:
                logger.debug(f"Ignoring duplicate snapshot link {link.key}")
                continue
            current_links[link.key] = link

        closed: List[GraphLink] = []
        for link in previous_links:
            if link.key in current_links and held[link.key] is link:
                continue
            if link.is_open:
                self.stats['links_closed'] += 1
                closed.append(link.model_copy(update={"valid_to": max(now, link.valid_from)}))
            else:
                self.stats['links_history'] += 1
                closed.append(link)

        merged: List[GraphLink] = []
        for key, link in current_links.items():
            prior = held.get(key)
            if prior is None:
                self.stats['links_new'] += 1
                merged.append(link)
                continue
            self.stats['links_reinforced'] += 1
            merged.append(link.model_copy(update={
                "valid_from": min(prior.valid_from, link.valid_from),
                "valid_to": None,
                "source_count": prior.source_count + link.source_count,
            }))

        logger.info(
            f"Merged graph: {len(nodes)} nodes ({self.stats['nodes_new']} new, "
            f"{self.stats['nodes_reinforced']} reinforced), "
            f"{len(closed) + len(merged)} links ({self.stats['links_closed']} closed, "
            f"{self.stats['links_reinforced']} reinforced)"
        )
        return KnowledgeGraph(nodes=list(nodes.values()), links=closed + merged)

    def _consistent_links(
        self,
        links: Iterable[GraphLink],
        nodes: Dict[str, GraphNode],
    ) -> List[GraphLink]:
        """Drop previous links with dangling endpoints."""
        kept: List[GraphLink] = []
        for link in links:
            if link.source not in nodes or link.target not in nodes:
                self.stats['links_inconsistent'] += 1
                logger.warning(f"Previous graph link {link.key} references a missing node; dropping")
                continue
            kept.append(link)
        return kept

    @staticmethod
    def _representatives(links: Iterable[GraphLink]) -> Dict[LinkKey, GraphLink]:
        """
        One record per triple to reinforce when the triple reappears.

        The open record when there is one, otherwise the latest closure.
        The remaining records of a triple are history and pass through.
        """
        held: Dict[LinkKey, GraphLink] = {}
        for link in links:
            prior = held.get(link.key)
            if prior is None or _prefer(link, prior):
                held[link.key] = link
        return held

    def _merge_nodes(
        self,
        previous_nodes: Dict[str, GraphNode],
        current_nodes: Iterable[GraphNode],
    ) -> Dict[str, GraphNode]:
        nodes = dict(previous_nodes)
        reaffirmed: Set[str] = set()
        for node in current_nodes:
            prior = nodes.get(node.id)
            if prior is None:
                self.stats['nodes_new'] += 1
                nodes[node.id] = node
                continue
            if node.id in reaffirmed:
                continue
            reaffirmed.add(node.id)
            self.stats['nodes_reinforced'] += 1
            nodes[node.id] = node.model_copy(update={
                "valid_from": min(prior.valid_from, node.valid_from),
                "valid_to": None,
                "source_count": prior.source_count + node.source_count,
            })
        self.stats['nodes_retained'] = len(previous_nodes) - self.stats['nodes_reinforced']
        return nodes


def merge_temporal_graphs(
    previous: KnowledgeGraph,
    current: KnowledgeGraph,
    now: Optional[datetime] = None,
) -> KnowledgeGraph:
    """Functional wrapper around :class:`TemporalMerger`."""
    return TemporalMerger().merge(previous, current, now=now)


def merge_graphs(first: KnowledgeGraph, second: KnowledgeGraph) -> KnowledgeGraph:
    """
    Union two graphs without temporal semantics.

    Nodes present in both keep the first graph's record with ``data``
    shallow-merged from the second. Links are deduplicated by
    (source, target, type), first occurrence wins, and are only kept when
    both endpoints exist in the union.

    Args:
        first: Base graph
        second: Graph folded into the base

    Returns:
        New unioned graph
    """
    nodes: Dict[str, GraphNode] = dict(first.node_map())
    for node in second.nodes:
        existing = nodes.get(node.id)
        if existing is None:
            nodes[node.id] = node
        else:
            nodes[node.id] = existing.model_copy(update={"data": {**existing.data, **node.data}})

    links: List[GraphLink] = []
    seen: Set[LinkKey] = set()
    for link in [*first.links, *second.links]:
        if link.key in seen:
            continue
        if link.source in nodes and link.target in nodes:
            seen.add(link.key)
            links.append(link)

    return KnowledgeGraph(nodes=list(nodes.values()), links=links)
