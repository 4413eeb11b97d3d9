"""
Node synthesis from search results and their extracted entities.

This module handles:
1. One event node per search result, confidence from result quality scores
2. One node per distinct entity id, confidence from extraction confidence
3. Per-batch provenance: entity sourceCount counts distinct mentioning results
4. First-seen validFrom carried over from a previous graph
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, Mapping, Optional

from ..settings import GraphSettings, get_settings
from .models import GraphNode, NodeType, SearchResult, clamp_unit

logger = logging.getLogger(__name__)


class NodeSynthesizer:
    """
    Converts a batch of search results into candidate graph nodes.

    Node ids are the upstream result/entity ids, so building twice from the
    same input always yields the same ids.
    """

    def __init__(self, settings: Optional[GraphSettings] = None):
        self.settings = settings or get_settings()

    def result_confidence(self, result: SearchResult) -> float:
        """
        Weighted combination of source quality, relevance and impact.

        Missing scores fall back to ``default_score``. The result is
        normalized by the weight sum so custom weights stay in [0, 1].

        Args:
            result: Search result

        Returns:
            Confidence in [0, 1]
        """
        s = self.settings
        default = s.default_score

        def score(value: Optional[float]) -> float:
            return default if value is None else value

        weighted = (
            s.source_weight * score(result.source_score)
            + s.relevance_weight * score(result.relevance_score)
            + s.impact_weight * score(result.impact_score)
        )
        total = s.source_weight + s.relevance_weight + s.impact_weight
        if total <= 0:
            return default
        return clamp_unit(weighted / total)

    def synthesize(
        self,
        results: Iterable[SearchResult],
        now: datetime,
        previous_nodes: Optional[Mapping[str, GraphNode]] = None,
    ) -> Dict[str, GraphNode]:
        """
        Build the candidate node map for one batch.

        Result nodes are created first (in result order), then entity nodes
        (in order of first mention). A repeated id reinforces the existing
        node instead of creating a second one.

        Args:
            results: Validated search results
            now: Timestamp used as validFrom for never-seen ids
            previous_nodes: Nodes of a previous graph keyed by id; only their
                validFrom is consulted here

        Returns:
            Ordered dict of node id -> GraphNode
        """
        previous_nodes = previous_nodes or {}
        results = list(results)
        nodes: Dict[str, GraphNode] = {}

        for result in results:
            existing = nodes.get(result.id)
            if existing is not None:
                nodes[result.id] = self._reinforce(existing)
                continue
            nodes[result.id] = GraphNode(
                id=result.id,
                type=NodeType.EVENT,
                label=result.title or result.id,
                data=result.model_dump(by_alias=True, mode="json"),
                valid_from=self._first_seen(result.id, now, previous_nodes),
                valid_to=None,
                confidence=self.result_confidence(result),
                source_count=1,
            )

        for result in results:
            seen_in_result = set()
            for entity in result.entities:
                if entity.id in seen_in_result:
                    continue
                seen_in_result.add(entity.id)

                confidence = entity.confidence
                if confidence is None:
                    confidence = self.settings.default_score

                existing = nodes.get(entity.id)
                if existing is not None:
                    nodes[entity.id] = self._reinforce(existing, confidence)
                    continue
                nodes[entity.id] = GraphNode(
                    id=entity.id,
                    type=NodeType(entity.type.value),
                    label=entity.name,
                    data={"entity": entity.model_dump(mode="json")},
                    valid_from=self._first_seen(entity.id, now, previous_nodes),
                    valid_to=None,
                    confidence=confidence,
                    source_count=1,
                )

        logger.debug(f"Synthesized {len(nodes)} nodes from {len(results)} results")
        return nodes

    @staticmethod
    def _first_seen(node_id: str, now: datetime, previous_nodes: Mapping[str, GraphNode]) -> datetime:
        previous = previous_nodes.get(node_id)
        if previous is not None and previous.valid_from <= now:
            return previous.valid_from
        return now

    @staticmethod
    def _reinforce(node: GraphNode, confidence: Optional[float] = None) -> GraphNode:
        """Count one more observation; confidence keeps the strongest mention."""
        update = {"source_count": node.source_count + 1, "valid_to": None}
        if confidence is not None and confidence > node.confidence:
            update["confidence"] = confidence
        return node.model_copy(update=update)
