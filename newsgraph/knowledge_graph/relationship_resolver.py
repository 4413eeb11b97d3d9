"""
Relationship resolution: map extracted relationship references onto node ids.

The extractor is free-form about how it names endpoints: sometimes an entity
id, sometimes the raw entity name in arbitrary case, sometimes a result id.
Resolution is an ordered cascade of strategies; the first one that returns
an id wins.

    1. exact id match against the synthesized node set
    2. case-insensitive name match against every entity in the batch
    3. exact match against a result's own id
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import GraphLink, GraphNode, LinkKey, Relationship, SearchResult

logger = logging.getLogger(__name__)


@dataclass
class ResolutionContext:
    """
    Lookup tables shared by the resolver strategies for one batch.

    Attributes:
        nodes: Synthesized node map (id -> node)
        names: Case-folded entity name -> entity id, first mention wins
        result_ids: Ids of the batch's search results
    """
    nodes: Mapping[str, GraphNode]
    names: Dict[str, str] = field(default_factory=dict)
    result_ids: Dict[str, None] = field(default_factory=dict)

    @classmethod
    def from_batch(cls, results: Iterable[SearchResult], nodes: Mapping[str, GraphNode]) -> "ResolutionContext":
        context = cls(nodes=nodes)
        for result in results:
            context.result_ids.setdefault(result.id, None)
            for entity in result.entities:
                context.names.setdefault(normalize_name(entity.name), entity.id)
        return context


def normalize_name(name: str) -> str:
    return name.strip().casefold()


ResolverStrategy = Callable[[str, ResolutionContext], Optional[str]]


def by_node_id(reference: str, context: ResolutionContext) -> Optional[str]:
    return reference if reference in context.nodes else None


def by_entity_name(reference: str, context: ResolutionContext) -> Optional[str]:
    entity_id = context.names.get(normalize_name(reference))
    if entity_id is not None and entity_id in context.nodes:
        return entity_id
    return None


def by_result_id(reference: str, context: ResolutionContext) -> Optional[str]:
    if reference in context.result_ids and reference in context.nodes:
        return reference
    return None


DEFAULT_STRATEGIES: Tuple[ResolverStrategy, ...] = (
    by_node_id,
    by_entity_name,
    by_result_id,
)


class RelationshipResolver:
    """
    Turns explicit relationships into links between synthesized nodes.

    Unresolvable references and self-loops are dropped silently (DEBUG log
    plus a counter in ``stats``); they are never errors.
    """

    def __init__(self, strategies: Sequence[ResolverStrategy] = DEFAULT_STRATEGIES):
        self.strategies = tuple(strategies)
        self.stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {
            'relationships': 0,
            'resolved': 0,
            'unresolved': 0,
            'self_loops': 0,
            'duplicates': 0,
        }

    def resolve_reference(self, reference: str, context: ResolutionContext) -> Optional[str]:
        """Run the strategy cascade, short-circuiting on the first match."""
        for strategy in self.strategies:
            node_id = strategy(reference, context)
            if node_id is not None:
                return node_id
        return None

    def resolve(
        self,
        relationships: Iterable[Relationship],
        results: Iterable[SearchResult],
        nodes: Mapping[str, GraphNode],
        now: datetime,
    ) -> List[GraphLink]:
        """
        Resolve a batch of relationships into links.

        Duplicate (source, target, type) triples within the batch collapse
        into one link: the later record's strength/confidence win and
        sourceCount is incremented.

        Args:
            relationships: Validated relationships
            results: The batch's search results (for name/result-id lookup)
            nodes: Synthesized node map
            now: validFrom for the emitted links

        Returns:
            Links in first-seen order
        """
        self.stats = self._empty_stats()
        context = ResolutionContext.from_batch(results, nodes)
        links: Dict[LinkKey, GraphLink] = {}

        for rel in relationships:
            self.stats['relationships'] += 1
            source = self.resolve_reference(rel.source, context)
            target = self.resolve_reference(rel.target, context)

            if source is None or target is None:
                self.stats['unresolved'] += 1
                logger.debug(f"Dropping relationship {rel.source!r} -> {rel.target!r}: unresolved endpoint")
                continue
            if source == target:
                self.stats['self_loops'] += 1
                logger.debug(f"Dropping relationship {rel.source!r} -> {rel.target!r}: self-loop on {source!r}")
                continue

            confidence = rel.confidence if rel.confidence is not None else rel.strength
            key = (source, target, rel.type.value)
            existing = links.get(key)
            if existing is not None:
                self.stats['duplicates'] += 1
                links[key] = existing.model_copy(update={
                    "strength": rel.strength,
                    "confidence": confidence,
                    "source_count": existing.source_count + 1,
                })
                continue

            self.stats['resolved'] += 1
            links[key] = GraphLink(
                source=source,
                target=target,
                type=rel.type,
                strength=rel.strength,
                confidence=confidence,
                valid_from=now,
                valid_to=None,
                source_count=1,
            )

        if self.stats['unresolved'] or self.stats['self_loops']:
            logger.info(
                f"Resolved {self.stats['resolved']}/{self.stats['relationships']} relationships "
                f"({self.stats['unresolved']} unresolved, {self.stats['self_loops']} self-loops dropped)"
            )
        return list(links.values())
