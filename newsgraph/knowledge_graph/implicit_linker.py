"""
Implicit co-occurrence links between entities and the results mentioning them.

Lowest-confidence edge source: it keeps the graph connected even when the
relationship extractor finds nothing explicit.
"""

import logging
from datetime import datetime
from typing import FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from ..settings import GraphSettings, get_settings
from .models import GraphLink, GraphNode, LinkType, SearchResult

logger = logging.getLogger(__name__)

UndirectedKey = Tuple[FrozenSet[str], str]


def undirected_key(source: str, target: str, link_type: str) -> UndirectedKey:
    return (frozenset((source, target)), link_type)


class ImplicitLinker:
    """
    Derives ``related_to`` links from co-mentions.

    - entity <-> entity co-mentioned in one result: co_mention_strength
    - result -> entity it mentions: direct_mention_strength
    """

    def __init__(self, settings: Optional[GraphSettings] = None):
        self.settings = settings or get_settings()

    def link(
        self,
        results: Iterable[SearchResult],
        nodes: Mapping[str, GraphNode],
        now: datetime,
        existing_links: Iterable[GraphLink] = (),
    ) -> List[GraphLink]:
        """
        Emit co-occurrence links for a batch.

        A pair is skipped when a link of the same type already joins the two
        nodes in either direction, whether it came from ``existing_links``
        or from an earlier result in this batch.

        Args:
            results: Validated search results
            nodes: Synthesized node map; links only join nodes present here
            now: validFrom for the emitted links
            existing_links: Links already emitted for this batch

        Returns:
            New links in emission order
        """
        related = LinkType.RELATED_TO.value
        seen: Set[UndirectedKey] = {
            undirected_key(link.source, link.target, link.type.value) for link in existing_links
        }
        links: List[GraphLink] = []

        def emit(source: str, target: str, strength: float) -> None:
            if source == target or source not in nodes or target not in nodes:
                return
            key = undirected_key(source, target, related)
            if key in seen:
                return
            seen.add(key)
            links.append(GraphLink(
                source=source,
                target=target,
                type=LinkType.RELATED_TO,
                strength=strength,
                confidence=strength,
                valid_from=now,
                valid_to=None,
                source_count=1,
            ))

        for result in results:
            entity_ids = list(dict.fromkeys(e.id for e in result.entities))

            for i, first in enumerate(entity_ids):
                for second in entity_ids[i + 1:]:
                    emit(first, second, self.settings.co_mention_strength)

            for entity_id in entity_ids:
                emit(result.id, entity_id, self.settings.direct_mention_strength)

        logger.debug(f"Derived {len(links)} implicit co-occurrence links")
        return links
