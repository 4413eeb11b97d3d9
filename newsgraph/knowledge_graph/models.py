"""
Pydantic models for the knowledge graph wire contract.

These records are shared with the HTTP orchestration layer and the
TypeScript frontend, so the camelCase JSON names (``validFrom``,
``sourceCount``, ``relevanceScore``, ...) are part of the contract and are
kept as field aliases. Python code uses the snake_case attribute names;
both spellings are accepted on input.

This module also holds the boundary coercion helpers: upstream extractors
return loosely-typed JSON, and a single malformed record must never sink a
whole batch.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type, TypeVar

import networkx as nx
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

LinkKey = Tuple[str, str, str]


class EntityType(str, Enum):
    """Entity categories produced by the entity extractor."""
    COUNTRY = "country"
    COMPANY = "company"
    COMMODITY = "commodity"
    ORGANIZATION = "organization"
    PERSON = "person"


class NodeType(str, Enum):
    """Graph node categories: one per entity type plus result events."""
    EVENT = "event"
    COUNTRY = "country"
    COMPANY = "company"
    COMMODITY = "commodity"
    ORGANIZATION = "organization"
    PERSON = "person"


class LinkType(str, Enum):
    """Relationship categories produced by the relationship extractor."""
    CAUSES = "causes"
    PRECEDES = "precedes"
    RELATED_TO = "related_to"
    OPERATES_IN = "operates_in"
    EXPOSES_TO = "exposes_to"
    IMPACTS = "impacts"


class ResultType(str, Enum):
    EVENT = "event"
    ARTICLE = "article"
    DOCUMENT = "document"


def clamp_unit(value: Any) -> Optional[float]:
    """
    Force a numeric value into [0, 1].

    Args:
        value: Raw numeric input (int, float, numeric string or None)

    Returns:
        Clamped float, or None for missing/NaN input

    Raises:
        ValueError: If the value is not numeric at all
    """
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"not a number: {value!r}") from None
    if math.isnan(number):
        return None
    return min(1.0, max(0.0, number))


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Interpret naive datetimes as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )


# ---------------------------------------------------------------------------
# Input records
# ---------------------------------------------------------------------------

class Entity(_WireModel):
    """An entity mention attached to a search result."""

    id: str = Field(..., min_length=1)
    type: EntityType
    name: str = Field(..., min_length=1)
    confidence: Optional[float] = None
    context: Optional[str] = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: Any) -> Optional[float]:
        return clamp_unit(v)


class SearchResult(_WireModel):
    """A single retrieved news/search result with its extracted entities."""

    id: str = Field(..., min_length=1)
    type: ResultType = ResultType.EVENT
    title: str = ""
    summary: str = ""
    url: str = ""
    source: str = ""
    published_at: Optional[str] = Field(None, alias="publishedAt")
    relevance_score: Optional[float] = Field(None, alias="relevanceScore")
    source_score: Optional[float] = Field(None, alias="sourceScore")
    impact_score: Optional[float] = Field(None, alias="impactScore")
    entities: List[Entity] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    content: Optional[str] = None

    @field_validator("relevance_score", "source_score", "impact_score", mode="before")
    @classmethod
    def _clamp_scores(cls, v: Any) -> Optional[float]:
        return clamp_unit(v)


class Relationship(_WireModel):
    """An explicit relationship returned by the relationship extractor.

    ``source`` and ``target`` are references: either node ids or raw
    entity names, resolved later by the relationship resolver.
    """

    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    type: LinkType
    strength: float
    confidence: Optional[float] = None
    evidence: Optional[str] = None

    @field_validator("strength", "confidence", mode="before")
    @classmethod
    def _clamp_weights(cls, v: Any) -> Optional[float]:
        return clamp_unit(v)


# ---------------------------------------------------------------------------
# Graph records
# ---------------------------------------------------------------------------

class _TemporalRecord(_WireModel):
    valid_from: datetime = Field(..., alias="validFrom")
    valid_to: Optional[datetime] = Field(None, alias="validTo")
    confidence: float = 0.5
    source_count: int = Field(1, alias="sourceCount")

    @field_validator("valid_from", "valid_to")
    @classmethod
    def _as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v: Any) -> float:
        clamped = clamp_unit(v)
        return 0.5 if clamped is None else clamped

    @field_validator("source_count", mode="before")
    @classmethod
    def _at_least_one(cls, v: Any) -> int:
        if v is None:
            return 1
        try:
            count = int(v)
        except (TypeError, ValueError, OverflowError):
            raise ValueError(f"sourceCount is not an integer: {v!r}") from None
        return max(1, count)

    @model_validator(mode="after")
    def _interval_ordered(self):
        if self.valid_to is not None and self.valid_to < self.valid_from:
            raise ValueError("validTo precedes validFrom")
        return self

    @property
    def is_open(self) -> bool:
        """True while the record is currently believed valid."""
        return self.valid_to is None


class GraphNode(_TemporalRecord):
    """Knowledge graph vertex."""

    id: str = Field(..., min_length=1)
    type: NodeType
    label: str = ""
    data: Dict[str, Any] = Field(default_factory=dict)


class GraphLink(_TemporalRecord):
    """Knowledge graph edge. Confidence defaults to strength."""

    source: str = Field(..., min_length=1)
    target: str = Field(..., min_length=1)
    type: LinkType
    strength: float

    @field_validator("strength", mode="before")
    @classmethod
    def _clamp_strength(cls, v: Any) -> Optional[float]:
        return clamp_unit(v)

    @model_validator(mode="before")
    @classmethod
    def _default_confidence(cls, data: Any) -> Any:
        if isinstance(data, Mapping) and data.get("confidence") is None:
            data = dict(data)
            data["confidence"] = data.get("strength")
        return data

    @model_validator(mode="after")
    def _check_endpoints(self):
        if self.source == self.target:
            raise ValueError(f"self-loop on {self.source!r}")
        return self

    @property
    def key(self) -> LinkKey:
        """Identity triple (source, target, type)."""
        return (self.source, self.target, self.type.value)


class KnowledgeGraph(BaseModel):
    """Nodes keyed by id plus an ordered list of links."""

    model_config = ConfigDict(populate_by_name=True)

    nodes: List[GraphNode] = Field(default_factory=list)
    links: List[GraphLink] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "KnowledgeGraph":
        return cls(nodes=[], links=[])

    def node_ids(self) -> set:
        return {node.id for node in self.nodes}

    def node_map(self) -> Dict[str, GraphNode]:
        """Nodes keyed by id, preserving order (last duplicate wins)."""
        return {node.id: node for node in self.nodes}

    def open_links(self) -> List[GraphLink]:
        return [link for link in self.links if link.is_open]

    def to_wire(self) -> Dict[str, Any]:
        """JSON-shaped dict with camelCase names and ISO timestamps."""
        return self.model_dump(by_alias=True, mode="json")

    def to_networkx(self) -> nx.MultiDiGraph:
        """
        Export as a NetworkX MultiDiGraph.

        Every link becomes its own edge, so parallel links (different types,
        or a closed record next to its reopened successor) are kept apart.

        Returns:
            MultiDiGraph with node/link attributes copied across
        """
        graph = nx.MultiDiGraph()
        for node in self.nodes:
            graph.add_node(
                node.id,
                node_type=node.type.value,
                label=node.label,
                confidence=node.confidence,
                source_count=node.source_count,
                valid_from=node.valid_from.isoformat(),
                valid_to=node.valid_to.isoformat() if node.valid_to else None,
            )
        for link in self.links:
            graph.add_edge(
                link.source,
                link.target,
                link_type=link.type.value,
                strength=link.strength,
                confidence=link.confidence,
                source_count=link.source_count,
                valid_from=link.valid_from.isoformat(),
                valid_to=link.valid_to.isoformat() if link.valid_to else None,
            )
        return graph


# ---------------------------------------------------------------------------
# Boundary coercion
# ---------------------------------------------------------------------------

def _coerce_each(model: Type[ModelT], items: Any, kind: str) -> Iterator[ModelT]:
    """Validate records one at a time, skipping the malformed ones."""
    if items is None:
        return
    if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Iterable):
        logger.warning(f"Expected a list of {kind} records, got {type(items).__name__}; ignoring")
        return

    for index, item in enumerate(items):
        if isinstance(item, model):
            yield item
            continue
        try:
            yield model.model_validate(item)
        except ValidationError as e:
            logger.debug(f"Skipping malformed {kind} #{index}: {e.error_count()} error(s): {e.errors()[0]['msg']}")


def coerce_entities(items: Any) -> List[Entity]:
    return list(_coerce_each(Entity, items, "entity"))


def coerce_results(items: Iterable[Any]) -> List[SearchResult]:
    """
    Validate raw search results record-by-record.

    A malformed entity inside an otherwise valid result drops only that
    entity; a malformed result (missing id, bad type) is skipped entirely.

    Args:
        items: SearchResult instances or JSON-shaped dicts

    Returns:
        List of valid SearchResult records, input order preserved
    """
    if items is None:
        raise TypeError("results must not be None")

    results: List[SearchResult] = []
    skipped = 0
    for index, item in enumerate(items):
        if isinstance(item, SearchResult):
            results.append(item)
            continue
        if not isinstance(item, Mapping):
            skipped += 1
            logger.debug(f"Skipping result #{index}: not an object")
            continue

        raw = dict(item)
        raw["entities"] = coerce_entities(raw.get("entities"))
        try:
            results.append(SearchResult.model_validate(raw))
        except ValidationError as e:
            skipped += 1
            logger.debug(f"Skipping malformed result #{index}: {e.errors()[0]['msg']}")

    if skipped:
        logger.warning(f"Skipped {skipped} malformed search result(s)")
    return results


def coerce_relationships(items: Iterable[Any]) -> List[Relationship]:
    """Validate raw relationships, skipping malformed ones."""
    if items is None:
        raise TypeError("relationships must not be None")
    items = list(items)
    relationships = list(_coerce_each(Relationship, items, "relationship"))
    if len(relationships) < len(items):
        logger.warning(f"Skipped {len(items) - len(relationships)} malformed relationship(s)")
    return relationships


def coerce_graph(graph: Any) -> KnowledgeGraph:
    """
    Validate a previously persisted graph node-by-node and link-by-link.

    Args:
        graph: KnowledgeGraph instance or dict with ``nodes``/``links``

    Returns:
        KnowledgeGraph containing only the records that validated

    Raises:
        TypeError: If graph is neither a KnowledgeGraph nor a mapping
    """
    if isinstance(graph, KnowledgeGraph):
        return graph
    if not isinstance(graph, Mapping):
        raise TypeError(f"previous graph must be a KnowledgeGraph or mapping, got {type(graph).__name__}")

    nodes = list(_coerce_each(GraphNode, graph.get("nodes"), "node"))
    links = list(_coerce_each(GraphLink, graph.get("links"), "link"))
    return KnowledgeGraph(nodes=nodes, links=links)
