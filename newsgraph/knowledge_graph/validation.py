"""
Structural invariant checks for built or merged knowledge graphs.

Validators never raise for data problems; failures are communicated via the
returned list of violation messages.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import List, Optional, Tuple

from .models import KnowledgeGraph

logger = logging.getLogger(__name__)


def validate_graph(
    graph: KnowledgeGraph,
    max_nodes: Optional[int] = None,
    max_links: Optional[int] = None,
) -> List[str]:
    """
    Check a graph against the engine's invariants.

    Checks:
    1. Node ids are unique
    2. Every link endpoint is a node id
    3. No self-loops
    4. validTo >= validFrom on every node and link
    5. sourceCount >= 1, confidence/strength within [0, 1]
    6. (source, target, type) unique among open links
    7. Optional size bounds

    Args:
        graph: Graph to check
        max_nodes: Node bound to enforce (skipped if None)
        max_links: Link bound to enforce (skipped if None)

    Returns:
        Violation messages, empty when the graph is valid
    """
    violations: List[str] = []

    id_counts = Counter(node.id for node in graph.nodes)
    for node_id, count in id_counts.items():
        if count > 1:
            violations.append(f"duplicate node id {node_id!r} ({count} occurrences)")

    for node in graph.nodes:
        if node.valid_to is not None and node.valid_to < node.valid_from:
            violations.append(f"node {node.id!r}: validTo precedes validFrom")
        if node.source_count < 1:
            violations.append(f"node {node.id!r}: sourceCount {node.source_count} < 1")
        if not 0.0 <= node.confidence <= 1.0:
            violations.append(f"node {node.id!r}: confidence {node.confidence} outside [0, 1]")

    open_keys: Counter = Counter()
    for index, link in enumerate(graph.links):
        label = f"link #{index} {link.source!r}->{link.target!r} ({link.type.value})"
        if link.source not in id_counts:
            violations.append(f"{label}: unknown source node")
        if link.target not in id_counts:
            violations.append(f"{label}: unknown target node")
        if link.source == link.target:
            violations.append(f"{label}: self-loop")
        if link.valid_to is not None and link.valid_to < link.valid_from:
            violations.append(f"{label}: validTo precedes validFrom")
        if link.source_count < 1:
            violations.append(f"{label}: sourceCount {link.source_count} < 1")
        if not 0.0 <= link.strength <= 1.0:
            violations.append(f"{label}: strength {link.strength} outside [0, 1]")
        if not 0.0 <= link.confidence <= 1.0:
            violations.append(f"{label}: confidence {link.confidence} outside [0, 1]")
        if link.is_open:
            open_keys[link.key] += 1

    for key, count in open_keys.items():
        if count > 1:
            violations.append(f"open link {key} appears {count} times")

    if max_nodes is not None and len(graph.nodes) > max_nodes:
        violations.append(f"{len(graph.nodes)} nodes exceeds max_nodes={max_nodes}")
    if max_links is not None and len(graph.links) > max_links:
        violations.append(f"{len(graph.links)} links exceeds max_links={max_links}")

    if violations:
        logger.debug(f"Graph validation found {len(violations)} violation(s)")
    return violations


def check_graph(graph: KnowledgeGraph, **bounds: Optional[int]) -> Tuple[bool, str]:
    """
    Validate and summarize as an (is_valid, reason) tuple.

    Returns:
        Tuple of (is_valid, reason_message)
    """
    violations = validate_graph(graph, **bounds)
    if not violations:
        return True, f"Graph valid: {len(graph.nodes)} nodes, {len(graph.links)} links"
    return False, f"{len(violations)} violation(s); first: {violations[0]}"
