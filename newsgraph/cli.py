"""
Command line wrapper for the knowledge graph builder.

Reads JSON, writes JSON. Intended for debugging extractor output and
replaying stored batches; the HTTP orchestration layer calls
``build_graph`` directly.

Usage:
    newsgraph build batch.json > graph.json
    newsgraph build batch.json --previous graph.json --max-nodes 50 -o merged.json
    newsgraph validate merged.json --max-nodes 50
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from newsgraph.knowledge_graph import GraphBuilder, validate_graph
from newsgraph.knowledge_graph.models import coerce_graph
from newsgraph.logging_config import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="newsgraph",
        description="Build and validate temporal knowledge graphs from extracted entities",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: NEWSGRAPH_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit JSON log lines on stderr",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Build a graph from a results/relationships batch")
    build.add_argument(
        "input",
        help="JSON file with {results, relationships, previousGraph?} ('-' for stdin)",
    )
    build.add_argument(
        "--previous", "-p",
        default=None,
        help="JSON file with a previous graph (overrides previousGraph in input)",
    )
    build.add_argument("--max-nodes", type=int, default=None, help="Node bound (default: 100)")
    build.add_argument("--max-links", type=int, default=None, help="Link bound (default: 200)")
    build.add_argument("--output", "-o", default=None, help="Output file (default: stdout)")

    validate = subparsers.add_parser("validate", help="Check a graph's structural invariants")
    validate.add_argument("graph", help="Graph JSON file ('-' for stdin)")
    validate.add_argument("--max-nodes", type=int, default=None)
    validate.add_argument("--max-links", type=int, default=None)

    return parser.parse_args(argv)


def load_json(source: str) -> Any:
    """Load JSON from a file path, or stdin for '-'."""
    if source == "-":
        return json.load(sys.stdin)
    with Path(source).open(encoding="utf-8") as f:
        return json.load(f)


def run_build(args: argparse.Namespace) -> int:
    batch = load_json(args.input)
    if not isinstance(batch, dict):
        logger.error(f"{args.input}: expected a JSON object with 'results' and 'relationships'")
        return 2

    previous = batch.get("previousGraph")
    if args.previous:
        previous = load_json(args.previous)

    builder = GraphBuilder(max_nodes=args.max_nodes, max_links=args.max_links)
    graph = builder.build(
        batch.get("results") or [],
        batch.get("relationships") or [],
        previous_graph=previous,
    )

    payload = json.dumps(graph.to_wire(), indent=2)
    if args.output:
        Path(args.output).write_text(payload + "\n", encoding="utf-8")
        logger.info(f"Wrote {len(graph.nodes)} nodes, {len(graph.links)} links to {args.output}")
    else:
        print(payload)
    return 0


def run_validate(args: argparse.Namespace) -> int:
    raw = load_json(args.graph)
    if not isinstance(raw, dict):
        logger.error(f"{args.graph}: expected a JSON object with 'nodes' and 'links'")
        return 2

    graph = coerce_graph(raw)
    skipped = len(raw.get("nodes") or []) - len(graph.nodes) + len(raw.get("links") or []) - len(graph.links)
    violations = validate_graph(graph, max_nodes=args.max_nodes, max_links=args.max_links)
    if skipped:
        violations.insert(0, f"{skipped} malformed node/link record(s)")

    for violation in violations:
        print(violation)
    if violations:
        return 1
    print(f"OK: {len(graph.nodes)} nodes, {len(graph.links)} links")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(level=args.log_level, json_format=args.log_json or None)

    try:
        if args.command == "build":
            return run_build(args)
        return run_validate(args)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Cannot read input: {e}")
        return 2
    except (TypeError, ValueError) as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
