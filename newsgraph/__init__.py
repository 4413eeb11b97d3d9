"""
newsgraph - temporal knowledge graph construction for news/search results.

The public entry point is :func:`newsgraph.knowledge_graph.build_graph`.
"""

__version__ = "0.1.0"
