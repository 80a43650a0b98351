"""Context aggregation over a project tree."""

from planwise.infrastructure.analyzer.context_aggregator import (
    ContextAggregator,
    KeyFilePattern,
    language_for,
    render_context_summary,
)
from planwise.infrastructure.analyzer.manifests import extract_dependencies

__all__ = [
    "ContextAggregator",
    "KeyFilePattern",
    "extract_dependencies",
    "language_for",
    "render_context_summary",
]
