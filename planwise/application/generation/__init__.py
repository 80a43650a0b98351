"""Clarification and plan generation with deterministic fallback."""

from planwise.application.generation.adapter import GenerationAdapter
from planwise.application.generation.fallback import (
    FallbackBucket,
    fallback_clarifications,
    fallback_plan,
    match_bucket,
)

__all__ = [
    "FallbackBucket",
    "GenerationAdapter",
    "fallback_clarifications",
    "fallback_plan",
    "match_bucket",
]
