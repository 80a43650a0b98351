"""Reasoning backend adapters."""

from planwise.infrastructure.llm.factory import build_llm_backend, requires_credential

__all__ = ["build_llm_backend", "requires_credential"]
