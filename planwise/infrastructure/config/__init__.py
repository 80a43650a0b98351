"""Configuration loading and credential resolution."""

from planwise.infrastructure.config.credentials import CredentialResolver
from planwise.infrastructure.config.toml_loader import load_config

__all__ = ["CredentialResolver", "load_config"]
