"""Credential resolution."""

from .credentials import MissingCredentialError, resolve_api_key

__all__ = ["MissingCredentialError", "resolve_api_key"]
