"""Guardrails for search input."""

from forkfinder.guardrails.input_validator import SearchInputValidator

__all__ = ["SearchInputValidator"]
