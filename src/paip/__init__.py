"""Pipe files or stdin through a configured LLM prompt."""

__version__ = "0.3.0"
