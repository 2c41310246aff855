"""Forkfinder - streaming restaurant result ingestion and ranking."""

__version__ = "0.1.0"
