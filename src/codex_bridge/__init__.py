"""Codex CLI bridge: agent launching and output normalization."""

__version__ = "0.1.0"
