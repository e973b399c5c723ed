"""Nudge Engine: deterministic wellness task prioritization."""

__version__ = "1.0.0"
