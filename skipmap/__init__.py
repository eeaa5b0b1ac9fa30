"""Transcript normalization and ad skip-map generation for podcasts."""

__version__ = "0.1.0"
