"""linkctl — Org-style link parsing, resolution, and preview engine."""

__version__ = "0.1.0"
