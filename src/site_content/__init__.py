"""Content synchronization layer for the marketing site.

Fetches editor-maintained collections from the spreadsheet-backed content
store, normalizes them, and caches them for page renderers.
"""

__all__ = ["cache", "client", "config", "models", "normalizer", "queries", "repository"]
