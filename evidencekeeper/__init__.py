"""Local SQLite evidence store with configuration, slug, layout and spinner helpers."""

__version__ = "1.2.0"