"""Pull, edit and push a single Confluence page with optimistic locking."""

__version__ = "0.1.0"
