"""clipsmith: clipboard-aware AI transformations."""

__version__ = "0.3.0"
