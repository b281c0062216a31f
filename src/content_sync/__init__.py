"""Pull a single content item and its custom fields from a source site."""

__version__ = "1.0.2"
