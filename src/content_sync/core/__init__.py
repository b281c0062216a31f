"""HTTP transport to the source site."""

from .client import SourceClient, SourceResponse

__all__ = ["SourceClient", "SourceResponse"]
