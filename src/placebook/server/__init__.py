"""Reference backend for the shared art collection."""

from .collection import ArtCollection
from .app import create_app

__all__ = ["ArtCollection", "create_app"]
