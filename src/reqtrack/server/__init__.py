"""HTTP server for reqtrack."""

from ._app import create_app

__all__ = ["create_app"]
