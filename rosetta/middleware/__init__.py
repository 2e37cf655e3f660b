"""HTTP middlewares for the Rosetta server."""

from .logging import LoggingMiddleware

__all__ = ["LoggingMiddleware"]
