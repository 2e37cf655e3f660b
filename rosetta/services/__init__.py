"""Rosetta API services (one per endpoint family)."""

from .network import NetworkAPIService

__all__ = ["NetworkAPIService"]
