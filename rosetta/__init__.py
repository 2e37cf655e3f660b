"""
Filecoin Rosetta network API.

Exposes:
- __version__: semantic version string (see rosetta/version.py)
"""

from .version import __version__

__all__ = ["__version__"]
