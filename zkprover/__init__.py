"""
zkprover - control plane around a zkEVM proof-generation pipeline.

Exposes:
- __version__: semantic version string (see zkprover/version.py)
"""

from .version import __version__

__all__ = ["__version__"]
