"""
Version information for the landing page pipeline.

This file is the single source of truth for version numbers.
setup.py reads it at build time.
"""

__version__ = "0.3.0"
__version_info__ = (0, 3, 0)
