"""Slate: multi-project issue tracking with blocking dependencies."""

from slate._version import version as __version__

__all__ = ["__version__"]
