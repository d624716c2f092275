"""HoverCard - hover preview cards for hyperlinks."""

from .__version__ import __version__

__all__ = ["__version__"]
