"""Directory adapters - User directory implementations."""

from .graph import GraphUserDirectory
from .static import StaticUserDirectory

__all__ = ["GraphUserDirectory", "StaticUserDirectory"]
