"""
API v1 package.

Contains the versioned push-delivery routes of the registration consumer.
"""

from src.api.v1.routes import router

__all__ = ["router"]
