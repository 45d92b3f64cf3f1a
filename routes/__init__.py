"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.channel_mappings import router as channel_mappings_router

__all__ = [
    "channel_mappings_router",
]
