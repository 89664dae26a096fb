"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.user_import import router as user_import_router

__all__ = [
    "user_import_router",
]
