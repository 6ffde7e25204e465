"""API routes package."""

from fileserver.routes.file_routes import router as file_router

__all__ = ["file_router"]
