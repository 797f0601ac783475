# API routers
from .routers import router as routers_router

__all__ = ["routers_router"]
