"""Router aggregator."""
from fastapi import APIRouter

from memberhub.api.routes import pages

api_router = APIRouter()
api_router.include_router(pages.router)

__all__ = ["api_router"]
