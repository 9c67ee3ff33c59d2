"""FastAPI routes for the POS catalog."""

from src.api.products import router as products_router

__all__ = ["products_router"]
