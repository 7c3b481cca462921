"""HTTP routers."""

from .grading import router as grading_router

__all__ = ["grading_router"]
