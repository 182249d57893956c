"""Repository abstractions for database interactions."""

from .draw_repository import DrawNotFoundError, DrawRepository

__all__ = [
    "DrawNotFoundError",
    "DrawRepository",
]
