"""Route persistence."""

from .filesystem import FileStorage, save_route

__all__ = ["FileStorage", "save_route"]
