"""Domain models."""
from models.bookmark import BOOKMARKS_TABLE, Bookmark
from models.identity import Identity

__all__ = ["BOOKMARKS_TABLE", "Bookmark", "Identity"]
