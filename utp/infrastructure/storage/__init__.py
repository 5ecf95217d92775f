"""content persistence"""

from .content_store import ContentStore, InMemoryContentStore, SavedContent

__all__ = ["ContentStore", "InMemoryContentStore", "SavedContent"]
