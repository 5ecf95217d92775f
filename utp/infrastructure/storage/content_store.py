from __future__ import annotations

import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field

from utp.core.logging import get_logger
from utp.models.domain import UniversalText

logger = get_logger(__name__)


class SavedContent(BaseModel):
    """persisted record of a canonical text"""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="opaque record id")
    title: str = Field(description="display title")
    text: UniversalText = Field(description="stored text")
    tags: tuple[str, ...] = Field(default=(), description="free-form tags")
    saved_at: datetime = Field(description="creation time")
    read_count: int = Field(default=0, ge=0, description="how many times it was read")
    last_read_at: datetime | None = Field(default=None, description="last read time")


class ContentStore(ABC):
    """put/get/list/search/delete of saved texts keyed by an opaque id"""

    @abstractmethod
    def put(
        self, text: UniversalText, title: str | None = None, tags: Iterable[str] = ()
    ) -> SavedContent: ...

    @abstractmethod
    def get(self, content_id: str) -> SavedContent | None: ...

    @abstractmethod
    def list(self, limit: int | None = None) -> list[SavedContent]: ...

    @abstractmethod
    def search(self, query: str) -> list[SavedContent]: ...

    @abstractmethod
    def delete(self, content_id: str) -> bool: ...

    @abstractmethod
    def mark_read(self, content_id: str) -> SavedContent | None: ...


class InMemoryContentStore(ContentStore):
    """content store kept in a dict, safe for concurrent callers"""

    def __init__(self):
        self._records: dict[str, SavedContent] = {}
        self._lock = threading.Lock()

    def put(
        self, text: UniversalText, title: str | None = None, tags: Iterable[str] = ()
    ) -> SavedContent:
        record = SavedContent(
            id=str(uuid.uuid4()),
            title=title or text.metadata.title or "Untitled",
            text=text,
            tags=tuple(tag.strip() for tag in tags if tag and tag.strip()),
            saved_at=datetime.now(timezone.utc),
        )
        with self._lock:
            self._records[record.id] = record

        logger.info("content saved", content_id=record.id, tokens=text.token_count)
        return record

    def get(self, content_id: str) -> SavedContent | None:
        with self._lock:
            return self._records.get(content_id)

    def list(self, limit: int | None = None) -> list[SavedContent]:
        """
        get saved contents, newest first

        args:
            limit: max number of records to return
        """
        with self._lock:
            records = list(self._records.values())

        records.sort(key=lambda r: r.saved_at, reverse=True)

        if limit:
            records = records[:limit]

        return records

    def search(self, query: str) -> list[SavedContent]:
        """case-insensitive match on title, raw text or tags"""
        needle = query.strip().casefold()
        if not needle:
            return []

        return [
            record
            for record in self.list()
            if needle in record.title.casefold()
            or needle in record.text.raw_text.casefold()
            or any(needle in tag.casefold() for tag in record.tags)
        ]

    def delete(self, content_id: str) -> bool:
        with self._lock:
            removed = self._records.pop(content_id, None)

        if removed is not None:
            logger.info("content deleted", content_id=content_id)
        return removed is not None

    def mark_read(self, content_id: str) -> SavedContent | None:
        with self._lock:
            record = self._records.get(content_id)
            if record is None:
                return None
            record = record.model_copy(
                update={
                    "read_count": record.read_count + 1,
                    "last_read_at": datetime.now(timezone.utc),
                }
            )
            self._records[content_id] = record
        return record
