"""
Content handlers - saved texts
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from utp.api.dependencies import get_content_store
from utp.core.logging import get_logger
from utp.infrastructure.storage.content_store import ContentStore, SavedContent
from utp.models.requests import SaveContentRequest
from utp.models.responses import ContentListResponse

logger = get_logger(__name__)
router = APIRouter(prefix="/contents", tags=["Contents"])


def _not_found(content_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "error": "Content not found",
            "message": f"no content with id {content_id}",
            "details": {"id": content_id}
        }
    )


@router.post("", response_model=SavedContent, status_code=status.HTTP_201_CREATED)
async def save_content(
    request: SaveContentRequest,
    store: ContentStore = Depends(get_content_store)
) -> SavedContent:
    """Persist a canonical text"""
    return store.put(request.text, title=request.title, tags=request.tags)


@router.get("", response_model=ContentListResponse)
async def list_contents(
    limit: Optional[int] = Query(None, ge=1, description="Max number of records"),
    store: ContentStore = Depends(get_content_store)
) -> ContentListResponse:
    """Saved texts, newest first"""
    items = store.list(limit=limit)
    return ContentListResponse(items=items, total=len(items))


@router.get("/search", response_model=ContentListResponse)
async def search_contents(
    q: str = Query(..., description="Text to look for in title, text or tags"),
    store: ContentStore = Depends(get_content_store)
) -> ContentListResponse:
    items = store.search(q)
    return ContentListResponse(items=items, total=len(items))


@router.get("/{content_id}", response_model=SavedContent)
async def get_content(
    content_id: str,
    store: ContentStore = Depends(get_content_store)
) -> SavedContent:
    record = store.get(content_id)
    if record is None:
        raise _not_found(content_id)
    return record


@router.post("/{content_id}/read", response_model=SavedContent)
async def mark_content_read(
    content_id: str,
    store: ContentStore = Depends(get_content_store)
) -> SavedContent:
    """Count one more reading of a saved text"""
    record = store.mark_read(content_id)
    if record is None:
        raise _not_found(content_id)
    return record


@router.delete("/{content_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_content(
    content_id: str,
    store: ContentStore = Depends(get_content_store)
) -> Response:
    if not store.delete(content_id):
        raise _not_found(content_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
