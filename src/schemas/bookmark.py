"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from core.config import SyncStrategy


class BookmarkCreate(BaseModel):
    """
    Schema for creating a new bookmark.

    Blank values are accepted here and rejected by the form, so the caller
    gets the same message whether a field is missing, empty or whitespace.
    """

    title: str = ""
    url: str = ""


class BookmarkResponse(BaseModel):
    """Schema for bookmark responses."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    url: str
    user_id: str
    created_at: datetime


class BookmarkListResponse(BaseModel):
    """Schema for the bookmark list, newest first."""

    items: list[BookmarkResponse]
    total: int


class FeedSnapshot(BaseModel):
    """State of a live bookmark feed, sent to the browser on every change."""

    items: list[BookmarkResponse]
    total: int
    live: bool
    strategy: SyncStrategy


class ErrorResponse(BaseModel):
    """Error body for backend and validation failures."""

    detail: str
    kind: str
    retryable: bool = False
