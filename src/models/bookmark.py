"""Bookmark model for rows stored in the backend's bookmarks table."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

BOOKMARKS_TABLE = "bookmarks"


class Bookmark(BaseModel):
    """
    Bookmark row - a titled URL owned by one user.

    Rows are immutable once created: there is no update path, only delete.
    `id` is assigned by the backend and normalized to a string so bigint and
    uuid primary keys compare the same way.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    title: str
    url: str
    user_id: str
    created_at: datetime

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def coerce_to_str(cls, v: object) -> object:
        """Accept integer and UUID identifiers from the backend."""
        if v is None or isinstance(v, str):
            return v
        return str(v)
