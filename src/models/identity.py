"""Authenticated identity resolved from the backend session."""
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Identity:
    """
    The signed-in user as reported by the backend's auth service.

    `access_token` is forwarded to data and realtime calls so the backend's
    row-level security evaluates them as this user.
    """

    id: str
    email: str | None = None
    access_token: str = field(default="", repr=False)
