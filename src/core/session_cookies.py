"""
Cookie-backed storage for the Supabase auth client.

The auth client persists its session (and the PKCE code verifier during an
OAuth login) through a key/value storage interface. Backing that storage with
request cookies lets a fresh per-request client pick up the browser's session.

Values are base64url encoded and split into numbered chunks when they exceed
the size a browser reliably accepts for one cookie.
"""
import base64
import logging
import re

from starlette.responses import Response
from supabase_auth import AsyncSupportedStorage

logger = logging.getLogger(__name__)

AUTH_COOKIE_PREFIX = "supabase.auth."
MAX_CHUNK_SIZE = 3180
BASE64_PREFIX = "base64-"
COOKIE_MAX_AGE = 400 * 24 * 60 * 60  # Browsers cap cookie lifetime at 400 days

_CHUNK_PATTERN = re.compile(r"^(?P<name>.+)\.(?P<index>\d+)$")


def encode_value(value: str) -> str:
    """Encode a storage value into a cookie-safe string."""
    encoded = base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii").rstrip("=")
    return BASE64_PREFIX + encoded


def decode_value(value: str) -> str:
    """Decode a cookie value written by encode_value. Plain values pass through."""
    if not value.startswith(BASE64_PREFIX):
        return value
    encoded = value[len(BASE64_PREFIX):]
    padding = "=" * (-len(encoded) % 4)
    return base64.urlsafe_b64decode(encoded + padding).decode("utf-8")


def split_chunks(value: str, size: int = MAX_CHUNK_SIZE) -> list[str]:
    """Split a cookie value into pieces of at most size characters."""
    return [value[i:i + size] for i in range(0, len(value), size)] or [""]


class CookieStorage(AsyncSupportedStorage):
    """
    Auth storage reading from request cookies and recording pending writes.

    Writes are not sent anywhere until apply() copies them onto a response.
    """

    def __init__(
        self,
        cookies: dict[str, str],
        secure: bool = True,
        max_age: int = COOKIE_MAX_AGE,
    ) -> None:
        self._cookies = dict(cookies)
        self._secure = secure
        self._max_age = max_age
        self._pending_set: dict[str, str] = {}
        self._pending_remove: set[str] = set()

    @property
    def has_changes(self) -> bool:
        """True if apply() would write or delete any cookie."""
        return bool(self._pending_set or self._pending_remove)

    async def get_item(self, key: str) -> str | None:
        """Return the stored value for key, including unapplied writes."""
        if key in self._pending_set:
            return self._pending_set[key]
        if key in self._pending_remove:
            return None
        raw = self._read_cookie(key)
        if raw is None:
            return None
        try:
            return decode_value(raw)
        except ValueError:
            logger.warning("Discarding undecodable auth cookie %s", key)
            return None

    async def set_item(self, key: str, value: str) -> None:
        """Record a write for key."""
        self._pending_remove.discard(key)
        self._pending_set[key] = value

    async def remove_item(self, key: str) -> None:
        """Record a removal for key."""
        self._pending_set.pop(key, None)
        self._pending_remove.add(key)

    def clear(self) -> None:
        """Remove every auth cookie the browser sent."""
        for name in self._cookie_names():
            if name.startswith(AUTH_COOKIE_PREFIX):
                self._pending_set.pop(name, None)
                self._pending_remove.add(name)

    def apply(self, response: Response) -> None:
        """Write pending changes to the response as Set-Cookie headers."""
        for key, value in self._pending_set.items():
            chunks = split_chunks(encode_value(value))
            existing = self._existing_names(key)
            if len(chunks) == 1:
                written = {key}
                self._set(response, key, chunks[0])
            else:
                written = {f"{key}.{i}" for i in range(len(chunks))}
                for i, chunk in enumerate(chunks):
                    self._set(response, f"{key}.{i}", chunk)
            for stale in existing - written:
                self._delete(response, stale)

        for key in self._pending_remove:
            for name in self._existing_names(key) or {key}:
                self._delete(response, name)

        self._pending_set.clear()
        self._pending_remove.clear()

    def _read_cookie(self, key: str) -> str | None:
        if key in self._cookies:
            return self._cookies[key]
        chunks = []
        index = 0
        while f"{key}.{index}" in self._cookies:
            chunks.append(self._cookies[f"{key}.{index}"])
            index += 1
        return "".join(chunks) if chunks else None

    def _cookie_names(self) -> set[str]:
        names = set()
        for cookie_name in self._cookies:
            match = _CHUNK_PATTERN.match(cookie_name)
            names.add(match.group("name") if match else cookie_name)
        return names

    def _existing_names(self, key: str) -> set[str]:
        return {
            name for name in self._cookies
            if name == key or (
                (match := _CHUNK_PATTERN.match(name)) is not None and match.group("name") == key
            )
        }

    def _set(self, response: Response, name: str, value: str) -> None:
        response.set_cookie(
            name,
            value,
            max_age=self._max_age,
            path="/",
            secure=self._secure,
            httponly=True,
            samesite="lax",
        )

    def _delete(self, response: Response, name: str) -> None:
        response.delete_cookie(name, path="/", secure=self._secure, httponly=True, samesite="lax")
