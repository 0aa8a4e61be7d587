"""Bookmark creation form state with a per-user busy flag."""
import asyncio
import logging

from models.bookmark import Bookmark
from services import bookmark_service
from services.bookmark_gateway import BookmarkGateway
from services.exceptions import SubmissionInProgressError

logger = logging.getLogger(__name__)


class BookmarkForm:
    """
    Title and URL fields for one user plus an in-flight flag.

    While a submission is in flight, further submissions are rejected without
    touching the backend. Fields are cleared only after a successful insert,
    so a failed submission can be corrected and resubmitted.
    """

    def __init__(self, user_id: str, settle_delay: float = 0.0) -> None:
        self.user_id = user_id
        self.settle_delay = settle_delay
        self.title = ""
        self.url = ""
        self.is_adding = False

    def fill(self, title: str, url: str) -> None:
        """Set field values. Rejected while a submission is in flight."""
        if self.is_adding:
            raise SubmissionInProgressError()
        self.title = title
        self.url = url

    async def submit(self, gateway: BookmarkGateway) -> Bookmark:
        """
        Validate the fields and insert a bookmark.

        Raises:
            SubmissionInProgressError: If a previous submission has not finished.
            BookmarkValidationError: If title or url is blank.
            BackendError: If the insert fails.
        """
        if self.is_adding:
            raise SubmissionInProgressError()
        title, url = bookmark_service.normalize_bookmark_fields(self.title, self.url)

        self.is_adding = True
        try:
            bookmark = await bookmark_service.create_bookmark(gateway, self.user_id, title, url)
            self.title = ""
            self.url = ""
            if self.settle_delay > 0:
                await asyncio.sleep(self.settle_delay)
            return bookmark
        finally:
            self.is_adding = False


class BookmarkFormRegistry:
    """
    Holds one BookmarkForm per user so the busy flag spans requests.

    The registry lives in process memory: the flag only spans requests served
    by the same worker. Run a single uvicorn worker per deployment, or
    duplicate submissions routed to different workers are not rejected.
    """

    def __init__(self, settle_delay: float = 0.0) -> None:
        self.settle_delay = settle_delay
        self._forms: dict[str, BookmarkForm] = {}

    def get(self, user_id: str) -> BookmarkForm:
        """Get the user's form, creating it on first use."""
        form = self._forms.get(user_id)
        if form is None:
            form = BookmarkForm(user_id, settle_delay=self.settle_delay)
            self._forms[user_id] = form
        return form

    def discard_idle(self) -> int:
        """Drop forms with no submission in flight. Returns the number dropped."""
        idle = [user_id for user_id, form in self._forms.items() if not form.is_adding]
        for user_id in idle:
            del self._forms[user_id]
        return len(idle)

    def __len__(self) -> int:
        return len(self._forms)


_form_registry: BookmarkFormRegistry | None = None


def get_form_registry() -> BookmarkFormRegistry:
    """Get the process-wide form registry, creating it on first use."""
    global _form_registry  # noqa: PLW0603
    if _form_registry is None:
        from core.config import get_settings  # noqa: PLC0415

        _form_registry = BookmarkFormRegistry(
            settle_delay=get_settings().submit_settle_delay_seconds,
        )
    return _form_registry


def set_form_registry(registry: BookmarkFormRegistry | None) -> None:
    """Set the process-wide form registry (None resets it)."""
    global _form_registry  # noqa: PLW0603
    _form_registry = registry
