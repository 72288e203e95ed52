"""Page numbering for cursor-paginated upstream APIs.

Upstream APIs (Slack, Notion) hand back opaque "next cursor" strings. Each
tool call is otherwise stateless, so to show "Page 3 | Showing 201-300" the
server remembers which page a cursor leads to. The numbers are a display
aid only: the real cursor is always what gets sent upstream.

Only cursors this server never handed out use a counter that goes up on
every reuse. A cursor it did hand out always maps back to the same page, so
re-requesting that page shows the same number again.

State lives for the lifetime of one server instance and is never persisted.
Two clients paging the same tool with interleaved cursors can see odd page
numbers; the data returned is still correct.
"""

from __future__ import annotations

from dataclasses import dataclass

FIRST_PAGE_KEY = ""


@dataclass(frozen=True)
class Page:
    """Display position of one fetched page."""

    number: int
    page_size: int

    @property
    def start_index(self) -> int:
        """Zero-based index of the first item on this page."""
        return self.page_size * (self.number - 1)

    def item_range(self, count: int) -> tuple[int, int]:
        """One-based (first, last) item numbers for a page holding count items."""
        first = self.start_index + 1 if count else self.start_index
        return first, self.start_index + count


class PageTracker:
    """Maps pagination keys to display page numbers, per tool.

    The key is the cursor passed in the current request; the empty key is
    the first page.
    """

    def __init__(self) -> None:
        self._linked: dict[tuple[str, str], int] = {}
        self._counters: dict[tuple[str, str], int] = {}

    def enter(self, tool_name: str, cursor: str | None, page_size: int) -> Page:
        """Resolve the page number for a request.

        Args:
            tool_name: Tool doing the paging.
            cursor: Cursor supplied by the client, None or empty for page one.
            page_size: Number of items requested per page.

        Returns:
            The page being displayed.
        """
        key = (tool_name, cursor or FIRST_PAGE_KEY)
        if key[1] == FIRST_PAGE_KEY:
            number = 1
        elif key in self._linked:
            number = self._linked[key]
        else:
            # Cursor from before a restart or another session: at least page 2
            number = self._counters.get(key, 1) + 1
            self._counters[key] = number
        return Page(number=number, page_size=page_size)

    def advance(self, tool_name: str, page: Page, next_cursor: str | None) -> None:
        """Record that next_cursor opens the page after ``page``."""
        if next_cursor:
            self._linked[(tool_name, next_cursor)] = page.number + 1

    def reset(self) -> None:
        """Forget all page numbers."""
        self._linked.clear()
        self._counters.clear()
